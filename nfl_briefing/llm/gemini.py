"""Google Gemini provider for bullet enhancement."""

from __future__ import annotations

from typing import Any

import httpx

from ..errors import EnhancementError
from .base import EnhancementProvider


class GeminiProvider(EnhancementProvider):
    """Gemini-backed provider calling the generateContent REST endpoint."""

    name = "gemini"

    async def _complete(self, system: str, prompt: str) -> str:
        payload = {
            "systemInstruction": {"parts": [{"text": system}]},
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.cfg.temperature,
                "maxOutputTokens": self.cfg.max_output_tokens,
            },
        }
        try:
            data = await self._post(payload)
        except httpx.HTTPError as exc:
            raise EnhancementError(f"{type(exc).__name__}: {exc}") from exc
        except ValueError as exc:
            raise EnhancementError(f"Invalid JSON response: {exc}") from exc
        return _extract_text(data)

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.cfg.base_url}/v1beta/models/{self.cfg.model}:generateContent"
        params = {"key": self.api_key}
        async with httpx.AsyncClient(timeout=30.0, trust_env=self.cfg.trust_env) as client:
            resp = await client.post(url, params=params, json=payload)
            resp.raise_for_status()
            return resp.json()


def _extract_text(data: dict[str, Any]) -> str:
    """Join the text parts of the first candidate, skipping thought parts when possible."""
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return ""
    texts = [part.get("text", "") for part in parts if isinstance(part, dict) and not part.get("thought")]
    if not any(texts):
        texts = [part.get("text", "") for part in parts if isinstance(part, dict)]
    return "".join(texts)
