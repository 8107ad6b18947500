"""OpenAI-compatible chat-completions provider for bullet enhancement."""

from __future__ import annotations

from typing import Any

import httpx

from ..errors import EnhancementError
from .base import EnhancementProvider


class OpenAICompatibleProvider(EnhancementProvider):
    """Provider for any endpoint speaking the /chat/completions protocol."""

    name = "openai_compatible"

    async def _complete(self, system: str, prompt: str) -> str:
        payload = {
            "model": self.cfg.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.cfg.temperature,
            "max_tokens": self.cfg.max_output_tokens,
        }
        try:
            data = await self._post(payload)
        except httpx.HTTPError as exc:
            raise EnhancementError(f"{type(exc).__name__}: {exc}") from exc
        except ValueError as exc:
            raise EnhancementError(f"Invalid JSON response: {exc}") from exc
        return _extract_text(data)

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.cfg.base_url.rstrip('/')}/chat/completions"
        headers = {"Authorization": f"Bearer {self.api_key}"}
        async with httpx.AsyncClient(timeout=30.0, trust_env=self.cfg.trust_env) as client:
            resp = await client.post(url, headers=headers, json=payload)
            resp.raise_for_status()
            return resp.json()


def _extract_text(data: dict[str, Any]) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    return content or ""
