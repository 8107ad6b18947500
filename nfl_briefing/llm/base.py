"""Abstract interface for the text-generation enhancement collaborator."""

from __future__ import annotations

from abc import ABC, abstractmethod
import json
import logging
import re
from typing import Any

from ..config import LoggingConfig, ProviderConfig
from ..errors import EnhancementError
from ..logging_utils import log_event, redact_urls, truncate_text
from ..types import Excerpt
from .prompts import SYSTEM_PROMPT, semantic_dedupe_prompt, summarize_prompt


_LIST_MARKER_RE = re.compile(r"^\s*(?:[-*•]+|\d+[.)])\s*")


class EnhancementProvider(ABC):
    """Provider interface for bullet summarization and semantic dedupe.

    Subclasses implement one raw completion call; prompt construction and
    response parsing are shared. Methods raise EnhancementError on failure;
    the budgeted wrapper converts that into an empty result.
    """

    name: str = ""

    def __init__(
        self,
        cfg: ProviderConfig,
        api_key: str | None,
        log_cfg: LoggingConfig,
        llm_logger: logging.Logger | None,
    ):
        if not api_key:
            raise ValueError(f"Missing API key for provider {cfg.name}")
        self.cfg = cfg
        self.api_key = api_key
        self.log_cfg = log_cfg
        self.llm_logger = llm_logger

    async def summarize(
        self,
        category: str,
        excerpts: list[Excerpt],
        date_iso: str,
        other_context: list[str] | None = None,
    ) -> list[str]:
        prompt = summarize_prompt(category, excerpts, date_iso, other_context)
        content = await self._request("llm_summarize", prompt)
        return parse_bullets(content)

    async def semantic_dedupe(self, bullets: list[str]) -> list[str]:
        prompt = semantic_dedupe_prompt(bullets)
        content = await self._request("llm_semantic_dedupe", prompt)
        return parse_bullets(content)

    async def _request(self, event: str, prompt: str) -> str:
        try:
            content = await self._complete(SYSTEM_PROMPT, prompt)
        except EnhancementError as exc:
            self._log_llm_response(event, "provider_error", str(exc), prompt)
            raise
        if not content.strip():
            self._log_llm_response(event, "empty", content, prompt)
            raise EnhancementError("empty response")
        self._log_llm_response(event, "ok", content, prompt)
        return content

    @abstractmethod
    async def _complete(self, system: str, prompt: str) -> str:
        """Send one completion request and return the raw text."""
        raise NotImplementedError

    def _log_llm_response(self, event: str, status: str, content: str, prompt: str) -> None:
        if self.llm_logger is None:
            return
        redact = self.log_cfg.llm_log_redact_urls
        payload = {
            "event": event,
            "status": status,
            "provider": self.name,
            "model": self.cfg.model,
        }
        if self.log_cfg.llm_log_detail == "prompt_response":
            payload["raw_prompt"] = truncate_text(redact_urls(prompt, redact))
        payload["raw_response"] = truncate_text(redact_urls(content, redact))
        log_event(self.llm_logger, "LLM response", **payload)


def parse_bullets(content: str) -> list[str]:
    """Read bullets from a JSON object/array, or from a plain list as a fallback."""
    try:
        obj = _parse_json_response(content)
    except json.JSONDecodeError:
        obj = None
    if isinstance(obj, dict):
        obj = obj.get("bullets")
    if isinstance(obj, list):
        return [str(item).strip() for item in obj if str(item).strip()]
    lines = []
    for line in content.splitlines():
        if not _LIST_MARKER_RE.match(line):
            continue
        text = _LIST_MARKER_RE.sub("", line).strip()
        if text:
            lines.append(text)
    return lines


def _parse_json_response(content: str) -> Any:
    if not content:
        raise json.JSONDecodeError("Empty content", content or "", 0)
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        extracted = _extract_json_snippet(content)
        return json.loads(extracted)


def _extract_json_snippet(content: str) -> str:
    fence = _extract_fenced_json(content)
    if fence:
        return fence
    start = content.find("{")
    end = content.rfind("}")
    if start == -1 or end == -1 or end <= start:
        raise json.JSONDecodeError("No JSON object found", content, 0)
    return content[start : end + 1]


def _extract_fenced_json(content: str) -> str | None:
    lines = content.splitlines()
    start_idx = None
    for idx, line in enumerate(lines):
        if line.strip().startswith("```") and "json" in line.lower():
            start_idx = idx + 1
            break
    if start_idx is None:
        return None
    for idx in range(start_idx, len(lines)):
        if lines[idx].strip().startswith("```"):
            snippet = "\n".join(lines[start_idx:idx]).strip()
            return snippet or None
    return None
