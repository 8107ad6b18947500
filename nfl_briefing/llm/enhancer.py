"""
Bounded wrapper around an enhancement provider.

BudgetedEnhancer is what the aggregator talks to. It truncates inputs,
bounds every call with a timeout, normalizes outputs, and turns every
failure into an empty list so the caller's fallback path is uniform. The
per-run call budget itself lives on AggregationRun.
"""

from __future__ import annotations

import asyncio
import logging
import re

from ..config import EnhancementConfig
from ..errors import EnhancementError
from ..extractor import clean_text
from ..formatter import format_bullet, split_citation
from ..logging_utils import log_event
from ..types import Excerpt
from .base import EnhancementProvider


logger = logging.getLogger(__name__)

MIN_EXCERPT_CHARS = 20
SEMANTIC_DEDUPE_MIN_BULLETS = 4
SEMANTIC_DEDUPE_MAX_BULLETS = 15

_URL_RE = re.compile(r"https?://\S+")
_BYLINE_RE = re.compile(r"^\s*By\s+[A-Z][\w.'-]+(?:\s+[A-Z][\w.'-]+){0,2}\s*[,|]")
_SENTENCE_END_RE = re.compile(r"[.!?](?=\s|$)")


def truncate_excerpt(text: str, max_chars: int) -> str:
    """Trim to ``max_chars``, preferring a sentence boundary past the halfway mark."""
    text = " ".join(text.split())
    if len(text) <= max_chars:
        return text
    cut = text[:max_chars]
    ends = [match.end() for match in _SENTENCE_END_RE.finditer(cut)]
    if ends and ends[-1] >= max_chars // 2:
        return cut[: ends[-1]].strip()
    space = cut.rfind(" ", 0, max_chars - 3)
    if space > 0:
        cut = cut[:space]
    else:
        cut = cut[: max_chars - 3]
    return cut.rstrip(" ,;:") + "..."


class BudgetedEnhancer:
    """Timeout-bounded, input-bounded, never-raising enhancement client."""

    def __init__(self, provider: EnhancementProvider, cfg: EnhancementConfig):
        self.provider = provider
        self.cfg = cfg
        self.calls = 0
        self.failures = 0

    def prepare_excerpts(self, excerpts: list[Excerpt]) -> list[Excerpt]:
        prepared: list[Excerpt] = []
        for excerpt in excerpts:
            text = truncate_excerpt(clean_text(excerpt.text), self.cfg.max_excerpt_chars)
            if len(text) <= MIN_EXCERPT_CHARS:
                continue
            title = " ".join(excerpt.title.split())[: self.cfg.max_title_chars]
            prepared.append(Excerpt(source=excerpt.source, title=title, text=text, url=excerpt.url))
            if len(prepared) >= self.cfg.max_excerpts:
                break
        return prepared

    async def summarize(
        self,
        category: str,
        excerpts: list[Excerpt],
        date_iso: str,
        other_context: list[str] | None = None,
    ) -> list[str]:
        prepared = self.prepare_excerpts(excerpts)
        if not prepared:
            return []
        context = list(other_context or [])[:SEMANTIC_DEDUPE_MAX_BULLETS]
        raw = await self._call(
            "summarize",
            self.provider.summarize(category, prepared, date_iso, context or None),
            category=category,
            excerpts=len(prepared),
        )
        return self.enforce_format(raw)

    async def semantic_dedupe(self, bullets: list[str]) -> list[str]:
        if not self.cfg.semantic_dedupe or len(bullets) < SEMANTIC_DEDUPE_MIN_BULLETS:
            return list(bullets)
        head = bullets[:SEMANTIC_DEDUPE_MAX_BULLETS]
        tail = bullets[SEMANTIC_DEDUPE_MAX_BULLETS:]
        merged = await self._call(
            "semantic_dedupe",
            self.provider.semantic_dedupe(head),
            bullets=len(head),
        )
        merged = self.enforce_format(merged)
        if not merged:
            return []
        return merged + tail

    def enforce_format(self, bullets: list[str]) -> list[str]:
        """Strip URLs and bylines, drop uncited bullets, apply the length limit."""
        kept: list[str] = []
        for bullet in bullets:
            text = _URL_RE.sub("", bullet)
            text = _BYLINE_RE.sub("", text)
            text = " ".join(text.split())
            body, source = split_citation(text)
            if source is None or len(body) < MIN_EXCERPT_CHARS:
                continue
            kept.append(format_bullet(body, source, self.cfg.max_output_chars))
        return kept

    async def _call(self, operation: str, coro, **fields) -> list[str]:
        self.calls += 1
        try:
            result = await asyncio.wait_for(coro, timeout=self.cfg.timeout_seconds)
        except asyncio.TimeoutError:
            self.failures += 1
            log_event(
                logger,
                "Enhancement timed out",
                level=logging.WARNING,
                event="enhancement_timeout",
                operation=operation,
                timeout_seconds=self.cfg.timeout_seconds,
                **fields,
            )
            return []
        except EnhancementError as exc:
            self.failures += 1
            log_event(
                logger,
                "Enhancement failed",
                level=logging.WARNING,
                event="enhancement_error",
                operation=operation,
                error=str(exc),
                **fields,
            )
            return []
        except Exception as exc:  # noqa: BLE001
            self.failures += 1
            log_event(
                logger,
                "Enhancement failed",
                level=logging.WARNING,
                event="enhancement_error",
                operation=operation,
                error=f"{type(exc).__name__}: {exc}",
                **fields,
            )
            return []
        log_event(logger, "Enhancement ok", event="enhancement_ok", operation=operation, returned=len(result), **fields)
        return list(result)
