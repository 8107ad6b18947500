"""
Output formatting: bullet normalization, category caps and provenance.
"""

from __future__ import annotations

import re

from .config import BULLET_MAX_CHARS
from .types import CategoryResult


STAGE_ORDER = ("table", "transactions", "feed", "enhancement")

_CITATION_RE = re.compile(r"\s*\(([^()]{1,40})\)\s*$")
_BULLET_PREFIX_RE = re.compile(r"^\s*(?:[-*•·]+|\d+[.)])\s+")
_URL_RE = re.compile(r"https?://\S+")


def split_citation(bullet: str) -> tuple[str, str | None]:
    """Split "Body text (ESPN)" into ("Body text", "ESPN")."""
    match = _CITATION_RE.search(bullet)
    if not match:
        return bullet.strip(), None
    return bullet[: match.start()].rstrip(), match.group(1).strip()


def has_citation(bullet: str) -> bool:
    return split_citation(bullet)[1] is not None


def format_bullet(body: str, source: str | None = None, max_chars: int = BULLET_MAX_CHARS) -> str:
    """Normalize one bullet and guarantee it ends with a source citation.

    When ``source`` is None the bullet must already carry a trailing
    "(SOURCE)". The body is whitespace-collapsed, stripped of list markers
    and URLs, and truncated at a word boundary so the whole line, citation
    included, fits in ``max_chars``.
    """
    text = _URL_RE.sub("", body)
    text = _BULLET_PREFIX_RE.sub("", " ".join(text.split()))
    if source is None:
        text, source = split_citation(text)
        if source is None:
            raise ValueError(f"bullet has no source citation: {body!r}")
    citation = f" ({source})"

    text = text.rstrip(" ;,")
    if text and text[0].islower():
        text = text[0].upper() + text[1:]

    room = max_chars - len(citation)
    if len(text) > room:
        text = _truncate(text, room)
    return f"{text}{citation}"


def _truncate(text: str, limit: int) -> str:
    cut = text[: limit - 3]
    last_space = cut.rfind(" ")
    if last_space > limit * 0.75:
        cut = cut[:last_space]
    return cut.rstrip(" ,;:—-") + "..."


def source_label(stages: list[str] | set[str]) -> str:
    """Join contributing stage labels in pipeline order, or "None"."""
    ordered = [stage for stage in STAGE_ORDER if stage in stages]
    return " + ".join(ordered) if ordered else "None"


def finalize(bullets: list[str], cap: int, stages: list[str] | set[str]) -> CategoryResult:
    """Cap the bullet list and stamp overflow and provenance."""
    total = len(bullets)
    kept = list(bullets[:cap])
    return CategoryResult(
        bullets=kept,
        total_count=total,
        overflow=max(0, total - cap),
        source=source_label(stages) if kept else "None",
    )
