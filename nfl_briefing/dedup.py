"""
Deduplication of classified items and bullet strings.

The mandatory passes (canonical URL, then EntityKey) are pure functions of
their input: seen-sets live only for the duration of one call, so applying
them twice changes nothing. The semantic pass is delegated to the
enhancement collaborator and may be skipped without affecting correctness.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Iterable

from rapidfuzz import fuzz

from .entities import entities_from_bullet
from .formatter import has_citation, split_citation
from .logging_utils import log_event
from .types import ClassifiedItem, EntityKey

if TYPE_CHECKING:
    from .llm.enhancer import BudgetedEnhancer


logger = logging.getLogger(__name__)

_NORMALIZE_RE = re.compile(r"[^a-z0-9 ]+")


def dedupe_by_url(items: list[ClassifiedItem]) -> list[ClassifiedItem]:
    seen: set[str] = set()
    kept: list[ClassifiedItem] = []
    for item in items:
        if item.url in seen:
            continue
        seen.add(item.url)
        kept.append(item)
    return kept


def dedupe_by_entity(items: list[ClassifiedItem]) -> list[ClassifiedItem]:
    """Keep the first item per EntityKey; items without a key always pass."""
    seen: set[EntityKey] = set()
    kept: list[ClassifiedItem] = []
    for item in items:
        key = item.entity_key
        if key is not None:
            if key in seen:
                continue
            seen.add(key)
        kept.append(item)
    return kept


def dedupe(items: list[ClassifiedItem]) -> list[ClassifiedItem]:
    """Mandatory passes: canonical URL, then EntityKey. Input order is preserved."""
    return dedupe_by_entity(dedupe_by_url(items))


def normalize_bullet(bullet: str) -> str:
    body, _ = split_citation(bullet)
    return " ".join(_NORMALIZE_RE.sub(" ", body.lower()).split())


def dedupe_bullets(bullets: list[str], existing_keys: Iterable[EntityKey] = ()) -> list[str]:
    """Apply exact-text and entity passes to plain bullet strings.

    Entity keys are recovered from the bullet text, so this pass is only
    as good as the entity heuristic.
    """
    seen_text: set[str] = set()
    seen_keys: set[EntityKey] = set(existing_keys)
    kept: list[str] = []
    for bullet in bullets:
        text_key = normalize_bullet(bullet)
        if not text_key or text_key in seen_text:
            continue
        player, team = entities_from_bullet(bullet)
        key = EntityKey.build(player, team)
        if key is not None:
            if key in seen_keys:
                continue
            seen_keys.add(key)
        seen_text.add(text_key)
        kept.append(bullet)
    return kept


async def dedupe_semantic(bullets: list[str], enhancer: BudgetedEnhancer | None) -> list[str]:
    """Optional semantic pass; the input stands whenever the collaborator cannot help."""
    if enhancer is None or len(bullets) < 2:
        return bullets
    merged = await enhancer.semantic_dedupe(bullets)
    merged = [bullet for bullet in merged if has_citation(bullet)]
    if not merged:
        log_event(logger, "Semantic dedupe unavailable", level=logging.DEBUG, event="semantic_dedupe_skipped", bullets=len(bullets))
        return bullets
    return merged


def overlaps_existing(
    item: ClassifiedItem,
    chosen_bullets: list[str],
    chosen_urls: set[str],
    chosen_keys: set[EntityKey],
    threshold: int = 85,
) -> bool:
    """True when a breaking item repeats a fact already placed in another category."""
    if item.url in chosen_urls:
        return True
    key = item.entity_key
    if key is not None and key in chosen_keys:
        return True
    return _similar_to_any(item.fact_bullet, chosen_bullets, threshold)


def bullet_overlaps(
    bullet: str,
    chosen_bullets: list[str],
    chosen_keys: set[EntityKey],
    threshold: int = 85,
) -> bool:
    """Plain-string variant of overlaps_existing for generated bullets."""
    key = EntityKey.build(*entities_from_bullet(bullet))
    if key is not None and key in chosen_keys:
        return True
    return _similar_to_any(bullet, chosen_bullets, threshold)


def _similar_to_any(bullet: str, others: list[str], threshold: int) -> bool:
    candidate = normalize_bullet(bullet)
    return any(fuzz.token_set_ratio(candidate, normalize_bullet(other)) >= threshold for other in others)
