"""Tests for the deduplication passes."""

import asyncio

from nfl_briefing.dedup import (
    bullet_overlaps,
    dedupe,
    dedupe_bullets,
    dedupe_by_entity,
    dedupe_by_url,
    dedupe_semantic,
    overlaps_existing,
)
from nfl_briefing.types import ClassifiedItem, EntityKey, NormalizedArticle


def _item(url, bullet, player=None, team=None, category="injury"):
    article = NormalizedArticle(url=url, source="ESPN", domain="espn.com", title="t", text="x")
    return ClassifiedItem(article=article, category=category, fact_bullet=bullet, player=player, team=team)


class _DummyEnhancer:
    def __init__(self, result):
        self.result = result
        self.calls = 0

    async def semantic_dedupe(self, bullets):
        self.calls += 1
        return list(self.result)


def test_dedupe_by_url_keeps_first():
    items = [_item("https://a", "one (ESPN)"), _item("https://a", "two (ESPN)"), _item("https://b", "three (ESPN)")]
    assert [item.fact_bullet for item in dedupe_by_url(items)] == ["one (ESPN)", "three (ESPN)"]


def test_dedupe_by_entity_keeps_first_and_passes_unkeyed():
    items = [
        _item("https://a", "Stafford limited (ESPN)", "Matthew Stafford", "LAR"),
        _item("https://b", "Stafford full (PFT)", "Matthew Stafford", "LAR"),
        _item("https://c", "Unkeyed one (ESPN)"),
        _item("https://d", "Unkeyed two (ESPN)"),
    ]
    kept = dedupe_by_entity(items)
    assert [item.url for item in kept] == ["https://a", "https://c", "https://d"]


def test_dedupe_is_idempotent_and_order_preserving():
    items = [
        _item("https://a", "A (ESPN)", "Player One", "DET"),
        _item("https://a", "A again (ESPN)", "Player Two", "DET"),
        _item("https://b", "B (ESPN)", "Player One", "DET"),
        _item("https://c", "C (ESPN)", "Player Three", "GB"),
    ]
    once = dedupe(items)
    assert [item.url for item in once] == ["https://a", "https://c"]
    assert dedupe(once) == once
    # Calls do not share state.
    assert dedupe(items) == once


def test_dedupe_bullets_text_and_entity_passes():
    bullets = [
        "Matthew Stafford (LAR) — Limited (back issue) · Updated Aug 14 (ESPN)",
        "Matthew Stafford (LAR) — Full · Updated Aug 15 (PFT)",
        "The Bears signed John Doe on Monday (ESPN)",
        "the bears signed john doe on monday (Yahoo)",
    ]
    kept = dedupe_bullets(bullets)
    assert kept == [bullets[0], bullets[2]]
    assert dedupe_bullets(kept) == kept
    assert dedupe_bullets(bullets, existing_keys=[EntityKey("matthew stafford", "LAR")]) == [bullets[2]]


def test_semantic_pass_falls_back_to_input():
    bullets = ["A thing happened today (ESPN)", "Another thing happened (PFT)"]
    assert asyncio.run(dedupe_semantic(bullets, None)) == bullets
    assert asyncio.run(dedupe_semantic(bullets, _DummyEnhancer([]))) == bullets
    assert asyncio.run(dedupe_semantic(bullets, _DummyEnhancer(["merged without citation"]))) == bullets
    merged = asyncio.run(dedupe_semantic(bullets, _DummyEnhancer(["Two things happened today (ESPN)"])))
    assert merged == ["Two things happened today (ESPN)"]


def test_overlaps_existing_by_url_entity_and_text():
    chosen = ["CLE — Browns announced quarterback John Doe will start Sunday (PFR)"]
    by_url = _item("https://a", "Totally different (ESPN)", category="breaking")
    assert overlaps_existing(by_url, chosen, {"https://a"}, set())

    by_key = _item("https://b", "Different words (ESPN)", "Matthew Stafford", "LAR", category="breaking")
    assert overlaps_existing(by_key, chosen, set(), {EntityKey("matthew stafford", "LAR")})

    by_text = _item("https://c", "Browns announced that quarterback John Doe will start Sunday (ESPN)", category="breaking")
    assert overlaps_existing(by_text, chosen, set(), set())

    fresh = _item("https://d", "Giants hired a new special teams coordinator (ESPN)", category="breaking")
    assert not overlaps_existing(fresh, chosen, set(), set())


def test_bullet_overlaps_uses_recovered_entity():
    keys = {EntityKey("matthew stafford", "LAR")}
    assert bullet_overlaps("Matthew Stafford (LAR) — Back tightness kept him out (ESPN)", [], keys)
    assert not bullet_overlaps("Jordan Love (GB) — Thumb (ESPN)", [], keys)
