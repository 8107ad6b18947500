"""Tests for the budgeted enhancement wrapper."""

import asyncio

from nfl_briefing.config import EnhancementConfig
from nfl_briefing.errors import EnhancementError
from nfl_briefing.llm.enhancer import BudgetedEnhancer, truncate_excerpt
from nfl_briefing.types import Excerpt


class _DummyProvider:
    def __init__(self, bullets=None, delay=0.0, error=None):
        self.bullets = bullets or []
        self.delay = delay
        self.error = error
        self.summarize_calls = []
        self.dedupe_calls = []

    async def summarize(self, category, excerpts, date_iso, other_context=None):
        self.summarize_calls.append((category, excerpts, date_iso, other_context))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return list(self.bullets)

    async def semantic_dedupe(self, bullets):
        self.dedupe_calls.append(list(bullets))
        if self.error:
            raise self.error
        return list(self.bullets)


def _excerpt(idx, text=None):
    return Excerpt(
        source="ESPN",
        title=f"Headline {idx}",
        text=text or f"Jalen Hurts was limited in practice on day {idx} with a knee issue.",
        url=f"https://www.espn.com/{idx}",
    )


def test_summarize_returns_formatted_bullets():
    provider = _DummyProvider(
        [
            "By John Smith, Lions placed Jameson Williams on IR https://example.com/a (ESPN)",
            "No citation on this one even though it is long enough",
            "Short (ESPN)",
        ]
    )
    enhancer = BudgetedEnhancer(provider, EnhancementConfig())
    result = asyncio.run(enhancer.summarize("injury", [_excerpt(1)], "2025-08-16", ["Other bullet (PFR)"]))
    assert result == ["Lions placed Jameson Williams on IR (ESPN)"]
    category, excerpts, date_iso, other = provider.summarize_calls[0]
    assert category == "injury"
    assert date_iso == "2025-08-16"
    assert other == ["Other bullet (PFR)"]
    assert enhancer.calls == 1
    assert enhancer.failures == 0


def test_summarize_timeout_returns_empty():
    provider = _DummyProvider(["Something (ESPN)"], delay=1.0)
    enhancer = BudgetedEnhancer(provider, EnhancementConfig(timeout_seconds=0.01))
    assert asyncio.run(enhancer.summarize("injury", [_excerpt(1)], "2025-08-16")) == []
    assert enhancer.failures == 1


def test_summarize_provider_error_returns_empty():
    provider = _DummyProvider(error=EnhancementError("quota"))
    enhancer = BudgetedEnhancer(provider, EnhancementConfig())
    assert asyncio.run(enhancer.summarize("roster", [_excerpt(1)], "2025-08-16")) == []
    provider = _DummyProvider(error=RuntimeError("boom"))
    enhancer = BudgetedEnhancer(provider, EnhancementConfig())
    assert asyncio.run(enhancer.summarize("roster", [_excerpt(1)], "2025-08-16")) == []


def test_summarize_without_usable_excerpts_skips_provider():
    provider = _DummyProvider(["Something happened today (ESPN)"])
    enhancer = BudgetedEnhancer(provider, EnhancementConfig())
    assert asyncio.run(enhancer.summarize("injury", [_excerpt(1, text="tiny")], "2025-08-16")) == []
    assert provider.summarize_calls == []
    assert enhancer.calls == 0


def test_prepare_excerpts_bounds_inputs():
    cfg = EnhancementConfig(max_excerpts=5, max_excerpt_chars=700, max_title_chars=20)
    enhancer = BudgetedEnhancer(_DummyProvider(), cfg)
    long_text = "Jalen Hurts was limited in practice with a knee issue. " * 60
    excerpts = [_excerpt(idx, long_text) for idx in range(8)]
    excerpts[0].title = "A very long headline that keeps going and going"
    prepared = enhancer.prepare_excerpts(excerpts)
    assert len(prepared) == 5
    assert all(len(excerpt.text) <= 700 for excerpt in prepared)
    assert len(prepared[0].title) == 20


def test_truncate_excerpt_prefers_sentence_boundary():
    text = "First sentence is here. Second sentence is a little longer than the first. Third one."
    assert truncate_excerpt(text, 80) == "First sentence is here. Second sentence is a little longer than the first."
    assert truncate_excerpt("short text", 80) == "short text"
    clipped = truncate_excerpt("word " * 50, 40)
    assert clipped.endswith("...")
    assert len(clipped) <= 40


def test_enforce_format_applies_output_limit():
    enhancer = BudgetedEnhancer(_DummyProvider(), EnhancementConfig(max_output_chars=280))
    bullets = enhancer.enforce_format(["word " * 100 + "(ESPN)"])
    assert len(bullets) == 1
    assert len(bullets[0]) <= 280
    assert bullets[0].endswith("(ESPN)")


def test_semantic_dedupe_skips_small_lists_and_appends_tail():
    provider = _DummyProvider(["Merged fact about the Lions roster (ESPN)"])
    enhancer = BudgetedEnhancer(provider, EnhancementConfig())
    few = ["One fact (ESPN)", "Two fact (ESPN)", "Three fact (ESPN)"]
    assert asyncio.run(enhancer.semantic_dedupe(few)) == few
    assert provider.dedupe_calls == []

    many = [f"Distinct fact number {idx} (ESPN)" for idx in range(17)]
    merged = asyncio.run(enhancer.semantic_dedupe(many))
    assert provider.dedupe_calls == [many[:15]]
    assert merged == ["Merged fact about the Lions roster (ESPN)"] + many[15:]


def test_semantic_dedupe_disabled_or_failing():
    many = [f"Distinct fact number {idx} (ESPN)" for idx in range(5)]
    disabled = BudgetedEnhancer(_DummyProvider(["x (ESPN)"]), EnhancementConfig(semantic_dedupe=False))
    assert asyncio.run(disabled.semantic_dedupe(many)) == many
    failing = BudgetedEnhancer(_DummyProvider(error=EnhancementError("bad")), EnhancementConfig())
    assert asyncio.run(failing.semantic_dedupe(many)) == []
