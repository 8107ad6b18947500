"""Tests for the per-category sparse-retry aggregation controller."""

import asyncio
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from nfl_briefing.aggregator import AggregationRun, CategoryAggregator, get_categorized_results
from nfl_briefing.classifier import Classifier
from nfl_briefing.config import AppConfig, EnhancementConfig
from nfl_briefing.dates import within_window
from nfl_briefing.errors import EnhancementError
from nfl_briefing.llm.enhancer import BudgetedEnhancer
from nfl_briefing.types import NormalizedArticle
from nfl_briefing.urls import short_source_name, source_domain

ET = ZoneInfo("America/New_York")
NOW = datetime(2025, 8, 16, 9, 0, tzinfo=ET)


class _FakeAdapter:
    def __init__(self, articles=None, error=None):
        self.articles = articles or []
        self.error = error
        self.calls = []

    async def fetch_recent(self, lookback_hours, now=None):
        self.calls.append(lookback_hours)
        if self.error:
            raise self.error
        return [article for article in self.articles if within_window(article.published, now, lookback_hours)]


class _DummyProvider:
    def __init__(self, bullets=None, error=None):
        self.bullets = bullets or []
        self.error = error
        self.summarize_calls = []

    async def summarize(self, category, excerpts, date_iso, other_context=None):
        self.summarize_calls.append(category)
        if self.error:
            raise self.error
        return list(self.bullets)

    async def semantic_dedupe(self, bullets):
        return list(bullets)


def _table(player, team, hours_ago, status="Out", note="knee"):
    slug = player.lower().replace(" ", "-")
    return NormalizedArticle(
        url=f"https://www.espn.com/nfl/player/_/id/{slug}",
        source="ESPN",
        domain="espn.com",
        title=f"{player} ({team}) {status}",
        text=f"{player} {status}. {note}",
        published=NOW - timedelta(hours=hours_ago),
        stage="table",
        player=player,
        team=team,
        bullet=f"{player} ({team}) — {status} ({note}) (ESPN)",
        category_hint="injury",
    )


def _move(team, player, sentence, hours_ago):
    slug = player.lower().replace(" ", "-")
    return NormalizedArticle(
        url=f"https://www.profootballrumors.com/2025/08/{slug}",
        source="PFR",
        domain="profootballrumors.com",
        title=sentence,
        text=sentence,
        published=NOW - timedelta(hours=hours_ago),
        stage="transactions",
        player=player,
        team=team,
        bullet=f"{team} — {sentence} (PFR)",
        category_hint="roster",
    )


def _story(url, title, text, hours_ago):
    return NormalizedArticle(
        url=url,
        source=short_source_name(url),
        domain=source_domain(url),
        title=title,
        text=text,
        published=NOW - timedelta(hours=hours_ago),
        stage="feed",
    )


def _adapters(table=(), moves=(), stories=()):
    return {
        "injury_table": _FakeAdapter(list(table)),
        "transactions": _FakeAdapter(list(moves)),
        "fulltext": _FakeAdapter(list(stories)),
    }


def _run(adapters, cfg=None, enhancer=None, **kwargs):
    return asyncio.run(
        get_categorized_results(
            run_label="morning",
            cfg=cfg or AppConfig(),
            enhancer=enhancer,
            now=NOW,
            adapters=adapters,
            **kwargs,
        )
    )


def test_results_respect_category_caps():
    table = [_table(f"Runner{idx} Example", "DET", hours_ago=idx) for idx in range(25)]
    results = _run(_adapters(table=table))

    assert len(results.injury.bullets) == 20
    assert results.injury.total_count == 25
    assert results.injury.overflow == 5
    assert results.injury.source == "table"
    assert results.injury.bullets[0].startswith("Runner0 Example (DET)")
    assert results.roster.bullets == []
    assert results.roster.source == "None"
    assert results.breaking.source == "None"
    assert results.fallbacks_used == []


def test_sparse_category_widens_lookback_once():
    table = [_table(f"Runner{idx} Example", "DET", hours_ago=idx + 1) for idx in range(3)]
    moves = [
        _move("BUF", "John Doe", "The Bills waived linebacker John Doe on Thursday.", hours_ago=10),
        _move("DAL", "Tyler Example", "The Cowboys signed receiver Tyler Example.", hours_ago=100),
    ]
    adapters = _adapters(table=table, moves=moves)
    results = _run(adapters)

    assert results.fallbacks_used == ["roster: expanded to 168h"]
    assert results.roster.bullets == [
        "BUF — The Bills waived linebacker John Doe on Thursday. (PFR)",
        "DAL — The Cowboys signed receiver Tyler Example. (PFR)",
    ]
    assert results.roster.source == "transactions"
    assert len(results.injury.bullets) == 3
    assert adapters["injury_table"].calls == [72]
    assert sorted(adapters["transactions"].calls) == [72, 168]
    # Adapter results are shared across categories within a run.
    assert sorted(adapters["fulltext"].calls) == [72, 120, 168]


def test_lookback_override_replaces_base_window():
    adapters = _adapters(table=[_table("Runner Example", "DET", hours_ago=1)])
    _run(adapters, lookback_hours_override=12)
    assert adapters["injury_table"].calls == [12, 168]


def test_zero_budget_never_enhances():
    cfg = AppConfig()
    cfg.enhancement.max_calls_per_run = 0
    provider = _DummyProvider(["Lions receiver Jameson Williams (DET) — Left practice early (ESPN)"])
    enhancer = BudgetedEnhancer(provider, cfg.enhancement)
    moves = [_move("DAL", "Tyler Example", "The Cowboys signed receiver Tyler Example.", hours_ago=100)]

    results = _run(_adapters(moves=moves), cfg=cfg, enhancer=enhancer)

    assert provider.summarize_calls == []
    assert results.fallbacks_used == ["roster: expanded to 168h"]
    assert not any("+ enhancement" in entry for entry in results.fallbacks_used)
    assert results.roster.source == "transactions"


def test_enhancement_merges_generated_bullets_first():
    provider = _DummyProvider(["Lions receiver Jameson Williams (DET) — Left practice with a hamstring injury (ESPN)"])
    enhancer = BudgetedEnhancer(provider, EnhancementConfig())
    table = [_table("Matthew Stafford", "LAR", hours_ago=2, status="Limited", note="back issue")]

    results = _run(_adapters(table=table), enhancer=enhancer)

    assert results.injury.bullets == [
        "Lions receiver Jameson Williams (DET) — Left practice with a hamstring injury (ESPN)",
        "Matthew Stafford (LAR) — Limited (back issue) (ESPN)",
    ]
    assert results.injury.source == "table + enhancement"
    # The widened pass found nothing new, so the entry names the base window.
    assert results.fallbacks_used == ["injury: expanded to 72h + enhancement"]
    # Categories without excerpts do not spend the budget.
    assert provider.summarize_calls == ["injury"]


def test_enhancement_after_adopted_widening_names_widened_window():
    provider = _DummyProvider(["NYJ — The Jets signed kicker Sam Example to the practice squad (PFR)"])
    enhancer = BudgetedEnhancer(provider, EnhancementConfig())
    moves = [_move("DAL", "Tyler Example", "The Cowboys signed receiver Tyler Example.", hours_ago=100)]

    results = _run(_adapters(moves=moves), enhancer=enhancer)

    assert results.roster.bullets == [
        "NYJ — The Jets signed kicker Sam Example to the practice squad (PFR)",
        "DAL — The Cowboys signed receiver Tyler Example. (PFR)",
    ]
    assert results.roster.source == "transactions + enhancement"
    assert results.fallbacks_used == [
        "roster: expanded to 168h",
        "roster: expanded to 168h + enhancement",
    ]
    assert provider.summarize_calls == ["roster"]


def test_enhancement_failure_keeps_rule_based_output():
    provider = _DummyProvider(error=EnhancementError("quota exceeded"))
    enhancer = BudgetedEnhancer(provider, EnhancementConfig())
    table = [_table("Matthew Stafford", "LAR", hours_ago=2, status="Limited", note="back issue")]

    results = _run(_adapters(table=table), enhancer=enhancer)

    assert results.injury.bullets == ["Matthew Stafford (LAR) — Limited (back issue) (ESPN)"]
    assert results.injury.source == "table"
    assert results.fallbacks_used == []


def test_breaking_skips_facts_already_reported():
    table = [_table("Matthew Stafford", "LAR", hours_ago=2, status="Limited", note="back issue")]
    stories = [
        _story(
            "https://www.espn.com/nfl/story/_/id/1/rams",
            "Rams name starter",
            "The Rams officially announced that Matthew Stafford will start Sunday.",
            hours_ago=2,
        ),
        _story(
            "https://www.espn.com/nfl/story/_/id/2/browns",
            "Browns name starter",
            "The Browns officially announced that Joe Flacco will start Sunday.",
            hours_ago=3,
        ),
        _story(
            "https://www.espn.com/nfl/story/_/id/3/bears",
            "Bears name starter",
            "The Bears officially announced that Caleb Williams will start Sunday.",
            hours_ago=4,
        ),
    ]
    results = _run(_adapters(table=table, stories=stories))

    assert results.breaking.bullets == [
        "The Browns officially announced that Joe Flacco will start Sunday. (ESPN)",
        "The Bears officially announced that Caleb Williams will start Sunday. (ESPN)",
    ]
    assert results.breaking.source == "feed"
    assert not any("Stafford" in bullet for bullet in results.breaking.bullets)


def test_failing_adapter_is_treated_as_empty():
    stories = [
        _story(
            "https://www.espn.com/nfl/story/_/id/4/hurts",
            "Hurts limited",
            "Jalen Hurts was limited in practice with a knee issue on Thursday.",
            hours_ago=5,
        ),
        _story(
            "https://www.espn.com/nfl/story/_/id/5/barkley",
            "Barkley sits",
            "Saquon Barkley was held out of practice Wednesday with an ankle injury.",
            hours_ago=6,
        ),
    ]
    adapters = _adapters(stories=stories)
    adapters["injury_table"] = _FakeAdapter(error=RuntimeError("layout changed"))

    results = _run(adapters)

    assert len(results.injury.bullets) == 2
    assert results.injury.source == "feed"
    assert results.injury.bullets[0].startswith("Jalen Hurts")


class _BoomClassifier(Classifier):
    def classify(self, article):
        if article.category_hint == "injury":
            raise RuntimeError("classifier bug")
        return super().classify(article)


def test_category_exception_degrades_to_empty_result():
    cfg = AppConfig()
    adapters = _adapters(
        table=[_table("Matthew Stafford", "LAR", hours_ago=2)],
        moves=[
            _move("BUF", "John Doe", "The Bills waived linebacker John Doe on Thursday.", hours_ago=10),
            _move("DAL", "Tyler Example", "The Cowboys signed receiver Tyler Example.", hours_ago=12),
        ],
    )
    aggregator = CategoryAggregator(cfg, adapters, classifier=_BoomClassifier())
    run = AggregationRun(run_label="morning", base_lookback_hours=72, now=NOW)

    results = asyncio.run(aggregator.aggregate(run))

    assert results.injury.bullets == []
    assert results.injury.total_count == 0
    assert results.injury.source == "None"
    assert len(results.roster.bullets) == 2
    assert results.roster.source == "transactions"


def test_run_budget_is_consumed_once_per_call():
    run = AggregationRun(run_label="morning", base_lookback_hours=72, now=NOW, enhancement_budget=2)
    assert run.try_consume_enhancement()
    assert run.try_consume_enhancement()
    assert not run.try_consume_enhancement()
    assert run.enhancement_budget == 0
