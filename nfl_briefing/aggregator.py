"""
Per-category sparse-retry aggregation.

For each category the controller walks Base -> Widened -> Enhanced -> Final:

- Base: run the category's adapters at the run's base lookback, classify,
  sort by recency and apply the mandatory dedup passes.
- Widened: when Base is sparse, re-run at a larger lookback and keep
  whichever pass produced more items.
- Enhanced: when still sparse and the shared per-run budget allows, ask the
  enhancement collaborator for extra bullets from the gathered excerpts and
  merge them ahead of the rule-based ones.
- Final: cap, count overflow and stamp provenance.

Injury and roster run concurrently; breaking runs last so it can skip facts
already placed in the other two. Every failure degrades to an empty
CategoryResult for that category.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
import logging

from .adapters import SourceAdapter, build_adapters
from .cache import Cache, build_cache
from .classifier import Classifier
from .config import AppConfig, base_lookback_for, widened_lookback_for
from .dates import resolve_timezone
from .dedup import bullet_overlaps, dedupe, dedupe_bullets, dedupe_semantic, overlaps_existing
from .entities import entities_from_bullet
from .fetcher import RateLimitedFetcher
from .formatter import finalize
from .llm import BudgetedEnhancer, create_provider
from .logging_utils import log_event
from .rules import BREAKING, INJURY, ROSTER
from .types import (
    CategorizedResults,
    CategoryResult,
    ClassifiedItem,
    EntityKey,
    Excerpt,
    NormalizedArticle,
)

logger = logging.getLogger(__name__)


@dataclass
class AggregationRun:
    """Per-invocation context. Created per call, never shared between calls.

    Attributes:
        run_label: Schedule slot ("morning", "afternoon", "evening")
        base_lookback_hours: Lookback used by every Base pass
        now: Reference time for every window computation in this run
        enhancement_budget: Remaining Enhanced transitions for the whole run
        fallbacks_used: Human-readable log of adopted fallbacks
        article_pool: Adapter results memoized per (adapter id, lookback)
    """

    run_label: str
    base_lookback_hours: int
    now: datetime
    enhancement_budget: int = 0
    fallbacks_used: list[str] = field(default_factory=list)
    article_pool: dict[tuple[str, int], asyncio.Task] = field(default_factory=dict)

    def try_consume_enhancement(self) -> bool:
        if self.enhancement_budget <= 0:
            return False
        self.enhancement_budget -= 1
        return True


@dataclass
class CrossCategoryContext:
    """Facts already placed under injury/roster, visible to the breaking path only."""

    bullets: list[str] = field(default_factory=list)
    urls: set[str] = field(default_factory=set)
    keys: set[EntityKey] = field(default_factory=set)

    def add(self, items: list[ClassifiedItem], bullets: list[str]) -> None:
        for item in items:
            self.urls.add(item.url)
            if item.entity_key is not None:
                self.keys.add(item.entity_key)
        for bullet in bullets:
            self.bullets.append(bullet)
            key = EntityKey.build(*entities_from_bullet(bullet))
            if key is not None:
                self.keys.add(key)


@dataclass
class _Outcome:
    result: CategoryResult
    items: list[ClassifiedItem]


class CategoryAggregator:
    def __init__(
        self,
        cfg: AppConfig,
        adapters: dict[str, SourceAdapter],
        classifier: Classifier | None = None,
        enhancer: BudgetedEnhancer | None = None,
    ):
        self.cfg = cfg
        self.adapters = adapters
        self.classifier = classifier or Classifier(cfg.aggregation.bullet_max_chars)
        self.enhancer = enhancer

    async def aggregate(self, run: AggregationRun) -> CategorizedResults:
        injury, roster = await asyncio.gather(
            self._safe_category(run, INJURY, None),
            self._safe_category(run, ROSTER, None),
        )
        context = CrossCategoryContext()
        context.add(injury.items, injury.result.bullets)
        context.add(roster.items, roster.result.bullets)
        breaking = await self._safe_category(run, BREAKING, context)
        return CategorizedResults(
            injury=injury.result,
            roster=roster.result,
            breaking=breaking.result,
            fallbacks_used=list(run.fallbacks_used),
        )

    async def _safe_category(
        self,
        run: AggregationRun,
        category: str,
        context: CrossCategoryContext | None,
    ) -> _Outcome:
        try:
            return await self._aggregate_category(run, category, context)
        except Exception as exc:  # noqa: BLE001
            log_event(
                logger,
                "Category degraded to empty result",
                level=logging.WARNING,
                event="category_degraded",
                category=category,
                error=f"{type(exc).__name__}: {exc}",
            )
            return _Outcome(result=CategoryResult(), items=[])

    async def _aggregate_category(
        self,
        run: AggregationRun,
        category: str,
        context: CrossCategoryContext | None,
    ) -> _Outcome:
        agg = self.cfg.aggregation
        cap = agg.caps.get(category, 10)

        lookback = run.base_lookback_hours
        adopted_lookback = lookback
        items = await self._run_pass(run, category, lookback, context)
        log_event(logger, "Base pass", event="base_pass", category=category, lookback_hours=lookback, items=len(items))

        if len(items) < agg.sparse_threshold:
            lookback = widened_lookback_for(agg, category, run.run_label, run.base_lookback_hours)
            widened = await self._run_pass(run, category, lookback, context)
            log_event(
                logger,
                "Widened pass",
                event="widened_pass",
                category=category,
                lookback_hours=lookback,
                base_items=len(items),
                widened_items=len(widened),
            )
            if len(widened) > len(items):
                items = widened
                adopted_lookback = lookback
                run.fallbacks_used.append(f"{category}: expanded to {lookback}h")

        bullets = [item.fact_bullet for item in items]
        stages = {item.article.stage for item in items}

        if len(bullets) < agg.sparse_threshold and self.enhancer is not None:
            # Excerpts come from the widest window searched; the log names the adopted one.
            enhanced = await self._enhance(run, category, lookback, bullets, context)
            if enhanced is not None:
                bullets = enhanced
                stages.add("enhancement")
                run.fallbacks_used.append(f"{category}: expanded to {adopted_lookback}h + enhancement")

        result = finalize(bullets, cap, stages)
        log_event(
            logger,
            "Category finalized",
            event="category_final",
            category=category,
            bullets=len(result.bullets),
            total_count=result.total_count,
            overflow=result.overflow,
            source=result.source,
        )
        return _Outcome(result=result, items=items)

    async def _run_pass(
        self,
        run: AggregationRun,
        category: str,
        lookback_hours: int,
        context: CrossCategoryContext | None,
    ) -> list[ClassifiedItem]:
        articles = await self._collect(run, category, lookback_hours)
        classified: list[ClassifiedItem] = []
        for article in articles:
            item = self.classifier.classify(article)
            if item is None or item.category != category:
                continue
            if context is not None and overlaps_existing(
                item,
                context.bullets,
                context.urls,
                context.keys,
                self.cfg.dedup.cross_category_threshold,
            ):
                continue
            classified.append(item)
        classified.sort(key=_recency_key)
        return dedupe(classified)

    async def _collect(self, run: AggregationRun, category: str, lookback_hours: int) -> list[NormalizedArticle]:
        adapter_ids = self.cfg.aggregation.category_adapters.get(category, [])
        tasks = [self._pooled(run, adapter_id, lookback_hours) for adapter_id in adapter_ids]
        results = await asyncio.gather(*tasks)
        articles: list[NormalizedArticle] = []
        for batch in results:
            articles.extend(batch)
        return articles

    def _pooled(self, run: AggregationRun, adapter_id: str, lookback_hours: int) -> asyncio.Task:
        key = (adapter_id, lookback_hours)
        task = run.article_pool.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch_adapter(run, adapter_id, lookback_hours))
            run.article_pool[key] = task
        return task

    async def _fetch_adapter(self, run: AggregationRun, adapter_id: str, lookback_hours: int) -> list[NormalizedArticle]:
        adapter = self.adapters.get(adapter_id)
        if adapter is None:
            log_event(logger, "Adapter not configured", level=logging.WARNING, event="adapter_missing", adapter=adapter_id)
            return []
        try:
            return await adapter.fetch_recent(lookback_hours, now=run.now)
        except Exception as exc:  # noqa: BLE001
            log_event(
                logger,
                "Adapter failed",
                level=logging.WARNING,
                event="adapter_error",
                adapter=adapter_id,
                lookback_hours=lookback_hours,
                error=f"{type(exc).__name__}: {exc}",
            )
            return []

    async def _enhance(
        self,
        run: AggregationRun,
        category: str,
        lookback_hours: int,
        rule_bullets: list[str],
        context: CrossCategoryContext | None,
    ) -> list[str] | None:
        """Return the merged bullet list, or None when enhancement contributed nothing."""
        assert self.enhancer is not None
        excerpts = await self._excerpts(run, category, lookback_hours)
        if not excerpts:
            log_event(logger, "No excerpts for enhancement", event="enhancement_skipped", category=category)
            return None
        if not run.try_consume_enhancement():
            log_event(logger, "Enhancement budget exhausted", event="enhancement_budget_exhausted", category=category)
            return None

        other_context = list(context.bullets) if context is not None else None
        generated = await self.enhancer.summarize(
            category,
            excerpts,
            run.now.date().isoformat(),
            other_context,
        )
        if context is not None:
            threshold = self.cfg.dedup.cross_category_threshold
            generated = [
                bullet
                for bullet in generated
                if not bullet_overlaps(bullet, context.bullets, context.keys, threshold)
            ]
        if not generated:
            return None

        merged = dedupe_bullets(generated + rule_bullets)
        merged = await dedupe_semantic(merged, self.enhancer)
        if len(merged) <= len(rule_bullets):
            return None
        return merged

    async def _excerpts(self, run: AggregationRun, category: str, lookback_hours: int) -> list[Excerpt]:
        articles = await self._collect(run, category, lookback_hours)
        candidates = [article for article in articles if self.classifier.is_candidate(article, category)]
        candidates.sort(key=lambda article: (-_timestamp(article), article.url))
        seen: set[str] = set()
        excerpts: list[Excerpt] = []
        for article in candidates:
            if article.url in seen:
                continue
            seen.add(article.url)
            excerpts.append(Excerpt(source=article.source, title=article.title, text=article.text, url=article.url))
            if len(excerpts) >= self.cfg.enhancement.max_excerpts * 2:
                break
        return excerpts


def _timestamp(article: NormalizedArticle) -> float:
    return article.published.timestamp() if article.published else 0.0


def _recency_key(item: ClassifiedItem) -> tuple[float, str]:
    return (-_timestamp(item.article), item.url)


def build_enhancer(cfg: AppConfig, llm_logger: logging.Logger | None = None) -> BudgetedEnhancer | None:
    """Build the enhancement client from config; None when disabled or misconfigured."""
    if not cfg.enhancement.enabled or cfg.enhancement.max_calls_per_run <= 0:
        return None
    try:
        provider = create_provider(cfg.provider, cfg.logging, llm_logger)
    except ValueError as exc:
        log_event(logger, "Enhancement disabled", level=logging.WARNING, event="enhancement_disabled", error=str(exc))
        return None
    return BudgetedEnhancer(provider, cfg.enhancement)


async def get_categorized_results(
    lookback_hours_override: int | None = None,
    run_label: str = "morning",
    cfg: AppConfig | None = None,
    enhancer: BudgetedEnhancer | None = None,
    cache: Cache | None = None,
    now: datetime | None = None,
    fetcher: RateLimitedFetcher | None = None,
    adapters: dict[str, SourceAdapter] | None = None,
) -> CategorizedResults:
    """Run one aggregation and return injury, roster and breaking results.

    Args:
        lookback_hours_override: Replaces the run label's base lookback
        run_label: Schedule slot selecting base and widened lookbacks
        cfg: Configuration; defaults to AppConfig()
        enhancer: Optional enhancement client; without it no Enhanced state is reached
        cache: Cache collaborator for fetched bodies; built from cfg.cache when omitted
        now: Reference time; defaults to the current time in the configured timezone
        fetcher: Shared fetcher; one is created (and closed) for the run when omitted
        adapters: Adapter table; built from the registry when omitted

    Returns:
        CategorizedResults. Source, network and enhancement failures never
        propagate; they degrade the affected category instead.
    """
    cfg = cfg or AppConfig()
    tz = resolve_timezone(cfg.aggregation.timezone)
    now = now or datetime.now(tz)
    base_lookback = (
        int(lookback_hours_override)
        if lookback_hours_override
        else base_lookback_for(cfg.aggregation, run_label)
    )
    run = AggregationRun(
        run_label=run_label,
        base_lookback_hours=base_lookback,
        now=now,
        enhancement_budget=cfg.enhancement.max_calls_per_run if enhancer is not None else 0,
    )
    log_event(
        logger,
        "Aggregation started",
        event="aggregation_start",
        run_label=run_label,
        base_lookback_hours=base_lookback,
        enhancement_budget=run.enhancement_budget,
    )

    owns_fetcher = fetcher is None
    if fetcher is None:
        if cache is None:
            cache = build_cache(cfg.cache)
        fetcher = RateLimitedFetcher(cfg.fetch, cache=cache, cache_ttl_minutes=cfg.cache.ttl_minutes)
    try:
        table = adapters if adapters is not None else build_adapters(cfg, fetcher)
        aggregator = CategoryAggregator(cfg, table, enhancer=enhancer)
        results = await aggregator.aggregate(run)
    finally:
        if owns_fetcher:
            await fetcher.aclose()

    log_event(
        logger,
        "Aggregation finished",
        event="aggregation_done",
        injury=len(results.injury.bullets),
        roster=len(results.roster.bullets),
        breaking=len(results.breaking.bullets),
        fallbacks_used=results.fallbacks_used,
        requests=fetcher.request_count,
    )
    return results


def run_aggregation(
    lookback_hours_override: int | None = None,
    run_label: str = "morning",
    cfg: AppConfig | None = None,
    enhancer: BudgetedEnhancer | None = None,
) -> CategorizedResults:
    """Synchronous wrapper around get_categorized_results."""
    return asyncio.run(
        get_categorized_results(
            lookback_hours_override=lookback_hours_override,
            run_label=run_label,
            cfg=cfg,
            enhancer=enhancer,
        )
    )
