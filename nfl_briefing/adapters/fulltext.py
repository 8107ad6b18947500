"""
Generic full-text feed adapter.

Shared raw material for the classifier: polls every configured feed,
keeps recent entries that pass the quality heuristic, and returns the
cleaned article bodies. No classification or formatting happens here.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
import logging
from urllib.parse import urljoin

from ..dates import within_window
from ..entities import extract_entities
from ..errors import ParseError
from ..extractor import extract_article, find_canonical_url
from ..logging_utils import log_event
from ..types import NormalizedArticle, RawItem
from ..urls import canonicalize_url, short_source_name, source_domain
from .base import SourceAdapter
from .feeds import is_quality_entry, parse_feed


logger = logging.getLogger(__name__)


class FullTextFeedAdapter(SourceAdapter):
    source_id = "fulltext"
    stage = "feed"

    async def fetch_recent(self, lookback_hours: float, now: datetime | None = None) -> list[NormalizedArticle]:
        now = now or self.now()
        feeds = list(self.cfg.sources.fulltext_feeds)
        polled = await asyncio.gather(*(self._poll_feed(url) for url in feeds))

        staleness = self.cfg.aggregation.staleness_days
        candidates: dict[str, RawItem] = {}
        rejected = 0
        for items in polled:
            for item in items:
                if item.published is None or not within_window(item.published, now, lookback_hours):
                    continue
                if not is_quality_entry(item, lookback_hours, now, staleness):
                    rejected += 1
                    continue
                key = canonicalize_url(item.url)
                if key not in candidates:
                    candidates[key] = item

        ordered = sorted(candidates.values(), key=lambda item: (item.published, item.url), reverse=True)
        ordered = ordered[: self.cfg.sources.fulltext_max_items]

        tasks = [asyncio.create_task(self._build_article(item)) for item in ordered]
        built = await asyncio.gather(*tasks)

        articles: list[NormalizedArticle] = []
        seen: set[str] = set()
        for article in built:
            if article is None or article.url in seen:
                continue
            seen.add(article.url)
            articles.append(article)

        log_event(
            logger,
            "Full-text feeds polled",
            event="fulltext_polled",
            feeds=len(feeds),
            candidates=len(candidates),
            quality_rejected=rejected,
            kept=len(articles),
            lookback_hours=lookback_hours,
        )
        return articles

    async def _poll_feed(self, url: str) -> list[RawItem]:
        result = await self.fetcher.fetch(url, timeout=self.cfg.fetch.primary_timeout_seconds)
        if not result.ok:
            log_event(logger, "Feed unavailable", level=logging.WARNING, event="feed_fetch_failed", url=url, error=result.error)
            return []
        try:
            return parse_feed(result.text or "")
        except ParseError as exc:
            log_event(logger, "Feed parse failed", level=logging.WARNING, event="parse_error", url=url, error=str(exc))
            return []

    async def _build_article(self, item: RawItem) -> NormalizedArticle | None:
        try:
            page = await self.fetcher.fetch(item.url, timeout=self.cfg.fetch.article_timeout_seconds)
            if not page.ok:
                return None
            html = page.text or ""
            text = extract_article(html, self.cfg.extract.primary, self.cfg.extract.fallback)
            if not text:
                log_event(logger, "No readable content", level=logging.DEBUG, event="article_empty", url=item.url)
                return None
            url = canonicalize_url(urljoin(item.url, find_canonical_url(html) or item.url))
            player, team = extract_entities(text[:600], item.title)
            return NormalizedArticle(
                url=url,
                source=short_source_name(url),
                domain=source_domain(url),
                title=item.title,
                text=text,
                published=item.published,
                stage=self.stage,
                player=player,
                team=team,
            )
        except Exception as exc:  # noqa: BLE001
            log_event(
                logger,
                "Article build failed",
                level=logging.WARNING,
                event="article_error",
                url=item.url,
                error=f"{type(exc).__name__}: {exc}",
            )
            return None
