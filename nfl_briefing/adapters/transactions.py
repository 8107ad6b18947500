"""
Feed-based transactions adapter.

Polls a single transactions feed, then reads each recent article and keeps
the sentence that states the move (plus, when present, a second sentence
with contract or reserve detail).
"""

from __future__ import annotations

import asyncio
from datetime import datetime
import logging
import re

from ..dates import within_window
from ..entities import extract_player_name
from ..errors import ParseError
from ..extractor import extract_article, split_sentences
from ..logging_utils import log_event
from ..rules import ROSTER
from ..teams import find_team
from ..types import NormalizedArticle, RawItem
from ..urls import canonicalize_url, short_source_name, source_domain
from .base import SourceAdapter
from .feeds import parse_feed


logger = logging.getLogger(__name__)

TRANSACTION_PATTERN = re.compile(
    r"\b(?:sign(?:ed|s|ing)?|re-?sign(?:ed|s|ing)?|waive(?:d|s)?|release(?:d|s)?|trade(?:d|s)?|acquire(?:d|s)?"
    r"|claim(?:ed|s)?|activate(?:d|s)?|promote(?:d|s)?|elevate(?:d|s)?|place(?:d|s)? \w+ on (?:ir|injured reserve|the pup list)"
    r"|placed on (?:ir|injured reserve)|designate(?:d|s)? (?:\w+ )?(?:to|for) return|agree(?:d|s)? to|extension|cut)\b",
    re.IGNORECASE,
)

DETAIL_PATTERN = re.compile(
    r"(?:\$[\d,]+(?:\.\d+)?\s*(?:million|M)\b|\b\d+[- ]year\b|\bpractice squad\b|\binjured reserve\b"
    r"|\bfutures (?:contract|deal)\b|\bconditional\b|\bpending (?:a )?physical\b)",
    re.IGNORECASE,
)


def pick_sentences(text: str) -> tuple[str | None, str | None]:
    """Return (transaction sentence, detail sentence) from article text."""
    sentences = split_sentences(text)
    action = next((s for s in sentences if TRANSACTION_PATTERN.search(s)), None)
    if action is None:
        return None, None
    detail = None
    if not DETAIL_PATTERN.search(action):
        detail = next((s for s in sentences if s != action and DETAIL_PATTERN.search(s)), None)
    return action, detail


class TransactionsAdapter(SourceAdapter):
    source_id = "transactions"
    stage = "transactions"

    async def fetch_recent(self, lookback_hours: float, now: datetime | None = None) -> list[NormalizedArticle]:
        now = now or self.now()
        url = self.cfg.sources.transactions_feed_url
        result = await self.fetcher.fetch(url, timeout=self.cfg.fetch.primary_timeout_seconds)
        if not result.ok:
            log_event(
                logger,
                "Transactions feed unavailable",
                level=logging.WARNING,
                event="feed_fetch_failed",
                url=url,
                error=result.error,
            )
            return []
        try:
            items = parse_feed(result.text or "")
        except ParseError as exc:
            log_event(logger, "Transactions feed parse failed", level=logging.WARNING, event="parse_error", url=url, error=str(exc))
            return []

        recent = [
            item
            for item in items
            if item.published is not None and within_window(item.published, now, lookback_hours)
        ]
        recent.sort(key=lambda item: item.published, reverse=True)
        recent = recent[: self.cfg.sources.transactions_max_items]

        tasks = [asyncio.create_task(self._build_article(item)) for item in recent]
        built = await asyncio.gather(*tasks)
        articles = [article for article in built if article is not None]
        log_event(
            logger,
            "Transactions feed parsed",
            event="transactions_parsed",
            entries=len(items),
            recent=len(recent),
            kept=len(articles),
            lookback_hours=lookback_hours,
        )
        return articles

    async def _build_article(self, item: RawItem) -> NormalizedArticle | None:
        try:
            text = item.body
            page = await self.fetcher.fetch(item.url, timeout=self.cfg.fetch.article_timeout_seconds)
            if page.ok:
                extracted = extract_article(page.text or "", self.cfg.extract.primary, self.cfg.extract.fallback)
                if extracted:
                    text = extracted

            action, detail = pick_sentences(text)
            if action is None:
                log_event(logger, "No transaction sentence", level=logging.DEBUG, event="transaction_skipped", url=item.url)
                return None
            team = find_team(item.title) or find_team(action) or find_team(text)
            if team is None:
                log_event(logger, "No team for transaction", level=logging.DEBUG, event="transaction_skipped", url=item.url)
                return None

            source = short_source_name(item.url)
            body = action.rstrip(".") if detail else action
            if detail:
                body = f"{body}; {detail}"
            return NormalizedArticle(
                url=canonicalize_url(item.url),
                source=source,
                domain=source_domain(item.url),
                title=item.title,
                text=text,
                published=item.published,
                stage=self.stage,
                player=extract_player_name(item.title) or extract_player_name(action),
                team=team,
                bullet=f"{team} — {body} ({source})",
                category_hint=ROSTER,
            )
        except Exception as exc:  # noqa: BLE001
            log_event(
                logger,
                "Transaction item failed",
                level=logging.WARNING,
                event="transaction_error",
                url=item.url,
                error=f"{type(exc).__name__}: {exc}",
            )
            return None
