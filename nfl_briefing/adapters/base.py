"""Abstract interface for source adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from ..config import AppConfig
from ..dates import resolve_timezone
from ..fetcher import RateLimitedFetcher
from ..types import NormalizedArticle


class SourceAdapter(ABC):
    """Converts one source's raw bytes into NormalizedArticle records.

    Implementations must not raise for network or parse problems: a failed
    feed, row or article is logged and skipped, and the adapter returns
    whatever it could normalize (possibly nothing).
    """

    source_id: str = ""
    stage: str = "feed"

    def __init__(self, cfg: AppConfig, fetcher: RateLimitedFetcher):
        self.cfg = cfg
        self.fetcher = fetcher
        self.tz = resolve_timezone(cfg.aggregation.timezone)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    @abstractmethod
    async def fetch_recent(
        self,
        lookback_hours: float,
        now: datetime | None = None,
    ) -> list[NormalizedArticle]:
        """Return articles published or updated within the lookback window."""
        raise NotImplementedError
