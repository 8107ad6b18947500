"""Source adapters and their registry.

Adapters are resolved once per run from ``ADAPTER_REGISTRY``; the
aggregator looks them up by id from ``AggregationConfig.category_adapters``.
"""

from __future__ import annotations

from ..config import AppConfig
from ..fetcher import RateLimitedFetcher
from .base import SourceAdapter
from .fulltext import FullTextFeedAdapter
from .injury_table import InjuryTableAdapter
from .transactions import TransactionsAdapter


AdapterBuilder = type[SourceAdapter]

ADAPTER_REGISTRY: dict[str, AdapterBuilder] = {
    InjuryTableAdapter.source_id: InjuryTableAdapter,
    TransactionsAdapter.source_id: TransactionsAdapter,
    FullTextFeedAdapter.source_id: FullTextFeedAdapter,
}


def available_adapters() -> list[str]:
    return sorted(ADAPTER_REGISTRY.keys())


def build_adapters(cfg: AppConfig, fetcher: RateLimitedFetcher) -> dict[str, SourceAdapter]:
    """Instantiate every adapter referenced by the category configuration."""
    wanted: list[str] = []
    for ids in cfg.aggregation.category_adapters.values():
        for adapter_id in ids:
            if adapter_id not in wanted:
                wanted.append(adapter_id)
    adapters: dict[str, SourceAdapter] = {}
    for adapter_id in wanted:
        builder = ADAPTER_REGISTRY.get(adapter_id)
        if builder is None:
            supported = ", ".join(available_adapters())
            raise ValueError(f"Unsupported adapter: {adapter_id}. Supported: {supported}")
        adapters[adapter_id] = builder(cfg, fetcher)
    return adapters


__all__ = [
    "ADAPTER_REGISTRY",
    "FullTextFeedAdapter",
    "InjuryTableAdapter",
    "SourceAdapter",
    "TransactionsAdapter",
    "available_adapters",
    "build_adapters",
]
