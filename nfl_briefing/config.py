"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- FetchConfig: HTTP fetching, concurrency and retry settings
- SourcesConfig: Source endpoint URLs and per-adapter item caps
- ExtractConfig: Content extraction settings
- DedupConfig: Deduplication settings
- AggregationConfig: Lookback windows, caps and sparse-retry thresholds
- EnhancementConfig: Budget and input ceilings for the text-generation step
- ProviderConfig: LLM provider settings
- LoggingConfig: Logging behavior
- CacheConfig: Cache backend and TTL settings
- AppConfig: Root configuration container
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from typing import Any

import yaml


# Product thresholds. Treated as given contracts, not tuning knobs.
CATEGORIES = ("injury", "roster", "breaking")
CATEGORY_CAPS = {"injury": 20, "roster": 12, "breaking": 10}
SPARSE_THRESHOLD = 2
BULLET_MAX_CHARS = 320
STALENESS_CEILING_DAYS = 30
NEW_MARKER_HOURS = 6

BASE_LOOKBACK_HOURS = {"morning": 72, "afternoon": 48, "evening": 48, "default": 24}
WIDENED_LOOKBACK_HOURS = {
    "injury": {"morning": 168, "afternoon": 120, "evening": 120, "default": 48},
    "roster": {"morning": 168, "afternoon": 120, "evening": 120, "default": 48},
    "breaking": {"morning": 120, "afternoon": 96, "evening": 96, "default": 48},
}
CATEGORY_ADAPTERS = {
    "injury": ["injury_table", "fulltext"],
    "roster": ["transactions", "fulltext"],
    "breaking": ["fulltext"],
}


@dataclass
class FetchConfig:
    """Configuration for the rate-limited HTTP fetcher.

    Attributes:
        concurrency: Maximum number of simultaneous requests across all adapters
        max_retries: Retry attempts after the first failed attempt (retryable errors only)
        backoff_base_seconds: Delay before the first retry; doubles per attempt
        backoff_cap_seconds: Upper bound for the exponential part of the delay
        jitter_seconds: Upper bound of the uniform random jitter added to each delay
        primary_timeout_seconds: Timeout for the table page and feed endpoints
        article_timeout_seconds: Timeout for individual article pages
        trust_env: Whether to respect system proxy settings
        user_agent: HTTP User-Agent header string
    """

    concurrency: int = 4
    max_retries: int = 3
    backoff_base_seconds: float = 0.5
    backoff_cap_seconds: float = 8.0
    jitter_seconds: float = 0.4
    primary_timeout_seconds: float = 15.0
    article_timeout_seconds: float = 10.0
    trust_env: bool = True
    user_agent: str = "Mozilla/5.0 (compatible; nfl-briefing/0.1; +https://github.com/nfl-briefing)"


@dataclass
class SourcesConfig:
    """Source endpoints polled by the adapters.

    Attributes:
        injury_table_url: Structured injury table page
        transactions_feed_url: Transactions RSS feed
        transactions_max_items: Maximum feed entries examined per poll
        fulltext_feeds: Generic news feeds providing raw material for the classifier
        fulltext_max_items: Maximum articles fetched per poll across all feeds
    """

    injury_table_url: str = "https://www.espn.com/nfl/injuries"
    transactions_feed_url: str = "https://www.profootballrumors.com/category/transactions/feed"
    transactions_max_items: int = 15
    fulltext_feeds: list[str] = field(
        default_factory=lambda: [
            "https://www.espn.com/espn/rss/nfl/news",
            "https://www.nfl.com/rss/rsslanding?searchString=home",
            "https://sports.yahoo.com/nfl/rss.xml",
            "https://www.cbssports.com/rss/headlines/nfl/",
            "https://profootballtalk.nbcsports.com/feed/",
            "https://www.profootballrumors.com/feed",
        ]
    )
    fulltext_max_items: int = 30


@dataclass
class ExtractConfig:
    """Configuration for HTML content extraction.

    Attributes:
        primary: Primary extraction method ("trafilatura", "readability", or "bs4")
        fallback: List of fallback methods to try if primary fails
    """

    primary: str = "trafilatura"
    fallback: list[str] = field(default_factory=lambda: ["readability", "bs4"])


@dataclass
class DedupConfig:
    """Configuration for deduplication.

    Attributes:
        cross_category_threshold: Fuzzy match threshold (0-100) used to keep
            breaking items from repeating an injury or roster bullet
    """

    cross_category_threshold: int = 85


@dataclass
class AggregationConfig:
    """Configuration for the per-category sparse-retry controller.

    Attributes:
        sparse_threshold: A category with fewer bullets than this is sparse
        caps: Maximum bullets per category
        bullet_max_chars: Hard length limit of a single bullet
        base_lookback_hours: Base window per run label
        widened_lookback_hours: Widened window per category and run label
        staleness_days: Hard ceiling for table rows regardless of lookback
        new_marker_hours: Table rows updated within this window get a "new" marker
        timezone: Timezone used to resolve month-day strings
        category_adapters: Adapter ids consulted for each category, in order
    """

    sparse_threshold: int = SPARSE_THRESHOLD
    caps: dict[str, int] = field(default_factory=lambda: dict(CATEGORY_CAPS))
    bullet_max_chars: int = BULLET_MAX_CHARS
    base_lookback_hours: dict[str, int] = field(default_factory=lambda: dict(BASE_LOOKBACK_HOURS))
    widened_lookback_hours: dict[str, dict[str, int]] = field(
        default_factory=lambda: {key: dict(value) for key, value in WIDENED_LOOKBACK_HOURS.items()}
    )
    staleness_days: int = STALENESS_CEILING_DAYS
    new_marker_hours: int = NEW_MARKER_HOURS
    timezone: str = "America/New_York"
    category_adapters: dict[str, list[str]] = field(
        default_factory=lambda: {key: list(value) for key, value in CATEGORY_ADAPTERS.items()}
    )


@dataclass
class EnhancementConfig:
    """Configuration for the optional text-generation enhancement step.

    Attributes:
        enabled: Whether a provider is built at all
        max_calls_per_run: Shared budget of Enhanced transitions per aggregation run
        timeout_seconds: Per-call timeout
        max_excerpts: Maximum excerpts submitted per call
        max_excerpt_chars: Maximum characters per excerpt
        max_title_chars: Maximum characters per excerpt title
        max_output_chars: Maximum characters per generated bullet
        semantic_dedupe: Whether the semantic dedupe pass is attempted
    """

    enabled: bool = True
    max_calls_per_run: int = 3
    timeout_seconds: float = 12.0
    max_excerpts: int = 5
    max_excerpt_chars: int = 700
    max_title_chars: int = 100
    max_output_chars: int = 280
    semantic_dedupe: bool = True


@dataclass
class ProviderConfig:
    """Configuration for LLM provider.

    Attributes:
        name: Provider name ("gemini", "openai", "openai_compatible")
        model: Model identifier
        api_key_env: Environment variable name containing the API key
        base_url: Base URL for the provider API
        api_key: Optional inline API key (overrides env var)
        trust_env: Whether to respect system proxy settings for API requests
        temperature: Sampling temperature
        max_output_tokens: Response token ceiling
    """

    name: str = "gemini"
    model: str = "gemini-2.5-flash"
    api_key_env: str = "GOOGLE_API_KEY"
    base_url: str = "https://generativelanguage.googleapis.com"
    api_key: str | None = None
    trust_env: bool = True
    temperature: float = 0.1
    max_output_tokens: int = 600


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        filename: Name of the main log file
        llm_log_enabled: Whether to enable separate LLM interaction logging
        llm_log_detail: LLM log detail level ("response_only", "prompt_response")
        llm_log_redact_urls: Replace URLs in logged prompts and responses
        llm_log_file: Name of the LLM log file
    """

    level: str = "INFO"
    console: bool = True
    file: bool = False
    format: str = "jsonl"
    filename: str = "run.jsonl"
    llm_log_enabled: bool = True
    llm_log_detail: str = "response_only"
    llm_log_redact_urls: bool = True
    llm_log_file: str = "llm.jsonl"


@dataclass
class CacheConfig:
    """Configuration for the opportunistic fetch cache.

    Attributes:
        enabled: Whether fetched bodies are cached
        backend: "memory" for a per-process cache, "file" for a shared directory, "none"
        dir: Directory used by the file backend
        ttl_minutes: Time-to-live of cache entries
    """

    enabled: bool = True
    backend: str = "memory"
    dir: str = ".cache/nfl_briefing"
    ttl_minutes: int = 30


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    provider: ProviderConfig = field(default_factory=ProviderConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    sources: SourcesConfig = field(default_factory=SourcesConfig)
    extract: ExtractConfig = field(default_factory=ExtractConfig)
    dedup: DedupConfig = field(default_factory=DedupConfig)
    aggregation: AggregationConfig = field(default_factory=AggregationConfig)
    enhancement: EnhancementConfig = field(default_factory=EnhancementConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path:
        return AppConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    return _merge_config(AppConfig(), raw)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig."""
    data = _asdict(base)
    _deep_update(data, {key: value for key, value in raw.items() if key in data})
    return _fromdict(data)


def _deep_update(target: dict[str, Any], overrides: dict[str, Any]) -> None:
    """Merge overrides into target, descending into nested dicts (caps, lookback tables)."""
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _deep_update(target[key], value)
        else:
            target[key] = value


def _asdict(cfg: AppConfig) -> dict[str, Any]:
    """Convert AppConfig to nested dictionary."""
    return {
        "provider": {
            "name": cfg.provider.name,
            "model": cfg.provider.model,
            "api_key_env": cfg.provider.api_key_env,
            "base_url": cfg.provider.base_url,
            "api_key": cfg.provider.api_key,
            "trust_env": cfg.provider.trust_env,
            "temperature": cfg.provider.temperature,
            "max_output_tokens": cfg.provider.max_output_tokens,
        },
        "fetch": {
            "concurrency": cfg.fetch.concurrency,
            "max_retries": cfg.fetch.max_retries,
            "backoff_base_seconds": cfg.fetch.backoff_base_seconds,
            "backoff_cap_seconds": cfg.fetch.backoff_cap_seconds,
            "jitter_seconds": cfg.fetch.jitter_seconds,
            "primary_timeout_seconds": cfg.fetch.primary_timeout_seconds,
            "article_timeout_seconds": cfg.fetch.article_timeout_seconds,
            "trust_env": cfg.fetch.trust_env,
            "user_agent": cfg.fetch.user_agent,
        },
        "sources": {
            "injury_table_url": cfg.sources.injury_table_url,
            "transactions_feed_url": cfg.sources.transactions_feed_url,
            "transactions_max_items": cfg.sources.transactions_max_items,
            "fulltext_feeds": list(cfg.sources.fulltext_feeds),
            "fulltext_max_items": cfg.sources.fulltext_max_items,
        },
        "extract": {
            "primary": cfg.extract.primary,
            "fallback": list(cfg.extract.fallback),
        },
        "dedup": {
            "cross_category_threshold": cfg.dedup.cross_category_threshold,
        },
        "aggregation": {
            "sparse_threshold": cfg.aggregation.sparse_threshold,
            "caps": dict(cfg.aggregation.caps),
            "bullet_max_chars": cfg.aggregation.bullet_max_chars,
            "base_lookback_hours": dict(cfg.aggregation.base_lookback_hours),
            "widened_lookback_hours": {
                key: dict(value) for key, value in cfg.aggregation.widened_lookback_hours.items()
            },
            "staleness_days": cfg.aggregation.staleness_days,
            "new_marker_hours": cfg.aggregation.new_marker_hours,
            "timezone": cfg.aggregation.timezone,
            "category_adapters": {
                key: list(value) for key, value in cfg.aggregation.category_adapters.items()
            },
        },
        "enhancement": {
            "enabled": cfg.enhancement.enabled,
            "max_calls_per_run": cfg.enhancement.max_calls_per_run,
            "timeout_seconds": cfg.enhancement.timeout_seconds,
            "max_excerpts": cfg.enhancement.max_excerpts,
            "max_excerpt_chars": cfg.enhancement.max_excerpt_chars,
            "max_title_chars": cfg.enhancement.max_title_chars,
            "max_output_chars": cfg.enhancement.max_output_chars,
            "semantic_dedupe": cfg.enhancement.semantic_dedupe,
        },
        "logging": {
            "level": cfg.logging.level,
            "console": cfg.logging.console,
            "file": cfg.logging.file,
            "format": cfg.logging.format,
            "filename": cfg.logging.filename,
            "llm_log_enabled": cfg.logging.llm_log_enabled,
            "llm_log_detail": cfg.logging.llm_log_detail,
            "llm_log_redact_urls": cfg.logging.llm_log_redact_urls,
            "llm_log_file": cfg.logging.llm_log_file,
        },
        "cache": {
            "enabled": cfg.cache.enabled,
            "backend": cfg.cache.backend,
            "dir": cfg.cache.dir,
            "ttl_minutes": cfg.cache.ttl_minutes,
        },
    }


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    return AppConfig(
        provider=ProviderConfig(**data["provider"]),
        fetch=FetchConfig(**data["fetch"]),
        sources=SourcesConfig(**data["sources"]),
        extract=ExtractConfig(**data["extract"]),
        dedup=DedupConfig(**data["dedup"]),
        aggregation=AggregationConfig(**data["aggregation"]),
        enhancement=EnhancementConfig(**data["enhancement"]),
        logging=LoggingConfig(**data["logging"]),
        cache=CacheConfig(**data["cache"]),
    )


def get_api_key(cfg: ProviderConfig) -> str | None:
    """Get API key from inline config or environment variable."""
    if cfg.api_key:
        return cfg.api_key
    return os.getenv(cfg.api_key_env)


def base_lookback_for(cfg: AggregationConfig, run_label: str) -> int:
    """Return the base lookback window for a run label."""
    table = cfg.base_lookback_hours
    return int(table.get(run_label, table.get("default", 24)))


def widened_lookback_for(cfg: AggregationConfig, category: str, run_label: str, base_hours: int) -> int:
    """Return the widened lookback for a category; always larger than the base window."""
    table = cfg.widened_lookback_hours.get(category, {})
    configured = int(table.get(run_label, table.get("default", 48)))
    return max(configured, base_hours * 2)
