"""
Opportunistic key/value cache with per-entry TTL.

Two backends share the same get/set contract:
- MemoryCache: per-process dict, useful for a single scheduled run
- FileCache: one JSON file per key in a shared directory, keyed by SHA256

Entries are immutable value snapshots; a missed write is equivalent to a
miss next time and a corrupt entry is reported as a miss.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
import time
from typing import Any, Callable, Protocol

from .config import CacheConfig
from .errors import CacheError
from .logging_utils import log_event


logger = logging.getLogger(__name__)


class Cache(Protocol):
    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl_minutes: float) -> None: ...


class MemoryCache:
    """Dict-backed cache; entries expire lazily on read."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._entries: dict[str, tuple[float, Any]] = {}
        self._clock = clock

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    def set(self, key: str, value: Any, ttl_minutes: float) -> None:
        self._entries[key] = (self._clock() + ttl_minutes * 60, value)

    def __len__(self) -> int:
        return len(self._entries)


class FileCache:
    """Directory-backed cache storing one JSON document per key.

    Values must be JSON-serializable. Each file holds the original key,
    the expiry timestamp and the value.
    """

    def __init__(self, cache_dir: Path, clock: Callable[[], float] = time.time):
        self.cache_dir = cache_dir
        self._clock = clock

    def path_for(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.cache_dir / f"{digest}.json"

    def get(self, key: str) -> Any | None:
        try:
            payload = self._read(key)
        except CacheError as exc:
            log_event(logger, "Cache read failed", level=logging.DEBUG, event="cache_error", key=key, error=str(exc))
            return None
        if payload is None:
            return None
        if self._clock() >= payload["expires_at"]:
            return None
        return payload["value"]

    def set(self, key: str, value: Any, ttl_minutes: float) -> None:
        payload = {"key": key, "expires_at": self._clock() + ttl_minutes * 60, "value": value}
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            self.path_for(key).write_text(json.dumps(payload, ensure_ascii=True), encoding="utf-8")
        except (OSError, TypeError, ValueError) as exc:
            log_event(logger, "Cache write failed", level=logging.DEBUG, event="cache_error", key=key, error=str(exc))

    def _read(self, key: str) -> dict[str, Any] | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise CacheError(f"{type(exc).__name__}: {exc}") from exc
        if not isinstance(payload, dict) or payload.get("key") != key or "expires_at" not in payload:
            raise CacheError("malformed cache entry")
        return payload


def build_cache(cfg: CacheConfig) -> Cache | None:
    """Build the configured cache backend, or None when caching is off."""
    if not cfg.enabled or cfg.backend == "none":
        return None
    if cfg.backend == "memory":
        return MemoryCache()
    if cfg.backend == "file":
        return FileCache(Path(cfg.dir))
    raise ValueError(f"Unsupported cache backend: {cfg.backend}. Supported: file, memory, none")
