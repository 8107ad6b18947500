"""
Rate-limited async HTTP fetching.

RateLimitedFetcher is the only component that talks to source endpoints.
It bounds concurrency with a semaphore shared by every adapter in a run,
retries retryable failures with capped exponential backoff plus jitter,
and never raises: failures come back as FetchResult.error.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
import random
from typing import Awaitable, Callable

import httpx

from .cache import Cache
from .config import FetchConfig
from .errors import FetchError
from .logging_utils import log_event


logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {429, 502, 503, 504}


@dataclass
class FetchResult:
    """Result of an HTTP fetch operation.

    Either text will be populated (success) or error will be populated (failure),
    but never both. status_code may be None for network-level failures.

    Attributes:
        url: The URL that was fetched
        status_code: HTTP status code, or None if request failed before getting response
        text: The response body text, or None on error
        error: Error message if fetch failed, None on success
        error_kind: FetchError kind on failure
        attempts: Number of network attempts made (0 for cache hits)
        from_cache: Whether the body came from the cache collaborator
    """

    url: str
    status_code: int | None
    text: str | None
    error: str | None
    error_kind: str | None = None
    attempts: int = 0
    from_cache: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and self.text is not None


def backoff_delay(
    attempt: int,
    base: float,
    cap: float,
    jitter: float,
    rng: Callable[[float, float], float] = random.uniform,
) -> float:
    """Delay before retry number ``attempt`` (0-based): min(base * 2**attempt, cap) + jitter."""
    return min(base * (2**attempt), cap) + rng(0.0, jitter)


class RateLimitedFetcher:
    """Bounded-concurrency HTTP GET client with retry/backoff.

    Use as an async context manager so the underlying httpx.AsyncClient is
    closed at the end of the run::

        async with RateLimitedFetcher(cfg.fetch) as fetcher:
            result = await fetcher.fetch(url)
    """

    def __init__(
        self,
        cfg: FetchConfig,
        cache: Cache | None = None,
        cache_ttl_minutes: float = 30,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.cfg = cfg
        self.cache = cache
        self.cache_ttl_minutes = cache_ttl_minutes
        self._client = client
        self._owns_client = client is None
        self._sleep = sleep
        self._semaphore = asyncio.Semaphore(max(1, cfg.concurrency))
        self.request_count = 0
        self.in_flight = 0
        self.max_in_flight = 0

    async def __aenter__(self) -> RateLimitedFetcher:
        self._get_client()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": self.cfg.user_agent},
                follow_redirects=True,
                trust_env=self.cfg.trust_env,
            )
        return self._client

    async def fetch(self, url: str, timeout: float | None = None) -> FetchResult:
        """Fetch a URL, retrying retryable failures.

        Args:
            url: The URL to fetch
            timeout: Per-request timeout in seconds; defaults to the article timeout

        Returns:
            FetchResult with text on success or error message on failure
        """
        timeout = timeout if timeout is not None else self.cfg.article_timeout_seconds
        cached = self._cache_get(url)
        if cached is not None:
            log_event(logger, "Fetch cache hit", level=logging.DEBUG, event="fetch_cache_hit", url=url)
            return FetchResult(url=url, status_code=200, text=cached, error=None, from_cache=True)

        last_error: FetchError | None = None
        attempts = 0
        for attempt in range(self.cfg.max_retries + 1):
            attempts += 1
            try:
                status_code, text = await self._attempt(url, timeout, attempts)
            except FetchError as exc:
                last_error = exc
                if not exc.retryable or attempt >= self.cfg.max_retries:
                    break
                delay = backoff_delay(
                    attempt,
                    self.cfg.backoff_base_seconds,
                    self.cfg.backoff_cap_seconds,
                    self.cfg.jitter_seconds,
                )
                log_event(
                    logger,
                    "Fetch retry scheduled",
                    level=logging.DEBUG,
                    event="fetch_retry",
                    url=url,
                    attempt=attempts,
                    error_kind=exc.kind,
                    delay_seconds=round(delay, 3),
                )
                # Backoff happens outside the semaphore so other fetches proceed.
                await self._sleep(delay)
                continue

            self._cache_set(url, text)
            log_event(
                logger,
                "Fetch ok",
                level=logging.DEBUG,
                event="fetch_ok",
                url=url,
                attempt=attempts,
                status_code=status_code,
            )
            return FetchResult(
                url=url,
                status_code=status_code,
                text=text,
                error=None,
                attempts=attempts,
            )

        assert last_error is not None
        log_event(
            logger,
            "Fetch failed",
            level=logging.WARNING,
            event="fetch_failed",
            url=url,
            attempts=attempts,
            error_kind=last_error.kind,
            status_code=last_error.status_code,
            error=str(last_error),
        )
        return FetchResult(
            url=url,
            status_code=last_error.status_code,
            text=None,
            error=str(last_error),
            error_kind=last_error.kind,
            attempts=attempts,
        )

    async def _attempt(self, url: str, timeout: float, attempt: int) -> tuple[int, str]:
        async with self._semaphore:
            self.request_count += 1
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            log_event(
                logger,
                "Fetch attempt",
                level=logging.DEBUG,
                event="fetch_attempt",
                url=url,
                attempt=attempt,
                request_number=self.request_count,
            )
            try:
                resp = await self._get_client().get(url, timeout=timeout)
            except httpx.TimeoutException as exc:
                raise FetchError(f"Timeout: {exc}", kind="timeout", retryable=True) from exc
            except (httpx.NetworkError, httpx.RemoteProtocolError) as exc:
                raise FetchError(f"{type(exc).__name__}: {exc}", kind="connection", retryable=True) from exc
            except httpx.HTTPError as exc:
                raise FetchError(f"{type(exc).__name__}: {exc}", kind="unexpected") from exc
            except Exception as exc:  # noqa: BLE001
                # httpx.InvalidURL and friends sit outside the HTTPError tree.
                raise FetchError(f"{type(exc).__name__}: {exc}", kind="unexpected") from exc
            finally:
                self.in_flight -= 1

        status = resp.status_code
        if status in RETRYABLE_STATUS:
            raise FetchError(f"HTTP {status}", kind="http_status", retryable=True, status_code=status)
        if status >= 400:
            raise FetchError(f"HTTP {status}", kind="http_status", status_code=status)
        try:
            text = resp.text
        except (UnicodeDecodeError, LookupError) as exc:
            raise FetchError(
                f"Undecodable body: {exc}", kind="invalid_response", status_code=status
            ) from exc
        if not text or not text.strip():
            raise FetchError("Empty body", kind="invalid_response", status_code=status)
        return status, text

    def _cache_key(self, url: str) -> str:
        return f"fetch:{url}"

    def _cache_get(self, url: str) -> str | None:
        if self.cache is None:
            return None
        try:
            value = self.cache.get(self._cache_key(url))
        except Exception as exc:  # noqa: BLE001
            log_event(logger, "Cache get failed", level=logging.DEBUG, event="cache_error", url=url, error=str(exc))
            return None
        return value if isinstance(value, str) else None

    def _cache_set(self, url: str, text: str) -> None:
        if self.cache is None:
            return
        try:
            self.cache.set(self._cache_key(url), text, self.cache_ttl_minutes)
        except Exception as exc:  # noqa: BLE001
            log_event(logger, "Cache set failed", level=logging.DEBUG, event="cache_error", url=url, error=str(exc))
