"""Tests for the rate-limited fetcher (retry, backoff, concurrency, cache)."""

import asyncio

import httpx

from nfl_briefing.cache import MemoryCache
from nfl_briefing.config import FetchConfig
from nfl_briefing.fetcher import RateLimitedFetcher, backoff_delay


class _Sleeps:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def _run(handler, urls, cfg=None, cache=None):
    sleeps = _Sleeps()

    async def _go():
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        fetcher = RateLimitedFetcher(cfg or FetchConfig(), cache=cache, client=client, sleep=sleeps)
        try:
            results = [await fetcher.fetch(url) for url in urls]
        finally:
            await client.aclose()
        return fetcher, results

    fetcher, results = asyncio.run(_go())
    return fetcher, results, sleeps.delays


def test_backoff_delay_doubles_and_caps():
    no_jitter = lambda lo, hi: 0.0  # noqa: E731
    assert backoff_delay(0, 0.5, 8.0, 0.4, rng=no_jitter) == 0.5
    assert backoff_delay(1, 0.5, 8.0, 0.4, rng=no_jitter) == 1.0
    assert backoff_delay(2, 0.5, 8.0, 0.4, rng=no_jitter) == 2.0
    assert backoff_delay(10, 0.5, 8.0, 0.4, rng=no_jitter) == 8.0
    assert backoff_delay(10, 0.5, 8.0, 0.4, rng=lambda lo, hi: hi) == 8.4


def test_retries_503_then_succeeds():
    calls = []

    def handler(request):
        calls.append(request.url)
        if len(calls) < 3:
            return httpx.Response(503)
        return httpx.Response(200, text="<rss>ok</rss>")

    _, results, delays = _run(handler, ["https://example.com/feed"])
    result = results[0]
    assert result.ok
    assert result.text == "<rss>ok</rss>"
    assert result.attempts == 3
    assert len(delays) == 2
    assert all(0.5 <= delay <= 8.4 for delay in delays)


def test_does_not_retry_404():
    calls = []

    def handler(request):
        calls.append(request.url)
        return httpx.Response(404, text="missing")

    _, results, delays = _run(handler, ["https://example.com/missing"])
    result = results[0]
    assert not result.ok
    assert result.status_code == 404
    assert result.error_kind == "http_status"
    assert result.attempts == 1
    assert len(calls) == 1
    assert delays == []


def test_malformed_url_is_reported_not_raised():
    def handler(request):
        return httpx.Response(200, text="<rss></rss>")

    bad = "https://exa mple.com/\x00feed"
    _, results, delays = _run(handler, [bad, "https://example.com/feed"])
    broken, fine = results
    assert not broken.ok
    assert broken.error_kind == "unexpected"
    assert broken.attempts == 1
    assert fine.ok
    assert delays == []


def test_gives_up_after_max_retries():
    def handler(request):
        return httpx.Response(429)

    _, results, delays = _run(handler, ["https://example.com/busy"], cfg=FetchConfig(max_retries=3))
    assert not results[0].ok
    assert results[0].attempts == 4
    assert len(delays) == 3


def test_timeout_is_retryable():
    calls = []

    def handler(request):
        calls.append(request.url)
        if len(calls) == 1:
            raise httpx.ReadTimeout("slow", request=request)
        return httpx.Response(200, text="fine")

    _, results, _ = _run(handler, ["https://example.com/slow"])
    assert results[0].ok
    assert results[0].attempts == 2


def test_empty_body_is_invalid_response():
    def handler(request):
        return httpx.Response(200, text="   ")

    _, results, delays = _run(handler, ["https://example.com/empty"])
    assert results[0].error_kind == "invalid_response"
    assert delays == []


def test_cache_hit_skips_network():
    calls = []

    def handler(request):
        calls.append(request.url)
        return httpx.Response(200, text="body")

    cache = MemoryCache()
    fetcher, results, _ = _run(handler, ["https://example.com/a", "https://example.com/a"], cache=cache)
    assert len(calls) == 1
    assert fetcher.request_count == 1
    assert not results[0].from_cache
    assert results[1].from_cache
    assert results[1].text == "body"


def test_concurrency_is_bounded():
    async def handler(request):
        await asyncio.sleep(0.01)
        return httpx.Response(200, text="ok")

    async def _go():
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        fetcher = RateLimitedFetcher(FetchConfig(concurrency=4), client=client)
        try:
            urls = [f"https://example.com/{idx}" for idx in range(12)]
            results = await asyncio.gather(*(fetcher.fetch(url) for url in urls))
        finally:
            await client.aclose()
        return fetcher, results

    fetcher, results = asyncio.run(_go())
    assert all(result.ok for result in results)
    assert fetcher.request_count == 12
    assert 1 <= fetcher.max_in_flight <= 4
    assert fetcher.in_flight == 0
