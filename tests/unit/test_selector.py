"""Unit tests for bounded random-probe proxy selection."""

from __future__ import annotations

import random
from unittest.mock import AsyncMock

import pytest

from conftest import make_proxy, scripted_rng
from proxy_scraper.middleware.error_handler import NoUsableProxyError, RateLimitExhaustedError
from proxy_scraper.proxy.pool import ProxyPool
from proxy_scraper.proxy.selector import ProxySelector


def _limiter(limited: set[str] | None = None) -> AsyncMock:
    """Limiter mock reporting the given identities as over quota."""
    limited = limited or set()
    limiter = AsyncMock()
    limiter.is_limited.side_effect = lambda proxy: proxy.identity in limited
    return limiter


class TestSelectProxy:
    @pytest.mark.asyncio
    async def test_returns_first_unlimited_candidate(self, proxy_a, proxy_b) -> None:
        pool = ProxyPool([proxy_a, proxy_b])
        limiter = _limiter({proxy_a.identity})
        selector = ProxySelector(pool, limiter, rng=scripted_rng([0, 1]))

        assert await selector.select_proxy() is proxy_b
        assert limiter.is_limited.await_count == 2

    @pytest.mark.asyncio
    async def test_single_limited_proxy_raises_exhausted(self, proxy_a) -> None:
        pool = ProxyPool([proxy_a])
        limiter = _limiter({proxy_a.identity})
        selector = ProxySelector(pool, limiter)

        with pytest.raises(RateLimitExhaustedError, match="rate limit on all proxies"):
            await selector.select_proxy()
        limiter.record_request.assert_not_called()

    @pytest.mark.asyncio
    async def test_probe_budget_is_pool_size(self, pool) -> None:
        limiter = _limiter({p.identity for p in pool.all()})
        selector = ProxySelector(pool, limiter, rng=random.Random(7))

        with pytest.raises(RateLimitExhaustedError):
            await selector.select_proxy()
        assert limiter.is_limited.await_count == pool.size()

    @pytest.mark.asyncio
    async def test_bounded_probe_can_miss_a_free_proxy(self, proxy_a, proxy_b, proxy_c) -> None:
        pool = ProxyPool([proxy_a, proxy_b, proxy_c])
        limiter = _limiter({proxy_a.identity, proxy_b.identity})
        # Three draws, none of which lands on the free proxy at index 2.
        selector = ProxySelector(pool, limiter, rng=scripted_rng([0, 1, 0]))

        with pytest.raises(RateLimitExhaustedError):
            await selector.select_proxy()

    @pytest.mark.asyncio
    async def test_skips_excluded_without_backend_read(self, proxy_a, proxy_b) -> None:
        pool = ProxyPool([proxy_a, proxy_b])
        limiter = _limiter()
        selector = ProxySelector(pool, limiter, rng=scripted_rng([0, 1]))

        selected = await selector.select_proxy(excluding={proxy_a.identity})

        assert selected is proxy_b
        limiter.is_limited.assert_awaited_once_with(proxy_b)

    @pytest.mark.asyncio
    async def test_all_draws_excluded_raises_no_usable_proxy(self, proxy_a, proxy_b) -> None:
        pool = ProxyPool([proxy_a, proxy_b])
        limiter = _limiter()
        selector = ProxySelector(pool, limiter, rng=scripted_rng([0]))

        with pytest.raises(NoUsableProxyError):
            await selector.select_proxy(excluding={proxy_a.identity})
        limiter.is_limited.assert_not_called()

    @pytest.mark.asyncio
    async def test_excluded_and_limited_mix_reports_rate_limit(self, proxy_a, proxy_b) -> None:
        pool = ProxyPool([proxy_a, proxy_b])
        limiter = _limiter({proxy_b.identity})
        selector = ProxySelector(pool, limiter, rng=scripted_rng([0, 1]))

        with pytest.raises(RateLimitExhaustedError):
            await selector.select_proxy(excluding={proxy_a.identity})

    @pytest.mark.asyncio
    async def test_never_returns_excluded_or_limited(self) -> None:
        proxies = [make_proxy(f"203.0.113.{i}", 8080) for i in range(1, 11)]
        pool = ProxyPool(proxies)
        excluded = {proxies[0].identity, proxies[1].identity}
        limited = {proxies[2].identity, proxies[3].identity}
        selector = ProxySelector(pool, _limiter(limited), rng=random.Random(1234))

        for _ in range(50):
            try:
                proxy = await selector.select_proxy(excluding=excluded)
            except (RateLimitExhaustedError, NoUsableProxyError):
                continue
            assert proxy.identity not in excluded
            assert proxy.identity not in limited

    @pytest.mark.asyncio
    async def test_draws_are_uniform_over_pool(self, rate_limiter) -> None:
        proxies = [make_proxy(f"203.0.113.{i}", 8080, requests_per_second=10_000) for i in range(1, 5)]
        selector = ProxySelector(ProxyPool(proxies), rate_limiter, rng=random.Random(42))

        counts = {p.identity: 0 for p in proxies}
        for _ in range(400):
            counts[(await selector.select_proxy()).identity] += 1

        assert all(count > 50 for count in counts.values())
