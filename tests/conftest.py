"""Shared test fixtures and hypothesis strategies for the scraper test suite."""

from __future__ import annotations

import asyncio
import itertools
import os
from collections.abc import Callable, Iterable
from unittest.mock import MagicMock

import fakeredis
import httpx
import pytest
from hypothesis import strategies as st

from proxy_scraper.config.settings import ScraperSettings
from proxy_scraper.proxy.pool import ProxyPool
from proxy_scraper.proxy.types import Proxy
from proxy_scraper.resilience.counter_backend import RedisCounterBackend
from proxy_scraper.resilience.rate_limiter import ProxyRateLimiter


# ---------------------------------------------------------------------------
# Keep the test environment isolated from the developer's SCRAPER_* vars
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _set_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Run every test with the ``test`` environment and no stray overrides."""
    for key in list(os.environ):
        if key.startswith("SCRAPER_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("SCRAPER_ENVIRONMENT", "test")


# ---------------------------------------------------------------------------
# Settings fixture
# ---------------------------------------------------------------------------

@pytest.fixture
def settings() -> ScraperSettings:
    """Test settings with no backoff delay."""
    return ScraperSettings(
        environment="test",
        retry_base_delay_seconds=0,
        request_timeout_seconds=2.0,
    )


# ---------------------------------------------------------------------------
# Proxy helpers
# ---------------------------------------------------------------------------

def make_proxy(
    host: str = "203.0.113.1",
    port: int = 8080,
    *,
    requests_per_second: float = 1,
    https: bool = True,
    country_code: str = "US",
) -> Proxy:
    return Proxy(
        host=host,
        port=port,
        country_code=country_code,
        anonymity="elite proxy",
        https=https,
        requests_per_second=requests_per_second,
    )


def scripted_rng(indexes: Iterable[int]) -> MagicMock:
    """A stand-in for ``random.Random`` whose ``randrange`` cycles *indexes*."""
    rng = MagicMock()
    rng.randrange.side_effect = itertools.cycle(list(indexes))
    return rng


def client_factory_for(
    outcomes: dict[str, httpx.Response | Exception],
    used: list[Proxy],
) -> Callable[[Proxy, float], httpx.AsyncClient]:
    """Build a fetcher client factory backed by ``httpx.MockTransport``.

    ``outcomes`` maps a proxy identity to the response it returns or the
    exception it raises; every proxy handed to the factory is appended to
    ``used``.
    """

    def factory(proxy: Proxy, timeout_seconds: float) -> httpx.AsyncClient:
        used.append(proxy)
        outcome = outcomes[proxy.identity]

        def handler(request: httpx.Request) -> httpx.Response:
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory


def html_response(status_code: int = 200, body: str = "<html><body>ok</body></html>") -> httpx.Response:
    return httpx.Response(
        status_code,
        text=body,
        headers={"content-type": "text/html"},
    )


@pytest.fixture
def proxy_a() -> Proxy:
    return make_proxy("203.0.113.10", 8080, country_code="US")


@pytest.fixture
def proxy_b() -> Proxy:
    return make_proxy("203.0.113.20", 3128, country_code="CA")


@pytest.fixture
def proxy_c() -> Proxy:
    return make_proxy("198.51.100.30", 80, https=False, country_code="DE")


@pytest.fixture
def pool(proxy_a: Proxy, proxy_b: Proxy, proxy_c: Proxy) -> ProxyPool:
    return ProxyPool([proxy_a, proxy_b, proxy_c])


# ---------------------------------------------------------------------------
# Redis fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_redis() -> fakeredis.FakeAsyncRedis:
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)


class StalledRedis:
    """Redis client whose commands hang, like one retrying against a dead server."""

    async def get(self, key: str) -> None:
        await asyncio.sleep(3600)

    async def ping(self) -> bool:
        await asyncio.sleep(3600)
        return True

    def pipeline(self, transaction: bool = True) -> _StalledPipeline:
        return _StalledPipeline()


class _StalledPipeline:
    async def __aenter__(self) -> _StalledPipeline:
        return self

    async def __aexit__(self, *exc_info) -> None:
        return None

    def incr(self, key: str) -> None:
        pass

    def expire(self, key: str, ttl_seconds: int) -> None:
        pass

    async def execute(self) -> list:
        await asyncio.sleep(3600)
        return []


@pytest.fixture
def counter_backend(fake_redis: fakeredis.FakeAsyncRedis) -> RedisCounterBackend:
    return RedisCounterBackend(fake_redis)


@pytest.fixture
def rate_limiter(counter_backend: RedisCounterBackend) -> ProxyRateLimiter:
    return ProxyRateLimiter(counter_backend)


# ---------------------------------------------------------------------------
# Hypothesis strategies (reusable across property tests)
# ---------------------------------------------------------------------------

hosts = st.from_regex(r"(198\.51\.100|203\.0\.113)\.[1-9][0-9]?", fullmatch=True)
ports = st.integers(min_value=1, max_value=65535)
quotas = st.integers(min_value=1, max_value=5)

# Lists of 1-8 proxies with unique identities
proxy_lists = st.lists(
    st.builds(
        make_proxy,
        hosts,
        ports,
        requests_per_second=quotas,
    ),
    min_size=1,
    max_size=8,
    unique_by=lambda p: p.identity,
)

target_urls = st.from_regex(
    r"https://[a-z]{3,10}\.[a-z]{2,4}/[a-z0-9]{1,10}", fullmatch=True
)
