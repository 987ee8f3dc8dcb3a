"""Retrying fetcher: fetches one URL through rotating proxies.

Each call walks the same loop: select proxy (excluding ones already tried) →
charge quota → GET through the proxy → on failure back off and retry with a
different proxy. Quota is charged before the request, so a failed attempt
still counts against the proxy.

Only ``RateLimitExhaustedError`` and ``FetchExhaustedError`` escape ``fetch``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx

from proxy_scraper.middleware.error_handler import (
    FetchExhaustedError,
    FetchFailedError,
    NoUsableProxyError,
)
from proxy_scraper.models.results import ScrapeResult
from proxy_scraper.proxy.selector import ProxySelector
from proxy_scraper.proxy.types import Proxy
from proxy_scraper.resilience.rate_limiter import ProxyRateLimiter

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
}

ClientFactory = Callable[[Proxy, float], httpx.AsyncClient]


def collect_headers(headers: httpx.Headers) -> dict[str, str | list[str]]:
    """Flatten response headers without merging repeats like ``set-cookie``."""
    collected: dict[str, str | list[str]] = {}
    for name, value in headers.multi_items():
        existing = collected.get(name)
        if existing is None:
            collected[name] = value
        elif isinstance(existing, list):
            existing.append(value)
        else:
            collected[name] = [existing, value]
    return collected


def build_proxy_client(proxy: Proxy, timeout_seconds: float) -> httpx.AsyncClient:
    """Create an httpx client that tunnels every request through *proxy*."""
    return httpx.AsyncClient(
        proxy=proxy.url,
        timeout=httpx.Timeout(timeout_seconds),
        headers=DEFAULT_HEADERS,
        follow_redirects=True,
    )


@dataclass
class ScrapeAttempt:
    """Per-call bookkeeping for one ``fetch``."""

    url: str
    attempt: int = 0
    tried: list[str] = field(default_factory=list)
    last_error: BaseException | None = None

    @property
    def excluded(self) -> frozenset[str]:
        return frozenset(self.tried)


class RetryingFetcher:
    """Fetches URLs through the proxy pool with bounded retries.

    Parameters
    ----------
    selector:
        Picks an unused, non-limited proxy for each attempt.
    rate_limiter:
        Charged once per attempt, before the network call.
    max_attempts:
        Total fetch attempts per call (default 3).
    max_selection_attempts:
        How many times one attempt may re-run proxy selection when every
        probe lands on an already-tried proxy (default 10).
    timeout_seconds:
        Per-attempt HTTP timeout.
    retry_base_delay_seconds:
        Backoff before attempt ``n + 1`` is ``n * retry_base_delay_seconds``.
    client_factory:
        Builds the httpx client for a proxy; replaced in tests.
    """

    def __init__(
        self,
        *,
        selector: ProxySelector,
        rate_limiter: ProxyRateLimiter,
        max_attempts: int = 3,
        max_selection_attempts: int = 10,
        timeout_seconds: float = 10.0,
        retry_base_delay_seconds: float = 1.0,
        client_factory: ClientFactory = build_proxy_client,
    ) -> None:
        self._selector = selector
        self._rate_limiter = rate_limiter
        self._max_attempts = max_attempts
        self._max_selection_attempts = max_selection_attempts
        self._timeout_seconds = timeout_seconds
        self._retry_base_delay_seconds = retry_base_delay_seconds
        self._client_factory = client_factory

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def fetch(self, url: str) -> ScrapeResult:
        """Fetch *url* through a rotating proxy.

        Raises
        ------
        RateLimitExhaustedError
            Every probed proxy is over quota. Not retried.
        FetchExhaustedError
            All attempts failed, or no untried proxy could be found for the
            next attempt. ``last_cause`` holds the final underlying error.
        """
        state = ScrapeAttempt(url=url)

        for attempt in range(1, self._max_attempts + 1):
            state.attempt = attempt

            try:
                proxy = await self._select_unused_proxy(state)
            except NoUsableProxyError as exc:
                logger.error(
                    "No unused proxy left for %s after %d attempts",
                    url,
                    attempt - 1,
                    extra={"target_url": url, "retry_attempts": attempt - 1},
                )
                raise FetchExhaustedError(url, attempt - 1, state.last_error) from exc

            state.tried.append(proxy.identity)

            try:
                return await self._attempt(url, proxy, attempt)
            except FetchFailedError as exc:
                state.last_error = exc.cause
                logger.warning(
                    "Attempt %d failed for %s using proxy %s: %s",
                    attempt,
                    url,
                    proxy.identity,
                    exc.message,
                    extra={
                        "target_url": url,
                        "proxy_used": proxy.identity,
                        "attempt": attempt,
                        "error_reason": exc.message,
                    },
                )

            if attempt < self._max_attempts:
                await asyncio.sleep(attempt * self._retry_base_delay_seconds)

        logger.error(
            "All %d attempts failed for %s",
            self._max_attempts,
            url,
            extra={"target_url": url, "retry_attempts": self._max_attempts},
        )
        raise FetchExhaustedError(url, self._max_attempts, state.last_error)

    # ------------------------------------------------------------------
    # Internal steps
    # ------------------------------------------------------------------

    async def _select_unused_proxy(self, state: ScrapeAttempt) -> Proxy:
        """Ask the selector for a proxy not yet tried in this call.

        ``RateLimitExhaustedError`` from the selector propagates untouched.
        """
        excluded = state.excluded
        for _ in range(self._max_selection_attempts):
            try:
                return await self._selector.select_proxy(excluded)
            except NoUsableProxyError:
                continue

        raise NoUsableProxyError(
            f"Unable to find an unused proxy after {self._max_selection_attempts} attempts"
        )

    async def _attempt(self, url: str, proxy: Proxy, attempt: int) -> ScrapeResult:
        """Charge quota and perform one GET through *proxy*."""
        logger.info(
            "Attempt %d: Scraping %s using proxy %s (%s)",
            attempt,
            url,
            proxy.identity,
            proxy.country_code,
            extra={"target_url": url, "proxy_used": proxy.identity, "attempt": attempt},
        )

        await self._rate_limiter.record_request(proxy)

        start = time.monotonic()
        try:
            async with self._client_factory(proxy, self._timeout_seconds) as client:
                response = await client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise FetchFailedError(attempt, exc, proxy.identity) from exc

        if not response.is_success:
            status_error = httpx.HTTPStatusError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                request=response.request,
                response=response,
            )
            raise FetchFailedError(attempt, status_error, proxy.identity)

        duration_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            "Successfully scraped %s using proxy %s",
            url,
            proxy.identity,
            extra={
                "target_url": url,
                "proxy_used": proxy.identity,
                "attempt": attempt,
                "duration_ms": duration_ms,
            },
        )

        return ScrapeResult(
            body=response.text,
            headers=collect_headers(response.headers),
            status_code=response.status_code,
            proxy=proxy,
        )
