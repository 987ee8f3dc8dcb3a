"""Per-proxy requests-per-second limiter over a shared counter store.

Each proxy has one counter keyed ``rate_limit:<host>:<port>``. Every recorded
request increments it and re-arms a 1-second expiry, so a proxy's window is a
renewing bucket rather than a fixed wall-clock second: an increment on an
expired (absent) key starts a fresh bucket at 1.

Key behaviors:
- is_limited() reads the counter and compares it to the proxy's quota
- record_request() increments and sets the expiry in one atomic backend call
- Backend failures never fail a fetch: checks fail open, increments are dropped
- Checking and charging are separate calls; concurrent fetches may both pass
  the check before either charges (soft quota)
"""

from __future__ import annotations

import logging

from proxy_scraper.middleware.error_handler import BackendDegradedError
from proxy_scraper.proxy.types import Proxy
from proxy_scraper.resilience.counter_backend import CounterBackend

logger = logging.getLogger(__name__)

RATE_LIMIT_WINDOW_SECONDS = 1
KEY_PREFIX = "rate_limit:"


def rate_limit_key(proxy: Proxy) -> str:
    """Counter key for *proxy*, derived from its identity."""
    return f"{KEY_PREFIX}{proxy.identity}"


class ProxyRateLimiter:
    """Per-proxy quota checks and accounting.

    Args:
        backend: Fully constructed counter store shared by every process.
    """

    def __init__(self, backend: CounterBackend) -> None:
        self._backend = backend

    async def is_limited(self, proxy: Proxy) -> bool:
        """Return True iff the proxy has used its quota in the current window.

        Fails open: if the backend cannot be read the proxy is treated as
        available and the failure is only logged.
        """
        key = rate_limit_key(proxy)
        try:
            count = await self._backend.get(key) or 0
        except BackendDegradedError as exc:
            logger.error(
                "Failed to check rate limit for proxy %s: %s",
                proxy.identity,
                exc,
                extra={"proxy_used": proxy.identity, "error_reason": str(exc)},
            )
            return False

        if count >= proxy.requests_per_second:
            logger.debug(
                "Rate limit exceeded for proxy %s (%d/%s req/s)",
                proxy.identity,
                count,
                proxy.requests_per_second,
            )
            return True

        return False

    async def record_request(self, proxy: Proxy) -> None:
        """Charge one request against the proxy's current window.

        Backend failures are logged and swallowed; the request proceeds
        uncounted.
        """
        key = rate_limit_key(proxy)
        try:
            count = await self._backend.incr_with_expiry(key, RATE_LIMIT_WINDOW_SECONDS)
        except BackendDegradedError as exc:
            logger.error(
                "Failed to increment rate limit for proxy %s: %s",
                proxy.identity,
                exc,
                extra={"proxy_used": proxy.identity, "error_reason": str(exc)},
            )
            return

        logger.debug(
            "Incremented request count for proxy %s to %d",
            proxy.identity,
            count,
        )
