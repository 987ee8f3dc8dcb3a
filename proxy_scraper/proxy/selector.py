"""Random proxy selection under per-proxy rate limits.

Selection is a bounded random probe: at most ``pool.size()`` uniformly random
draws, returning the first candidate that is neither excluded nor over quota.
It is not an exhaustive scan. With a small pool under heavy contention it can
report exhaustion while one untried proxy is still free; in exchange the
worst case is O(pool size) backend reads per selection. Exhaustion reporting
depends on the probe bound, so do not replace it with a full scan.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Set
from typing import TYPE_CHECKING

from proxy_scraper.middleware.error_handler import NoUsableProxyError, RateLimitExhaustedError
from proxy_scraper.proxy.pool import ProxyPool
from proxy_scraper.proxy.types import Proxy

if TYPE_CHECKING:
    from proxy_scraper.resilience.rate_limiter import ProxyRateLimiter

logger = logging.getLogger(__name__)


class ProxySelector:
    """Picks a random proxy that is unused in this fetch and under quota."""

    def __init__(
        self,
        pool: ProxyPool,
        rate_limiter: ProxyRateLimiter,
        rng: random.Random | None = None,
    ) -> None:
        self._pool = pool
        self._rate_limiter = rate_limiter
        self._rng = rng or random.Random()

    async def select_proxy(self, excluding: Set[str] = frozenset()) -> Proxy:
        """Return a proxy whose identity is not in *excluding* and is not limited.

        Draws that land on an excluded identity are discarded without a
        backend read but still spend one probe.

        Raises:
            RateLimitExhaustedError: the probe budget ran out and at least one
                drawn candidate was over quota.
            NoUsableProxyError: every draw landed on an excluded identity.
        """
        max_probes = self._pool.size()
        limited_seen = 0

        for _ in range(max_probes):
            proxy = self._pool[self._rng.randrange(max_probes)]

            if proxy.identity in excluding:
                continue

            if not await self._rate_limiter.is_limited(proxy):
                logger.debug(
                    "Selected non-rate-limited proxy %s (%s req/s)",
                    proxy.identity,
                    proxy.requests_per_second,
                )
                return proxy

            limited_seen += 1
            logger.debug("Proxy %s is rate limited, trying another", proxy.identity)

        if limited_seen:
            raise RateLimitExhaustedError()

        raise NoUsableProxyError(
            f"All {max_probes} probes hit proxies already tried in this request"
        )
