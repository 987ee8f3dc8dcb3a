"""Immutable in-memory catalog of candidate proxies.

The pool is built once at startup from the static proxy list and never
changes afterwards, so concurrent readers need no coordination.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable

from proxy_scraper.middleware.error_handler import ProxyListError
from proxy_scraper.proxy.types import Proxy

logger = logging.getLogger(__name__)


class ProxyPool:
    """Read-only, ordered collection of ``Proxy`` records."""

    def __init__(self, proxies: Iterable[Proxy]) -> None:
        self._proxies: tuple[Proxy, ...] = tuple(proxies)
        if not self._proxies:
            raise ProxyListError("Proxy list is empty")

        logger.info("Proxy pool initialized with %d proxies", len(self._proxies))

    def size(self) -> int:
        return len(self._proxies)

    def all(self) -> tuple[Proxy, ...]:
        return self._proxies

    def __getitem__(self, index: int) -> Proxy:
        return self._proxies[index]

    def __len__(self) -> int:
        return len(self._proxies)

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def get_stats(self) -> dict:
        """Return proxy pool statistics for the health endpoint."""
        countries = Counter(p.country_code for p in self._proxies)
        return {
            "total": len(self._proxies),
            "https": sum(1 for p in self._proxies if p.https),
            "countries": dict(sorted(countries.items())),
        }
