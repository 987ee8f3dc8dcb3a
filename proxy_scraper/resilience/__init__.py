"""Resilience components for the scraper service."""

from proxy_scraper.resilience.counter_backend import CounterBackend, RedisCounterBackend
from proxy_scraper.resilience.rate_limiter import (
    RATE_LIMIT_WINDOW_SECONDS,
    ProxyRateLimiter,
    rate_limit_key,
)

__all__ = [
    "RATE_LIMIT_WINDOW_SECONDS",
    "CounterBackend",
    "ProxyRateLimiter",
    "RedisCounterBackend",
    "rate_limit_key",
]
