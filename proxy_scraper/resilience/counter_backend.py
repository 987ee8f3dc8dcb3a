"""Shared counter store used by the proxy rate limiter.

The limiter only needs two operations from the backend: read a counter, and
atomically increment it while (re)arming its expiry. ``RedisCounterBackend``
implements both on top of redis-py's asyncio client; the increment and the
expiry run inside one MULTI/EXEC transaction so a counter can never be left
without a TTL and concurrent increments are never lost.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from redis.asyncio import Redis
from redis.exceptions import RedisError

from proxy_scraper.middleware.error_handler import BackendDegradedError

logger = logging.getLogger(__name__)


class CounterBackend(Protocol):
    """Interface of the shared key/value counter store."""

    async def get(self, key: str) -> int | None:
        """Return the counter stored at *key*, or ``None`` when absent."""
        ...

    async def incr_with_expiry(self, key: str, ttl_seconds: int) -> int:
        """Atomically increment *key* and set its expiry; return the new value."""
        ...


class RedisCounterBackend:
    """``CounterBackend`` backed by Redis.

    Reconnect policy belongs to the injected client. Each call is bounded by
    ``timeout_seconds`` so the client's per-command retries cannot stall a
    fetch while Redis is down. Timeouts, Redis errors and socket errors are
    all re-raised as ``BackendDegradedError``.
    """

    def __init__(self, redis: Redis, *, timeout_seconds: float = 0.5) -> None:
        self._redis = redis
        self._timeout_seconds = timeout_seconds

    async def get(self, key: str) -> int | None:
        try:
            value = await asyncio.wait_for(self._redis.get(key), self._timeout_seconds)
        except asyncio.TimeoutError as exc:
            raise BackendDegradedError(
                f"Counter read timed out for {key} after {self._timeout_seconds}s"
            ) from exc
        except (RedisError, OSError) as exc:
            raise BackendDegradedError(f"Counter read failed for {key}: {exc}") from exc

        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise BackendDegradedError(
                f"Counter at {key} is not an integer: {value!r}"
            ) from exc

    async def incr_with_expiry(self, key: str, ttl_seconds: int) -> int:
        try:
            count = await asyncio.wait_for(
                self._incr_and_expire(key, ttl_seconds), self._timeout_seconds
            )
        except asyncio.TimeoutError as exc:
            raise BackendDegradedError(
                f"Counter increment timed out for {key} after {self._timeout_seconds}s"
            ) from exc
        except (RedisError, OSError) as exc:
            raise BackendDegradedError(
                f"Counter increment failed for {key}: {exc}"
            ) from exc
        return int(count)

    async def _incr_and_expire(self, key: str, ttl_seconds: int) -> int:
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.expire(key, ttl_seconds)
            count, _ = await pipe.execute()
        return count
