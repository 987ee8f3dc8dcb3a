"""Redis client construction for the rate limit counter store.

The client is built once during application startup and passed down to the
components that need it. Reconnects use capped exponential backoff: the delay
grows from ``redis_backoff_base_seconds`` up to ``redis_backoff_cap_seconds``
and the client gives up after ``redis_max_retries`` consecutive failures.
"""

from __future__ import annotations

import logging

from redis.asyncio import Redis
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from proxy_scraper.config.settings import ScraperSettings

logger = logging.getLogger(__name__)


def build_redis_client(settings: ScraperSettings) -> Redis:
    """Create (but do not connect) the asyncio Redis client."""
    retry = Retry(
        ExponentialBackoff(
            cap=settings.redis_backoff_cap_seconds,
            base=settings.redis_backoff_base_seconds,
        ),
        retries=settings.redis_max_retries,
    )
    return Redis.from_url(
        settings.redis_url,
        decode_responses=True,
        retry=retry,
        retry_on_error=[RedisConnectionError, RedisTimeoutError],
        socket_timeout=settings.redis_socket_timeout_seconds,
        socket_connect_timeout=settings.redis_socket_timeout_seconds,
    )


async def connect_redis(settings: ScraperSettings) -> Redis:
    """Build the client and verify the server answers ``PING``.

    Raises the underlying Redis error if the server is unreachable; callers
    treat that as a fatal startup failure.
    """
    client = build_redis_client(settings)
    try:
        await client.ping()
    except Exception:
        logger.error("Failed to connect to Redis")
        await client.aclose()
        raise

    logger.info("Redis client ready")
    return client


async def close_redis(client: Redis) -> None:
    await client.aclose()
    logger.info("Redis connection closed")
