"""Health endpoint.

- GET /api/health: service status, Redis connectivity and proxy pool stats
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter
from redis.exceptions import RedisError

from proxy_scraper.models.responses import ApiResponse

if TYPE_CHECKING:
    from proxy_scraper.proxy.pool import ProxyPool


def create_health_router(
    *,
    environment: str,
    redis: Any = None,
    redis_timeout_seconds: float = 0.5,
    proxy_pool: ProxyPool | None = None,
) -> APIRouter:
    """Factory that creates the health router with injected dependencies."""

    health_router = APIRouter(prefix="/api", tags=["health"])

    async def _redis_status() -> str:
        if redis is None:
            return "disconnected"
        try:
            await asyncio.wait_for(redis.ping(), redis_timeout_seconds)
        except (asyncio.TimeoutError, RedisError, OSError):
            return "disconnected"
        return "connected"

    @health_router.get("/health")
    async def health() -> dict:
        """Service health check with Redis status and pool statistics."""
        return ApiResponse(
            success=True,
            data={
                "status": "ok",
                "message": "API is running",
                "environment": environment,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "services": {"redis": await _redis_status()},
                "proxy_pool": proxy_pool.get_stats() if proxy_pool else {},
            },
        ).model_dump()

    return health_router
