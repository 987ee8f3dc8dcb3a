"""FastAPI application entry point with lifespan management.

Startup: validate settings, configure logging, load the proxy list, connect
to Redis, then build the rate limiter, selector and fetcher with their
dependencies passed in explicitly.
Shutdown: close the Redis client.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from proxy_scraper.config.proxies import load_proxies
from proxy_scraper.config.settings import ScraperSettings
from proxy_scraper.integration.redis_client import close_redis, connect_redis
from proxy_scraper.logging_config import configure_logging
from proxy_scraper.middleware.error_handler import register_error_handlers
from proxy_scraper.middleware.request_id import RequestIdMiddleware
from proxy_scraper.proxy.pool import ProxyPool
from proxy_scraper.proxy.selector import ProxySelector
from proxy_scraper.resilience.counter_backend import RedisCounterBackend
from proxy_scraper.resilience.rate_limiter import ProxyRateLimiter
from proxy_scraper.routers.health import create_health_router
from proxy_scraper.routers.scrape import create_scrape_router
from proxy_scraper.services.fetcher import RetryingFetcher

logger = logging.getLogger(__name__)


def build_fetcher(
    settings: ScraperSettings,
    pool: ProxyPool,
    rate_limiter: ProxyRateLimiter,
) -> RetryingFetcher:
    """Assemble the selector and fetcher from settings."""
    selector = ProxySelector(pool, rate_limiter)
    return RetryingFetcher(
        selector=selector,
        rate_limiter=rate_limiter,
        max_attempts=settings.max_fetch_attempts,
        max_selection_attempts=settings.max_selection_attempts,
        timeout_seconds=settings.request_timeout_seconds,
        retry_base_delay_seconds=settings.retry_base_delay_seconds,
    )


def create_app(settings: ScraperSettings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Settings are loaded eagerly so invalid ``SCRAPER_*`` values fail at
    import time rather than on the first request.
    """
    settings = settings or ScraperSettings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan: startup and shutdown logic."""
        configure_logging(
            settings.log_level,
            log_dir=settings.log_dir,
            silent=settings.environment == "test",
        )
        logger.info(
            "Starting scraper service on port %d in %s mode",
            settings.port,
            settings.environment,
        )

        # A missing or malformed proxy list is fatal.
        pool = ProxyPool(load_proxies(settings.proxies_path))

        redis = await connect_redis(settings)
        rate_limiter = ProxyRateLimiter(
            RedisCounterBackend(redis, timeout_seconds=settings.redis_command_timeout_seconds)
        )
        fetcher = build_fetcher(settings, pool, rate_limiter)

        app.include_router(
            create_health_router(
                environment=settings.environment,
                redis=redis,
                redis_timeout_seconds=settings.redis_command_timeout_seconds,
                proxy_pool=pool,
            )
        )
        app.include_router(create_scrape_router(fetcher=fetcher))

        logger.info("Scraper service started successfully")

        yield

        logger.info("Shutting down scraper service…")
        await close_redis(redis)
        logger.info("Scraper service shut down")

    app = FastAPI(
        title="Proxy Scraper Service",
        version="1.0.0",
        lifespan=lifespan,
    )

    register_error_handlers(app, hide_internal_errors=settings.is_production)
    app.add_middleware(RequestIdMiddleware)

    return app


app = create_app()
