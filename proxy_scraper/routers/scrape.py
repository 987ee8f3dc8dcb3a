"""Scrape endpoint.

- POST /api/scraper/scrape: fetch a URL through a rotating proxy

``RateLimitExhaustedError`` (429) and ``FetchExhaustedError`` (500) raised by
the fetcher are rendered by the registered error handlers.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Request

from proxy_scraper.models.requests import ScrapeRequest
from proxy_scraper.models.responses import ApiResponse

if TYPE_CHECKING:
    from proxy_scraper.services.fetcher import RetryingFetcher

logger = logging.getLogger(__name__)


def create_scrape_router(*, fetcher: RetryingFetcher) -> APIRouter:
    """Factory that creates the scrape router with the injected fetcher."""
    scrape_router = APIRouter(prefix="/api/scraper", tags=["scrape"])

    @scrape_router.post("/scrape")
    async def scrape(body: ScrapeRequest, request: Request) -> dict:
        """Fetch ``body.url`` and return its HTML, headers, status and proxy."""
        request_id = getattr(request.state, "request_id", None)
        logger.info(
            "Starting scrape request for URL: %s",
            body.url,
            extra={"request_id": request_id, "target_url": body.url},
        )

        result = await fetcher.fetch(body.url)

        logger.info(
            "Scrape completed successfully for %s using proxy %s",
            body.url,
            result.proxy.identity,
            extra={
                "request_id": request_id,
                "target_url": body.url,
                "proxy_used": result.proxy.identity,
            },
        )

        return ApiResponse(success=True, data=result.to_response()).model_dump()

    return scrape_router
