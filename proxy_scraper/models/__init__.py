"""Public models for the scraper service."""

from proxy_scraper.models.requests import ScrapeRequest
from proxy_scraper.models.responses import ApiResponse
from proxy_scraper.models.results import ScrapeResult

__all__ = [
    "ApiResponse",
    "ScrapeRequest",
    "ScrapeResult",
]
