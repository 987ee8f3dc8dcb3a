"""Middleware package: error hierarchy and request ID."""

from proxy_scraper.middleware.error_handler import (
    BackendDegradedError,
    FetchExhaustedError,
    FetchFailedError,
    NoUsableProxyError,
    ProxyListError,
    RateLimitExhaustedError,
    ScraperError,
    ValidationError,
    register_error_handlers,
)
from proxy_scraper.middleware.request_id import RequestIdMiddleware

__all__ = [
    "BackendDegradedError",
    "FetchExhaustedError",
    "FetchFailedError",
    "NoUsableProxyError",
    "ProxyListError",
    "RateLimitExhaustedError",
    "RequestIdMiddleware",
    "ScraperError",
    "ValidationError",
    "register_error_handlers",
]
