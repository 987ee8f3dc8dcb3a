"""Global error hierarchy and FastAPI exception handlers.

All scraper-specific errors extend ScraperError. The FastAPI exception handlers
catch these errors (plus Pydantic's RequestValidationError and unhandled exceptions)
and return a consistent JSON envelope: { success, data, error, meta }.

Only ``RateLimitExhaustedError`` and ``FetchExhaustedError`` ever leave the
fetch engine. ``FetchFailedError``, ``NoUsableProxyError`` and
``BackendDegradedError`` are raised and recovered internally.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Error hierarchy
# ---------------------------------------------------------------------------


class ScraperError(Exception):
    """Base error for all scraper-specific errors."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: str | None = None, **kwargs: object) -> None:
        self.message = message or self.__class__.message
        self.details = kwargs
        super().__init__(self.message)


class ValidationError(ScraperError):
    """Request payload validation failures with field-level details."""

    status_code = 400
    message = "Validation failed"


class ProxyListError(ScraperError):
    """The static proxy list is missing, empty, or malformed."""

    status_code = 500
    message = "Proxy list is empty or malformed"


class RateLimitExhaustedError(ScraperError):
    """Every probed proxy is over its requests-per-second quota."""

    status_code = 429
    message = "You have hit the rate limit on all proxies"


class NoUsableProxyError(ScraperError):
    """Selection budget spent without finding a proxy not yet tried."""

    status_code = 503
    message = "Unable to find an unused proxy after multiple attempts"


class BackendDegradedError(ScraperError):
    """The shared counter backend is unreachable or returned garbage."""

    status_code = 503
    message = "Rate limit backend unavailable"


class FetchFailedError(ScraperError):
    """A single fetch attempt failed (transport error or non-2xx status)."""

    status_code = 502
    message = "Fetch attempt failed"

    def __init__(
        self,
        attempt: int,
        cause: BaseException,
        proxy_identity: str | None = None,
    ) -> None:
        self.attempt = attempt
        self.cause = cause
        self.proxy_identity = proxy_identity
        super().__init__(_describe(cause), attempt=attempt, proxy=proxy_identity)


class FetchExhaustedError(ScraperError):
    """All fetch attempts failed; carries the last underlying cause."""

    status_code = 500
    message = "Failed to scrape URL"

    def __init__(
        self,
        url: str,
        attempts: int,
        last_cause: BaseException | None = None,
    ) -> None:
        self.url = url
        self.attempts = attempts
        self.last_cause = last_cause
        reason = _describe(last_cause) if last_cause is not None else "Unknown error"
        super().__init__(
            f"Failed to scrape {url} after {attempts} attempts. Last error: {reason}",
            attempts=attempts,
        )


def _describe(exc: BaseException) -> str:
    """Human readable message for an exception, falling back to its type name."""
    text = str(exc)
    return text if text else exc.__class__.__name__


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

INTERNAL_ERROR_MESSAGE = "Internal server error"


def _error_response(status_code: int, error: str, meta: dict | None = None) -> JSONResponse:
    """Error envelope; same keys as ``ApiResponse``."""
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "data": None, "error": error, "meta": meta},
    )


def _hides_internal_errors(request: Request) -> bool:
    return getattr(request.app.state, "hide_internal_errors", False)


def _field_errors(exc: RequestValidationError) -> list[dict]:
    """Flatten pydantic errors to ``{field, message}`` pairs.

    The leading ``body``/``query`` location is dropped so clients see the
    field name they sent.
    """
    fields = []
    for err in exc.errors():
        loc = [str(part) for part in err["loc"]]
        if len(loc) > 1 and loc[0] in ("body", "query", "path"):
            loc = loc[1:]
        fields.append({"field": ".".join(loc), "message": err["msg"]})
    return fields


async def _scraper_error_handler(request: Request, exc: ScraperError) -> JSONResponse:
    """Render ScraperError subclasses with their own status and message.

    When internal errors are hidden (production), 500s carry a generic
    message and no details.
    """
    if exc.status_code == 429:
        logger.warning("Rate limit error: %s", exc.message)
    else:
        logger.error("%s: %s", exc.__class__.__name__, exc.message)

    if exc.status_code == 500 and _hides_internal_errors(request):
        return _error_response(500, INTERNAL_ERROR_MESSAGE)

    return _error_response(exc.status_code, exc.message, meta=exc.details or None)


async def _validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    fields = _field_errors(exc)
    logger.warning("Request validation failed: %s", ", ".join(f["field"] for f in fields))
    return _error_response(
        ValidationError.status_code,
        ValidationError.message,
        meta={"fields": fields},
    )


async def _unhandled_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception: %s", exc, exc_info=exc)
    return _error_response(500, INTERNAL_ERROR_MESSAGE)


def register_error_handlers(app: FastAPI, *, hide_internal_errors: bool = False) -> None:
    """Install the envelope-rendering exception handlers on *app*."""
    app.state.hide_internal_errors = hide_internal_errors

    app.add_exception_handler(ScraperError, _scraper_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_error_handler)  # type: ignore[arg-type]
