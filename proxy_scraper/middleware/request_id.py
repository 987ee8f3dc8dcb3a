"""Per-request correlation IDs and access logging.

Every request gets an ID: the caller's ``X-Request-ID`` when it sends a
usable one, otherwise a fresh UUID4. Handlers read it from
``request.state.request_id`` and the response echoes it back.
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
_MAX_REQUEST_ID_LENGTH = 128


def resolve_request_id(header_value: str | None) -> str:
    """Return the caller's request ID if it is short and printable, else a new UUID4."""
    if header_value and len(header_value) <= _MAX_REQUEST_ID_LENGTH and header_value.isprintable():
        return header_value
    return str(uuid.uuid4())


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tags each request with an ID and logs its arrival and completion."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        context = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
        }

        logger.info(
            "Incoming request",
            extra={
                **context,
                "client_ip": request.client.host if request.client else "unknown",
                "user_agent": request.headers.get("user-agent"),
            },
        )

        start = time.monotonic()
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id

        logger.info(
            "Request completed with status %d",
            response.status_code,
            extra={
                **context,
                "status_code": response.status_code,
                "duration_ms": int((time.monotonic() - start) * 1000),
            },
        )
        return response
