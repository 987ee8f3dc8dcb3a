"""Response envelope shared by every endpoint.

Successful scrapes, health checks and error handlers all return
{ success: bool, data: T | None, error: str | None, meta: dict | None }.
"""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """JSON envelope; ``error`` is set only when ``success`` is False."""

    success: bool
    data: T | None = None
    error: str | None = None
    meta: dict | None = None
