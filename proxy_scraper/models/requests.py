"""Pydantic request models."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from proxy_scraper.validators.url_validator import is_http_url


class ScrapeRequest(BaseModel):
    """Request model for a single scrape."""

    url: str = Field(..., min_length=1)

    @field_validator("url")
    @classmethod
    def _http_url(cls, value: str) -> str:
        value = value.strip()
        if not is_http_url(value):
            raise ValueError("URL must be a valid HTTP or HTTPS URL")
        return value
