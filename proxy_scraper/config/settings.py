"""Pydantic Settings for the scraper service.

All environment variables use the SCRAPER_ prefix.
Example: SCRAPER_PORT=3000, SCRAPER_REDIS_URL=redis://cache:6379/0
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class ScraperSettings(BaseSettings):
    """Scraper service configuration validated from environment variables."""

    # Service
    environment: Literal["development", "production", "test"] = "development"
    port: int = 3000
    log_level: str = "INFO"
    log_dir: str | None = None  # Also write error.log / combined.log here

    # Redis (rate limit counters)
    redis_url: str = "redis://localhost:6379"
    redis_max_retries: int = Field(default=10, ge=0)
    redis_backoff_base_seconds: float = Field(default=0.1, gt=0)
    redis_backoff_cap_seconds: float = Field(default=3.0, gt=0)
    redis_socket_timeout_seconds: float = Field(default=1.0, gt=0)
    redis_command_timeout_seconds: float = Field(default=0.5, gt=0)  # Counter ops, health ping

    # Proxy list
    proxies_path: str = "proxies.json"

    # Fetching
    max_fetch_attempts: int = Field(default=3, ge=1)
    max_selection_attempts: int = Field(default=10, ge=1)
    request_timeout_seconds: float = Field(default=10.0, gt=0)
    retry_base_delay_seconds: float = Field(default=1.0, ge=0)

    model_config = {"env_prefix": "SCRAPER_"}

    @property
    def is_production(self) -> bool:
        return self.environment == "production"
