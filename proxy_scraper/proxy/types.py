"""Proxy data models for the proxy pool."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_REQUESTS_PER_SECOND = 1


@dataclass(frozen=True)
class Proxy:
    """A forward-proxy endpoint with its capability attributes and quota.

    Identity is ``(host, port)``; two records with the same host and port are
    the same proxy as far as rate limiting and exclusion are concerned.
    """

    host: str
    port: int
    country_code: str
    anonymity: str
    https: bool
    requests_per_second: float = DEFAULT_REQUESTS_PER_SECOND
    country: str | None = None  # Human readable name, falls back to the code
    google: bool | None = None

    @property
    def identity(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def url(self) -> str:
        """Proxy URL handed to the HTTP client."""
        scheme = "https" if self.https else "http"
        return f"{scheme}://{self.host}:{self.port}"

    def metadata(self) -> dict:
        """Public description of the proxy; no quota state is exposed."""
        return {
            "ip": self.host,
            "port": self.port,
            "country": self.country or self.country_code,
            "anonymity": self.anonymity,
            "https": self.https,
        }
