"""Value returned by a successful fetch."""

from __future__ import annotations

from dataclasses import dataclass

from proxy_scraper.proxy.types import Proxy


@dataclass(frozen=True)
class ScrapeResult:
    """Fetched page plus the proxy that served it."""

    body: str
    headers: dict[str, str | list[str]]  # repeated names keep every value
    status_code: int
    proxy: Proxy

    def to_response(self) -> dict:
        """Shape returned to API clients."""
        return {
            "html": self.body,
            "headers": self.headers,
            "statusCode": self.status_code,
            "proxy": self.proxy.metadata(),
        }
