"""Validators for scrape request inputs."""

from proxy_scraper.validators.url_validator import is_http_url

__all__ = ["is_http_url"]
