"""Proxy scraper service: fetch pages through a rate-limited rotating proxy pool."""

__version__ = "1.0.0"
