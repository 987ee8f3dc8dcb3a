"""Configuration module: settings and the static proxy list."""

from proxy_scraper.config.proxies import ProxyRecord, load_proxies, parse_proxies
from proxy_scraper.config.settings import ScraperSettings

__all__ = [
    "ProxyRecord",
    "ScraperSettings",
    "load_proxies",
    "parse_proxies",
]
