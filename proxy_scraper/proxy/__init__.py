"""Proxy package: proxy records, the immutable pool, and random selection."""

from proxy_scraper.proxy.pool import ProxyPool
from proxy_scraper.proxy.selector import ProxySelector
from proxy_scraper.proxy.types import Proxy

__all__ = ["Proxy", "ProxyPool", "ProxySelector"]
