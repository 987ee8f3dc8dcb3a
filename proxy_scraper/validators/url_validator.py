"""URL validation for scrape targets."""

from __future__ import annotations

from urllib.parse import urlparse

import httpx

_ALLOWED_SCHEMES = {"http", "https"}


def is_http_url(url: str) -> bool:
    """Return True if *url* is an absolute http(s) URL with a host.

    The URL must also be one httpx can request, so control characters and
    other values it refuses to parse are rejected here rather than at fetch time.
    """
    url = url.strip()
    try:
        parsed = urlparse(url)
        # Accessing .port validates the port component.
        parsed.port
    except ValueError:
        return False

    if parsed.scheme.lower() not in _ALLOWED_SCHEMES:
        return False
    if not parsed.hostname:
        return False
    if any(ch.isspace() for ch in url):
        return False

    try:
        httpx.URL(url)
    except httpx.InvalidURL:
        return False
    return True
