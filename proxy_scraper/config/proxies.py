"""Proxy list models and YAML/JSON loader.

The proxy list is a static file read once at startup. Both YAML and JSON are
accepted (JSON is parsed through the YAML loader). The top level is either a
list of records or a mapping with a ``proxies`` key, e.g.::

    {"proxies": [{"ip_address": "203.0.113.7", "port": 8080, "code": "CA",
                  "country": "Canada", "anonymity": "elite proxy",
                  "google": false, "https": true, "requests_per_second": 2}]}

There is no fallback list: an empty or malformed file is a
fatal startup error.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import AliasChoices, BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from proxy_scraper.middleware.error_handler import ProxyListError
from proxy_scraper.proxy.types import DEFAULT_REQUESTS_PER_SECOND, Proxy

logger = logging.getLogger(__name__)


class ProxyRecord(BaseModel):
    """One entry of the proxy list file."""

    host: str = Field(min_length=1, validation_alias=AliasChoices("host", "ip_address"))
    port: int = Field(ge=1, le=65535)
    country_code: str = Field(validation_alias=AliasChoices("country_code", "code"))
    country: str | None = None
    anonymity: str
    https: bool
    google: bool | None = None
    requests_per_second: float | None = Field(default=None, gt=0)

    def to_proxy(self) -> Proxy:
        return Proxy(
            host=self.host,
            port=self.port,
            country_code=self.country_code,
            anonymity=self.anonymity,
            https=self.https,
            requests_per_second=self.requests_per_second or DEFAULT_REQUESTS_PER_SECOND,
            country=self.country,
            google=self.google,
        )


def parse_proxies(raw: object) -> list[Proxy]:
    """Validate already-decoded proxy list data into ``Proxy`` objects.

    Raises:
        ProxyListError: if the data is not a non-empty list of valid records.
    """
    if isinstance(raw, dict):
        raw = raw.get("proxies")

    if not isinstance(raw, list):
        raise ProxyListError("Proxy list must be a list or a mapping with a 'proxies' key")
    if not raw:
        raise ProxyListError("Proxy list is empty")

    proxies: list[Proxy] = []
    for index, entry in enumerate(raw):
        try:
            proxies.append(ProxyRecord.model_validate(entry).to_proxy())
        except PydanticValidationError as exc:
            raise ProxyListError(
                f"Invalid proxy record at index {index}: {exc.error_count()} error(s)",
                index=index,
            ) from exc

    return proxies


def load_proxies(path: str) -> list[Proxy]:
    """Read and validate the proxy list file at *path*.

    Raises:
        ProxyListError: if the file is missing, unparsable, empty or malformed.
    """
    file_path = Path(path)
    if not file_path.exists():
        raise ProxyListError(f"Proxy list file not found at {path}")

    try:
        raw = yaml.safe_load(file_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ProxyListError(f"Failed to parse proxy list at {path}: {exc}") from exc

    proxies = parse_proxies(raw)
    logger.info("Loaded %d proxies from %s", len(proxies), path)
    return proxies
