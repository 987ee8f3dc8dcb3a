"""Run the scraper service with uvicorn: ``python -m proxy_scraper``."""

from __future__ import annotations

import uvicorn

from proxy_scraper.config.settings import ScraperSettings


def main() -> None:
    settings = ScraperSettings()
    uvicorn.run("proxy_scraper.main:app", host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
