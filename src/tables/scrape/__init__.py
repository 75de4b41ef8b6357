"""Web scraping submodule with interchangeable scrape backends."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .client import ScrapeApiClient, ScrapeClient
from .firecrawl_client import FirecrawlScrapeClient
from .models import ScrapeError, ScrapeReport, ScrapeResult

if TYPE_CHECKING:
    from src.config import Settings

__all__ = [
    "FirecrawlScrapeClient",
    "ScrapeApiClient",
    "ScrapeClient",
    "ScrapeError",
    "ScrapeReport",
    "ScrapeResult",
    "build_scrape_client",
]


def build_scrape_client(settings: Settings) -> ScrapeClient:
    """Build the scrape backend selected by ``scrape_provider``."""
    if settings.scrape_provider == "firecrawl":
        return FirecrawlScrapeClient(
            api_key=settings.firecrawl_api_key,
            api_url=settings.firecrawl_api_url,
            timeout=settings.scrape_timeout_seconds,
        )
    return ScrapeApiClient(
        api_key=settings.scrape_api_key,
        base_url=settings.scrape_api_url,
        timeout=settings.scrape_timeout_seconds,
    )
