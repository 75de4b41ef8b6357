"""Firecrawl scrape backend.

Firecrawl is used through single-page scrapes only; several URLs are fetched
concurrently and every fetch settles before the report is returned.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from firecrawl import AsyncFirecrawl

from src.tables.urls import clean_urls

from .client import NO_CONTENT
from .extract import extract_links, extract_markdown, extract_title
from .models import ScrapeError, ScrapeReport, ScrapeResult

logger = logging.getLogger(__name__)


def _as_dict(response: Any) -> Any:
    # Newer SDKs return a pydantic Document, older ones a plain dict
    if hasattr(response, "model_dump"):
        return response.model_dump()
    return response


class FirecrawlScrapeClient:
    """Scrapes pages using the Firecrawl API."""

    def __init__(self, api_key: str, api_url: str = "", timeout: float = 60.0) -> None:
        kwargs: dict = {"api_key": api_key}
        if api_url:
            kwargs["api_url"] = api_url
        self._client = AsyncFirecrawl(**kwargs)
        self._timeout = timeout

    async def scrape_urls(
        self, urls: list[str], include_images: bool = False
    ) -> ScrapeReport:
        url_list = clean_urls(urls)
        if not url_list:
            return ScrapeReport()

        logger.debug("firecrawl scraping", extra={"url_count": len(url_list)})
        outcomes = await asyncio.gather(*(self._load(url) for url in url_list))

        report = ScrapeReport()
        for outcome in outcomes:
            if isinstance(outcome, ScrapeResult):
                report.sources.append(outcome)
            else:
                report.scrape_errors.append(outcome)
        logger.info(
            "scrape batch complete",
            extra={
                "urls_attempted": len(url_list),
                "sources": len(report.sources),
                "scrape_errors": len(report.scrape_errors),
            },
        )
        return report

    async def _load(self, url: str) -> ScrapeResult | ScrapeError:
        try:
            response = await asyncio.wait_for(
                self._client.scrape(url, formats=["markdown", "links"]),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("firecrawl scrape timed out", extra={"url": url})
            return ScrapeError(url=url, error="Scrape failed: timed out")
        except Exception as exc:
            logger.warning("firecrawl scrape failed", extra={"url": url}, exc_info=True)
            return ScrapeError(url=url, error=str(exc) or "Scrape failed")

        item = _as_dict(response)
        markdown = extract_markdown(item)
        if not markdown.strip():
            return ScrapeError(url=url, error=NO_CONTENT)
        return ScrapeResult(
            url=url,
            markdown=markdown,
            title=extract_title(item),
            links=extract_links(item),
        )
