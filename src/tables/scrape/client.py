"""HTTP scrape-service client.

One URL goes to ``POST /scrape``; several go to ``POST /scrape-multiple`` in a
single request. The batch endpoint answers with items aligned to the request
by position, not by an echoed URL field.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from src.tables.urls import clean_urls

from .extract import (
    batch_items,
    extract_error_message,
    extract_links,
    extract_markdown,
    extract_title,
)
from .models import ScrapeError, ScrapeReport, ScrapeResult

logger = logging.getLogger(__name__)

DEFAULT_SCRAPE_API_URL = "https://api.buildsaas.dev"

NO_RESPONSE = "No response for this URL"
NO_CONTENT = "No content extracted"


class ScrapeClient(Protocol):
    """Protocol for scrape backends."""

    async def scrape_urls(
        self, urls: list[str], include_images: bool = False
    ) -> ScrapeReport: ...


class ScrapeRequestError(Exception):
    """A scrape request completed with a non-success status."""


def _json_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {}


def _transport_message(exc: httpx.HTTPError, fallback: str) -> str:
    if isinstance(exc, httpx.TimeoutException):
        return f"{fallback}: timed out"
    detail = str(exc)
    return f"{fallback}: {detail}" if detail else fallback


class ScrapeApiClient:
    """Client for the bearer-authenticated scrape HTTP service."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_SCRAPE_API_URL,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = (base_url or DEFAULT_SCRAPE_API_URL).rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Authorization": f"Bearer {self._api_key}"},
            timeout=httpx.Timeout(self._timeout),
            transport=self._transport,
        )

    async def scrape_urls(
        self, urls: list[str], include_images: bool = False
    ) -> ScrapeReport:
        """Scrape one or more URLs; never raises for upstream failures."""
        url_list = clean_urls(urls)
        if not url_list:
            return ScrapeReport()

        logger.debug("scraping urls", extra={"url_count": len(url_list)})
        async with self._client() as client:
            if len(url_list) == 1:
                report = await self._scrape_one(client, url_list[0], include_images)
            else:
                report = await self._scrape_many(client, url_list)

        logger.info(
            "scrape batch complete",
            extra={
                "urls_attempted": len(url_list),
                "sources": len(report.sources),
                "scrape_errors": len(report.scrape_errors),
            },
        )
        return report

    async def _scrape_one(
        self, client: httpx.AsyncClient, url: str, include_images: bool
    ) -> ScrapeReport:
        try:
            item = await self.scrape_single(client, url, include_images=include_images)
        except ScrapeRequestError as exc:
            logger.warning("scrape failed", extra={"url": url, "error": str(exc)})
            return ScrapeReport.all_failed([url], str(exc))
        except httpx.HTTPError as exc:
            logger.warning("scrape request error", extra={"url": url}, exc_info=True)
            return ScrapeReport.all_failed([url], _transport_message(exc, "Scrape failed"))

        result = _to_result(url, item)
        if result is None:
            return ScrapeReport.all_failed([url], NO_CONTENT)
        return ScrapeReport(sources=[result])

    async def scrape_single(
        self, client: httpx.AsyncClient, url: str, include_images: bool = False
    ) -> Any:
        """POST /scrape and return the decoded body, raising on non-2xx."""
        payload: dict[str, Any] = {"url": url}
        if include_images:
            payload["includeImages"] = True

        response = await client.post("/scrape", json=payload)
        body = _json_body(response)
        if not response.is_success:
            raise ScrapeRequestError(
                extract_error_message(body, f"Scrape failed ({response.status_code})")
            )
        return body

    async def _scrape_many(
        self, client: httpx.AsyncClient, urls: list[str]
    ) -> ScrapeReport:
        try:
            items = await self.scrape_batch(client, urls)
        except ScrapeRequestError as exc:
            logger.warning("batch scrape failed", extra={"url_count": len(urls), "error": str(exc)})
            return ScrapeReport.all_failed(urls, str(exc))
        except httpx.HTTPError as exc:
            logger.warning("batch scrape request error", extra={"url_count": len(urls)}, exc_info=True)
            return ScrapeReport.all_failed(urls, _transport_message(exc, "Batch scrape failed"))

        report = ScrapeReport()
        for index, url in enumerate(urls):
            item = items[index] if index < len(items) else None
            if not item:
                report.scrape_errors.append(ScrapeError(url=url, error=NO_RESPONSE))
                continue
            result = _to_result(url, item)
            if result is None:
                report.scrape_errors.append(ScrapeError(url=url, error=NO_CONTENT))
                continue
            report.sources.append(result)
        return report

    async def scrape_batch(self, client: httpx.AsyncClient, urls: list[str]) -> list[Any]:
        """POST /scrape-multiple and return the unwrapped item list."""
        response = await client.post("/scrape-multiple", json={"urls": urls})
        body = _json_body(response)
        if not response.is_success:
            raise ScrapeRequestError(
                extract_error_message(body, f"Batch scrape failed ({response.status_code})")
            )
        return batch_items(body)


def _to_result(url: str, item: Any) -> ScrapeResult | None:
    markdown = extract_markdown(item)
    if not markdown.strip():
        return None
    return ScrapeResult(
        url=url,
        markdown=markdown,
        title=extract_title(item),
        links=extract_links(item),
    )
