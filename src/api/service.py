"""Service layer — orchestrates table operations for the API routes."""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, AsyncGenerator

from src.api.schemas import (
    GenerateRequest,
    ScrapeIssue,
    ScrapeRequest,
    ScrapeResponse,
    Table,
)
from src.tables.engine import TableEngine
from src.tables.errors import ScrapeFailedError, TableServiceError
from src.tables.export import EXPORTERS, export_filename

logger = logging.getLogger(__name__)

_IMAGE_RE = re.compile(r"\.(jpg|jpeg|png|gif|webp|svg|avif)(\?|$)", re.IGNORECASE)
MAX_IMAGES = 20


async def stream_generation(
    engine: TableEngine,
    body: GenerateRequest,
) -> AsyncGenerator[dict[str, str], None]:
    """Yield SSE-formatted events from the table engine.

    If the client disconnects, generation keeps running in the background
    until it finishes or its outbound calls time out.
    """
    logger.info(
        "streaming generation started",
        extra={"prompt": body.prompt[:100], "url_count": len(body.url_list())},
    )

    queue: asyncio.Queue[tuple[str, dict[str, Any]] | None] = asyncio.Queue()

    async def on_event(event: str, data: dict[str, Any]) -> None:
        await queue.put((event, data))

    async def run_and_signal_done() -> None:
        try:
            await engine.generate(body.url_list(), body.prompt, on_event=on_event)
        except TableServiceError as exc:
            logger.warning("streaming generation failed", extra={"error": exc.message})
            await queue.put(("error", exc.to_payload()))
        except Exception:
            logger.exception("streaming generation crashed", extra={"prompt": body.prompt[:100]})
            await queue.put(("error", {"error": "Table generation failed"}))
        finally:
            await queue.put(None)  # sentinel

    task = asyncio.create_task(run_and_signal_done())

    while True:
        item = await queue.get()
        if item is None:
            break
        event, data = item
        yield {"event": event, "data": json.dumps(data)}
    await task


def _image_links(links: list[str]) -> list[str]:
    return [link for link in links if _IMAGE_RE.search(link)][:MAX_IMAGES]


async def scrape_content(engine: TableEngine, body: ScrapeRequest) -> ScrapeResponse:
    """Scrape URLs and return their combined markdown without any model call."""
    url_list = engine.validate_urls(body.url_list())
    report = await engine.scraper.scrape_urls(url_list, include_images=body.include_images)
    if not report.sources:
        raise ScrapeFailedError(
            "Could not extract content from the URL(s)",
            details=[e.to_dict() for e in report.scrape_errors],
        )

    blocks = []
    for i, source in enumerate(report.sources, start=1):
        title_line = f"# {source.title}\n\n" if source.title else ""
        blocks.append(f"--- Source {i}: {source.url} ---\n\n{title_line}{source.markdown}\n")

    return ScrapeResponse(
        content="\n\n".join(blocks),
        title=report.sources[0].title or url_list[0],
        images=_image_links([link for s in report.sources for link in s.links]),
        url=url_list[0],
        urls=url_list,
        scrape_errors=[ScrapeIssue(url=e.url, error=e.error) for e in report.scrape_errors],
    )


def render_export(table: Table, fmt: str) -> tuple[str, str, str]:
    """Return ``(body, media_type, filename)`` for *table* in format *fmt*."""
    render, media_type, extension = EXPORTERS[fmt]
    return (
        render(table.columns, table.rows),
        media_type,
        export_filename(table.title, extension),
    )
