"""Service layer tests: streamed generation events, scrape-only content and export rendering."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.api.schemas import GenerateRequest, ScrapeRequest
from src.api.service import render_export, scrape_content, stream_generation
from src.tables.errors import ModelCallError, ScrapeFailedError
from src.tables.scrape import ScrapeError, ScrapeReport, ScrapeResult


async def _collect(gen) -> list[tuple[str, dict]]:
    return [(item["event"], json.loads(item["data"])) for item in [i async for i in gen]]


def _engine_emitting(*events, raises=None):
    """Engine double whose generate() replays *events* through on_event."""

    async def generate(urls, prompt, on_event=None):
        for name, data in events:
            await on_event(name, data)
        if raises is not None:
            raise raises

    engine = MagicMock()
    engine.generate = AsyncMock(side_effect=generate)
    return engine


BODY = GenerateRequest(urls=["https://a.com"], prompt="cities", mode="stream")


@pytest.mark.asyncio
async def test_stream_forwards_events_in_order():
    engine = _engine_emitting(
        ("started", {"generation_id": "abc"}),
        ("status", {"step": "scraping", "message": "..."}),
        ("result", {"title": "Cities"}),
        ("done", {}),
    )

    events = await _collect(stream_generation(engine, BODY))

    assert [name for name, _ in events] == ["started", "status", "result", "done"]
    assert events[2][1] == {"title": "Cities"}
    engine.generate.assert_awaited_once()


@pytest.mark.asyncio
async def test_stream_reports_pipeline_errors_with_payload():
    engine = _engine_emitting(
        ("started", {"generation_id": "abc"}),
        raises=ModelCallError("AI generation failed: boom"),
    )

    events = await _collect(stream_generation(engine, BODY))

    assert events[-1] == ("error", {"error": "AI generation failed: boom"})


@pytest.mark.asyncio
async def test_stream_hides_unexpected_errors():
    engine = _engine_emitting(raises=RuntimeError("secret internals"))

    events = await _collect(stream_generation(engine, BODY))

    assert events == [("error", {"error": "Table generation failed"})]


def _scrape_engine(report: ScrapeReport) -> MagicMock:
    engine = MagicMock()
    engine.validate_urls = MagicMock(side_effect=lambda urls: [u.strip() for u in urls])
    engine.scraper.scrape_urls = AsyncMock(return_value=report)
    return engine


@pytest.mark.asyncio
async def test_scrape_content_filters_images_and_keeps_errors():
    links = [f"https://a.com/img{i}.png" for i in range(25)] + [
        "https://a.com/page",
        "https://a.com/photo.JPG?w=200",
    ]
    report = ScrapeReport(
        sources=[
            ScrapeResult(url="https://a.com", markdown="alpha", title="", links=links),
        ],
        scrape_errors=[ScrapeError(url="https://b.com", error="Scrape failed (500)")],
    )
    engine = _scrape_engine(report)

    resp = await scrape_content(engine, ScrapeRequest(url="https://a.com", include_images=True))

    assert resp.content == "--- Source 1: https://a.com ---\n\nalpha\n"
    assert resp.title == "https://a.com"
    assert len(resp.images) == 20
    assert all(link.endswith(".png") for link in resp.images)
    assert resp.scrape_errors[0].error == "Scrape failed (500)"
    engine.scraper.scrape_urls.assert_awaited_once_with(["https://a.com"], include_images=True)


@pytest.mark.asyncio
async def test_scrape_content_raises_when_nothing_extracted():
    report = ScrapeReport(scrape_errors=[ScrapeError(url="https://a.com", error="No content extracted")])

    with pytest.raises(ScrapeFailedError) as excinfo:
        await scrape_content(_scrape_engine(report), ScrapeRequest(urls=["https://a.com"]))

    assert excinfo.value.status_code == 422
    assert excinfo.value.details == [{"url": "https://a.com", "error": "No content extracted"}]


def test_render_export_csv(sample_table):
    body, media_type, filename = render_export(sample_table, "csv")

    assert body.splitlines()[0] == '"Model","Price (USD)","Link"'
    assert body.splitlines()[2] == '"RTX 4080","1199",""'
    assert media_type == "text/csv; charset=utf-8"
    assert filename == "gpu-prices.csv"


def test_render_export_markdown(sample_table):
    body, media_type, filename = render_export(sample_table, "markdown")

    assert body.splitlines()[1] == "| --- | --- | --- |"
    assert media_type.startswith("text/markdown")
    assert filename == "gpu-prices.md"
