"""Fixtures — fake Redis store, mocked settings, sample tables."""

from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from fakeredis.aioredis import FakeRedis

from src.api.schemas import Table
from src.store.redis import TableStore


def _make_settings(**overrides):
    defaults = dict(
        api_key="test-secret-key",
        scrape_provider="http",
        scrape_api_url="https://scrape.test",
        scrape_api_key="scrape-key",
        scrape_timeout_seconds=5.0,
        firecrawl_api_key="",
        firecrawl_api_url="",
        openai_api_key="",
        openrouter_api_key="",
        llm_provider="openai",
        table_llm="gpt-4o-mini",
        llm_temperature=0.2,
        llm_max_tokens=4096,
        llm_timeout_seconds=10.0,
        max_content_chars=14000,
        max_urls=10,
    )
    defaults.update(overrides)
    settings = MagicMock()
    for k, v in defaults.items():
        setattr(settings, k, v)
    return settings


@pytest.fixture
def make_settings():
    """Factory for MagicMock settings with test defaults."""
    return _make_settings


@pytest.fixture
def settings():
    return _make_settings()


@pytest.fixture
def sample_table() -> Table:
    return Table.model_validate(
        {
            "title": "GPU Prices",
            "description": "Current GPU list prices",
            "columns": [
                {"key": "model", "label": "Model", "type": "text"},
                {"key": "price_usd", "label": "Price (USD)", "type": "number"},
                {"key": "url", "label": "Link", "type": "url"},
            ],
            "rows": [
                {"model": "RTX 4090", "price_usd": 1599, "url": "https://example.com/4090"},
                {"model": "RTX 4080", "price_usd": 1199.0},
            ],
            "sourceUrls": ["https://example.com/gpus"],
        }
    )


@pytest_asyncio.fixture
async def redis_client():
    client = FakeRedis(decode_responses=True)
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def table_store(redis_client):
    """TableStore backed by an in-memory FakeRedis instance."""
    return TableStore(redis_client)
