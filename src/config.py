"""Pydantic Settings — loads configuration from environment variables."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "extra": "ignore"}

    api_key: str

    scrape_provider: Literal["http", "firecrawl"] = "http"
    scrape_api_url: str = "https://api.buildsaas.dev"
    scrape_api_key: str = ""
    scrape_timeout_seconds: float = 60.0
    firecrawl_api_key: str = ""
    firecrawl_api_url: str = ""

    openai_api_key: str = ""
    openrouter_api_key: str = ""
    llm_provider: str = "openai"
    table_llm: str = "gpt-4o-mini"
    llm_temperature: float = 0.2
    llm_max_tokens: int = 4096
    llm_timeout_seconds: float = 120.0

    max_content_chars: int = 14000
    max_urls: int = 10

    redis_url: str = "redis://localhost:6379"
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
