"""Table generation engine — scrape, prompt, parse, validate."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError
from pydantic_ai import Agent
from pydantic_ai.models import Model
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider
from pydantic_ai.providers.openrouter import OpenRouterProvider

from src.api.schemas import GenerationMetadata, ScrapeIssue, TableResult, Usage
from src.config import Settings
from src.tables.errors import (
    InputValidationError,
    ModelCallError,
    ScrapeFailedError,
    TableValidationError,
)
from src.tables.events import EventCallback, emit_event, emit_status
from src.tables.parser import parse_table_json
from src.tables.prompts import (
    DEFAULT_MAX_CONTENT_CHARS,
    TABLE_SYSTEM_PROMPT,
    format_sources,
    format_table_prompt,
    truncate_content,
)
from src.tables.scrape import ScrapeClient, ScrapeReport, build_scrape_client
from src.tables.urls import clean_urls, first_url_error

logger = logging.getLogger(__name__)

# Only these keys are taken from model output; provenance is attached here
_TABLE_FIELDS = ("title", "description", "columns", "rows")

_LLM_API_KEY_MAP = {
    "openai": "openai_api_key",
    "openrouter": "openrouter_api_key",
}


def build_model(settings: Settings) -> Model | str:
    """Resolve the pydantic-ai model with the API key held in settings.

    Without a configured key (or for providers not in the key map) the
    ``provider:model`` string is returned and the key comes from the environment.
    """
    attr = _LLM_API_KEY_MAP.get(settings.llm_provider)
    api_key = getattr(settings, attr) if attr else ""
    if not api_key:
        return f"{settings.llm_provider}:{settings.table_llm}"
    if settings.llm_provider == "openrouter":
        provider = OpenRouterProvider(api_key=api_key)
    else:
        provider = OpenAIProvider(api_key=api_key)
    return OpenAIChatModel(settings.table_llm, provider=provider)


@dataclass(frozen=True)
class GenerationConfig:
    """Prompt and limits for one engine; built from settings, never global."""

    system_prompt: str = TABLE_SYSTEM_PROMPT
    max_content_chars: int = DEFAULT_MAX_CONTENT_CHARS
    max_urls: int = 10
    temperature: float = 0.2
    max_tokens: int = 4096
    timeout: float = 120.0

    @classmethod
    def from_settings(cls, settings: Settings) -> GenerationConfig:
        return cls(
            max_content_chars=settings.max_content_chars,
            max_urls=settings.max_urls,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
            timeout=settings.llm_timeout_seconds,
        )


def _reasoning_tokens(usage: Any) -> int:
    """Extract reasoning tokens from PydanticAI usage details, if present."""
    details = getattr(usage, "details", None) or {}
    return details.get("reasoning_tokens", 0)


def _scrape_failure_message(report: ScrapeReport) -> str:
    lines = [f"{e.url}: {e.error}" for e in report.scrape_errors]
    return "Could not extract content from any URL. " + "; ".join(lines)


def _validation_details(exc: ValidationError) -> list[dict[str, Any]]:
    return [
        {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
        for err in exc.errors()
    ]


class TableEngine:
    """Orchestrates the validate -> scrape -> generate -> parse -> validate pipeline."""

    def __init__(
        self,
        settings: Settings,
        scrape_client: ScrapeClient | None = None,
        config: GenerationConfig | None = None,
    ) -> None:
        self._settings = settings
        self._model_name = f"{settings.llm_provider}:{settings.table_llm}"
        self._scraper = scrape_client or build_scrape_client(settings)
        self._config = config or GenerationConfig.from_settings(settings)

    @property
    def scraper(self) -> ScrapeClient:
        return self._scraper

    def validate_urls(self, urls: Sequence[str | None]) -> list[str]:
        """Return the cleaned URL list or raise ``InputValidationError``."""
        url_list = clean_urls(urls)
        if not url_list:
            raise InputValidationError("At least one valid URL is required.")
        if len(url_list) > self._config.max_urls:
            raise InputValidationError(f"Maximum {self._config.max_urls} URLs per request.")
        url_error = first_url_error(url_list)
        if url_error:
            raise InputValidationError(url_error)
        return url_list

    def validate_request(self, urls: Sequence[str | None], prompt: str) -> list[str]:
        url_list = self.validate_urls(urls)
        if not prompt or not prompt.strip():
            raise InputValidationError(
                "A prompt describing what table to generate is required."
            )
        return url_list

    async def generate(
        self,
        urls: Sequence[str | None],
        prompt: str,
        on_event: EventCallback | None = None,
    ) -> TableResult:
        """Run the full pipeline for one request and return the validated table."""
        url_list = self.validate_request(urls, prompt)
        generation_id = uuid.uuid4().hex[:12]

        logger.info(
            "table generation started",
            extra={
                "generation_id": generation_id,
                "prompt": prompt[:100],
                "url_count": len(url_list),
                "model": self._model_name,
            },
        )
        await emit_event(on_event, "started", {"generation_id": generation_id})

        # --- Stage 1: Scrape ---
        await emit_status(on_event, "scraping", f"Fetching content from {len(url_list)} URL(s)...")
        report = await self._scraper.scrape_urls(url_list)
        if not report.sources:
            logger.warning(
                "all scrapes failed",
                extra={"generation_id": generation_id, "url_count": len(url_list)},
            )
            raise ScrapeFailedError(
                _scrape_failure_message(report),
                details=[e.to_dict() for e in report.scrape_errors],
            )

        combined = format_sources(report.sources)
        content = truncate_content(combined, self._config.max_content_chars)
        logger.info(
            "scrape completed",
            extra={
                "generation_id": generation_id,
                "sources": len(report.sources),
                "scrape_errors": len(report.scrape_errors),
                "content_chars": len(combined),
                "truncated": len(content) < len(combined),
            },
        )

        # --- Stage 2: Generate ---
        await emit_status(on_event, "generating", "Building table from scraped content...")
        user_prompt = format_table_prompt(url_list, prompt, content, len(report.sources))
        raw, usage, requests = await self._complete(user_prompt, generation_id)

        # --- Stage 3: Parse and validate ---
        await emit_status(on_event, "validating", "Checking table structure...")
        parsed = parse_table_json(raw)
        source_urls = [s.url for s in report.sources]
        try:
            result = TableResult.model_validate(
                {
                    **{k: parsed[k] for k in _TABLE_FIELDS if k in parsed},
                    "source_urls": source_urls,
                    "generation_id": generation_id,
                    "scrape_errors": [
                        ScrapeIssue(url=e.url, error=e.error) for e in report.scrape_errors
                    ],
                    "usage": usage,
                    "metadata": GenerationMetadata(
                        requests=requests,
                        llm_provider=self._settings.llm_provider,
                        model=self._settings.table_llm,
                        scrape_provider=self._settings.scrape_provider,
                        content_chars=len(content),
                        content_truncated=len(content) < len(combined),
                    ),
                    "created_at": datetime.now(timezone.utc),
                }
            )
        except ValidationError as exc:
            logger.warning(
                "model returned an invalid table",
                extra={"generation_id": generation_id, "errors": exc.error_count()},
            )
            raise TableValidationError(
                "Model did not return a valid table. Try a more specific prompt.",
                details=_validation_details(exc),
            ) from exc

        logger.info(
            "table generation completed",
            extra={
                "generation_id": generation_id,
                "columns": len(result.columns),
                "rows": len(result.rows),
                "total_tokens": usage.total_tokens,
            },
        )
        await emit_event(on_event, "result", result.model_dump(mode="json", by_alias=True))
        await emit_event(on_event, "done", {})
        return result

    async def _complete(self, user_prompt: str, generation_id: str) -> tuple[str, Usage, int]:
        """Call the model once; any provider failure becomes ``ModelCallError``."""
        model_settings = {
            "temperature": self._config.temperature,
            "max_tokens": self._config.max_tokens,
            "timeout": self._config.timeout,
        }
        try:
            agent = Agent(build_model(self._settings), system_prompt=self._config.system_prompt)
            run_result = await asyncio.wait_for(
                agent.run(user_prompt, model_settings=model_settings),
                timeout=self._config.timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.warning("model call timed out", extra={"generation_id": generation_id})
            raise ModelCallError(
                f"AI generation failed: timed out after {self._config.timeout:g}s"
            ) from exc
        except Exception as exc:
            logger.warning(
                "model call failed", extra={"generation_id": generation_id}, exc_info=True
            )
            raise ModelCallError(f"AI generation failed: {exc}") from exc

        run_usage = run_result.usage()
        prompt_tokens = run_usage.input_tokens or 0
        completion_tokens = (run_usage.output_tokens or 0) + _reasoning_tokens(run_usage)
        usage = Usage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        )
        output = run_result.output
        return (output if isinstance(output, str) else str(output)), usage, run_usage.requests or 0
