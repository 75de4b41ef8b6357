"""Request/response Pydantic models."""

from collections.abc import Mapping
from datetime import datetime
from types import MappingProxyType
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator
from pydantic.alias_generators import to_camel

MAX_COLUMNS = 8
MAX_ROWS = 100
DEFAULT_TITLE = "Generated Table"

ColumnType = Literal["text", "number", "date", "url", "percentage"]

Row = Mapping[str, Any]


class CamelModel(BaseModel):
    """Serialises as camelCase on the wire; accepts either spelling on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Column(CamelModel):
    model_config = ConfigDict(frozen=True)

    key: str = Field(pattern=r"^[a-z][a-z0-9_]*$")
    label: str
    type: ColumnType = "text"

    @model_validator(mode="before")
    @classmethod
    def _label_defaults_to_key(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("label") and data.get("key"):
            return {**data, "label": data["key"]}
        return data


class Table(CamelModel):
    """A validated table. Frozen, with read-only rows: callers sort or filter copies."""

    model_config = ConfigDict(frozen=True)

    title: str = DEFAULT_TITLE
    description: str = ""
    columns: list[Column] = Field(min_length=1, max_length=MAX_COLUMNS)
    rows: tuple[Row, ...] = Field(default_factory=tuple, max_length=MAX_ROWS)
    source_urls: list[str] = Field(default_factory=list)

    @field_validator("title", mode="before")
    @classmethod
    def _default_title(cls, value: Any) -> Any:
        return value or DEFAULT_TITLE

    @field_validator("description", mode="before")
    @classmethod
    def _default_description(cls, value: Any) -> Any:
        return value or ""

    @field_validator("rows", mode="before")
    @classmethod
    def _default_rows(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("rows")
    @classmethod
    def _freeze_rows(cls, rows: tuple[Row, ...]) -> tuple[Row, ...]:
        return tuple(MappingProxyType(dict(row)) for row in rows)

    @field_serializer("rows")
    def _serialize_rows(self, rows: tuple[Row, ...]) -> list[dict[str, Any]]:
        return [dict(row) for row in rows]

    @field_validator("columns")
    @classmethod
    def _unique_keys(cls, columns: list[Column]) -> list[Column]:
        seen: set[str] = set()
        for column in columns:
            if column.key in seen:
                raise ValueError(f"duplicate column key {column.key!r}")
            seen.add(column.key)
        return columns


class ScrapeIssue(CamelModel):
    url: str
    error: str


class Usage(CamelModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class GenerationMetadata(CamelModel):
    requests: int = 0
    llm_provider: str = ""
    model: str = ""
    scrape_provider: str = ""
    content_chars: int = 0
    content_truncated: bool = False


class TableResult(Table):
    """A freshly generated table plus advisory scrape failures and usage."""

    generation_id: str
    scrape_errors: list[ScrapeIssue] = Field(default_factory=list)
    usage: Usage = Usage()
    metadata: GenerationMetadata = GenerationMetadata()
    created_at: datetime


class SavedTable(Table):
    id: str
    user_id: str
    created_at: datetime


class SavedTableSummary(CamelModel):
    id: str
    title: str
    description: str = ""
    row_count: int = 0
    created_at: datetime


class GenerateRequest(CamelModel):
    urls: list[str | None] = []
    url: str | None = None
    prompt: str = ""
    mode: Literal["sync", "stream"] = "sync"

    def url_list(self) -> list[str | None]:
        if any(u and u.strip() for u in self.urls):
            return self.urls
        return [self.url] if self.url else []


class ScrapeRequest(CamelModel):
    urls: list[str | None] = []
    url: str | None = None
    include_images: bool = False

    def url_list(self) -> list[str | None]:
        if any(u and u.strip() for u in self.urls):
            return self.urls
        return [self.url] if self.url else []


class ScrapeResponse(CamelModel):
    content: str
    title: str
    images: list[str] = []
    url: str
    urls: list[str] = []
    scrape_errors: list[ScrapeIssue] = []


class ErrorResponse(BaseModel):
    error: str
    details: list[dict[str, Any]] | None = None
