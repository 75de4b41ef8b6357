"""Prompt templates for table generation."""

from src.tables.scrape.models import ScrapeResult

DEFAULT_MAX_CONTENT_CHARS = 14000

TABLE_SYSTEM_PROMPT = """\
You are a data-extraction and table-generation expert.

Given scraped webpage content and a user request, extract structured tabular \
data and return it as raw valid JSON. No markdown fences, no explanation, no \
extra text.

Use this exact schema:
{
  "title": "Descriptive title for this table",
  "description": "One-sentence description of what this data represents",
  "columns": [
    { "key": "snake_case_key", "label": "Human Readable Label", "type": "text|number|date|url|percentage" }
  ],
  "rows": [
    { "snake_case_key": "cell value" }
  ]
}

Rules:
- Create 3 to 8 columns; never exceed 8.
- Extract as many rows as the content supports (max 100 rows).
- Column keys MUST be unique lowercase_snake_case with no spaces.
- type "number"     -> store only the numeric value (e.g. 42, not "$42").
- type "percentage" -> store only the numeric value (e.g. 12.5, not "12.5%"). Put "(%)" in the label.
- type "url"        -> store the full URL string.
- type "date"       -> use ISO 8601 (YYYY-MM-DD) where possible.
- type "text"       -> everything else.
- If numbers have units put the unit in the label (e.g. "Price (USD)", "Size (MB)").
- Order columns logically: primary identifier column first, then descriptive, then numeric.
- Prioritise what the user requests in their prompt.
- Never return empty rows or columns.
- If you cannot find enough structured data to build a table, return an empty \
rows array and explain in "description". Always include every schema field.
"""

TABLE_USER_PROMPT = """\
URL(s): {urls}

User request: {prompt}

Scraped content from {source_count} source(s):

{content}
"""


def format_sources(sources: list[ScrapeResult]) -> str:
    """Concatenate scraped markdown, tagging each block with its source URL."""
    return "\n\n".join(
        f"--- SOURCE {i}: {source.url} ---\n\n{source.markdown}"
        for i, source in enumerate(sources, start=1)
    )


def truncate_content(content: str, max_chars: int = DEFAULT_MAX_CONTENT_CHARS) -> str:
    if len(content) <= max_chars:
        return content
    return content[:max_chars]


def format_table_prompt(
    urls: list[str], prompt: str, content: str, source_count: int
) -> str:
    return TABLE_USER_PROMPT.format(
        urls=", ".join(urls),
        prompt=prompt.strip(),
        source_count=source_count,
        content=content,
    )
