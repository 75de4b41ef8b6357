"""CSV and Markdown rendering of tables."""

from __future__ import annotations

import csv
import io
import re
from collections.abc import Mapping, Sequence
from typing import Any

from src.api.schemas import Column

_FILENAME_RE = re.compile(r"[^a-z0-9]", re.IGNORECASE)


def cell_text(value: Any) -> str:
    """Render a cell the way a JSON consumer would display it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def to_csv(columns: Sequence[Column], rows: Sequence[Mapping[str, Any]]) -> str:
    """Header of labels, then one line per row; every field quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow([c.label for c in columns])
    for row in rows:
        writer.writerow([cell_text(row.get(c.key)) for c in columns])
    return buffer.getvalue().rstrip("\n")


def to_markdown(columns: Sequence[Column], rows: Sequence[Mapping[str, Any]]) -> str:
    header = "| " + " | ".join(c.label for c in columns) + " |"
    divider = "| " + " | ".join("---" for _ in columns) + " |"
    lines = [
        "| " + " | ".join(cell_text(row.get(c.key)) for c in columns) + " |"
        for row in rows
    ]
    return "\n".join([header, divider, *lines])


EXPORTERS = {
    "csv": (to_csv, "text/csv; charset=utf-8", "csv"),
    "markdown": (to_markdown, "text/markdown; charset=utf-8", "md"),
}


def export_filename(title: str, extension: str) -> str:
    stem = _FILENAME_RE.sub("-", title or "table").lower() or "table"
    return f"{stem}.{extension}"
