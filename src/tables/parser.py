"""Recovery of the table JSON object from raw model output.

Models do not reliably honour "raw JSON only", so extraction runs a chain of
pure ``str -> dict | None`` stages and keeps the first success:

1. the body of a fenced code block, when one is present;
2. otherwise the whole trimmed text;
3. the greedy span from the first ``{`` to the last ``}``.
"""

from __future__ import annotations

import json
import re
from typing import Any, Callable

from src.tables.errors import TableParseError

_FENCE_RE = re.compile(r"```(?:json)?\n?([\s\S]*?)\n?```", re.IGNORECASE)
_BRACE_RE = re.compile(r"\{[\s\S]*\}")

PARSE_ERROR_MESSAGE = "Could not parse table JSON from model response."

Stage = Callable[[str], "dict[str, Any] | None"]


def _loads_object(text: str) -> dict[str, Any] | None:
    try:
        value = json.loads(text)
    except ValueError:
        return None
    return value if isinstance(value, dict) else None


def from_fence(raw: str) -> dict[str, Any] | None:
    match = _FENCE_RE.search(raw)
    if match is None:
        return None
    return _loads_object(match.group(1).strip())


def from_whole_text(raw: str) -> dict[str, Any] | None:
    # A fenced reply that failed to parse must not be retried as a whole
    if _FENCE_RE.search(raw):
        return None
    return _loads_object(raw.strip())


def from_brace_span(raw: str) -> dict[str, Any] | None:
    match = _BRACE_RE.search(raw)
    if match is None:
        return None
    return _loads_object(match.group(0))


STAGES: tuple[Stage, ...] = (from_fence, from_whole_text, from_brace_span)


def parse_table_json(raw: str) -> dict[str, Any]:
    """Return the JSON object embedded in *raw*, or raise ``TableParseError``."""
    if raw:
        for stage in STAGES:
            parsed = stage(raw)
            if parsed is not None:
                return parsed
    raise TableParseError(PARSE_ERROR_MESSAGE)
