"""Field extraction from scrape-service response items.

The service's response envelope is not stable, so each field is read by an
ordered tuple of accessor probes. The first probe yielding a non-empty value
wins; keeping the probes as data makes the priority order auditable.
"""

from __future__ import annotations

from typing import Any, Callable

Probe = Callable[[Any], Any]


def _path(*keys: str) -> Probe:
    """Build a probe that walks nested dict keys, returning None on any miss."""

    def probe(item: Any) -> Any:
        node = item
        for key in keys:
            if not isinstance(node, dict):
                return None
            node = node.get(key)
        return node

    probe.__name__ = "probe_" + "_".join(keys)
    return probe


MARKDOWN_PROBES: tuple[Probe, ...] = (
    _path("data", "data", "markdown"),
    _path("data", "markdown"),
    _path("markdown"),
    _path("data", "content"),
    _path("data", "text"),
)

TITLE_PROBES: tuple[Probe, ...] = (
    _path("data", "metadata", "title"),
    _path("data", "title"),
    _path("metadata", "title"),
    _path("title"),
)

LINK_PROBES: tuple[Probe, ...] = (
    _path("data", "links"),
    _path("links"),
)


def first_match(item: Any, probes: tuple[Probe, ...]) -> Any:
    """Return the first truthy value produced by *probes*, or None."""
    for probe in probes:
        value = probe(item)
        if value:
            return value
    return None


def extract_markdown(item: Any) -> str:
    value = first_match(item, MARKDOWN_PROBES)
    return value if isinstance(value, str) else ""


def extract_title(item: Any) -> str:
    value = first_match(item, TITLE_PROBES)
    return value if isinstance(value, str) else ""


def extract_links(item: Any) -> list[str]:
    """Return links as plain URL strings; ``{"url": ...}`` objects are flattened."""
    value = first_match(item, LINK_PROBES)
    if not isinstance(value, list):
        return []
    links: list[str] = []
    for link in value:
        if isinstance(link, str) and link:
            links.append(link)
        elif isinstance(link, dict) and isinstance(link.get("url"), str) and link["url"]:
            links.append(link["url"])
    return links


def extract_error_message(body: Any, fallback: str) -> str:
    """Pull a human-readable error out of a failed response body."""
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, str) and error:
            return error
        if isinstance(error, dict) and isinstance(error.get("message"), str) and error["message"]:
            return error["message"]
        message = body.get("message")
        if isinstance(message, str) and message:
            return message
    return fallback


def batch_items(body: Any) -> list[Any]:
    """Unwrap a batch response: a bare list, or a list under ``data`` / ``results``."""
    if isinstance(body, list):
        return body
    if isinstance(body, dict):
        for key in ("data", "results"):
            value = body.get(key)
            if isinstance(value, list):
                return value
    return []
