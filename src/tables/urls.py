"""URL list normalisation and safety checks for scrape targets."""

from __future__ import annotations

import ipaddress
import re
from collections.abc import Sequence
from urllib.parse import urlparse

_URL_RE = re.compile(r"^https?://\S+$", re.IGNORECASE)

_VALID_SCHEMES = {"http", "https"}

_BLOCKED_HOSTS = {"localhost", "localhost.localdomain"}


def clean_urls(urls: Sequence[str | None] | None) -> list[str]:
    """Strip entries, drop blanks and duplicates, keep first-seen order."""
    seen: set[str] = set()
    cleaned: list[str] = []
    for raw in urls or []:
        url = str(raw or "").strip()
        if not url or url in seen:
            continue
        seen.add(url)
        cleaned.append(url)
    return cleaned


def _is_internal_address(hostname: str) -> bool:
    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_unspecified
        or address.is_reserved
        or address.is_multicast
    )


def check_url(url: str) -> str | None:
    """Return an error message if *url* may not be scraped, else ``None``.

    Only public http(s) URLs pass. Loopback, private, link-local and
    unspecified addresses are rejected, as are embedded credentials.
    """
    if not url:
        return "URL is required"
    if not _URL_RE.match(url):
        return "URL must start with http:// or https://"

    try:
        parsed = urlparse(url)
        hostname = (parsed.hostname or "").lower()
    except ValueError:
        return "Invalid URL format"
    if parsed.scheme.lower() not in _VALID_SCHEMES:
        return "URL protocol not allowed"
    if parsed.username or parsed.password:
        return "URLs with embedded credentials are not allowed"
    if not hostname:
        return "Invalid URL format"
    if hostname in _BLOCKED_HOSTS or hostname.endswith(".localhost"):
        return "URL host not allowed"
    if _is_internal_address(hostname):
        return "Private or internal URLs are not allowed"
    return None


def first_url_error(urls: list[str]) -> str | None:
    for url in urls:
        error = check_url(url)
        if error:
            return f"{error}: {url}"
    return None
