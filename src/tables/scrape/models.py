"""Data models for the scrape submodule."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field


@dataclass(frozen=True)
class ScrapeResult:
    """A successfully scraped page."""

    url: str
    markdown: str
    title: str = ""
    links: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ScrapeError:
    """A URL that failed to scrape or produced no content."""

    url: str
    error: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


@dataclass
class ScrapeReport:
    """Outcome of one scrape invocation.

    Every requested URL lands in exactly one of ``sources`` or ``scrape_errors``.
    """

    sources: list[ScrapeResult] = field(default_factory=list)
    scrape_errors: list[ScrapeError] = field(default_factory=list)

    @classmethod
    def all_failed(cls, urls: list[str], error: str) -> ScrapeReport:
        return cls(scrape_errors=[ScrapeError(url=url, error=error) for url in urls])
