"""Error taxonomy for table generation.

Every failure of a generation request is raised as a subclass of
``TableServiceError`` carrying the HTTP status the API layer should answer
with, so routes never need to know which stage failed.
"""

from __future__ import annotations

from typing import Any


class TableServiceError(Exception):
    """Base class for request-scoped failures surfaced to the caller."""

    status_code: int = 500

    def __init__(self, message: str, details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class InputValidationError(TableServiceError):
    """Bad caller input: no URL, bad URL, blank prompt. No external call was made."""

    status_code = 400


class ScrapeFailedError(TableServiceError):
    """No requested URL yielded usable content."""

    status_code = 422


class ModelCallError(TableServiceError):
    """The language model endpoint failed, timed out or was unreachable."""

    status_code = 502


class TableParseError(TableServiceError):
    """Model output could not be recovered as a JSON object."""

    status_code = 500


class TableValidationError(TableServiceError):
    """Model output parsed but violates the table structure contract."""

    status_code = 500
