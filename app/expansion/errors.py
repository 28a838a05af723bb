"""
Exception types raised by the expansion pipeline.
"""

from __future__ import annotations


class ExpansionError(Exception):
    """Base exception for expansion run failures."""


class ConfigurationError(ExpansionError):
    """Raised when required credentials or settings are missing at startup."""


class UnknownCategoryError(ExpansionError):
    """Raised when a requested category slug is not in the reference data."""

    def __init__(self, slug: str, available: list[str]) -> None:
        self.slug = slug
        self.available = available
        super().__init__(
            f"Unknown category: {slug}. Available categories: {', '.join(available)}"
        )


class ReferenceDataError(ExpansionError):
    """Raised when the static category/city reference file is invalid."""


class AcquisitionError(ExpansionError):
    """Raised when the search provider call fails or returns a malformed payload."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class PersistenceError(ExpansionError):
    """Raised when a listing or location write fails."""
