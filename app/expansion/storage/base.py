"""
Persistence gateway interface for expansion runs.
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from app.domain.expansion import CoverageGap, ListingCandidate, ScrapeResult


class TrackingUpsertOutcome(str, enum.Enum):
    ATOMIC_UPSERT_OK = "atomic_upsert_ok"
    FALLBACK_UPSERT_OK = "fallback_upsert_ok"
    FAILED = "failed"


@dataclass(frozen=True)
class TrackingUpsertResult:
    """
    Which tracking write path succeeded, or why both failed.
    """

    outcome: TrackingUpsertOutcome
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is not TrackingUpsertOutcome.FAILED


@dataclass(frozen=True)
class LocationCountDrift:
    """
    A location whose cached listing_count differs from the live count.
    """

    slug: str
    city: str
    state: str
    cached_count: int
    actual_count: int

    @property
    def delta(self) -> int:
        return self.actual_count - self.cached_count


class PersistenceGateway(ABC):
    """
    Storage abstraction for directory reads and expansion writes.
    """

    @abstractmethod
    def load_listing_counts(self) -> dict[tuple[str, str, str], int]:
        """
        Active listing counts keyed by (city, state, category), lower-cased.
        """

    @abstractmethod
    def load_last_scraped(self) -> dict[tuple[str, str], datetime]:
        """
        Last scrape time keyed by (city_slug, category).
        """

    @abstractmethod
    def load_existing_source_ids(self) -> set[str]:
        """
        Every non-null source id among active listings.
        """

    @abstractmethod
    def slug_exists(self, slug: str) -> bool:
        """
        Whether a listing already uses this exact slug.
        """

    @abstractmethod
    def ensure_location(self, gap: CoverageGap) -> bool:
        """
        Create the gap's city if absent; return True only when a row was created.
        """

    @abstractmethod
    def insert_listings(self, candidates: Sequence[ListingCandidate]) -> int:
        """
        Resolve slugs then bulk insert; return inserted row count.
        """

    @abstractmethod
    def record_scrape(
        self,
        result: ScrapeResult,
        *,
        scraped_at: datetime | None = None,
    ) -> TrackingUpsertResult:
        """
        Upsert the tracking row for the result's (city_slug, category).
        """

    @abstractmethod
    def recalculate_counts(self) -> bool:
        """
        Recompute every location's listing_count; False on failure.
        """

    @abstractmethod
    def location_count_drift(self) -> list[LocationCountDrift]:
        """
        Locations whose cached count no longer matches their listings.
        """
