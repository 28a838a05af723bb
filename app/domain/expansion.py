"""
app/domain/expansion.py

Domain models for the coverage-gap expansion run.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

NEVER_SCRAPED_DAYS = 999


@dataclass(frozen=True)
class CategoryDefinition:
    """
    Static directory category and the phrases used to search for it.
    """

    slug: str
    display_name: str
    search_queries: tuple[str, ...]
    default_subcategories: tuple[str, ...] = ()

    @property
    def primary_query(self) -> str:
        return self.search_queries[0]


@dataclass(frozen=True)
class LocationReference:
    """
    Static city entry with census population.
    """

    slug: str
    city: str
    state: str
    state_abbr: str
    population: int
    latitude: float
    longitude: float


@dataclass(frozen=True)
class CoverageGap:
    """
    One under-covered (city, category) pair eligible for expansion.
    """

    city_slug: str
    city: str
    state: str
    state_abbr: str
    population: int
    category: str
    category_name: str
    current_listings: int
    coverage_score: float
    last_scraped_at: datetime | None
    days_since_scrape: int
    estimated_cost: float
    latitude: float
    longitude: float

    @property
    def never_scraped(self) -> bool:
        return self.last_scraped_at is None

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["last_scraped_at"] = (
            self.last_scraped_at.isoformat() if self.last_scraped_at else None
        )
        return payload


class ScrapeStatus:
    SUCCESS = "success"
    NO_RESULTS = "no_results"
    ERROR = "error"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ScrapeResult:
    """
    Outcome of processing one selected gap.
    """

    city_slug: str
    category: str
    results_count: int
    new_listings_count: int
    api_cost: float
    status: str
    error_message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ListingCandidate:
    """
    Canonical listing row built from one provider record, not yet persisted.
    """

    name: str
    slug: str
    category: str
    city: str
    state: str
    zip: str
    latitude: float | None
    longitude: float | None
    source: str
    source_id: str | None
    description: str | None = None
    short_description: str | None = None
    subcategories: list[str] = field(default_factory=list)
    address: str | None = None
    country: str = "US"
    website: str | None = None
    phone: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    is_active: bool = True
    is_featured: bool = False
    enrichment_status: str = "raw"

    def to_row(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class GapSelection:
    """
    Ordered subset of gaps chosen for one run.
    """

    gaps: list[CoverageGap]
    estimated_cost: float
