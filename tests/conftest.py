"""
Shared fixtures: in-memory SQLite store, small reference data, fake provider.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timezone
from typing import Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from app.domain.expansion import CategoryDefinition, CoverageGap, LocationReference
from app.expansion.config.models import ExpansionSettings
from db.base import Base
from db.models import Listing
from db.session import build_session_factory

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def db_session() -> Iterator[Session]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = build_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def settings(tmp_path) -> ExpansionSettings:
    return ExpansionSettings(
        outscraper_api_key="test-key",
        outscraper_base_url="https://api.example.test/maps/search-v2",
        cost_per_result=0.003,
        language="en",
        region="us",
        request_timeout_seconds=5.0,
        request_delay_seconds=1.0,
        reference_data_path="app/expansion/config/reference_data.json",
        report_dir=str(tmp_path / "expansion-logs"),
        report_top_gaps=50,
        slug_max_attempts=100,
    )


@pytest.fixture()
def coworking() -> CategoryDefinition:
    return CategoryDefinition(
        slug="coworking",
        display_name="Coworking Spaces",
        search_queries=("coworking space", "shared office space"),
    )


@pytest.fixture()
def accountant() -> CategoryDefinition:
    return CategoryDefinition(
        slug="accountant",
        display_name="Accountants & CPAs",
        search_queries=("accountant for small business", "CPA"),
        default_subcategories=("accounting",),
    )


@pytest.fixture()
def austin() -> LocationReference:
    return LocationReference(
        slug="austin-tx",
        city="Austin",
        state="Texas",
        state_abbr="TX",
        population=978908,
        latitude=30.2672,
        longitude=-97.7431,
    )


@pytest.fixture()
def boise() -> LocationReference:
    return LocationReference(
        slug="boise-id",
        city="Boise",
        state="Idaho",
        state_abbr="ID",
        population=235684,
        latitude=43.615,
        longitude=-116.2023,
    )


def make_gap(
    *,
    city_slug: str = "austin-tx",
    city: str = "Austin",
    state: str = "Texas",
    state_abbr: str = "TX",
    category: str = "coworking",
    category_name: str = "Coworking Spaces",
    population: int = 978908,
    current_listings: int = 0,
    score: float | None = None,
    cost: float = 0.15,
) -> CoverageGap:
    return CoverageGap(
        city_slug=city_slug,
        city=city,
        state=state,
        state_abbr=state_abbr,
        population=population,
        category=category,
        category_name=category_name,
        current_listings=current_listings,
        coverage_score=score if score is not None else population / (current_listings + 1),
        last_scraped_at=None,
        days_since_scrape=999,
        estimated_cost=cost,
        latitude=30.2672,
        longitude=-97.7431,
    )


def make_listing(
    *,
    slug: str,
    city: str = "Austin",
    state: str = "TX",
    category: str = "coworking",
    source_id: str | None = None,
    is_active: bool = True,
) -> Listing:
    return Listing(
        name=slug.replace("-", " ").title(),
        slug=slug,
        category=category,
        city=city,
        state=state,
        country="US",
        source="outscraper" if source_id else "manual",
        source_id=source_id,
        is_active=is_active,
        is_featured=False,
        enrichment_status="raw",
    )


def outscraper_record(
    name: str,
    *,
    place_id: str | None = None,
    google_id: str | None = None,
    full_address: str | None = None,
    **extra: Any,
) -> dict[str, Any]:
    record: dict[str, Any] = {"name": name, **extra}
    if place_id is not None:
        record["place_id"] = place_id
    if google_id is not None:
        record["google_id"] = google_id
    if full_address is not None:
        record["full_address"] = full_address
    return record


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeHTTPSession:
    """
    Stands in for requests.Session; replays queued responses in order.
    """

    def __init__(self, responses: list[Any]) -> None:
        self._responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def request(self, **kwargs: Any) -> FakeResponse:
        self.calls.append(kwargs)
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response
