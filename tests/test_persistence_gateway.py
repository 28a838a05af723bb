"""
tests/test_persistence_gateway.py

SQLAlchemy gateway against in-memory SQLite. SQLite has no record_scrape()
function, so the tracking write exercises the direct-upsert path by default.
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.exc import InvalidRequestError
from sqlalchemy.pool import StaticPool

from app.domain.expansion import ListingCandidate, ScrapeResult, ScrapeStatus
from app.expansion.gap_analyzer import listing_count_key
from app.expansion.storage import SQLAlchemyPersistenceGateway, TrackingUpsertOutcome
from db.models import ExpansionTracking, Listing, Location
from db.session import build_session_factory
from tests.conftest import NOW, make_gap, make_listing


@pytest.fixture()
def gateway(db_session) -> SQLAlchemyPersistenceGateway:
    return SQLAlchemyPersistenceGateway(session=db_session)


def _candidate(slug: str, source_id: str | None = None, city: str = "Austin") -> ListingCandidate:
    return ListingCandidate(
        name="Acme Coffee",
        slug=slug,
        category="coworking",
        city=city,
        state="TX",
        zip="78701",
        latitude=30.27,
        longitude=-97.74,
        source="outscraper",
        source_id=source_id,
        details={"rating": 4.5},
    )


def _result(status: str = ScrapeStatus.SUCCESS, cost: float = 0.15) -> ScrapeResult:
    return ScrapeResult(
        city_slug="austin-tx",
        category="coworking",
        results_count=50,
        new_listings_count=12,
        api_cost=cost,
        status=status,
    )


class TestReads:
    def test_listing_counts_only_active(self, db_session, gateway) -> None:
        db_session.add_all(
            [
                make_listing(slug="a"),
                make_listing(slug="b"),
                make_listing(slug="c", is_active=False),
                make_listing(slug="d", category="accountant"),
            ]
        )
        db_session.commit()

        counts = gateway.load_listing_counts()

        assert counts[listing_count_key("Austin", "TX", "coworking")] == 2
        assert counts[listing_count_key("Austin", "TX", "accountant")] == 1

    def test_existing_source_ids(self, db_session, gateway) -> None:
        db_session.add_all(
            [
                make_listing(slug="a", source_id="X"),
                make_listing(slug="b", source_id="Y", is_active=False),
                make_listing(slug="c"),
            ]
        )
        db_session.commit()

        assert gateway.load_existing_source_ids() == {"X"}

    def test_last_scraped_empty_when_table_missing(self) -> None:
        engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        session = build_session_factory(engine)()
        try:
            assert SQLAlchemyPersistenceGateway(session=session).load_last_scraped() == {}
        finally:
            session.close()
            engine.dispose()


class TestEnsureLocation:
    def test_creates_once(self, db_session, gateway) -> None:
        gap = make_gap()

        assert gateway.ensure_location(gap) is True
        assert gateway.ensure_location(gap) is False

        rows = db_session.scalars(select(Location)).all()
        assert len(rows) == 1
        assert rows[0].slug == "austin-tx"
        assert rows[0].state == "TX"
        assert rows[0].state_full == "Texas"
        assert rows[0].listing_count == 0


class TestInsertListings:
    def test_resolves_slugs_against_store_and_batch(self, db_session, gateway) -> None:
        db_session.add(make_listing(slug="acme-coffee-austin-tx"))
        db_session.commit()

        inserted = gateway.insert_listings(
            [
                _candidate("acme-coffee-austin-tx", source_id="X"),
                _candidate("acme-coffee-austin-tx", source_id="Y"),
            ]
        )

        assert inserted == 2
        slugs = set(db_session.scalars(select(Listing.slug)))
        assert slugs == {
            "acme-coffee-austin-tx",
            "acme-coffee-austin-tx-1",
            "acme-coffee-austin-tx-2",
        }
        stored = db_session.scalars(select(Listing).where(Listing.source_id == "X")).one()
        assert stored.details == {"rating": 4.5}
        assert stored.enrichment_status == "raw"

    def test_empty_batch_is_noop(self, gateway) -> None:
        assert gateway.insert_listings([]) == 0


class TestRecordScrape:
    def test_falls_back_to_direct_upsert(self, db_session, gateway) -> None:
        first = gateway.record_scrape(_result(), scraped_at=NOW - timedelta(days=40))
        second = gateway.record_scrape(
            _result(status=ScrapeStatus.NO_RESULTS, cost=0.03),
            scraped_at=NOW,
        )

        assert first.outcome is TrackingUpsertOutcome.FALLBACK_UPSERT_OK
        assert second.ok
        rows = db_session.scalars(select(ExpansionTracking)).all()
        assert len(rows) == 1
        assert rows[0].status == "no_results"
        assert rows[0].api_cost == pytest.approx(0.03)

        last_scraped = gateway.load_last_scraped()
        assert last_scraped[("austin-tx", "coworking")].replace(tzinfo=None) == NOW.replace(tzinfo=None)

    def test_atomic_function_path(self, gateway, monkeypatch) -> None:
        calls = []
        monkeypatch.setattr(gateway, "_call_record_scrape_function", calls.append)

        outcome = gateway.record_scrape(_result())

        assert outcome.outcome is TrackingUpsertOutcome.ATOMIC_UPSERT_OK
        assert len(calls) == 1

    def test_non_driver_error_on_atomic_path_still_falls_back(self, db_session, gateway, monkeypatch) -> None:
        def _fail(result):
            raise InvalidRequestError("function call could not be compiled")

        monkeypatch.setattr(gateway, "_call_record_scrape_function", _fail)

        outcome = gateway.record_scrape(_result(), scraped_at=NOW)

        assert outcome.outcome is TrackingUpsertOutcome.FALLBACK_UPSERT_OK
        assert len(db_session.scalars(select(ExpansionTracking)).all()) == 1

    def test_failure_is_reported_not_raised(self) -> None:
        engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        session = build_session_factory(engine)()
        try:
            outcome = SQLAlchemyPersistenceGateway(session=session).record_scrape(_result())
        finally:
            session.close()
            engine.dispose()

        assert outcome.outcome is TrackingUpsertOutcome.FAILED
        assert not outcome.ok
        assert outcome.error


class TestRecount:
    def test_recount_matches_active_listings_and_clears_drift(self, db_session, gateway) -> None:
        gateway.ensure_location(make_gap())
        gateway.ensure_location(make_gap(city_slug="boise-id", city="Boise", state="Idaho", state_abbr="ID"))
        db_session.add_all(
            [
                make_listing(slug="a"),
                make_listing(slug="b"),
                make_listing(slug="c", is_active=False),
            ]
        )
        db_session.commit()

        drift = gateway.location_count_drift()
        assert [(item.slug, item.cached_count, item.actual_count, item.delta) for item in drift] == [
            ("austin-tx", 0, 2, 2)
        ]

        assert gateway.recalculate_counts() is True

        db_session.expire_all()
        counts = {
            location.slug: location.listing_count
            for location in db_session.scalars(select(Location))
        }
        assert counts == {"austin-tx": 2, "boise-id": 0}
        assert gateway.location_count_drift() == []
