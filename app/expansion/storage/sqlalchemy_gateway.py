"""
SQLAlchemy-backed persistence gateway for expansion runs.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Float, Integer, Text, cast, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.expansion import CoverageGap, ListingCandidate, ScrapeResult
from app.expansion.errors import PersistenceError
from app.expansion.gap_analyzer import listing_count_key
from app.expansion.logging_utils import log_event
from app.expansion.normalization.slugs import SlugResolver
from app.expansion.storage.base import (
    LocationCountDrift,
    PersistenceGateway,
    TrackingUpsertOutcome,
    TrackingUpsertResult,
)
from db.models import ExpansionTracking, Listing, Location

logger = logging.getLogger(__name__)

_TRACKING_CONFLICT_COLUMNS = ["city_slug", "category"]


class SQLAlchemyPersistenceGateway(PersistenceGateway):
    """
    Persist expansion output through one DB session; every write commits on
    its own so a failing gap never rolls back an earlier gap's rows.
    """

    def __init__(self, *, session: Session, slug_max_attempts: int = 100) -> None:
        self._session = session
        self._slug_max_attempts = slug_max_attempts

    # -- reads ---------------------------------------------------------------

    def load_listing_counts(self) -> dict[tuple[str, str, str], int]:
        stmt = (
            select(Listing.city, Listing.state, Listing.category, func.count(Listing.id))
            .where(Listing.is_active.is_(True))
            .where(Listing.city.is_not(None), Listing.state.is_not(None))
            .group_by(Listing.city, Listing.state, Listing.category)
        )
        counts: dict[tuple[str, str, str], int] = {}
        for city, state, category, count in self._session.execute(stmt):
            key = listing_count_key(city, state, category)
            counts[key] = counts.get(key, 0) + int(count)
        return counts

    def load_last_scraped(self) -> dict[tuple[str, str], datetime]:
        stmt = select(
            ExpansionTracking.city_slug,
            ExpansionTracking.category,
            ExpansionTracking.last_scraped_at,
        )
        try:
            rows = self._session.execute(stmt).all()
        except SQLAlchemyError as exc:
            self._session.rollback()
            log_event(
                logger,
                logging.WARNING,
                "tracking_table_unavailable",
                error=str(exc),
                note="treating all pairs as never scraped",
            )
            return {}
        return {(city_slug, category): scraped_at for city_slug, category, scraped_at in rows}

    def load_existing_source_ids(self) -> set[str]:
        stmt = select(Listing.source_id).where(
            Listing.source_id.is_not(None),
            Listing.is_active.is_(True),
        )
        return {source_id for source_id in self._session.scalars(stmt) if source_id}

    def slug_exists(self, slug: str) -> bool:
        stmt = select(Listing.id).where(Listing.slug == slug).limit(1)
        return self._session.execute(stmt).first() is not None

    # -- writes --------------------------------------------------------------

    def ensure_location(self, gap: CoverageGap) -> bool:
        existing = self._session.execute(
            select(Location.id).where(Location.slug == gap.city_slug).limit(1)
        ).first()
        if existing is not None:
            return False

        self._session.add(
            Location(
                slug=gap.city_slug,
                city=gap.city,
                state=gap.state_abbr,
                state_full=gap.state,
                latitude=gap.latitude,
                longitude=gap.longitude,
                population=gap.population,
                listing_count=0,
                enrichment_status="raw",
            )
        )
        try:
            self._session.commit()
        except IntegrityError:
            # Created between our lookup and insert; the row we wanted exists.
            self._session.rollback()
            return False
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise PersistenceError(f"Failed to create location {gap.city_slug}: {exc}") from exc
        return True

    def insert_listings(self, candidates: Sequence[ListingCandidate]) -> int:
        if not candidates:
            return 0

        # Sequential so two candidates in one batch never claim the same slug.
        resolver = SlugResolver(
            slug_exists=self.slug_exists,
            max_attempts=self._slug_max_attempts,
        )
        rows: list[dict[str, Any]] = []
        for candidate in candidates:
            candidate.slug = resolver.resolve(candidate.slug)
            rows.append(candidate.to_row())

        try:
            self._session.execute(Listing.__table__.insert(), rows)
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise PersistenceError(f"Failed to insert {len(rows)} listings: {exc}") from exc
        return len(rows)

    def record_scrape(
        self,
        result: ScrapeResult,
        *,
        scraped_at: datetime | None = None,
    ) -> TrackingUpsertResult:
        # The record_scrape() database function is the atomic path; deployments
        # without it get a last-write-wins upsert instead.
        try:
            self._call_record_scrape_function(result)
            self._session.commit()
            return TrackingUpsertResult(outcome=TrackingUpsertOutcome.ATOMIC_UPSERT_OK)
        except SQLAlchemyError as exc:
            self._session.rollback()
            log_event(
                logger,
                logging.INFO,
                "tracking_upsert_fallback",
                city_slug=result.city_slug,
                category=result.category,
                error=str(getattr(exc, "orig", None) or exc),
            )

        try:
            self._direct_upsert(result, scraped_at or datetime.now(timezone.utc))
            self._session.commit()
            return TrackingUpsertResult(outcome=TrackingUpsertOutcome.FALLBACK_UPSERT_OK)
        except (SQLAlchemyError, PersistenceError) as exc:
            self._session.rollback()
            log_event(
                logger,
                logging.ERROR,
                "tracking_upsert_failed",
                city_slug=result.city_slug,
                category=result.category,
                error=str(exc),
            )
            return TrackingUpsertResult(outcome=TrackingUpsertOutcome.FAILED, error=str(exc))

    def recalculate_counts(self) -> bool:
        actual_count = (
            select(func.count(Listing.id))
            .where(
                Listing.city == Location.city,
                Listing.state == Location.state,
                Listing.is_active.is_(True),
            )
            .scalar_subquery()
        )
        stmt = (
            update(Location)
            .values(listing_count=actual_count)
            .execution_options(synchronize_session=False)
        )
        try:
            outcome = self._session.execute(stmt)
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            log_event(
                logger,
                logging.WARNING,
                "listing_counts_recalculation_failed",
                error=str(exc),
            )
            return False

        log_event(
            logger,
            logging.INFO,
            "listing_counts_recalculated",
            locations=outcome.rowcount,
        )
        return True

    def location_count_drift(self) -> list[LocationCountDrift]:
        actual_count = (
            select(func.count(Listing.id))
            .where(
                Listing.city == Location.city,
                Listing.state == Location.state,
                Listing.is_active.is_(True),
            )
            .correlate(Location)
            .scalar_subquery()
        )
        stmt = select(
            Location.slug,
            Location.city,
            Location.state,
            Location.listing_count,
            actual_count,
        ).order_by(Location.city)

        drift: list[LocationCountDrift] = []
        for slug, city, state, cached, actual in self._session.execute(stmt):
            if int(cached or 0) != int(actual or 0):
                drift.append(
                    LocationCountDrift(
                        slug=slug,
                        city=city,
                        state=state,
                        cached_count=int(cached or 0),
                        actual_count=int(actual or 0),
                    )
                )
        return drift

    # -- internals -----------------------------------------------------------

    def _call_record_scrape_function(self, result: ScrapeResult) -> None:
        self._session.execute(
            select(
                func.record_scrape(
                    cast(result.city_slug, Text),
                    cast(result.category, Text),
                    cast(result.results_count, Integer),
                    cast(result.new_listings_count, Integer),
                    cast(result.api_cost, Float),
                    cast(result.status, Text),
                    cast(result.error_message, Text),
                )
            )
        )

    def _direct_upsert(self, result: ScrapeResult, scraped_at: datetime) -> None:
        values = {
            "city_slug": result.city_slug,
            "category": result.category,
            "last_scraped_at": scraped_at,
            "results_count": result.results_count,
            "new_listings_count": result.new_listings_count,
            "api_cost": result.api_cost,
            "status": result.status,
            "error_message": result.error_message,
        }
        stmt = self._dialect_insert()(ExpansionTracking.__table__).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=_TRACKING_CONFLICT_COLUMNS,
            set_={
                "last_scraped_at": stmt.excluded.last_scraped_at,
                "results_count": stmt.excluded.results_count,
                "new_listings_count": stmt.excluded.new_listings_count,
                "api_cost": stmt.excluded.api_cost,
                "status": stmt.excluded.status,
                "error_message": stmt.excluded.error_message,
                "updated_at": scraped_at,
            },
        )
        self._session.execute(stmt)

    def _dialect_insert(self):
        dialect_name = self._session.get_bind().dialect.name
        if dialect_name == "postgresql":
            return postgresql.insert
        if dialect_name == "sqlite":
            return sqlite.insert
        raise PersistenceError(f"Tracking upsert is not supported on dialect '{dialect_name}'.")
