"""
app/services/expansion_service.py

Service orchestration for coverage-gap expansion runs.
"""

from __future__ import annotations

import requests
from sqlalchemy.orm import Session

from app.expansion.acquisition import OutscraperClient
from app.expansion.config import (
    ExpansionRunConfig,
    ExpansionSettings,
    get_expansion_settings,
    load_reference_data,
    resolve_categories,
)
from app.expansion.engine import ExpansionEngine, ExpansionRunOutcome
from app.expansion.errors import ConfigurationError
from app.expansion.reporting import ReportStore
from app.expansion.storage import LocationCountDrift, SQLAlchemyPersistenceGateway
from db.config import find_database_url


class ExpansionService:
    """
    Wires settings, reference data, the store and the provider client into
    one `ExpansionEngine` run.
    """

    def __init__(
        self,
        settings: ExpansionSettings | None = None,
        *,
        http_session: requests.Session | None = None,
    ) -> None:
        self._settings = settings or get_expansion_settings()
        self._http_session = http_session

    @property
    def settings(self) -> ExpansionSettings:
        return self._settings

    def validate_credentials(self, *, dry_run: bool) -> None:
        """
        Fail fast before any gap is touched.

        The store is needed even for dry runs (gap analysis reads it); the
        provider key only for live runs.
        """

        missing: list[str] = []
        if find_database_url() is None:
            missing.append("DATABASE_URL")
        if not dry_run and not self._settings.outscraper_api_key:
            missing.append("OUTSCRAPER_API_KEY")
        if missing:
            raise ConfigurationError(
                "Missing required environment variables: " + ", ".join(missing)
            )

    def build_engine(self, *, db: Session, config: ExpansionRunConfig) -> ExpansionEngine:
        all_categories, cities = load_reference_data(self._settings.reference_data_path)
        categories = resolve_categories(all_categories, config.category)
        client = None
        if not config.dry_run:
            client = OutscraperClient(settings=self._settings, session=self._http_session)
        return ExpansionEngine(
            settings=self._settings,
            gateway=SQLAlchemyPersistenceGateway(
                session=db,
                slug_max_attempts=self._settings.slug_max_attempts,
            ),
            categories=categories,
            cities=cities,
            report_store=ReportStore(self._settings.report_dir),
            client=client,
        )

    def run(self, *, db: Session, config: ExpansionRunConfig) -> ExpansionRunOutcome:
        return self.build_engine(db=db, config=config).run(config)

    def recalculate_location_counts(
        self,
        *,
        db: Session,
        dry_run: bool = False,
    ) -> tuple[list[LocationCountDrift], bool]:
        """
        Report count drift and, unless dry_run, apply the recount.
        """

        gateway = SQLAlchemyPersistenceGateway(session=db)
        drift = gateway.location_count_drift()
        if dry_run:
            return drift, False
        return drift, gateway.recalculate_counts()
