"""
Coverage-gap expansion engine.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from app.domain.expansion import (
    CategoryDefinition,
    CoverageGap,
    GapSelection,
    LocationReference,
    ScrapeResult,
    ScrapeStatus,
)
from app.expansion.acquisition import OutscraperClient
from app.expansion.config.models import ExpansionRunConfig, ExpansionSettings
from app.expansion.context import ExpansionRunContext
from app.expansion.deduplicator import SourceIdDeduplicator
from app.expansion.errors import ConfigurationError
from app.expansion.gap_analyzer import GapAnalyzer
from app.expansion.logging_utils import log_event
from app.expansion.normalization import RecordNormalizer
from app.expansion.rate_limiter import RequestThrottle
from app.expansion.reporting import ReportStore, RunReport
from app.expansion.selection import AllocationStrategy, BudgetedSelector, rank_gaps
from app.expansion.storage import PersistenceGateway

logger = logging.getLogger(__name__)

BUDGET_EXCEEDED = "Budget exceeded"


@dataclass
class ExpansionRunOutcome:
    """
    Everything a caller needs to print a run summary.
    """

    config: ExpansionRunConfig
    gaps: list[CoverageGap]
    selection: GapSelection
    report: RunReport
    report_path: Path | None = None
    counts_recalculated: bool | None = None
    tracking_failures: list[str] = field(default_factory=list)

    @property
    def dry_run(self) -> bool:
        return self.config.dry_run


class ExpansionEngine:
    """
    Orchestrates gap analysis, budgeted selection and the sequential
    acquire -> dedupe -> normalize -> persist loop.
    """

    def __init__(
        self,
        *,
        settings: ExpansionSettings,
        gateway: PersistenceGateway,
        categories: Sequence[CategoryDefinition],
        cities: Sequence[LocationReference],
        report_store: ReportStore,
        client: OutscraperClient | None = None,
        throttle: RequestThrottle | None = None,
        normalizer: RecordNormalizer | None = None,
    ) -> None:
        self._settings = settings
        self._gateway = gateway
        self._categories = list(categories)
        self._categories_by_slug = {category.slug: category for category in self._categories}
        self._cities = list(cities)
        self._report_store = report_store
        self._client = client
        self._throttle = throttle or RequestThrottle(delay_seconds=settings.request_delay_seconds)
        self._normalizer = normalizer or RecordNormalizer()
        self._analyzer = GapAnalyzer(cost_per_result=settings.cost_per_result)

    def analyze(self, config: ExpansionRunConfig, *, now: datetime | None = None) -> list[CoverageGap]:
        gaps = self._analyzer.analyze(
            cities=self._cities,
            categories=self._categories,
            listing_counts=self._gateway.load_listing_counts(),
            last_scraped=self._gateway.load_last_scraped(),
            days_threshold=config.days_threshold,
            results_per_city=config.results_per_city,
            now=now,
        )
        log_event(
            logger,
            logging.INFO,
            "coverage_gaps_calculated",
            categories=len(self._categories),
            cities=len(self._cities),
            gaps=len(gaps),
        )
        return gaps

    def run(self, config: ExpansionRunConfig, *, now: datetime | None = None) -> ExpansionRunOutcome:
        strategy = AllocationStrategy.parse(config.strategy)
        log_event(
            logger,
            logging.INFO,
            "expansion_run_started",
            mode="dry_run" if config.dry_run else "live",
            **config.to_dict(),
        )

        gaps = self.analyze(config, now=now)
        selection = BudgetedSelector(
            max_cost=config.max_cost,
            max_cities=config.max_cities,
            strategy=strategy,
        ).select(gaps)
        log_event(
            logger,
            logging.INFO,
            "gaps_selected",
            selected=len(selection.gaps),
            estimated_cost=round(selection.estimated_cost, 4),
        )

        snapshot = rank_gaps(gaps, strategy)[: self._settings.report_top_gaps]
        report = RunReport(config=config, coverage_gaps=snapshot, run_date=now)
        outcome = ExpansionRunOutcome(config=config, gaps=gaps, selection=selection, report=report)

        if config.dry_run:
            outcome.report_path = self._report_store.save(report)
            return outcome

        client = self._client
        if client is None:
            raise ConfigurationError("OUTSCRAPER_API_KEY not set - cannot proceed with live run")

        context = ExpansionRunContext(
            config=config,
            deduplicator=SourceIdDeduplicator(self._gateway.load_existing_source_ids()),
            report=report,
        )
        for index, gap in enumerate(selection.gaps, start=1):
            result = self._process_gap(
                context,
                client,
                gap,
                position=index,
                total=len(selection.gaps),
            )
            report.add(result)
            if result.status == ScrapeStatus.SKIPPED:
                continue
            tracking = self._gateway.record_scrape(result, scraped_at=now)
            if not tracking.ok:
                outcome.tracking_failures.append(f"{gap.city_slug}/{gap.category}: {tracking.error}")

        outcome.counts_recalculated = self._gateway.recalculate_counts()
        log_event(
            logger,
            logging.INFO,
            "expansion_run_completed",
            cities_processed=report.cities_processed,
            total_results=report.total_results,
            new_listings=report.new_listings,
            errors=report.errors,
            total_cost=round(context.actual_cost, 4),
            duplicates_skipped=context.deduplicator.duplicates_skipped,
        )
        outcome.report_path = self._report_store.save(report)
        return outcome

    def _process_gap(
        self,
        context: ExpansionRunContext,
        client: OutscraperClient,
        gap: CoverageGap,
        *,
        position: int,
        total: int,
    ) -> ScrapeResult:
        if not context.can_afford(gap.estimated_cost):
            log_event(
                logger,
                logging.WARNING,
                "gap_skipped_budget",
                position=position,
                total=total,
                city_slug=gap.city_slug,
                category=gap.category,
                spent=round(context.actual_cost, 4),
                estimated_cost=gap.estimated_cost,
                max_cost=context.config.max_cost,
            )
            return ScrapeResult(
                city_slug=gap.city_slug,
                category=gap.category,
                results_count=0,
                new_listings_count=0,
                api_cost=0.0,
                status=ScrapeStatus.SKIPPED,
                error_message=BUDGET_EXCEEDED,
            )

        category = self._categories_by_slug[gap.category]
        incurred = 0.0
        called_provider = False
        try:
            self._gateway.ensure_location(gap)
            called_provider = True
            acquisition = client.search(
                gap=gap,
                category=category,
                limit=context.config.results_per_city,
            )
            incurred = acquisition.cost
            context.charge(incurred)

            candidates = [
                self._normalizer.normalize(record, category=category, gap=gap)
                for record in acquisition.records
                if context.deduplicator.admit(record)
            ]
            inserted = self._gateway.insert_listings(candidates)
            result = ScrapeResult(
                city_slug=gap.city_slug,
                category=gap.category,
                results_count=len(acquisition.records),
                new_listings_count=inserted,
                api_cost=incurred,
                status=ScrapeStatus.SUCCESS if inserted > 0 else ScrapeStatus.NO_RESULTS,
            )
            log_event(
                logger,
                logging.INFO,
                "gap_scrape_completed",
                position=position,
                total=total,
                city_slug=gap.city_slug,
                category=gap.category,
                query=acquisition.query,
                results=result.results_count,
                new_listings=inserted,
                cost=round(incurred, 4),
            )
            return result
        except Exception as exc:
            message = str(exc)
            log_event(
                logger,
                logging.ERROR,
                "gap_scrape_failed",
                position=position,
                total=total,
                city_slug=gap.city_slug,
                category=gap.category,
                error=message,
            )
            return ScrapeResult(
                city_slug=gap.city_slug,
                category=gap.category,
                results_count=0,
                new_listings_count=0,
                api_cost=incurred,
                status=ScrapeStatus.ERROR,
                error_message=message,
            )
        finally:
            if called_provider:
                self._throttle.pause()
