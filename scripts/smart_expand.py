"""
Run the coverage-gap expansion engine from CLI.

Examples:
    python -m scripts.smart_expand --dry-run
    python -m scripts.smart_expand --max-cost=10 --max-cities=20 --category=auto
    python -m scripts.smart_expand --category=coworking --max-cities=10
"""

from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence

from sqlalchemy.exc import SQLAlchemyError

from app.domain.expansion import NEVER_SCRAPED_DAYS
from app.expansion.config import ExpansionRunConfig
from app.expansion.engine import ExpansionRunOutcome
from app.expansion.errors import ExpansionError
from app.expansion.logging_utils import configure_logging, log_event
from app.services.expansion_service import ExpansionService
from db.session import session_scope

logger = logging.getLogger("scripts.smart_expand")

_TABLE_ROWS = 20


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fill directory coverage gaps from Outscraper.")
    parser.add_argument("--dry-run", action="store_true", help="Analyze and select only.")
    parser.add_argument("--max-cost", type=float, default=10.0, help="Run budget in USD.")
    parser.add_argument("--max-cities", type=int, default=20, help="Max gaps to fill.")
    parser.add_argument(
        "--category",
        default="auto",
        help="Category slug, or 'auto' for every category.",
    )
    parser.add_argument(
        "--days-threshold",
        type=int,
        default=30,
        help="Minimum days since a pair was last scraped.",
    )
    parser.add_argument(
        "--results-per-city",
        type=int,
        default=50,
        help="Results requested per search.",
    )
    parser.add_argument(
        "--strategy",
        choices=("score", "density"),
        default="score",
        help="Allocation ranking: coverage score or score per dollar.",
    )
    parser.add_argument("--log-level", default="INFO")
    return parser


def config_from_args(args: argparse.Namespace) -> ExpansionRunConfig:
    return ExpansionRunConfig(
        max_cost=args.max_cost,
        max_cities=args.max_cities,
        category=args.category,
        dry_run=args.dry_run,
        days_threshold=args.days_threshold,
        results_per_city=args.results_per_city,
        strategy=args.strategy,
    )


def render_gap_table(outcome: ExpansionRunOutcome) -> list[str]:
    header = (
        "Rank".ljust(6)
        + "City".ljust(22)
        + "State".ljust(6)
        + "Category".ljust(22)
        + "Population".ljust(12)
        + "Listings".ljust(10)
        + "Score".ljust(12)
        + "Days Ago"
    )
    lines = [f"Top {_TABLE_ROWS} coverage gaps (population / listings):", "-" * 100, header, "-" * 100]
    for rank, gap in enumerate(outcome.report.coverage_gaps[:_TABLE_ROWS], start=1):
        days = "Never" if gap.days_since_scrape >= NEVER_SCRAPED_DAYS else str(gap.days_since_scrape)
        lines.append(
            str(rank).ljust(6)
            + gap.city[:20].ljust(22)
            + gap.state_abbr.ljust(6)
            + gap.category_name[:20].ljust(22)
            + f"{gap.population:,}".ljust(12)
            + str(gap.current_listings).ljust(10)
            + f"{round(gap.coverage_score):,}".ljust(12)
            + days
        )
    lines.append("-" * 100)
    return lines


def render_summary(outcome: ExpansionRunOutcome) -> list[str]:
    report = outcome.report
    lines = [
        f"Found {len(outcome.gaps):,} potential gaps",
        f"Selected {len(outcome.selection.gaps)} gaps (est. cost: ${outcome.selection.estimated_cost:.2f})",
    ]
    if outcome.dry_run:
        lines.append("DRY RUN - would scrape:")
        lines.extend(
            f"  - {gap.city}, {gap.state_abbr} - {gap.category_name} (est. ${gap.estimated_cost:.3f})"
            for gap in outcome.selection.gaps
        )
    else:
        lines.extend(
            [
                "Summary",
                "-" * 40,
                f"Cities processed: {report.cities_processed}",
                f"Total results: {report.total_results}",
                f"New listings added: {report.new_listings}",
                f"Errors: {report.errors}",
                f"Total API cost: ${report.total_cost:.2f}",
                "-" * 40,
            ]
        )
        if outcome.counts_recalculated is False:
            lines.append("Warning: could not recalculate location listing counts")
    if outcome.report_path is not None:
        lines.append(f"Report saved to: {outcome.report_path}")
    return lines


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    config = config_from_args(args)

    service = ExpansionService()
    try:
        service.validate_credentials(dry_run=config.dry_run)
        with session_scope() as db:
            outcome = service.run(db=db, config=config)
    except ExpansionError as exc:
        log_event(logger, logging.ERROR, "expansion_run_aborted", error=str(exc))
        print(f"Error: {exc}")
        return 1
    except SQLAlchemyError as exc:
        log_event(logger, logging.ERROR, "expansion_run_aborted", error=str(exc))
        print(f"Error: database unavailable: {exc}")
        return 1

    for line in [*render_gap_table(outcome), *render_summary(outcome)]:
        print(line)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
