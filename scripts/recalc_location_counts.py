"""
Recalculate `listing_count` on every directory location.

Examples:
    python -m scripts.recalc_location_counts --dry-run
    python -m scripts.recalc_location_counts
"""

from __future__ import annotations

import argparse
from collections.abc import Sequence

from app.expansion.logging_utils import configure_logging
from app.services.expansion_service import ExpansionService
from db.config import find_database_url
from db.session import session_scope


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Recalculate location listing counts.")
    parser.add_argument("--dry-run", action="store_true", help="Report drift without updating.")
    args = parser.parse_args(argv)
    configure_logging()

    if find_database_url() is None:
        print("Error: Missing required environment variables: DATABASE_URL")
        return 1

    service = ExpansionService()
    with session_scope() as db:
        drift, applied = service.recalculate_location_counts(db=db, dry_run=args.dry_run)

    print("Mode: " + ("DRY RUN (no changes)" if args.dry_run else "LIVE"))
    for item in drift:
        print(f"{item.city}, {item.state}: {item.cached_count} -> {item.actual_count} ({item.delta:+d})")
    print(f"Locations with drift: {len(drift)}")
    if not args.dry_run and not applied:
        print("Error: recount failed; see logs.")
        return 1
    if args.dry_run and drift:
        print("Run without --dry-run to apply changes.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
