"""
Per-run report accumulation and the merged daily artifact on disk.
"""

from __future__ import annotations

import fcntl
import json
import logging
import os
import tempfile
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from app.domain.expansion import CoverageGap, ScrapeResult, ScrapeStatus
from app.expansion.config.models import ExpansionRunConfig
from app.expansion.logging_utils import log_event
from app.schemas.expansion_report import ExpansionReportDocument, ScrapeResultEntry

logger = logging.getLogger(__name__)


def _camel_keys(payload: dict[str, Any]) -> dict[str, Any]:
    return {to_camel(key): value for key, value in payload.items()}


class RunReport:
    """
    Accumulates ScrapeResults for one run in processing order.
    """

    def __init__(
        self,
        *,
        config: ExpansionRunConfig,
        coverage_gaps: Sequence[CoverageGap] = (),
        run_date: datetime | None = None,
    ) -> None:
        self.config = config
        self.coverage_gaps = list(coverage_gaps)
        self.run_date = run_date or datetime.now(timezone.utc)
        self.results: list[ScrapeResult] = []

    def add(self, result: ScrapeResult) -> None:
        self.results.append(result)

    @property
    def total_cost(self) -> float:
        return sum(result.api_cost for result in self.results)

    @property
    def cities_processed(self) -> int:
        return sum(1 for result in self.results if result.status != ScrapeStatus.SKIPPED)

    @property
    def total_results(self) -> int:
        return sum(result.results_count for result in self.results)

    @property
    def new_listings(self) -> int:
        return sum(result.new_listings_count for result in self.results)

    @property
    def errors(self) -> int:
        return sum(1 for result in self.results if result.status == ScrapeStatus.ERROR)

    def to_document(self) -> ExpansionReportDocument:
        return ExpansionReportDocument(
            run_date=self.run_date.isoformat(),
            config=_camel_keys(self.config.to_dict()),
            total_cost=self.total_cost,
            cities_processed=self.cities_processed,
            total_results=self.total_results,
            new_listings=self.new_listings,
            errors=self.errors,
            results=[ScrapeResultEntry(**result.to_dict()) for result in self.results],
            coverage_gaps=[_camel_keys(gap.to_dict()) for gap in self.coverage_gaps],
        )


def merge_documents(
    existing: ExpansionReportDocument,
    incoming: ExpansionReportDocument,
) -> ExpansionReportDocument:
    """
    Older results first; totals summed; config and gap snapshot from the newer run.
    """

    return incoming.model_copy(
        update={
            "total_cost": existing.total_cost + incoming.total_cost,
            "cities_processed": existing.cities_processed + incoming.cities_processed,
            "total_results": existing.total_results + incoming.total_results,
            "new_listings": existing.new_listings + incoming.new_listings,
            "errors": existing.errors + incoming.errors,
            "results": [*existing.results, *incoming.results],
        }
    )


class ReportStore:
    """
    One JSON file per UTC date under `report_dir`.

    The read-merge-write runs under an exclusive lock on a sidecar lock file,
    and the new content replaces the old file atomically.
    """

    def __init__(self, report_dir: str | Path) -> None:
        self._report_dir = Path(report_dir)

    def path_for(self, run_date: datetime) -> Path:
        day = run_date.astimezone(timezone.utc).date().isoformat()
        return self._report_dir / f"{day}.json"

    def load(self, path: Path) -> ExpansionReportDocument | None:
        if not path.exists():
            return None
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            return ExpansionReportDocument.model_validate(raw)
        except (ValueError, ValidationError) as exc:
            log_event(
                logger,
                logging.WARNING,
                "expansion_report_unreadable",
                path=str(path),
                error=str(exc),
            )
            return None

    def save(self, report: RunReport) -> Path:
        self._report_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(report.run_date)
        document = report.to_document()

        with self._locked(path):
            existing = self.load(path)
            if existing is not None:
                document = merge_documents(existing, document)
            self._write_atomic(path, document.to_json_payload())

        log_event(
            logger,
            logging.INFO,
            "expansion_report_saved",
            path=str(path),
            merged=existing is not None,
            results=len(document.results),
        )
        return path

    @contextmanager
    def _locked(self, path: Path) -> Iterator[None]:
        lock_path = path.with_name(path.name + ".lock")
        with open(lock_path, "a+") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    @staticmethod
    def _write_atomic(path: Path, payload: dict[str, Any]) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
