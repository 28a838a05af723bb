"""
Run-scoped mutable state for one expansion run.
"""

from __future__ import annotations

from dataclasses import dataclass

from app.expansion.config.models import ExpansionRunConfig
from app.expansion.deduplicator import SourceIdDeduplicator
from app.expansion.reporting import RunReport
from app.expansion.selection import fits_budget


@dataclass
class ExpansionRunContext:
    """
    Created fresh per run and owned by the single control-flow thread, so the
    dedup set and the running cost never leak between runs.
    """

    config: ExpansionRunConfig
    deduplicator: SourceIdDeduplicator
    report: RunReport
    actual_cost: float = 0.0

    def can_afford(self, estimated_cost: float) -> bool:
        return fits_budget(self.actual_cost, estimated_cost, self.config.max_cost)

    def charge(self, cost: float) -> None:
        self.actual_cost += cost
