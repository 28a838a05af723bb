"""
Budgeted gap selection.
"""

from __future__ import annotations

import enum
from collections.abc import Sequence

from app.domain.expansion import CoverageGap, GapSelection

# Absorbs float summation drift, e.g. 0.15 + 0.15 + ... compared to a round budget.
_COST_EPSILON = 1e-9


class AllocationStrategy(str, enum.Enum):
    """
    Ranking used before the single greedy pass.
    """

    GREEDY_BY_SCORE = "score"
    GREEDY_BY_VALUE_DENSITY = "density"

    @classmethod
    def parse(cls, value: str) -> "AllocationStrategy":
        normalized = value.strip().lower()
        for member in cls:
            if member.value == normalized or member.name.lower() == normalized:
                return member
        allowed = ", ".join(member.value for member in cls)
        raise ValueError(f"Unknown allocation strategy '{value}'. Allowed: {allowed}.")


def fits_budget(spent: float, cost: float, max_cost: float) -> bool:
    return spent + cost <= max_cost + _COST_EPSILON


def _ranking_key(strategy: AllocationStrategy):
    if strategy is AllocationStrategy.GREEDY_BY_VALUE_DENSITY:
        return lambda gap: (
            gap.coverage_score / gap.estimated_cost if gap.estimated_cost > 0 else float("inf")
        )
    return lambda gap: gap.coverage_score


def rank_gaps(
    gaps: Sequence[CoverageGap],
    strategy: AllocationStrategy = AllocationStrategy.GREEDY_BY_SCORE,
) -> list[CoverageGap]:
    """
    Sort descending by the strategy key; equal keys keep input order.
    """

    return sorted(gaps, key=_ranking_key(strategy), reverse=True)


class BudgetedSelector:
    """
    Greedy pass under a cost ceiling and a count ceiling.

    A gap that does not fit is skipped, not a stopping point: a cheaper gap
    further down the ranking may still fit.
    """

    def __init__(
        self,
        *,
        max_cost: float,
        max_cities: int,
        strategy: AllocationStrategy = AllocationStrategy.GREEDY_BY_SCORE,
    ) -> None:
        self._max_cost = max_cost
        self._max_cities = max_cities
        self._strategy = strategy

    def select(self, gaps: Sequence[CoverageGap]) -> GapSelection:
        selected: list[CoverageGap] = []
        running_cost = 0.0

        for gap in rank_gaps(gaps, self._strategy):
            if len(selected) >= self._max_cities:
                break
            if not fits_budget(running_cost, gap.estimated_cost, self._max_cost):
                continue
            selected.append(gap)
            running_cost += gap.estimated_cost

        return GapSelection(gaps=selected, estimated_cost=running_cost)
