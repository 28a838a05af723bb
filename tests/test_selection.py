"""
tests/test_selection.py

Budgeted greedy selection.
"""

from __future__ import annotations

import pytest

from app.expansion.selection import AllocationStrategy, BudgetedSelector, rank_gaps
from tests.conftest import make_gap


def test_skips_unaffordable_gap_and_keeps_scanning() -> None:
    gap_a = make_gap(city_slug="a", score=100, cost=5)
    gap_b = make_gap(city_slug="b", score=90, cost=5)
    gap_c = make_gap(city_slug="c", score=80, cost=3)

    selection = BudgetedSelector(max_cost=8, max_cities=10).select([gap_c, gap_b, gap_a])

    assert [gap.city_slug for gap in selection.gaps] == ["a", "c"]
    assert selection.estimated_cost == pytest.approx(8)


def test_never_exceeds_max_cities() -> None:
    gaps = [make_gap(city_slug=f"city-{i}", score=1000 - i, cost=0.15) for i in range(30)]

    selection = BudgetedSelector(max_cost=100, max_cities=20).select(gaps)

    assert len(selection.gaps) == 20
    assert selection.gaps[0].city_slug == "city-0"


@pytest.mark.parametrize("max_cost", [0.0, 0.1, 0.15, 1.0, 2.99, 3.0])
def test_never_exceeds_budget(max_cost: float) -> None:
    gaps = [make_gap(city_slug=f"city-{i}", score=1000 - i, cost=0.15) for i in range(25)]

    selection = BudgetedSelector(max_cost=max_cost, max_cities=50).select(gaps)

    assert sum(gap.estimated_cost for gap in selection.gaps) <= max_cost + 1e-9
    assert selection.estimated_cost == pytest.approx(sum(gap.estimated_cost for gap in selection.gaps))


def test_round_budget_absorbs_float_drift() -> None:
    gaps = [make_gap(city_slug=f"city-{i}", score=100 - i, cost=0.15) for i in range(10)]

    selection = BudgetedSelector(max_cost=1.5, max_cities=20).select(gaps)

    assert len(selection.gaps) == 10


def test_highest_score_selected_first() -> None:
    big = make_gap(city_slug="big", population=500000, current_listings=0)
    smaller = make_gap(city_slug="smaller", population=500000, current_listings=1)

    selection = BudgetedSelector(max_cost=10, max_cities=1).select([smaller, big])

    assert [gap.city_slug for gap in selection.gaps] == ["big"]
    assert selection.gaps[0].coverage_score == 500000


def test_equal_scores_keep_input_order() -> None:
    first = make_gap(city_slug="first", score=50)
    second = make_gap(city_slug="second", score=50)

    assert [gap.city_slug for gap in rank_gaps([first, second])] == ["first", "second"]


def test_value_density_prefers_cheaper_gap_per_point() -> None:
    pricey = make_gap(city_slug="pricey", score=100, cost=10)
    cheap = make_gap(city_slug="cheap", score=60, cost=2)

    by_score = BudgetedSelector(max_cost=10, max_cities=1).select([pricey, cheap])
    by_density = BudgetedSelector(
        max_cost=10,
        max_cities=1,
        strategy=AllocationStrategy.GREEDY_BY_VALUE_DENSITY,
    ).select([pricey, cheap])

    assert by_score.gaps[0].city_slug == "pricey"
    assert by_density.gaps[0].city_slug == "cheap"


class TestAllocationStrategyParse:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("score", AllocationStrategy.GREEDY_BY_SCORE),
            ("DENSITY", AllocationStrategy.GREEDY_BY_VALUE_DENSITY),
            ("greedy_by_score", AllocationStrategy.GREEDY_BY_SCORE),
        ],
    )
    def test_accepts_values_and_names(self, raw: str, expected: AllocationStrategy) -> None:
        assert AllocationStrategy.parse(raw) is expected

    def test_rejects_unknown(self) -> None:
        with pytest.raises(ValueError, match="Unknown allocation strategy"):
            AllocationStrategy.parse("knapsack")
