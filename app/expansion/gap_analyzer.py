"""
Coverage gap calculation over the static city x category grid.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone

from app.domain.expansion import (
    NEVER_SCRAPED_DAYS,
    CategoryDefinition,
    CoverageGap,
    LocationReference,
)

ListingCountKey = tuple[str, str, str]
ScrapeKey = tuple[str, str]


def listing_count_key(city: str, state: str, category: str) -> ListingCountKey:
    """
    Case-insensitive key for the current listing counts map.
    """

    return (city.strip().lower(), state.strip().lower(), category)


def coverage_score(population: int, current_listings: int) -> float:
    """
    People per listing; higher means a bigger gap.
    """

    return population / (max(0, current_listings) + 1)


def days_since(last_scraped_at: datetime | None, now: datetime) -> int:
    if last_scraped_at is None:
        return NEVER_SCRAPED_DAYS
    if last_scraped_at.tzinfo is None:
        last_scraped_at = last_scraped_at.replace(tzinfo=timezone.utc)
    elapsed = (now - last_scraped_at).total_seconds()
    return math.floor(elapsed / 86400)


class GapAnalyzer:
    """
    Scores every eligible (city, category) pair. Pure: no I/O.
    """

    def __init__(self, *, cost_per_result: float) -> None:
        self._cost_per_result = cost_per_result

    def estimate_cost(self, results_per_city: int) -> float:
        return results_per_city * self._cost_per_result

    def analyze(
        self,
        *,
        cities: Sequence[LocationReference],
        categories: Sequence[CategoryDefinition],
        listing_counts: Mapping[ListingCountKey, int],
        last_scraped: Mapping[ScrapeKey, datetime],
        days_threshold: int,
        results_per_city: int,
        now: datetime | None = None,
    ) -> list[CoverageGap]:
        """
        Return every pair scraped at least `days_threshold` days ago (or never).

        Output order follows the reference lists (cities outer, categories inner);
        ranking is the selector's job.
        """

        current_time = now or datetime.now(timezone.utc)
        estimated_cost = self.estimate_cost(results_per_city)
        gaps: list[CoverageGap] = []

        for city in cities:
            for category in categories:
                current_listings = listing_counts.get(
                    listing_count_key(city.city, city.state_abbr, category.slug),
                    0,
                )
                last_scraped_at = last_scraped.get((city.slug, category.slug))
                days_since_scrape = days_since(last_scraped_at, current_time)
                # Never-scraped pairs pass any threshold; 999 is only a display value.
                if last_scraped_at is not None and days_since_scrape < days_threshold:
                    continue

                gaps.append(
                    CoverageGap(
                        city_slug=city.slug,
                        city=city.city,
                        state=city.state,
                        state_abbr=city.state_abbr,
                        population=city.population,
                        category=category.slug,
                        category_name=category.display_name,
                        current_listings=current_listings,
                        coverage_score=coverage_score(city.population, current_listings),
                        last_scraped_at=last_scraped_at,
                        days_since_scrape=days_since_scrape,
                        estimated_cost=estimated_cost,
                        latitude=city.latitude,
                        longitude=city.longitude,
                    )
                )
        return gaps
