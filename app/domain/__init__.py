"""
app/domain package marker.
"""

from app.domain.expansion import (
    CategoryDefinition,
    CoverageGap,
    GapSelection,
    ListingCandidate,
    LocationReference,
    ScrapeResult,
    ScrapeStatus,
)

__all__ = [
    "CategoryDefinition",
    "CoverageGap",
    "GapSelection",
    "ListingCandidate",
    "LocationReference",
    "ScrapeResult",
    "ScrapeStatus",
]
