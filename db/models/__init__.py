"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.expansion_tracking import ExpansionTracking
from db.models.listing import EnrichmentStatus, Listing, ListingSource
from db.models.location import Location

__all__ = [
    "EnrichmentStatus",
    "ExpansionTracking",
    "Listing",
    "ListingSource",
    "Location",
]
