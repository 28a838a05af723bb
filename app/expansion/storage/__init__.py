"""
Storage layer exports.
"""

from app.expansion.storage.base import (
    LocationCountDrift,
    PersistenceGateway,
    TrackingUpsertOutcome,
    TrackingUpsertResult,
)
from app.expansion.storage.sqlalchemy_gateway import SQLAlchemyPersistenceGateway

__all__ = [
    "LocationCountDrift",
    "PersistenceGateway",
    "SQLAlchemyPersistenceGateway",
    "TrackingUpsertOutcome",
    "TrackingUpsertResult",
]
