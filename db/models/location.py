"""
db/models/location.py

Directory city page record.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Float, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class Location(Base, TimestampMixin):
    __tablename__ = "resource_locations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    slug: Mapped[str] = mapped_column(String(160), nullable=False, unique=True)
    city: Mapped[str] = mapped_column(String(120), nullable=False)
    state: Mapped[str] = mapped_column(
        String(8),
        nullable=False,
        comment="Two-letter state abbreviation",
    )
    state_full: Mapped[str | None] = mapped_column(String(120), nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    population: Mapped[int | None] = mapped_column(Integer, nullable=True)
    listing_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Maintained by the aggregate recount, never incremented by hand",
    )
    enrichment_status: Mapped[str] = mapped_column(String(32), nullable=False, default="raw")

    __table_args__ = (Index("ix_resource_locations_city_state", "city", "state"),)
