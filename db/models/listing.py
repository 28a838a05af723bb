"""
db/models/listing.py

Directory listing (one real-world business or program).
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import Boolean, Float, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONType, TimestampMixin


class ListingSource:
    OUTSCRAPER = "outscraper"
    MANUAL = "manual"


class EnrichmentStatus:
    RAW = "raw"


class Listing(Base, TimestampMixin):
    __tablename__ = "resource_listings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    short_description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    category: Mapped[str] = mapped_column(String(64), nullable=False)
    subcategories: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    city: Mapped[str | None] = mapped_column(String(120), nullable=True)
    state: Mapped[str | None] = mapped_column(String(8), nullable=True)
    zip: Mapped[str | None] = mapped_column(String(16), nullable=True)
    country: Mapped[str] = mapped_column(String(8), nullable=False, default="US")
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    website: Mapped[str | None] = mapped_column(Text, nullable=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    details: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType,
        nullable=True,
        comment="Provider extras: rating, reviews_count, hours, subtypes, business_status",
    )
    source: Mapped[str] = mapped_column(String(32), nullable=False, default=ListingSource.MANUAL)
    source_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Provider identifier; uniqueness among active rows enforced by the expansion run",
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    enrichment_status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=EnrichmentStatus.RAW,
    )

    __table_args__ = (
        Index("ix_resource_listings_category", "category"),
        Index("ix_resource_listings_city_state", "city", "state"),
        Index("ix_resource_listings_source_id", "source_id"),
    )
