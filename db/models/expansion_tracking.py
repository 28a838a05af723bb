"""
db/models/expansion_tracking.py

Last-scrape bookkeeping per (city, category) pair.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class ExpansionTracking(Base, TimestampMixin):
    __tablename__ = "expansion_tracking"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    city_slug: Mapped[str] = mapped_column(String(160), nullable=False)
    category: Mapped[str] = mapped_column(String(64), nullable=False)
    last_scraped_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    results_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    new_listings_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    api_cost: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0.0,
        comment="Cumulative on the record_scrape() path, last run on the fallback path",
    )
    scrape_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("city_slug", "category", name="uq_expansion_tracking_city_category"),
    )
