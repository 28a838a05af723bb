"""create directory listing, location and expansion tracking tables

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None

RECORD_SCRAPE_FUNCTION = """
CREATE OR REPLACE FUNCTION record_scrape(
    p_city_slug text,
    p_category text,
    p_results_count integer,
    p_new_listings_count integer,
    p_api_cost double precision,
    p_status text,
    p_error_message text
) RETURNS void
LANGUAGE sql
AS $$
    INSERT INTO expansion_tracking (
        id, city_slug, category, last_scraped_at, results_count,
        new_listings_count, api_cost, scrape_count, status, error_message
    )
    VALUES (
        gen_random_uuid(), p_city_slug, p_category, now(), p_results_count,
        p_new_listings_count, p_api_cost, 1, p_status, p_error_message
    )
    ON CONFLICT (city_slug, category) DO UPDATE SET
        last_scraped_at = now(),
        results_count = EXCLUDED.results_count,
        new_listings_count = EXCLUDED.new_listings_count,
        api_cost = expansion_tracking.api_cost + EXCLUDED.api_cost,
        scrape_count = expansion_tracking.scrape_count + 1,
        status = EXCLUDED.status,
        error_message = EXCLUDED.error_message,
        updated_at = now();
$$;
"""


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "resource_locations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("slug", sa.String(length=160), nullable=False),
        sa.Column("city", sa.String(length=120), nullable=False),
        sa.Column("state", sa.String(length=8), nullable=False),
        sa.Column("state_full", sa.String(length=120), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("population", sa.Integer(), nullable=True),
        sa.Column("listing_count", sa.Integer(), nullable=False),
        sa.Column("enrichment_status", sa.String(length=32), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug"),
    )
    op.create_index("ix_resource_locations_city_state", "resource_locations", ["city", "state"], unique=False)

    op.create_table(
        "resource_listings",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("short_description", sa.String(length=255), nullable=True),
        sa.Column("category", sa.String(length=64), nullable=False),
        sa.Column("subcategories", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("city", sa.String(length=120), nullable=True),
        sa.Column("state", sa.String(length=8), nullable=True),
        sa.Column("zip", sa.String(length=16), nullable=True),
        sa.Column("country", sa.String(length=8), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("website", sa.Text(), nullable=True),
        sa.Column("phone", sa.String(length=64), nullable=True),
        sa.Column("details", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("source", sa.String(length=32), nullable=False),
        sa.Column("source_id", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_featured", sa.Boolean(), nullable=False),
        sa.Column("enrichment_status", sa.String(length=32), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug"),
    )
    op.create_index("ix_resource_listings_category", "resource_listings", ["category"], unique=False)
    op.create_index("ix_resource_listings_city_state", "resource_listings", ["city", "state"], unique=False)
    op.create_index("ix_resource_listings_source_id", "resource_listings", ["source_id"], unique=False)

    op.create_table(
        "expansion_tracking",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("city_slug", sa.String(length=160), nullable=False),
        sa.Column("category", sa.String(length=64), nullable=False),
        sa.Column("last_scraped_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("results_count", sa.Integer(), nullable=False),
        sa.Column("new_listings_count", sa.Integer(), nullable=False),
        sa.Column("api_cost", sa.Float(), nullable=False),
        sa.Column("scrape_count", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("city_slug", "category", name="uq_expansion_tracking_city_category"),
    )

    op.execute(RECORD_SCRAPE_FUNCTION)


def downgrade() -> None:
    op.execute(
        "DROP FUNCTION IF EXISTS record_scrape(text, text, integer, integer, double precision, text, text)"
    )
    op.drop_table("expansion_tracking")
    op.drop_index("ix_resource_listings_source_id", table_name="resource_listings")
    op.drop_index("ix_resource_listings_city_state", table_name="resource_listings")
    op.drop_index("ix_resource_listings_category", table_name="resource_listings")
    op.drop_table("resource_listings")
    op.drop_index("ix_resource_locations_city_state", table_name="resource_locations")
    op.drop_table("resource_locations")
