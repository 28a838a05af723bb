"""
Map raw Outscraper records into canonical listing candidates.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from app.domain.expansion import CategoryDefinition, CoverageGap, ListingCandidate
from app.expansion.deduplicator import extract_source_id
from db.models.listing import EnrichmentStatus, ListingSource

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_STATE_ZIP = re.compile(r"([A-Z]{2})\s*(\d{5})?")

# resource_listings.slug is String(255); leave room for "-<epoch millis>".
MAX_BASE_SLUG_LENGTH = 255 - 14


def slugify(value: str) -> str:
    return _NON_ALNUM.sub("-", value.lower()).strip("-")


@dataclass(frozen=True)
class ParsedAddress:
    city: str
    state: str
    zip: str


def parse_address(full_address: object, *, fallback_city: str, fallback_state: str) -> ParsedAddress:
    """
    Best-effort "street, city, ST 12345, country" split.

    Anything that does not fit the pattern keeps the gap's own city/state.
    """

    city, state, zip_code = fallback_city, fallback_state, ""
    if not isinstance(full_address, str) or not full_address.strip():
        return ParsedAddress(city=city, state=state, zip=zip_code)

    parts = [part.strip() for part in full_address.split(",")]
    if len(parts) < 3:
        return ParsedAddress(city=city, state=state, zip=zip_code)

    city = parts[-3] or fallback_city
    match = _STATE_ZIP.search(parts[-2])
    if match:
        state = match.group(1)
        zip_code = match.group(2) or ""
    return ParsedAddress(city=city, state=state, zip=zip_code)


def _singular(display_name: str) -> str:
    return display_name[:-1] if display_name.endswith("s") else display_name


def _first_present(record: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = record.get(key)
        if value not in (None, ""):
            return value
    return None


class RecordNormalizer:
    """
    Builds `ListingCandidate` rows with a base slug; uniqueness is resolved
    against the store by `SlugResolver` right before insertion.
    """

    source = ListingSource.OUTSCRAPER

    def normalize(
        self,
        record: Mapping[str, Any],
        *,
        category: CategoryDefinition,
        gap: CoverageGap,
    ) -> ListingCandidate:
        name = str(record.get("name") or "Unknown").strip() or "Unknown"
        full_address = _first_present(record, "full_address", "address")
        address = parse_address(
            full_address,
            fallback_city=gap.city,
            fallback_state=gap.state_abbr,
        )

        return ListingCandidate(
            name=name,
            slug=self.base_slug(name=name, city=address.city, state=address.state),
            category=category.slug,
            city=address.city,
            state=address.state,
            zip=address.zip,
            latitude=_first_present(record, "latitude") or gap.latitude,
            longitude=_first_present(record, "longitude") or gap.longitude,
            source=self.source,
            source_id=extract_source_id(record),
            description=record.get("description") or None,
            short_description=(
                f"{_singular(category.display_name)} in {address.city}, {address.state}"
            ),
            subcategories=list(category.default_subcategories),
            address=full_address,
            website=_first_present(record, "site", "website"),
            phone=record.get("phone") or None,
            details={
                "rating": record.get("rating"),
                "reviews_count": record.get("reviews"),
                "hours": record.get("working_hours"),
                "subtypes": record.get("subtypes") or [],
                "business_status": record.get("business_status"),
            },
            is_active=True,
            is_featured=False,
            enrichment_status=EnrichmentStatus.RAW,
        )

    @staticmethod
    def base_slug(*, name: str, city: str, state: str) -> str:
        """
        Name part is truncated so the slug plus a collision suffix fits the column.
        """

        location_part = f"{slugify(city)}-{state.strip().lower()}"
        room = max(1, MAX_BASE_SLUG_LENGTH - len(location_part) - 1)
        name_part = slugify(name)[:room].rstrip("-") or "unknown"
        return f"{name_part}-{location_part}"
