"""
tests/test_record_normalizer.py

Address parsing, candidate mapping and slug collision handling.
"""

from __future__ import annotations

import pytest

from app.expansion.normalization import RecordNormalizer, SlugResolver, parse_address, slugify
from tests.conftest import make_gap, outscraper_record


class TestParseAddress:
    def test_street_city_state_zip_country(self) -> None:
        parsed = parse_address(
            "123 Main St, Austin, TX 78701, United States",
            fallback_city="Dallas",
            fallback_state="TX",
        )

        assert (parsed.city, parsed.state, parsed.zip) == ("Austin", "TX", "78701")

    def test_state_without_zip(self) -> None:
        parsed = parse_address("1 Elm, Round Rock, TX, US", fallback_city="Austin", fallback_state="TX")

        assert (parsed.city, parsed.state, parsed.zip) == ("Round Rock", "TX", "")

    @pytest.mark.parametrize("raw", [None, "", "Austin, TX", 42])
    def test_falls_back_to_gap_location(self, raw: object) -> None:
        parsed = parse_address(raw, fallback_city="Austin", fallback_state="TX")

        assert (parsed.city, parsed.state, parsed.zip) == ("Austin", "TX", "")


class TestRecordNormalizer:
    def test_maps_provider_fields(self, accountant) -> None:
        gap = make_gap(category="accountant", category_name="Accountants & CPAs")
        record = outscraper_record(
            "Acme CPA Group",
            place_id="ChIJ-acme",
            full_address="500 Congress Ave, Austin, TX 78701, United States",
            latitude=30.27,
            longitude=-97.74,
            site="https://acme.example",
            phone="+1 512-555-0100",
            rating=4.7,
            reviews=120,
            subtypes=["Accountant", "Tax preparation service"],
            business_status="OPERATIONAL",
        )

        candidate = RecordNormalizer().normalize(record, category=accountant, gap=gap)

        assert candidate.name == "Acme CPA Group"
        assert candidate.slug == "acme-cpa-group-austin-tx"
        assert candidate.category == "accountant"
        assert candidate.zip == "78701"
        assert candidate.source == "outscraper"
        assert candidate.source_id == "ChIJ-acme"
        assert candidate.website == "https://acme.example"
        assert candidate.subcategories == ["accounting"]
        assert candidate.short_description == "Accountants & CPA in Austin, TX"
        assert candidate.details["rating"] == 4.7
        assert candidate.details["reviews_count"] == 120
        assert candidate.details["business_status"] == "OPERATIONAL"
        assert candidate.enrichment_status == "raw"
        assert candidate.is_active is True
        assert candidate.is_featured is False

    def test_missing_coordinates_and_name_use_gap(self, coworking) -> None:
        gap = make_gap()

        candidate = RecordNormalizer().normalize({}, category=coworking, gap=gap)

        assert candidate.name == "Unknown"
        assert candidate.slug == "unknown-austin-tx"
        assert (candidate.latitude, candidate.longitude) == (gap.latitude, gap.longitude)
        assert candidate.short_description == "Coworking Space in Austin, TX"
        assert candidate.source_id is None

    def test_slugify_collapses_punctuation(self) -> None:
        assert slugify("  Joe's Café & Co. ") == "joe-s-caf-co"


class TestSlugResolver:
    def test_free_base_slug_is_kept(self) -> None:
        resolver = SlugResolver(slug_exists=lambda slug: False)
        assert resolver.resolve("acme-coffee-austin-tx") == "acme-coffee-austin-tx"

    def test_collisions_get_numeric_suffixes(self) -> None:
        taken = {"acme-coffee-austin-tx"}
        resolver = SlugResolver(slug_exists=taken.__contains__)

        assert resolver.resolve("acme-coffee-austin-tx") == "acme-coffee-austin-tx-1"
        assert resolver.resolve("acme-coffee-austin-tx") == "acme-coffee-austin-tx-2"

    def test_timestamp_suffix_after_max_attempts(self) -> None:
        resolver = SlugResolver(
            slug_exists=lambda slug: not slug.endswith("-1700000000000"),
            max_attempts=3,
            clock=lambda: 1_700_000_000.0,
        )

        assert resolver.resolve("busy") == "busy-1700000000000"


class TestBaseSlugLength:
    def test_long_name_is_truncated_to_fit_column(self) -> None:
        slug = RecordNormalizer.base_slug(name="Acme " * 80, city="Austin", state="TX")

        assert len(slug) <= 255 - 14
        assert slug.endswith("-austin-tx")
        assert "--" not in slug
        assert len(f"{slug}-1700000000000") <= 255

    def test_short_name_is_unchanged(self) -> None:
        assert RecordNormalizer.base_slug(name="Acme Coffee", city="Austin", state="TX") == (
            "acme-coffee-austin-tx"
        )
