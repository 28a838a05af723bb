"""
Environment + JSON reference data loader for expansion runs.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path

from app.domain.expansion import CategoryDefinition, LocationReference
from app.expansion.config.models import ExpansionSettings
from app.expansion.errors import ReferenceDataError, UnknownCategoryError
from db.config import load_env_files


def _get_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    stripped = raw.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    stripped = raw.strip()
    return stripped or None


def _project_root() -> Path:
    return Path(__file__).resolve().parents[3]


def _resolve_path(raw_path: str) -> Path:
    candidate = Path(raw_path)
    if candidate.is_absolute():
        return candidate
    return (_project_root() / candidate).resolve()


@lru_cache(maxsize=1)
def get_expansion_settings() -> ExpansionSettings:
    """
    Return cached expansion settings from environment variables.
    """

    load_env_files()
    return ExpansionSettings(
        outscraper_api_key=_get_optional_str_env("OUTSCRAPER_API_KEY"),
        outscraper_base_url=_get_str_env(
            "OUTSCRAPER_BASE_URL",
            "https://api.app.outscraper.com/maps/search-v2",
        ),
        cost_per_result=max(0.0, _get_float_env("OUTSCRAPER_COST_PER_RESULT", 0.003)),
        language=_get_str_env("OUTSCRAPER_LANGUAGE", "en"),
        region=_get_str_env("OUTSCRAPER_REGION", "us"),
        request_timeout_seconds=max(
            1.0,
            _get_float_env("EXPANSION_REQUEST_TIMEOUT_SECONDS", 60.0),
        ),
        request_delay_seconds=max(
            0.0,
            _get_float_env("EXPANSION_REQUEST_DELAY_SECONDS", 1.0),
        ),
        reference_data_path=str(
            _resolve_path(
                _get_str_env(
                    "EXPANSION_REFERENCE_DATA_PATH",
                    "app/expansion/config/reference_data.json",
                )
            )
        ),
        report_dir=str(_resolve_path(_get_str_env("EXPANSION_REPORT_DIR", "expansion-logs"))),
        report_top_gaps=max(0, _get_int_env("EXPANSION_REPORT_TOP_GAPS", 50)),
        slug_max_attempts=max(1, _get_int_env("EXPANSION_SLUG_MAX_ATTEMPTS", 100)),
    )


@lru_cache(maxsize=4)
def load_reference_data(
    path: str,
) -> tuple[tuple[CategoryDefinition, ...], tuple[LocationReference, ...]]:
    """
    Load the static category and city lists from a JSON file.
    """

    resolved = _resolve_path(path)
    if not resolved.exists():
        raise ReferenceDataError(f"Reference data file not found: {resolved}")

    try:
        raw_data = json.loads(resolved.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise ReferenceDataError(f"Reference data file is not valid JSON: {resolved}") from exc

    categories = _parse_categories(raw_data.get("categories"))
    cities = _parse_cities(raw_data.get("cities"))
    if not categories or not cities:
        raise ReferenceDataError("Reference data must define at least one category and one city.")
    return categories, cities


def _parse_categories(entries: object) -> tuple[CategoryDefinition, ...]:
    if not isinstance(entries, list):
        raise ReferenceDataError("Invalid reference data: 'categories' must be a list.")

    parsed: list[CategoryDefinition] = []
    seen: set[str] = set()
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        slug = str(entry.get("slug", "")).strip()
        queries = tuple(
            item.strip()
            for item in entry.get("search_queries", [])
            if isinstance(item, str) and item.strip()
        )
        if not slug or not queries:
            continue
        if slug in seen:
            raise ReferenceDataError(f"Duplicate category slug in reference data: {slug}")
        seen.add(slug)
        parsed.append(
            CategoryDefinition(
                slug=slug,
                display_name=str(entry.get("display_name", slug)).strip() or slug,
                search_queries=queries,
                default_subcategories=tuple(
                    item for item in entry.get("default_subcategories", []) if isinstance(item, str)
                ),
            )
        )
    return tuple(parsed)


def _parse_cities(entries: object) -> tuple[LocationReference, ...]:
    if not isinstance(entries, list):
        raise ReferenceDataError("Invalid reference data: 'cities' must be a list.")

    parsed: list[LocationReference] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        try:
            parsed.append(
                LocationReference(
                    slug=str(entry["slug"]).strip(),
                    city=str(entry["city"]).strip(),
                    state=str(entry["state"]).strip(),
                    state_abbr=str(entry["state_abbr"]).strip().upper(),
                    population=int(entry["population"]),
                    latitude=float(entry["latitude"]),
                    longitude=float(entry["longitude"]),
                )
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ReferenceDataError(f"Invalid city entry in reference data: {entry!r}") from exc
    return tuple(parsed)


def resolve_categories(
    categories: tuple[CategoryDefinition, ...],
    requested: str,
) -> list[CategoryDefinition]:
    """
    Resolve the `--category` option: `auto` means every category.
    """

    if requested.strip().lower() == "auto":
        return list(categories)
    for category in categories:
        if category.slug == requested:
            return [category]
    raise UnknownCategoryError(requested, [category.slug for category in categories])
