"""
app/schemas/expansion_report.py

On-disk schema of the daily expansion report artifact.

Field names are camelCase on disk; the historical reporting tool reads them.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class ScrapeResultEntry(_CamelModel):
    """
    One gap's outcome inside a report.
    """

    city_slug: str
    category: str
    results_count: int = Field(0, ge=0)
    new_listings_count: int = Field(0, ge=0)
    api_cost: float = Field(0.0, ge=0)
    status: str
    error_message: str | None = None


class ExpansionReportDocument(_CamelModel):
    """
    One UTC day of expansion runs, merged.
    """

    run_date: str
    config: dict[str, Any] = Field(default_factory=dict)
    total_cost: float = Field(0.0, ge=0)
    cities_processed: int = Field(0, ge=0)
    total_results: int = Field(0, ge=0)
    new_listings: int = Field(0, ge=0)
    errors: int = Field(0, ge=0)
    results: list[ScrapeResultEntry] = Field(default_factory=list)
    coverage_gaps: list[dict[str, Any]] = Field(default_factory=list)

    def to_json_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
