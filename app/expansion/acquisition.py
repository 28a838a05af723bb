"""
Outscraper Google Maps search client.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import requests

from app.domain.expansion import CategoryDefinition, CoverageGap
from app.expansion.config.models import ExpansionSettings
from app.expansion.errors import AcquisitionError, ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AcquisitionResult:
    """
    Raw provider records for one gap plus the cost actually incurred.
    """

    query: str
    records: list[dict[str, Any]] = field(default_factory=list)
    cost: float = 0.0


def build_query(category: CategoryDefinition, gap: CoverageGap) -> str:
    return f"{category.primary_query} in {gap.city}, {gap.state_abbr}"


class OutscraperClient:
    """
    One synchronous search request per call. No retries: a failed gap waits
    for the next run.
    """

    source = "outscraper"

    def __init__(
        self,
        *,
        settings: ExpansionSettings,
        session: requests.Session | None = None,
    ) -> None:
        if not settings.outscraper_api_key:
            raise ConfigurationError("OUTSCRAPER_API_KEY not set - cannot proceed with live run")
        self._settings = settings
        self._session = session or requests.Session()

    def cost_for(self, result_count: int) -> float:
        return result_count * self._settings.cost_per_result

    def search(
        self,
        *,
        gap: CoverageGap,
        category: CategoryDefinition,
        limit: int,
    ) -> AcquisitionResult:
        query = build_query(category, gap)
        params = {
            "query": query,
            "limit": str(limit),
            "language": self._settings.language,
            "region": self._settings.region,
            "async": "false",
        }

        try:
            response = self._session.request(
                method="GET",
                url=self._settings.outscraper_base_url,
                params=params,
                headers={"X-API-KEY": self._settings.outscraper_api_key or ""},
                timeout=self._settings.request_timeout_seconds,
            )
        except (requests.Timeout, requests.ConnectionError) as exc:
            logger.error("Outscraper request failed query=%s error=%s", query, exc)
            raise AcquisitionError(f"Outscraper request failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise AcquisitionError(
                f"Outscraper API error: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise AcquisitionError("Outscraper response was not valid JSON.") from exc

        records = self._extract_records(payload)
        return AcquisitionResult(query=query, records=records, cost=self.cost_for(len(records)))

    @staticmethod
    def _extract_records(payload: Any) -> list[dict[str, Any]]:
        if not isinstance(payload, dict):
            raise AcquisitionError("Outscraper response must be a JSON object.")
        data = payload.get("data")
        if not data:
            return []
        if not isinstance(data, list) or not isinstance(data[0], list):
            raise AcquisitionError("Outscraper response 'data' must be a list of result lists.")
        return [item for item in data[0] if isinstance(item, dict)]
