"""
Expansion configuration models.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class ExpansionSettings:
    """
    Environment-level settings for the expansion engine.
    """

    outscraper_api_key: str | None
    outscraper_base_url: str
    cost_per_result: float
    language: str
    region: str
    request_timeout_seconds: float
    request_delay_seconds: float
    reference_data_path: str
    report_dir: str
    report_top_gaps: int
    slug_max_attempts: int


@dataclass(frozen=True)
class ExpansionRunConfig:
    """
    Per-run budget window and selection options, usually from the CLI.
    """

    max_cost: float = 10.0
    max_cities: int = 20
    category: str = "auto"
    dry_run: bool = False
    days_threshold: int = 30
    results_per_city: int = 50
    strategy: str = "score"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
