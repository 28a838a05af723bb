"""
Config helpers for expansion runs.
"""

from app.expansion.config.loader import get_expansion_settings, load_reference_data, resolve_categories
from app.expansion.config.models import ExpansionRunConfig, ExpansionSettings

__all__ = [
    "ExpansionRunConfig",
    "ExpansionSettings",
    "get_expansion_settings",
    "load_reference_data",
    "resolve_categories",
]
