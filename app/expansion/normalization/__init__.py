"""
Normalization layer for provider records.
"""

from app.expansion.normalization.record_normalizer import RecordNormalizer, parse_address, slugify
from app.expansion.normalization.slugs import SlugResolver

__all__ = ["RecordNormalizer", "SlugResolver", "parse_address", "slugify"]
