"""
Run-scoped deduplication of provider records by external identifier.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

PRIMARY_ID_FIELD = "place_id"
ALTERNATE_ID_FIELD = "google_id"


def extract_source_id(record: Mapping[str, Any]) -> str | None:
    for field_name in (PRIMARY_ID_FIELD, ALTERNATE_ID_FIELD):
        value = record.get(field_name)
        if value is None or isinstance(value, (bool, dict, list)):
            continue
        normalized = str(value).strip()
        if normalized:
            return normalized
    return None


class SourceIdDeduplicator:
    """
    Membership set of source ids already in the directory or seen this run.
    """

    def __init__(self, existing_ids: Iterable[str] = ()) -> None:
        self._seen: set[str] = {item for item in existing_ids if item}
        self.duplicates_skipped = 0

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._seen

    def __len__(self) -> int:
        return len(self._seen)

    def admit(self, record: Mapping[str, Any]) -> bool:
        """
        Return True if the record is new, marking its id as seen immediately.

        Records without an id are always admitted.
        """

        source_id = extract_source_id(record)
        if source_id is None:
            return True
        if source_id in self._seen:
            self.duplicates_skipped += 1
            return False
        self._seen.add(source_id)
        return True

    def filter_new(self, records: Iterable[Mapping[str, Any]]) -> list[Mapping[str, Any]]:
        return [record for record in records if self.admit(record)]
