from __future__ import annotations
from a11y_harness.domain.entities import RepositoryRecord


class RepositoryDeduplicator:
    """
    Drops repeated repositories from an input list.

    Input CSVs are hand-curated and the same repository is sometimes listed
    twice; auditing it twice would double-count it in every summary. Names
    are compared case-insensitively because GitHub treats them that way.
    """

    def __init__(self) -> None:
        self._seen: set[str] = set()

    def filter_fresh(self, records: list[RepositoryRecord]) -> list[RepositoryRecord]:
        """Return only records not seen before. Remembers what it has seen."""
        fresh = []
        for r in records:
            key = r.repository.strip().lower()
            if key in self._seen:
                continue
            self._seen.add(key)
            fresh.append(r)
        return fresh

    def total_seen(self) -> int:
        return len(self._seen)
