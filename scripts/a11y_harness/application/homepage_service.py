from __future__ import annotations

import logging

from a11y_harness.domain.entities import RepositoryRecord
from a11y_harness.domain.interfaces import IHomepageFetcher
from .deduplicator import RepositoryDeduplicator
from .pacing import Clock

log = logging.getLogger(__name__)

REQUEST_PAUSE_SECS = 0.5


class HomepageExtractionService:
    """
    Resolves the homepage of every repository through the GitHub API and
    keeps only the ones that have one. The result is the input of an audit run.
    """

    def __init__(
        self,
        fetcher: IHomepageFetcher,
        deduplicator: RepositoryDeduplicator | None = None,
        pause_secs: float = REQUEST_PAUSE_SECS,
        clock: Clock | None = None,
    ) -> None:
        self._fetcher      = fetcher
        self._deduplicator = deduplicator or RepositoryDeduplicator()
        self._pause        = pause_secs
        self._clock        = clock or Clock()

    async def execute(self, records: list[RepositoryRecord]) -> list[RepositoryRecord]:
        fresh = self._deduplicator.filter_fresh(records)
        found: list[RepositoryRecord] = []

        for i, record in enumerate(fresh, start=1):
            try:
                homepage = await self._fetcher.fetch_homepage(record.repository)
            except Exception as exc:
                log.warning("[%d/%d] %s — homepage lookup failed: %s", i, len(fresh), record.repository, exc)
                homepage = None

            if homepage:
                log.info("[%d/%d] %s → %s", i, len(fresh), record.repository, homepage)
                found.append(RepositoryRecord(repository=record.repository, homepage=homepage))
            else:
                log.info("[%d/%d] %s — no homepage", i, len(fresh), record.repository)

            if self._pause > 0 and i < len(fresh):
                await self._clock.sleep(self._pause)

        if fresh:
            log.info(
                "Homepages found: %d/%d (%.1f%%)",
                len(found),
                len(fresh),
                100 * len(found) / len(fresh),
            )
        return found
