from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from a11y_harness.domain.entities import AggregateReport, AuditRunResult, RepositoryRecord, ReportStatus
from a11y_harness.domain.interfaces import IReportStorage
from .orchestrator import AuditOrchestrator

log = logging.getLogger(__name__)


class AuditApplicationService:
    """
    The top-level use case: audit every repository and persist the rows.

    Rows are accumulated in memory and flushed to every storage exactly once
    at the end, including when the run is cancelled or crashes, so partial
    progress is never thrown away.
    """

    def __init__(self, orchestrator: AuditOrchestrator, storages: list[IReportStorage], tool: str) -> None:
        self._orchestrator = orchestrator
        self._storages     = storages
        self._tool         = tool

    def _flush(self, run_ids: list[int], reports: list[AggregateReport], status: str, error: str | None) -> None:
        for storage, run_id in zip(self._storages, run_ids):
            name = type(storage).__name__
            try:
                storage.save_reports(run_id, reports)
            except Exception as exc:
                log.error("Could not flush %d report(s) to %s: %s", len(reports), name, exc, exc_info=True)
            try:
                storage.finish_run(run_id, len(reports), status, error)
            except Exception as exc:
                log.error("Could not close run #%d in %s: %s", run_id, name, exc, exc_info=True)

    async def execute(self, records: list[RepositoryRecord], stop_event: asyncio.Event | None = None) -> AuditRunResult:
        """
        Run the audit over `records`.
        Returns an AuditRunResult describing what happened.
        """
        stop_event = stop_event or asyncio.Event()
        started_at = datetime.now(tz=timezone.utc)
        run_ids    = [s.create_run(self._tool) for s in self._storages]
        run_id     = run_ids[0] if run_ids else 0
        reports: list[AggregateReport] = []

        log.info("AuditApplicationService | run #%d | tool: %s | repos: %d", run_id, self._tool, len(records))

        status = "success"
        error: str | None = None
        try:
            async for batch in self._orchestrator.collect(records, stop_event):
                reports.extend(batch)
                log.info("Audited %d/%d repositories", len(reports), len(records))
            if stop_event.is_set():
                status = "cancelled"
        except Exception as exc:
            log.error("Audit run failed: %s", exc, exc_info=True)
            status = "failed"
            error  = str(exc)
        finally:
            self._flush(run_ids, reports, status, error)

        elapsed   = (datetime.now(tz=timezone.utc) - started_at).total_seconds()
        succeeded = sum(1 for r in reports if r.status is ReportStatus.SUCCESS)
        log.info("Audit %s | %d repos | %d ok | %d errors | %.0fs", status, len(reports), succeeded, len(reports) - succeeded, elapsed)

        return AuditRunResult(
            run_id        = run_id,
            total_repos   = len(reports),
            succeeded     = succeeded,
            failed        = len(reports) - succeeded,
            status        = status,
            elapsed_secs  = elapsed,
            error_message = error,
        )
