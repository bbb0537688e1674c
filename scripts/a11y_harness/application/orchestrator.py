from __future__ import annotations
import asyncio
import logging
from typing import AsyncIterator
from a11y_harness.domain.entities import (
    AggregateReport,
    RepositoryRecord,
    ReportStatus,
    ToolFailure,
    ToolResult,
    ToolSuccess,
)
from a11y_harness.domain.interfaces import IToolAdapter
from .aggregator import ResultAggregator
from .pacing import Clock, HostPacer
from .url_selector import UrlSelector

log = logging.getLogger(__name__)

MAX_CONCURRENT    = 1       # one repository at a time, like the reference runners
TOOL_TIMEOUT_SECS = 120.0
REPO_PAUSE_SECS   = 2.0


class AuditOrchestrator:
    """
    Runs one accessibility tool over every selected page of every repository.

    All dependencies are injected:
      - UrlSelector       → which pages to audit
      - IToolAdapter      → how to audit one page
      - ResultAggregator  → how per-page results fold into one row
      - HostPacer         → how far apart requests to one host must be

    A failure on one URL only lowers urls_succeeded; a crash inside one
    repository becomes an ERROR row. Nothing unwinds past a repository.
    """

    def __init__(
        self,
        selector: UrlSelector,
        adapter: IToolAdapter,
        aggregator: ResultAggregator,
        pacer: HostPacer | None = None,
        max_concurrent: int = MAX_CONCURRENT,
        tool_timeout_secs: float = TOOL_TIMEOUT_SECS,
        repo_pause_secs: float = REPO_PAUSE_SECS,
        clock: Clock | None = None,
    ) -> None:
        self._selector       = selector
        self._adapter        = adapter
        self._aggregator     = aggregator
        self._clock          = clock or Clock()
        self._pacer          = pacer or HostPacer(clock=self._clock)
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self._semaphore      = asyncio.Semaphore(max_concurrent)
        self._max_concurrent = max_concurrent
        self._tool_timeout   = tool_timeout_secs
        self._repo_pause     = repo_pause_secs

    async def run_tool(self, url: str) -> ToolResult:
        """One bounded tool invocation. Timeouts and engine crashes become ToolFailure."""
        await self._pacer.wait(url)
        try:
            return await asyncio.wait_for(self._adapter.run(url), timeout=self._tool_timeout)
        except asyncio.TimeoutError:
            log.warning("%s timed out after %.0fs on %s", self._adapter.name, self._tool_timeout, url)
            return ToolFailure(url=url, reason=f"timeout after {self._tool_timeout:.0f}s")
        except Exception as exc:
            log.warning("%s failed on %s: %s", self._adapter.name, url, exc)
            return ToolFailure(url=url, reason=str(exc) or type(exc).__name__)
        finally:
            self._pacer.done(url)

    def _error_report(self, record: RepositoryRecord, results: tuple[ToolResult, ...]) -> AggregateReport:
        return AggregateReport(
            repository     = record.repository,
            homepage       = record.homepage,
            tool           = self._adapter.name,
            urls_analyzed  = len(results),
            urls_succeeded = 0,
            status         = ReportStatus.ERROR,
            url_results    = results,
        )

    async def audit_repository(self, record: RepositoryRecord, stop_event: asyncio.Event | None = None) -> AggregateReport | None:
        """
        Select pages, audit each one sequentially, aggregate.

        Returns None when `stop_event` was set before any page was audited,
        so a cancelled run does not record repositories it never touched.
        """
        stop_event = stop_event or asyncio.Event()

        if not record.homepage:
            log.info("Skipping %s — no homepage", record.repository)
            return self._error_report(record, ())

        results: list[ToolResult] = []
        try:
            urls = await self._selector.select_urls(record.homepage)

            for i, url in enumerate(urls, start=1):
                if stop_event.is_set():
                    break
                log.info("%s | [%d/%d] %s", record.repository, i, len(urls), url)
                result = await self.run_tool(url)
                if isinstance(result, ToolSuccess):
                    log.info("   ✓ errors: %d | warnings: %d", result.error_count, result.warning_count)
                else:
                    log.info("   ✗ %s", result.reason)
                results.append(result)

            if not results:
                return None

            report = self._aggregator.aggregate(
                results,
                repository = record.repository,
                homepage   = record.homepage,
                tool       = self._adapter.name,
            )
        except Exception as exc:
            log.error("Repository %s failed: %s", record.repository, exc, exc_info=True)
            return self._error_report(record, tuple(results))

        if report.status is ReportStatus.SUCCESS:
            log.info(
                "%s | %d/%d URLs | errors=%d warnings=%d | A=%d AA=%d AAA=%d",
                record.repository,
                report.urls_succeeded,
                report.urls_analyzed,
                report.error_count,
                report.warning_count,
                report.level_a,
                report.level_aa,
                report.level_aaa,
            )
        return report

    async def _run_single_repo(self, record: RepositoryRecord, stop_event: asyncio.Event) -> AggregateReport | None:
        async with self._semaphore:
            if stop_event.is_set():
                return None
            report = await self.audit_repository(record, stop_event)
            if self._repo_pause > 0 and not stop_event.is_set():
                await self._clock.sleep(self._repo_pause)
            return report

    async def collect(self, records: list[RepositoryRecord], stop_event: asyncio.Event | None = None) -> AsyncIterator[list[AggregateReport]]:
        """
        Async generator: yields batches of reports in input order.

        Repositories are processed in chunks of (max_concurrent × 4); within a
        chunk the semaphore bounds how many run at once. Setting `stop_event`
        stops new tool invocations; reports already computed are still yielded.
        """
        stop_event = stop_event or asyncio.Event()
        chunk_size = self._max_concurrent * 4

        log.info("Starting audit | tool=%s | repos=%d | concurrency=%d", self._adapter.name, len(records), self._max_concurrent)

        for i in range(0, len(records), chunk_size):
            if stop_event.is_set():
                log.info("Stop requested — not starting remaining %d repositories", len(records) - i)
                break

            chunk   = records[i: i + chunk_size]
            reports = await asyncio.gather(*[self._run_single_repo(r, stop_event) for r in chunk])
            batch   = [r for r in reports if r is not None]

            if batch:
                log.info(
                    "Chunk %d/%d | %d report(s)",
                    i // chunk_size + 1,
                    (len(records) + chunk_size - 1) // chunk_size,
                    len(batch),
                )
                yield batch
