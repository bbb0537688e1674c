from __future__ import annotations

import asyncio

from a11y_harness.application.pacing import Clock
from a11y_harness.domain.entities import AggregateReport, ToolFailure, ToolResult, ToolSuccess
from a11y_harness.domain.exceptions import SitemapError
from a11y_harness.domain.interfaces import IReportStorage, ISitemapFetcher, IToolAdapter


class FakeClock(Clock):
    """Virtual time: sleeping advances the clock instantly."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    def time(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeSitemapFetcher(ISitemapFetcher):
    """Serves canned URL lists by sitemap URL; unknown locations raise SitemapError."""

    def __init__(
        self,
        sitemaps: dict[str, list[str]] | None = None,
        crash: bool = False,
        delays: dict[str, float] | None = None,
    ) -> None:
        self.sitemaps = sitemaps or {}
        self.crash = crash
        self.delays = delays or {}
        self.requested: list[tuple[str, int]] = []

    async def fetch(self, sitemap_url: str, timeout_ms: int) -> list[str]:
        self.requested.append((sitemap_url, timeout_ms))
        if sitemap_url in self.delays:
            await asyncio.sleep(self.delays[sitemap_url])
        if self.crash:
            raise RuntimeError("boom")
        if sitemap_url not in self.sitemaps:
            raise SitemapError(f"404 {sitemap_url}")
        return list(self.sitemaps[sitemap_url])


class FakeToolAdapter(IToolAdapter):
    """Returns a preset result per URL; URLs not listed succeed with zero counts."""

    name = "fake"

    def __init__(self, results: dict[str, ToolResult | Exception] | None = None, on_run=None) -> None:
        self.results = results or {}
        self.calls: list[str] = []
        self.on_run = on_run

    async def run(self, url: str) -> ToolResult:
        self.calls.append(url)
        if self.on_run is not None:
            await self.on_run(url)
        result = self.results.get(url)
        if isinstance(result, Exception):
            raise result
        return result or ToolSuccess(url=url, error_count=0, warning_count=0)


class MemoryStorage(IReportStorage):
    def __init__(self, fail_on_save: bool = False) -> None:
        self.runs: dict[int, dict] = {}
        self.saved: dict[int, list[AggregateReport]] = {}
        self.fail_on_save = fail_on_save

    def create_run(self, tool: str) -> int:
        run_id = len(self.runs) + 1
        self.runs[run_id] = {"tool": tool, "status": "running"}
        return run_id

    def save_reports(self, run_id: int, reports: list[AggregateReport]) -> None:
        if self.fail_on_save:
            raise OSError("disk full")
        self.saved[run_id] = list(reports)

    def finish_run(self, run_id: int, total: int, status: str, error: str | None = None) -> None:
        self.runs[run_id].update(total=total, status=status, error=error)


def success(url: str = "https://x.com", errors: int = 0, warnings: int = 0, **levels) -> ToolSuccess:
    if not levels:
        levels = {"level_unknown": errors}
    return ToolSuccess(url=url, error_count=errors, warning_count=warnings, **levels)


def failure(url: str = "https://x.com", reason: str = "page load failed") -> ToolFailure:
    return ToolFailure(url=url, reason=reason)
