"""
Domain Layer — Interfaces (Abstract Contracts)
-----------------------------------------------
The domain layer defines the shape; the infrastructure layer implements it.

Application services depend only on these contracts, so a test can hand the
orchestrator a FakeToolAdapter or a FakeSitemapFetcher without a browser or
a network connection.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from .entities import AggregateReport, RepositoryRecord, ToolResult


class IToolAdapter(ABC):
    """
    One accessibility engine (axe-core, Pa11y, Lighthouse …) behind a
    single call. The core only ever sees the ToolResult it returns.
    """

    name: str = "tool"

    @abstractmethod
    async def run(self, url: str) -> ToolResult:
        """
        Audit one URL.

        Must not raise for page-level problems (load failure, engine error);
        those come back as ToolFailure. Timeouts are enforced by the caller.
        """
        ...


class ISitemapFetcher(ABC):
    """Retrieves and parses one XML sitemap location."""

    @abstractmethod
    async def fetch(self, sitemap_url: str, timeout_ms: int) -> list[str]:
        """
        Return the page URLs listed at `sitemap_url`.
        Raises SitemapError when the location is unreachable or not a sitemap.
        """
        ...


class IHomepageFetcher(ABC):
    """Looks up the homepage a repository advertises on GitHub."""

    @abstractmethod
    async def fetch_homepage(self, full_name: str) -> str | None:
        ...


class IRepositorySource(ABC):
    """Where the list of repositories to audit comes from."""

    @abstractmethod
    def read(self) -> list[RepositoryRecord]:
        """Raises InputSourceError when the source does not exist."""
        ...


class IReportStorage(ABC):
    """
    Contract that any report sink must fulfil.
    CSV/JSON files and PostgreSQL both implement it.
    """

    @abstractmethod
    def create_run(self, tool: str) -> int:
        """Open an audit run record. Returns the run ID."""
        ...

    @abstractmethod
    def save_reports(self, run_id: int, reports: list[AggregateReport]) -> None:
        """Persist summary rows. Called once per flush, possibly with []."""
        ...

    @abstractmethod
    def finish_run(self, run_id: int, total: int, status: str, error: str | None = None) -> None:
        """Mark an audit run as complete with final stats."""
        ...
