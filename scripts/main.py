"""
main.py — Dependency Wiring (Composition Root) for an audit run
----------------------------------------------------------------
Reads configuration from flags and environment variables, builds the
concrete implementation of each interface, injects them, runs
AuditApplicationService.execute and reports the result.

Dependency graph:
                         main.py  (wires everything)
                            │
              ┌─────────────┼───────────────────┐
              ▼             ▼                   ▼
    AuditApplicationService │        CsvReportStorage / PostgresReportStorage
              │             │
              ▼             ▼
     AuditOrchestrator   IToolAdapter (axe | pa11y | htmlcs | lighthouse | wave)
              │
    ┌─────────┼──────────────┬───────────┐
    ▼         ▼              ▼           ▼
UrlSelector  ResultAggregator HostPacer  HttpSitemapFetcher
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import sys

import httpx
import psycopg2

# Application layer
from a11y_harness.application.aggregator import DEFAULT_AUTOMATABLE, ResultAggregator, build_policy
from a11y_harness.application.audit_service import AuditApplicationService
from a11y_harness.application.deduplicator import RepositoryDeduplicator
from a11y_harness.application.orchestrator import AuditOrchestrator
from a11y_harness.application.pacing import HostPacer
from a11y_harness.application.url_selector import UrlSelectionConfig, UrlSelector

# Domain
from a11y_harness.domain.exceptions import InputSourceError, ToolUnavailableError

# Infrastructure layer
from a11y_harness.infrastructure.csv_storage import CsvReportStorage, CsvRepositorySource
from a11y_harness.infrastructure.postgres_storage import PostgresReportStorage
from a11y_harness.infrastructure.sitemap_fetcher import HttpSitemapFetcher
from a11y_harness.infrastructure.tools.registry import DEFAULT_POLICIES, TOOL_NAMES, build_adapter
from a11y_harness.infrastructure.tools.script_cache import ScriptCache

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

LOG_FORMAT  = "%(asctime)s [%(levelname)s] %(name)s — %(message)s"
LOG_DATEFMT = "%H:%M:%S"

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

DEFAULT_INPUT       = "repositorios_com_homepage.csv"
DEFAULT_CACHE_DIR   = ".a11y_cache"
DEFAULT_MAX_URLS    = 10
DEFAULT_CONCURRENCY = 1


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run an accessibility engine over the homepages of GitHub repositories"
    )
    parser.add_argument("--tool", choices=TOOL_NAMES, default="axe", help="accessibility engine (default: axe)")
    parser.add_argument("--input", default=DEFAULT_INPUT, help=f"repository CSV (default: {DEFAULT_INPUT})")
    parser.add_argument("--output-csv", help="summary CSV (default: <tool>_ci_results.csv)")
    parser.add_argument("--output-json", help="detailed JSON (default: <tool>_ci_results.json)")
    parser.add_argument("--max-urls", type=positive_int, default=DEFAULT_MAX_URLS, help=f"pages per repository (default: {DEFAULT_MAX_URLS})")
    parser.add_argument("--no-sitemap", action="store_true", help="audit homepages only")
    parser.add_argument("--sitemap-timeout-ms", type=int, default=10_000)
    parser.add_argument("--weighted-priority", action="store_true", help="earlier priority patterns score higher")
    parser.add_argument("--success-rate", choices=("density", "denominator"), help="override the tool's success-rate formula")
    parser.add_argument("--automatable-criteria", type=int, default=DEFAULT_AUTOMATABLE)
    parser.add_argument("--concurrency", type=positive_int, default=DEFAULT_CONCURRENCY, help="repositories audited at once")
    parser.add_argument("--tool-timeout", type=float, default=120.0, help="seconds per tool invocation")
    parser.add_argument("--url-interval", type=float, default=1.0, help="minimum seconds between requests to one host")
    parser.add_argument("--repo-pause", type=float, default=2.0, help="seconds to pause after each repository")
    parser.add_argument("--cache-dir", default=DEFAULT_CACHE_DIR, help="where engine scripts are cached")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def _install_stop_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            log.debug("Signal handlers unavailable; Ctrl+C will abort without flushing")
            return


# ---------------------------------------------------------------------------
# Dependency wiring
# ---------------------------------------------------------------------------

async def build_and_run(args: argparse.Namespace) -> int:
    """
    Wires all dependencies together and executes the audit use case.
    Returns the process exit code.
    """
    records = RepositoryDeduplicator().filter_fresh(CsvRepositorySource(args.input).read())

    output_csv  = args.output_csv or f"{args.tool}_ci_results.csv"
    output_json = args.output_json or f"{args.tool}_ci_results.json"
    db_url      = os.environ.get("DATABASE_URL")

    client = httpx.AsyncClient()
    conn   = psycopg2.connect(db_url) if db_url else None

    try:
        adapter = await build_adapter(
            args.tool,
            client       = client,
            cache        = ScriptCache(args.cache_dir, client),
            wave_api_key = os.environ.get("WAVE_API_KEY"),
        )

        storages = [CsvReportStorage(output_csv, output_json)]
        if conn is not None:
            pg = PostgresReportStorage(conn)
            pg.ensure_schema()
            storages.append(pg)

        selector = UrlSelector(
            fetcher = HttpSitemapFetcher(client),
            config  = UrlSelectionConfig(
                max_urls           = args.max_urls,
                use_sitemap        = not args.no_sitemap,
                sitemap_timeout_ms = args.sitemap_timeout_ms,
                weighted_priority  = args.weighted_priority,
            ),
        )
        policy = build_policy(args.success_rate or DEFAULT_POLICIES[args.tool], args.automatable_criteria)

        orchestrator = AuditOrchestrator(
            selector          = selector,
            adapter           = adapter,
            aggregator        = ResultAggregator(policy),
            pacer             = HostPacer(args.url_interval),
            max_concurrent    = args.concurrency,
            tool_timeout_secs = args.tool_timeout,
            repo_pause_secs   = args.repo_pause,
        )
        service = AuditApplicationService(orchestrator, storages, tool=args.tool)

        stop_event = asyncio.Event()
        _install_stop_handlers(stop_event)

        result = await service.execute(records, stop_event)

        if result.status == "failed":
            log.error("❌ Failed | %d repos audited before failure | error: %s", result.total_repos, result.error_message)
            return 1

        log.info(
            "✅ %s | %d repos | %d ok | %d errors | %.0fs | results in %s",
            result.status.capitalize(),
            result.total_repos,
            result.succeeded,
            result.failed,
            result.elapsed_secs,
            output_csv,
        )
        return 0

    finally:
        await client.aclose()
        if conn is not None:
            conn.close()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level   = logging.DEBUG if args.verbose else logging.INFO,
        format  = LOG_FORMAT,
        datefmt = LOG_DATEFMT,
    )
    try:
        return asyncio.run(build_and_run(args))
    except (InputSourceError, ToolUnavailableError) as exc:
        log.error("%s", exc)
        return 1


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())
