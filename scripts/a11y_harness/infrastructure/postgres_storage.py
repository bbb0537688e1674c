from __future__ import annotations
import json
import logging
import psycopg2
from psycopg2.extras import execute_values
from a11y_harness.domain.entities import AggregateReport
from a11y_harness.domain.interfaces import IReportStorage
from .csv_storage import report_detail

log = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS audit_runs (
    id          SERIAL PRIMARY KEY,
    tool        TEXT        NOT NULL,
    started_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    finished_at TIMESTAMPTZ,
    status      TEXT        NOT NULL DEFAULT 'running',
    total_repos INTEGER,
    error_msg   TEXT
);

CREATE TABLE IF NOT EXISTS accessibility_reports (
    run_id         INTEGER NOT NULL REFERENCES audit_runs (id),
    repository     TEXT    NOT NULL,
    homepage       TEXT,
    urls_analyzed  INTEGER NOT NULL,
    urls_succeeded INTEGER NOT NULL,
    status         TEXT    NOT NULL,
    error_count    INTEGER,
    warning_count  INTEGER,
    notice_count   INTEGER,
    level_a        INTEGER,
    level_aa       INTEGER,
    level_aaa      INTEGER,
    level_unknown  INTEGER,
    success_rate   DOUBLE PRECISION,
    mean_score     DOUBLE PRECISION,
    detail         JSONB,
    PRIMARY KEY (run_id, repository)
);
"""


class PostgresReportStorage(IReportStorage):
    """
    Concrete implementation of IReportStorage using PostgreSQL.

    Receives an already-connected psycopg2 connection (injected) and does
    not manage its lifecycle. NULL metrics stay NULL: an ERROR row is
    "not measured", never zero.
    """

    def __init__(self, conn) -> None:
        self._conn = conn

    def ensure_schema(self) -> None:
        with self._conn.cursor() as cur:
            cur.execute(SCHEMA)
        self._conn.commit()

    def create_run(self, tool: str) -> int:
        with self._conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO audit_runs (tool, started_at, status)
                VALUES (%s, NOW(), 'running')
                RETURNING id
                """,
                (tool,),
            )
            run_id = cur.fetchone()[0]
        self._conn.commit()
        log.debug("Created audit run #%d", run_id)
        return run_id

    def save_reports(self, run_id: int, reports: list[AggregateReport]) -> None:
        """
        Upsert one row per repository in a single round-trip.
        ON CONFLICT keeps re-flushes of the same run idempotent.
        """
        if not reports:
            return

        rows = [
            (
                run_id,
                r.repository,
                r.homepage,
                r.urls_analyzed,
                r.urls_succeeded,
                r.status.value,
                r.error_count,
                r.warning_count,
                r.notice_count,
                r.level_a,
                r.level_aa,
                r.level_aaa,
                r.level_unknown,
                r.success_rate,
                r.mean_score,
                json.dumps(report_detail(r)["url_results"]),
            )
            for r in reports
        ]

        try:
            with self._conn.cursor() as cur:
                execute_values(
                    cur,
                    """
                    INSERT INTO accessibility_reports
                        (run_id, repository, homepage, urls_analyzed, urls_succeeded, status,
                         error_count, warning_count, notice_count, level_a, level_aa, level_aaa,
                         level_unknown, success_rate, mean_score, detail)
                    VALUES %s
                    ON CONFLICT (run_id, repository) DO UPDATE SET
                        urls_analyzed  = EXCLUDED.urls_analyzed,
                        urls_succeeded = EXCLUDED.urls_succeeded,
                        status         = EXCLUDED.status,
                        error_count    = EXCLUDED.error_count,
                        warning_count  = EXCLUDED.warning_count,
                        notice_count   = EXCLUDED.notice_count,
                        level_a        = EXCLUDED.level_a,
                        level_aa       = EXCLUDED.level_aa,
                        level_aaa      = EXCLUDED.level_aaa,
                        level_unknown  = EXCLUDED.level_unknown,
                        success_rate   = EXCLUDED.success_rate,
                        mean_score     = EXCLUDED.mean_score,
                        detail         = EXCLUDED.detail
                    """,
                    rows,
                )
            self._conn.commit()
        except psycopg2.Error:
            self._conn.rollback()
            raise
        log.debug("Upserted %d reports to PostgreSQL", len(reports))

    def finish_run(self, run_id: int, total: int, status: str, error: str | None = None) -> None:
        try:
            with self._conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE audit_runs
                    SET finished_at = NOW(),
                        total_repos = %s,
                        status      = %s,
                        error_msg   = %s
                    WHERE id = %s
                    """,
                    (total, status, error, run_id),
                )
            self._conn.commit()
        except psycopg2.Error:
            self._conn.rollback()
            raise
        log.debug("Finished audit run #%d | status=%s | total=%d", run_id, status, total)
