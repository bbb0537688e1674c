import json
from unittest.mock import MagicMock, patch

import psycopg2
import pytest

from a11y_harness.domain.entities import AggregateReport, ReportStatus
from a11y_harness.infrastructure.postgres_storage import PostgresReportStorage
from helpers import failure


def make_conn():
    conn = MagicMock()
    cursor = conn.cursor.return_value.__enter__.return_value
    return conn, cursor


def failed_report():
    return AggregateReport(
        repository     = "broken/site",
        homepage       = "https://broken.dev",
        tool           = "axe",
        urls_analyzed  = 1,
        urls_succeeded = 0,
        status         = ReportStatus.ERROR,
        url_results    = (failure("https://broken.dev"),),
    )


def test_create_run_returns_new_id():
    conn, cursor = make_conn()
    cursor.fetchone.return_value = (42,)

    assert PostgresReportStorage(conn).create_run("axe") == 42
    assert cursor.execute.call_args.args[1] == ("axe",)
    conn.commit.assert_called_once()


def test_save_reports_upserts_with_nulls_for_error_rows():
    conn, cursor = make_conn()
    report = failed_report()

    with patch("a11y_harness.infrastructure.postgres_storage.execute_values") as execute_values:
        PostgresReportStorage(conn).save_reports(7, [report])

    rows = execute_values.call_args.args[2]
    assert rows[0][:6] == (7, "broken/site", "https://broken.dev", 1, 0, "ERROR")
    assert rows[0][6:15] == (None,) * 9
    assert json.loads(rows[0][15])[0]["status"] == "ERROR"
    assert "ON CONFLICT" in execute_values.call_args.args[1]
    conn.commit.assert_called_once()


def test_save_nothing_skips_database():
    conn, _ = make_conn()

    with patch("a11y_harness.infrastructure.postgres_storage.execute_values") as execute_values:
        PostgresReportStorage(conn).save_reports(1, [])

    execute_values.assert_not_called()
    conn.commit.assert_not_called()


def test_finish_run_records_status():
    conn, cursor = make_conn()

    PostgresReportStorage(conn).finish_run(3, 12, "cancelled")

    assert cursor.execute.call_args.args[1] == (12, "cancelled", None, 3)


def test_failed_upsert_rolls_back_and_raises():
    conn, _ = make_conn()

    with patch("a11y_harness.infrastructure.postgres_storage.execute_values",
               side_effect=psycopg2.OperationalError("server closed the connection")):
        with pytest.raises(psycopg2.OperationalError):
            PostgresReportStorage(conn).save_reports(1, [failed_report()])

    conn.rollback.assert_called_once()
    conn.commit.assert_not_called()


def test_failed_finish_rolls_back_and_raises():
    conn, cursor = make_conn()
    cursor.execute.side_effect = psycopg2.InterfaceError("connection already closed")

    with pytest.raises(psycopg2.InterfaceError):
        PostgresReportStorage(conn).finish_run(3, 12, "success")

    conn.rollback.assert_called_once()
