import os
import csv
import sys
import argparse
import logging
import psycopg2

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
log = logging.getLogger(__name__)

DEFAULT_OUTPUT = "accessibility_reports.csv"


def dump(db_url: str, output: str, run_id: int | None = None) -> None:
    log.info("Connecting to database …")
    conn = psycopg2.connect(db_url)

    with conn.cursor() as cur:
        if run_id is None:
            cur.execute("SELECT id FROM audit_runs WHERE status <> 'running' ORDER BY id DESC LIMIT 1")
            row = cur.fetchone()
            if row is None:
                log.error("No finished audit run in the database")
                conn.close()
                sys.exit(1)
            run_id = row[0]

        log.info("Querying reports of run #%d …", run_id)
        cur.execute(
            """
            SELECT
                r.repository,
                r.homepage,
                a.tool,
                r.urls_analyzed,
                r.urls_succeeded,
                r.status,
                r.error_count,
                r.warning_count,
                r.notice_count,
                r.level_a,
                r.level_aa,
                r.level_aaa,
                r.level_unknown,
                r.success_rate,
                r.mean_score
            FROM accessibility_reports r
            JOIN audit_runs a ON a.id = r.run_id
            WHERE r.run_id = %s
            ORDER BY r.repository
            """,
            (run_id,),
        )
        rows = cur.fetchall()
        columns = [desc[0] for desc in cur.description]

    conn.close()

    log.info("Writing %d rows to %s …", len(rows), output)
    with open(output, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(columns)
        writer.writerows(rows)

    log.info("Dump complete: %s (%d rows)", output, len(rows))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Export accessibility reports from PostgreSQL")
    parser.add_argument("--run-id", type=int, help="audit run to export (default: latest finished)")
    parser.add_argument("--output", default=DEFAULT_OUTPUT)
    args = parser.parse_args()

    db_url = os.environ.get("DATABASE_URL")
    if not db_url:
        log.error("DATABASE_URL environment variable is required")
        sys.exit(1)

    dump(db_url, args.output, args.run_id)
