from __future__ import annotations

import csv
import json
import logging
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path

from a11y_harness.domain.entities import AggregateReport, RepositoryRecord, ToolSuccess
from a11y_harness.domain.exceptions import InputSourceError
from a11y_harness.domain.interfaces import IReportStorage, IRepositorySource

log = logging.getLogger(__name__)

REPOSITORY_COLUMNS = ("Repositorio", "Repositório", "Repository")
HOMEPAGE_COLUMN    = "Homepage"

REPORT_HEADER = [
    "Repositorio",
    "Homepage",
    "URLs_Analisadas",
    "URLs_Sucesso",
    "Status",
    "ErrorsTotal",
    "WarningsTotal",
    "NoticesTotal",
    "ErrorsA",
    "ErrorsAA",
    "ErrorsAAA",
    "ErrorsIndefinido",
    "TaxaSucessoAcessibilidade",
    "ScoreMedio",
]

# Written only when some report carries them.
CRITERIA_COLUMNS = ["WCAG_CriteriosTotal", "WCAG_CriteriosAutomatizaveis"]
MEAN_COLUMNS     = ["Erros_Media", "Alertas_Media"]
CATEGORY_COLUMNS = {
    "error":     "Erros_Total",
    "alert":     "Alertas_Total",
    "feature":   "Features_Total",
    "structure": "Structural_Total",
    "aria":      "ARIA_Total",
    "contrast":  "Contrast_Total",
    "html5":     "HTML5_Total",
}


def _first(row: dict, columns: tuple[str, ...]) -> str:
    for column in columns:
        value = row.get(column)
        if value and value.strip():
            return value.strip()
    return ""


class CsvRepositorySource(IRepositorySource):
    """
    Reads the repository list. Rows without a repository are dropped; when
    `require_homepage` is set, rows without a homepage are dropped too.
    """

    def __init__(self, path: str | Path, require_homepage: bool = True) -> None:
        self._path = Path(path)
        self._require_homepage = require_homepage

    def read(self) -> list[RepositoryRecord]:
        if not self._path.exists():
            raise InputSourceError(f"Input file not found: {self._path}")

        records = []
        with open(self._path, newline="", encoding="utf-8-sig") as f:
            for row in csv.DictReader(f):
                repository = _first(row, REPOSITORY_COLUMNS)
                homepage   = _first(row, (HOMEPAGE_COLUMN,)) or None
                if not repository:
                    continue
                if self._require_homepage and not homepage:
                    continue
                records.append(RepositoryRecord(repository=repository, homepage=homepage))

        log.info("Loaded %d repositories from %s", len(records), self._path)
        return records


def write_homepages(path: str | Path, records: list[RepositoryRecord]) -> None:
    """Output of the homepage extraction step, input of an audit run."""
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow([REPOSITORY_COLUMNS[0], HOMEPAGE_COLUMN])
        writer.writerows((r.repository, r.homepage or "") for r in records)
    log.info("Wrote %d repositories with homepage to %s", len(records), path)


def _cell(value):
    return "" if value is None else value


def _round(value, digits: int):
    return None if value is None else round(value, digits)


def category_column(name: str) -> str:
    return CATEGORY_COLUMNS.get(name, f"{name.capitalize()}_Total")


def report_header(reports: list[AggregateReport]) -> list[str]:
    """
    REPORT_HEADER plus the optional columns: criteria counts go right before
    the success rate, category totals and per-URL means go last.
    """
    header = list(REPORT_HEADER)
    if any(r.total_criteria is not None for r in reports):
        at = header.index("TaxaSucessoAcessibilidade")
        header[at:at] = CRITERIA_COLUMNS

    present = {name for r in reports for name in (r.categories or {})}
    if present:
        names = [n for n in CATEGORY_COLUMNS if n in present] + sorted(present.difference(CATEGORY_COLUMNS))
        header += [category_column(n) for n in names] + MEAN_COLUMNS
    return header


def report_row(report: AggregateReport, header: list[str] = REPORT_HEADER) -> list:
    values = {
        "Repositorio":                  report.repository,
        "Homepage":                     report.homepage,
        "URLs_Analisadas":              report.urls_analyzed,
        "URLs_Sucesso":                 report.urls_succeeded,
        "Status":                       report.status.value,
        "ErrorsTotal":                  report.error_count,
        "WarningsTotal":                report.warning_count,
        "NoticesTotal":                 report.notice_count,
        "ErrorsA":                      report.level_a,
        "ErrorsAA":                     report.level_aa,
        "ErrorsAAA":                    report.level_aaa,
        "ErrorsIndefinido":             report.level_unknown,
        "WCAG_CriteriosTotal":          report.total_criteria,
        "WCAG_CriteriosAutomatizaveis": report.automatable_criteria,
        "TaxaSucessoAcessibilidade":    _round(report.success_rate, 4),
        "ScoreMedio":                   _round(report.mean_score, 4),
        "Erros_Media":                  _round(report.error_mean, 2),
        "Alertas_Media":                _round(report.warning_mean, 2),
    }
    for name, count in (report.categories or {}).items():
        values[category_column(name)] = count
    return [_cell(values.get(column)) for column in header]


def report_detail(report: AggregateReport) -> dict:
    """JSON-friendly dict with every per-URL result and violation."""
    urls = []
    for result in report.url_results:
        entry = asdict(result)
        entry["status"] = "SUCCESS" if isinstance(result, ToolSuccess) else "ERROR"
        urls.append(entry)

    detail = asdict(report)
    detail["status"] = report.status.value
    detail["url_results"] = urls
    return detail


class CsvReportStorage(IReportStorage):
    """
    Writes the summary CSV and, optionally, the detailed JSON next to it.
    Files are rewritten on every save, so the last flush wins.
    """

    def __init__(self, csv_path: str | Path, json_path: str | Path | None = None) -> None:
        self._csv_path  = Path(csv_path)
        self._json_path = Path(json_path) if json_path else None
        self._tool      = ""
        self._runs      = 0

    def create_run(self, tool: str) -> int:
        self._tool = tool
        self._runs += 1
        return self._runs

    def save_reports(self, run_id: int, reports: list[AggregateReport]) -> None:
        self._csv_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._csv_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            header = report_header(reports)
            writer.writerow(header)
            writer.writerows(report_row(r, header) for r in reports)
        log.info("Results saved to %s (%d rows)", self._csv_path, len(reports))

        if self._json_path:
            payload = {
                "tool":         self._tool,
                "generated_at": datetime.now(tz=timezone.utc).isoformat(),
                "reports":      [report_detail(r) for r in reports],
            }
            self._json_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._json_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
            log.info("Detailed results saved to %s", self._json_path)

    def finish_run(self, run_id: int, total: int, status: str, error: str | None = None) -> None:
        log.debug("CSV run #%d finished | status=%s | total=%d", run_id, status, total)
