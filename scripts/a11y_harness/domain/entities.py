from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Union


@dataclass(frozen=True)
class RepositoryRecord:
    """
    One input row: a GitHub repository and its public homepage.

    frozen=True: read once per run and never changed. `homepage` is None
    when the repository has no homepage configured on GitHub.
    """
    repository: str
    homepage:   str | None = None


@dataclass(frozen=True)
class Violation:
    """A single rule hit reported by an accessibility engine."""
    rule_id:  str
    message:  str
    severity: str                 # "error" | "warning" | "notice"
    level:    str | None = None   # "A" | "AA" | "AAA" | None (unclassified)


@dataclass(frozen=True)
class ToolSuccess:
    """
    Outcome of one accessibility tool against one URL that produced results.

    level_a + level_aa + level_aaa + level_unknown never exceeds error_count;
    errors the engine could not map to a WCAG level land in level_unknown.
    `categories` holds engine-specific per-category counts (WAVE reports
    feature, structure, aria and friends); empty for engines without them.
    """
    url:           str
    error_count:   int
    warning_count: int
    level_a:       int = 0
    level_aa:      int = 0
    level_aaa:     int = 0
    level_unknown: int = 0
    notice_count:  int = 0
    score:         float | None = None
    violations:    tuple[Violation, ...] = ()
    categories:    dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolFailure:
    """Outcome of one tool run that produced nothing usable."""
    url:    str
    reason: str


ToolResult = Union[ToolSuccess, ToolFailure]


class ReportStatus(str, Enum):
    SUCCESS = "SUCCESS"
    ERROR   = "ERROR"


@dataclass(frozen=True)
class AggregateReport:
    """
    One summary row per repository.

    When status is ERROR every metric below urls_succeeded is None.
    None means "not measured"; 0 means "measured zero violations".
    """
    repository:           str
    homepage:             str | None
    tool:                 str
    urls_analyzed:        int
    urls_succeeded:       int
    status:               ReportStatus
    error_count:          int | None = None
    warning_count:        int | None = None
    notice_count:         int | None = None
    level_a:              int | None = None
    level_aa:             int | None = None
    level_aaa:            int | None = None
    level_unknown:        int | None = None
    success_rate:         float | None = None
    mean_score:           float | None = None
    error_mean:           float | None = None      # per successful URL
    warning_mean:         float | None = None
    categories:           dict[str, int] | None = None
    total_criteria:       int | None = None        # set by the denominator policy
    automatable_criteria: int | None = None
    url_results:          tuple[ToolResult, ...] = field(default=(), repr=False)


@dataclass(frozen=True)
class AuditRunResult:
    """
    Immutable value object summarising a completed audit run.
    Returned by the application service when the run finishes.
    """
    run_id:        int
    total_repos:   int
    succeeded:     int
    failed:        int
    status:        str          # "success" | "failed" | "cancelled"
    elapsed_secs:  float
    error_message: str | None = None
