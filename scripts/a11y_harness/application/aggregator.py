from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from a11y_harness.domain.entities import (
    AggregateReport,
    ReportStatus,
    ToolFailure,
    ToolResult,
    ToolSuccess,
)

log = logging.getLogger(__name__)

# WCAG 2.1 has 78 success criteria; roughly 44% of them can be checked
# automatically (Abu Doush et al., 2023).
WCAG21_TOTAL_CRITERIA = 78
AUTOMATABLE_FRACTION  = 0.44
DEFAULT_AUTOMATABLE   = round(WCAG21_TOTAL_CRITERIA * AUTOMATABLE_FRACTION)  # 34

_SUMMED_FIELDS = (
    "error_count",
    "warning_count",
    "notice_count",
    "level_a",
    "level_aa",
    "level_aaa",
    "level_unknown",
)


class SuccessRatePolicy(ABC):
    """How a repository's summed counts turn into one "success rate" number."""

    name: str = "policy"

    @abstractmethod
    def rate(self, error_count: int, warning_count: int) -> float:
        ...

    def criteria(self) -> tuple[int, int] | None:
        """(total, automatable) WCAG criteria behind the rate, when it has any."""
        return None


class DensitySuccessRate(SuccessRatePolicy):
    """Inverse violation density: 1 - errors / (errors + warnings). Always in [0, 1]."""

    name = "density"

    def rate(self, error_count: int, warning_count: int) -> float:
        total = error_count + warning_count
        if total == 0:
            return 1.0
        return 1 - error_count / total


class DenominatorSuccessRate(SuccessRatePolicy):
    """
    (automatable - errors) / automatable against a fixed criteria count.

    Not clamped: more errors than automatable criteria gives a negative rate.
    """

    name = "denominator"

    def __init__(self, automatable_criteria: int = DEFAULT_AUTOMATABLE) -> None:
        if automatable_criteria <= 0:
            raise ValueError("automatable_criteria must be positive")
        self.automatable_criteria = automatable_criteria

    def rate(self, error_count: int, warning_count: int) -> float:
        return (self.automatable_criteria - error_count) / self.automatable_criteria

    def criteria(self) -> tuple[int, int]:
        return WCAG21_TOTAL_CRITERIA, self.automatable_criteria


def build_policy(name: str, automatable_criteria: int = DEFAULT_AUTOMATABLE) -> SuccessRatePolicy:
    if name == DensitySuccessRate.name:
        return DensitySuccessRate()
    if name == DenominatorSuccessRate.name:
        return DenominatorSuccessRate(automatable_criteria)
    raise ValueError(f"Unknown success-rate policy: {name!r}")


class ResultAggregator:
    """
    Folds per-URL tool results into one AggregateReport per repository.

    Sums are plain integer addition, so the result does not depend on the
    order URLs finished in.
    """

    def __init__(self, policy: SuccessRatePolicy | None = None) -> None:
        self._policy = policy or DensitySuccessRate()

    @property
    def policy(self) -> SuccessRatePolicy:
        return self._policy

    def aggregate(
        self,
        results: list[ToolResult],
        repository: str = "",
        homepage: str | None = None,
        tool: str = "",
    ) -> AggregateReport:
        successes = [r for r in results if isinstance(r, ToolSuccess)]
        failures  = [r for r in results if isinstance(r, ToolFailure)]

        if not successes:
            log.info("%s | all %d URL(s) failed", repository or "<repo>", len(results))
            return AggregateReport(
                repository     = repository,
                homepage       = homepage,
                tool           = tool,
                urls_analyzed  = len(results),
                urls_succeeded = 0,
                status         = ReportStatus.ERROR,
                url_results    = tuple(results),
            )

        totals = {name: sum(getattr(r, name) for r in successes) for name in _SUMMED_FIELDS}

        scores     = [r.score for r in successes if r.score is not None]
        mean_score = sum(scores) / len(scores) if scores else None

        categories: dict[str, int] = {}
        for r in successes:
            for name, count in r.categories.items():
                categories[name] = categories.get(name, 0) + count

        criteria = self._policy.criteria()

        if failures:
            log.debug("%s | %d URL(s) failed, %d succeeded", repository, len(failures), len(successes))

        return AggregateReport(
            repository           = repository,
            homepage             = homepage,
            tool                 = tool,
            urls_analyzed        = len(results),
            urls_succeeded       = len(successes),
            status               = ReportStatus.SUCCESS,
            success_rate         = self._policy.rate(totals["error_count"], totals["warning_count"]),
            mean_score           = mean_score,
            error_mean           = totals["error_count"] / len(successes),
            warning_mean         = totals["warning_count"] / len(successes),
            categories           = categories or None,
            total_criteria       = criteria[0] if criteria else None,
            automatable_criteria = criteria[1] if criteria else None,
            url_results          = tuple(results),
            **totals,
        )
