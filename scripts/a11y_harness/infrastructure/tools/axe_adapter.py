from __future__ import annotations

import logging

from playwright.async_api import Error as PlaywrightError

from a11y_harness.domain.entities import ToolFailure, ToolResult, ToolSuccess, Violation
from a11y_harness.domain.interfaces import IToolAdapter
from .browser import PageLoadError, open_page
from .wcag_levels import classify_axe_tags, count_levels

log = logging.getLogger(__name__)

PAGE_TIMEOUT_MS = 60_000

ERROR_IMPACTS   = {"serious", "critical"}
WARNING_IMPACTS = {"moderate", "minor"}

RUN_AXE = "async () => await axe.run(document, { resultTypes: ['violations'] })"


def parse_axe_results(url: str, results: dict) -> ToolSuccess:
    """
    Serious/critical violations are errors, moderate/minor are warnings.
    Violations without an impact are ignored.
    """
    errors, warnings = [], []
    for v in results.get("violations") or []:
        impact = v.get("impact")
        if impact in ERROR_IMPACTS:
            errors.append(v)
        elif impact in WARNING_IMPACTS:
            warnings.append(v)

    violations = tuple(
        Violation(
            rule_id  = v.get("id", ""),
            message  = v.get("help") or v.get("description") or "",
            severity = severity,
            level    = classify_axe_tags(v.get("tags") or []),
        )
        for severity, group in (("error", errors), ("warning", warnings))
        for v in group
    )

    return ToolSuccess(
        url           = url,
        error_count   = len(errors),
        warning_count = len(warnings),
        violations    = violations,
        **count_levels(v.level for v in violations if v.severity == "error"),
    )


class AxeAdapter(IToolAdapter):
    """axe-core injected into a headless Chromium page."""

    name = "axe"

    def __init__(self, script: str, timeout_ms: int = PAGE_TIMEOUT_MS) -> None:
        self._script  = script
        self._timeout = timeout_ms

    async def run(self, url: str) -> ToolResult:
        try:
            async with open_page(url, self._timeout, wait_until="networkidle") as page:
                await page.add_script_tag(content=self._script)
                results = await page.evaluate(RUN_AXE)
        except (PlaywrightError, PageLoadError) as exc:
            log.debug("axe failed on %s: %s", url, exc)
            return ToolFailure(url=url, reason=str(exc))

        if not isinstance(results, dict):
            return ToolFailure(url=url, reason="unexpected axe result")
        return parse_axe_results(url, results)
