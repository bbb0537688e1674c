from __future__ import annotations

import asyncio
import json
import logging

from a11y_harness.domain.entities import ToolFailure, ToolResult, ToolSuccess, Violation
from a11y_harness.domain.interfaces import IToolAdapter
from .process import run_command
from .wcag_levels import classify_sniff_code, count_levels

log = logging.getLogger(__name__)

WCAG_STANDARD  = "WCAG2AA"
TIMEOUT_MS     = 60_000
WAIT_MS        = 500
PA11Y_COMMAND  = ("npx", "--yes", "pa11y")

# pa11y exits with 2 when the page has issues; that is still a successful run.
OK_EXIT_CODES = {0, 2}


def parse_pa11y_issues(url: str, issues: list[dict]) -> ToolSuccess:
    errors   = [i for i in issues if i.get("type") == "error"]
    warnings = [i for i in issues if i.get("type") == "warning"]
    notices  = [i for i in issues if i.get("type") == "notice"]

    violations = tuple(
        Violation(
            rule_id  = i.get("code", ""),
            message  = i.get("message", ""),
            severity = i["type"],
            level    = classify_sniff_code(i.get("code")),
        )
        for i in errors + warnings
    )

    return ToolSuccess(
        url           = url,
        error_count   = len(errors),
        warning_count = len(warnings),
        notice_count  = len(notices),
        violations    = violations,
        **count_levels(classify_sniff_code(i.get("code")) for i in errors),
    )


class Pa11yAdapter(IToolAdapter):
    """The pa11y CLI (HTML_CodeSniffer runner) with its JSON reporter."""

    name = "pa11y"

    def __init__(
        self,
        standard: str = WCAG_STANDARD,
        timeout_ms: int = TIMEOUT_MS,
        command: tuple[str, ...] = PA11Y_COMMAND,
    ) -> None:
        self._standard = standard
        self._timeout  = timeout_ms
        self._command  = command

    def build_args(self, url: str) -> list[str]:
        return [
            *self._command,
            "--reporter", "json",
            "--standard", self._standard,
            "--timeout", str(self._timeout),
            "--wait", str(WAIT_MS),
            "--include-warnings",
            "--include-notices",
            url,
        ]

    async def run(self, url: str) -> ToolResult:
        try:
            code, stdout, stderr = await run_command(self.build_args(url), self._timeout / 1000 + 30)
        except OSError as exc:
            return ToolFailure(url=url, reason=f"cannot start pa11y: {exc}")
        except asyncio.TimeoutError:
            return ToolFailure(url=url, reason="pa11y process timed out")

        if code not in OK_EXIT_CODES:
            return ToolFailure(url=url, reason=(stderr.strip() or f"pa11y exited with {code}")[:500])

        try:
            issues = json.loads(stdout or "[]")
        except json.JSONDecodeError as exc:
            return ToolFailure(url=url, reason=f"unreadable pa11y output: {exc}")
        if not isinstance(issues, list):
            return ToolFailure(url=url, reason="unexpected pa11y output")

        return parse_pa11y_issues(url, issues)
