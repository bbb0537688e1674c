from __future__ import annotations

import asyncio
import json
import logging

from a11y_harness.domain.entities import ToolFailure, ToolResult, ToolSuccess, Violation
from a11y_harness.domain.interfaces import IToolAdapter
from .process import run_command

log = logging.getLogger(__name__)

TIMEOUT_SECS       = 120.0
LIGHTHOUSE_COMMAND = ("npx", "--yes", "lighthouse")
CHROME_FLAGS       = "--headless --no-sandbox --disable-gpu"


def parse_lighthouse_report(url: str, lhr: dict) -> ToolSuccess:
    """
    Audits scored 0 are errors, audits scored between 0 and 1 are warnings.
    Lighthouse audits carry no WCAG level, so every error is unclassified.
    """
    category = (lhr.get("categories") or {}).get("accessibility") or {}
    audits   = lhr.get("audits") or {}

    refs = [ref.get("id") for ref in category.get("auditRefs") or []]
    ids  = refs or list(audits)

    errors, warnings = [], []
    for audit_id in ids:
        audit = audits.get(audit_id) or {}
        score = audit.get("score")
        if score is None or score >= 1:
            continue
        violation = Violation(
            rule_id  = audit_id,
            message  = audit.get("title", ""),
            severity = "error" if score == 0 else "warning",
        )
        (errors if score == 0 else warnings).append(violation)

    return ToolSuccess(
        url           = url,
        error_count   = len(errors),
        warning_count = len(warnings),
        level_unknown = len(errors),
        score         = category.get("score"),
        violations    = tuple(errors + warnings),
    )


class LighthouseAdapter(IToolAdapter):
    """The Lighthouse CLI restricted to the accessibility category."""

    name = "lighthouse"

    def __init__(self, timeout_secs: float = TIMEOUT_SECS, command: tuple[str, ...] = LIGHTHOUSE_COMMAND) -> None:
        self._timeout = timeout_secs
        self._command = command

    def build_args(self, url: str) -> list[str]:
        return [
            *self._command,
            url,
            "--output=json",
            "--output-path=stdout",
            "--only-categories=accessibility",
            "--quiet",
            f"--chrome-flags={CHROME_FLAGS}",
        ]

    async def run(self, url: str) -> ToolResult:
        try:
            code, stdout, stderr = await run_command(self.build_args(url), self._timeout)
        except OSError as exc:
            return ToolFailure(url=url, reason=f"cannot start lighthouse: {exc}")
        except asyncio.TimeoutError:
            return ToolFailure(url=url, reason="lighthouse process timed out")

        if code != 0:
            return ToolFailure(url=url, reason=(stderr.strip() or f"lighthouse exited with {code}")[:500])

        try:
            lhr = json.loads(stdout)
        except json.JSONDecodeError as exc:
            return ToolFailure(url=url, reason=f"unreadable lighthouse output: {exc}")

        if lhr.get("runtimeError"):
            return ToolFailure(url=url, reason=lhr["runtimeError"].get("message", "runtime error"))
        return parse_lighthouse_report(url, lhr)
