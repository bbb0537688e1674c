from __future__ import annotations

import logging

from playwright.async_api import Error as PlaywrightError

from a11y_harness.application.pacing import Clock
from a11y_harness.domain.entities import ToolFailure, ToolResult, ToolSuccess, Violation
from a11y_harness.domain.interfaces import IToolAdapter
from .browser import PageLoadError, open_page
from .wcag_levels import classify_sniff_code, count_levels

log = logging.getLogger(__name__)

WCAG_STANDARD   = "WCAG2AA"
PAGE_TIMEOUT_MS = 90_000
LOAD_TIMEOUT_MS = 20_000
MAX_RETRIES     = 1
RETRY_PAUSE     = 3.0

# HTMLCS.ERROR / WARNING / NOTICE
TYPE_ERROR   = 1
TYPE_WARNING = 2
TYPE_NOTICE  = 3

HTMLCS_READY = """
() => typeof window.HTMLCS !== 'undefined'
   && typeof window.HTMLCS.process === 'function'
   && typeof window.HTMLCS.ERROR !== 'undefined'
"""

RUN_HTMLCS = """
(standard) => new Promise((resolve, reject) => {
  const messages = [];
  const timer = setTimeout(() => reject(new Error('HTMLCS internal timeout')), 45000);
  try {
    window.HTMLCS.process(standard, document, () => {
      clearTimeout(timer);
      resolve(window.HTMLCS.getMessages().map(m => ({type: m.type, code: m.code || '', msg: m.msg || ''})));
    });
  } catch (err) {
    clearTimeout(timer);
    reject(err);
  }
})
"""


def parse_htmlcs_messages(url: str, messages: list[dict]) -> ToolSuccess:
    errors   = [m for m in messages if m.get("type") == TYPE_ERROR]
    warnings = [m for m in messages if m.get("type") == TYPE_WARNING]
    notices  = [m for m in messages if m.get("type") == TYPE_NOTICE]

    severity = {TYPE_ERROR: "error", TYPE_WARNING: "warning"}
    violations = tuple(
        Violation(
            rule_id  = m.get("code", ""),
            message  = m.get("msg", ""),
            severity = severity[m["type"]],
            level    = classify_sniff_code(m.get("code")),
        )
        for m in errors + warnings
    )

    return ToolSuccess(
        url           = url,
        error_count   = len(errors),
        warning_count = len(warnings),
        notice_count  = len(notices),
        violations    = violations,
        **count_levels(classify_sniff_code(m.get("code")) for m in errors),
    )


class HtmlcsAdapter(IToolAdapter):
    """HTML_CodeSniffer injected into a headless Chromium page. Retries once."""

    name = "htmlcs"

    def __init__(
        self,
        script: str,
        standard: str = WCAG_STANDARD,
        timeout_ms: int = PAGE_TIMEOUT_MS,
        max_retries: int = MAX_RETRIES,
        clock: Clock | None = None,
    ) -> None:
        self._script   = script
        self._standard = standard
        self._timeout  = timeout_ms
        self._retries  = max_retries
        self._clock    = clock or Clock()

    async def _sniff(self, url: str) -> list[dict]:
        async with open_page(url, self._timeout) as page:
            await page.add_script_tag(content=self._script)
            await page.wait_for_function(HTMLCS_READY, timeout=LOAD_TIMEOUT_MS)
            return await page.evaluate(RUN_HTMLCS, self._standard)

    async def run(self, url: str) -> ToolResult:
        reason = ""
        for attempt in range(self._retries + 1):
            try:
                messages = await self._sniff(url)
                return parse_htmlcs_messages(url, messages or [])
            except (PlaywrightError, PageLoadError) as exc:
                reason = str(exc)
                log.warning("HTMLCS attempt %d/%d on %s: %s", attempt + 1, self._retries + 1, url, reason)
                if attempt < self._retries:
                    await self._clock.sleep(RETRY_PAUSE)
        return ToolFailure(url=url, reason=reason)
