from __future__ import annotations

import logging

import httpx

from a11y_harness.domain.entities import ToolFailure, ToolResult, ToolSuccess, Violation
from a11y_harness.domain.interfaces import IToolAdapter
from .wcag_levels import classify_wave_guidelines

log = logging.getLogger(__name__)

WAVE_API_URL = "https://wave.webaim.org/api/request"
REPORT_TYPE  = 3      # items with their WCAG guideline references
TIMEOUT_SECS = 60.0

ERROR_CATEGORIES   = ("error", "contrast")
WARNING_CATEGORIES = ("alert",)
INFO_CATEGORIES    = ("feature", "structure", "aria", "html5")

_LEVEL_FIELD = {"A": "level_a", "AA": "level_aa", "AAA": "level_aaa"}


def parse_wave_report(url: str, data: dict) -> ToolResult:
    """
    WAVE "error" and "contrast" items are errors, "alert" items are warnings.
    Each item carries a count; its level comes from its WCAG guideline list.
    Every category total, informational ones included, is kept in
    `categories`.
    """
    status = data.get("status") or {}
    if not status.get("success", False):
        return ToolFailure(url=url, reason=status.get("error") or "WAVE request failed")

    categories = data.get("categories") or {}
    levels = {"level_a": 0, "level_aa": 0, "level_aaa": 0, "level_unknown": 0}
    violations: list[Violation] = []
    error_count = warning_count = 0
    counts: dict[str, int] = {}

    for name in ERROR_CATEGORIES + WARNING_CATEGORIES:
        category = categories.get(name) or {}
        items    = category.get("items") or {}
        is_error = name in ERROR_CATEGORIES

        item_total = 0
        for item_id, item in items.items():
            count = int(item.get("count") or 0)
            item_total += count
            level = classify_wave_guidelines(g.get("name", "") for g in item.get("wcag") or [])
            violations.append(Violation(
                rule_id  = item.get("id") or item_id,
                message  = item.get("description", ""),
                severity = "error" if is_error else "warning",
                level    = level,
            ))
            if is_error:
                levels[_LEVEL_FIELD.get(level, "level_unknown")] += count

        # Summary-only reports have a count but no items.
        total = item_total if items else int(category.get("count") or 0)
        counts[name] = total
        if is_error:
            error_count += total
            if not items:
                levels["level_unknown"] += total
        else:
            warning_count += total

    for name in INFO_CATEGORIES:
        counts[name] = int((categories.get(name) or {}).get("count") or 0)

    return ToolSuccess(
        url           = url,
        error_count   = error_count,
        warning_count = warning_count,
        violations    = tuple(violations),
        categories    = counts,
        **levels,
    )


class WaveAdapter(IToolAdapter):
    """
    WebAIM's WAVE API.

    The WAVE browser extension does not initialise outside an extension
    context, so the hosted API is the one dependable way to run the engine.
    """

    name = "wave"

    def __init__(self, api_key: str, client: httpx.AsyncClient, timeout_secs: float = TIMEOUT_SECS) -> None:
        self._api_key = api_key
        self._client  = client
        self._timeout = timeout_secs

    async def run(self, url: str) -> ToolResult:
        params = {"key": self._api_key, "url": url, "reporttype": REPORT_TYPE}
        try:
            response = await self._client.get(WAVE_API_URL, params=params, timeout=self._timeout)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPStatusError, httpx.RequestError) as exc:
            return ToolFailure(url=url, reason=f"WAVE API error: {exc}")
        except ValueError as exc:
            return ToolFailure(url=url, reason=f"unreadable WAVE response: {exc}")

        return parse_wave_report(url, data)
