from __future__ import annotations

import logging

import httpx

from a11y_harness.domain.exceptions import ToolUnavailableError
from a11y_harness.domain.interfaces import IToolAdapter
from .axe_adapter import AxeAdapter
from .htmlcs_adapter import HtmlcsAdapter
from .lighthouse_adapter import LighthouseAdapter
from .pa11y_adapter import Pa11yAdapter
from .script_cache import AXE_SOURCES, HTMLCS_SOURCES, ScriptCache
from .wave_adapter import WaveAdapter

log = logging.getLogger(__name__)

TOOL_NAMES = ("axe", "pa11y", "htmlcs", "lighthouse", "wave")

# Success-rate formula each engine's reports have always used.
DEFAULT_POLICIES = {
    "axe":        "density",
    "pa11y":      "denominator",
    "htmlcs":     "density",
    "lighthouse": "density",
    "wave":       "density",
}


async def build_adapter(
    name: str,
    client: httpx.AsyncClient,
    cache: ScriptCache,
    wave_api_key: str | None = None,
) -> IToolAdapter:
    """
    Construct the adapter for `name`, fetching any script it injects.
    Raises ToolUnavailableError when the engine cannot be prepared.
    """
    if name == "axe":
        return AxeAdapter(await cache.ensure("axe.min.js", AXE_SOURCES))
    if name == "htmlcs":
        return HtmlcsAdapter(await cache.ensure("HTMLCS.js", HTMLCS_SOURCES))
    if name == "pa11y":
        return Pa11yAdapter()
    if name == "lighthouse":
        return LighthouseAdapter()
    if name == "wave":
        if not wave_api_key:
            raise ToolUnavailableError("WAVE_API_KEY environment variable is required for --tool wave")
        return WaveAdapter(wave_api_key, client)
    raise ValueError(f"Unknown tool: {name!r} (expected one of {', '.join(TOOL_NAMES)})")
