from __future__ import annotations

import logging
from pathlib import Path

import httpx

from a11y_harness.domain.exceptions import ToolUnavailableError

log = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT = 30.0

AXE_SOURCES = (
    "https://cdn.jsdelivr.net/npm/axe-core@4/axe.min.js",
    "https://unpkg.com/axe-core@4/axe.min.js",
)

HTMLCS_SOURCES = (
    "https://squizlabs.github.io/HTML_CodeSniffer/build/HTMLCS.js",
    "https://cdn.jsdelivr.net/gh/squizlabs/HTML_CodeSniffer@master/build/HTMLCS.js",
)


class ScriptCache:
    """
    Local copies of the engine scripts injected into pages.

    The first call downloads from the first source that answers and keeps
    the file under `cache_dir`; later runs read it from disk.
    """

    def __init__(self, cache_dir: str | Path, client: httpx.AsyncClient) -> None:
        self._dir    = Path(cache_dir)
        self._client = client

    async def ensure(self, filename: str, sources: tuple[str, ...]) -> str:
        path = self._dir / filename
        if path.exists() and path.stat().st_size > 0:
            log.info("Using cached %s", path)
            return path.read_text(encoding="utf-8")

        log.info("Downloading %s …", filename)
        for url in sources:
            try:
                response = await self._client.get(url, timeout=DOWNLOAD_TIMEOUT, follow_redirects=True)
                response.raise_for_status()
            except (httpx.HTTPStatusError, httpx.RequestError) as exc:
                log.warning("   %s failed: %s", url, exc)
                continue

            script = response.text
            self._dir.mkdir(parents=True, exist_ok=True)
            path.write_text(script, encoding="utf-8")
            log.info("   saved %s (%d bytes)", path, len(script))
            return script

        raise ToolUnavailableError(f"Could not download {filename} from any of {len(sources)} source(s)")
