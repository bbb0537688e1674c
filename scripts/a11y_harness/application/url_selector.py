from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field

from a11y_harness.domain.exceptions import SitemapError
from a11y_harness.domain.interfaces import ISitemapFetcher

log = logging.getLogger(__name__)

# Conventional sitemap locations, tried in order relative to the homepage.
SITEMAP_LOCATIONS = (
    "sitemap.xml",
    "sitemap_index.xml",
    "wp-sitemap.xml",
)

DEFAULT_PRIORITY_PATTERNS = (
    r"/$",          # homepage
    r"(?i)/about",
    r"(?i)/contact",
    r"(?i)/login",
)


@dataclass(frozen=True)
class UrlSelectionConfig:
    max_urls:           int = 10
    use_sitemap:        bool = True
    priority_patterns:  tuple[str, ...] = DEFAULT_PRIORITY_PATTERNS
    sitemap_timeout_ms: int = 10_000
    weighted_priority:  bool = False
    locations:          tuple[str, ...] = field(default=SITEMAP_LOCATIONS)

    def __post_init__(self) -> None:
        if self.max_urls < 1:
            raise ValueError("max_urls must be at least 1")


class UrlSelector:
    """
    Turns a homepage into the ordered list of pages to audit.

    The homepage always comes first. The rest comes from the first sitemap
    location that yields any URL, ordered by how many priority patterns each
    URL matches. Sitemap problems are never raised to the caller; they
    degrade to auditing the homepage alone.
    """

    def __init__(self, fetcher: ISitemapFetcher, config: UrlSelectionConfig | None = None) -> None:
        self._fetcher  = fetcher
        self._config   = config or UrlSelectionConfig()
        self._patterns = [re.compile(p) for p in self._config.priority_patterns]

    @property
    def config(self) -> UrlSelectionConfig:
        return self._config

    def score(self, url: str) -> int:
        if self._config.weighted_priority:
            n = len(self._patterns)
            return sum((n - i) * 10 for i, p in enumerate(self._patterns) if p.search(url))
        return sum(1 for p in self._patterns if p.search(url))

    def prioritize(self, urls: list[str]) -> list[str]:
        # sorted() is stable, so equal scores keep sitemap order
        return sorted(urls, key=self.score, reverse=True)

    def build(self, homepage: str, sitemap_urls: list[str]) -> list[str]:
        selected = [homepage]
        seen     = {homepage}
        for url in self.prioritize(sitemap_urls):
            if len(selected) >= self._config.max_urls:
                break
            if url not in seen:
                seen.add(url)
                selected.append(url)
        return selected

    async def _discover(self, homepage: str) -> list[str]:
        base = homepage if homepage.endswith("/") else f"{homepage}/"

        for location in self._config.locations:
            sitemap_url = f"{base}{location}"
            try:
                urls = await asyncio.wait_for(
                    self._fetcher.fetch(sitemap_url, self._config.sitemap_timeout_ms),
                    timeout=self._config.sitemap_timeout_ms / 1000,
                )
            except SitemapError as exc:
                log.debug("No sitemap at %s: %s", sitemap_url, exc)
                continue
            except asyncio.TimeoutError:
                log.warning("Sitemap %s took longer than %dms", sitemap_url, self._config.sitemap_timeout_ms)
                continue
            except Exception as exc:
                log.warning("Sitemap fetch crashed for %s: %s", sitemap_url, exc)
                continue

            if urls:
                log.info("Sitemap %s | %d URLs found", sitemap_url, len(urls))
                return urls

        return []

    async def select_urls(self, homepage: str) -> list[str]:
        if not self._config.use_sitemap:
            return [homepage]

        sitemap_urls = await self._discover(homepage)
        if not sitemap_urls:
            log.info("No sitemap found for %s — auditing homepage only", homepage)
            return [homepage]

        selected = self.build(homepage, sitemap_urls)
        log.info("Selected %d URL(s) for %s", len(selected), homepage)
        return selected
