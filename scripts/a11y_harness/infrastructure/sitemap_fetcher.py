from __future__ import annotations

import gzip
import logging
import xml.etree.ElementTree as ET
import zlib

import httpx

from a11y_harness.domain.exceptions import SitemapError
from a11y_harness.domain.interfaces import ISitemapFetcher

log = logging.getLogger(__name__)

HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; a11y-harness/1.0)",
    "Accept":     "application/xml,text/xml;q=0.9,*/*;q=0.8",
}
MAX_CHILD_SITEMAPS = 10


def _localname(tag: str) -> str:
    return tag.rsplit("}", 1)[-1] if "}" in tag else tag


def _locs(root: ET.Element, entry: str) -> list[str]:
    out = []
    for node in root:
        if _localname(node.tag) != entry:
            continue
        for child in node:
            if _localname(child.tag) == "loc" and child.text and child.text.strip():
                out.append(child.text.strip())
    return out


def parse_sitemap(content: bytes) -> tuple[list[str], list[str]]:
    """
    Parse a sitemap document.

    Returns (page_urls, child_sitemaps): a <urlset> fills the first list, a
    <sitemapindex> the second. Anything else raises SitemapError.
    """
    if content[:2] == b"\x1f\x8b":
        try:
            content = gzip.decompress(content)
        except (OSError, EOFError, zlib.error) as exc:
            raise SitemapError(f"bad gzip payload: {exc}") from exc
    try:
        root = ET.fromstring(content)
    except ET.ParseError as exc:
        raise SitemapError(f"invalid XML: {exc}") from exc

    kind = _localname(root.tag)
    if kind == "urlset":
        return _locs(root, "url"), []
    if kind == "sitemapindex":
        return [], _locs(root, "sitemap")
    raise SitemapError(f"unexpected root element <{kind}>")


class HttpSitemapFetcher(ISitemapFetcher):
    """
    Fetches one sitemap location over HTTP.

    A sitemap index is flattened one level: the pages of its first
    MAX_CHILD_SITEMAPS children are concatenated in index order. The URL
    selector never sees the difference.
    """

    def __init__(self, client: httpx.AsyncClient, max_children: int = MAX_CHILD_SITEMAPS) -> None:
        self._client       = client
        self._max_children = max_children

    async def _get(self, url: str, timeout_ms: int) -> bytes:
        try:
            response = await self._client.get(url, headers=HEADERS, timeout=timeout_ms / 1000, follow_redirects=True)
            response.raise_for_status()
        except (httpx.HTTPStatusError, httpx.RequestError) as exc:
            raise SitemapError(f"{url}: {exc}") from exc
        return response.content

    async def fetch(self, sitemap_url: str, timeout_ms: int) -> list[str]:
        urls, children = parse_sitemap(await self._get(sitemap_url, timeout_ms))

        for child in children[: self._max_children]:
            try:
                child_urls, _ = parse_sitemap(await self._get(child, timeout_ms))
            except SitemapError as exc:
                log.debug("Skipping child sitemap %s: %s", child, exc)
                continue
            urls.extend(child_urls)

        return urls
