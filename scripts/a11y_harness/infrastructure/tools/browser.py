from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from playwright.async_api import Page, async_playwright

CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--ignore-certificate-errors",
]


class PageLoadError(Exception):
    """The target answered with a non-2xx status or nothing at all."""


@asynccontextmanager
async def open_page(url: str, timeout_ms: int, wait_until: str = "domcontentloaded") -> AsyncIterator[Page]:
    """
    A fresh headless Chromium with `url` loaded.

    Each call launches and closes its own browser.
    """
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=True, args=CHROMIUM_ARGS)
        try:
            page = await browser.new_page(ignore_https_errors=True)
            page.set_default_timeout(timeout_ms)
            response = await page.goto(url, wait_until=wait_until, timeout=timeout_ms)
            if response is None or not response.ok:
                status = response.status if response is not None else "no response"
                raise PageLoadError(f"page load failed ({status})")
            yield page
        finally:
            await browser.close()
