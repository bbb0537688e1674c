from __future__ import annotations

import logging

import httpx

from a11y_harness.application.pacing import Clock
from a11y_harness.domain.exceptions import RateLimitError
from a11y_harness.domain.interfaces import IHomepageFetcher
from .credential_pool import CredentialPool

log = logging.getLogger(__name__)

GITHUB_API_URL  = "https://api.github.com"
REQUEST_TIMEOUT = 20.0
MAX_RETRIES     = 5
USER_AGENT      = "a11y-harness-homepage-extractor"


class GitHubClient(IHomepageFetcher):
    """
    Concrete IHomepageFetcher for GitHub's REST API.

    The httpx.AsyncClient and the CredentialPool are injected. The client
    lifecycle stays with the caller and tests can pass a client built on
    httpx.MockTransport.
    """

    def __init__(self, pool: CredentialPool, client: httpx.AsyncClient, clock: Clock | None = None) -> None:
        self._pool   = pool
        self._client = client
        self._clock  = clock or Clock()

    @staticmethod
    def _header_int(response: httpx.Response, name: str) -> int | None:
        value = response.headers.get(name)
        try:
            return int(value) if value is not None else None
        except ValueError:
            return None

    def _record_quota(self, response: httpx.Response) -> int | None:
        remaining = self._header_int(response, "x-ratelimit-remaining")
        reset_at  = self._header_int(response, "x-ratelimit-reset")
        if remaining is not None:
            self._pool.record(remaining, float(reset_at) if reset_at is not None else None)
        return remaining

    @staticmethod
    def _parse_homepage(data: dict) -> str | None:
        homepage = data.get("homepage")
        if not isinstance(homepage, str):
            return None
        return homepage.strip() or None

    async def fetch_homepage(self, full_name: str) -> str | None:
        """
        GET /repos/{owner}/{name} and return its `homepage` field.

        404 and a blank field both give None. Rate-limit responses rotate
        the token and retry; transport errors back off exponentially.
        """
        url = f"{GITHUB_API_URL}/repos/{full_name}"

        for attempt in range(MAX_RETRIES):
            token = await self._pool.acquire()
            headers = {
                "User-Agent":    USER_AGENT,
                "Accept":        "application/vnd.github.v3+json",
                "Authorization": f"token {token}",
            }
            try:
                response = await self._client.get(url, headers=headers, timeout=REQUEST_TIMEOUT)
                remaining = self._record_quota(response)

                if response.status_code in (403, 429) and remaining == 0:
                    raise RateLimitError(self._header_int(response, "x-ratelimit-reset"))
                if response.status_code == 404:
                    log.debug("Repository not found: %s", full_name)
                    return None

                response.raise_for_status()
                return self._parse_homepage(response.json())

            except RateLimitError as exc:
                log.info("Rate limited on %s (resets at %s) — retrying with another token", full_name, exc.reset_at)

            except (httpx.HTTPStatusError, httpx.RequestError) as exc:
                wait = 2 ** attempt   # exponential backoff: 1s, 2s, 4s, 8s, 16s
                log.warning("HTTP error attempt %d/%d for %s: %s — retrying in %ds", attempt + 1, MAX_RETRIES, full_name, exc, wait)
                await self._clock.sleep(wait)

        raise RuntimeError(f"Exhausted {MAX_RETRIES} retries for repository: {full_name}")
