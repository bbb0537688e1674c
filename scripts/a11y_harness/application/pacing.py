"""
Request pacing.

A page is audited no sooner than `min_interval` after the previous audit on
the same host finished. Workers on different hosts do not slow each other
down. Callers pair wait() before a request with done() after it.
"""

from __future__ import annotations

import asyncio
import time
from collections import defaultdict
from urllib.parse import urlparse


class Clock:
    """Wall and monotonic time plus sleeping. Swapped for a virtual clock in tests."""

    def monotonic(self) -> float:
        return time.monotonic()

    def time(self) -> float:
        return time.time()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class HostPacer:
    def __init__(self, min_interval_secs: float = 1.0, clock: Clock | None = None) -> None:
        self._interval = min_interval_secs
        self._clock    = clock or Clock()
        self._last: dict[str, float] = {}
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @staticmethod
    def host_of(url: str) -> str:
        return (urlparse(url).hostname or url).lower()

    async def wait(self, url: str) -> float:
        """
        Block until `url`'s host may be contacted again.
        Returns the number of seconds actually waited.
        """
        host = self.host_of(url)
        async with self._locks[host]:
            waited = 0.0
            last = self._last.get(host)
            if last is not None:
                remaining = self._interval - (self._clock.monotonic() - last)
                if remaining > 0:
                    await self._clock.sleep(remaining)
                    waited = remaining
            self._last[host] = self._clock.monotonic()
            return waited

    def done(self, url: str) -> None:
        """Mark the end of a request; the next one to the host waits from here."""
        self._last[self.host_of(url)] = self._clock.monotonic()
