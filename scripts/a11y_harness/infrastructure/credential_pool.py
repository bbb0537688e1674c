from __future__ import annotations

import asyncio
import logging

from a11y_harness.application.pacing import Clock

log = logging.getLogger(__name__)

LOW_WATERMARK    = 50     # rotate once a token has fewer requests left than this
RESET_GRACE_SECS = 5.0


class CredentialPool:
    """
    A set of GitHub tokens and what is known about each one's quota.

    The active token is used until GitHub reports fewer than `low_watermark`
    requests left, then the pool rotates to the next token whose quota is
    unknown, above the watermark, or already past its reset time. When no
    token qualifies, acquire() waits for the earliest reset.

    Every caller goes through acquire(), which holds one lock, so concurrent
    requests never race on the index or the quota table.
    """

    def __init__(
        self,
        tokens: list[str],
        low_watermark: int = LOW_WATERMARK,
        clock: Clock | None = None,
        reset_grace_secs: float = RESET_GRACE_SECS,
    ) -> None:
        tokens = [t for t in tokens if t]
        if not tokens:
            raise ValueError("CredentialPool needs at least one token")
        self._tokens    = tokens
        self._index     = 0
        self._remaining: list[int | None]   = [None] * len(tokens)
        self._reset_at:  list[float | None] = [None] * len(tokens)
        self._watermark = low_watermark
        self._clock     = clock or Clock()
        self._grace     = reset_grace_secs
        self._lock      = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._tokens)

    @property
    def index(self) -> int:
        return self._index

    def current(self) -> str:
        return self._tokens[self._index]

    def remaining(self, index: int) -> int | None:
        return self._remaining[index]

    def _has_quota(self, index: int) -> bool:
        remaining = self._remaining[index]
        if remaining is None or remaining >= self._watermark:
            return True
        reset_at = self._reset_at[index]
        return reset_at is not None and self._clock.time() >= reset_at

    def _rotate(self) -> bool:
        """Move to the next token with quota. Returns False when none has any."""
        n = len(self._tokens)
        for step in range(1, n + 1):
            candidate = (self._index + step) % n
            if self._has_quota(candidate):
                if candidate != self._index:
                    log.info("Switching GitHub token %d → %d", self._index + 1, candidate + 1)
                self._index = candidate
                return True
        return False

    def record(self, remaining: int | None, reset_at: float | None = None) -> None:
        """Store the quota GitHub reported for the active token."""
        self._remaining[self._index] = remaining
        self._reset_at[self._index]  = reset_at
        if remaining is not None and remaining < self._watermark:
            log.info("Token %d low on quota (%d remaining)", self._index + 1, remaining)
            self._rotate()

    async def acquire(self) -> str:
        """Return a token that may be used now, waiting for a reset if needed."""
        async with self._lock:
            if self._has_quota(self._index) or self._rotate():
                return self.current()

            known = [(r, i) for i, r in enumerate(self._reset_at) if r is not None]
            if known:
                reset_at, index = min(known)
                wait = max(reset_at - self._clock.time(), 0.0) + self._grace
            else:
                index, wait = self._index, self._grace

            log.info("All %d token(s) exhausted — waiting %.0fs for reset", len(self._tokens), wait)
            await self._clock.sleep(wait)

            self._index = index
            self._remaining[index] = None
            self._reset_at[index]  = None
            return self.current()
