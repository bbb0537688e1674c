from __future__ import annotations


class HarnessError(Exception):
    """Base class for every error raised by the harness itself."""


class InputSourceError(HarnessError):
    """The repository list cannot be read. Nothing can proceed."""


class ToolUnavailableError(HarnessError):
    """A vendored engine script or binary cannot be obtained."""


class SitemapError(HarnessError):
    """A sitemap location could not be fetched or parsed."""


class RateLimitError(HarnessError):
    """Raised when GitHub reports an exhausted quota for the active token."""
    def __init__(self, reset_at: float | None = None):
        self.reset_at = reset_at
        super().__init__(f"Rate limit exhausted, resets at {reset_at}")
