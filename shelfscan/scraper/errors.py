"""
Shelfscan: Scraper Error Taxonomy

Propagation policy:
- BrowserLaunchError always crosses the public entry point.
- SiteBlockedError crosses it only when a strategy raises it deliberately
  (Mavi), so upstream retry/backoff can tell it apart from partial failure.
- Everything else is recovered into a degraded ScrapedData. Incomplete
  extraction has no exception type at all: it is price == 0, source ==
  "manual" and a populated error on the record.
"""

from __future__ import annotations


class ScraperError(Exception):
    """Base class for extraction pipeline errors."""


class InvalidURLError(ScraperError):
    """The input could not be parsed into a URL with a hostname."""

    def __init__(self, url: str):
        self.url = url
        super().__init__("Invalid URL format")


class NavigationTimeoutError(ScraperError):
    """Navigation did not finish in time. Non-fatal: extraction continues."""

    def __init__(self, url: str, timeout_ms: int):
        self.url = url
        self.timeout_ms = timeout_ms
        super().__init__(f"Navigation to {url} timed out after {timeout_ms}ms")


class TierFailure(ScraperError):
    """A single extraction tier failed; the chain skips it."""

    def __init__(self, tier: str, reason: str):
        self.tier = tier
        self.reason = reason
        super().__init__(f"Tier {tier} failed: {reason}")


class SiteBlockedError(ScraperError):
    """An explicit anti-bot block signature was detected."""

    def __init__(self, url: str, signature: str, message: str | None = None):
        self.url = url
        self.signature = signature
        super().__init__(message or f"Blocked by anti-bot protection ({signature})")


class BrowserLaunchError(ScraperError):
    """The headless browser could not be started. Always fatal."""
