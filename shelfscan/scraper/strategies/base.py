"""Shelfscan: Site Strategy interface"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from shelfscan.scraper import ScrapedData
from shelfscan.scraper.assembler import fail_result
from shelfscan.scraper.browser import BrowserSessionManager


class Strategy(ABC):
    """Extraction procedure for one family of sites."""

    label: str = ""

    @abstractmethod
    async def scrape(self, url: str, manager: BrowserSessionManager) -> ScrapedData:
        """
        Extract one product record from url.

        Must always return a record; only BrowserLaunchError (and a
        strategy's documented SiteBlockedError) may propagate.
        """

    def fail_result(self, message: str = "Unknown error", **overrides: Any) -> ScrapedData:
        return fail_result(message, **overrides)

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"
