"""Shelfscan: product page extraction pipeline"""

from shelfscan.scraper import ExtractionSource, ScrapedData
from shelfscan.scraper.errors import BrowserLaunchError, ScraperError, SiteBlockedError
from shelfscan.scraper.runner import scrape, scrape_many, scrape_sync

__all__ = [
    "BrowserLaunchError",
    "ExtractionSource",
    "ScrapedData",
    "ScraperError",
    "SiteBlockedError",
    "scrape",
    "scrape_many",
    "scrape_sync",
]
