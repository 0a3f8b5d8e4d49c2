"""
Shelfscan: Scrape Runner (public entry point)

scrape(url) always returns a ScrapedData:
1. Normalize the URL (invalid -> degraded record, no browser)
2. Optional static pre-pass over plain HTTP
3. Dispatch to the site strategy, which owns one browser session

Only BrowserLaunchError and SiteBlockedError cross this boundary; anything
else becomes an error record.

scrape_many() is the caller-level pool: bounded concurrency plus a per-URL
deadline. Cancelling a call on deadline unwinds its session context, which
closes (or kills) its browser.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

import structlog

from shelfscan.config import settings
from shelfscan.scraper import ScrapedData
from shelfscan.scraper.assembler import error_result, fail_result
from shelfscan.scraper.browser import BrowserConfig, BrowserSessionManager
from shelfscan.scraper.dispatcher import get_strategy
from shelfscan.scraper.errors import BrowserLaunchError, InvalidURLError, SiteBlockedError
from shelfscan.scraper.static_fetch import static_prepass
from shelfscan.utils.url import normalize_url

logger = structlog.get_logger(__name__)


async def scrape(
    url: str,
    *,
    config: BrowserConfig | None = None,
    manager: BrowserSessionManager | None = None,
    use_static: bool | None = None,
) -> ScrapedData:
    """
    Extract one normalized product record.

    Args:
        url: Product page URL; https:// is prepended when no scheme is given.
        config: Browser configuration (ignored when manager is given).
        manager: Session manager to launch browsers with.
        use_static: Try the browserless pre-pass first (default from settings).

    Raises:
        BrowserLaunchError: The browser could not be started.
        SiteBlockedError: A strategy detected an explicit bot block (Mavi).
    """
    try:
        url = normalize_url(url)
    except InvalidURLError as e:
        logger.warning("scrape_invalid_url", url=e.url, source="scraper_runner")
        return fail_result(str(e))

    if use_static is None:
        use_static = settings.ENABLE_STATIC_FETCH

    try:
        if use_static:
            record = await static_prepass(url)
            if record is not None:
                return record

        strategy = get_strategy(url)
        manager = manager or BrowserSessionManager(config)
        return await strategy.scrape(url, manager)
    except (BrowserLaunchError, SiteBlockedError):
        raise
    except Exception as e:
        logger.error("scrape_unexpected_error", url=url, error=str(e), source="scraper_runner")
        return error_result(str(e) or type(e).__name__)


def scrape_sync(url: str, **kwargs) -> ScrapedData:
    """Blocking wrapper around scrape() for non-async callers."""
    return asyncio.run(scrape(url, **kwargs))


async def scrape_many(
    urls: Iterable[str],
    concurrency: int | None = None,
    deadline_seconds: float | None = None,
    *,
    config: BrowserConfig | None = None,
    manager: BrowserSessionManager | None = None,
    use_static: bool | None = None,
) -> list[ScrapedData]:
    """
    Scrape several URLs with at most `concurrency` browsers alive at once.

    Results keep the input order. A call that exceeds the deadline or
    raises (launch failure, Mavi block) yields a degraded record instead of
    aborting the batch.
    """
    concurrency = concurrency or settings.SCRAPE_CONCURRENCY
    deadline = deadline_seconds if deadline_seconds is not None else settings.SCRAPE_DEADLINE_SECONDS
    manager = manager or BrowserSessionManager(config)
    semaphore = asyncio.Semaphore(concurrency)

    async def _bounded(url: str) -> ScrapedData:
        async with semaphore:
            try:
                return await asyncio.wait_for(
                    scrape(url, manager=manager, use_static=use_static),
                    timeout=deadline,
                )
            except asyncio.TimeoutError:
                logger.warning("scrape_deadline_exceeded", url=url, deadline_seconds=deadline, source="scraper_runner")
                return fail_result(f"Scrape deadline exceeded ({deadline:g}s)")
            except Exception as e:
                logger.error("scrape_failed", url=url, error=str(e), source="scraper_runner")
                return fail_result(str(e) or type(e).__name__)

    urls = list(urls)
    logger.info("scrape_batch_started", count=len(urls), concurrency=concurrency, source="scraper_runner")
    return list(await asyncio.gather(*(_bounded(url) for url in urls)))
