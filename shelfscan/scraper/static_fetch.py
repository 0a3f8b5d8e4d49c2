"""
Shelfscan: Static Pre-Pass

Plain HTTP fetch tried before launching a browser. Server-rendered shops
usually carry JSON-LD or meta tags in the raw HTML, and a complete record
from those saves a browser session. Hosts known to need JavaScript or to
block non-browser clients are skipped.

Returns None whenever the page does not yield a title and a price; the
caller then falls through to the browser strategy.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from shelfscan.config import settings
from shelfscan.scraper import ScrapedData
from shelfscan.scraper.anti_detect import DEFAULT_PROFILE, AntiDetect
from shelfscan.scraper.assembler import assemble
from shelfscan.scraper.context import ScrapeContext
from shelfscan.scraper.tiers import run_tiers, snapshot_tiers
from shelfscan.utils.price import ZERO
from shelfscan.utils.url import normalize_hostname

logger = structlog.get_logger(__name__)

# Client-rendered or bot-walled: raw HTML never has the product
BROWSER_ONLY_HOSTS = ("mavi", "hm.com", "zara", "mango", "beymen", "lcw", "defacto", "amazon.", "amzn.")

# Supplementler serves a JS challenge page to plain HTTP clients
CHALLENGE_TITLES = ("bir dakika", "lütfen")


def static_fetch_allowed(url: str) -> bool:
    host = normalize_hostname(url)
    return bool(host) and not any(fragment in host for fragment in BROWSER_ONLY_HOSTS)


class StaticFetcher:
    """
    httpx-backed browserless extraction.

    Usage:
        async with StaticFetcher() as fetcher:
            record = await fetcher.fetch(url)
    """

    def __init__(
        self,
        timeout_seconds: float | None = None,
        anti_detect: AntiDetect | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self._timeout = timeout_seconds or settings.STATIC_FETCH_TIMEOUT_SECONDS
        self._anti_detect = anti_detect or AntiDetect(proxy_url=settings.PROXY_URL)
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> StaticFetcher:
        if self._client is None:
            user_agent = self._anti_detect.get_random_user_agent(DEFAULT_PROFILE)
            headers = self._anti_detect.build_headers(user_agent, DEFAULT_PROFILE)
            headers["User-Agent"] = user_agent
            self._client = httpx.AsyncClient(
                headers=headers,
                timeout=self._timeout,
                follow_redirects=True,
                proxy=settings.PROXY_URL or None,
            )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client and self._owns_client:
            await self._client.aclose()

    async def fetch_html(self, url: str) -> str | None:
        assert self._client is not None, "Fetcher not initialized. Use 'async with'."
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.info(
                "static_fetch_http_error",
                url=url,
                status_code=e.response.status_code,
                source="static_fetch",
            )
            return None
        except httpx.RequestError as e:
            logger.info("static_fetch_request_error", url=url, error=str(e), source="static_fetch")
            return None
        except httpx.InvalidURL as e:
            # IDNA-invalid hosts pass normalize_url; the browser still gets a try
            logger.info("static_fetch_invalid_url", url=url, error=str(e), source="static_fetch")
            return None
        return response.text

    async def fetch(self, url: str) -> ScrapedData | None:
        """Complete record from raw HTML, or None to fall through to the browser."""
        html = await self.fetch_html(url)
        if not html:
            return None

        ctx = ScrapeContext.from_html(url, html)
        snapshot = await ctx.get_snapshot()
        title = snapshot.title.lower()
        if any(marker in title for marker in CHALLENGE_TITLES):
            logger.info("static_fetch_challenge_page", url=url, source="static_fetch")
            return None

        partial = await run_tiers(snapshot_tiers(), ctx)
        if not partial.title or partial.price <= ZERO:
            logger.debug("static_fetch_incomplete", url=url, missing=partial.missing(), source="static_fetch")
            return None

        logger.info("static_fetch_hit", url=url, price=str(partial.price), source="static_fetch")
        return assemble(partial, url)


async def static_prepass(url: str, timeout_seconds: float | None = None) -> ScrapedData | None:
    """One-shot static fetch; None when skipped or incomplete."""
    if not static_fetch_allowed(url):
        return None
    async with StaticFetcher(timeout_seconds=timeout_seconds) as fetcher:
        return await fetcher.fetch(url)
