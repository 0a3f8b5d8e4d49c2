"""
Shelfscan: Mavi Strategy

Mavi sits behind an aggressive bot wall. The session uses a single
full-HD desktop fingerprint, a longer jittered pre-navigation delay and
some human-like scrolling and mouse movement before extraction.

A detected block is raised as SiteBlockedError so callers can back off
and retry later instead of storing a degraded record.
"""

from __future__ import annotations

import structlog

from shelfscan.config import settings
from shelfscan.scraper import PartialProduct, ScrapedData
from shelfscan.scraper.anti_detect import DESKTOP_USER_AGENTS, EvasionProfile
from shelfscan.scraper.browser import BrowserSession
from shelfscan.scraper.context import ScrapeContext
from shelfscan.scraper.errors import SiteBlockedError
from shelfscan.scraper.strategies.generic import GenericStrategy

logger = structlog.get_logger(__name__)

MAVI_PROFILE = EvasionProfile(
    user_agents=(DESKTOP_USER_AGENTS[3],),
    viewport=(1920, 1080),
    jitter_seconds=(1.0, 2.0),
)

BLOCKED_TITLE_FRAGMENTS = ("blocked", "cloudflare")
BLOCKED_MESSAGE = "Mavi security block detected. Please try again later or add manually."

PLACEHOLDER_TITLE = "Mavi Ürün"
PLACEHOLDER_IMAGE = "https://placehold.co/600x600?text=Mavi+Product"
PLACEHOLDER_DESCRIPTION = "Mavi koruması nedeniyle detaylar tam alınamadı. Manuel düzenleyebilirsiniz."
RESTRICTED_ERROR = "Mavi restricted access."


class MaviStrategy(GenericStrategy):
    label = "Mavi"
    navigation_timeout_ms = settings.SLOW_NAVIGATION_TIMEOUT_MS
    post_load_delay = 4.0
    state_sources = ()

    def evasion_profile(self, url: str) -> EvasionProfile:
        return MAVI_PROFILE

    async def prepare(self, session: BrowserSession, ctx: ScrapeContext) -> None:
        await session.scroll(500)
        await session.settle(1.5)
        await session.move_mouse(100, 100)
        await session.move_mouse(200, 200)

    def placeholder_result(self) -> ScrapedData:
        return self.fail_result(
            RESTRICTED_ERROR,
            title=PLACEHOLDER_TITLE,
            image=PLACEHOLDER_IMAGE,
            description=PLACEHOLDER_DESCRIPTION,
        )

    def on_error(self, url: str, error: Exception) -> ScrapedData:
        return self.placeholder_result()

    async def scrape_page(self, session: BrowserSession, url: str) -> ScrapedData:
        partial, ctx, block_signature = await self.extract_page(session, url)
        if block_signature is None:
            snapshot = await ctx.get_snapshot()
            block_signature = self.blocked_title(snapshot.title) or self.blocked_title(partial.title)
        if block_signature:
            logger.warning("mavi_blocked", url=url, signature=block_signature, source="mavi_strategy")
            raise SiteBlockedError(url, block_signature, BLOCKED_MESSAGE)
        return self.finalize(partial, ctx, None)

    @staticmethod
    def blocked_title(title: str) -> str | None:
        lowered = (title or "").lower()
        for fragment in BLOCKED_TITLE_FRAGMENTS:
            if fragment in lowered:
                return fragment
        return None

    def finalize(self, partial: PartialProduct, ctx: ScrapeContext, block_signature: str | None) -> ScrapedData:
        if not partial.title:
            logger.warning("mavi_title_missing", url=ctx.url, source="mavi_strategy")
            return self.placeholder_result()
        return super().finalize(partial, ctx, block_signature)
