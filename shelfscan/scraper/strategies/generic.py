"""
Shelfscan: Generic Strategy

Default extraction procedure for any storefront:
1. Acquire an isolated browser session with the strategy's evasion profile
2. Navigate (a timeout is not fatal), wait for hydration, settle
3. prepare(): splash dismissal, scrolling and similar page interaction
4. Run the tier chain
5. Detect anti-bot interstitials and assemble the final record

Site strategies subclass this and override the hooks: evasion_profile(),
wait_until, wait_selectors, post_load_delay, state_sources, site_rule,
site_tiers(), prepare() and finalize().
"""

from __future__ import annotations

import structlog

from shelfscan.scraper import PartialProduct, ScrapedData
from shelfscan.scraper.anti_detect import (
    CSS_SAFE_BLOCKED_RESOURCE_TYPES,
    MIXED_USER_AGENTS,
    EvasionProfile,
    detect_block_signature,
)
from shelfscan.scraper.assembler import assemble
from shelfscan.scraper.browser import BrowserSession, BrowserSessionManager
from shelfscan.scraper.context import ScrapeContext
from shelfscan.scraper.errors import BrowserLaunchError, InvalidURLError, SiteBlockedError
from shelfscan.scraper.platform_state import DEFAULT_STATE_SOURCES, StateSource
from shelfscan.scraper.site_rules import SiteRule
from shelfscan.scraper.strategies.base import Strategy
from shelfscan.scraper.tiers import Tier, default_tiers, run_tiers
from shelfscan.utils.price import ZERO
from shelfscan.utils.url import normalize_hostname, normalize_url

logger = structlog.get_logger(__name__)

# Sites whose bot protection reacts to blocked stylesheets
CSS_SAFE_HOSTS = ("amazon.", "decathlon", "nike.com", "tagrean.com")
# Sites that get a jittered pre-navigation delay
JITTER_HOSTS = CSS_SAFE_HOSTS + ("oldcottoncargo.com.tr", "kufvintage.com")
# Sites that lazy-load prices or galleries below the fold
SCROLL_HOSTS = ("hepsiburada", "decathlon", "trendyol", "hypeofsteps")

GENERIC_PROFILE = EvasionProfile(user_agents=MIXED_USER_AGENTS)


class GenericStrategy(Strategy):
    """Tier chain over a single rendered page."""

    label = ""
    wait_until: str = "domcontentloaded"
    navigation_timeout_ms: int | None = None
    wait_selectors: tuple[str, ...] = ()
    wait_timeout_ms: int | None = None
    post_load_delay: float = 1.0
    state_sources: tuple[StateSource, ...] = DEFAULT_STATE_SOURCES
    site_rule: SiteRule | None = None
    default_currency: str | None = None

    # -----------------------------------------------------------------------
    # Hooks
    # -----------------------------------------------------------------------

    def evasion_profile(self, url: str) -> EvasionProfile:
        host = normalize_hostname(url)
        profile = GENERIC_PROFILE
        if any(fragment in host for fragment in CSS_SAFE_HOSTS):
            profile = profile.replace(blocked_resource_types=CSS_SAFE_BLOCKED_RESOURCE_TYPES)
        if any(fragment in host for fragment in JITTER_HOSTS):
            profile = profile.replace(jitter_seconds=(0.4, 1.2))
        return profile

    def site_tiers(self) -> list[Tier]:
        """Strategy-specific tiers that run before the default chain."""
        return []

    def tiers(self) -> list[Tier]:
        return self.site_tiers() + default_tiers(self.state_sources, self.site_rule)

    async def prepare(self, session: BrowserSession, ctx: ScrapeContext) -> None:
        if any(fragment in ctx.host for fragment in SCROLL_HOSTS):
            await session.scroll(1000)
            await session.settle(2.0)

    def currency_for(self, url: str) -> str | None:
        return self.default_currency

    def finalize(self, partial: PartialProduct, ctx: ScrapeContext, block_signature: str | None) -> ScrapedData:
        """Turn merged findings into the public record."""
        if block_signature:
            logger.warning(
                "scrape_blocked",
                url=ctx.url,
                signature=block_signature,
                strategy=type(self).__name__,
                source="strategy",
            )
            if detect_block_signature(partial.title):
                partial.title = ""
            return assemble(
                partial,
                ctx.url,
                default_currency=self.currency_for(ctx.url),
                label=self.label,
                error=f"Blocked by anti-bot protection ({block_signature})",
            )
        return assemble(partial, ctx.url, default_currency=self.currency_for(ctx.url), label=self.label)

    # -----------------------------------------------------------------------
    # Procedure
    # -----------------------------------------------------------------------

    async def scrape(self, url: str, manager: BrowserSessionManager) -> ScrapedData:
        try:
            url = normalize_url(url)
        except InvalidURLError as e:
            return self.fail_result(str(e))

        strategy = type(self).__name__
        logger.info("strategy_started", url=url, strategy=strategy, source="strategy")
        try:
            async with manager.session(self.evasion_profile(url)) as session:
                result = await self.scrape_page(session, url)
        except (BrowserLaunchError, SiteBlockedError):
            raise
        except Exception as e:
            logger.error("strategy_failed", url=url, strategy=strategy, error=str(e), source="strategy")
            return self.on_error(url, e)

        logger.info(
            "strategy_finished",
            url=url,
            strategy=strategy,
            price=str(result.price),
            result_source=result.source.value,
            source="strategy",
        )
        return result

    def on_error(self, url: str, error: Exception) -> ScrapedData:
        return self.fail_result(str(error) or type(error).__name__)

    async def navigate(self, session: BrowserSession, url: str) -> None:
        await session.goto(url, wait_until=self.wait_until, timeout_ms=self.navigation_timeout_ms)
        if self.wait_selectors:
            await session.wait_for_any(self.wait_selectors, self.wait_timeout_ms)
        await session.settle(self.post_load_delay)

    async def extract_page(
        self, session: BrowserSession, url: str
    ) -> tuple[PartialProduct, ScrapeContext, str | None]:
        """Navigate, prepare and run the tiers; also report any block signature."""
        await self.navigate(session, url)
        ctx = ScrapeContext.for_session(url, session)
        await self.prepare(session, ctx)
        partial = await run_tiers(self.tiers(), ctx)

        block_signature = None
        if partial.price <= ZERO:
            snapshot = await ctx.get_snapshot()
            block_signature = detect_block_signature(snapshot.title, snapshot.html)
        return partial, ctx, block_signature

    async def scrape_page(self, session: BrowserSession, url: str) -> ScrapedData:
        partial, ctx, block_signature = await self.extract_page(session, url)
        return self.finalize(partial, ctx, block_signature)
