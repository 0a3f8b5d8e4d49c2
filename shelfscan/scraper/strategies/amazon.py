"""
Shelfscan: Amazon Strategy

Amazon pages carry their own price widgets and rarely useful JSON-LD, so a
dedicated DOM tier runs ahead of the default chain. A page without
#productTitle is treated as a failed scrape (captcha or splash page).
"""

from __future__ import annotations

import json

import structlog

from shelfscan.config import settings
from shelfscan.scraper import ExtractionSource, PartialProduct, ScrapedData
from shelfscan.scraper import scripts
from shelfscan.scraper.anti_detect import CSS_SAFE_BLOCKED_RESOURCE_TYPES, DESKTOP_USER_AGENTS, EvasionProfile
from shelfscan.scraper.browser import BrowserSession
from shelfscan.scraper.context import PageSnapshot, ScrapeContext
from shelfscan.scraper.regex_recovery import resolution_hint
from shelfscan.scraper.strategies.generic import GenericStrategy
from shelfscan.scraper.tiers import Tier, require_snapshot
from shelfscan.utils.image_url import resolve_image_url
from shelfscan.utils.price import ZERO, normalize_price
from shelfscan.utils.url import normalize_hostname

logger = structlog.get_logger(__name__)

AMAZON_PROFILE = EvasionProfile(
    user_agents=(DESKTOP_USER_AGENTS[1],),
    blocked_resource_types=CSS_SAFE_BLOCKED_RESOURCE_TYPES,
    blocked_url_fragments=("google-analytics",),
)

SPLASH_BUTTON_LABELS = ["Alışverişe Devam Et", "Continue shopping"]

PRICE_SELECTORS = (
    "#corePriceDisplay_desktop_feature_div .a-price .a-offscreen",
    "#corePrice_feature_div .a-price .a-offscreen",
    ".a-price.a-text-price.a-size-medium .a-offscreen",
    "#price_inside_buybox",
    "#priceblock_ourprice",
    "#priceblock_dealprice",
    ".a-price.reinventPricePriceToPayMargin.priceToPay .a-offscreen",
    ".a-price.apexPriceToPay .a-offscreen",
    ".priceToPay .a-offscreen",
)

IMAGE_SELECTORS = ("#landingImage", "#imgTagWrapperId img", "#imgBlkFront", "#main-image")
OUT_OF_STOCK_TEXTS = ("stokta yok", "currently unavailable")

# Marketplace TLD -> currency
TLD_CURRENCIES = {
    "com.tr": "TRY",
    "com": "USD",
    "co.uk": "GBP",
    "de": "EUR",
    "fr": "EUR",
    "it": "EUR",
    "es": "EUR",
    "nl": "EUR",
    "ca": "CAD",
    "co.jp": "JPY",
    "in": "INR",
    "ae": "AED",
    "sa": "SAR",
    "com.au": "AUD",
}


def currency_for_host(host: str) -> str | None:
    """Currency of an Amazon marketplace host (amazon.com.tr -> TRY)."""
    _, _, tld = host.partition("amazon.")
    return TLD_CURRENCIES.get(tld)


def best_dynamic_image(raw: str) -> str:
    """Largest image from a data-a-dynamic-image JSON map of url -> [w, h]."""
    try:
        candidates = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return ""
    if not isinstance(candidates, dict) or not candidates:
        return ""

    def _area(item: tuple[str, object]) -> int:
        url, size = item
        if isinstance(size, list) and len(size) == 2 and all(isinstance(v, int) for v in size):
            return size[0] * size[1]
        return resolution_hint(url)

    return max(candidates.items(), key=_area)[0]


def extract_amazon(snapshot: PageSnapshot, page_url: str) -> PartialProduct:
    title = snapshot.text("#productTitle")

    price = ZERO
    for selector in PRICE_SELECTORS:
        price = normalize_price(snapshot.text(selector))
        if price > ZERO:
            break

    image = ""
    for selector in IMAGE_SELECTORS:
        node = snapshot.select_one(selector)
        if node is None:
            continue
        attributes = node.attributes
        image = best_dynamic_image(attributes.get("data-a-dynamic-image") or "")
        image = image or attributes.get("data-old-hires") or attributes.get("src") or ""
        image = resolve_image_url(image, page_url)
        if image:
            break

    availability = snapshot.text("#availability").lower()
    in_stock = None
    if availability:
        in_stock = not any(text in availability for text in OUT_OF_STOCK_TEXTS)

    return PartialProduct(
        title=title,
        price=price,
        image=image,
        in_stock=in_stock,
        price_source=ExtractionSource.DOM_SELECTOR if price > ZERO else None,
        title_source=ExtractionSource.DOM_SELECTOR if title else None,
    )


class AmazonDomTier(Tier):
    name = "amazon_dom"

    async def extract(self, ctx: ScrapeContext) -> PartialProduct | None:
        snapshot = await require_snapshot(self, ctx)
        return extract_amazon(snapshot, ctx.url)


class AmazonStrategy(GenericStrategy):
    label = "Amazon"
    navigation_timeout_ms = settings.SLOW_NAVIGATION_TIMEOUT_MS
    state_sources = ()

    def evasion_profile(self, url: str) -> EvasionProfile:
        return AMAZON_PROFILE

    def site_tiers(self) -> list[Tier]:
        return [AmazonDomTier()]

    def currency_for(self, url: str) -> str | None:
        return currency_for_host(normalize_hostname(url)) or settings.DEFAULT_CURRENCY

    async def prepare(self, session: BrowserSession, ctx: ScrapeContext) -> None:
        if await session.click_by_text(SPLASH_BUTTON_LABELS):
            logger.info("amazon_splash_dismissed", url=ctx.url, source="amazon_strategy")
            await session.settle(1.5)
            await session.wait_for_any(("#productTitle",))
        await session.evaluate(scripts.AMAZON_DISMISS_TOAST)
        await session.scroll(1000)
        await session.settle(2.0)

    def finalize(self, partial: PartialProduct, ctx: ScrapeContext, block_signature: str | None) -> ScrapedData:
        if not partial.title or block_signature:
            return self.fail_result(
                "Amazon Scraper could not find product title",
                currency=self.currency_for(ctx.url),
            )
        return super().finalize(partial, ctx, block_signature)
