"""
Shelfscan: H&M Strategy

H&M product pages are frequently access-restricted for headless browsers,
while their search results page is not. The strategy:
1. Warms up the session on the region home page (cookies)
2. Runs the normal tier chain on the product page
3. If that yields no price, looks the product ID up on the search results
   page of each candidate region and takes the lowest listed price
4. Otherwise returns a placeholder record for manual completion
"""

from __future__ import annotations

import re

import structlog

from shelfscan.scraper import ExtractionSource, PartialProduct, ScrapedData
from shelfscan.scraper import scripts
from shelfscan.scraper.anti_detect import DESKTOP_USER_AGENTS, EvasionProfile
from shelfscan.scraper.assembler import assemble
from shelfscan.scraper.browser import BrowserSession
from shelfscan.scraper.platform_state import HM_ARTICLE
from shelfscan.scraper.strategies.generic import GenericStrategy
from shelfscan.utils.image_url import resolve_image_url
from shelfscan.utils.price import ZERO, parse_price_candidates

logger = structlog.get_logger(__name__)

HM_PROFILE = EvasionProfile(user_agents=(DESKTOP_USER_AGENTS[0],))

DEFAULT_REGION = "tr_tr"
FALLBACK_REGIONS = ("tr_tr", "en_gb", "en_us")
HOME_URL = "https://www2.hm.com/{region}/index.html"
SEARCH_URL = "https://www2.hm.com/{region}/search-results.html?q={product_id}"
SEARCH_TIMEOUT_MS = 15000

PLACEHOLDER_IMAGE = "https://placehold.co/600x600?text=H%26M+Product"
PLACEHOLDER_DESCRIPTION = "H&M koruması nedeniyle detaylar tam alınamadı. Manuel düzenleyebilirsiniz."
RESTRICTED_ERROR = "H&M restricted access (Search bypass failed)."

_REGION = re.compile(r"hm\.com/([^/?#]+)/")
_PRODUCT_ID_PATTERNS = (
    re.compile(r"productpage\.(\d+)\.html"),
    re.compile(r"productpage/(\d+)"),
    re.compile(r"product\.(\d+)\.html"),
)


def parse_region(url: str) -> str:
    match = _REGION.search(url)
    return match.group(1) if match else DEFAULT_REGION


def parse_product_id(url: str) -> str | None:
    for pattern in _PRODUCT_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def regions_to_try(region: str) -> list[str]:
    """URL region first, then the fallbacks, without duplicates."""
    ordered = [region, *FALLBACK_REGIONS]
    return list(dict.fromkeys(ordered))


def region_currency(region: str) -> str:
    if "tr" in region:
        return "TRY"
    if "gb" in region:
        return "GBP"
    return "USD"


def search_result_to_partial(article: dict, region: str, page_url: str) -> PartialProduct | None:
    """Map the search-page article tile to a PartialProduct (lowest price wins)."""
    title = " ".join(str(article.get("title") or "").split())
    if not title or "access denied" in title.lower():
        return None
    prices = parse_price_candidates(article.get("priceTexts") or "")
    price = min(prices) if prices else ZERO
    return PartialProduct(
        title=title,
        price=price,
        image=resolve_image_url(article.get("image"), page_url),
        currency=region_currency(region),
        price_source=ExtractionSource.DOM_SELECTOR if price > ZERO else None,
        title_source=ExtractionSource.DOM_SELECTOR,
    )


class HMStrategy(GenericStrategy):
    label = "H&M"
    state_sources = (HM_ARTICLE,)
    wait_selectors = ("h1", ".product-item-headline", "#product-price")
    wait_timeout_ms = 10000

    def evasion_profile(self, url: str) -> EvasionProfile:
        return HM_PROFILE

    def currency_for(self, url: str) -> str | None:
        return region_currency(parse_region(url))

    def placeholder_result(self, product_id: str | None, error: str = RESTRICTED_ERROR) -> ScrapedData:
        return self.fail_result(
            error,
            title=f"H&M Ürün ({product_id})" if product_id else "H&M Ürün",
            image=PLACEHOLDER_IMAGE,
            description=PLACEHOLDER_DESCRIPTION,
        )

    def on_error(self, url: str, error: Exception) -> ScrapedData:
        return self.placeholder_result(parse_product_id(url))

    async def scrape_page(self, session: BrowserSession, url: str) -> ScrapedData:
        region = parse_region(url)
        product_id = parse_product_id(url)

        await session.goto(HOME_URL.format(region=DEFAULT_REGION))
        await session.settle(2.0)

        partial, ctx, block_signature = await self.extract_page(session, url)
        if partial.price > ZERO and partial.title and not block_signature:
            return self.finalize(partial, ctx, None)

        if product_id:
            found = await self.search_regions(session, product_id, region)
            if found is not None:
                return assemble(found, url, default_currency=found.currency, label=self.label)

        logger.warning("hm_search_bypass_failed", url=url, product_id=product_id, source="hm_strategy")
        return self.placeholder_result(product_id)

    async def search_regions(self, session: BrowserSession, product_id: str, region: str) -> PartialProduct | None:
        for candidate in regions_to_try(region):
            search_url = SEARCH_URL.format(region=candidate, product_id=product_id)
            if not await session.goto(search_url, timeout_ms=SEARCH_TIMEOUT_MS):
                logger.info("hm_region_navigation_failed", region=candidate, source="hm_strategy")
            article = await session.evaluate(scripts.HM_SEARCH_ARTICLE, product_id)
            if not isinstance(article, dict):
                continue
            partial = search_result_to_partial(article, candidate, search_url)
            if partial is not None:
                logger.info("hm_search_hit", region=candidate, product_id=product_id, source="hm_strategy")
                return partial
        return None
