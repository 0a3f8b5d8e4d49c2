"""
Shelfscan: Extraction Tier Chain

Tiers in priority order:
1. Platform global state (live browser only)
2. Structured data (JSON-LD)
3. Metadata (Open Graph / product meta tags)
4. Site-specific DOM rules
5. Generic DOM fallback
6. Raw-HTML regex recovery (only while price or image is missing)

Each tier returns a PartialProduct; run_tiers() merges them so later tiers
only fill empty fields, and stops once title, price and image are all set.
A failing tier is logged and skipped.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Iterable, Sequence

import structlog

from shelfscan.scraper import ExtractionSource, PartialProduct
from shelfscan.scraper.context import PageSnapshot, ScrapeContext, node_attr
from shelfscan.scraper.errors import TierFailure
from shelfscan.scraper.platform_state import DEFAULT_STATE_SOURCES, StateSource
from shelfscan.scraper.regex_recovery import recover
from shelfscan.scraper.site_rules import SiteRule, find_rule
from shelfscan.utils.image_url import resolve_image_url
from shelfscan.utils.price import ZERO, has_digit, normalize_price

logger = structlog.get_logger(__name__)

_OUT_OF_STOCK_AVAILABILITY = ("outofstock", "soldout", "out of stock", "oos", "discontinued")
_ZOOM_IMAGE_KEY = "zoomImage"


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------


class Tier(ABC):
    """One extraction strategy over a ScrapeContext."""

    name: str = "tier"

    def wanted(self, result: PartialProduct) -> bool:
        """Whether this tier can still contribute to result."""
        return not result.is_complete()

    @abstractmethod
    async def extract(self, ctx: ScrapeContext) -> PartialProduct | None:
        ...


async def require_snapshot(tier: Tier, ctx: ScrapeContext) -> PageSnapshot:
    snapshot = await ctx.get_snapshot()
    if not snapshot.html:
        raise TierFailure(tier.name, "empty document")
    return snapshot


async def run_tiers(
    tiers: Iterable[Tier],
    ctx: ScrapeContext,
    result: PartialProduct | None = None,
) -> PartialProduct:
    """
    Run tiers in order, merging findings into result.

    Args:
        tiers: Tiers in priority order.
        ctx: Scrape context shared by all tiers.
        result: Existing findings to extend (new PartialProduct if None).

    Returns:
        The merged PartialProduct.
    """
    result = result if result is not None else PartialProduct()
    for tier in tiers:
        if result.is_complete():
            break
        if not tier.wanted(result):
            continue
        try:
            found = await tier.extract(ctx)
        except TierFailure as e:
            logger.info("tier_skipped", tier=tier.name, url=ctx.url, reason=e.reason, source="tiers")
            continue
        except Exception as e:
            logger.warning(
                "tier_failed",
                tier=tier.name,
                url=ctx.url,
                error=str(e),
                error_type=type(e).__name__,
                source="tiers",
            )
            continue
        if found is None:
            continue
        result.merge(found)
        logger.debug(
            "tier_completed",
            tier=tier.name,
            url=ctx.url,
            missing=result.missing(),
            source="tiers",
        )
    return result


# ---------------------------------------------------------------------------
# 1. Platform global state
# ---------------------------------------------------------------------------


class PlatformStateTier(Tier):
    name = "platform_state"

    def __init__(self, sources: Sequence[StateSource] = DEFAULT_STATE_SOURCES) -> None:
        self.sources = tuple(sources)

    async def extract(self, ctx: ScrapeContext) -> PartialProduct | None:
        if ctx.session is None:
            raise TierFailure(self.name, "no live page")
        found = PartialProduct()
        for state_source in self.sources:
            if found.is_complete():
                break
            if not state_source.applies_to(ctx.host):
                continue
            state = await ctx.evaluate(state_source.script)
            if state is None:
                continue
            try:
                partial = state_source.mapper(state, ctx.url)
            except (TypeError, ValueError, KeyError, AttributeError, ArithmeticError) as e:
                logger.warning(
                    "platform_state_mapping_failed",
                    state_source=state_source.name,
                    url=ctx.url,
                    error=str(e),
                    source="tiers",
                )
                continue
            if partial is not None:
                logger.debug("platform_state_found", state_source=state_source.name, url=ctx.url, source="tiers")
                found.merge(partial)
        return found


# ---------------------------------------------------------------------------
# 2. Structured data
# ---------------------------------------------------------------------------

_SKIPPED_JSON_LD_KEYS = ("isPartOf", "breadcrumb")


def _is_product_type(value: Any) -> bool:
    if isinstance(value, list):
        return any(_is_product_type(item) for item in value)
    return isinstance(value, str) and "Product" in value


def find_product(data: Any) -> dict | None:
    """Depth-first search for the first JSON-LD node typed as a Product."""
    if isinstance(data, list):
        for item in data:
            found = find_product(item)
            if found is not None:
                return found
        return None
    if not isinstance(data, dict):
        return None
    if "@graph" in data:
        return find_product(data["@graph"])
    if _is_product_type(data.get("@type")):
        return data
    for key, value in data.items():
        if key in _SKIPPED_JSON_LD_KEYS or not isinstance(value, (dict, list)):
            continue
        found = find_product(value)
        if found is not None:
            return found
    return None


def _first_offer(product: dict) -> dict | None:
    offers = product.get("offers")
    if offers is None and product.get("hasVariant"):
        variants = product["hasVariant"]
        variant = variants[0] if isinstance(variants, list) and variants else variants
        offers = variant.get("offers") if isinstance(variant, dict) else None
    if isinstance(offers, list):
        offers = offers[0] if offers else None
    if isinstance(offers, dict) and "price" not in offers and offers.get("itemOffered"):
        # Offer wrapping the purchasable item: offers.itemOffered[0].offers[0]
        item = offers["itemOffered"]
        item = item[0] if isinstance(item, list) and item else item
        nested = _first_offer(item) if isinstance(item, dict) else None
        if nested is not None:
            return nested
    return offers if isinstance(offers, dict) else None


def _offer_price(offer: dict) -> Decimal:
    for key in ("price", "lowPrice", "highPrice"):
        value = normalize_price(offer.get(key))
        if value > ZERO:
            return value
    specs = offer.get("priceSpecification")
    if isinstance(specs, dict):
        specs = [specs]
    for spec in specs or []:
        if isinstance(spec, dict):
            value = normalize_price(spec.get("price"))
            if value > ZERO:
                return value
    return ZERO


def product_from_json_ld(product: dict, page_url: str) -> PartialProduct:
    """Map a schema.org Product node to a PartialProduct."""
    name = product.get("name")
    title = " ".join(name.split()) if isinstance(name, str) else ""
    offer = _first_offer(product) or {}
    price = _offer_price(offer) if offer else ZERO
    currency = offer.get("priceCurrency") if isinstance(offer.get("priceCurrency"), str) else ""

    in_stock = None
    availability = offer.get("availability")
    if isinstance(availability, str):
        lowered = availability.lower()
        in_stock = not any(marker in lowered for marker in _OUT_OF_STOCK_AVAILABILITY)

    return PartialProduct(
        title=title,
        price=price,
        image=resolve_image_url(product.get("image"), page_url),
        currency=currency.upper(),
        in_stock=in_stock,
        price_source=ExtractionSource.STRUCTURED_DATA if price > ZERO else None,
        title_source=ExtractionSource.STRUCTURED_DATA if title else None,
    )


class StructuredDataTier(Tier):
    name = "structured_data"

    async def extract(self, ctx: ScrapeContext) -> PartialProduct | None:
        snapshot = await require_snapshot(self, ctx)
        found = PartialProduct()
        for block in snapshot.json_ld_blocks():
            product = find_product(block)
            if product is not None:
                found.merge(product_from_json_ld(product, ctx.url))
        return found


# ---------------------------------------------------------------------------
# 3. Metadata
# ---------------------------------------------------------------------------


class MetadataTier(Tier):
    name = "metadata"

    async def extract(self, ctx: ScrapeContext) -> PartialProduct | None:
        snapshot = await require_snapshot(self, ctx)

        price = normalize_price(
            snapshot.meta("product:price:amount", "og:price:amount", "twitter:data1", "price")
        )
        title = snapshot.meta("og:title") or snapshot.title
        availability = snapshot.meta("product:availability", "og:availability").lower()
        in_stock = None
        if availability:
            in_stock = not any(marker in availability for marker in _OUT_OF_STOCK_AVAILABILITY)

        return PartialProduct(
            title=" ".join(title.split()),
            price=price,
            image=resolve_image_url(snapshot.meta("og:image", "twitter:image"), ctx.url),
            currency=snapshot.meta("product:price:currency", "og:price:currency").upper(),
            in_stock=in_stock,
            price_source=ExtractionSource.METADATA if price > ZERO else None,
            title_source=ExtractionSource.METADATA if title else None,
        )


# ---------------------------------------------------------------------------
# 4 & 5. DOM selectors
# ---------------------------------------------------------------------------

GENERIC_DOM_RULE = SiteRule(
    name="generic",
    title_selectors=("h1",),
    price_selectors=(".price", ".product-price", ".amount", '[itemprop="price"]', ".SinglePrice_center__SWK1D"),
    image_selectors=(
        'img[itemprop="image"]', ".product-image img", ".cloudzoom", '[class*="product-image"] img',
    ),
)


def _image_from_node(node: Any) -> str:
    cloudzoom = node_attr(node, "data-cloudzoom")
    if _ZOOM_IMAGE_KEY in cloudzoom:
        for part in cloudzoom.split(","):
            key, _, value = part.partition(":")
            if key.strip().strip("\"'") == _ZOOM_IMAGE_KEY:
                return value.strip().strip("\"'")
    return node_attr(node, "data-zoom-image", "data-src", "src", "content", "href") or cloudzoom


def apply_rule(rule: SiteRule, snapshot: PageSnapshot, page_url: str) -> PartialProduct:
    """Evaluate one rule's selector candidates against a snapshot."""
    title = ""
    for selector in rule.title_selectors:
        title = snapshot.text(selector)
        if title:
            break
    if title and rule.title_separator:
        title = title.split(rule.title_separator)[0].strip()

    price = ZERO
    for selector in rule.price_selectors:
        node = snapshot.select_one(selector)
        if node is None:
            continue
        value = node_attr(node, "content", "data-price-value") or " ".join((node.text() or "").split())
        if has_digit(value):
            price = normalize_price(value)
            if price > ZERO:
                break

    image = ""
    for selector in rule.image_selectors:
        node = snapshot.select_one(selector)
        if node is None:
            continue
        image = resolve_image_url(_image_from_node(node), page_url)
        if image:
            break

    in_stock = None
    if any(snapshot.has(selector) for selector in rule.out_of_stock_selectors):
        in_stock = False
    elif rule.out_of_stock_texts and any(text in snapshot.body_text for text in rule.out_of_stock_texts):
        in_stock = False

    return PartialProduct(
        title=title,
        price=price,
        image=image,
        currency=rule.currency,
        in_stock=in_stock,
        price_source=ExtractionSource.DOM_SELECTOR if price > ZERO else None,
        title_source=ExtractionSource.DOM_SELECTOR if title else None,
    )


class DomSelectorTier(Tier):
    """
    Selector-rule tier.

    With an explicit rule it always applies it (generic fallback); without
    one it looks the rule up by host or page markers.
    """

    def __init__(self, rule: SiteRule | None = None, name: str = "site_dom") -> None:
        self.rule = rule
        self.name = name

    async def extract(self, ctx: ScrapeContext) -> PartialProduct | None:
        snapshot = await require_snapshot(self, ctx)
        rule = self.rule or find_rule(ctx.host, snapshot)
        if rule is None:
            return None
        return apply_rule(rule, snapshot, ctx.url)


# ---------------------------------------------------------------------------
# 6. Regex recovery
# ---------------------------------------------------------------------------


class RegexRecoveryTier(Tier):
    name = "regex_recovery"

    def wanted(self, result: PartialProduct) -> bool:
        return result.price <= ZERO or not result.image

    async def extract(self, ctx: ScrapeContext) -> PartialProduct | None:
        snapshot = await require_snapshot(self, ctx)
        return recover(snapshot.html, ctx.url)


def default_tiers(
    state_sources: Sequence[StateSource] = DEFAULT_STATE_SOURCES,
    site_rule: SiteRule | None = None,
) -> list[Tier]:
    """The full chain in priority order."""
    return [
        PlatformStateTier(state_sources),
        StructuredDataTier(),
        MetadataTier(),
        DomSelectorTier(site_rule, name="site_dom"),
        DomSelectorTier(GENERIC_DOM_RULE, name="generic_dom"),
        RegexRecoveryTier(),
    ]


def snapshot_tiers() -> list[Tier]:
    """Tiers that work on fetched HTML without a browser."""
    return [
        StructuredDataTier(),
        MetadataTier(),
        DomSelectorTier(name="site_dom"),
        DomSelectorTier(GENERIC_DOM_RULE, name="generic_dom"),
    ]
