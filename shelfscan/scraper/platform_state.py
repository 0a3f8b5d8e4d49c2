"""
Shelfscan: Platform Global State Mappers

Storefront platforms hydrate their product pages from client-side state
objects. The catalog scripts in scripts.py copy those objects out of the page
as plain JSON; the mappers below turn that JSON into a PartialProduct.

Mappers are pure functions of (state, page_url) so they can be tested with
captured payloads and no browser.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable

from shelfscan.scraper import ExtractionSource, PartialProduct
from shelfscan.scraper import scripts
from shelfscan.utils.image_url import resolve_image_url
from shelfscan.utils.price import ZERO, normalize_price

StateMapper = Callable[[Any, str], "PartialProduct | None"]

# Shopify variant prices above this are integer minor units (cents)
SHOPIFY_MINOR_UNIT_THRESHOLD = 1000
DEFACTO_IMAGE_BASE = "https://dfcdn.defacto.com.tr/7/"

_ZARA_PRODUCT_ID = re.compile(r"-p(\d+)\.html")
_HM_PRODUCT_ID = re.compile(r"productpage\.(\d+)\.html")
_TREE_SEARCH_MAX_DEPTH = 12


@dataclass(frozen=True)
class StateSource:
    """A client-side state object: the script reading it and its mapper."""
    name: str
    script: str
    mapper: StateMapper
    hosts: tuple[str, ...] = ()  # empty: try on every host

    def applies_to(self, host: str) -> bool:
        return not self.hosts or any(fragment in host for fragment in self.hosts)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _first(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _dig(obj: Any, *path: str | int) -> Any:
    """Follow dict keys / list indexes; None as soon as a step is missing."""
    for step in path:
        if isinstance(step, int):
            if not isinstance(obj, list) or len(obj) <= step:
                return None
            obj = obj[step]
        else:
            if not isinstance(obj, dict):
                return None
            obj = obj.get(step)
        if obj is None:
            return None
    return obj


def _positive(value: Any) -> Decimal:
    return normalize_price(value) if value not in (None, "") else ZERO


def _minor_units(value: Any) -> Decimal:
    """Integer cents to a Decimal amount."""
    amount = _positive(value)
    return amount / 100 if amount > ZERO else ZERO


def _partial(title: Any = "", price: Decimal = ZERO, image: str = "", in_stock: bool | None = None) -> PartialProduct:
    return PartialProduct(
        title=str(title).strip() if title else "",
        price=price,
        image=image,
        in_stock=in_stock,
        price_source=ExtractionSource.STRUCTURED_DATA if price > ZERO else None,
        title_source=ExtractionSource.STRUCTURED_DATA if title else None,
    )


def _same_id(value: Any, target: str) -> bool:
    """Loose id equality: "03046029" matches 3046029."""
    if isinstance(value, bool) or value is None:
        return False
    if isinstance(value, int):
        return target.isdigit() and value == int(target)
    if isinstance(value, str):
        if value == target:
            return True
        return value.isdigit() and target.isdigit() and int(value) == int(target)
    return False


def find_in_tree(obj: Any, target_id: str, depth: int = 0) -> dict | None:
    """Depth-first search for the node whose id, k or catentryId equals target_id."""
    if depth > _TREE_SEARCH_MAX_DEPTH:
        return None
    if isinstance(obj, dict):
        if any(_same_id(obj.get(key), target_id) for key in ("id", "k", "catentryId")):
            return obj
        children = obj.values()
    elif isinstance(obj, list):
        children = obj
    else:
        return None
    for child in children:
        found = find_in_tree(child, target_id, depth + 1)
        if found is not None:
            return found
    return None


# ---------------------------------------------------------------------------
# Mappers
# ---------------------------------------------------------------------------


def map_shopify(state: Any, page_url: str) -> PartialProduct | None:
    variant = _dig(state, "variants", 0)
    if not isinstance(state, dict) or not isinstance(variant, dict):
        return None
    raw = variant.get("price")
    if isinstance(raw, (int, float)) and not isinstance(raw, bool) and raw > SHOPIFY_MINOR_UNIT_THRESHOLD:
        price = _minor_units(raw)
    else:
        price = _positive(raw)
    return _partial(title=variant.get("name") or state.get("type"), price=price)


def map_trendyol(state: Any, page_url: str) -> PartialProduct | None:
    if not isinstance(state, dict):
        return None
    variant = state.get("winnerVariant") or _dig(state, "variants", 0)
    price = _positive(_dig(variant, "price", "discountedPrice", "value"))
    image = resolve_image_url(_first(state.get("images")), page_url)
    return _partial(title=state.get("name"), price=price, image=image)


def map_hepsiburada(state: Any, page_url: str) -> PartialProduct | None:
    if not isinstance(state, dict):
        return None
    price = _positive(_dig(state, "prices", 0, "value"))
    image = resolve_image_url(_dig(state, "media", 0, "url"), page_url)
    return _partial(title=state.get("name"), price=price, image=image)


def map_ticimax(state: Any, page_url: str) -> PartialProduct | None:
    if not isinstance(state, dict):
        return None
    raw = _dig(state, "product", "indirimliFiyatiStr") or state.get("indirimliFiyatiStr")
    return _partial(title=state.get("productName"), price=_positive(raw))


def map_lcw(state: Any, page_url: str) -> PartialProduct | None:
    if not isinstance(state, dict):
        return None
    cart = state.get("cart") or {}
    detail = state.get("detail") or {}

    price = ZERO
    prices = cart.get("ProductPricesList") if isinstance(cart, dict) else None
    if isinstance(prices, list) and prices:
        entry = next((p for p in prices if isinstance(p, dict) and p.get("IsDefault")), prices[0])
        if isinstance(entry, dict):
            price = _positive(entry.get("CartPriceValue")) or _positive(entry.get("CartPrice"))

    if price <= ZERO:
        regional = _dig(detail, "Option", "RegionBasedPriceList")
        if isinstance(regional, dict):
            regional = next(iter(regional.values()), None)
        regional = _first(regional)
        if isinstance(regional, dict):
            price = _positive(regional.get("DiscountedPrice")) or _positive(regional.get("Price"))

    image = ""
    pictures = _dig(detail, "Option", "Pictures")
    if isinstance(pictures, list) and pictures:
        picture = next((p for p in pictures if isinstance(p, dict) and p.get("IsDefault")), pictures[0])
        if isinstance(picture, dict):
            image = resolve_image_url(picture.get("LargeImage") or picture.get("MediumImage"), page_url)
    if not image:
        image = resolve_image_url(_dig(detail, "ModelInfo", "OptionImageUrlList", 0), page_url)

    return _partial(price=price, image=image)


def map_defacto(state: Any, page_url: str) -> PartialProduct | None:
    if not isinstance(state, dict):
        return None
    price = _positive(_dig(state, "CampaignBadge", "DiscountPrice"))
    data_layer = state.get("DataLayer") or {}
    for key in ("CampaignDiscountedPrice", "DiscountedPrice", "Price"):
        if price > ZERO:
            break
        price = _positive(data_layer.get(key)) if isinstance(data_layer, dict) else ZERO
    if price <= ZERO:
        price = _positive(state.get("ProductVariantMiniDiscountedPriceInclTax"))

    filename = _dig(state, "ProductPictures", 0, "ProductPictureName")
    image = resolve_image_url(DEFACTO_IMAGE_BASE + filename, page_url) if filename else ""
    return _partial(price=price, image=image)


def _zara_from_product(product: dict, page_url: str) -> PartialProduct:
    color = _dig(product, "detail", "colors", 0)
    price = ZERO
    image = ""
    if isinstance(color, dict):
        price = _minor_units(color.get("price"))
        image = resolve_image_url(_dig(color, "mainImgs", 0, "url"), page_url)
    elif product.get("price") is not None:
        price = _minor_units(product.get("price"))
    return _partial(title=product.get("name") or product.get("title"), price=price, image=image)


def map_zara(state: Any, page_url: str) -> PartialProduct | None:
    if not isinstance(state, dict):
        return None
    result = PartialProduct()
    product = state.get("product")
    if isinstance(product, dict):
        result.merge(_zara_from_product(product, page_url))

    match = _ZARA_PRODUCT_ID.search(page_url or "")
    if match and not result.is_complete():
        found = find_in_tree(state, match.group(1))
        if found is not None:
            result.merge(_zara_from_product(found, page_url))
    return result


def map_hm_article(state: Any, page_url: str) -> PartialProduct | None:
    if not isinstance(state, dict):
        return None
    articles = {key: value for key, value in state.items() if isinstance(value, dict)}
    if not articles:
        return None
    match = _HM_PRODUCT_ID.search(page_url or "")
    article = articles.get(match.group(1)) if match else None
    if article is None:
        article = next(iter(articles.values()))
    price = _positive(article.get("whitePriceValue")) or _positive(article.get("priceValue"))
    image = resolve_image_url(_dig(article, "images", 0, "url") or _dig(article, "images", 0, "image"), page_url)
    return _partial(title=article.get("name") or article.get("title"), price=price, image=image)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

SHOPIFY = StateSource("shopify", scripts.SHOPIFY_STATE, map_shopify)
TRENDYOL = StateSource("trendyol", scripts.TRENDYOL_STATE, map_trendyol, hosts=("trendyol",))
HEPSIBURADA = StateSource("hepsiburada", scripts.HEPSIBURADA_STATE, map_hepsiburada, hosts=("hepsiburada",))
TICIMAX = StateSource("ticimax", scripts.TICIMAX_STATE, map_ticimax)
LCW = StateSource("lcw", scripts.LCW_STATE, map_lcw, hosts=("lcw",))
DEFACTO = StateSource("defacto", scripts.DEFACTO_STATE, map_defacto, hosts=("defacto",))
ZARA = StateSource("zara", scripts.ZARA_STATE, map_zara, hosts=("zara",))
HM_ARTICLE = StateSource("hm_article", scripts.HM_ARTICLE_STATE, map_hm_article, hosts=("hm.com",))

# Sources the generic chain tries on any host
DEFAULT_STATE_SOURCES: tuple[StateSource, ...] = (SHOPIFY, TRENDYOL, HEPSIBURADA, TICIMAX)
