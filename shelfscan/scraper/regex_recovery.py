"""
Shelfscan: Raw-HTML Regex Recovery

Last-resort extraction over the raw page source, used only when the DOM tiers
left the price or the image empty. Patterns are ordered by confidence; the
first one producing a positive price wins. Image candidates come from known
product CDNs and the highest-resolution one is kept.
"""

from __future__ import annotations

import html as html_lib
import re
from decimal import Decimal

from shelfscan.scraper import ExtractionSource, PartialProduct
from shelfscan.utils.image_url import resolve_image_url
from shelfscan.utils.price import ZERO, normalize_price

# Most to least specific
PRICE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r'"price"\s*:\s*"?(\d[\d.,]*)'),
    re.compile(r'data-price="(\d[\d.,]*)"'),
    re.compile(r'itemprop="price"\s+content="(\d[\d.,]*)"'),
    re.compile(r'content="(\d[\d.,]*)"\s+itemprop="price"'),
    re.compile(r"(\d{1,3}(?:\.\d{3})*,\d{2})\s?TL"),
)

_URL_TAIL = r"[^\"'\s<>()\\]+?\.(?:jpe?g|png|webp|avif)(?:\?[^\"'\s<>()\\]*)?"

IMAGE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(?:https?:)?//(?:hbimg|productimages)\.hepsiburada\.net/" + _URL_TAIL),
    re.compile(r"https?://m\.media-amazon\.com/images/I/" + _URL_TAIL),
    re.compile(r"(?:https?:)?//sky-static\.mavi\.com/" + _URL_TAIL),
    re.compile(r"(?:https?:)?//dfcdn\.defacto\.com\.tr/" + _URL_TAIL),
    re.compile(r"(?:https?:)?//img-lcwaikiki\.mncdn\.com/" + _URL_TAIL),
    re.compile(r"(?:https?:)?//cdn\.dsmcdn\.com/" + _URL_TAIL),
    re.compile(r"(?:https?:)?//static\.zara\.net/" + _URL_TAIL),
    re.compile(r"(?:https?:)?//cdn\.shopify\.com/s/files/" + _URL_TAIL),
    re.compile(r"(?:https?:)?//[\w.-]+/cdn/shop/(?:files|products)/" + _URL_TAIL),
)

_RESOLUTION_HINT = re.compile(
    r"(?:_(?:SX|SY|SL|UX|UY|SS)|[?&](?:w|width|wid)=|/mnresize/|/resize/|/)(\d{3,4})(?=[_/&x.,]|$)"
)

_OG_TITLE = (
    re.compile(r"<meta[^>]+property=[\"']og:title[\"'][^>]+content=[\"']([^\"']+)[\"']", re.IGNORECASE),
    re.compile(r"<meta[^>]+content=[\"']([^\"']+)[\"'][^>]+property=[\"']og:title[\"']", re.IGNORECASE),
)
_TITLE_TAG = re.compile(r"<title[^>]*>(.*?)</title>", re.IGNORECASE | re.DOTALL)


def recover_price(html: str) -> Decimal:
    """First positive price found by the ordered patterns, else 0."""
    for pattern in PRICE_PATTERNS:
        for match in pattern.finditer(html):
            value = normalize_price(match.group(1).rstrip(".,"))
            if value > ZERO:
                return value
    return ZERO


def resolution_hint(url: str) -> int:
    """Largest width/height hint embedded in a CDN URL (0 when none)."""
    hints = [int(value) for value in _RESOLUTION_HINT.findall(url)]
    return max(hints, default=0)


def recover_image(html: str, base_url: str | None = None) -> str:
    """Highest-resolution product CDN image referenced anywhere in the source."""
    source = _unescape_json_slashes(html)
    best = ""
    best_score = -1
    for pattern in IMAGE_PATTERNS:
        for match in pattern.finditer(source):
            candidate = match.group(0)
            score = resolution_hint(candidate)
            if score > best_score:
                best, best_score = candidate, score
    return resolve_image_url(best, base_url) if best else ""


def recover_title(html: str) -> str:
    for pattern in _OG_TITLE:
        match = pattern.search(html)
        if match:
            return _clean_text(match.group(1))
    match = _TITLE_TAG.search(html)
    return _clean_text(match.group(1)) if match else ""


def recover(html: str, base_url: str | None = None) -> PartialProduct:
    """Run every recovery pattern over the raw HTML."""
    if not html:
        return PartialProduct()
    price = recover_price(html)
    title = recover_title(html)
    return PartialProduct(
        title=title,
        price=price,
        image=recover_image(html, base_url),
        price_source=ExtractionSource.REGEX_RECOVERY if price > ZERO else None,
        title_source=ExtractionSource.REGEX_RECOVERY if title else None,
    )


def _unescape_json_slashes(html: str) -> str:
    return html.replace("\\u002F", "/").replace("\\/", "/")


def _clean_text(value: str) -> str:
    return " ".join(html_lib.unescape(value).split())
