"""
Shelfscan: Image URL Resolver

Turns whatever a page exposes as "the product image" into one absolute
HTTPS URL pointing at the original (un-resized) asset.

Accepted inputs:
- str: absolute, protocol-relative ("//cdn/x.jpg"), site-relative ("/x.jpg"
  or "x.jpg") or malformed Shopify-style ("https:cdn/shop/x.jpg")
- list: first usable element
- dict: schema.org ImageObject-like, via contentUrl / url / image

Returns "" when nothing usable is found; image_or_placeholder() applies the
placeholder constant.
"""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import urljoin, urlparse

from shelfscan.config import settings

PLACEHOLDER_IMAGE = settings.PLACEHOLDER_IMAGE_URL

# Ordered (pattern, replacement) pairs that strip CDN resize directives
_CDN_RESIZE_RULES: list[tuple[re.Pattern[str], str]] = [
    # Mavi: /mnresize/1200/1800/  ->  /
    (re.compile(r"/mnresize/\d+/\d+/"), "/"),
    # Generic: /resize/600/800/  ->  /
    (re.compile(r"/resize/\d+/\d+/"), "/"),
    # Amazon: ._AC_SX679_.jpg / ._SY300_.jpg / ._SL1500_.jpg  ->  .jpg
    (re.compile(r"\._(?:AC|SX|SY|SL|SS|UX|UY|US)[A-Z0-9_,]*_?\.(?=[a-z]{3,4}(?:$|\?))"), "."),
]

_SIZE_TEMPLATE = "{size}"
_SIZE_TEMPLATE_VALUE = "1500"


def resolve_image_url(raw: Any, base_url: str | None = None) -> str:
    """
    Canonicalize an image reference to an absolute HTTPS URL.

    Args:
        raw: str, list, or dict image reference.
        base_url: Page URL used to resolve site-relative paths.

    Returns:
        Absolute HTTPS URL, or "" if unresolvable.

    Examples:
        >>> resolve_image_url("//cdn.example.com/x.jpg")
        'https://cdn.example.com/x.jpg'
        >>> resolve_image_url("http://a.com/x.jpg")
        'https://a.com/x.jpg'
    """
    url = _unwrap(raw)
    if not url:
        return ""

    url = url.strip()
    if not url or url.startswith("#") or "/#" in url or url.startswith("data:"):
        return ""

    url = url.replace(_SIZE_TEMPLATE, _SIZE_TEMPLATE_VALUE)

    if url.startswith("//"):
        url = "https:" + url
    elif url.startswith("http://"):
        url = "https://" + url[len("http://"):]
    elif url.startswith("https:") and not url.startswith("https://"):
        # "https:cdn/shop/files/x.jpg" has lost its host
        origin = _origin(base_url)
        if not origin:
            return ""
        url = origin + "/" + url[len("https:"):].lstrip("/")
    elif not url.startswith("https://"):
        if re.match(r"^[a-zA-Z][a-zA-Z0-9+.-]*:", url):
            # Other schemes (blob:, javascript:) are never product images
            return ""
        origin = _origin(base_url)
        if not origin:
            return ""
        url = urljoin(origin + "/", url)
        if url.startswith("http://"):
            url = "https://" + url[len("http://"):]

    return strip_cdn_resize(url)


def strip_cdn_resize(url: str) -> str:
    """Remove known CDN resize path segments to request the original asset."""
    for pattern, replacement in _CDN_RESIZE_RULES:
        url = pattern.sub(replacement, url)
    return url


def image_or_placeholder(url: str | None) -> str:
    """Return url if set, else the placeholder image."""
    return url or PLACEHOLDER_IMAGE


def is_placeholder(url: str | None) -> bool:
    return not url or url == PLACEHOLDER_IMAGE or "placehold.co" in url


def _unwrap(raw: Any) -> str:
    """Reduce a list/dict image reference to a single string."""
    for _ in range(4):  # ImageObject nesting is shallow in practice
        if isinstance(raw, str):
            return raw
        if isinstance(raw, (list, tuple)):
            raw = next((item for item in raw if item), None)
            continue
        if isinstance(raw, dict):
            raw = raw.get("contentUrl") or raw.get("url") or raw.get("image")
            continue
        return ""
    return raw if isinstance(raw, str) else ""


def _origin(base_url: str | None) -> str:
    if not base_url:
        return ""
    parsed = urlparse(base_url if "://" in base_url else "https://" + base_url)
    if not parsed.netloc:
        return ""
    return f"https://{parsed.netloc}"
