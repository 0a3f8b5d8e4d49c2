"""
Shelfscan: Result Assembler

Finalizes whatever the tier chain found into a public ScrapedData record:
price normalized, image canonicalized (placeholder when missing), currency
and stock defaulted, source taken from the tier that produced the price and
a descriptive error when no usable price was found.
"""

from __future__ import annotations

import re

import structlog

from shelfscan.config import settings
from shelfscan.scraper import ExtractionSource, PartialProduct, ScrapedData
from shelfscan.utils.image_url import image_or_placeholder, resolve_image_url
from shelfscan.utils.price import ZERO, normalize_price

logger = structlog.get_logger(__name__)

ERROR_IMAGE_URL = "https://placehold.co/600x600?text=Error"
ERROR_TITLE = "Hata"
ERROR_DESCRIPTION = "Ürün bilgileri alınamadı."

_CURRENCY_CODE = re.compile(r"^[A-Z]{3}$")


def assemble(
    partial: PartialProduct,
    url: str,
    *,
    default_currency: str | None = None,
    label: str = "",
    error: str | None = None,
    description: str = "",
) -> ScrapedData:
    """
    Build the final record from merged tier findings.

    Args:
        partial: Merged PartialProduct from the tier chain.
        url: Page URL, used to resolve relative image paths.
        default_currency: Currency when no tier reported one.
        label: Site label used in the "price not found" message.
        error: Explicit error message; overrides the derived one.
        description: Optional description text.
    """
    price = normalize_price(partial.price)
    currency = (partial.currency or "").strip().upper()
    if not _CURRENCY_CODE.match(currency):
        currency = (default_currency or settings.DEFAULT_CURRENCY).upper()

    source = partial.price_source if price > ZERO and partial.price_source else ExtractionSource.MANUAL
    if price <= ZERO and error is None:
        error = f"{label} Price not found".strip() if label else "Price not found"

    record = ScrapedData(
        title=" ".join((partial.title or "").split()),
        price=price,
        currency=currency,
        image=image_or_placeholder(resolve_image_url(partial.image, url)),
        description=description,
        in_stock=partial.in_stock if partial.in_stock is not None else True,
        source=source,
        error=error,
    )
    logger.debug(
        "result_assembled",
        url=url,
        price=str(record.price),
        result_source=record.source.value,
        degraded=record.is_degraded,
        source="assembler",
    )
    return record


def fail_result(
    message: str = "Unknown error",
    *,
    title: str = "",
    image: str | None = None,
    description: str = "",
    currency: str | None = None,
) -> ScrapedData:
    """Degraded record for a scrape that produced nothing usable."""
    return ScrapedData(
        title=title,
        price=ZERO,
        currency=currency or settings.DEFAULT_CURRENCY,
        image=image or settings.PLACEHOLDER_IMAGE_URL,
        description=description,
        in_stock=True,
        source=ExtractionSource.MANUAL,
        error=message,
    )


def error_result(message: str) -> ScrapedData:
    """Record returned when the pipeline itself failed unexpectedly."""
    return fail_result(message, title=ERROR_TITLE, image=ERROR_IMAGE_URL, description=ERROR_DESCRIPTION)
