"""
Shelfscan: Price Normalizer

Converts a locale-ambiguous price string ("1.234,56 TL", "$1,234.56",
"12,99") into a canonical non-negative Decimal. Returns Decimal("0") when
nothing parseable is found; zero means "price not found" downstream.

Rules, applied after stripping everything except digits, "." and ",":
- Both separators present: the LAST one is the decimal point, the other
  is a thousands separator.
- Only one kind present: it is a thousands separator when the trailing
  group has exactly 3 digits and the cleaned string is longer than 4
  characters; otherwise it is the decimal point.

The 3-digit rule is an accepted imprecision: "12,345" becomes 12345 even on
a site where it meant 12.345. Do not change it without per-site evidence of
the intended locale.

All values use Decimal, never float.
"""

from __future__ import annotations

import math
import re
from decimal import Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")

_NON_NUMERIC = re.compile(r"[^\d.,]")
_LEADING_NUMBER = re.compile(r"\d+(?:\.\d+)?|\.\d+")
_SHOPIFY_MULTI_DOT = re.compile(r"^\d{1,3}(?:\.\d{3})+\.\d{2}$")
_PRICE_TOKEN = re.compile(r"\d[\d.,]*")


def normalize_price(raw: Any) -> Decimal:
    """
    Normalize an arbitrary price value to a non-negative Decimal.

    Args:
        raw: str, int, float, Decimal or None.

    Returns:
        Decimal price, or Decimal("0") if unparseable.

    Examples:
        >>> normalize_price("1.234,56")
        Decimal('1234.56')
        >>> normalize_price("1,234.56")
        Decimal('1234.56')
        >>> normalize_price("1.234")
        Decimal('1234')
    """
    if raw is None or isinstance(raw, bool):
        return ZERO

    if isinstance(raw, (int, float, Decimal)):
        return _from_number(raw)

    text = str(raw).strip()
    if not text:
        return ZERO

    # Malformed Shopify-style TRY prices like "8.920.00"
    if _SHOPIFY_MULTI_DOT.match(text):
        head, _, cents = text.rpartition(".")
        text = head.replace(".", "") + "." + cents

    cleaned = _NON_NUMERIC.sub("", text)
    if not cleaned:
        return ZERO

    cleaned = _canonicalize_separators(cleaned)

    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        return ZERO
    try:
        value = Decimal(match.group())
    except InvalidOperation:
        return ZERO
    return value if value > ZERO else ZERO


def parse_price_candidates(text: str | None) -> list[Decimal]:
    """
    Extract every positive price-looking token from free text.

    Used where a block of text carries several prices (sale + original),
    e.g. "1.299,00 TL 999,00 TL" -> [Decimal('1299.00'), Decimal('999.00')].
    """
    if not text:
        return []
    prices = []
    for token in _PRICE_TOKEN.findall(text):
        value = normalize_price(token.rstrip(".,"))
        if value > ZERO:
            prices.append(value)
    return prices


def has_digit(text: str | None) -> bool:
    """True when text contains at least one digit."""
    return bool(text) and any(ch.isdigit() for ch in text)


def _from_number(raw: int | float | Decimal) -> Decimal:
    if isinstance(raw, float):
        if math.isnan(raw) or math.isinf(raw):
            return ZERO
        value = Decimal(str(raw))
    elif isinstance(raw, Decimal):
        if not raw.is_finite():
            return ZERO
        value = raw
    else:
        value = Decimal(raw)
    return value if value > ZERO else ZERO


def _canonicalize_separators(cleaned: str) -> str:
    has_comma = "," in cleaned
    has_dot = "." in cleaned

    if has_comma and has_dot:
        if cleaned.rfind(",") > cleaned.rfind("."):
            return cleaned.replace(".", "").replace(",", ".")
        return cleaned.replace(",", "")

    if has_comma:
        return _single_separator(cleaned, ",")

    if has_dot:
        return _single_separator(cleaned, ".")

    return cleaned


def _single_separator(cleaned: str, sep: str) -> str:
    head, _, tail = cleaned.rpartition(sep)
    if len(tail) == 3 and len(cleaned) > 4:
        # Thousands separator
        return cleaned.replace(sep, "")
    # Decimal point; any earlier occurrences are grouping
    return head.replace(sep, "") + "." + tail
