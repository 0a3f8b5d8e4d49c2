"""Shelfscan: Scraper Layer (result models)"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from shelfscan.config import settings


class ExtractionSource(str, Enum):
    """Which tier produced the final price."""
    STRUCTURED_DATA = "structured-data"  # JSON-LD and platform global state
    METADATA = "metadata"
    DOM_SELECTOR = "dom-selector"
    REGEX_RECOVERY = "regex-recovery"
    MANUAL = "manual"                    # Nothing usable, needs manual review


class ScrapedData(BaseModel):
    """Normalized product record returned for every scrape call."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=False)

    title: str = ""
    price: Decimal = Field(default=Decimal("0"), ge=0)
    currency: str = settings.DEFAULT_CURRENCY
    image: str = settings.PLACEHOLDER_IMAGE_URL
    description: str = ""
    in_stock: bool = Field(default=True, alias="inStock")
    source: ExtractionSource = ExtractionSource.MANUAL
    error: str | None = None

    @property
    def is_degraded(self) -> bool:
        """True when the caller should route this record to manual review."""
        return self.price == 0 or self.source == ExtractionSource.MANUAL

    def to_public_dict(self) -> dict:
        """camelCase JSON-ready dict (price as string to keep precision)."""
        data = self.model_dump(by_alias=True, mode="json")
        data["price"] = str(self.price)
        return data


@dataclass
class PartialProduct:
    """
    Fields found by a single extraction tier.

    price is already normalized and image already resolved; a field counts as
    populated when it is non-empty (price > 0).
    """
    title: str = ""
    price: Decimal = Decimal("0")
    image: str = ""
    currency: str = ""
    in_stock: bool | None = None  # None: no stock signal seen
    price_source: ExtractionSource | None = None
    title_source: ExtractionSource | None = None

    def is_complete(self) -> bool:
        return bool(self.title) and self.price > 0 and bool(self.image)

    def missing(self) -> list[str]:
        fields = []
        if not self.title:
            fields.append("title")
        if self.price <= 0:
            fields.append("price")
        if not self.image:
            fields.append("image")
        return fields

    def merge(self, other: PartialProduct | None) -> PartialProduct:
        """Fill empty fields from other; never overwrite populated ones."""
        if other is None:
            return self
        if not self.title and other.title:
            self.title = other.title
            self.title_source = other.title_source
        if self.price <= 0 and other.price > 0:
            self.price = other.price
            self.price_source = other.price_source
            # Currency travels with the price that carried it
            if other.currency:
                self.currency = other.currency
        if not self.image and other.image:
            self.image = other.image
        if not self.currency and other.currency:
            self.currency = other.currency
        if other.in_stock is False:
            self.in_stock = False
        elif self.in_stock is None and other.in_stock is not None:
            self.in_stock = other.in_stock
        return self
