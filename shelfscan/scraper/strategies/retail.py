"""
Shelfscan: Fashion Retailer Strategies

Zara, Mango and Beymen render their product pages client-side. They run
the generic tier chain and only differ in which hydration selectors they
wait for and, for Zara, which platform state they read.
"""

from __future__ import annotations

from shelfscan.scraper.platform_state import ZARA
from shelfscan.scraper.strategies.generic import GenericStrategy


class ZaraStrategy(GenericStrategy):
    label = "Zara"
    wait_selectors = ("h1", "h2", ".price__amount")
    wait_timeout_ms = 5000
    state_sources = (ZARA,)


class MangoStrategy(GenericStrategy):
    label = "Mango"
    wait_selectors = ("h1", ".product-features-prices__price")
    wait_timeout_ms = 10000
    state_sources = ()


class BeymenStrategy(GenericStrategy):
    label = "Beymen"
    wait_selectors = ("h1", ".o-productDetail__title")
    wait_timeout_ms = 15000
    state_sources = ()
