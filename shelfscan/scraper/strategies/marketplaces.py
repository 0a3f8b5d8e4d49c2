"""
Shelfscan: Turkish Marketplace Strategies

Trendyol, LC Waikiki and DeFacto expose the product (with the price the
shopper actually pays) in a page-global state object, which is read before
JSON-LD and the DOM.
"""

from __future__ import annotations

from shelfscan.scraper.platform_state import DEFACTO, LCW, TRENDYOL
from shelfscan.scraper.strategies.generic import GenericStrategy


class TrendyolStrategy(GenericStrategy):
    label = "Trendyol"
    state_sources = (TRENDYOL,)


class LCWStrategy(GenericStrategy):
    label = "LCW"
    state_sources = (LCW,)


class DeFactoStrategy(GenericStrategy):
    label = "DeFacto"
    state_sources = (DEFACTO,)
