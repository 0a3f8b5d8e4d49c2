"""Shelfscan: Site Strategies"""

from shelfscan.scraper.strategies.amazon import AmazonStrategy
from shelfscan.scraper.strategies.base import Strategy
from shelfscan.scraper.strategies.generic import GenericStrategy
from shelfscan.scraper.strategies.hm import HMStrategy
from shelfscan.scraper.strategies.marketplaces import DeFactoStrategy, LCWStrategy, TrendyolStrategy
from shelfscan.scraper.strategies.mavi import MaviStrategy
from shelfscan.scraper.strategies.retail import BeymenStrategy, MangoStrategy, ZaraStrategy

__all__ = [
    "AmazonStrategy",
    "BeymenStrategy",
    "DeFactoStrategy",
    "GenericStrategy",
    "HMStrategy",
    "LCWStrategy",
    "MangoStrategy",
    "MaviStrategy",
    "Strategy",
    "TrendyolStrategy",
    "ZaraStrategy",
]
