"""
Shelfscan: Strategy Dispatcher

Maps a URL to the extraction strategy for its site. The hostname is matched
by substring against an ordered table; the first match wins and anything
unmatched (or unparseable) goes to GenericStrategy.
"""

from __future__ import annotations

import structlog

from shelfscan.scraper.strategies import (
    AmazonStrategy,
    BeymenStrategy,
    DeFactoStrategy,
    GenericStrategy,
    HMStrategy,
    LCWStrategy,
    MangoStrategy,
    MaviStrategy,
    Strategy,
    TrendyolStrategy,
    ZaraStrategy,
)
from shelfscan.utils.url import normalize_hostname

logger = structlog.get_logger(__name__)

# Order matters: first matching fragment wins
STRATEGY_TABLE: tuple[tuple[str, type[Strategy]], ...] = (
    ("beymen.com", BeymenStrategy),
    ("mango.com", MangoStrategy),
    ("hm.com", HMStrategy),
    ("mavi.com", MaviStrategy),
    ("zara.com", ZaraStrategy),
    ("amazon.", AmazonStrategy),
    ("amzn.", AmazonStrategy),
    ("trendyol.com", TrendyolStrategy),
    ("lcw.com", LCWStrategy),
    ("lcwaikiki.com", LCWStrategy),
    ("defacto.com", DeFactoStrategy),
)


def strategy_class_for(url: str) -> type[Strategy]:
    host = normalize_hostname(url)
    if host:
        for fragment, strategy_class in STRATEGY_TABLE:
            if fragment in host:
                return strategy_class
    return GenericStrategy


def get_strategy(url: str) -> Strategy:
    """Fresh strategy instance for url."""
    strategy = strategy_class_for(url)()
    logger.debug("strategy_selected", url=url, strategy=type(strategy).__name__, source="dispatcher")
    return strategy


__all__ = ["STRATEGY_TABLE", "get_strategy", "normalize_hostname", "strategy_class_for"]
