"""Shelfscan: Strategy Dispatcher & Site Rule Lookup Tests"""

from __future__ import annotations

import pytest

from shelfscan.scraper.context import PageSnapshot
from shelfscan.scraper.dispatcher import get_strategy, strategy_class_for
from shelfscan.scraper.site_rules import find_rule
from shelfscan.scraper.strategies import (
    AmazonStrategy,
    BeymenStrategy,
    DeFactoStrategy,
    GenericStrategy,
    HMStrategy,
    LCWStrategy,
    MangoStrategy,
    MaviStrategy,
    TrendyolStrategy,
    ZaraStrategy,
)


class TestGetStrategy:
    @pytest.mark.parametrize(
        "url, expected",
        [
            ("https://www.beymen.com/p/123", BeymenStrategy),
            ("https://shop.mango.com/tr/kadin/elbise_1.html", MangoStrategy),
            ("https://www2.hm.com/tr_tr/productpage.1234567001.html", HMStrategy),
            ("https://www.mavi.com/jean/p/0035", MaviStrategy),
            ("https://www.zara.com/tr/tr/ceket-p03046029.html", ZaraStrategy),
            ("https://www.amazon.com.tr/dp/B0TEST", AmazonStrategy),
            ("https://amzn.eu/d/abc", AmazonStrategy),
            ("https://www.trendyol.com/marka/urun-p-1", TrendyolStrategy),
            ("https://www.lcw.com/urun", LCWStrategy),
            ("https://www.lcwaikiki.com/tr-TR/TR/urun", LCWStrategy),
            ("https://www.defacto.com.tr/urun", DeFactoStrategy),
            ("https://www.hepsiburada.com/urun-p-HB1", GenericStrategy),
            ("trendyol.com/marka/urun-p-1", TrendyolStrategy),
        ],
    )
    def test_table(self, url: str, expected: type) -> None:
        assert type(get_strategy(url)) is expected

    def test_malformed_url_is_generic(self) -> None:
        assert strategy_class_for("not a url") is GenericStrategy
        assert strategy_class_for("") is GenericStrategy

    def test_fresh_instance_per_call(self) -> None:
        url = "https://www.zara.com/tr/tr/x-p1.html"
        assert get_strategy(url) is not get_strategy(url)


class TestFindRule:
    def test_host_match(self) -> None:
        assert find_rule("dr.com.tr").name == "dr"
        assert find_rule("vitaminler.com").name == "supplementler"

    def test_marker_match(self) -> None:
        snapshot = PageSnapshot('<div class="TicimaxRuntime"></div>')
        assert find_rule("baska-magaza.com", snapshot).name == "ticimax"

    def test_no_match(self) -> None:
        assert find_rule("example.org", PageSnapshot("<p></p>")) is None
