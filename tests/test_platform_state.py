"""
Shelfscan: Platform Global State Mapper Tests

Payloads mirror what the catalog scripts return from window state objects.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from shelfscan.scraper import ExtractionSource
from shelfscan.scraper.context import ScrapeContext
from shelfscan.scraper.platform_state import (
    HM_ARTICLE,
    SHOPIFY,
    TRENDYOL,
    StateSource,
    find_in_tree,
    map_defacto,
    map_hepsiburada,
    map_hm_article,
    map_lcw,
    map_shopify,
    map_ticimax,
    map_trendyol,
    map_zara,
)
from shelfscan.scraper.tiers import PlatformStateTier


class TestShopify:
    def test_minor_units_converted(self) -> None:
        """Integer prices above the threshold are cents."""
        partial = map_shopify({"type": "Elbise", "variants": [{"price": 89900, "name": "Elbise - S"}]}, "")
        assert partial.price == Decimal("899")
        assert partial.title == "Elbise - S"
        assert partial.price_source == ExtractionSource.STRUCTURED_DATA

    def test_string_price_normalized(self) -> None:
        partial = map_shopify({"variants": [{"price": "8.920.00"}], "type": "Saat"}, "")
        assert partial.price == Decimal("8920.00")
        assert partial.title == "Saat"

    def test_no_variants(self) -> None:
        assert map_shopify({"variants": []}, "") is None
        assert map_shopify(None, "") is None


class TestMarketplaces:
    def test_trendyol_winner_variant(self) -> None:
        state = {
            "name": "Spor Ayakkabı",
            "winnerVariant": {"price": {"discountedPrice": {"value": 1499.99}}},
            "variants": [{"price": {"discountedPrice": {"value": 1999.99}}}],
            "images": ["/ty100/product/media/images/1.jpg"],
        }
        partial = map_trendyol(state, "https://www.trendyol.com/marka/urun-p-1")
        assert partial.price == Decimal("1499.99")
        assert partial.image == "https://www.trendyol.com/ty100/product/media/images/1.jpg"

    def test_hepsiburada(self) -> None:
        state = {"name": "Kulaklık", "prices": [{"value": "2.349,00"}], "media": [{"url": "//productimages.hepsiburada.net/k.jpg"}]}
        partial = map_hepsiburada(state, "https://www.hepsiburada.com/p")
        assert partial.price == Decimal("2349.00")
        assert partial.image == "https://productimages.hepsiburada.net/k.jpg"

    def test_ticimax_nested_product(self) -> None:
        partial = map_ticimax({"product": {"indirimliFiyatiStr": "749,90"}, "productName": "Gömlek"}, "")
        assert partial.price == Decimal("749.90")
        assert partial.title == "Gömlek"


class TestLCW:
    def test_cart_default_price(self) -> None:
        state = {
            "cart": {"ProductPricesList": [{"CartPriceValue": 399.99}, {"IsDefault": True, "CartPriceValue": 349.99}]},
            "detail": {"Option": {"Pictures": [{"LargeImage": "//img-lcwaikiki.mncdn.com/mnresize/1200/1800/p.jpg"}]}},
        }
        partial = map_lcw(state, "https://www.lcw.com/p")
        assert partial.price == Decimal("349.99")
        assert partial.image == "https://img-lcwaikiki.mncdn.com/p.jpg"
        assert partial.title == ""

    def test_region_price_fallback(self) -> None:
        state = {"cart": None, "detail": {"Option": {"RegionBasedPriceList": {"TR": [{"DiscountedPrice": "299,99"}]}}}}
        assert map_lcw(state, "").price == Decimal("299.99")


class TestDeFacto:
    def test_campaign_badge_then_data_layer(self) -> None:
        state = {"CampaignBadge": {"DiscountPrice": 0}, "DataLayer": {"DiscountedPrice": "449,99", "Price": "599,99"}}
        assert map_defacto(state, "").price == Decimal("449.99")

    def test_picture_uses_cdn_base(self) -> None:
        state = {"ProductVariantMiniDiscountedPriceInclTax": 199.99, "ProductPictures": [{"ProductPictureName": "a/b.jpg"}]}
        partial = map_defacto(state, "")
        assert partial.price == Decimal("199.99")
        assert partial.image == "https://dfcdn.defacto.com.tr/7/a/b.jpg"


class TestZara:
    def test_product_colors(self) -> None:
        state = {
            "product": {
                "name": "Oversize Ceket",
                "detail": {"colors": [{"price": 299900, "mainImgs": [{"url": "https://static.zara.net/p.jpg"}]}]},
            }
        }
        partial = map_zara(state, "https://www.zara.com/tr/tr/ceket-p03046029.html")
        assert partial.title == "Oversize Ceket"
        assert partial.price == Decimal("2999")
        assert partial.image == "https://static.zara.net/p.jpg"

    def test_tree_search_by_product_id(self) -> None:
        """Without a product node the ID from the URL is searched in the payload tree."""
        state = {"grid": [{"sections": [{"elements": [{"id": 3046029, "name": "Ceket", "price": 159900}]}]}]}
        partial = map_zara(state, "https://www.zara.com/tr/tr/ceket-p03046029.html")
        assert partial.title == "Ceket"
        assert partial.price == Decimal("1599")

    def test_find_in_tree_loose_ids(self) -> None:
        assert find_in_tree({"a": [{"k": "03046029"}]}, "3046029") == {"k": "03046029"}
        assert find_in_tree({"a": [{"id": True}]}, "1") is None


class TestHMArticle:
    def test_article_by_product_id(self) -> None:
        state = {
            "0970819001": {"name": "Wrong"},
            "1234567001": {"name": "Keten Pantolon", "whitePriceValue": "899,99", "images": [{"image": "//lp2.hm.com/a.jpg"}]},
            "articleCode": "1234567001",
        }
        partial = map_hm_article(state, "https://www2.hm.com/tr_tr/productpage.1234567001.html")
        assert partial.title == "Keten Pantolon"
        assert partial.price == Decimal("899.99")
        assert partial.image == "https://lp2.hm.com/a.jpg"

    def test_no_articles(self) -> None:
        assert map_hm_article({"articleCode": "1"}, "") is None


class TestPlatformStateTier:
    @pytest.mark.asyncio
    async def test_reads_applicable_sources(self, make_manager) -> None:
        """Host-bound sources are skipped on other hosts; mapped state is merged."""
        manager = make_manager(
            html="<html></html>",
            evaluations={
                SHOPIFY.script: {"variants": [{"price": "129.90", "name": "Mum"}]},
                TRENDYOL.script: {"name": "never read"},
            },
        )
        async with manager.session() as session:
            ctx = ScrapeContext.for_session("https://mumdukkani.com/products/mum", session)
            partial = await PlatformStateTier((TRENDYOL, SHOPIFY, HM_ARTICLE)).extract(ctx)

        assert partial.title == "Mum"
        assert partial.price == Decimal("129.90")
        evaluated = [script for script, _ in manager.page.evaluated]
        assert evaluated == [SHOPIFY.script]

    @pytest.mark.asyncio
    async def test_failing_mapper_is_skipped(self, make_manager) -> None:
        """A mapper error skips that source; later sources still run."""

        def _broken(state, page_url):
            raise KeyError("variants")

        broken = StateSource("broken", "() => window.__BROKEN__", _broken)
        manager = make_manager(
            evaluations={
                broken.script: {"unexpected": True},
                SHOPIFY.script: {"variants": [{"price": "10,00", "name": "Kupa"}]},
            }
        )
        async with manager.session() as session:
            ctx = ScrapeContext.for_session("https://a.com/products/x", session)
            partial = await PlatformStateTier((broken, SHOPIFY)).extract(ctx)
        assert partial.price == Decimal("10.00")
