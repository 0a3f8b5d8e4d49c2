"""
Shelfscan: Site Strategy Tests

Strategies run against FakeManager (tests/conftest.py): a real
BrowserSession over a fake Playwright page, so navigation, script
evaluation and snapshots follow the production code paths without a browser.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from shelfscan.scraper import ExtractionSource, scripts
from shelfscan.scraper.anti_detect import DEFAULT_PROFILE, EvasionProfile
from shelfscan.scraper.errors import BrowserLaunchError, SiteBlockedError
from shelfscan.scraper.strategies import (
    AmazonStrategy,
    GenericStrategy,
    HMStrategy,
    MaviStrategy,
    TrendyolStrategy,
    ZaraStrategy,
)
from shelfscan.scraper.strategies.amazon import AMAZON_PROFILE, SPLASH_BUTTON_LABELS, best_dynamic_image
from shelfscan.scraper.strategies.generic import GENERIC_PROFILE
from shelfscan.scraper.strategies.hm import parse_product_id, parse_region, regions_to_try
from shelfscan.scraper.strategies.mavi import MAVI_PROFILE


class _FailingManager:
    @asynccontextmanager
    async def session(self, profile: EvasionProfile = DEFAULT_PROFILE):
        raise BrowserLaunchError("Browser launch failed: no chromium")
        yield


AMAZON_HTML = """
<html>
<head><title>Amazon.com.tr: Kablosuz Kulaklık</title></head>
<body>
  <span id="productTitle">  Kablosuz Kulaklık  </span>
  <div id="corePriceDisplay_desktop_feature_div">
    <span class="a-price"><span class="a-offscreen">1.499,00 TL</span></span>
  </div>
  <div id="imgTagWrapperId">
    <img id="landingImage" src="https://m.media-amazon.com/images/I/61x._AC_SX300_.jpg"
         data-a-dynamic-image='{"https://m.media-amazon.com/images/I/61x._AC_SX300_.jpg":[300,300],"https://m.media-amazon.com/images/I/61x._AC_SL1500_.jpg":[1500,1500]}'>
  </div>
  <div id="availability"><span>Stokta var.</span></div>
</body>
</html>
"""

HM_URL = "https://www2.hm.com/tr_tr/productpage.1234567001.html"
HM_DENIED_HTML = "<html><head><title>Access Denied</title></head><body></body></html>"

MAVI_URL = "https://www.mavi.com/jean/p/0035"
MAVI_HTML = """
<html>
<head><title>Slim Jean | Mavi</title></head>
<body>
  <h1 class="product__title">Slim Jean</h1>
  <span class="product__price">1.299,99 TL</span>
  <div class="product__gallery"><img src="https://sky-static.mavi.com/mnresize/820/1162/jean.jpg"></div>
</body>
</html>
"""


# ---------------------------------------------------------------------------
# GenericStrategy
# ---------------------------------------------------------------------------


class TestGenericStrategy:
    @pytest.mark.asyncio
    async def test_structured_data_page(self, make_manager, json_ld_product_html: str) -> None:
        manager = make_manager(html=json_ld_product_html)
        record = await GenericStrategy().scrape("https://example-shop.com/p/1", manager)

        assert record.title == "Koşu Ayakkabısı"
        assert record.price == Decimal("1299.90")
        assert record.currency == "TRY"
        assert record.image == "https://cdn.example-shop.com/img/1.jpg"
        assert record.source == ExtractionSource.STRUCTURED_DATA
        assert record.error is None
        assert manager.profiles == [GENERIC_PROFILE]
        assert manager.sessions_closed == 1

    @pytest.mark.asyncio
    async def test_invalid_url_never_launches(self, make_manager) -> None:
        manager = make_manager()
        record = await GenericStrategy().scrape("not a url", manager)
        assert record.error == "Invalid URL format"
        assert manager.sessions_opened == 0

    @pytest.mark.asyncio
    async def test_challenge_page_is_degraded(self, make_manager, challenge_html: str) -> None:
        """A bot wall on a generic site is reflected on the record, not raised."""
        manager = make_manager(html=challenge_html)
        record = await GenericStrategy().scrape("https://example-shop.com/p/1", manager)

        assert record.price == Decimal("0")
        assert record.title == ""
        assert record.source == ExtractionSource.MANUAL
        assert record.error == "Blocked by anti-bot protection (just a moment)"

    @pytest.mark.asyncio
    async def test_priceless_product_title_kept(self, make_manager) -> None:
        """A product named after a bot vendor keeps its title when no price is found."""
        html = "<html><head><title>Captcha Blocked Cloudflare Tişört</title></head><body></body></html>"
        record = await GenericStrategy().scrape("https://example-shop.com/p/1", make_manager(html=html))

        assert record.title == "Captcha Blocked Cloudflare Tişört"
        assert record.error == "Price not found"

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_record(self, make_manager) -> None:
        manager = make_manager(html="<html></html>")
        manager.page.content = AsyncMock(side_effect=RuntimeError("renderer crashed"))
        record = await GenericStrategy().scrape("https://example-shop.com/p/1", manager)

        assert record.error == "renderer crashed"
        assert record.price == Decimal("0")
        assert manager.sessions_closed == 1

    @pytest.mark.asyncio
    async def test_launch_error_propagates(self) -> None:
        with pytest.raises(BrowserLaunchError):
            await GenericStrategy().scrape("https://example-shop.com/p/1", _FailingManager())

    def test_css_safe_profile(self) -> None:
        profile = GenericStrategy().evasion_profile("https://www.decathlon.com.tr/p/1")
        assert "stylesheet" not in profile.blocked_resource_types
        assert profile.jitter_seconds == (0.4, 1.2)


# ---------------------------------------------------------------------------
# AmazonStrategy
# ---------------------------------------------------------------------------


class TestAmazonStrategy:
    @pytest.mark.asyncio
    async def test_product_page(self, make_manager) -> None:
        manager = make_manager(html=AMAZON_HTML, evaluations={scripts.CLICK_BY_TEXT: True})
        record = await AmazonStrategy().scrape("https://www.amazon.com.tr/dp/B0TEST", manager)

        assert record.title == "Kablosuz Kulaklık"
        assert record.price == Decimal("1499.00")
        assert record.currency == "TRY"
        assert record.image == "https://m.media-amazon.com/images/I/61x.jpg"
        assert record.in_stock is True
        assert record.source == ExtractionSource.DOM_SELECTOR
        assert manager.profiles == [AMAZON_PROFILE]
        assert (scripts.CLICK_BY_TEXT, SPLASH_BUTTON_LABELS) in manager.page.evaluated

    @pytest.mark.asyncio
    async def test_missing_title_is_partial_failure(self, make_manager) -> None:
        manager = make_manager(html="<html><body><p>Robot Check</p></body></html>")
        record = await AmazonStrategy().scrape("https://www.amazon.de/dp/B0TEST", manager)

        assert record.error == "Amazon Scraper could not find product title"
        assert record.currency == "EUR"
        assert record.price == Decimal("0")

    def test_best_dynamic_image(self) -> None:
        raw = '{"https://a.com/s.jpg": [100, 100], "https://a.com/l.jpg": [1000, 800]}'
        assert best_dynamic_image(raw) == "https://a.com/l.jpg"
        assert best_dynamic_image("not json") == ""


# ---------------------------------------------------------------------------
# HMStrategy
# ---------------------------------------------------------------------------


class TestHMStrategy:
    def test_url_parsing(self) -> None:
        assert parse_product_id(HM_URL) == "1234567001"
        assert parse_product_id("https://www2.hm.com/en_gb/productpage/0970819001") == "0970819001"
        assert parse_product_id("https://www2.hm.com/tr_tr/index.html") is None
        assert parse_region("https://www2.hm.com/en_gb/productpage.1.html") == "en_gb"
        assert regions_to_try("tr_tr") == ["tr_tr", "en_gb", "en_us"]
        assert regions_to_try("de_de") == ["de_de", "tr_tr", "en_gb", "en_us"]

    @pytest.mark.asyncio
    async def test_product_page_success(self, make_manager, json_ld_product_html: str) -> None:
        manager = make_manager(pages={HM_URL: json_ld_product_html})
        record = await HMStrategy().scrape(HM_URL, manager)

        assert record.price == Decimal("1299.90")
        assert manager.page.visited[0] == "https://www2.hm.com/tr_tr/index.html"
        assert manager.page.visited[1] == HM_URL

    @pytest.mark.asyncio
    async def test_search_fallback_takes_lowest_price(self, make_manager) -> None:
        """A denied product page falls back to the search page of the next region."""

        def _search(url: str, product_id: str) -> dict | None:
            if "en_gb/search-results" not in url:
                return None
            return {"title": "Linen Trousers", "priceTexts": "£24.99 £19.99", "image": "//image.hm.com/a.jpg"}

        manager = make_manager(
            html="<html><body></body></html>",
            pages={HM_URL: HM_DENIED_HTML},
            evaluations={scripts.HM_SEARCH_ARTICLE: _search},
        )
        record = await HMStrategy().scrape(HM_URL, manager)

        assert record.title == "Linen Trousers"
        assert record.price == Decimal("19.99")
        assert record.currency == "GBP"
        assert record.image == "https://image.hm.com/a.jpg"
        assert record.source == ExtractionSource.DOM_SELECTOR
        assert "https://www2.hm.com/tr_tr/search-results.html?q=1234567001" in manager.page.visited

    @pytest.mark.asyncio
    async def test_access_denied_search_result_rejected(self, make_manager) -> None:
        manager = make_manager(
            pages={HM_URL: HM_DENIED_HTML},
            evaluations={scripts.HM_SEARCH_ARTICLE: {"title": "Access Denied", "priceTexts": "", "image": None}},
        )
        record = await HMStrategy().scrape(HM_URL, manager)

        assert record.title == "H&M Ürün (1234567001)"
        assert record.error == "H&M restricted access (Search bypass failed)."
        assert record.image == "https://placehold.co/600x600?text=H%26M+Product"
        assert record.source == ExtractionSource.MANUAL


# ---------------------------------------------------------------------------
# MaviStrategy
# ---------------------------------------------------------------------------


class TestMaviStrategy:
    @pytest.mark.asyncio
    async def test_dom_extraction(self, make_manager) -> None:
        manager = make_manager(html=MAVI_HTML)
        record = await MaviStrategy().scrape(MAVI_URL, manager)

        assert record.price == Decimal("1299.99")
        assert record.image == "https://sky-static.mavi.com/jean.jpg"
        assert manager.profiles == [MAVI_PROFILE]
        assert manager.page.mouse.move.await_count == 2

    @pytest.mark.asyncio
    async def test_block_raises(self, make_manager) -> None:
        """Mavi is the one strategy that raises on a bot wall."""
        manager = make_manager(html="<html><body></body></html>", title="Attention Required! | Cloudflare")
        with pytest.raises(SiteBlockedError, match="Mavi security block detected"):
            await MaviStrategy().scrape(MAVI_URL, manager)
        assert manager.sessions_closed == 1

    @pytest.mark.asyncio
    async def test_missing_title_placeholder(self, make_manager) -> None:
        manager = make_manager(html="<html><body></body></html>")
        record = await MaviStrategy().scrape(MAVI_URL, manager)

        assert record.title == "Mavi Ürün"
        assert record.error == "Mavi restricted access."
        assert record.image == "https://placehold.co/600x600?text=Mavi+Product"


# ---------------------------------------------------------------------------
# Platform-state strategies
# ---------------------------------------------------------------------------


class TestPlatformStateStrategies:
    @pytest.mark.asyncio
    async def test_trendyol_state(self, make_manager) -> None:
        state = {
            "name": "Spor Ayakkabı",
            "winnerVariant": {"price": {"discountedPrice": {"value": 1499.99}}},
            "images": ["https://cdn.dsmcdn.com/ty100/1.jpg"],
        }
        manager = make_manager(html="<html></html>", evaluations={scripts.TRENDYOL_STATE: state})
        record = await TrendyolStrategy().scrape("https://www.trendyol.com/marka/urun-p-1", manager)

        assert record.title == "Spor Ayakkabı"
        assert record.price == Decimal("1499.99")
        assert record.source == ExtractionSource.STRUCTURED_DATA

    @pytest.mark.asyncio
    async def test_zara_state(self, make_manager) -> None:
        state = {
            "product": {
                "name": "Oversize Ceket",
                "detail": {"colors": [{"price": 299900, "mainImgs": [{"url": "https://static.zara.net/p.jpg"}]}]},
            }
        }
        manager = make_manager(html="<html></html>", evaluations={scripts.ZARA_STATE: state})
        record = await ZaraStrategy().scrape("https://www.zara.com/tr/tr/ceket-p03046029.html", manager)

        assert record.title == "Oversize Ceket"
        assert record.price == Decimal("2999")
        assert record.image == "https://static.zara.net/p.jpg"
