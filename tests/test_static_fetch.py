"""Shelfscan: Static Pre-Pass Tests (respx-mocked HTTP)"""

from __future__ import annotations

from decimal import Decimal

import httpx
import pytest
import respx

from shelfscan.scraper import ExtractionSource
from shelfscan.scraper.static_fetch import StaticFetcher, static_fetch_allowed, static_prepass

PRODUCT_URL = "https://example-shop.com/p/1"


class TestStaticFetchAllowed:
    @pytest.mark.parametrize(
        "url",
        [
            "https://www.mavi.com/jean/p/1",
            "https://www2.hm.com/tr_tr/productpage.1.html",
            "https://www.zara.com/tr/tr/x-p1.html",
            "https://www.amazon.com.tr/dp/B0TEST",
            "https://www.lcwaikiki.com/tr-TR/TR/urun",
        ],
    )
    def test_browser_only_hosts_skipped(self, url: str) -> None:
        assert static_fetch_allowed(url) is False

    def test_other_hosts_allowed(self) -> None:
        assert static_fetch_allowed("https://www.dr.com.tr/kitap/1") is True
        assert static_fetch_allowed("") is False


class TestStaticFetcher:
    @pytest.mark.asyncio
    async def test_json_ld_hit(self, mock_async_http_client: httpx.AsyncClient, json_ld_product_html: str) -> None:
        respx.get(PRODUCT_URL).mock(return_value=httpx.Response(200, text=json_ld_product_html))

        async with StaticFetcher(client=mock_async_http_client) as fetcher:
            record = await fetcher.fetch(PRODUCT_URL)

        assert record is not None
        assert record.title == "Koşu Ayakkabısı"
        assert record.price == Decimal("1299.90")
        assert record.source == ExtractionSource.STRUCTURED_DATA

    @pytest.mark.asyncio
    async def test_meta_tags_hit(self, mock_async_http_client: httpx.AsyncClient, meta_only_html: str) -> None:
        respx.get(PRODUCT_URL).mock(return_value=httpx.Response(200, text=meta_only_html))

        async with StaticFetcher(client=mock_async_http_client) as fetcher:
            record = await fetcher.fetch(PRODUCT_URL)

        assert record is not None
        assert record.price == Decimal("2499.00")
        assert record.source == ExtractionSource.METADATA
        assert record.image == "https://cdn.example-shop.com/kahve.jpg"

    @pytest.mark.asyncio
    async def test_incomplete_page_falls_through(self, mock_async_http_client: httpx.AsyncClient) -> None:
        """A page without a price is left to the browser strategy."""
        html = "<html><head><title>Kupa</title></head><body><h1>Kupa</h1></body></html>"
        respx.get(PRODUCT_URL).mock(return_value=httpx.Response(200, text=html))

        async with StaticFetcher(client=mock_async_http_client) as fetcher:
            assert await fetcher.fetch(PRODUCT_URL) is None

    @pytest.mark.asyncio
    async def test_challenge_page_falls_through(
        self, mock_async_http_client: httpx.AsyncClient, json_ld_product_html: str
    ) -> None:
        html = json_ld_product_html.replace("<title>Koşu Ayakkabısı | Örnek Mağaza</title>", "<title>Bir dakika...</title>")
        respx.get(PRODUCT_URL).mock(return_value=httpx.Response(200, text=html))

        async with StaticFetcher(client=mock_async_http_client) as fetcher:
            assert await fetcher.fetch(PRODUCT_URL) is None

    @pytest.mark.asyncio
    async def test_http_error_falls_through(self, mock_async_http_client: httpx.AsyncClient) -> None:
        respx.get(PRODUCT_URL).mock(return_value=httpx.Response(403, text="Forbidden"))

        async with StaticFetcher(client=mock_async_http_client) as fetcher:
            assert await fetcher.fetch(PRODUCT_URL) is None

    @pytest.mark.asyncio
    async def test_connection_error_falls_through(self, mock_async_http_client: httpx.AsyncClient) -> None:
        respx.get(PRODUCT_URL).mock(side_effect=httpx.ConnectError("connection refused"))

        async with StaticFetcher(client=mock_async_http_client) as fetcher:
            assert await fetcher.fetch_html(PRODUCT_URL) is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", ["https://xn--zz.com/p/1", "https://Ⅻ.com/p/1"])
    async def test_idna_invalid_host_falls_through(self, mock_async_http_client: httpx.AsyncClient, url: str) -> None:
        """Hosts httpx cannot encode are left to the browser strategy."""
        async with StaticFetcher(client=mock_async_http_client) as fetcher:
            assert await fetcher.fetch(url) is None

    @pytest.mark.asyncio
    async def test_fetch_requires_context(self) -> None:
        with pytest.raises(AssertionError, match="async with"):
            await StaticFetcher().fetch_html(PRODUCT_URL)


class TestStaticPrepass:
    @pytest.mark.asyncio
    @respx.mock
    async def test_prepass_owns_client(self, json_ld_product_html: str) -> None:
        route = respx.get(PRODUCT_URL).mock(return_value=httpx.Response(200, text=json_ld_product_html))

        record = await static_prepass(PRODUCT_URL)

        assert route.called
        assert record is not None
        assert record.currency == "TRY"

    @pytest.mark.asyncio
    @respx.mock
    async def test_skipped_host_sends_nothing(self) -> None:
        route = respx.get(url__regex=r".*").mock(return_value=httpx.Response(200, text=""))

        assert await static_prepass("https://www.zara.com/tr/tr/x-p1.html") is None
        assert not route.called
