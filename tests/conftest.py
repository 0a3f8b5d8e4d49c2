"""
Shelfscan: Shared pytest Fixtures & Configuration

Provides common fixtures for all test modules:
- Fake Playwright page / session manager (no real browser)
- Mock HTTP client (respx)
- Sample product page HTML
- Async test support via pytest-asyncio
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, AsyncIterator, Callable
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import respx

from shelfscan.scraper.anti_detect import DEFAULT_PROFILE, EvasionProfile
from shelfscan.scraper.browser import BrowserConfig, BrowserSession


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

pytest_plugins = ("pytest_asyncio",)


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for anyio tests."""
    return "asyncio"


# ---------------------------------------------------------------------------
# Fake browser
# ---------------------------------------------------------------------------


class FakePage:
    """
    Stand-in for a Playwright Page.

    html is served for every URL unless pages maps the current URL to its
    own document. evaluations maps a catalog script to its result, or to a
    callable(url, arg) computing it.
    """

    def __init__(
        self,
        html: str = "",
        title: str = "",
        evaluations: dict[str, Any] | None = None,
        pages: dict[str, str] | None = None,
    ) -> None:
        self.url = "about:blank"
        self.html = html
        self._title = title
        self.evaluations = evaluations or {}
        self.pages = pages or {}
        self.visited: list[str] = []
        self.evaluated: list[tuple[str, Any]] = []
        self.wait_for_selector = AsyncMock()
        self.mouse = MagicMock()
        self.mouse.move = AsyncMock()

    async def goto(self, url: str, wait_until: str | None = None, timeout: int | None = None) -> None:
        self.visited.append(url)
        self.url = url

    async def content(self) -> str:
        return self.pages.get(self.url, self.html)

    async def title(self) -> str:
        return self._title

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        self.evaluated.append((script, arg))
        result = self.evaluations.get(script)
        if callable(result):
            return result(self.url, arg)
        return result


class FakeManager:
    """BrowserSessionManager replacement yielding a real BrowserSession over a FakePage."""

    def __init__(self, page: FakePage) -> None:
        self.page = page
        self.config = BrowserConfig(settle_scale=0)
        self.profiles: list[EvasionProfile] = []
        self.sessions_opened = 0
        self.sessions_closed = 0

    @asynccontextmanager
    async def session(self, profile: EvasionProfile = DEFAULT_PROFILE) -> AsyncIterator[BrowserSession]:
        self.profiles.append(profile)
        self.sessions_opened += 1
        try:
            yield BrowserSession(self.page, self.config, "test-session")
        finally:
            self.sessions_closed += 1


@pytest.fixture
def make_manager() -> Callable[..., FakeManager]:
    """Factory: make_manager(html=..., title=..., evaluations=..., pages=...)."""

    def _make(**kwargs: Any) -> FakeManager:
        return FakeManager(FakePage(**kwargs))

    return _make


# ---------------------------------------------------------------------------
# Mock HTTP
# ---------------------------------------------------------------------------


@pytest.fixture
async def mock_async_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """
    Mock async HTTP client with respx interceptor.

    All HTTP requests are intercepted and must be explicitly mocked.
    """
    with respx.mock:
        async with httpx.AsyncClient() as client:
            yield client


# ---------------------------------------------------------------------------
# Sample pages
# ---------------------------------------------------------------------------

JSON_LD_PRODUCT_HTML = """
<html>
<head>
  <title>Koşu Ayakkabısı | Örnek Mağaza</title>
  <meta property="og:title" content="Koşu Ayakkabısı">
  <meta property="og:image" content="//cdn.example-shop.com/img/og.jpg">
  <script type="application/ld+json">
  {
    "@context": "https://schema.org",
    "@type": "Product",
    "name": "Koşu Ayakkabısı",
    "image": ["https://cdn.example-shop.com/img/1.jpg"],
    "offers": {
      "@type": "Offer",
      "price": "1299.90",
      "priceCurrency": "TRY",
      "availability": "https://schema.org/InStock"
    }
  }
  </script>
</head>
<body>
  <h1>Koşu Ayakkabısı</h1>
  <span class="price">1.299,90 TL</span>
</body>
</html>
"""

META_ONLY_HTML = """
<html>
<head>
  <title>Kahve Makinesi</title>
  <meta property="og:title" content="Kahve Makinesi">
  <meta property="product:price:amount" content="2.499,00">
  <meta property="product:price:currency" content="TRY">
  <meta property="og:image" content="https://cdn.example-shop.com/kahve.jpg">
</head>
<body><h1>Kahve Makinesi</h1></body>
</html>
"""

DOM_ONLY_HTML = """
<html>
<head><title>Deri Cüzdan</title></head>
<body>
  <h1>Deri Cüzdan</h1>
  <div class="product-price">349,90 TL</div>
  <div class="product-image"><img src="/media/cuzdan.jpg"></div>
</body>
</html>
"""

CHALLENGE_HTML = """
<html>
<head><title>Just a moment...</title></head>
<body><script src="/cdn-cgi/challenge-platform/h/b/orchestrate/jsch/v1"></script></body>
</html>
"""


@pytest.fixture
def json_ld_product_html() -> str:
    return JSON_LD_PRODUCT_HTML


@pytest.fixture
def meta_only_html() -> str:
    return META_ONLY_HTML


@pytest.fixture
def dom_only_html() -> str:
    return DOM_ONLY_HTML


@pytest.fixture
def challenge_html() -> str:
    return CHALLENGE_HTML
