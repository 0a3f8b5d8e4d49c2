"""
Shelfscan: Browser Session Manager

One headless Chromium per scrape call:
- BrowserConfig carries launch settings explicitly (no process-global mode)
- BrowserSessionManager.session() launches, applies evasion, yields a
  BrowserSession and tears everything down on every exit path
- BrowserSession wraps the Playwright page with non-raising helpers

Teardown order: browser.close() and playwright.stop(), each bounded by
close_timeout_seconds. If either fails the Playwright driver process is
SIGKILLed, which takes the browsers it launched down with it.
"""

from __future__ import annotations

import asyncio
import os
import signal
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import structlog
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright
from pydantic import BaseModel, Field

from shelfscan.config import LOCAL_SANDBOX_ARGS, SERVERLESS_SANDBOX_ARGS, BrowserMode, settings
from shelfscan.scraper import scripts
from shelfscan.scraper.anti_detect import DEFAULT_PROFILE, AntiDetect, EvasionProfile
from shelfscan.scraper.errors import BrowserLaunchError, NavigationTimeoutError

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Launch configuration
# ---------------------------------------------------------------------------


class BrowserConfig(BaseModel):
    """Launch settings for one BrowserSessionManager."""

    executable_path: str | None = None
    sandbox_args: list[str] = Field(default_factory=lambda: list(LOCAL_SANDBOX_ARGS))
    headless: bool = True
    navigation_timeout_ms: int = Field(default=30000, gt=0)
    close_timeout_seconds: float = Field(default=10.0, gt=0)
    proxy_url: str = ""
    settle_scale: float = Field(default=1.0, ge=0)

    @classmethod
    def local(cls, **overrides: Any) -> BrowserConfig:
        """Bundled Playwright Chromium, developer sandbox flags."""
        return cls(sandbox_args=list(LOCAL_SANDBOX_ARGS), **overrides)

    @classmethod
    def serverless(cls, executable_path: str, **overrides: Any) -> BrowserConfig:
        """Externally provided Chromium binary with constrained-runtime flags."""
        return cls(
            executable_path=executable_path,
            sandbox_args=list(SERVERLESS_SANDBOX_ARGS),
            **overrides,
        )

    @classmethod
    def from_settings(cls) -> BrowserConfig:
        """Build the config from the environment-backed settings."""
        common = {
            "headless": settings.BROWSER_HEADLESS,
            "navigation_timeout_ms": settings.NAVIGATION_TIMEOUT_MS,
            "close_timeout_seconds": settings.BROWSER_CLOSE_TIMEOUT_SECONDS,
            "proxy_url": settings.PROXY_URL,
            "settle_scale": settings.SETTLE_SCALE,
        }
        if settings.BROWSER_MODE == BrowserMode.SERVERLESS:
            return cls.serverless(settings.BROWSER_EXECUTABLE_PATH, **common)
        return cls.local(executable_path=settings.BROWSER_EXECUTABLE_PATH or None, **common)


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class BrowserSession:
    """
    Page handle for a single scrape call.

    Navigation and script failures are logged and reported through return
    values; only the manager decides when the browser goes away.
    """

    def __init__(self, page: Any, config: BrowserConfig, session_id: str) -> None:
        self.page = page
        self.config = config
        self.session_id = session_id

    @property
    def url(self) -> str:
        return self.page.url

    async def goto(
        self,
        url: str,
        *,
        wait_until: str = "domcontentloaded",
        timeout_ms: int | None = None,
    ) -> bool:
        """
        Navigate to url. Returns False on timeout or navigation error.

        A timed-out page usually has enough DOM to extract from, so callers
        carry on regardless of the result.
        """
        timeout = timeout_ms or self.config.navigation_timeout_ms
        try:
            await self.page.goto(url, wait_until=wait_until, timeout=timeout)
            return True
        except PlaywrightTimeoutError:
            error = NavigationTimeoutError(url, timeout)
            logger.warning(
                "navigation_timeout",
                url=url,
                timeout_ms=timeout,
                session_id=self.session_id,
                error=str(error),
                source="browser",
            )
        except PlaywrightError as e:
            logger.warning(
                "navigation_failed",
                url=url,
                session_id=self.session_id,
                error=str(e),
                source="browser",
            )
        return False

    async def settle(self, seconds: float) -> None:
        """Fixed post-load delay, scaled by config.settle_scale."""
        delay = seconds * self.config.settle_scale
        if delay > 0:
            await asyncio.sleep(delay)

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        """Run a catalog script; returns None on any script error."""
        try:
            if arg is None:
                return await self.page.evaluate(script)
            return await self.page.evaluate(script, arg)
        except PlaywrightError as e:
            logger.debug(
                "script_evaluation_failed",
                session_id=self.session_id,
                error=str(e),
                source="browser",
            )
            return None

    async def content(self) -> str:
        try:
            return await self.page.content()
        except PlaywrightError as e:
            logger.warning("page_content_failed", session_id=self.session_id, error=str(e), source="browser")
            return ""

    async def title(self) -> str:
        try:
            return (await self.page.title()) or ""
        except PlaywrightError as e:
            logger.debug("page_title_failed", session_id=self.session_id, error=str(e), source="browser")
            return ""

    async def wait_for_any(self, selectors: list[str] | tuple[str, ...], timeout_ms: int | None = None) -> bool:
        """Wait until any selector is attached. False on timeout."""
        if not selectors:
            return False
        timeout = timeout_ms or settings.SELECTOR_WAIT_TIMEOUT_MS
        try:
            await self.page.wait_for_selector(", ".join(selectors), timeout=timeout, state="attached")
            return True
        except PlaywrightError:
            logger.debug(
                "selector_wait_timeout",
                selectors=list(selectors),
                timeout_ms=timeout,
                session_id=self.session_id,
                source="browser",
            )
            return False

    async def scroll(self, pixels: int) -> None:
        await self.evaluate(scripts.SCROLL_BY, pixels)

    async def move_mouse(self, x: int, y: int, steps: int = 5) -> None:
        try:
            await self.page.mouse.move(x, y, steps=steps)
        except PlaywrightError as e:
            logger.debug("mouse_move_failed", session_id=self.session_id, error=str(e), source="browser")

    async def click_by_text(self, labels: list[str]) -> bool:
        """Click the first button or link whose text contains any label."""
        return bool(await self.evaluate(scripts.CLICK_BY_TEXT, list(labels)))


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------


class BrowserSessionManager:
    """
    Launches one isolated browser per session() call.

    Usage:
        manager = BrowserSessionManager(BrowserConfig.local())
        async with manager.session(profile) as session:
            await session.goto(url)
    """

    def __init__(self, config: BrowserConfig | None = None, anti_detect: AntiDetect | None = None) -> None:
        self.config = config or BrowserConfig.from_settings()
        self.anti_detect = anti_detect or AntiDetect(proxy_url=self.config.proxy_url)

    @asynccontextmanager
    async def session(self, profile: EvasionProfile = DEFAULT_PROFILE) -> AsyncIterator[BrowserSession]:
        """
        Yield a ready BrowserSession; always release the browser afterwards.

        Raises:
            BrowserLaunchError: Playwright or Chromium failed to start.
        """
        session_id = uuid.uuid4().hex[:12]
        playwright = None
        browser = None
        try:
            try:
                playwright = await async_playwright().start()
                browser = await playwright.chromium.launch(**self._launch_options())
            except PlaywrightError as e:
                logger.error("browser_launch_failed", session_id=session_id, error=str(e), source="browser")
                raise BrowserLaunchError(f"Browser launch failed: {e}") from e

            logger.debug("browser_launched", session_id=session_id, source="browser")

            context = await browser.new_context(**self.anti_detect.context_options(profile))
            if profile.spoof_webdriver:
                await context.add_init_script(scripts.WEBDRIVER_OVERRIDE)
            await self._setup_route_blocking(context, profile)
            page = await context.new_page()
            page.set_default_timeout(self.config.navigation_timeout_ms)

            await self.anti_detect.random_delay(profile, scale=self.config.settle_scale)
            yield BrowserSession(page, self.config, session_id)
        finally:
            await self._teardown(playwright, browser, session_id)

    def _launch_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {
            "headless": self.config.headless,
            "args": list(self.config.sandbox_args),
        }
        if self.config.executable_path:
            options["executable_path"] = self.config.executable_path
        return options

    async def _setup_route_blocking(self, context: Any, profile: EvasionProfile) -> None:
        """Abort requests the profile marks as irrelevant to extraction."""
        if not profile.blocked_resource_types and not profile.blocked_url_fragments:
            return

        async def _handle(route: Any) -> None:
            request = route.request
            try:
                if self.anti_detect.should_block(request.resource_type, request.url, profile):
                    await route.abort()
                else:
                    await route.continue_()
            except PlaywrightError as e:
                # Page already closed while the request was in flight
                logger.debug("route_handling_failed", url=request.url, error=str(e), source="browser")

        await context.route("**/*", _handle)

    async def _teardown(self, playwright: Any, browser: Any, session_id: str) -> None:
        timeout = self.config.close_timeout_seconds
        clean = True
        if browser is not None:
            try:
                await asyncio.wait_for(browser.close(), timeout=timeout)
                logger.debug("browser_closed", session_id=session_id, source="browser")
            except (asyncio.TimeoutError, PlaywrightError) as e:
                clean = False
                logger.warning(
                    "browser_close_failed",
                    session_id=session_id,
                    error=str(e) or type(e).__name__,
                    source="browser",
                )
        if playwright is not None:
            try:
                await asyncio.wait_for(playwright.stop(), timeout=timeout)
            except (asyncio.TimeoutError, PlaywrightError) as e:
                clean = False
                logger.warning(
                    "playwright_stop_failed",
                    session_id=session_id,
                    error=str(e) or type(e).__name__,
                    source="browser",
                )
            if not clean:
                _force_kill(playwright, session_id)


def driver_process(playwright: Any) -> Any:
    """The asyncio subprocess running the Playwright driver, or None."""
    impl = getattr(playwright, "_impl_obj", None)
    connection = getattr(impl, "_connection", None)
    transport = getattr(connection, "_transport", None)
    return getattr(transport, "_proc", None)


def _force_kill(playwright: Any, session_id: str) -> None:
    """SIGKILL the Playwright driver; its browsers exit with it."""
    process = driver_process(playwright)
    pid = getattr(process, "pid", None)
    if not pid:
        logger.warning("browser_force_kill_unavailable", session_id=session_id, source="browser")
        return
    if process.returncode is not None:
        logger.debug("browser_already_exited", session_id=session_id, pid=pid, source="browser")
        return
    try:
        os.kill(pid, signal.SIGKILL)
        logger.warning("browser_force_killed", session_id=session_id, pid=pid, source="browser")
    except ProcessLookupError:
        logger.debug("browser_already_exited", session_id=session_id, pid=pid, source="browser")
