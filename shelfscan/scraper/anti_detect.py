"""
Shelfscan: Anti-Detection Layer

Builds the evasion configuration applied to every browser session:
- Randomized realistic user agent from a fixed pool
- Client-Hints headers consistent with the chosen user agent
- Desktop or mobile viewport emulation
- Request blocking for resource types irrelevant to extraction
- Optional proxy
- Anti-bot block signature detection on loaded pages
"""

from __future__ import annotations

import asyncio
import dataclasses
import random
import re
from dataclasses import dataclass
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


# Realistic user agents for rotation
DESKTOP_USER_AGENTS: tuple[str, ...] = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
)

MOBILE_USER_AGENTS: tuple[str, ...] = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_4_1 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.4.1 Mobile/15E148 Safari/604.1",
    "Mozilla/5.0 (Linux; Android 14; Pixel 8 Build/UD1A.230805.019; wv) AppleWebKit/537.36 (KHTML, like Gecko) Version/4.0 Chrome/122.0.6261.64 Mobile Safari/537.36",
)

MIXED_USER_AGENTS: tuple[str, ...] = MOBILE_USER_AGENTS + DESKTOP_USER_AGENTS[:1]

# Blocking CSS trips some anti-bot systems; those sites use the CSS-safe set.
DEFAULT_BLOCKED_RESOURCE_TYPES: frozenset[str] = frozenset({"image", "stylesheet", "font", "media"})
CSS_SAFE_BLOCKED_RESOURCE_TYPES: frozenset[str] = frozenset({"image", "font", "media"})

# Page-title fragments of interstitial challenge pages (lowercase)
BLOCK_TITLE_SIGNATURES: tuple[str, ...] = (
    "just a moment",
    "attention required",
    "access denied",
    "bir dakika",
    "lütfen bekleyin",
    "robot check",
    "are you a robot",
    "security check",
)

# Markup of challenge pages; only strong markers so real product pages never match
BLOCK_HTML_SIGNATURES: tuple[str, ...] = (
    "/cdn-cgi/challenge-platform/",
    "cf-chl-",
    "px-captcha",
    "_incapsula_resource",
    "datadome-captcha",
    "captcha-delivery.com",
    "/errors/validatecaptcha",
)

_CHROME_VERSION = re.compile(r"Chrome/(\d+)")


@dataclass(frozen=True)
class EvasionProfile:
    """Per-strategy browser fingerprint and request policy."""
    user_agents: tuple[str, ...] = DESKTOP_USER_AGENTS
    viewport: tuple[int, int] = (1366, 768)
    mobile_viewport: tuple[int, int] = (390, 844)
    blocked_resource_types: frozenset[str] = DEFAULT_BLOCKED_RESOURCE_TYPES
    blocked_url_fragments: tuple[str, ...] = ()
    spoof_webdriver: bool = True
    locale: str = "tr-TR"
    accept_language: str = "tr-TR,tr;q=0.9,en-US;q=0.8,en;q=0.7"
    referer: str = "https://www.google.com/"
    jitter_seconds: tuple[float, float] = (0.0, 0.0)

    def replace(self, **changes: Any) -> EvasionProfile:
        return dataclasses.replace(self, **changes)


DEFAULT_PROFILE = EvasionProfile()


class AntiDetect:
    """
    Anti-detection wrapper for Playwright sessions.

    Holds no per-call state beyond its RNG, so one instance may serve
    concurrent sessions.
    """

    def __init__(self, proxy_url: str = "", rng: random.Random | None = None) -> None:
        self._proxy_url = proxy_url
        self._rng = rng or random.Random()

    def get_random_user_agent(self, profile: EvasionProfile = DEFAULT_PROFILE) -> str:
        """Return a random user agent string from the profile's pool."""
        return self._rng.choice(profile.user_agents)

    @staticmethod
    def is_mobile_agent(user_agent: str) -> bool:
        return "iPhone" in user_agent or "Android" in user_agent

    def build_headers(self, user_agent: str, profile: EvasionProfile = DEFAULT_PROFILE) -> dict[str, str]:
        """Extra HTTP headers consistent with the user agent."""
        headers = {
            "Accept-Language": profile.accept_language,
            "Accept": (
                "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,"
                "image/webp,image/apng,*/*;q=0.8"
            ),
            "Upgrade-Insecure-Requests": "1",
        }
        if profile.referer:
            headers["Referer"] = profile.referer

        mobile = self.is_mobile_agent(user_agent)
        chrome = _CHROME_VERSION.search(user_agent)
        if chrome and not mobile:
            version = chrome.group(1)
            headers["sec-ch-ua"] = (
                f'"Chromium";v="{version}", "Google Chrome";v="{version}", "Not-A.Brand";v="99"'
            )
        headers["sec-ch-ua-mobile"] = "?1" if mobile else "?0"
        if mobile:
            headers["sec-ch-ua-platform"] = '"iOS"' if "iPhone" in user_agent else '"Android"'
        elif "Macintosh" in user_agent:
            headers["sec-ch-ua-platform"] = '"macOS"'
        else:
            headers["sec-ch-ua-platform"] = '"Windows"'
        return headers

    def context_options(self, profile: EvasionProfile = DEFAULT_PROFILE) -> dict[str, Any]:
        """
        Keyword arguments for Playwright's browser.new_context().

        Args:
            profile: Evasion profile of the active strategy.
        """
        user_agent = self.get_random_user_agent(profile)
        mobile = self.is_mobile_agent(user_agent)
        width, height = profile.mobile_viewport if mobile else profile.viewport
        options: dict[str, Any] = {
            "user_agent": user_agent,
            "viewport": {"width": width, "height": height},
            "device_scale_factor": 3 if mobile else 1,
            "is_mobile": mobile,
            "has_touch": mobile,
            "locale": profile.locale,
            "extra_http_headers": self.build_headers(user_agent, profile),
            "ignore_https_errors": True,
        }
        proxy = self.get_proxy_config()
        if proxy:
            options["proxy"] = proxy
        return options

    def should_block(self, resource_type: str, url: str, profile: EvasionProfile = DEFAULT_PROFILE) -> bool:
        """Decide whether an outgoing request is aborted."""
        if resource_type in profile.blocked_resource_types:
            return True
        return any(fragment in url for fragment in profile.blocked_url_fragments)

    def get_proxy_config(self) -> dict[str, str] | None:
        """Return proxy configuration if a proxy URL is set."""
        if self._proxy_url:
            return {"server": self._proxy_url}
        return None

    async def random_delay(self, profile: EvasionProfile = DEFAULT_PROFILE, scale: float = 1.0) -> None:
        """Sleep for a random duration inside the profile's jitter range."""
        low, high = profile.jitter_seconds
        if high <= 0 or scale <= 0:
            return
        delay = self._rng.uniform(low, high) * scale
        logger.debug("anti_detect_delay", delay_seconds=round(delay, 2), source="anti_detect")
        await asyncio.sleep(delay)


def detect_block_signature(title: str | None, html: str | None = None) -> str | None:
    """
    Return the matched anti-bot signature, or None for a normal page.

    Args:
        title: Document title (or extracted product title).
        html: Optional page markup.
    """
    lowered = (title or "").strip().lower()
    for signature in BLOCK_TITLE_SIGNATURES:
        if signature in lowered:
            return signature
    if html:
        lowered_html = html.lower()
        for signature in BLOCK_HTML_SIGNATURES:
            if signature in lowered_html:
                return signature
    return None
