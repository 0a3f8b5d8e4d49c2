"""
Shelfscan: Configuration & Constants

Every timeout, delay and default used by the extraction pipeline lives here.
No hardcoded values in strategy or tier logic.

Usage:
    from shelfscan.config import settings
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class BrowserMode(str, Enum):
    """Launch mode for the headless browser."""
    LOCAL = "local"            # Developer machine, bundled Playwright Chromium
    SERVERLESS = "serverless"  # Constrained runtime, externally provided Chromium binary


# ---------------------------------------------------------------------------
# Launch arguments
# ---------------------------------------------------------------------------

LOCAL_SANDBOX_ARGS: list[str] = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-blink-features=AutomationControlled",
    "--test-type",
    "--disable-web-security",
    "--disable-features=IsolateOrigins,site-per-process",
]

SERVERLESS_SANDBOX_ARGS: list[str] = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--single-process",
    "--no-zygote",
    "--hide-scrollbars",
    "--disable-web-security",
    "--disable-blink-features=AutomationControlled",
]


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """
    Central configuration for Shelfscan.

    Loads from environment variables with fallback defaults.
    """

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # -----------------------------------------------------------------------
    # Logging
    # -----------------------------------------------------------------------
    LOG_LEVEL: str = "INFO"

    # -----------------------------------------------------------------------
    # Browser launch
    # -----------------------------------------------------------------------
    BROWSER_MODE: BrowserMode = BrowserMode.LOCAL
    BROWSER_HEADLESS: bool = True
    BROWSER_EXECUTABLE_PATH: str = ""        # Required in serverless mode
    BROWSER_CLOSE_TIMEOUT_SECONDS: float = 10.0
    PROXY_URL: str = ""

    # -----------------------------------------------------------------------
    # Navigation & settle timing
    # -----------------------------------------------------------------------
    NAVIGATION_TIMEOUT_MS: int = 30000
    SLOW_NAVIGATION_TIMEOUT_MS: int = 45000  # Amazon, Mavi
    SELECTOR_WAIT_TIMEOUT_MS: int = 5000
    SETTLE_SCALE: float = 1.0                # Multiplier on fixed settle delays

    # -----------------------------------------------------------------------
    # Static pre-pass (plain HTTP fetch before launching a browser)
    # -----------------------------------------------------------------------
    ENABLE_STATIC_FETCH: bool = True
    STATIC_FETCH_TIMEOUT_SECONDS: float = 10.0

    # -----------------------------------------------------------------------
    # Caller-level pool
    # -----------------------------------------------------------------------
    SCRAPE_CONCURRENCY: int = Field(default=3, ge=1)
    SCRAPE_DEADLINE_SECONDS: float = 120.0

    # -----------------------------------------------------------------------
    # Result defaults
    # -----------------------------------------------------------------------
    DEFAULT_CURRENCY: str = "TRY"
    PLACEHOLDER_IMAGE_URL: str = "https://placehold.co/600x600?text=No+Image"


# Singleton instance
settings = Settings()
