"""
Shelfscan: Diagnostic CLI

Configures structlog and scrapes the given URLs, printing one JSON record
per URL to stdout.

Run via:
    python -m shelfscan.main URL [URL ...] [--no-static] [--headful] [--concurrency N]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

import structlog

from shelfscan.config import settings
from shelfscan.scraper.browser import BrowserConfig, BrowserSessionManager
from shelfscan.scraper.runner import scrape_many


# ---------------------------------------------------------------------------
# Structlog Configuration
# ---------------------------------------------------------------------------


def _configure_logging(log_level: str = "INFO") -> None:
    """
    Set up structured logging with JSON output.

    Logs go to stderr so stdout carries only the scraped records.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
    """
    # Configure stdlib logging first (for third-party libraries)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper()),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shelfscan",
        description="Extract normalized product records from e-commerce product pages.",
    )
    parser.add_argument("urls", nargs="+", metavar="URL", help="Product page URL(s)")
    parser.add_argument("--no-static", action="store_true", help="Skip the plain HTTP pre-pass")
    parser.add_argument("--headful", action="store_true", help="Show the browser window")
    parser.add_argument(
        "--concurrency",
        type=int,
        default=settings.SCRAPE_CONCURRENCY,
        help="Maximum browsers alive at once",
    )
    return parser


async def main(argv: list[str] | None = None) -> int:
    """
    CLI entrypoint.

    Execution order:
    1. Configure logging (structlog JSON on stderr)
    2. Build the browser config from settings and flags
    3. Scrape all URLs through the bounded pool
    4. Print one JSON record per URL
    """
    args = build_parser().parse_args(argv)
    _configure_logging(log_level=settings.LOG_LEVEL)
    logger = structlog.get_logger(__name__)

    config = BrowserConfig.from_settings()
    if args.headful:
        config = config.model_copy(update={"headless": False})

    logger.info("shelfscan_cli_started", urls=len(args.urls), headless=config.headless)
    records = await scrape_many(
        args.urls,
        concurrency=max(1, args.concurrency),
        manager=BrowserSessionManager(config),
        use_static=False if args.no_static else None,
    )

    for record in records:
        print(json.dumps(record.to_public_dict(), ensure_ascii=False))

    degraded = sum(1 for record in records if record.is_degraded)
    logger.info("shelfscan_cli_finished", total=len(records), degraded=degraded)
    return 1 if degraded == len(records) else 0


def run() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


# ---------------------------------------------------------------------------
# CLI Entry
# ---------------------------------------------------------------------------


if __name__ == "__main__":
    run()
