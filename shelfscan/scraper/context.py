"""
Shelfscan: Page Snapshot & Scrape Context

PageSnapshot wraps one HTML document (from page.content() or a plain HTTP
fetch) parsed with selectolax, so every DOM-reading tier runs the same way
with or without a live browser.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from functools import cached_property
from typing import Any

import structlog
from selectolax.parser import HTMLParser, Node

from shelfscan.scraper.browser import BrowserSession
from shelfscan.utils.url import normalize_hostname

logger = structlog.get_logger(__name__)


class PageSnapshot:
    """Parsed, read-only view of a page's HTML."""

    def __init__(self, html: str, url: str = "", title: str = "") -> None:
        self.html = html or ""
        self.url = url
        self._title = title

    @cached_property
    def tree(self) -> HTMLParser:
        return HTMLParser(self.html)

    @property
    def title(self) -> str:
        """Document title as reported by the browser, else the <title> tag."""
        if self._title:
            return self._title.strip()
        return self.text("title")

    @cached_property
    def body_text(self) -> str:
        """Visible body text (scripts and styles removed)."""
        tree = HTMLParser(self.html)
        tree.strip_tags(["script", "style", "noscript"])
        body = tree.body
        return (body.text(separator=" ") if body is not None else "") or ""

    def select(self, selector: str) -> list[Node]:
        return self.tree.css(selector)

    def select_one(self, selector: str) -> Node | None:
        return self.tree.css_first(selector)

    def text(self, selector: str) -> str:
        """Stripped text of the first match, or ""."""
        node = self.select_one(selector)
        if node is None:
            return ""
        return " ".join((node.text(strip=False) or "").split())

    def attr(self, selector: str, *names: str) -> str:
        """First non-empty attribute among names on the first match."""
        node = self.select_one(selector)
        if node is None:
            return ""
        return node_attr(node, *names)

    def meta(self, *keys: str) -> str:
        """
        Content of the first meta tag matching any key.

        A key matches property=, name= or itemprop=.
        """
        for key in keys:
            for attribute in ("property", "name", "itemprop"):
                node = self.select_one(f'meta[{attribute}="{key}"]')
                if node is not None:
                    value = node_attr(node, "content", "value")
                    if value:
                        return value
        return ""

    def json_ld_blocks(self) -> list[Any]:
        """Every parseable application/ld+json payload on the page."""
        blocks = []
        for script in self.select('script[type="application/ld+json"]'):
            raw = script.text(strip=False) or ""
            if not raw.strip():
                continue
            try:
                blocks.append(json.loads(raw))
            except json.JSONDecodeError as e:
                logger.debug("json_ld_parse_failed", url=self.url, error=str(e), source="snapshot")
        return blocks

    def has(self, selector: str) -> bool:
        return self.select_one(selector) is not None


def node_attr(node: Node, *names: str) -> str:
    attributes = node.attributes
    for name in names:
        value = attributes.get(name)
        if value:
            return value.strip()
    return ""


@dataclass
class ScrapeContext:
    """Per-call extraction state shared by the tiers."""

    url: str
    host: str
    session: BrowserSession | None = None
    snapshot: PageSnapshot | None = None

    @classmethod
    def for_session(cls, url: str, session: BrowserSession) -> ScrapeContext:
        return cls(url=url, host=normalize_hostname(url), session=session)

    @classmethod
    def from_html(cls, url: str, html: str) -> ScrapeContext:
        """Browserless context over already-fetched HTML."""
        return cls(url=url, host=normalize_hostname(url), snapshot=PageSnapshot(html, url=url))

    async def get_snapshot(self, refresh: bool = False) -> PageSnapshot:
        """Current page snapshot; re-read from the browser when refresh is set."""
        if self.session is not None and (self.snapshot is None or refresh):
            html = await self.session.content()
            title = await self.session.title()
            self.snapshot = PageSnapshot(html, url=self.session.url or self.url, title=title)
        if self.snapshot is None:
            self.snapshot = PageSnapshot("", url=self.url)
        return self.snapshot

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        """Run an in-page script; None without a live browser."""
        if self.session is None:
            return None
        return await self.session.evaluate(script, arg)
