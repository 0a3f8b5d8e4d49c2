"""URL normalization shared by the dispatcher and the public entry point."""

from __future__ import annotations

import re
from urllib.parse import urlparse

from shelfscan.scraper.errors import InvalidURLError

_SCHEME = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")
_HOSTNAME = re.compile(r"^[\w-]+(?:\.[\w-]+)*$")


def normalize_url(raw: str | None) -> str:
    """
    Trim the input and prepend https:// when no scheme is given.

    Raises:
        InvalidURLError: nothing parses into an http(s) URL with a hostname.
    """
    url = (raw or "").strip()
    if not url:
        raise InvalidURLError(raw or "")
    if not _SCHEME.match(url):
        url = "https://" + url.lstrip("/")

    try:
        parsed = urlparse(url)
        parsed.port  # raises ValueError on a malformed port
    except ValueError as e:
        raise InvalidURLError(url) from e

    if parsed.scheme not in ("http", "https"):
        raise InvalidURLError(url)
    host = parsed.hostname or ""
    if not host or not _HOSTNAME.match(host):
        raise InvalidURLError(url)
    return url


def normalize_hostname(url: str | None) -> str:
    """Lowercased hostname without a leading "www.", or "" if unparseable."""
    try:
        parsed = urlparse(normalize_url(url))
    except InvalidURLError:
        return ""
    host = (parsed.hostname or "").lower()
    if host.startswith("www."):
        host = host[len("www."):]
    return host
