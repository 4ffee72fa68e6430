# site_crawl/crawler/resolver.py
"""
Link resolution and URL canonicalization for SiteCrawl.

Every URL that reaches the queue or a dedup set goes through
:func:`canonicalize` first, so two spellings of one resource share a key.
"""
from __future__ import annotations

import logging
import re
from typing import Iterable, Optional, Tuple
from urllib.parse import SplitResult, unquote, urljoin, urlsplit, urlunsplit

from site_crawl.config import DEFAULT_SKIP_PREFIXES
from site_crawl.logger import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)

_WEB_SCHEMES: Tuple[str, ...] = ("http", "https")
_DEFAULT_PORTS = {"http": 80, "https": 443}

# delimiters whose escaped form names a different resource than the literal one
_KEEP_ENCODED = ":/?#[]@!$&'()*+,;=%"
_RESERVED_ESCAPE = re.compile(
    "(" + "|".join(f"%{ord(ch):02X}" for ch in _KEEP_ENCODED) + ")",
    re.IGNORECASE,
)


def canonical_netloc(scheme: str, hostname: str, port: Optional[int]) -> str:
    """Lower-case host, default port for *scheme* dropped."""
    host = hostname.lower()
    if ":" in host:
        host = f"[{host}]"
    if port is None or _DEFAULT_PORTS.get(scheme) == port:
        return host
    return f"{host}:{port}"


def decode_path(path: str) -> str:
    """
    Percent-decode *path*, leaving escaped delimiters (``%2F``, ``%3F``, ``%23`` ...) encoded.

    ``/a%20b`` and ``/a b`` decode to the same string, ``/a%3Fb`` stays a
    single path segment instead of turning into ``/a`` plus a query.
    """
    parts = _RESERVED_ESCAPE.split(path)
    # odd items are the captured delimiter escapes; ASCII only, so the
    # chunks between them never split a multi-byte sequence
    return "".join(part.upper() if i % 2 else unquote(part) for i, part in enumerate(parts))


def _netloc_of(parsed: SplitResult) -> Optional[str]:
    scheme = parsed.scheme.lower()
    if scheme not in _WEB_SCHEMES or not parsed.hostname:
        return None
    return canonical_netloc(scheme, parsed.hostname, parsed.port)


def canonicalize(url: str) -> str:
    """
    Return the canonical form of an absolute http(s) URL.

    Raises ValueError when *url* cannot be parsed or is not an absolute web URL.
    """
    parsed = urlsplit(url)
    netloc = _netloc_of(parsed)
    if netloc is None:
        raise ValueError(f"not an absolute http(s) URL: {url!r}")
    path = decode_path(parsed.path) or "/"
    return urlunsplit((parsed.scheme.lower(), netloc, path, parsed.query, ""))


class UrlResolver:
    """Turns raw hrefs into same-host canonical URLs, or rejects them with None."""

    def __init__(self, seed_url: str, skip_prefixes: Iterable[str] = DEFAULT_SKIP_PREFIXES) -> None:
        self.seed = canonicalize(seed_url)
        parsed = urlsplit(self.seed)
        self.scheme = parsed.scheme
        self.netloc = parsed.netloc
        self.skip_prefixes = tuple(p.lower() for p in skip_prefixes)

    def on_seed_host(self, url: str) -> bool:
        """True when absolute *url* points at the seed's host and port."""
        try:
            return _netloc_of(urlsplit(url)) == self.netloc
        except ValueError:
            return False

    def resolve(self, raw_href: str, base_url: Optional[str] = None) -> Optional[str]:
        href = raw_href.strip() if raw_href else ""
        if not href:
            return None
        if href.lower().startswith(self.skip_prefixes):
            logger.debug("skipping %s", href)
            return None

        base = base_url or self.seed
        try:
            if not href.lower().startswith(self.scheme + ":"):
                # relative, protocol-relative or other-scheme absolute; urljoin sorts it out
                href = urljoin(base, href)
            netloc = _netloc_of(urlsplit(href))
        except ValueError as exc:
            logger.debug("unparsable link %r: %s", href, exc)
            return None

        if netloc is None:
            logger.debug("not a web URL: %s", href)
            return None
        if netloc != self.netloc:
            logger.debug("other host: %s", href)
            return None
        return canonicalize(href)
