# site_crawl/crawler/fetcher.py
"""
Fetcher module: performs one HTTP GET and returns the hrefs found on the page.
"""
from __future__ import annotations

import asyncio
from typing import Optional, Set

from aiohttp import ClientError, ClientSession
from bs4 import BeautifulSoup
from bs4.element import Tag

from site_crawl.crawler.models import Page

_RETRY_STATUS = frozenset(range(500, 600)) | {429}


class FetchError(Exception):
    """Any failure to fetch or read a page; the URL is abandoned by the caller."""

    def __init__(self, url: str, reason: str, *, status: Optional[int] = None, retryable: bool = False) -> None:
        super().__init__(f"{reason} requesting {url}")
        self.url = url
        self.reason = reason
        self.status = status
        self.retryable = retryable


def extract_hrefs(html: str) -> Set[str]:
    """Return every <a href> value in *html*, stripped, without duplicates."""
    soup = BeautifulSoup(html, "html.parser")
    hrefs: Set[str] = set()
    for tag in soup.find_all("a", href=True):
        if not isinstance(tag, Tag):
            continue
        href_val = tag.get("href")
        if not isinstance(href_val, str):
            continue
        hrefs.add(href_val.strip())
    return hrefs


class Fetcher:
    """Issues GET requests through a shared aiohttp session."""

    def __init__(self, session: ClientSession) -> None:
        self.session = session

    async def fetch(self, url: str) -> Page:
        """
        Fetch *url* and return the page it resolved to: the final URL after
        redirects and the raw hrefs found on it.

        Raises FetchError on transport errors, timeouts, a status outside
        200..399 or a body that cannot be decoded. Non-HTML responses give
        an empty link set.
        """
        try:
            async with self.session.get(url, raise_for_status=False) as resp:
                if resp.status < 200 or resp.status > 399:
                    raise FetchError(
                        url,
                        f"not good status code {resp.status}",
                        status=resp.status,
                        retryable=resp.status in _RETRY_STATUS,
                    )
                final_url = str(resp.url)
                ctype = resp.headers.get("Content-Type", "").lower()
                if ctype and "html" not in ctype:
                    return Page(final_url, frozenset())
                text = await resp.text(errors="strict")
        except FetchError:
            raise
        except asyncio.TimeoutError as exc:
            raise FetchError(url, "timeout", retryable=True) from exc
        except ClientError as exc:
            raise FetchError(url, f"transport error: {exc}", retryable=True) from exc
        except UnicodeDecodeError as exc:
            raise FetchError(url, f"undecodable body: {exc}") from exc
        return Page(final_url, frozenset(extract_hrefs(text)))
