# site_crawl/crawler/__init__.py
"""site_crawl.crawler: движок обхода — очередь, воркеры, лимитер, дедупликация."""

from .crawler import AsyncCrawler
from .dedup import UrlSet
from .fetcher import Fetcher, FetchError, extract_hrefs
from .models import Admission, CrawlStats, Page
from .rate_limiter import SlidingWindowRateLimiter
from .resolver import UrlResolver, canonicalize

__all__ = [
    "Admission",
    "AsyncCrawler",
    "CrawlStats",
    "FetchError",
    "Fetcher",
    "Page",
    "SlidingWindowRateLimiter",
    "UrlResolver",
    "UrlSet",
    "canonicalize",
    "extract_hrefs",
]
