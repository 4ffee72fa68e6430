# site_crawl/crawler/models.py
"""
Data models for the SiteCrawl engine.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import FrozenSet


@dataclass(frozen=True, slots=True)
class Admission:
    """Rate limiter verdict: go now, or come back after ``retry_after`` seconds."""

    proceed: bool
    retry_after: float = 0.0


PROCEED = Admission(proceed=True)


@dataclass(frozen=True, slots=True)
class Page:
    """A fetched page: the URL it was served from after redirects and its raw hrefs."""

    url: str
    hrefs: FrozenSet[str]


@dataclass(slots=True)
class CrawlStats:
    """Counters collected by the workers over one crawl."""

    fetched: int = 0
    failed: int = 0
    skipped: int = 0
    emitted: int = 0
    deferred: int = 0
    retried: int = 0
    spilled: int = 0
    started_at: float = field(default_factory=time.monotonic)
    finished_at: float | None = None

    @property
    def duration(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return end - self.started_at

    def finish(self) -> None:
        self.finished_at = time.monotonic()
