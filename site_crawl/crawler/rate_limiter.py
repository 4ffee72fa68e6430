# site_crawl/crawler/rate_limiter.py
"""
Sliding-window rate limiter shared by every worker of a crawl.
"""
from __future__ import annotations

import threading
import time
from collections import deque
from typing import Callable, Deque

from site_crawl.crawler.models import PROCEED, Admission


class SlidingWindowRateLimiter:
    """Admit at most ``rate`` requests in any trailing ``period`` seconds.

    Only admitted requests are recorded, so a caller that is told to wait
    does not use up a slot. ``rate <= 0`` disables limiting.
    """

    def __init__(
        self,
        rate: int,
        period: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if period <= 0:
            raise ValueError("period must be > 0")
        self.rate = rate
        self.period = period
        self._clock = clock
        self._req_times: Deque[float] = deque()
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.rate > 0

    def admit(self) -> Admission:
        """Record a request if the window has room, else say how long to wait."""
        if not self.enabled:
            return PROCEED
        with self._lock:
            now = self._clock()
            # remove timestamps that left the window
            while self._req_times and now - self._req_times[0] >= self.period:
                self._req_times.popleft()
            if len(self._req_times) < self.rate:
                self._req_times.append(now)
                return PROCEED
            wait = self.period - (now - self._req_times[0])
            return Admission(proceed=False, retry_after=max(wait, 0.0))

    def __len__(self) -> int:
        with self._lock:
            return len(self._req_times)
