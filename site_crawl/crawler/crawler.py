# === FILE: site_crawl/crawler/crawler.py ===
from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from typing import Callable, Deque, Optional

from aiohttp import ClientSession, ClientTimeout

from site_crawl.config import CrawlerConfig
from site_crawl.crawler.dedup import UrlSet
from site_crawl.crawler.fetcher import Fetcher, FetchError
from site_crawl.crawler.models import Admission, CrawlStats, Page
from site_crawl.crawler.rate_limiter import SlidingWindowRateLimiter
from site_crawl.crawler.resolver import UrlResolver
from site_crawl.logger import LOGGER_NAME

__all__ = ("AsyncCrawler",)

OnDiscovered = Callable[[str], None]


class AsyncCrawler:
    """Асинхронный краулер одного хоста: очередь, пул воркеров, общий rate-limit и дедупликация."""

    def __init__(self, config: CrawlerConfig, on_discovered: Optional[OnDiscovered] = None) -> None:
        self.config = config
        self.resolver = UrlResolver(str(config.base_url), config.skip_prefixes)
        self.limiter = SlidingWindowRateLimiter(config.max_requests_per_second, config.window)
        self.visited = UrlSet("visited")
        self.seen = UrlSet("seen")
        self.concurrency: int = config.worker_count
        self.stats = CrawlStats()
        self.session: Optional[ClientSession] = None
        self.fetcher: Optional[Fetcher] = None
        self.logger = logging.getLogger(LOGGER_NAME)
        self._emit: OnDiscovered = on_discovered or (lambda url: None)
        self._queue: Optional[asyncio.Queue[str]] = None
        self._spill: Deque[str] = deque()

    async def __aenter__(self) -> AsyncCrawler:
        timeout = ClientTimeout(total=self.config.timeout)
        self.session = ClientSession(
            timeout=timeout,
            headers={"User-Agent": self.config.user_agent},
            raise_for_status=False,
        )
        self.fetcher = Fetcher(self.session)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self.session and not self.session.closed:
            await self.session.close()

    # ------------------------------------------------------------------ #
    # Driver                                                             #
    # ------------------------------------------------------------------ #

    async def crawl(self) -> CrawlStats:
        """Seed the queue, run the pool until all work is done (or forever with keep_alive)."""
        if self.fetcher is None:
            raise RuntimeError("Session not initialized")
        self._queue = asyncio.Queue(maxsize=self.config.queue_size)
        self.stats = CrawlStats()
        self.logger.info(
            "Старт обхода: %s (воркеров: %d, лимит: %s req/%ss)",
            self.resolver.seed,
            self.concurrency,
            self.config.max_requests_per_second if self.limiter.enabled else "∞",
            self.config.window,
        )
        await self._offer(self.resolver.seed)
        workers = [asyncio.create_task(self._worker(i)) for i in range(self.concurrency)]
        try:
            await self._wait_drained()
            if self.config.keep_alive:
                self.logger.info("Очередь пуста, воркеры ожидают новых URL")
                await asyncio.gather(*workers)
        finally:
            for w in workers:
                w.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            self.stats.finish()
            self._log_summary()
        return self.stats

    async def _wait_drained(self) -> None:
        assert self._queue is not None
        while True:
            await self._queue.join()
            if not self._spill:
                return
            self._refill()

    def _log_summary(self) -> None:
        s = self.stats
        duration = s.duration
        self.logger.info(
            "Завершено: %d URL найдено, %d страниц загружено за %.2f с (%.2f стр/с)",
            s.emitted,
            s.fetched,
            duration,
            s.fetched / duration if duration else 0,
        )
        self.logger.info(
            "Ошибок: %d, повторов: %d, пропущено дублей: %d, отложено лимитером: %d, вытеснено из очереди: %d",
            s.failed,
            s.retried,
            s.skipped,
            s.deferred,
            s.spilled,
        )

    # ------------------------------------------------------------------ #
    # Worker                                                             #
    # ------------------------------------------------------------------ #

    async def _worker(self, idx: int) -> None:
        assert self._queue is not None
        queue = self._queue
        while True:
            url = await queue.get()
            try:
                await self._process(url)
            except asyncio.CancelledError:
                raise
            except Exception:
                self.logger.exception("worker %d: unexpected error on %s", idx, url)
            finally:
                # spilled work goes back in before this item stops counting as active
                self._refill()
                queue.task_done()

    async def _process(self, url: str) -> None:
        if self.visited.contains(url):
            self.stats.skipped += 1
            return

        admission = self.limiter.admit()
        if not admission.proceed:
            self.stats.deferred += 1
            if self._try_put(url):
                self.logger.debug("rate limit: %s back to queue, sleeping %.3f s", url, admission.retry_after)
                await asyncio.sleep(admission.retry_after)
                return
            await self._acquire_slot(admission)

        if not self.visited.add_if_absent(url):
            self.stats.skipped += 1
            self.logger.debug("already visited: %s", url)
            return

        page = await self._fetch_with_retry(url)
        if page is None:
            return
        if not self.resolver.on_seed_host(page.url):
            self.logger.debug("%s redirected off the seed host to %s, links ignored", url, page.url)
            return
        self.logger.debug("from %s got %d links", page.url, len(page.hrefs))
        for href in page.hrefs:
            target = self.resolver.resolve(href, page.url)
            if target is not None:
                await self._offer(target)

    async def _fetch_with_retry(self, url: str) -> Optional[Page]:
        assert self.fetcher is not None
        attempts = 0
        while True:
            start = time.monotonic()
            try:
                page = await self.fetcher.fetch(url)
            except FetchError as exc:
                if not exc.retryable or attempts >= self.config.retry_times:
                    self.stats.failed += 1
                    self.logger.warning("err: %s", exc)
                    return None
                attempts += 1
                self.stats.retried += 1
                backoff = min(60.0, self.config.retry_backoff * 2 ** (attempts - 1))
                self.logger.debug(
                    "Retry %d/%d for %s after %.2f s", attempts, self.config.retry_times, url, backoff
                )
                await asyncio.sleep(backoff)
                await self._acquire_slot()
            else:
                self.stats.fetched += 1
                self.logger.debug("requested %s in %.3f s", url, time.monotonic() - start)
                return page

    async def _acquire_slot(self, admission: Optional[Admission] = None) -> None:
        """Sleep until the limiter admits a request that this worker must make itself."""
        while admission is None or not admission.proceed:
            if admission is not None:
                await asyncio.sleep(admission.retry_after)
            admission = self.limiter.admit()

    # ------------------------------------------------------------------ #
    # Queue helpers                                                      #
    # ------------------------------------------------------------------ #

    async def _offer(self, url: str) -> None:
        """Emit and queue *url* on first sight; later sightings are already covered."""
        if not self.seen.add_if_absent(url):
            return
        self.stats.emitted += 1
        self._emit(url)
        if not self.visited.contains(url):
            await self._enqueue(url)

    async def _enqueue(self, url: str) -> None:
        assert self._queue is not None
        if self._try_put(url):
            return
        try:
            await asyncio.wait_for(self._queue.put(url), timeout=self.config.enqueue_timeout)
        except asyncio.TimeoutError:
            self._spill.append(url)
            self.stats.spilled += 1
            self.logger.debug("queue full for %.1f s, deferring %s", self.config.enqueue_timeout, url)

    def _try_put(self, url: str) -> bool:
        assert self._queue is not None
        try:
            self._queue.put_nowait(url)
        except asyncio.QueueFull:
            return False
        return True

    def _refill(self) -> None:
        assert self._queue is not None
        while self._spill and not self._queue.full():
            self._queue.put_nowait(self._spill.popleft())
