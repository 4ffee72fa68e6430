# File: site_crawl/engine.py
"""site_crawl.engine: обёртка для запуска обхода из CLI и тестов."""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

from site_crawl.config import CrawlerConfig
from site_crawl.crawler.crawler import AsyncCrawler
from site_crawl.crawler.models import CrawlStats
from site_crawl.logger import logger

__all__ = ["start_crawl"]


async def start_crawl(
    cfg: CrawlerConfig,
    on_discovered: Callable[[str], None],
    crawl_timeout: Optional[float] = None,
) -> CrawlStats:
    """
    Запускает AsyncCrawler в контексте и возвращает статистику обхода.

    Parameters
    ----------
    cfg : CrawlerConfig
        Конфигурация обхода.
    on_discovered : Callable[[str], None]
        Вызывается один раз для каждого нового канонического URL.
    crawl_timeout : float, optional
        Общий таймаут обхода (секунд); None — без ограничения.
    """
    async with AsyncCrawler(cfg, on_discovered) as crawler:
        try:
            return await asyncio.wait_for(crawler.crawl(), timeout=crawl_timeout)
        except asyncio.TimeoutError:
            logger.error("Crawl did not finish within %s seconds", crawl_timeout)
            raise
