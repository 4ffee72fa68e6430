# File: tests/conftest.py
from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Dict, Union

import pytest
import pytest_asyncio
from aiohttp import web

from site_crawl.config import CrawlerConfig

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]
Route = Union[str, Handler]


def _links_page(*hrefs: str) -> str:
    anchors = "".join(f'<a href="{h}">{h}</a>' for h in hrefs)
    return f"<html><body>{anchors}</body></html>"


@pytest.fixture()
def links_page() -> Callable[..., str]:
    """Return a builder of small HTML documents with one <a> per href."""
    return _links_page


@pytest.fixture()
def make_config():
    """
    Return a factory for CrawlerConfig with fast test defaults.
    Rate limiting is off unless the test asks for it.
    """

    def _make(base_url: str, **overrides) -> CrawlerConfig:
        params = dict(
            max_requests_per_second=0,
            timeout=2.0,
            user_agent="TestAgent/1.0",
            enqueue_timeout=0.2,
        )
        params.update(overrides)
        return CrawlerConfig(base_url=base_url, **params)

    return _make


@pytest_asyncio.fixture
async def serve() -> AsyncIterator[Callable[[Dict[str, Route]], Awaitable[str]]]:
    """
    Start an aiohttp app from a {path: html-or-handler} mapping, return its base URL.
    Every app started through the fixture is cleaned up afterwards.
    """
    runners: list[web.AppRunner] = []

    async def _serve(routes: Dict[str, Route]) -> str:
        app = web.Application()
        for path, route in routes.items():
            if isinstance(route, str):
                app.router.add_get(path, _static(route))
            else:
                app.router.add_get(path, route)
        runner = web.AppRunner(app)
        await runner.setup()
        site = web.TCPSite(runner, "127.0.0.1", 0)
        await site.start()
        runners.append(runner)
        port = runner.addresses[0][1]
        return f"http://127.0.0.1:{port}"

    try:
        yield _serve
    finally:
        for runner in runners:
            await runner.cleanup()


def _static(html: str) -> Handler:
    async def handler(_: web.Request) -> web.Response:
        return web.Response(text=html, content_type="text/html")

    return handler
