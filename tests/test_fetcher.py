# File: tests/test_fetcher.py
from __future__ import annotations

import asyncio

import pytest
from aiohttp import ClientSession, ClientTimeout, web

from site_crawl.crawler.fetcher import Fetcher, FetchError, extract_hrefs


def test_extract_hrefs_is_a_trimmed_set():
    html = (
        '<a href="/x">one</a><a href=" /x ">two</a><a href="/y">y</a>'
        '<a name="anchor">no href</a><link href="/style.css">'
    )
    assert extract_hrefs(html) == {"/x", "/y"}


def test_extract_hrefs_tolerates_broken_markup():
    assert extract_hrefs('<div><a href="/ok">ok<p>') == {"/ok"}
    assert extract_hrefs("") == set()


@pytest.mark.asyncio()
async def test_fetch_returns_links(serve, links_page):
    base = await serve({"/": links_page("/a", "/b", "/a")})
    async with ClientSession() as session:
        page = await Fetcher(session).fetch(f"{base}/")
    assert page.hrefs == {"/a", "/b"}
    assert page.url == f"{base}/"


@pytest.mark.asyncio()
async def test_fetch_follows_redirects_and_reports_final_url(serve, links_page):
    async def moved(_):
        raise web.HTTPFound("/target")

    base = await serve({"/old": moved, "/target": links_page("/z")})
    async with ClientSession() as session:
        page = await Fetcher(session).fetch(f"{base}/old")
    assert page.hrefs == {"/z"}
    assert page.url == f"{base}/target"


@pytest.mark.asyncio()
async def test_fetch_404_is_not_retryable(serve, links_page):
    base = await serve({"/": links_page()})
    async with ClientSession() as session:
        with pytest.raises(FetchError) as info:
            await Fetcher(session).fetch(f"{base}/missing")
    assert info.value.status == 404
    assert not info.value.retryable


@pytest.mark.asyncio()
async def test_fetch_5xx_is_retryable(serve):
    async def broken(_):
        return web.Response(status=503)

    base = await serve({"/": broken})
    async with ClientSession() as session:
        with pytest.raises(FetchError) as info:
            await Fetcher(session).fetch(f"{base}/")
    assert info.value.status == 503
    assert info.value.retryable


@pytest.mark.asyncio()
async def test_fetch_non_html_has_no_links(serve):
    async def data(_):
        return web.json_response({"href": "/nope"})

    base = await serve({"/data": data})
    async with ClientSession() as session:
        page = await Fetcher(session).fetch(f"{base}/data")
    assert page.hrefs == set()


@pytest.mark.asyncio()
async def test_fetch_timeout_becomes_fetch_error(serve):
    async def slow(_):
        await asyncio.sleep(1)
        return web.Response(text="late", content_type="text/html")

    base = await serve({"/": slow})
    async with ClientSession(timeout=ClientTimeout(total=0.2)) as session:
        with pytest.raises(FetchError) as info:
            await Fetcher(session).fetch(f"{base}/")
    assert info.value.retryable
    assert info.value.status is None


@pytest.mark.asyncio()
async def test_fetch_connection_refused():
    async with ClientSession(timeout=ClientTimeout(total=2)) as session:
        with pytest.raises(FetchError):
            await Fetcher(session).fetch("http://127.0.0.1:9/")
