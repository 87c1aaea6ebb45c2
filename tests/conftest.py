"""Shared fixtures: a fake web served through ``httpx.MockTransport``."""

import asyncio
from typing import Callable, Dict, List, Optional, Union
from unittest.mock import AsyncMock

import httpx
import pytest

from linkbot.services.http_fetch import PageFetcher
from linkbot.services.link_cache import LinkCache
from linkbot.services.relocator import ImageRelocator

Route = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


def html_page(
    meta: Optional[Dict[str, str]] = None,
    title: Optional[str] = None,
    body: str = "<p>hello</p>",
) -> str:
    tags = "".join(
        f'<meta property="{key}" content="{value}">' for key, value in (meta or {}).items()
    )
    title_tag = f"<title>{title}</title>" if title is not None else ""
    return f"<html><head>{title_tag}{tags}</head><body>{body}</body></html>"


def html_response(html: str, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code,
        content=html.encode("utf-8"),
        headers={"content-type": "text/html; charset=utf-8"},
    )


class FakeWeb:
    """Routes requests by exact URL and records every request it sees."""

    def __init__(self, delay: float = 0.0) -> None:
        self.routes: Dict[str, Route] = {}
        self.requests: List[httpx.Request] = []
        self.delay = delay
        self.active = 0
        self.max_active = 0

    def add(self, url: str, route: Route) -> None:
        self.routes[url] = route

    def calls_to(self, url: str) -> int:
        return sum(1 for r in self.requests if str(r.url) == url)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            route = self.routes.get(str(request.url))
            if route is None:
                return httpx.Response(404)
            if callable(route):
                result = route(request)
                if asyncio.iscoroutine(result):
                    result = await result
                return result
            # fresh copy so the same route can be served more than once
            return httpx.Response(route.status_code, headers=route.headers, content=route.content)
        finally:
            self.active -= 1

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def web() -> FakeWeb:
    return FakeWeb()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def media_store() -> AsyncMock:
    store = AsyncMock()
    store.upload.return_value = "mxc://bot.local/relocated"
    return store


def build_cache(
    web: FakeWeb,
    media_store=None,
    *,
    clock=None,
    timeout: float = 3.0,
    max_bytes: int = 5 * 1024 * 1024,
    lock_mode: str = "per_url",
    ttl: float = 300,
) -> LinkCache:
    fetcher = PageFetcher(web.client(), timeout=timeout, max_bytes=max_bytes)
    relocator = ImageRelocator(media_store) if media_store is not None else None
    kwargs = {"clock": clock} if clock is not None else {}
    return LinkCache(fetcher, relocator, ttl=ttl, lock_mode=lock_mode, **kwargs)
