import asyncio

import httpx
import pytest

from inliner.config import Settings


PAGE_URL = "https://ex.com/"


def make_transport(routes, delays=None, seen=None):
    """
    MockTransport serving ``routes`` ({url: body | status | exception}).
    ``delays`` maps a url to seconds to sleep before answering.
    Unknown URLs get a 404.
    """
    delays = delays or {}

    async def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if seen is not None:
            seen.append(request)
        if url in delays:
            await asyncio.sleep(delays[url])
        route = routes.get(url, 404)
        if isinstance(route, Exception):
            raise route
        if isinstance(route, int):
            return httpx.Response(route, request=request)
        if isinstance(route, httpx.Response):
            return route
        return httpx.Response(200, text=route, request=request)

    return httpx.MockTransport(handler)


@pytest.fixture
def settings():
    return Settings(
        main_fetch_timeout=2.0,
        stylesheet_fetch_timeout=1.0,
        stylesheet_deadline=1.5,
        max_concurrent_stylesheets=15,
    )
