"""Shared test fixtures for the linkglance test suite."""

from __future__ import annotations

import asyncio

import pytest

from linkglance.cache import Cache
from linkglance.errors import FetchError, FetchErrorKind
from linkglance.fetcher import FetchedContent
from linkglance.resolver import LinkPreviewResolver
from linkglance.sources import DirectSource

ARTICLE_URL = "https://example.com/articles/tides"

ARTICLE_HTML = b"""<!doctype html>
<html>
<head>
  <meta charset="utf-8">
  <title>Element Title</title>
  <meta property="og:title" content="Open Graph Title">
  <meta name="twitter:title" content="Twitter Title">
  <meta property="og:description" content="  How   the moon moves the sea.  ">
  <meta name="description" content="Plain description">
  <meta property="og:image" content="/img/tides.png">
  <link rel="shortcut icon" href="/static/favicon.png">
</head>
<body>
  <img src="/img/inline.jpg" width="600" height="400">
</body>
</html>
"""


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CountingFetcher:
    """In-memory FetcherProtocol that records every call.

    ``responses`` maps URL to either a FetchedContent or an exception to
    raise. ``gate``, when set, holds every fetch until it is released.
    """

    def __init__(self, responses: dict[str, FetchedContent | Exception] | None = None) -> None:
        self.responses: dict[str, FetchedContent | Exception] = responses or {}
        self.calls: list[str] = []
        self.gate: asyncio.Event | None = None

    async def fetch(self, url: str) -> FetchedContent:
        self.calls.append(url)
        if self.gate is not None:
            await self.gate.wait()
        response = self.responses.get(url)
        if response is None:
            raise FetchError(
                FetchErrorKind.HTTP_STATUS, url, f"HTTP 404 fetching {url}", status_code=404
            )
        if isinstance(response, Exception):
            raise response
        return response


def html_content(
    body: bytes,
    url: str = ARTICLE_URL,
    content_type: str = "text/html; charset=utf-8",
) -> FetchedContent:
    return FetchedContent(
        url=url,
        requested_url=url,
        content=body,
        content_type=content_type,
        status_code=200,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def cache(clock: FakeClock) -> Cache:
    return Cache(clock=clock)


@pytest.fixture()
def fetcher() -> CountingFetcher:
    return CountingFetcher({ARTICLE_URL: html_content(ARTICLE_HTML)})


@pytest.fixture()
def resolver(fetcher: CountingFetcher, cache: Cache) -> LinkPreviewResolver:
    return LinkPreviewResolver(DirectSource(fetcher), cache)


@pytest.fixture()
def make_fetched():
    """Factory for FetchedContent values (see ``html_content``)."""
    return html_content


@pytest.fixture()
def article_html() -> bytes:
    return ARTICLE_HTML
