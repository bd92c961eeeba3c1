"""Integration test fixtures.

Provides a fully wired AppState: real Cache, real Fetcher on an httpx client
whose traffic is intercepted by respx in each test.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

import httpx
import pytest

from linkglance.cache import Cache
from linkglance.config import Settings
from linkglance.fetcher import Fetcher
from linkglance.resolver import LinkPreviewResolver
from linkglance.sources import DirectSource
from linkglance.state import AppState

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


@pytest.fixture()
async def app_state() -> AsyncGenerator[AppState, None]:
    """Full AppState wired for handler integration tests."""
    settings = Settings()
    cache = Cache(
        max_entries=settings.cache.max_entries,
        default_ttl=timedelta(days=settings.cache.ttl_days),
    )
    async with httpx.AsyncClient() as client:
        resolver = LinkPreviewResolver(DirectSource(Fetcher(client)), cache)
        yield AppState(settings=settings, cache=cache, resolver=resolver, http_client=client)
