"""Unit tests for linkglance.cache."""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import TYPE_CHECKING

import pytest

from linkglance.cache import Cache, InFlightRegistry
from linkglance.models.preview import ImageInfo, StandardInfo

if TYPE_CHECKING:
    from conftest import FakeClock

INFO = StandardInfo(title="Title", description="Desc", icon="https://example.com/favicon.ico")
PHOTO = ImageInfo(image="https://example.com/photo.jpg")


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


class TestCacheBasics:
    def test_put_and_get(self, cache: Cache) -> None:
        cache.put("https://example.com", INFO, timedelta(hours=1))
        assert cache.get("https://example.com") == INFO

    def test_get_missing_returns_none(self, cache: Cache) -> None:
        assert cache.get("https://nowhere.example") is None

    def test_variants_kept_apart(self, cache: Cache) -> None:
        cache.put("https://example.com/a", INFO)
        cache.put("https://example.com/b", PHOTO)
        assert isinstance(cache.get("https://example.com/a"), StandardInfo)
        assert isinstance(cache.get("https://example.com/b"), ImageInfo)

    def test_key_is_used_verbatim(self, cache: Cache) -> None:
        cache.put("https://example.com/", INFO)
        assert cache.get("https://example.com") is None

    def test_overwrite_replaces_result(self, cache: Cache) -> None:
        cache.put("https://example.com", INFO)
        cache.put("https://example.com", PHOTO)
        assert cache.get("https://example.com") == PHOTO
        assert len(cache) == 1

    def test_clear(self, cache: Cache) -> None:
        cache.put("https://example.com/a", INFO)
        cache.put("https://example.com/b", INFO)
        cache.clear()
        assert len(cache) == 0
        assert cache.get("https://example.com/a") is None

    def test_non_positive_ttl_rejected(self, cache: Cache) -> None:
        with pytest.raises(ValueError):
            cache.put("https://example.com", INFO, timedelta(0))

    def test_invalid_max_entries(self) -> None:
        with pytest.raises(ValueError):
            Cache(max_entries=0)


class TestCacheExpiry:
    def test_entry_valid_before_expiry(self, cache: Cache, clock: FakeClock) -> None:
        cache.put("https://example.com", INFO, timedelta(seconds=10))
        clock.advance(9)
        assert cache.get("https://example.com") == INFO

    def test_expired_entry_is_absent_and_removed(self, cache: Cache, clock: FakeClock) -> None:
        cache.put("https://example.com", INFO, timedelta(seconds=1))
        clock.advance(2)
        assert cache.get("https://example.com") is None
        assert len(cache) == 0

    def test_default_ttl_is_thirty_days(self, cache: Cache, clock: FakeClock) -> None:
        cache.put("https://example.com", INFO)
        clock.advance(timedelta(days=30).total_seconds() - 1)
        assert cache.get("https://example.com") == INFO
        clock.advance(2)
        assert cache.get("https://example.com") is None

    def test_overwrite_refreshes_expiry(self, cache: Cache, clock: FakeClock) -> None:
        cache.put("https://example.com", INFO, timedelta(seconds=5))
        clock.advance(4)
        cache.put("https://example.com", INFO, timedelta(seconds=5))
        clock.advance(4)
        assert cache.get("https://example.com") == INFO

    def test_sweep_removes_only_expired(self, cache: Cache, clock: FakeClock) -> None:
        cache.put("https://example.com/short", INFO, timedelta(seconds=1))
        cache.put("https://example.com/long", INFO, timedelta(hours=1))
        clock.advance(5)
        assert cache.sweep() == 1
        assert len(cache) == 1
        assert cache.get("https://example.com/long") == INFO


class TestCacheEviction:
    def test_least_recently_used_evicted(self, clock: FakeClock) -> None:
        cache = Cache(max_entries=2, clock=clock)
        cache.put("https://a.example", INFO)
        clock.advance(1)
        cache.put("https://b.example", INFO)
        clock.advance(1)
        cache.get("https://a.example")  # a is now more recent than b
        clock.advance(1)
        cache.put("https://c.example", INFO)

        assert cache.get("https://a.example") == INFO
        assert cache.get("https://b.example") is None
        assert cache.get("https://c.example") == INFO

    def test_equal_recency_evicts_earliest_expiry(self, clock: FakeClock) -> None:
        cache = Cache(max_entries=2, clock=clock)
        cache.put("https://long.example", INFO, timedelta(hours=2))
        cache.put("https://short.example", INFO, timedelta(hours=1))
        # Same clock reading for all three puts: recency ties
        cache.put("https://new.example", INFO, timedelta(hours=3))

        assert cache.get("https://short.example") is None
        assert cache.get("https://long.example") == INFO
        assert cache.get("https://new.example") == INFO

    def test_unbounded_by_default(self, cache: Cache) -> None:
        for i in range(50):
            cache.put(f"https://example.com/{i}", INFO)
        assert len(cache) == 50


# ---------------------------------------------------------------------------
# InFlightRegistry
# ---------------------------------------------------------------------------


class TestInFlightRegistry:
    async def test_concurrent_callers_share_one_task(self) -> None:
        registry = InFlightRegistry()
        release = asyncio.Event()
        calls = 0

        async def work() -> StandardInfo:
            nonlocal calls
            calls += 1
            await release.wait()
            return INFO

        waiters = [asyncio.create_task(registry.run("k", work)) for _ in range(5)]
        await asyncio.sleep(0)
        assert "k" in registry
        release.set()
        results = await asyncio.gather(*waiters)

        assert calls == 1
        assert results == [INFO] * 5
        assert len(registry) == 0

    async def test_failure_reaches_every_waiter(self) -> None:
        registry = InFlightRegistry()
        release = asyncio.Event()

        async def work() -> StandardInfo:
            await release.wait()
            raise RuntimeError("boom")

        waiters = [asyncio.create_task(registry.run("k", work)) for _ in range(3)]
        await asyncio.sleep(0)
        release.set()
        results = await asyncio.gather(*waiters, return_exceptions=True)

        assert all(isinstance(r, RuntimeError) for r in results)
        assert "k" not in registry

    async def test_cancelled_waiter_does_not_cancel_work(self) -> None:
        registry = InFlightRegistry()
        release = asyncio.Event()
        finished = asyncio.Event()

        async def work() -> StandardInfo:
            await release.wait()
            finished.set()
            return INFO

        first = asyncio.create_task(registry.run("k", work))
        await asyncio.sleep(0)
        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first

        second = asyncio.create_task(registry.run("k", work))
        await asyncio.sleep(0)
        release.set()

        assert await second == INFO
        assert finished.is_set()

    async def test_new_task_after_completion(self) -> None:
        registry = InFlightRegistry()
        calls = 0

        async def work() -> StandardInfo:
            nonlocal calls
            calls += 1
            return INFO

        await registry.run("k", work)
        await asyncio.sleep(0)
        await registry.run("k", work)
        assert calls == 2
