"""In-memory preview cache with TTL expiry and optional LRU bound.

The cache is process-local and owned by the resolver (or injected into
it). Expired entries are dropped lazily on read and eagerly by ``sweep()``.
A single coarse lock guards the map, so ``get`` is safe to call from any
thread, e.g. a UI thread peeking before it schedules a resolution.

``InFlightRegistry`` is the companion that coalesces concurrent misses for
the same key. It never writes to the cache itself: only a finished
resolution is stored, never a placeholder.
"""

from __future__ import annotations

import asyncio
import threading
import time
from datetime import timedelta
from typing import TYPE_CHECKING

import structlog

from linkglance.models.cache import CacheEntry
from linkglance.models.preview import DEFAULT_TTL

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from linkglance.models.preview import PreviewResult

log = structlog.get_logger()


class Cache:
    """TTL cache keyed by URL, implementing CacheProtocol."""

    def __init__(
        self,
        *,
        max_entries: int | None = None,
        default_ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._max_entries = max_entries
        self._default_ttl = default_ttl
        self._clock = clock

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, url: str) -> PreviewResult | None:
        """Return the stored result, or ``None`` on miss or expiry."""
        with self._lock:
            entry = self._entries.get(url)
            if entry is None:
                return None
            now = self._clock()
            if now >= entry.expires_at:
                del self._entries[url]
                log.debug("cache_expired", url=url)
                return None
            entry.last_used = now
            return entry.result

    def put(self, url: str, result: PreviewResult, ttl: timedelta | None = None) -> None:
        """Store or overwrite ``url`` with a fresh expiry of now + ttl."""
        ttl = self._default_ttl if ttl is None else ttl
        if ttl <= timedelta(0):
            raise ValueError("ttl must be positive")
        with self._lock:
            now = self._clock()
            self._entries[url] = CacheEntry(
                url=url,
                result=result,
                stored_at=now,
                expires_at=now + ttl.total_seconds(),
                last_used=now,
            )
            if self._max_entries is not None:
                while len(self._entries) > self._max_entries:
                    self._evict_one()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def sweep(self) -> int:
        """Remove every expired entry. Returns the number removed."""
        with self._lock:
            now = self._clock()
            expired = [url for url, entry in self._entries.items() if now >= entry.expires_at]
            for url in expired:
                del self._entries[url]
        log.info("cache_sweep_complete", removed=len(expired))
        return len(expired)

    def _evict_one(self) -> None:
        """Drop the least recently used entry; earliest expiry breaks ties.

        Caller must hold the lock.
        """
        victim = min(
            self._entries.values(),
            key=lambda entry: (entry.last_used, entry.expires_at),
        )
        del self._entries[victim.url]
        log.debug("cache_evicted", url=victim.url)


class InFlightRegistry:
    """Coalesces concurrent work for the same key into a single task.

    The first caller for a key starts the task; later callers await the
    same task until it finishes. Each waiter is shielded, so a caller that
    is cancelled only stops waiting: the task itself keeps running and its
    result still reaches the other waiters (and the cache).
    """

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task[PreviewResult]] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    async def run(
        self,
        key: str,
        factory: Callable[[], Awaitable[PreviewResult]],
    ) -> PreviewResult:
        task = self._tasks.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._tasks[key] = task
            task.add_done_callback(lambda done: self._finished(key, done))
        else:
            log.debug("inflight_joined", key=key)
        return await asyncio.shield(task)

    def _finished(self, key: str, task: asyncio.Task[PreviewResult]) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]
        # Mark the outcome as retrieved even if every waiter was cancelled
        if not task.cancelled():
            task.exception()
