"""Background scheduler coroutine for cache sweeping."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from linkglance.state import AppState

log = structlog.get_logger()


async def run_cache_sweep_scheduler(state: AppState) -> None:
    """Drop expired cache entries every ``sweep_interval_seconds``.

    Expired entries are already ignored on read; the sweep only reclaims
    memory held by entries nobody asks for again. Runs until cancelled.
    """
    interval = state.settings.cache.sweep_interval_seconds
    if interval <= 0:
        log.info("cache_sweep_disabled")
        return

    while True:
        await asyncio.sleep(interval)
        try:
            state.cache.sweep()
        except Exception:
            log.warning("cache_sweep_error", exc_info=True)
