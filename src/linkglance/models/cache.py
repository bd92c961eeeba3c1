from __future__ import annotations

from pydantic import BaseModel

from linkglance.models.preview import PreviewResult


class CacheEntry(BaseModel):
    """A resolved preview held by the in-memory cache.

    Timestamps are seconds on the cache's monotonic clock, not wall time.
    """

    url: str
    result: PreviewResult
    stored_at: float
    expires_at: float
    last_used: float  # Drives LRU eviction when the cache is bounded
