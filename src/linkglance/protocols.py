"""Protocol interfaces for swappable components.

The resolver references these protocols, not the concrete implementations.
This allows:
- Tests to use call-counting fakes in place of the network-backed Fetcher
- The direct and delegated resolution strategies to be swapped by config
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import timedelta

    from linkglance.fetcher import FetchedContent
    from linkglance.models.preview import PreviewResult, ResolveOptions


class CacheProtocol(Protocol):
    """Interface for the preview cache backend."""

    def get(self, url: str) -> PreviewResult | None: ...

    def put(self, url: str, result: PreviewResult, ttl: timedelta | None = None) -> None: ...

    def clear(self) -> None: ...

    def sweep(self) -> int: ...


class FetcherProtocol(Protocol):
    """Interface for the HTTP content fetcher."""

    async def fetch(self, url: str) -> FetchedContent: ...


class PreviewSource(Protocol):
    """A strategy that produces a preview for a URL on cache miss.

    ``schemes`` lists the URL schemes the source accepts; ``None`` means
    any scheme is handed to the source.
    """

    schemes: frozenset[str] | None

    async def load(self, url: str, options: ResolveOptions) -> PreviewResult: ...


class MetadataDelegate(Protocol):
    """Host-provided metadata extractor used by the delegated strategy.

    Returns a mapping with optional ``title``, ``description``, ``imageUrl``
    and ``favicon`` strings. Any exception counts as a failed resolution.
    """

    async def __call__(self, url: str) -> Mapping[str, Any]: ...
