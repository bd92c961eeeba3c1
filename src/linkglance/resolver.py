"""Link preview resolution.

``LinkPreviewResolver`` is the public entry point. Per request:

  cache hit            → return the stored result, no network call
  cache miss           → scheme check → source.load → cache.put → return
  any failure          → ResolutionError, nothing cached

Concurrent misses for the same URL share one ``source.load`` call through
the ``InFlightRegistry``. This is the only place lower-level failures are
classified into ``ResolutionError``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import urlsplit

import structlog

from linkglance.cache import Cache, InFlightRegistry
from linkglance.errors import ErrorCode, ExtractError, FetchError, ResolutionError
from linkglance.models.preview import ResolveOptions
from linkglance.sources import DelegateError

if TYPE_CHECKING:
    from linkglance.models.preview import PreviewResult
    from linkglance.protocols import CacheProtocol, PreviewSource


class LinkPreviewResolver:
    """Resolve URLs to preview metadata through a cache."""

    def __init__(
        self,
        source: PreviewSource,
        cache: CacheProtocol | None = None,
        inflight: InFlightRegistry | None = None,
    ) -> None:
        self._source = source
        self._cache: CacheProtocol = cache if cache is not None else Cache()
        self._inflight = inflight if inflight is not None else InFlightRegistry()

    @property
    def cache(self) -> CacheProtocol:
        return self._cache

    def peek_cache(self, url: str) -> PreviewResult | None:
        """Synchronous lookup that never touches the network."""
        return self._cache.get(url.strip())

    def clear_cache(self) -> None:
        self._cache.clear()

    async def resolve(self, url: str, options: ResolveOptions | None = None) -> PreviewResult:
        """Return the preview for ``url``, fetching it on cache miss.

        Raises ``ResolutionError`` on every failure. When several calls for
        the same URL overlap, the options of the call that started the
        resolution apply to all of them.
        """
        result, _ = await self.resolve_with_status(url, options)
        return result

    async def resolve_with_status(
        self, url: str, options: ResolveOptions | None = None
    ) -> tuple[PreviewResult, bool]:
        """Like ``resolve``, also reporting whether the cache served the result."""
        options = options if options is not None else ResolveOptions()
        key = url.strip()
        log = structlog.get_logger().bind(url=key)

        if not key:
            raise ResolutionError(
                code=ErrorCode.INVALID_INPUT,
                message="URL must not be empty",
                suggestion="Provide an http(s) URL.",
                recoverable=False,
            )

        cached = self._cache.get(key)
        if cached is not None:
            log.info("cache_hit", kind=cached.kind)
            return cached, True

        self._check_scheme(key)
        log.info("cache_miss")
        result = await self._inflight.run(key, lambda: self._load_and_store(key, options))
        return result, False

    def _check_scheme(self, url: str) -> None:
        allowed = self._source.schemes
        if allowed is None:
            return
        try:
            parts = urlsplit(url)
        except ValueError as exc:
            raise ResolutionError(
                code=ErrorCode.INVALID_INPUT,
                message=f"Malformed URL: {url} ({exc})",
                suggestion="Check the URL for typos such as an unclosed '[' in the host.",
                recoverable=False,
            ) from exc
        if parts.scheme.lower() in allowed and parts.netloc:
            return
        raise ResolutionError(
            code=ErrorCode.UNSUPPORTED_SCHEME,
            message=f"Unsupported URL: {url}",
            suggestion=f"Only {', '.join(sorted(allowed))} URLs with a host can be previewed.",
            recoverable=False,
        )

    async def _load_and_store(self, url: str, options: ResolveOptions) -> PreviewResult:
        log = structlog.get_logger().bind(url=url)
        try:
            result = await self._source.load(url, options)
        except FetchError as exc:
            log.warning("resolution_failed", code=ErrorCode.FETCH_FAILED, kind=exc.kind)
            raise ResolutionError(
                code=ErrorCode.FETCH_FAILED,
                message=exc.message,
                suggestion="The page may be temporarily unavailable. Try again later.",
                recoverable=exc.recoverable,
                cause=exc,
            ) from exc
        except DelegateError as exc:
            log.warning("resolution_failed", code=ErrorCode.FETCH_FAILED, kind="DELEGATE")
            raise ResolutionError(
                code=ErrorCode.FETCH_FAILED,
                message=exc.message,
                suggestion="The host metadata provider could not resolve this URL.",
                recoverable=True,
                cause=exc,
            ) from exc
        except ExtractError as exc:
            log.warning("resolution_failed", code=ErrorCode.PARSE_FAILED, reason=exc.reason)
            raise ResolutionError(
                code=ErrorCode.PARSE_FAILED,
                message=str(exc),
                suggestion="The URL did not return a readable document.",
                recoverable=True,
                cause=exc,
            ) from exc

        self._cache.put(url, result, options.ttl)
        log.info("cache_store", kind=result.kind, ttl_seconds=options.ttl.total_seconds())
        return result
