"""Resolution strategies.

The strategy is picked once, when the resolver is built: either the direct
fetch-and-parse pipeline, or a host-native delegate that does the whole job
itself.
"""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING

import structlog

from linkglance.extractor import extract
from linkglance.fetcher import Fetcher
from linkglance.models.preview import DelegatedMetadata, StandardInfo

if TYPE_CHECKING:
    import httpx

    from linkglance.config import Settings
    from linkglance.models.preview import PreviewResult, ResolveOptions
    from linkglance.protocols import FetcherProtocol, MetadataDelegate, PreviewSource

log = structlog.get_logger()


class DelegateError(Exception):
    """The host delegate failed or returned something unusable."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(message)
        self.url = url
        self.message = message


class DirectSource:
    """Fetch the URL and extract metadata from the response."""

    schemes: frozenset[str] | None = frozenset({"http", "https"})

    def __init__(self, fetcher: FetcherProtocol) -> None:
        self._fetcher = fetcher

    async def load(self, url: str, options: ResolveOptions) -> PreviewResult:
        """Raises ``FetchError`` or ``ExtractError``; the resolver maps both."""
        fetched = await self._fetcher.fetch(url)
        result = extract(fetched, include_images=options.include_images)
        log.info("extract_complete", url=url, kind=result.kind)
        return result


class DelegatedSource:
    """Hand the URL to a host-native metadata extractor."""

    schemes: frozenset[str] | None = None

    def __init__(self, delegate: MetadataDelegate) -> None:
        self._delegate = delegate

    async def load(self, url: str, options: ResolveOptions) -> PreviewResult:
        try:
            record = await self._delegate(url)
            meta = DelegatedMetadata.model_validate(record)
        except Exception as exc:
            raise DelegateError(url, f"Metadata delegate failed for {url}: {exc}") from exc

        log.info("delegate_complete", url=url)
        return StandardInfo(
            title=(meta.title or "").strip(),
            description=(meta.description or "").strip(),
            image=(meta.image_url or "").strip() if options.include_images else "",
            icon=(meta.favicon or "").strip(),
        )


def load_delegate(path: str) -> MetadataDelegate:
    """Import a delegate from a ``"package.module:attribute"`` path."""
    module_name, sep, attribute = path.partition(":")
    if not sep or not module_name or not attribute:
        raise ValueError(f"Delegate path must look like 'module:attribute', got {path!r}")
    module = importlib.import_module(module_name)
    delegate = getattr(module, attribute)
    if not callable(delegate):
        raise TypeError(f"Delegate {path!r} is not callable")
    return delegate


def build_source(
    settings: Settings,
    client: httpx.AsyncClient | None = None,
    *,
    delegate: MetadataDelegate | None = None,
) -> PreviewSource:
    """Select the resolution strategy from configuration.

    ``delegate`` overrides ``settings.resolver.delegate`` for hosts that
    wire the delegate in code rather than by import path.
    """
    if settings.resolver.strategy == "delegated":
        if delegate is None:
            if not settings.resolver.delegate:
                raise ValueError("resolver.delegate is required when strategy is 'delegated'")
            delegate = load_delegate(settings.resolver.delegate)
        log.info("source_selected", strategy="delegated")
        return DelegatedSource(delegate)

    if client is None:
        raise ValueError("An HTTP client is required for the direct strategy")
    log.info("source_selected", strategy="direct")
    return DirectSource(Fetcher.from_settings(client, settings.fetcher))
