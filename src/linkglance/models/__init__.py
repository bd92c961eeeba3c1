from __future__ import annotations

from linkglance.models.cache import CacheEntry
from linkglance.models.preview import (
    DEFAULT_TTL,
    DelegatedMetadata,
    ImageInfo,
    PreviewResult,
    ResolveOptions,
    StandardInfo,
)
from linkglance.models.tools import (
    LinkPreviewOutput,
    PeekLinkPreviewInput,
    ResolveLinkPreviewInput,
)

__all__ = [
    # preview
    "DEFAULT_TTL",
    "StandardInfo",
    "ImageInfo",
    "PreviewResult",
    "ResolveOptions",
    "DelegatedMetadata",
    # cache
    "CacheEntry",
    # tools
    "ResolveLinkPreviewInput",
    "PeekLinkPreviewInput",
    "LinkPreviewOutput",
]
