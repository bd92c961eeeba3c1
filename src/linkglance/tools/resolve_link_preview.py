"""Tool handler for resolve_link_preview.

Receives AppState, delegates to the resolver, and returns a structured
dict. No MCP or FastMCP imports: server.py handles the MCP wiring.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

import structlog

from linkglance.errors import ErrorCode, ResolutionError
from linkglance.models.preview import ResolveOptions
from linkglance.models.tools import LinkPreviewOutput, ResolveLinkPreviewInput

if TYPE_CHECKING:
    from linkglance.state import AppState


async def handle(
    url: str,
    include_images: bool,
    ttl_seconds: int | None,
    state: AppState,
) -> dict:
    """Handle a resolve_link_preview tool call."""
    log = structlog.get_logger().bind(tool="resolve_link_preview", url=url)
    log.info("handler_called")

    # Validate input
    try:
        validated = ResolveLinkPreviewInput(
            url=url,
            include_images=include_images,
            ttl_seconds=ttl_seconds,
        )
    except ValueError as exc:
        raise ResolutionError(
            code=ErrorCode.INVALID_INPUT,
            message=str(exc),
            suggestion="Provide a non-empty URL (max 2048 chars) and ttl_seconds >= 1.",
            recoverable=False,
        ) from exc

    ttl = (
        timedelta(seconds=validated.ttl_seconds)
        if validated.ttl_seconds is not None
        else timedelta(days=state.settings.cache.ttl_days)
    )
    options = ResolveOptions(ttl=ttl, include_images=validated.include_images)

    preview, cached = await state.resolver.resolve_with_status(validated.url, options)
    log.info("resolve_complete", cached=cached, kind=preview.kind)

    output = LinkPreviewOutput(url=validated.url, status="ready", cached=cached, preview=preview)
    return output.model_dump(mode="json")
