"""Tool handler for peek_link_preview: cache lookup only, never fetches."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from linkglance.errors import ErrorCode, ResolutionError
from linkglance.models.tools import LinkPreviewOutput, PeekLinkPreviewInput

if TYPE_CHECKING:
    from linkglance.state import AppState


async def handle(url: str, state: AppState) -> dict:
    """Handle a peek_link_preview tool call."""
    log = structlog.get_logger().bind(tool="peek_link_preview", url=url)

    try:
        validated = PeekLinkPreviewInput(url=url)
    except ValueError as exc:
        raise ResolutionError(
            code=ErrorCode.INVALID_INPUT,
            message=str(exc),
            suggestion="Provide a non-empty URL (max 2048 chars).",
            recoverable=False,
        ) from exc

    preview = state.resolver.peek_cache(validated.url)
    log.info("peek_complete", hit=preview is not None)

    if preview is None:
        output = LinkPreviewOutput(url=validated.url, status="pending")
    else:
        output = LinkPreviewOutput(url=validated.url, status="ready", cached=True, preview=preview)
    return output.model_dump(mode="json")
