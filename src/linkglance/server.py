"""MCP server entrypoint.

Responsibilities (and nothing more):
- Configure structlog
- Create AppState via the FastMCP lifespan context manager
- Register tools
- Start the correct transport (stdio or HTTP)
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from contextlib import asynccontextmanager, suppress
from datetime import timedelta
from typing import TYPE_CHECKING

import structlog
import uvicorn
from mcp.server.fastmcp import Context, FastMCP
from mcp.types import CallToolResult, TextContent

import linkglance.tools.peek_link_preview as t_peek
import linkglance.tools.resolve_link_preview as t_resolve
from linkglance import __version__
from linkglance.cache import Cache
from linkglance.config import Settings
from linkglance.errors import ResolutionError
from linkglance.fetcher import build_http_client
from linkglance.resolver import LinkPreviewResolver
from linkglance.schedulers import run_cache_sweep_scheduler
from linkglance.sources import build_source
from linkglance.state import AppState

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        # Logs go to stderr; stdout is reserved for the MCP JSON-RPC stream
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


def build_state(settings: Settings) -> AppState:
    """Wire cache, source and resolver from settings. No I/O happens here."""
    http_client = (
        build_http_client(settings.fetcher) if settings.resolver.strategy == "direct" else None
    )
    cache = Cache(
        max_entries=settings.cache.max_entries,
        default_ttl=timedelta(days=settings.cache.ttl_days),
    )
    source = build_source(settings, http_client)
    return AppState(
        settings=settings,
        cache=cache,
        resolver=LinkPreviewResolver(source, cache),
        http_client=http_client,
    )


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncGenerator[AppState, None]:
    """Create and tear down all shared resources for the server's lifetime."""
    settings = Settings()
    _setup_logging(settings)

    log.info(
        "server_starting",
        version=__version__,
        transport=settings.server.transport,
        strategy=settings.resolver.strategy,
    )

    state = build_state(settings)
    sweep_task = asyncio.create_task(run_cache_sweep_scheduler(state))

    log.info("server_started", version=__version__, transport=settings.server.transport)

    try:
        yield state
    finally:
        sweep_task.cancel()
        with suppress(asyncio.CancelledError):
            await sweep_task
        if state.http_client is not None:
            await state.http_client.aclose()
        state.cache.clear()
        log.info("server_stopping")


# ---------------------------------------------------------------------------
# FastMCP instance and tool registration
# ---------------------------------------------------------------------------

mcp = FastMCP("linkglance", lifespan=lifespan)
# FastMCP doesn't expose a version kwarg, so set it on the underlying Server
# so the MCP initialize handshake reports our version, not the SDK's.
mcp._mcp_server.version = __version__  # pyright: ignore[reportPrivateUsage]


def _serialise_tool_error(error: ResolutionError) -> CallToolResult:
    """Convert a ResolutionError to the MCP tool error result envelope."""
    return CallToolResult(
        content=[TextContent(type="text", text=json.dumps(error.to_dict()))],
        isError=True,
    )


@mcp.tool()
async def resolve_link_preview(
    url: str,
    ctx: Context,
    include_images: bool = True,
    ttl_seconds: int | None = None,
) -> object:
    """Resolve a URL to preview metadata: title, description, image and site icon.

    Results are cached per URL. Set include_images to false to skip image
    discovery. ttl_seconds overrides how long the result stays cached.
    """
    state: AppState = ctx.request_context.lifespan_context
    try:
        return await t_resolve.handle(url, include_images, ttl_seconds, state)
    except ResolutionError as exc:
        log.warning(
            "tool_error",
            tool="resolve_link_preview",
            code=exc.code,
            message=exc.message,
            recoverable=exc.recoverable,
        )
        return _serialise_tool_error(exc)
    except Exception:
        log.error("tool_unexpected_error", tool="resolve_link_preview", exc_info=True)
        raise


@mcp.tool()
async def peek_link_preview(url: str, ctx: Context) -> object:
    """Return the cached preview for a URL without fetching, or status "pending"."""
    state: AppState = ctx.request_context.lifespan_context
    try:
        return await t_peek.handle(url, state)
    except ResolutionError as exc:
        log.warning(
            "tool_error",
            tool="peek_link_preview",
            code=exc.code,
            message=exc.message,
            recoverable=exc.recoverable,
        )
        return _serialise_tool_error(exc)
    except Exception:
        log.error("tool_unexpected_error", tool="peek_link_preview", exc_info=True)
        raise


# ---------------------------------------------------------------------------
# HTTP transport
# ---------------------------------------------------------------------------


def run_http_server(settings: Settings) -> None:
    """Start the MCP server with Streamable HTTP transport."""
    _setup_logging(settings)
    log.bind(transport="http").info(
        "http_server_starting", host=settings.server.host, port=settings.server.port
    )

    uvicorn.run(
        mcp.streamable_http_app(),
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,  # Disable uvicorn's default logging; structlog handles it
    )


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    settings = Settings()

    if settings.server.transport == "http":
        run_http_server(settings)
        return

    mcp.run()


if __name__ == "__main__":
    main()
