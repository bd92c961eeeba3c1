"""Application state container.

AppState is created once at server startup (inside the FastMCP lifespan context
manager) and injected into every tool handler via the MCP Context object.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from linkglance.config import Settings
    from linkglance.protocols import CacheProtocol
    from linkglance.resolver import LinkPreviewResolver


@dataclass
class AppState:
    """Holds all shared runtime state. Passed to every tool handler."""

    settings: Settings
    cache: CacheProtocol
    resolver: LinkPreviewResolver
    # None when the delegated strategy does its own I/O
    http_client: httpx.AsyncClient | None = None
