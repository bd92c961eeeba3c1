"""HTTP content fetcher.

All network I/O for resolving previews goes through a single Fetcher
instance. The Fetcher receives an httpx.AsyncClient via constructor
injection; the lifespan owns the client lifecycle. No caching happens at
this layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import urljoin

import httpx
import structlog

from linkglance.errors import FetchError, FetchErrorKind
from linkglance.extractor import is_image_content_type

if TYPE_CHECKING:
    from linkglance.config import FetcherSettings

log = structlog.get_logger()

_DEFAULT_MAX_REDIRECTS = 5
_DEFAULT_MAX_CONTENT_BYTES = 2 * 1024 * 1024


def build_http_client(settings: FetcherSettings) -> httpx.AsyncClient:
    """Create the shared httpx client. Called once at startup."""
    return httpx.AsyncClient(
        # Redirects are followed hop by hop in Fetcher.fetch
        follow_redirects=False,
        timeout=httpx.Timeout(settings.timeout_seconds),
        headers={
            "User-Agent": settings.user_agent,
            "Accept": "text/html,application/xhtml+xml,image/*;q=0.9,*/*;q=0.8",
        },
        limits=httpx.Limits(
            max_connections=20,
            max_keepalive_connections=10,
        ),
    )


@dataclass(frozen=True)
class FetchedContent:
    """Raw response body plus what the extractor needs to interpret it."""

    url: str  # Effective URL after redirects
    requested_url: str
    content: bytes
    content_type: str
    status_code: int


class Fetcher:
    """Fetches a URL, following a bounded number of redirects."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        max_redirects: int = _DEFAULT_MAX_REDIRECTS,
        max_content_bytes: int = _DEFAULT_MAX_CONTENT_BYTES,
    ) -> None:
        self._client = client
        self._max_redirects = max_redirects
        self._max_content_bytes = max_content_bytes

    @classmethod
    def from_settings(cls, client: httpx.AsyncClient, settings: FetcherSettings) -> Fetcher:
        return cls(
            client,
            max_redirects=settings.max_redirects,
            max_content_bytes=settings.max_content_bytes,
        )

    async def fetch(self, url: str) -> FetchedContent:
        """GET ``url`` and return its body and content type.

        The URL scheme must already be validated by the caller. Raises
        ``FetchError`` on timeouts, redirect overflow, non-2xx final status,
        and network-level failures.
        """
        current_url = url

        try:
            for hop in range(self._max_redirects + 1):
                async with self._client.stream("GET", current_url) as response:
                    if response.is_redirect and "location" in response.headers:
                        if hop == self._max_redirects:
                            raise FetchError(
                                FetchErrorKind.TOO_MANY_REDIRECTS,
                                url,
                                f"More than {self._max_redirects} redirects fetching {url}",
                            )
                        current_url = urljoin(current_url, response.headers["location"])
                        continue

                    if not response.is_success:
                        raise FetchError(
                            FetchErrorKind.HTTP_STATUS,
                            url,
                            f"HTTP {response.status_code} fetching {url}",
                            status_code=response.status_code,
                        )

                    content_type = response.headers.get("content-type", "")
                    # Only the URL of an image is needed, never its bytes
                    if is_image_content_type(content_type):
                        content = b""
                    else:
                        content = await self._read_capped(response)

                    log.info(
                        "fetch_complete",
                        url=url,
                        final_url=current_url,
                        status_code=response.status_code,
                        content_type=content_type,
                        content_length=len(content),
                    )
                    return FetchedContent(
                        url=current_url,
                        requested_url=url,
                        content=content,
                        content_type=content_type,
                        status_code=response.status_code,
                    )

        except FetchError:
            raise
        except httpx.TimeoutException as exc:
            raise FetchError(
                FetchErrorKind.TIMEOUT,
                url,
                f"Timed out fetching {url}",
            ) from exc
        except httpx.HTTPError as exc:
            raise FetchError(
                FetchErrorKind.UNREACHABLE,
                url,
                f"Network error fetching {url}: {exc}",
            ) from exc
        except (httpx.InvalidURL, ValueError) as exc:
            # Malformed request URL or redirect Location
            raise FetchError(
                FetchErrorKind.UNREACHABLE,
                url,
                f"Invalid URL fetching {url} (via {current_url}): {exc}",
            ) from exc

        # Unreachable but satisfies the type checker
        raise FetchError(FetchErrorKind.TOO_MANY_REDIRECTS, url, "Redirect loop")

    async def _read_capped(self, response: httpx.Response) -> bytes:
        """Read the body, stopping once ``max_content_bytes`` have arrived.

        Metadata lives in the document head, so a truncated body still
        yields a usable preview.
        """
        chunks: list[bytes] = []
        size = 0
        async for chunk in response.aiter_bytes():
            chunks.append(chunk)
            size += len(chunk)
            if size >= self._max_content_bytes:
                log.debug("fetch_truncated", url=str(response.url), limit=self._max_content_bytes)
                break
        return b"".join(chunks)[: self._max_content_bytes]
