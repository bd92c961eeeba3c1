"""Preview metadata extraction.

Each preview field is filled from an ordered tuple of rules. Rules are
evaluated in order and the first non-empty value wins; later rules are
never consulted and candidates are never merged. Markup problems are not
errors: whatever can be read from a broken document is returned. Only
content that cannot be treated as markup at all raises ``ExtractError``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup

from linkglance.errors import ExtractError
from linkglance.models.preview import ImageInfo, StandardInfo

if TYPE_CHECKING:
    from bs4 import Tag

    from linkglance.fetcher import FetchedContent
    from linkglance.models.preview import PreviewResult

_BINARY_SNIFF_BYTES = 1024
_CHARSET_RE = re.compile(r"charset\s*=\s*[\"']?([\w.:-]+)", re.IGNORECASE)
_PIXELS_RE = re.compile(r"^\s*(\d+)(?:px)?\s*$", re.IGNORECASE)

# Images declared smaller than this on either axis are spacers, icons or
# tracking pixels rather than content
DECORATIVE_MAX_PX = 32


def is_image_content_type(content_type: str) -> bool:
    """``True`` for ``image/*`` MIME types, ignoring parameters and case."""
    return content_type.split(";", 1)[0].strip().lower().startswith("image/")


def _clean(value: object) -> str:
    if not isinstance(value, str):
        return ""
    return " ".join(value.split())


def _charset(content_type: str) -> str | None:
    match = _CHARSET_RE.search(content_type)
    return match.group(1) if match else None


def _pixels(value: object) -> int | None:
    match = _PIXELS_RE.match(value) if isinstance(value, str) else None
    return int(match.group(1)) if match else None


class Rule(Protocol):
    def select(self, soup: BeautifulSoup, base_url: str) -> str: ...


@dataclass(frozen=True)
class MetaTag:
    """``<meta>`` whose ``property`` or ``name`` equals ``key`` (case-insensitive)."""

    key: str
    is_url: bool = False

    def select(self, soup: BeautifulSoup, base_url: str) -> str:
        pattern = re.compile(rf"^\s*{re.escape(self.key)}\s*$", re.IGNORECASE)
        for attr in ("property", "name"):
            for tag in soup.find_all("meta", attrs={attr: pattern}):
                content = _clean(tag.get("content"))
                if content:
                    return urljoin(base_url, content) if self.is_url else content
        return ""


@dataclass(frozen=True)
class ElementText:
    """Text of the first element called ``name``."""

    name: str

    def select(self, soup: BeautifulSoup, base_url: str) -> str:
        tag = soup.find(self.name)
        return _clean(tag.get_text()) if tag is not None else ""


@dataclass(frozen=True)
class LinkRel:
    """``href`` of the first ``<link>`` carrying any of the ``rel`` tokens."""

    rels: frozenset[str]

    def select(self, soup: BeautifulSoup, base_url: str) -> str:
        for tag in soup.find_all("link", href=True):
            rel = tag.get("rel") or []
            if isinstance(rel, str):
                rel = rel.split()
            if self.rels.isdisjoint(token.lower() for token in rel):
                continue
            href = _clean(tag.get("href"))
            if href:
                return urljoin(base_url, href)
        return ""


@dataclass(frozen=True)
class FirstContentImage:
    """First ``<img>`` in document order that does not look decorative."""

    min_px: int = DECORATIVE_MAX_PX

    def select(self, soup: BeautifulSoup, base_url: str) -> str:
        for tag in soup.find_all("img"):
            src = _clean(tag.get("src")) or _clean(tag.get("data-src"))
            if not src or src.lower().startswith("data:"):
                continue
            if self._is_decorative(tag):
                continue
            return urljoin(base_url, src)
        return ""

    def _is_decorative(self, tag: Tag) -> bool:
        for attr in ("width", "height"):
            size = _pixels(tag.get(attr))
            if size is not None and size < self.min_px:
                return True
        return False


@dataclass(frozen=True)
class DefaultFavicon:
    """``/favicon.ico`` at the page's origin. Not checked for existence."""

    def select(self, soup: BeautifulSoup, base_url: str) -> str:
        parts = urlsplit(base_url)
        if not parts.scheme or not parts.netloc:
            return ""
        return f"{parts.scheme}://{parts.netloc}/favicon.ico"


TITLE_RULES: tuple[Rule, ...] = (
    MetaTag("og:title"),
    MetaTag("twitter:title"),
    ElementText("title"),
)

DESCRIPTION_RULES: tuple[Rule, ...] = (
    MetaTag("og:description"),
    MetaTag("twitter:description"),
    MetaTag("description"),
)

IMAGE_RULES: tuple[Rule, ...] = (
    MetaTag("og:image", is_url=True),
    MetaTag("twitter:image", is_url=True),
    FirstContentImage(),
)

ICON_RULES: tuple[Rule, ...] = (
    LinkRel(frozenset({"icon"})),
    LinkRel(frozenset({"apple-touch-icon", "apple-touch-icon-precomposed"})),
    DefaultFavicon(),
)


def first_match(rules: tuple[Rule, ...], soup: BeautifulSoup, base_url: str) -> str:
    """Return the first non-empty value produced by ``rules``, or ``""``."""
    for rule in rules:
        value = rule.select(soup, base_url)
        if value:
            return value
    return ""


def extract(fetched: FetchedContent, *, include_images: bool = True) -> PreviewResult:
    """Turn fetched content into a preview result.

    Image responses short-circuit to ``ImageInfo`` without looking at the
    body. Everything else is parsed as HTML.
    """
    if is_image_content_type(fetched.content_type):
        return ImageInfo(image=fetched.url)

    if b"\x00" in fetched.content[:_BINARY_SNIFF_BYTES]:
        raise ExtractError(fetched.url, "binary content")

    try:
        soup = BeautifulSoup(
            fetched.content,
            "html.parser",
            from_encoding=_charset(fetched.content_type),
        )
    except ParserRejectedMarkup as exc:
        raise ExtractError(fetched.url, str(exc)) from exc

    base_url = fetched.url
    return StandardInfo(
        title=first_match(TITLE_RULES, soup, base_url),
        description=first_match(DESCRIPTION_RULES, soup, base_url),
        image=first_match(IMAGE_RULES, soup, base_url) if include_images else "",
        icon=first_match(ICON_RULES, soup, base_url),
    )
