from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from linkglance.models.preview import PreviewResult


def _strip_url(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("url must not be empty")
    return v


class ResolveLinkPreviewInput(BaseModel):
    url: str = Field(max_length=2048)
    include_images: bool = True
    ttl_seconds: int | None = Field(default=None, ge=1)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        return _strip_url(v)


class PeekLinkPreviewInput(BaseModel):
    url: str = Field(max_length=2048)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        return _strip_url(v)


class LinkPreviewOutput(BaseModel):
    """Shared output shape for both preview tools.

    ``status`` is ``"pending"`` when nothing is known yet for the URL, in
    which case ``preview`` is ``None``.
    """

    url: str
    status: Literal["pending", "ready"]
    cached: bool = False
    preview: PreviewResult | None = None
