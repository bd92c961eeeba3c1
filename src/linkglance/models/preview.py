from __future__ import annotations

from datetime import timedelta
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_TTL = timedelta(days=30)


class StandardInfo(BaseModel):
    """Metadata extracted from an HTML document.

    Every field may be empty. An empty ``StandardInfo`` is still a successful
    resolution; a failed one never produces a result at all.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["standard"] = "standard"
    title: str = ""
    description: str = ""
    image: str = ""  # Absolute URL, empty when unknown or images were not requested
    icon: str = ""  # Absolute URL


class ImageInfo(BaseModel):
    """The resolved URL points straight at an image."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["image"] = "image"
    image: str


PreviewResult = Annotated[StandardInfo | ImageInfo, Field(discriminator="kind")]


class ResolveOptions(BaseModel):
    """Per-call resolution options. Never persisted."""

    model_config = ConfigDict(frozen=True)

    ttl: timedelta = DEFAULT_TTL
    include_images: bool = True

    @field_validator("ttl")
    @classmethod
    def validate_ttl(cls, v: timedelta) -> timedelta:
        if v <= timedelta(0):
            raise ValueError("ttl must be positive")
        return v


class DelegatedMetadata(BaseModel):
    """Record returned by a host-provided metadata delegate."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    title: str | None = None
    description: str | None = None
    image_url: str | None = Field(default=None, alias="imageUrl")
    favicon: str | None = None
