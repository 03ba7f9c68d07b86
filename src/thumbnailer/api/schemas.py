"""Pydantic request/response schemas for the Thumbnailer API."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from thumbnailer.imaging.options import ImageFormat, ThumbnailOptions


class ThumbnailOptionsModel(BaseModel):
    """Per-request overrides; unset fields fall back to the configured defaults."""

    max_width: int | None = Field(default=None, ge=1)
    max_height: int | None = Field(default=None, ge=1)
    quality: float | None = Field(default=None, description="Lossy quality, clamped to 0.0-1.0")
    format: Literal["jpeg", "png", "webp"] | None = None
    background_color: str | None = Field(default=None, description="Fill colour for transparency and padding")

    def merge(self, defaults: ThumbnailOptions) -> ThumbnailOptions:
        """Overlay the fields set on this model onto ``defaults``.

        Raises:
            ValueError: If the resulting options are invalid.
        """
        return ThumbnailOptions(
            max_width=self.max_width if self.max_width is not None else defaults.max_width,
            max_height=self.max_height if self.max_height is not None else defaults.max_height,
            quality=self.quality if self.quality is not None else defaults.quality,
            format=ImageFormat(self.format) if self.format is not None else defaults.format,
            background_color=self.background_color or defaults.background_color,
        )


class ThumbnailRequest(BaseModel):
    """Generate a thumbnail from a remote URL or a data URL."""

    source: str = Field(min_length=1, description="Remote image URL or data URL")
    options: ThumbnailOptionsModel = Field(default_factory=ThumbnailOptionsModel)
    cache_id: str | None = Field(default=None, description="Cache the result under this id")


class ThumbnailResponse(BaseModel):
    """A generated thumbnail."""

    data_url: str
    width: int
    height: int
    format: str
    size: int = Field(description="Estimated payload size in bytes")


class CachedThumbnailResponse(BaseModel):
    """A thumbnail stored in the in-memory cache."""

    id: str
    data_url: str
    created_at: float


class BlobDecodeRequest(BaseModel):
    """Convert a data URL into raw bytes."""

    data_url: str


class BlobEncodeResponse(BaseModel):
    """Result of wrapping raw bytes in a data URL."""

    data_url: str
    content_type: str
    size: int


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    concurrent_renders: int
    queue_depth: int
    cached_thumbnails: int


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
