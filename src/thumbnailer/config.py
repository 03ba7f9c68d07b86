"""Environment-based configuration for Thumbnailer."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from thumbnailer.imaging.options import ImageFormat, ThumbnailOptions


class Settings(BaseSettings):
    """Application settings loaded from THUMBNAILER_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="THUMBNAILER_",
        case_sensitive=False,
    )

    # Server
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8083

    # Authentication (None = disabled)
    api_key: str | None = None

    # Default thumbnail options
    max_width: int = Field(default=400, ge=1)
    max_height: int = Field(default=400, ge=1)
    quality: float = 0.85
    format: Literal["jpeg", "png", "webp"] = "jpeg"
    background_color: str = "#ffffff"

    # Remote fetch
    fetch_timeout: float = Field(default=10.0, gt=0)

    # Concurrency
    max_concurrent: int = Field(default=2, ge=1)
    queue_timeout: float = Field(default=5.0, gt=0)

    # Input limits
    max_image_pixels: int = Field(default=16_777_216, ge=1)
    max_file_size: int = Field(default=20_971_520, ge=1)

    # Thumbnail cache
    cache_ttl: int = Field(default=3600, ge=0)
    cache_max_entries: int = Field(default=256, ge=1)

    def thumbnail_options(self) -> ThumbnailOptions:
        """Build the default thumbnail options from these settings."""
        return ThumbnailOptions(
            max_width=self.max_width,
            max_height=self.max_height,
            quality=self.quality,
            format=ImageFormat(self.format),
            background_color=self.background_color,
        )


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()
