"""Thumbnail options and output formats."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from PIL import ImageColor

DEFAULT_MAX_WIDTH: int = 400
DEFAULT_MAX_HEIGHT: int = 400
DEFAULT_QUALITY: float = 0.85
DEFAULT_BACKGROUND_COLOR: str = "#ffffff"


class ImageFormat(StrEnum):
    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"

    @property
    def mime_type(self) -> str:
        return f"image/{self.value}"

    @property
    def pillow_format(self) -> str:
        """Format name understood by ``PIL.Image.Image.save``."""
        return self.value.upper()

    @property
    def lossy(self) -> bool:
        return self is not ImageFormat.PNG


@dataclass(frozen=True)
class ThumbnailOptions:
    """Resize and encode parameters for a single thumbnail.

    ``quality`` is deliberately not validated here; the encoder clamps it
    into [0, 1] and ignores it for lossless formats.
    """

    max_width: int = DEFAULT_MAX_WIDTH
    max_height: int = DEFAULT_MAX_HEIGHT
    quality: float = DEFAULT_QUALITY
    format: ImageFormat = ImageFormat.JPEG
    background_color: str = DEFAULT_BACKGROUND_COLOR

    def __post_init__(self) -> None:
        if self.max_width <= 0 or self.max_height <= 0:
            raise ValueError(f"Thumbnail bounds must be positive, got {self.max_width}x{self.max_height}")
        # Accept plain strings ("png") as well as enum members.
        object.__setattr__(self, "format", ImageFormat(self.format))
        try:
            ImageColor.getrgb(self.background_color)
        except ValueError:
            raise ValueError(f"Unknown background color: {self.background_color!r}") from None

    @property
    def background_rgb(self) -> tuple[int, int, int]:
        red, green, blue = ImageColor.getrgb(self.background_color)[:3]
        return red, green, blue
