"""Raster surfaces: fixed-size drawable targets for the resizer and encoder."""

from __future__ import annotations

import io
from typing import TYPE_CHECKING, Protocol

from PIL import Image

from thumbnailer.imaging.errors import DecodeError

if TYPE_CHECKING:
    from thumbnailer.imaging.options import ImageFormat

Rect = tuple[int, int, int, int]
Color = tuple[int, int, int]


class RasterSurface(Protocol):
    """Protocol for a fixed-size 2D drawing target."""

    @property
    def width(self) -> int:
        """Surface width in pixels."""
        ...

    @property
    def height(self) -> int:
        """Surface height in pixels."""
        ...

    def fill(self, rect: Rect, color: Color) -> None:
        """Fill the ``(left, top, right, bottom)`` rectangle with a solid colour."""
        ...

    def draw_scaled(self, image: Image.Image, width: int, height: int) -> None:
        """Draw ``image`` scaled to ``width`` x ``height`` at the origin."""
        ...

    def encode(self, image_format: ImageFormat, quality: float) -> bytes:
        """Encode the surface contents.

        Args:
            image_format: Target codec.
            quality: Lossy quality in [0, 1]; ignored by lossless codecs.

        Returns:
            The encoded byte stream.
        """
        ...


class PillowSurface:
    """Opaque RGB surface backed by a Pillow image."""

    def __init__(self, width: int, height: int) -> None:
        try:
            self._image = Image.new("RGB", (width, height))
        except (MemoryError, ValueError) as exc:
            raise DecodeError(f"Could not allocate a {width}x{height} surface") from exc

    @property
    def width(self) -> int:
        return self._image.width

    @property
    def height(self) -> int:
        return self._image.height

    @property
    def image(self) -> Image.Image:
        return self._image

    def fill(self, rect: Rect, color: Color) -> None:
        self._image.paste(color, rect)

    def draw_scaled(self, image: Image.Image, width: int, height: int) -> None:
        source = image.convert("RGBA") if _has_alpha(image) else image.convert("RGB")
        scaled = source.resize((width, height), Image.Resampling.LANCZOS)
        if scaled.mode == "RGBA":
            # Composite over whatever is already on the surface.
            self._image.paste(scaled, (0, 0), scaled)
        else:
            self._image.paste(scaled, (0, 0))

    def encode(self, image_format: ImageFormat, quality: float) -> bytes:
        params: dict[str, object] = {}
        if image_format.lossy:
            params["quality"] = round(quality * 100)
        buffer = io.BytesIO()
        try:
            self._image.save(buffer, format=image_format.pillow_format, **params)
        except (OSError, ValueError, KeyError) as exc:
            raise DecodeError(f"Could not encode surface as {image_format}") from exc
        return buffer.getvalue()


def _has_alpha(image: Image.Image) -> bool:
    return image.mode in ("RGBA", "LA", "PA") or (image.mode == "P" and "transparency" in image.info)
