"""Surface encoding into data URLs."""

from __future__ import annotations

from typing import TYPE_CHECKING

from thumbnailer.imaging.codec import Blob, blob_to_data_url
from thumbnailer.imaging.options import ImageFormat

if TYPE_CHECKING:
    from thumbnailer.imaging.surface import RasterSurface


def clamp_quality(quality: float) -> float:
    """Clamp an encoder quality into [0, 1]."""
    return min(1.0, max(0.0, float(quality)))


def encode_surface(surface: RasterSurface, image_format: ImageFormat | str, quality: float) -> str:
    """Encode ``surface`` and return it as a base64 data URL.

    Out-of-range quality values are clamped rather than rejected. PNG ignores
    quality entirely.

    Raises:
        DecodeError: If the codec fails to encode the surface.
    """
    fmt = ImageFormat(image_format)
    data = surface.encode(fmt, clamp_quality(quality))
    return blob_to_data_url(Blob(data=data, content_type=fmt.mime_type))
