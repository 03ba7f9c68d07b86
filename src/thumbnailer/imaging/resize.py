"""Aspect-preserving resize onto a freshly allocated surface.

Only the dominant axis (width for landscape, height for portrait or square
sources) is clamped against its maximum; the other axis is derived from the
aspect ratio and is not clamped on its own. Existing consumers depend on the
resulting sizes, so this is not a "fit inside the box" resize.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from thumbnailer.imaging.surface import PillowSurface

if TYPE_CHECKING:
    from thumbnailer.imaging.acquire import DecodedImage
    from thumbnailer.imaging.options import ThumbnailOptions
    from thumbnailer.imaging.surface import RasterSurface


def compute_dimensions(
    source_width: int,
    source_height: int,
    max_width: int,
    max_height: int,
) -> tuple[float, float]:
    """Return the unrounded ``(width, height)`` of the thumbnail.

    Raises:
        ValueError: If any dimension or bound is not positive.
    """
    if source_width <= 0 or source_height <= 0:
        raise ValueError(f"Source dimensions must be positive, got {source_width}x{source_height}")
    if max_width <= 0 or max_height <= 0:
        raise ValueError(f"Thumbnail bounds must be positive, got {max_width}x{max_height}")

    aspect_ratio = source_width / source_height
    if aspect_ratio > 1:
        width = float(min(max_width, source_width))
        height = width / aspect_ratio
    else:
        height = float(min(max_height, source_height))
        width = height * aspect_ratio
    return width, height


def to_pixels(value: float) -> int:
    """Round a computed dimension to whole pixels, never below one."""
    # Nearest, not truncated: 1000x334 into 400 wide gives 134 rows, not 133.
    return max(1, round(value))


def resize_to_surface(image: DecodedImage, options: ThumbnailOptions) -> RasterSurface:
    """Draw ``image`` onto a new surface sized by :func:`compute_dimensions`.

    The surface is filled with the background colour first so transparent
    sources are flattened and rounding never leaves uncovered pixels.
    """
    width, height = compute_dimensions(image.width, image.height, options.max_width, options.max_height)
    pixel_width, pixel_height = to_pixels(width), to_pixels(height)

    surface = PillowSurface(pixel_width, pixel_height)
    surface.fill((0, 0, pixel_width, pixel_height), options.background_rgb)
    surface.draw_scaled(image.image, pixel_width, pixel_height)
    return surface
