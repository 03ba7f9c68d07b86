"""Process-wide imaging setup, applied once at startup."""

from __future__ import annotations

import logging
import threading

from PIL import Image

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_configured_max_pixels: int | None = None
_default_max_pixels = Image.MAX_IMAGE_PIXELS


def configure_imaging(max_image_pixels: int) -> None:
    """Set Pillow's process-wide decompression-bomb limit.

    Calling again with the same value is a no-op.

    Raises:
        RuntimeError: If imaging was already configured with a different limit.
    """
    global _configured_max_pixels

    with _lock:
        if _configured_max_pixels == max_image_pixels:
            return
        if _configured_max_pixels is not None:
            raise RuntimeError(
                f"Imaging already configured with max_image_pixels={_configured_max_pixels}, "
                f"refusing to switch to {max_image_pixels}"
            )
        Image.MAX_IMAGE_PIXELS = max_image_pixels
        _configured_max_pixels = max_image_pixels
        logger.info("Configured imaging (max_image_pixels=%s)", max_image_pixels)


def is_configured() -> bool:
    with _lock:
        return _configured_max_pixels is not None


def reset_imaging() -> None:
    """Restore Pillow's default limit. Intended for tests."""
    global _configured_max_pixels

    with _lock:
        Image.MAX_IMAGE_PIXELS = _default_max_pixels
        _configured_max_pixels = None
