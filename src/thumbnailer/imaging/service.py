"""Thumbnail generation pipeline.

reference -> acquire -> decode -> resize -> encode -> data URL + size estimate

Fetching is awaited on the event loop; decode, resize and encode run on the
render pool. Errors propagate as the typed taxonomy in
:mod:`thumbnailer.imaging.errors`; nothing is retried here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from thumbnailer.imaging.acquire import DecodedImage, decode_bytes, load_image
from thumbnailer.imaging.codec import estimate_size
from thumbnailer.imaging.encode import encode_surface
from thumbnailer.imaging.errors import ThumbnailError
from thumbnailer.imaging.resize import resize_to_surface

if TYPE_CHECKING:
    import httpx
    from PIL import Image

    from thumbnailer.imaging.options import ThumbnailOptions
    from thumbnailer.imaging.render_pool import RenderPool

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ThumbnailResult:
    """An encoded thumbnail and its accounting data."""

    data_url: str
    width: int
    height: int
    format: str
    size: int


def render_thumbnail(image: DecodedImage, options: ThumbnailOptions) -> ThumbnailResult:
    """Resize and encode a decoded image synchronously."""
    surface = resize_to_surface(image, options)
    data_url = encode_surface(surface, options.format, options.quality)
    return ThumbnailResult(
        data_url=data_url,
        width=surface.width,
        height=surface.height,
        format=options.format.value,
        size=estimate_size(data_url),
    )


def _render_bytes(data: bytes, options: ThumbnailOptions) -> ThumbnailResult:
    return render_thumbnail(decode_bytes(data), options)


class ThumbnailService:
    """Generates thumbnails from URLs, data URLs, uploaded bytes or rendered pages."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        pool: RenderPool,
        default_options: ThumbnailOptions,
        max_fetch_bytes: int | None = None,
    ) -> None:
        self._client = client
        self._pool = pool
        self._default_options = default_options
        self._max_fetch_bytes = max_fetch_bytes

    @property
    def default_options(self) -> ThumbnailOptions:
        return self._default_options

    async def generate(self, reference: str, options: ThumbnailOptions | None = None) -> ThumbnailResult:
        """Generate a thumbnail from a remote URL or a data URL."""
        options = options or self._default_options
        try:
            image = await load_image(reference, self._client, run=self._pool.run, max_bytes=self._max_fetch_bytes)
            result = await self._pool.run(render_thumbnail, image, options)
        except ThumbnailError as exc:
            logger.warning("Thumbnail generation failed for %s: %s", _describe(reference), exc)
            raise
        logger.debug("Generated %sx%s %s thumbnail (%d bytes)", result.width, result.height, result.format, result.size)
        return result

    async def generate_from_bytes(self, data: bytes, options: ThumbnailOptions | None = None) -> ThumbnailResult:
        """Generate a thumbnail from an encoded image file's bytes."""
        options = options or self._default_options
        try:
            return await self._pool.run(_render_bytes, data, options)
        except ThumbnailError as exc:
            logger.warning("Thumbnail generation failed for %d-byte upload: %s", len(data), exc)
            raise

    async def generate_from_image(
        self, image: Image.Image, options: ThumbnailOptions | None = None
    ) -> ThumbnailResult:
        """Generate a thumbnail from an already decoded image, such as a rendered page."""
        options = options or self._default_options
        try:
            return await self._pool.run(render_thumbnail, DecodedImage.from_image(image), options)
        except ThumbnailError as exc:
            logger.warning("Thumbnail generation failed for %sx%s %s image: %s", *image.size, image.mode, exc)
            raise


def _describe(reference: str) -> str:
    # Data URLs can be megabytes long; only log their header.
    if reference.startswith("data:"):
        return reference.partition(",")[0]
    return reference
