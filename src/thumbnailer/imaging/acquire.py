"""Image acquisition: resolve a source reference into a decoded image.

A reference is either a data URL, which is used as-is, or a remote locator
that is fetched over HTTP and converted into a data URL before decoding.
"""

from __future__ import annotations

import asyncio
import io
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx
from PIL import Image, ImageOps, UnidentifiedImageError

from thumbnailer.imaging.codec import Blob, blob_to_data_url, data_url_to_blob, is_data_url
from thumbnailer.imaging.errors import DecodeError, NetworkFetchError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

FALLBACK_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class DecodedImage:
    """A fully decoded source image and its intrinsic dimensions."""

    width: int
    height: int
    image: Image.Image

    @classmethod
    def from_image(cls, image: Image.Image) -> DecodedImage:
        width, height = image.size
        if width <= 0 or height <= 0:
            raise DecodeError(f"Image has no pixels ({width}x{height})")
        return cls(width=width, height=height, image=image)


async def image_url_to_data_url(reference: str, client: httpx.AsyncClient, max_bytes: int | None = None) -> str:
    """Return ``reference`` as a data URL, fetching it if needed.

    Data URLs are returned unchanged without touching the network. Anything
    else is fetched without credentials and its body is wrapped in a data URL
    tagged with the response content type. The body is streamed and the fetch
    is abandoned as soon as it exceeds ``max_bytes``.

    Raises:
        NetworkFetchError: If the locator is malformed, the request fails,
            returns a non-2xx status, or the body exceeds ``max_bytes``.
    """
    if is_data_url(reference):
        return reference

    body = bytearray()
    try:
        async with client.stream("GET", reference, follow_redirects=True) as response:
            response.raise_for_status()
            declared = response.headers.get("content-length", "")
            if max_bytes is not None and declared.isdigit() and int(declared) > max_bytes:
                raise _too_large(reference, max_bytes)
            async for chunk in response.aiter_bytes():
                body.extend(chunk)
                if max_bytes is not None and len(body) > max_bytes:
                    raise _too_large(reference, max_bytes)
            content_type = response.headers.get("content-type", "").split(";")[0].strip()
    except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
        logger.warning("Failed to fetch %s: %s", reference, exc)
        raise NetworkFetchError(f"Could not fetch image from {reference}") from exc

    return blob_to_data_url(Blob(data=bytes(body), content_type=content_type or FALLBACK_CONTENT_TYPE))


def _too_large(reference: str, max_bytes: int) -> NetworkFetchError:
    logger.warning("Refusing %s: body exceeds %d bytes", reference, max_bytes)
    return NetworkFetchError(f"Image at {reference} exceeds {max_bytes} bytes")


def decode_bytes(data: bytes) -> DecodedImage:
    """Decode an encoded image byte stream.

    EXIF orientation is applied, so the reported dimensions are the upright
    ones a browser would display.

    Raises:
        DecodeError: If the bytes are not a decodable image or exceed the
            configured pixel limit.
    """
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
        image = ImageOps.exif_transpose(image)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, SyntaxError) as exc:
        raise DecodeError("Could not decode image data") from exc
    return DecodedImage.from_image(image)


def decode_image(data_url: str) -> DecodedImage:
    """Decode the image embedded in a data URL.

    Raises:
        ConversionError: If the data URL itself is malformed.
        DecodeError: If its payload is not a decodable image.
    """
    return decode_bytes(data_url_to_blob(data_url).data)


async def load_image(
    reference: str,
    client: httpx.AsyncClient,
    run: Callable[[Callable[[str], DecodedImage], str], Awaitable[DecodedImage]] | None = None,
    max_bytes: int | None = None,
) -> DecodedImage:
    """Acquire and decode ``reference``.

    Decoding is CPU-bound, so it is handed to ``run`` (for example
    :meth:`RenderPool.run`) or, by default, to a worker thread. ``max_bytes``
    caps the size of a remote body.
    """
    data_url = await image_url_to_data_url(reference, client, max_bytes=max_bytes)
    if run is None:
        return await asyncio.to_thread(decode_image, data_url)
    return await run(decode_image, data_url)
