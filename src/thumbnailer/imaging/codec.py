"""Conversion between data URLs and binary blobs, plus payload size estimation.

A data URL has the shape ``data:[<mediatype>][;base64],<payload>``. Converting
to a :class:`Blob` and back never recompresses anything; it only changes the
representation of the same bytes.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from urllib.parse import unquote_to_bytes

from thumbnailer.imaging.errors import ConversionError

DATA_URL_SCHEME = "data:"
DEFAULT_CONTENT_TYPE = "text/plain;charset=US-ASCII"

_BASE64_MARKER = ";base64"


@dataclass(frozen=True)
class Blob:
    """Opaque binary payload tagged with its MIME content type."""

    data: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.data)


def is_data_url(reference: str) -> bool:
    """Return True if ``reference`` is already a self-describing data URL."""
    return reference.startswith(DATA_URL_SCHEME)


def data_url_to_blob(data_url: str) -> Blob:
    """Decode the payload of a data URL into raw bytes and its content type.

    The ``;base64`` marker is matched case-insensitively, as browsers do.
    The content type keeps its original spelling; re-encoding with
    :func:`blob_to_data_url` writes the marker in lowercase.

    Raises:
        ConversionError: If the string is not a data URL, has no payload
            separator, or carries an invalid base64 payload.
    """
    if not is_data_url(data_url):
        raise ConversionError("Not a data URL")

    header, separator, payload = data_url[len(DATA_URL_SCHEME) :].partition(",")
    if not separator:
        raise ConversionError("Data URL has no payload separator")

    if header.lower().endswith(_BASE64_MARKER):
        content_type = header[: -len(_BASE64_MARKER)]
        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ConversionError("Data URL carries an invalid base64 payload") from exc
    else:
        content_type = header
        data = unquote_to_bytes(payload)

    return Blob(data=data, content_type=content_type or DEFAULT_CONTENT_TYPE)


def blob_to_data_url(blob: Blob) -> str:
    """Encode a blob as a base64 data URL."""
    payload = base64.b64encode(blob.data).decode("ascii")
    return f"{DATA_URL_SCHEME}{blob.content_type};base64,{payload}"


def estimate_size(data_url: str) -> int:
    """Approximate the byte length of a data URL's payload without decoding it.

    Four base64 characters carry three bytes, so the payload length is scaled
    by 0.75 and floored. Padding characters are not subtracted, so the result
    can overestimate by up to two bytes; treat it as a budget, not an exact
    count. Returns 0 when there is no payload.
    """
    _, _, payload = data_url.partition(",")
    return len(payload) * 3 // 4
