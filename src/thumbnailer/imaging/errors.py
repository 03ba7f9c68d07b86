"""Error taxonomy for the thumbnail pipeline.

``NetworkFetchError`` and ``DecodeError`` are both ``ConversionError``
subclasses: callers that only need to know that a conversion failed catch
``ConversionError``, callers that need the kind catch the subclass.
"""

from __future__ import annotations


class ThumbnailError(Exception):
    """Base class for all thumbnail pipeline errors."""


class ConversionError(ThumbnailError):
    """Malformed textual/binary representation during format conversion."""


class NetworkFetchError(ConversionError):
    """A remote image locator could not be retrieved."""


class DecodeError(ConversionError):
    """Bytes could not be decoded into an image, or a surface could not be allocated."""


class RenderQueueFullError(ThumbnailError):
    """No render slot became free within the configured queue timeout."""
