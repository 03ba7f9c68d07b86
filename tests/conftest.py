"""Shared fixtures and image builders."""

from __future__ import annotations

import base64
import io
from typing import TYPE_CHECKING

import pytest
from PIL import Image

from thumbnailer.imaging.runtime import reset_imaging

if TYPE_CHECKING:
    from collections.abc import Iterator


def make_image_bytes(
    width: int,
    height: int,
    color: tuple[int, ...] | str = "blue",
    mode: str = "RGB",
    fmt: str = "PNG",
) -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, (width, height), color).save(buffer, format=fmt)
    return buffer.getvalue()


def make_data_url(width: int, height: int, color: tuple[int, ...] | str = "blue", mode: str = "RGB") -> str:
    payload = base64.b64encode(make_image_bytes(width, height, color, mode)).decode("ascii")
    return f"data:image/png;base64,{payload}"


@pytest.fixture(autouse=True)
def _reset_imaging() -> Iterator[None]:
    """Imaging setup is process-wide; give every test a clean slate."""
    reset_imaging()
    yield
    reset_imaging()
