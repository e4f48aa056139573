from __future__ import annotations

from io import BytesIO

import pytest
from PIL import Image


def _solid(size, color) -> Image.Image:
    return Image.new("RGBA", size, color)


@pytest.fixture
def solid_image():
    return _solid


@pytest.fixture
def png_bytes():
    def _make(size, color) -> bytes:
        buf = BytesIO()
        _solid(size, color).save(buf, "PNG")
        return buf.getvalue()
    return _make
