"""Per-render RGBA drawing surface built on Pillow."""
from __future__ import annotations

import math
from io import BytesIO
from typing import Optional, Tuple

from PIL import Image, ImageColor, ImageDraw

from .fonts import FontType
from .geometry import SourceRect

Color = Tuple[int, int, int, int]

TRANSPARENT: Color = (0, 0, 0, 0)


class SurfaceError(RuntimeError):
    """The drawing surface for a render could not be created."""


def to_rgba(color: str | tuple) -> Color:
    if isinstance(color, str):
        return ImageColor.getcolor(color, "RGBA")  # type: ignore[return-value]
    if len(color) == 3:
        return (int(color[0]), int(color[1]), int(color[2]), 255)
    return tuple(int(c) for c in color)  # type: ignore[return-value]


def _edges(x: float, y: float, w: float, h: float) -> Tuple[int, int, int, int]:
    # snap a fractional box to pixel edges; both edges round so adjacent boxes tile
    return round(x), round(y), round(x + w), round(y + h)


class Canvas:
    """RGBA canvas owned by exactly one render call."""

    def __init__(self, width: float, height: float, color: str | tuple | None = None):
        try:
            w = int(round(width))
            h = int(round(height))
        except (TypeError, ValueError, OverflowError) as e:
            raise SurfaceError(f"invalid canvas size {width!r}x{height!r}") from e
        if w <= 0 or h <= 0:
            raise SurfaceError(f"invalid canvas size {w}x{h}")
        try:
            self._image = Image.new("RGBA", (w, h), to_rgba(color) if color is not None else TRANSPARENT)
        except (ValueError, MemoryError, Image.DecompressionBombError) as e:
            raise SurfaceError(f"cannot allocate {w}x{h} canvas: {e}") from e

    @property
    def image(self) -> Image.Image:
        return self._image

    @property
    def width(self) -> int:
        return self._image.width

    @property
    def height(self) -> int:
        return self._image.height

    def fill(self, color: str | tuple) -> None:
        self._image.paste(to_rgba(color), (0, 0, self.width, self.height))

    def fill_rect(self, x: float, y: float, w: float, h: float, color: str | tuple) -> None:
        """Flat fill; areas outside the canvas are clipped, degenerate boxes are a no-op."""
        if not all(math.isfinite(v) for v in (x, y, w, h)):
            return
        left, top, right, bottom = _edges(x, y, w, h)
        left, top = max(left, 0), max(top, 0)
        right, bottom = min(right, self.width), min(bottom, self.height)
        if right <= left or bottom <= top:
            return
        self._image.paste(to_rgba(color), (left, top, right, bottom))

    def draw_image(self, image: Image.Image, x: float, y: float, w: float, h: float,
                   source: Optional[SourceRect] = None) -> None:
        """Blit ``source`` of ``image`` (whole image by default) stretched into the box.

        Reads outside the source bounds come back transparent.
        """
        if not all(math.isfinite(v) for v in (x, y, w, h)):
            return
        left, top, right, bottom = _edges(x, y, w, h)
        dw, dh = right - left, bottom - top
        if dw <= 0 or dh <= 0:
            return
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        if source is None:
            layer = image.resize((dw, dh), Image.Resampling.LANCZOS)
        else:
            layer = image.transform(
                (dw, dh),
                Image.Transform.EXTENT,
                source.box,
                resample=Image.Resampling.BICUBIC,
                fillcolor=TRANSPARENT,
            )
        self.paste(layer, (left, top))

    def paste(self, layer: Image.Image, position: Tuple[int, int] = (0, 0)) -> None:
        """Alpha-composite ``layer`` over the canvas at ``position``."""
        if layer.mode != "RGBA":
            layer = layer.convert("RGBA")
        self._image = Image.alpha_composite(self._image, self._place(layer, position))

    def _place(self, layer: Image.Image, position: Tuple[int, int]) -> Image.Image:
        if layer.size == self._image.size and position == (0, 0):
            return layer
        result = Image.new("RGBA", self._image.size, TRANSPARENT)
        result.paste(layer, position)
        return result

    def draw_text_centered(self, text: str, cx: float, cy: float, font: FontType,
                           color: str | tuple) -> None:
        if not (math.isfinite(cx) and math.isfinite(cy)):
            return
        draw = ImageDraw.Draw(self._image)
        draw.text((cx, cy), text, font=font, fill=to_rgba(color), anchor="mm")

    def to_png(self) -> bytes:
        buf = BytesIO()
        self._image.save(buf, "PNG")
        return buf.getvalue()
