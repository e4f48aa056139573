"""Reference-space geometry for the poster overlay.

All overlay placement is authored against a 750 unit wide design. At render
time the box is scaled linearly to the real output width, while zoom and pan
stay unitless and only affect how the overlay source is sampled.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping

REFERENCE_WIDTH = 750


@dataclass(frozen=True)
class PosterConfig:
    x: float
    y: float
    size: float
    zoom: float = 1.0
    crop_x: float = 0.0  # percent of the overlay source width
    crop_y: float = 0.0  # percent of the overlay source height

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PosterConfig":
        """Build from a stored config; accepts cropX/cropY or crop_x/crop_y.

        Missing or zero zoom means no magnification.
        """
        def _num(*keys: str, default: float = 0.0) -> float:
            for k in keys:
                v = data.get(k)
                if v is not None and v != "":
                    return float(v)
            return default

        zoom = _num("zoom", default=1.0) or 1.0
        return cls(
            x=_num("x"),
            y=_num("y"),
            size=_num("size"),
            zoom=zoom,
            crop_x=_num("cropX", "crop_x"),
            crop_y=_num("cropY", "crop_y"),
        )

    def to_dict(self) -> Dict[str, float]:
        return {
            "x": self.x,
            "y": self.y,
            "size": self.size,
            "zoom": self.zoom,
            "cropX": self.crop_x,
            "cropY": self.crop_y,
        }


# Fallback placement used when neither the caller nor any profile supplies one.
# y=1688 sits below most 1200-1334px templates; kept as authored.
DEFAULT_POSTER_CONFIG = PosterConfig(x=43, y=1688, size=166, zoom=1.2, crop_x=0, crop_y=-5)


@dataclass(frozen=True)
class OverlayBox:
    x: float
    y: float
    size: float


@dataclass(frozen=True)
class SourceRect:
    x: float
    y: float
    width: float
    height: float

    @property
    def box(self) -> tuple[float, float, float, float]:
        return (self.x, self.y, self.x + self.width, self.y + self.height)


def scale_ratio(target_width: float) -> float:
    return target_width / REFERENCE_WIDTH


def resolve(config: PosterConfig, target_width: float) -> OverlayBox:
    """Scale the reference-space box of ``config`` to ``target_width`` pixels.

    Only position and size are scaled. Values are not validated, so negative
    or NaN fields come out the same way they went in.
    """
    ratio = scale_ratio(target_width)
    return OverlayBox(x=config.x * ratio, y=config.y * ratio, size=config.size * ratio)


def cover_rect(src_w: float, src_h: float, dst_w: float, dst_h: float,
               zoom: float = 1.0, crop_x: float = 0.0, crop_y: float = 0.0) -> SourceRect:
    """Return the source rectangle that fills ``dst_w x dst_h`` without distortion.

    1. Cover: trim the relatively larger source dimension, centered.
    2. Zoom (only when > 1): shrink that rectangle around its own center.
    3. Pan: shift by ``crop_x``/``crop_y`` percent of the *full* source size.

    The result is not clamped to the source bounds.
    """
    ratio = dst_w / dst_h
    img_ratio = src_w / src_h

    sx, sy, sw, sh = 0.0, 0.0, float(src_w), float(src_h)
    if img_ratio > ratio:
        # source is relatively wider: trim width
        sw = src_h * ratio
        sx = (src_w - sw) / 2
    else:
        # source is relatively taller: trim height
        sh = src_w / ratio
        sy = (src_h - sh) / 2

    if zoom > 1:
        zw = sw / zoom
        zh = sh / zoom
        sx += (sw - zw) / 2
        sy += (sh - zh) / 2
        sw, sh = zw, zh

    sx -= (crop_x / 100) * src_w
    sy -= (crop_y / 100) * src_h
    return SourceRect(sx, sy, sw, sh)
