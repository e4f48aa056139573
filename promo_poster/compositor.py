"""Poster compositor: background template, backing plate, then the user's QR code.

Layers are drawn strictly in order and each call to :func:`compose` owns its
own :class:`~promo_poster.surface.Canvas`, so renders never share pixels.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import aiohttp
from PIL import Image

from .config import AppConfig, DEFAULTS
from .export import png_data_url, poster_filename
from .fonts import get_font
from .geometry import DEFAULT_POSTER_CONFIG, PosterConfig, cover_rect, resolve
from .loader import ImageSource, load_image
from .surface import Canvas

log = logging.getLogger(__name__)

DEFAULT_WIDTH = 750


@dataclass(frozen=True)
class PosterStyle:
    default_height: int = 1334
    fallback_color: str = "#F0F0F0"
    plate_color: str = "#FFFFFF"
    plate_margin: float = 5
    placeholder_fill: str = "#EEEEEE"
    placeholder_text_color: str = "#999999"
    placeholder_text: str = "your QR code"
    placeholder_font_size: int = 14
    font_family: Optional[str] = None
    font_path: Optional[str] = None

    @classmethod
    def from_config(cls, cfg: AppConfig) -> "PosterStyle":
        p = DEFAULTS["poster"]
        ph = DEFAULTS["placeholder"]
        return cls(
            default_height=int(cfg.get_poster("default_height", p["default_height"])),
            fallback_color=str(cfg.get_poster("fallback_color", p["fallback_color"])),
            plate_color=str(cfg.get_poster("plate_color", p["plate_color"])),
            plate_margin=float(cfg.get_poster("plate_margin", p["plate_margin"])),
            placeholder_fill=str(cfg.get_placeholder("fill_color", ph["fill_color"])),
            placeholder_text_color=str(cfg.get_placeholder("text_color", ph["text_color"])),
            placeholder_text=str(cfg.get_placeholder("text", ph["text"])),
            placeholder_font_size=int(cfg.get_placeholder("font_size", ph["font_size"])),
            font_family=cfg.get_placeholder("font_family") or None,
            font_path=cfg.get_placeholder("font_path") or None,
        )


@dataclass
class RenderedPoster:
    image: Image.Image
    png: bytes
    filename: str = field(default_factory=poster_filename)

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size

    @property
    def data_url(self) -> str:
        return png_data_url(self.png)


def _draw_placeholder(canvas: Canvas, x: float, y: float, size: float, style: PosterStyle) -> None:
    canvas.fill_rect(x, y, size, size, style.placeholder_fill)
    font = get_font(style.placeholder_font_size, style.font_family, style.font_path)
    canvas.draw_text_centered(style.placeholder_text, x + size / 2, y + size / 2,
                              font, style.placeholder_text_color)


async def compose(width: float = DEFAULT_WIDTH,
                  background: ImageSource | None = None,
                  overlay: ImageSource | None = None,
                  config: PosterConfig | None = None,
                  *,
                  master: bool = False,
                  style: PosterStyle | None = None,
                  on_complete: Callable[[str], Any] | None = None,
                  session: aiohttp.ClientSession | None = None) -> RenderedPoster:
    """Render one poster and return it PNG-encoded.

    ``master`` renders the recruitment poster: ``background`` is the template
    (drawn stretched, canvas height follows its aspect ratio) and the QR code
    in ``overlay`` is placed with ``config``. Otherwise ``background`` is a
    product image cover-fitted into a square canvas and no overlay is drawn.

    Missing or broken assets degrade to flat colours and placeholders. Only
    :class:`~promo_poster.surface.SurfaceError` propagates.
    """
    style = style or PosterStyle()

    # 1. Canvas dimensions
    height: float = style.default_height
    template: Image.Image | None = None
    product: Image.Image | None = None
    if master:
        if background is not None:
            res = await load_image(background, session)
            if res.ok:
                template = res.image
                # very wide templates still get a one pixel tall canvas
                height = max(1.0, width * (template.height / template.width))
            else:
                log.warning("Master template unavailable, using fallback background")
    elif background is not None:
        height = width
        res = await load_image(background, session)
        if res.ok:
            product = res.image

    canvas = Canvas(width, height)

    # 2. Background layer
    if template is not None:
        canvas.draw_image(template, 0, 0, canvas.width, canvas.height)
    elif product is not None:
        src = cover_rect(product.width, product.height, canvas.width, canvas.height)
        canvas.draw_image(product, 0, 0, canvas.width, canvas.height, src)
    else:
        canvas.fill(style.fallback_color)

    # 3. QR overlay (master only)
    if master:
        cfg = config or DEFAULT_POSTER_CONFIG
        box = resolve(cfg, width)
        m = style.plate_margin
        canvas.fill_rect(box.x - m, box.y - m, box.size + 2 * m, box.size + 2 * m, style.plate_color)

        if overlay is not None:
            res = await load_image(overlay, session)
            if res.ok:
                qr = res.image
                # a degenerate box draws nothing
                if box.size > 0:
                    src = cover_rect(qr.width, qr.height, box.size, box.size,
                                     zoom=cfg.zoom, crop_x=cfg.crop_x, crop_y=cfg.crop_y)
                    canvas.draw_image(qr, box.x, box.y, box.size, box.size, src)
            else:
                log.warning("QR code unavailable, drawing placeholder")
                _draw_placeholder(canvas, box.x, box.y, box.size, style)
        else:
            _draw_placeholder(canvas, box.x, box.y, box.size, style)

        if (box.x + box.size <= 0 or box.y + box.size <= 0
                or box.x >= canvas.width or box.y >= canvas.height):
            log.info("QR box (%.0f, %.0f, %.0f) lies outside the %dx%d canvas",
                     box.x, box.y, box.size, canvas.width, canvas.height)

    # 4. Encode
    rendered = RenderedPoster(image=canvas.image, png=canvas.to_png())
    log.debug("Rendered poster %dx%d (master=%s)", canvas.width, canvas.height, master)
    if on_complete is not None:
        on_complete(rendered.data_url)
    return rendered


def render_poster(*args: Any, **kwargs: Any) -> RenderedPoster:
    """Blocking wrapper around :func:`compose` for threads without an event loop."""
    return asyncio.run(compose(*args, **kwargs))
