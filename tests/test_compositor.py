from __future__ import annotations

import asyncio
import base64
from io import BytesIO

import pytest
from PIL import Image

from promo_poster.compositor import PosterStyle, compose, render_poster
from promo_poster.config import AppConfig
from promo_poster.geometry import PosterConfig
from promo_poster.surface import SurfaceError

BLUE = (0, 0, 255, 255)
RED = (255, 0, 0, 255)
GREEN = (0, 255, 0, 255)
WHITE = (255, 255, 255, 255)
FALLBACK = (240, 240, 240, 255)
PLACEHOLDER = (238, 238, 238, 255)


def test_fallback_render_without_any_assets():
    rendered = asyncio.run(compose())
    assert rendered.size == (750, 1334)
    assert rendered.png
    decoded = Image.open(BytesIO(rendered.png))
    assert decoded.size == (750, 1334)
    assert rendered.image.getpixel((0, 0)) == FALLBACK
    assert rendered.image.getpixel((749, 1333)) == FALLBACK


def test_master_poster_height_follows_template_aspect(png_bytes):
    template = png_bytes((750, 1200), BLUE)
    rendered = asyncio.run(compose(750, template, master=True))
    assert rendered.size == (750, 1200)
    # default box sits at y=1688, below this template
    assert rendered.image.getpixel((100, 1199)) == BLUE


def test_master_poster_scales_with_width(png_bytes):
    template = png_bytes((750, 1200), BLUE)
    cfg = PosterConfig(x=100, y=200, size=200, zoom=1)
    rendered = asyncio.run(compose(375, template, None, cfg, master=True))
    assert rendered.size == (375, 600)
    # box is (50, 100, 100); placeholder fill inside, template outside
    assert rendered.image.getpixel((52, 102)) == PLACEHOLDER
    assert rendered.image.getpixel((30, 80)) == BLUE


def test_overlay_occludes_background_inside_box(png_bytes, solid_image):
    template = png_bytes((750, 1200), BLUE)
    qr = solid_image((200, 200), RED)
    cfg = PosterConfig(x=100, y=100, size=200, zoom=1, crop_x=0, crop_y=0)
    rendered = asyncio.run(compose(750, template, qr, cfg, master=True))
    img = rendered.image
    for xy in [(110, 110), (200, 200), (290, 290)]:
        assert img.getpixel(xy) == RED
    # five pixel white plate around the box
    assert img.getpixel((97, 150)) == WHITE
    assert img.getpixel((150, 302)) == WHITE
    assert img.getpixel((50, 50)) == BLUE
    assert img.getpixel((306, 150)) == BLUE


def test_broken_overlay_draws_placeholder(png_bytes, tmp_path):
    template = png_bytes((750, 1200), BLUE)
    cfg = PosterConfig(x=100, y=100, size=200)
    rendered = asyncio.run(compose(750, template, str(tmp_path / "missing.png"), cfg, master=True))
    assert rendered.image.getpixel((103, 103)) == PLACEHOLDER
    assert rendered.image.getpixel((97, 103)) == WHITE
    # caption is drawn in the middle of the box
    colors = {rendered.image.getpixel((x, y)) for x in range(150, 250) for y in range(190, 210)}
    assert any(c != PLACEHOLDER for c in colors)


def test_missing_overlay_draws_placeholder(png_bytes):
    template = png_bytes((750, 1200), BLUE)
    cfg = PosterConfig(x=100, y=100, size=200)
    rendered = asyncio.run(compose(750, template, None, cfg, master=True))
    assert rendered.image.getpixel((103, 296)) == PLACEHOLDER


def test_broken_template_falls_back_to_default_canvas(solid_image):
    qr = solid_image((50, 50), RED)
    cfg = PosterConfig(x=10, y=10, size=100)
    rendered = asyncio.run(compose(750, b"broken", qr, cfg, master=True))
    assert rendered.size == (750, 1334)
    assert rendered.image.getpixel((700, 700)) == FALLBACK
    assert rendered.image.getpixel((60, 60)) == RED


def test_product_mode_is_square_cover(solid_image):
    src = Image.new("RGBA", (400, 200), RED)
    src.paste(solid_image((200, 200), GREEN), (200, 0))
    rendered = asyncio.run(compose(750, src, solid_image((10, 10), BLUE), PosterConfig(0, 0, 750)))
    assert rendered.size == (750, 750)
    # centre 200x200 of the source is kept: left half red, right half green
    assert rendered.image.getpixel((100, 375)) == RED
    assert rendered.image.getpixel((650, 375)) == GREEN


def test_product_mode_with_broken_background_is_flat_square():
    rendered = asyncio.run(compose(500, b"broken"))
    assert rendered.size == (500, 500)
    assert rendered.image.getpixel((250, 250)) == FALLBACK


@pytest.mark.parametrize("width", [0, -10])
def test_missing_surface_aborts_render(width):
    with pytest.raises(SurfaceError):
        asyncio.run(compose(width))


def test_completion_callback_receives_data_url():
    received = []
    rendered = asyncio.run(compose(100, on_complete=received.append))
    assert received == [rendered.data_url]
    assert received[0].startswith("data:image/png;base64,")
    assert base64.b64decode(received[0].split(",", 1)[1]) == rendered.png


def test_concurrent_renders_do_not_share_canvas(png_bytes, solid_image):
    template = png_bytes((750, 1000), BLUE)
    cfg = PosterConfig(x=100, y=100, size=200)

    async def both():
        return await asyncio.gather(
            compose(750, template, solid_image((20, 20), RED), cfg, master=True),
            compose(750, template, solid_image((20, 20), GREEN), cfg, master=True),
        )

    a, b = asyncio.run(both())
    assert a.image.getpixel((200, 200)) == RED
    assert b.image.getpixel((200, 200)) == GREEN


def test_style_from_config_and_sync_wrapper(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    cfg = AppConfig(tmp_path / "config.json")
    cfg.set_poster("fallback_color", "#102030")
    cfg.set_poster("default_height", 300)
    rendered = render_poster(200, style=PosterStyle.from_config(cfg))
    assert rendered.size == (200, 300)
    assert rendered.image.getpixel((10, 10)) == (16, 32, 48, 255)
    assert rendered.filename.startswith("promo-poster-")
    assert rendered.filename.endswith(".png")


def test_very_wide_template_still_renders():
    banner = Image.new("RGBA", (20000, 10), BLUE)
    rendered = asyncio.run(compose(750, banner, master=True))
    assert rendered.size == (750, 1)
    assert rendered.png


@pytest.mark.parametrize("x, y", [(-400, 100), (100, -400), (800, 100), (100, 1300)])
def test_off_canvas_box_is_logged(png_bytes, caplog, x, y):
    template = png_bytes((750, 1200), BLUE)
    cfg = PosterConfig(x=x, y=y, size=200)
    with caplog.at_level("INFO", logger="promo_poster.compositor"):
        asyncio.run(compose(750, template, None, cfg, master=True))
    assert "lies outside" in caplog.text


def test_on_canvas_box_is_not_logged(png_bytes, caplog):
    template = png_bytes((750, 1200), BLUE)
    with caplog.at_level("INFO", logger="promo_poster.compositor"):
        asyncio.run(compose(750, template, None, PosterConfig(x=10, y=10, size=200), master=True))
    assert "lies outside" not in caplog.text
