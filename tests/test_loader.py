from __future__ import annotations

import asyncio
import base64
import logging

import aiohttp

from promo_poster import loader
from promo_poster.loader import describe_source, load_image


def test_missing_source_is_a_failed_result():
    res = asyncio.run(load_image(None))
    assert not res.ok
    assert res.error == "no source"


def test_missing_file_logs_warning_and_fails(tmp_path, caplog):
    with caplog.at_level(logging.WARNING, logger="promo_poster.loader"):
        res = asyncio.run(load_image(str(tmp_path / "nope.png")))
    assert not res.ok
    assert res.error
    assert "Image load failed" in caplog.text


def test_loads_file_bytes_and_data_url(tmp_path, png_bytes):
    data = png_bytes((8, 6), (1, 2, 3, 255))
    path = tmp_path / "qr.png"
    path.write_bytes(data)
    url = "data:image/png;base64," + base64.b64encode(data).decode()

    for src in (str(path), path, data, url):
        res = asyncio.run(load_image(src))
        assert res.ok, src
        assert res.image.size == (8, 6)
        assert res.image.mode == "RGBA"


def test_pil_image_is_passed_through(solid_image):
    res = asyncio.run(load_image(solid_image((3, 4), (9, 9, 9, 255))))
    assert res.ok
    assert res.image.size == (3, 4)


def test_garbage_bytes_fail_without_raising():
    res = asyncio.run(load_image(b"not an image"))
    assert not res.ok
    res = asyncio.run(load_image("data:image/png;base64,!!!!"))
    assert not res.ok


def test_http_source_uses_fetch(monkeypatch, png_bytes):
    data = png_bytes((5, 5), (0, 0, 0, 255))
    seen = []

    async def fake_fetch(url, session):
        seen.append(url)
        return data

    monkeypatch.setattr(loader, "_fetch", fake_fetch)
    res = asyncio.run(load_image("https://cdn.example.com/qr.png"))
    assert res.ok
    assert seen == ["https://cdn.example.com/qr.png"]


def test_http_error_becomes_failed_result(monkeypatch):
    async def failing_fetch(url, session):
        raise aiohttp.ClientConnectionError("connection refused")

    monkeypatch.setattr(loader, "_fetch", failing_fetch)
    res = asyncio.run(load_image("http://unreachable.invalid/template.png"))
    assert not res.ok
    assert "connection refused" in res.error


def test_describe_source_truncates_data_urls():
    label = describe_source("data:image/png;base64," + "A" * 5000)
    assert len(label) < 40
    assert label.endswith("...")
