from __future__ import annotations

import json

import pytest
from PIL import Image

from promo_poster.main import main
from promo_poster.qr_tools import make_qr_image


def test_headless_render_writes_master_poster(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    Image.new("RGBA", (750, 1000), (0, 0, 255, 255)).save(tmp_path / "template.png")
    make_qr_image("hello").save(tmp_path / "qr.png")
    out = tmp_path / "out"

    rc = main([
        "--render",
        "--config", str(tmp_path / "config.json"),
        "--template", str(tmp_path / "template.png"),
        "--qr", str(tmp_path / "qr.png"),
        "--qr-config", json.dumps({"x": 100, "y": 100, "size": 200}),
        "--width", "375",
        "--out", str(out),
    ])
    assert rc == 0
    files = list(out.glob("promo-poster-*.png"))
    assert len(files) == 1
    assert Image.open(files[0]).size == (375, 500)
    assert str(files[0]) in capsys.readouterr().out


def test_headless_product_render(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    Image.new("RGB", (640, 480), (10, 200, 10)).save(tmp_path / "item.jpg")
    rc = main(["--render", "--product", "--config", str(tmp_path / "config.json"),
               "--template", str(tmp_path / "item.jpg"), "--out", str(tmp_path / "out")])
    assert rc == 0
    (poster,) = (tmp_path / "out").glob("*.png")
    assert Image.open(poster).size == (750, 750)


def test_headless_render_reports_surface_failure(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    rc = main(["--render", "--config", str(tmp_path / "config.json"), "--width", "-5",
               "--out", str(tmp_path / "out")])
    assert rc == 1
    assert not (tmp_path / "out").exists()


def test_headless_render_uses_configured_filename_prefix(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "config.json").write_text(
        json.dumps({"output": {"filename_prefix": "amy-poster"}}), encoding="utf-8")
    rc = main(["--render", "--config", str(tmp_path / "config.json"), "--width", "100",
               "--out", str(tmp_path / "out")])
    assert rc == 0
    (poster,) = (tmp_path / "out").glob("*.png")
    assert poster.name.startswith("amy-poster-")


@pytest.mark.parametrize("bad", ["{x:", "[1, 2]", '{"x": "abc"}'])
def test_malformed_qr_config_is_a_usage_error(tmp_path, monkeypatch, capsys, bad):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(SystemExit) as exc:
        main(["--render", "--config", str(tmp_path / "config.json"), "--qr-config", bad])
    assert exc.value.code == 2
    assert "--qr-config" in capsys.readouterr().err
    assert not (tmp_path / "output_posters").exists()
