from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from .compositor import PosterStyle, render_poster
from .config import AppConfig
from .export import poster_filename, save_poster
from .geometry import PosterConfig
from .logger import setup_logging
from .profiles import ProfileStore, resolve_inputs
from .surface import SurfaceError


def _poster_config(text: str) -> PosterConfig:
    data = json.loads(text)
    if not isinstance(data, dict):
        raise argparse.ArgumentTypeError("expected a JSON object")
    return PosterConfig.from_dict(data)


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="promo-poster")
    p.add_argument("--config", help="config.json path (default ./setting/config.json)")
    p.add_argument("--debug", action="store_true")
    p.add_argument("--render", action="store_true", help="render one poster and exit")
    p.add_argument("--user", help="profile nickname to render for")
    p.add_argument("--template", help="background template (file, URL or data URL)")
    p.add_argument("--qr", help="QR code image (file, URL or data URL)")
    p.add_argument("--qr-config", type=_poster_config, help='JSON such as {"x":43,"y":1000,"size":166}')
    p.add_argument("--width", type=int, help="output width in pixels")
    p.add_argument("--product", action="store_true", help="square product image instead of a master poster")
    p.add_argument("--out", help="output folder")
    return p.parse_args(argv)


def render_once(cfg: AppConfig, args: argparse.Namespace) -> Path:
    store = ProfileStore(cfg.profiles_path)
    user = store.get_user(args.user or cfg.current_user)
    inputs = resolve_inputs(user, store.global_settings(), args.template, args.qr_config)
    width = args.width or cfg.width
    style = PosterStyle.from_config(cfg)
    if args.product:
        rendered = render_poster(width, args.template, style=style)
    else:
        rendered = render_poster(width, inputs.template, args.qr or inputs.qr_code, inputs.config,
                                 master=True, style=style)
    return save_poster(rendered, args.out or cfg.output_folder, poster_filename(cfg.filename_prefix))


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    cfg = AppConfig(Path(args.config)) if args.config else AppConfig()
    if args.debug:
        cfg.debug = True
    log = setup_logging(cfg.debug)

    if args.render:
        try:
            path = render_once(cfg, args)
        except SurfaceError as e:
            log.error("Poster rendering failed: %s", e)
            return 1
        print(path)
        return 0

    from PyQt6 import QtWidgets
    from .ui import PosterWindow

    app = QtWidgets.QApplication(sys.argv)
    app.setApplicationName("推广海报")
    win = PosterWindow(cfg)
    win.resize(1000, 760)
    win.show()
    win.render_preview()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
