from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

from .paths import config_file, ensure_dirs, output_dir, profiles_file

log = logging.getLogger(__name__)


DEFAULTS: Dict[str, Any] = {
    "poster": {
        "width": 750,
        "default_height": 1334,
        "fallback_color": "#F0F0F0",
        "plate_color": "#FFFFFF",
        "plate_margin": 5,
    },
    "placeholder": {
        "fill_color": "#EEEEEE",
        "text_color": "#999999",
        "text": "your QR code",
        "font_size": 14,
        "font_family": "",
        "font_path": "",
    },
    "output": {"folder": "output_posters", "filename_prefix": "promo-poster"},
    "profiles": {"path": "", "current_user": ""},
    "debug": False,
}


class AppConfig:
    def __init__(self, path: Path | str | None = None) -> None:
        # Ensure required directories exist before reading/saving
        ensure_dirs()
        self.path = Path(path) if path is not None else config_file()
        self.data: Dict[str, Any] = json.loads(json.dumps(DEFAULTS))  # deep copy
        if self.path.exists():
            self.load()

    def load(self) -> None:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                incoming = json.load(f)
            if isinstance(incoming, dict):
                self._merge(self.data, incoming)
        except (OSError, ValueError) as e:
            # Keep defaults on error
            log.warning("Config %s unreadable, using defaults: %s", self.path, e)

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as f:
            json.dump(self.data, f, ensure_ascii=False, indent=2)

    def _merge(self, target: Dict[str, Any], src: Dict[str, Any]) -> None:
        for k, v in src.items():
            if isinstance(v, dict) and isinstance(target.get(k), dict):
                self._merge(target[k], v)
            else:
                target[k] = v

    # Convenience getters/setters
    @property
    def width(self) -> int:
        try:
            return int(self.data["poster"]["width"])
        except (TypeError, ValueError):
            return int(DEFAULTS["poster"]["width"])

    @width.setter
    def width(self, w: int) -> None:
        self.data["poster"]["width"] = int(w)

    @property
    def output_folder(self) -> Path:
        return output_dir(self.data["output"].get("folder") or None)

    @output_folder.setter
    def output_folder(self, s: str) -> None:
        self.data["output"]["folder"] = str(s)

    @property
    def filename_prefix(self) -> str:
        return str(self.data["output"].get("filename_prefix") or "promo-poster")

    @property
    def profiles_path(self) -> Path:
        p = self.data.get("profiles", {}).get("path")
        return Path(p) if p else profiles_file()

    @property
    def current_user(self) -> str:
        return str(self.data.get("profiles", {}).get("current_user", ""))

    @current_user.setter
    def current_user(self, nickname: str) -> None:
        self.data.setdefault("profiles", {})["current_user"] = str(nickname)

    @property
    def debug(self) -> bool:
        return bool(self.data.get("debug", False))

    @debug.setter
    def debug(self, v: bool) -> None:
        self.data["debug"] = bool(v)

    # Poster / placeholder getters/setters (generic)
    def get_poster(self, key: str, default: Any = None) -> Any:
        return self.data.get("poster", {}).get(key, default)

    def set_poster(self, key: str, value: Any) -> None:
        self.data.setdefault("poster", {})[key] = value

    def get_placeholder(self, key: str, default: Any = None) -> Any:
        return self.data.get("placeholder", {}).get(key, default)

    def set_placeholder(self, key: str, value: Any) -> None:
        self.data.setdefault("placeholder", {})[key] = value
