from __future__ import annotations

import sys
from pathlib import Path


def app_root() -> Path:
    """Return the base directory for reading/writing app data.

    - When frozen (PyInstaller), use the executable directory.
    - Otherwise, use current working directory so local runs behave intuitively.
    """
    try:
        if getattr(sys, "frozen", False):  # PyInstaller/py2exe
            return Path(sys.executable).resolve().parent
    except Exception:
        pass
    return Path.cwd()


def config_dir() -> Path:
    return app_root() / "setting"


def config_file() -> Path:
    return config_dir() / "config.json"


# Fixed filenames inside ./setting
PROFILES_FILENAME = "profiles.json"
DEFAULT_OUTPUT_FOLDER = "output_posters"


def profiles_file() -> Path:
    return config_dir() / PROFILES_FILENAME


def output_dir(folder: str | Path | None = None) -> Path:
    p = Path(folder) if folder else Path(DEFAULT_OUTPUT_FOLDER)
    if not p.is_absolute():
        p = app_root() / p
    return p


def ensure_dirs() -> None:
    # Create expected folders if missing
    try:
        config_dir().mkdir(parents=True, exist_ok=True)
    except OSError:
        pass
