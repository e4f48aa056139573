from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from PIL import ImageFont

FontType = ImageFont.FreeTypeFont | ImageFont.ImageFont


def _font_dirs() -> List[Path]:
    if os.name == 'nt':
        return [Path(os.environ.get('WINDIR', 'C:/Windows')) / 'Fonts']
    return [
        Path('/usr/share/fonts'),
        Path('/usr/local/share/fonts'),
        Path.home() / '.fonts',
        Path('/Library/Fonts'),
        Path('/System/Library/Fonts'),
        Path.home() / 'Library/Fonts',
    ]


def find_font_file(family: Optional[str]) -> Optional[str]:
    """Fuzzy match a family name against font file stems in the usual folders."""
    if not family:
        return None
    family_norm = family.lower().strip().replace(' ', '').replace('-', '').replace('_', '')
    for root in _font_dirs():
        if not root.exists():
            continue
        for p in root.rglob('*'):
            if p.suffix.lower() not in ('.ttf', '.otf', '.ttc'):
                continue
            name = p.stem.lower().replace(' ', '').replace('-', '').replace('_', '')
            if family_norm in name:
                return str(p)
    return None


@lru_cache(maxsize=32)
def get_font(size: int, family: Optional[str] = None, path: Optional[str] = None) -> FontType:
    """Load a TrueType font by explicit path or family, else Pillow's built-in font."""
    fpath = path or find_font_file(family)
    if fpath:
        try:
            return ImageFont.truetype(fpath, size)
        except OSError:
            pass
    return ImageFont.load_default(size)
