from __future__ import annotations

import base64
import logging
from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Sequence

from PIL import Image, UnidentifiedImageError

from .loader import decode_data_url

if TYPE_CHECKING:
    from .compositor import RenderedPoster

log = logging.getLogger(__name__)


def poster_filename(prefix: str = "promo-poster", now: datetime | None = None) -> str:
    now = now or datetime.now()
    return f"{prefix}-{int(now.timestamp() * 1000)}.png"


def png_data_url(png: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")


def data_url_to_bytes(url: str) -> bytes:
    if not url.startswith("data:"):
        raise ValueError("not a data URL")
    return decode_data_url(url)


def save_poster(rendered: "RenderedPoster", folder: str | Path, filename: Optional[str] = None) -> Path:
    out = Path(folder)
    out.mkdir(parents=True, exist_ok=True)
    fn = (filename or rendered.filename).replace("/", "_").replace("\\", "_")
    path = out / fn
    path.write_bytes(rendered.png)
    log.info("Poster saved: %s", path)
    return path


def aggregate_images(promo_images: Sequence[str] | None,
                     poster: Optional[str] = None,
                     qr_code: Optional[str] = None) -> List[str]:
    """Promo images first, then the user's poster, then their QR code."""
    images = [img for img in (promo_images or []) if img]
    if poster:
        images.append(poster)
    if qr_code:
        images.append(qr_code)
    return images


def _image_bytes(src: str) -> bytes:
    if src.startswith("data:"):
        return data_url_to_bytes(src)
    return Path(src).read_bytes()


def export_bundle(item_id: str, images: Sequence[str], folder: str | Path,
                  prefix: str = "promo") -> List[Path]:
    """Write each image (data URL or file path) as ``<prefix>-<id>-<idx>.png``.

    Use ``prefix="product"`` for an item's product shots. Undecodable images
    are skipped.
    """
    out = Path(folder)
    out.mkdir(parents=True, exist_ok=True)
    safe_id = str(item_id).replace("/", "_").replace("\\", "_")
    written: List[Path] = []
    for idx, src in enumerate(images):
        try:
            img = Image.open(BytesIO(_image_bytes(src)))
            img.load()
        except (ValueError, OSError, UnidentifiedImageError) as e:
            log.warning("Skipping image %d of %s: %s", idx, safe_id, e)
            continue
        path = out / f"{prefix}-{safe_id}-{idx}.png"
        img.save(path, "PNG")
        written.append(path)
    return written
