from __future__ import annotations

import logging
from io import BytesIO
from typing import Optional

import cv2
import numpy as np
import qrcode
from PIL import Image

from .export import png_data_url
from .geometry import OverlayBox

log = logging.getLogger(__name__)


def make_qr_image(data: str,
                  fill_color: str = "#000000",
                  back_color: str = "#FFFFFF",
                  box_size: int = 10,
                  border: int = 4) -> Image.Image:
    qr = qrcode.QRCode(error_correction=qrcode.constants.ERROR_CORRECT_M,
                       box_size=box_size, border=border)
    qr.add_data(data)
    qr.make(fit=True)
    return qr.make_image(fill_color=fill_color, back_color=back_color).convert("RGBA")


def qr_data_url(data: str, **kwargs) -> str:
    """PNG data URL of a fresh QR code, ready to store as a profile's ``qr_code``."""
    buf = BytesIO()
    make_qr_image(data, **kwargs).save(buf, "PNG")
    return png_data_url(buf.getvalue())


def decode_qr(image: Image.Image) -> Optional[str]:
    # OpenCV wants BGR; flatten transparency onto white first
    rgba = image.convert("RGBA")
    flat = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
    flat.alpha_composite(rgba)
    bgr = cv2.cvtColor(np.array(flat.convert("RGB")), cv2.COLOR_RGB2BGR)
    detector = cv2.QRCodeDetector()
    data, points, _ = detector.detectAndDecode(bgr)
    if points is None or not data:
        return None
    return str(data)


def verify_poster_qr(poster: Image.Image, box: OverlayBox, margin: float = 5) -> Optional[str]:
    """Decode the QR code drawn into ``box`` of a rendered poster.

    Returns the payload, or None when the configured zoom/pan leaves the code
    unreadable or the box is off-canvas.
    """
    left = max(0, int(box.x - margin))
    top = max(0, int(box.y - margin))
    right = min(poster.width, int(round(box.x + box.size + margin)))
    bottom = min(poster.height, int(round(box.y + box.size + margin)))
    if right <= left or bottom <= top:
        log.info("QR box is outside the poster, nothing to verify")
        return None
    region = poster.crop((left, top, right, bottom))
    # upscale small crops so the detector can find finder patterns
    if region.width < 200:
        k = max(2, 200 // max(1, region.width))
        region = region.resize((region.width * k, region.height * k), Image.Resampling.NEAREST)
    # add a white quiet zone around the crop
    pad = Image.new("RGBA", (region.width + 40, region.height + 40), (255, 255, 255, 255))
    pad.paste(region.convert("RGBA"), (20, 20))
    return decode_qr(pad)
