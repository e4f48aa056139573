"""Asynchronous image loading with a success/failure result instead of exceptions."""
from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Optional, Union
from urllib.parse import unquote_to_bytes

import aiohttp
from PIL import Image, UnidentifiedImageError

log = logging.getLogger(__name__)

ImageSource = Union[str, bytes, Path, Image.Image]


@dataclass
class LoadResult:
    source: str
    image: Optional[Image.Image] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.image is not None


def describe_source(source: object) -> str:
    if isinstance(source, Image.Image):
        return f"<image {source.width}x{source.height}>"
    if isinstance(source, (bytes, bytearray)):
        return f"<{len(source)} bytes>"
    s = str(source)
    if s.startswith("data:"):
        return s[:32] + "..."
    return s if len(s) <= 120 else s[:117] + "..."


def decode_data_url(url: str) -> bytes:
    header, sep, payload = url.partition(",")
    if not sep:
        raise ValueError("data URL without payload")
    if header.endswith(";base64"):
        try:
            return base64.b64decode(payload, validate=False)
        except binascii.Error as e:
            raise ValueError(f"bad base64 payload: {e}") from e
    return unquote_to_bytes(payload)


def _decode(data: bytes) -> Image.Image:
    img = Image.open(BytesIO(data))
    img.load()
    return img.convert("RGBA")


async def _fetch(url: str, session: aiohttp.ClientSession | None) -> bytes:
    if session is not None:
        async with session.get(url) as resp:
            resp.raise_for_status()
            return await resp.read()
    async with aiohttp.ClientSession() as own:
        async with own.get(url) as resp:
            resp.raise_for_status()
            return await resp.read()


async def _read_bytes(source: ImageSource, session: aiohttp.ClientSession | None) -> bytes:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    s = str(source)
    if s.startswith("data:"):
        return decode_data_url(s)
    if s.startswith(("http://", "https://")):
        return await _fetch(s, session)
    return await asyncio.to_thread(Path(s).read_bytes)


async def load_image(source: ImageSource | None,
                     session: aiohttp.ClientSession | None = None) -> LoadResult:
    """Resolve ``source`` to an RGBA image.

    Never raises for a bad asset: the failure is logged and returned.
    """
    label = describe_source(source)
    if source is None or (isinstance(source, str) and not source.strip()):
        return LoadResult(label, error="no source")
    if isinstance(source, Image.Image):
        return LoadResult(label, image=source.convert("RGBA"))
    try:
        data = await _read_bytes(source, session)
        img = _decode(data)
    except (OSError, ValueError, UnidentifiedImageError, Image.DecompressionBombError,
            aiohttp.ClientError, asyncio.TimeoutError) as e:
        log.warning("Image load failed: %s (%s)", label, e)
        return LoadResult(label, error=str(e) or e.__class__.__name__)
    log.debug("Loaded %s (%dx%d)", label, img.width, img.height)
    return LoadResult(label, image=img)
