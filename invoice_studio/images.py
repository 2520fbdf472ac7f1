# invoice_studio/images.py
"""Encoded image references: self-contained ``data:`` URLs for logos and signatures."""
from __future__ import annotations

import base64
import binascii
import io
import re
from urllib.parse import unquote_to_bytes

from PIL import Image, UnidentifiedImageError

DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(?:;[^,;]*)*?)(?P<b64>;base64)?,(?P<data>.*)$", re.S)


class ImageDecodeError(ValueError):
    """Bytes or a data URL that do not hold a readable image."""


def sniff_mime(raw: bytes) -> str:
    try:
        with Image.open(io.BytesIO(raw)) as img:
            fmt = img.format
    except (UnidentifiedImageError, OSError) as e:
        raise ImageDecodeError(f"not an image: {e}") from e
    return Image.MIME.get(fmt or "", "application/octet-stream")


def bytes_to_data_url(raw: bytes, mime: str | None = None) -> str:
    """Wrap an uploaded file as-is. The bytes are not re-encoded."""
    if mime is None:
        mime = sniff_mime(raw)
    return f"data:{mime};base64,{base64.b64encode(raw).decode('ascii')}"


def image_to_data_url(img: Image.Image) -> str:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return bytes_to_data_url(buf.getvalue(), "image/png")


def data_url_to_bytes(url: str) -> bytes:
    m = DATA_URL_RE.match(url or "")
    if not m:
        raise ImageDecodeError("not a data URL")
    payload = m.group("data")
    if m.group("b64"):
        try:
            return base64.b64decode(payload, validate=False)
        except (binascii.Error, ValueError) as e:
            raise ImageDecodeError(f"bad base64 payload: {e}") from e
    return unquote_to_bytes(payload)


def load_image(raw: bytes) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(raw))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ImageDecodeError(f"cannot decode image: {e}") from e
    return img


def data_url_to_image(url: str) -> Image.Image:
    return load_image(data_url_to_bytes(url))
