# invoice_studio/signature.py
from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional, Tuple

from PIL import Image, ImageDraw

from .config import (
    SIGNATURE_HEIGHT,
    SIGNATURE_STROKE_COLOR,
    SIGNATURE_STROKE_WIDTH,
    SIGNATURE_WIDTH,
)
from .images import (
    ImageDecodeError,
    bytes_to_data_url,
    data_url_to_image,
    image_to_data_url,
    load_image,
)
from .models import InvoiceData
from .store import DocumentStore

logger = logging.getLogger(__name__)

Point = Tuple[float, float]
# Returns the surface's on-screen top-left corner at the moment of the call
Locator = Callable[[], Point]


class PadState(str, Enum):
    IDLE = "idle"
    DRAWING = "drawing"


def fit_box(src_w: int, src_h: int, dst_w: int, dst_h: int) -> Tuple[int, int, int, int]:
    """
    Aspect-fit ``src`` inside ``dst``, centered, without cropping.
    Returns (x, y, width, height) of the placed image.
    """
    scale = min(dst_w / src_w, dst_h / src_h)
    w = max(1, round(src_w * scale))
    h = max(1, round(src_h * scale))
    return (dst_w - w) // 2, (dst_h - h) // 2, w, h


class SignaturePad:
    """
    Freehand signature surface bound to a DocumentStore.

    Press starts a stroke, moves extend it segment by segment, release or
    leave ends it and stores the whole surface as a PNG data URL in
    ``company.signature_url``. Uploads and external changes to that field
    are drawn aspect-fit and centered.
    """

    def __init__(
        self,
        store: DocumentStore,
        locate: Optional[Locator] = None,
        width: int = SIGNATURE_WIDTH,
        height: int = SIGNATURE_HEIGHT,
    ):
        self.store = store
        self.width = width
        self.height = height
        self._locate = locate or (lambda: (0.0, 0.0))

        self.surface = self._blank()
        self.state = PadState.IDLE
        self._last_point: Optional[Point] = None
        # Set while this pad writes signature_url, so its own write is not a reload.
        self._writing = False

        self._unsubscribe = store.subscribe(self._on_document_change)
        self.render_reference(store.document.company.signature_url)

    def close(self) -> None:
        self._unsubscribe()

    def _blank(self) -> Image.Image:
        return Image.new("RGBA", (self.width, self.height), (0, 0, 0, 0))

    def _to_local(self, client_x: float, client_y: float, offset: Optional[Point]) -> Point:
        left, top = offset if offset is not None else self._locate()
        return client_x - left, client_y - top

    # ------------------------------------------------------------------
    # Pointer events
    # ------------------------------------------------------------------
    def press(self, client_x: float, client_y: float, offset: Optional[Point] = None) -> None:
        self._last_point = self._to_local(client_x, client_y, offset)
        self.state = PadState.DRAWING

    def move(self, client_x: float, client_y: float, offset: Optional[Point] = None) -> bool:
        """Extend the stroke. Returns False (and draws nothing) when not drawing."""
        if self.state is not PadState.DRAWING:
            return False

        point = self._to_local(client_x, client_y, offset)
        self._stroke(self._last_point, point)
        self._last_point = point
        return True

    def release(self) -> Optional[str]:
        """End the stroke and store the surface. Returns the stored data URL."""
        if self.state is not PadState.DRAWING:
            return None

        self.state = PadState.IDLE
        self._last_point = None

        url = image_to_data_url(self.surface)
        self._store_signature(url)
        return url

    # Leaving the surface mid-stroke finishes the stroke the same way.
    leave = release

    def _stroke(self, start: Point, end: Point) -> None:
        draw = ImageDraw.Draw(self.surface)
        draw.line([start, end], fill=SIGNATURE_STROKE_COLOR, width=SIGNATURE_STROKE_WIDTH)
        # round caps
        r = SIGNATURE_STROKE_WIDTH / 2
        for x, y in (start, end):
            draw.ellipse([x - r, y - r, x + r, y + r], fill=SIGNATURE_STROKE_COLOR)

    # ------------------------------------------------------------------
    # Upload / clear / reload
    # ------------------------------------------------------------------
    def upload(self, raw: bytes, mime: Optional[str] = None) -> str:
        """
        Draw an uploaded image aspect-fit onto the surface and store the
        original file, not the scaled rendering, as the signature.
        """
        url = bytes_to_data_url(raw, mime)
        self._draw_fitted(load_image(raw))
        self._store_signature(url)
        return url

    def clear(self) -> None:
        self.surface = self._blank()
        self.state = PadState.IDLE
        self._last_point = None
        self._store_signature("")

    def _store_signature(self, url: str) -> None:
        self._writing = True
        try:
            self.store.update_field("company", "signature_url", url)
        finally:
            self._writing = False

    def render_reference(self, url: str) -> None:
        """Redraw the surface from a stored data URL ("" leaves it blank)."""
        self.surface = self._blank()
        if not url:
            return
        try:
            self._draw_fitted(data_url_to_image(url))
        except ImageDecodeError as e:
            logger.warning("Stored signature could not be drawn: %s", e)

    def _draw_fitted(self, img: Image.Image) -> None:
        x, y, w, h = fit_box(img.width, img.height, self.width, self.height)
        scaled = img.convert("RGBA").resize((w, h), Image.Resampling.LANCZOS)
        self.surface = self._blank()
        self.surface.alpha_composite(scaled, dest=(x, y))

    def _on_document_change(self, old: InvoiceData, new: InvoiceData) -> None:
        if self._writing:
            return
        url = new.company.signature_url
        if url != old.company.signature_url:
            self.render_reference(url)

    def to_data_url(self) -> str:
        return image_to_data_url(self.surface)

    def is_blank(self) -> bool:
        return self.surface.getbbox() is None
