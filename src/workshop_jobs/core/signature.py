"""SignatureCapture — freehand strokes rendered into a fixed raster.

Input coordinates arrive in widget (display) space and are scaled to
surface pixels, so a signature looks the same however large the pad is
shown.  Saving downsamples the whole surface to a small JPEG that is
embedded in the signature record itself.
"""

import base64
import logging
from typing import Optional

from PySide6.QtCore import QBuffer, QByteArray, QIODevice, QPointF, QRect, Qt
from PySide6.QtGui import QColor, QImage, QPainter, QPen

from workshop_jobs.core.cache import LocalCache
from workshop_jobs.core.clock import Clock, to_iso, utc_now
from workshop_jobs.core.errors import (
    PreconditionError,
    ValidationError,
    WorkshopError,
)
from workshop_jobs.store.base import SIGNATURES, RemoteStore
from workshop_jobs.store.models import Signature

logger = logging.getLogger(__name__)

SURFACE_WIDTH = 600
SURFACE_HEIGHT = 400
STROKE_WIDTH = 3
STROKE_COLOR = "#000000"

SAVED_WIDTH = 200
SAVED_HEIGHT = 100
JPEG_QUALITY = 60

# Channel values at or above this count as paper, not ink
NEAR_WHITE = 245


_PAPER_BYTES = bytes(range(NEAR_WHITE, 256))


def image_has_ink(image: QImage) -> bool:
    """True if any pixel is visible and darker than near-white."""
    rgba = image.convertToFormat(QImage.Format.Format_RGBA8888)
    data = bytes(rgba.constBits())
    channels = (data[0::4], data[1::4], data[2::4])
    if not any(c.translate(None, _PAPER_BYTES) for c in channels):
        return False
    alpha = data[3::4]
    if 0 not in alpha:
        return True
    # Transparent pixels never count as ink
    return any(
        a and (r < NEAR_WHITE or g < NEAR_WHITE or b < NEAR_WHITE)
        for r, g, b, a in zip(*channels, alpha)
    )


def encode_jpeg_data_url(image: QImage, quality: int = JPEG_QUALITY) -> str:
    buffer_bytes = QByteArray()
    buffer = QBuffer(buffer_bytes)
    buffer.open(QIODevice.OpenModeFlag.WriteOnly)
    ok = image.save(buffer, "JPEG", quality)
    buffer.close()
    if not ok:
        raise WorkshopError("Could not encode the signature image")
    payload = base64.b64encode(bytes(buffer_bytes.data())).decode("ascii")
    return f"data:image/jpeg;base64,{payload}"


class SignatureSurface:
    """The drawing surface: a white ARGB image plus the pen position."""

    def __init__(self, width: int = SURFACE_WIDTH,
                 height: int = SURFACE_HEIGHT):
        self.image = QImage(width, height, QImage.Format.Format_ARGB32)
        self._pen = QPen(
            QColor(STROKE_COLOR), STROKE_WIDTH, Qt.PenStyle.SolidLine,
            Qt.PenCapStyle.RoundCap, Qt.PenJoinStyle.RoundJoin,
        )
        self._last: Optional[QPointF] = None
        self.clear()

    @property
    def width(self) -> int:
        return self.image.width()

    @property
    def height(self) -> int:
        return self.image.height()

    @property
    def is_drawing(self) -> bool:
        return self._last is not None

    def clear(self):
        self.image.fill(QColor("#FFFFFF"))
        self._last = None

    def map_point(self, x: float, y: float,
                  display_width: float, display_height: float) -> QPointF:
        """Scale a display-space point by surface size ÷ displayed size."""
        scale_x = self.width / display_width if display_width else 1.0
        scale_y = self.height / display_height if display_height else 1.0
        return QPointF(x * scale_x, y * scale_y)

    def begin_stroke(self, point: QPointF):
        self._last = QPointF(point)

    def extend_stroke(self, point: QPointF):
        """Connect the previous sample to *point* with a straight segment."""
        if self._last is None:
            return
        painter = QPainter(self.image)
        try:
            painter.setRenderHint(QPainter.RenderHint.Antialiasing)
            painter.setPen(self._pen)
            painter.drawLine(self._last, point)
        finally:
            painter.end()
        self._last = QPointF(point)

    def end_stroke(self):
        self._last = None

    def has_ink(self) -> bool:
        return image_has_ink(self.image)

    def downsampled(self, width: int = SAVED_WIDTH,
                    height: int = SAVED_HEIGHT) -> QImage:
        """The whole surface scaled onto a white canvas of fixed size."""
        small = QImage(width, height, QImage.Format.Format_RGB32)
        small.fill(QColor("#FFFFFF"))
        painter = QPainter(small)
        try:
            painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
            painter.drawImage(QRect(0, 0, width, height), self.image)
        finally:
            painter.end()
        return small


class SignatureCapture:
    """Pointer input, ink detection and saving of the customer signature."""

    def __init__(self, store: RemoteStore, cache: LocalCache,
                 clock: Clock = utc_now,
                 surface: Optional[SignatureSurface] = None):
        self.store = store
        self.cache = cache
        self.clock = clock
        self.surface = surface or SignatureSurface()

    # ── Pointer / touch input (display coordinates) ─────────────

    def press(self, x: float, y: float, display_width: float,
              display_height: float):
        self.surface.begin_stroke(
            self.surface.map_point(x, y, display_width, display_height)
        )

    def move(self, x: float, y: float, display_width: float,
             display_height: float):
        if not self.surface.is_drawing:
            return
        self.surface.extend_stroke(
            self.surface.map_point(x, y, display_width, display_height)
        )

    def release(self):
        self.surface.end_stroke()

    def clear(self):
        self.surface.clear()

    def has_ink(self) -> bool:
        return self.surface.has_ink()

    # ── Saving ──────────────────────────────────────────────────

    def save(self, job_id: str, signer_name: str) -> Signature:
        """Upsert the signature for *job_id* and clear the surface."""
        name = (signer_name or "").strip()
        if not name:
            raise ValidationError("Please enter the signer's name")
        job = self.cache.job(job_id)
        if job is None:
            raise PreconditionError("Job not found")
        if job.is_done and self.cache.signature_of(job_id) is not None:
            raise PreconditionError("This closed job is already signed")
        if not self.has_ink():
            raise ValidationError("Please sign first")

        record = {
            "job_id": job_id,
            "signer_name": name,
            "signature_data": encode_jpeg_data_url(self.surface.downsampled()),
            "signed_at": to_iso(self.clock()),
        }
        self.store.upsert(SIGNATURES, record, on_conflict="job_id")
        logger.info("Saved signature for job %s", job_id)
        self.surface.clear()
        self.cache.reload_all()
        return Signature.from_row(record)
