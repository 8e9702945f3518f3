"""Tests for the signature surface and saving signatures."""

import base64

import pytest
from PySide6.QtCore import QPointF, Qt
from PySide6.QtGui import QColor, QImage

from workshop_jobs.core.errors import PreconditionError, ValidationError
from workshop_jobs.core.signature import (
    SAVED_HEIGHT,
    SAVED_WIDTH,
    SURFACE_HEIGHT,
    SURFACE_WIDTH,
    SignatureCapture,
    SignatureSurface,
    image_has_ink,
)
from workshop_jobs.store.base import SIGNATURES

PREFIX = "data:image/jpeg;base64,"


@pytest.fixture
def capture(qapp, store, cache, clock):
    return SignatureCapture(store, cache, clock)


def _scribble(capture, width=300, height=200):
    """A diagonal stroke drawn on a pad shown at half size."""
    capture.press(20, 20, width, height)
    capture.move(150, 100, width, height)
    capture.move(280, 180, width, height)
    capture.release()


class TestSurface:

    def test_fixed_size(self, qapp):
        surface = SignatureSurface()
        assert (surface.width, surface.height) == (
            SURFACE_WIDTH, SURFACE_HEIGHT
        )

    def test_blank_has_no_ink(self, qapp):
        assert not SignatureSurface().has_ink()

    def test_stroke_adds_ink(self, qapp):
        surface = SignatureSurface()
        surface.begin_stroke(QPointF(10, 10))
        surface.extend_stroke(QPointF(200, 150))
        surface.end_stroke()
        assert surface.has_ink()

    def test_move_without_press_draws_nothing(self, qapp):
        surface = SignatureSurface()
        surface.extend_stroke(QPointF(200, 150))
        assert not surface.has_ink()

    def test_clear_removes_ink(self, qapp):
        surface = SignatureSurface()
        surface.begin_stroke(QPointF(10, 10))
        surface.extend_stroke(QPointF(50, 50))
        surface.clear()
        assert not surface.has_ink()
        assert not surface.is_drawing

    def test_map_point_scales_to_surface(self, qapp):
        surface = SignatureSurface()
        point = surface.map_point(150, 100, 300, 200)
        assert (point.x(), point.y()) == (300, 200)

    def test_downsampled_size(self, qapp):
        image = SignatureSurface().downsampled()
        assert (image.width(), image.height()) == (SAVED_WIDTH, SAVED_HEIGHT)


class TestCapture:

    def test_pointer_input_inks_surface(self, capture):
        _scribble(capture)
        assert capture.has_ink()
        assert not capture.surface.is_drawing

    def test_save_stores_small_jpeg(self, capture, store, cache, job, clock):
        _scribble(capture)
        saved = capture.save(job.id, "  Anna Muster ")
        assert saved.signer_name == "Anna Muster"
        assert saved.signed_at == clock().isoformat()

        stored = cache.signature_of(job.id)
        assert stored.signature_data.startswith(PREFIX)
        raw = base64.b64decode(stored.signature_data[len(PREFIX):])
        image = QImage.fromData(raw, "JPEG")
        assert (image.width(), image.height()) == (SAVED_WIDTH, SAVED_HEIGHT)

    def test_save_clears_surface(self, capture, job):
        _scribble(capture)
        capture.save(job.id, "Anna")
        assert not capture.has_ink()

    def test_resign_keeps_one_record(self, capture, store, cache, job):
        _scribble(capture)
        capture.save(job.id, "Anna")
        _scribble(capture)
        capture.save(job.id, "Ben")
        rows = [r for r in store.select(SIGNATURES) if r["job_id"] == job.id]
        assert len(rows) == 1
        assert cache.signature_of(job.id).signer_name == "Ben"

    def test_name_required(self, capture, store, job):
        _scribble(capture)
        with pytest.raises(ValidationError, match="name"):
            capture.save(job.id, "   ")
        assert store.select(SIGNATURES) == []

    def test_ink_required(self, capture, store, job):
        with pytest.raises(ValidationError, match="sign first"):
            capture.save(job.id, "Anna")
        assert store.select(SIGNATURES) == []

    def test_unknown_job(self, capture):
        _scribble(capture)
        with pytest.raises(PreconditionError):
            capture.save("missing", "Anna")

    def test_closed_job_can_be_signed_once(self, capture, lifecycle, job):
        lifecycle.close(job.id)
        _scribble(capture)
        capture.save(job.id, "Anna")
        _scribble(capture)
        with pytest.raises(PreconditionError):
            capture.save(job.id, "Ben")


class TestInkDetection:
    """Only visible pixels darker than near-white count as ink."""

    @staticmethod
    def _canvas(fill):
        image = QImage(SURFACE_WIDTH, SURFACE_HEIGHT,
                       QImage.Format.Format_ARGB32)
        image.fill(fill)
        return image

    def test_near_white_is_paper(self, qapp):
        assert not image_has_ink(self._canvas(QColor(250, 250, 250)))

    def test_single_dark_pixel_is_ink(self, qapp):
        image = self._canvas(QColor("#FFFFFF"))
        image.setPixelColor(SURFACE_WIDTH - 1, SURFACE_HEIGHT - 1,
                            QColor(0, 0, 0))
        assert image_has_ink(image)

    def test_one_dark_channel_is_ink(self, qapp):
        image = self._canvas(QColor("#FFFFFF"))
        image.setPixelColor(300, 200, QColor(255, 255, 200))
        assert image_has_ink(image)

    def test_transparent_dark_pixels_ignored(self, qapp):
        assert not image_has_ink(self._canvas(QColor(0, 0, 0, 0)))

    def test_dark_pixel_on_transparent_canvas(self, qapp):
        image = self._canvas(Qt.GlobalColor.transparent)
        image.setPixelColor(10, 10, QColor(20, 20, 20))
        assert image_has_ink(image)
