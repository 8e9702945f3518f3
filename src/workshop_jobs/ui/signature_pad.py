"""Signature pad widget — feeds mouse and touch input to SignatureCapture."""

from PySide6.QtCore import QEvent, QSize, Qt, Signal
from PySide6.QtGui import QPainter
from PySide6.QtWidgets import QSizePolicy, QWidget

from workshop_jobs.core.signature import SignatureCapture


class SignaturePad(QWidget):
    """Shows the capture surface scaled to the widget and records strokes."""

    stroke_finished = Signal()

    def __init__(self, capture: SignatureCapture, parent=None):
        super().__init__(parent)
        self.capture = capture
        self.setAttribute(Qt.WidgetAttribute.WA_AcceptTouchEvents)
        self.setSizePolicy(
            QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Fixed
        )
        self.setCursor(Qt.CursorShape.CrossCursor)

    def sizeHint(self) -> QSize:
        surface = self.capture.surface
        return QSize(surface.width // 2, surface.height // 2)

    def clear(self):
        self.capture.clear()
        self.update()

    # ── Input ───────────────────────────────────────────────────

    def _press(self, pos):
        self.capture.press(pos.x(), pos.y(), self.width(), self.height())

    def _move(self, pos):
        self.capture.move(pos.x(), pos.y(), self.width(), self.height())
        self.update()

    def _release(self):
        if self.capture.surface.is_drawing:
            self.capture.release()
            self.stroke_finished.emit()

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            self._press(event.position())
            event.accept()

    def mouseMoveEvent(self, event):
        self._move(event.position())
        event.accept()

    def mouseReleaseEvent(self, event):
        self._release()
        event.accept()

    def leaveEvent(self, event):
        self._release()
        super().leaveEvent(event)

    def event(self, event):
        etype = event.type()
        if etype in (QEvent.Type.TouchBegin, QEvent.Type.TouchUpdate):
            points = event.points()
            if points:
                pos = points[0].position()
                if etype == QEvent.Type.TouchBegin:
                    self._press(pos)
                else:
                    self._move(pos)
            event.accept()
            return True
        if etype in (QEvent.Type.TouchEnd, QEvent.Type.TouchCancel):
            self._release()
            event.accept()
            return True
        return super().event(event)

    # ── Painting ────────────────────────────────────────────────

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.drawImage(self.rect(), self.capture.surface.image)
        painter.end()
