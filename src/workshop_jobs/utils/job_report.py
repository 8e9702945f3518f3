"""Printable job report (PDF) with a QR code linking back to the job.

Usage::

    from workshop_jobs.core.views import job_detail
    from workshop_jobs.utils.job_report import generate_job_report

    detail = job_detail(cache, job_id)
    pdf_path = generate_job_report(detail, "Pro Automobile", url)
"""

import base64
import io
import logging
import os
import tempfile
from typing import Callable, Optional
from urllib.parse import urlparse
from urllib.request import url2pathname

import qrcode
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from workshop_jobs.core.views import JobDetail
from workshop_jobs.store.models import CHECKLIST_KEYS
from workshop_jobs.utils.formatters import (
    format_date_short,
    format_duration,
    format_money,
    format_timestamp,
)

logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 18 * mm
QR_SIZE = 32 * mm
LINE = 5 * mm
FONT_NAME = "Helvetica"
MAX_PHOTOS = 6
PHOTO_WIDTH = 55 * mm
PHOTO_HEIGHT = 40 * mm


def job_qr_png(url: str) -> io.BytesIO:
    """Generate a QR code for *url* and return it as a PNG buffer."""
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=1,
    )
    qr.add_data(url)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    return buf


def _data_url_image(data_url: str) -> Optional[ImageReader]:
    if not data_url or "," not in data_url:
        return None
    payload = data_url.split(",", 1)[1]
    return ImageReader(io.BytesIO(base64.b64decode(payload)))


def _image_source(url: str) -> str:
    """Local path for ``file://`` URLs; anything else is used as is."""
    parsed = urlparse(url)
    if parsed.scheme == "file":
        return url2pathname(parsed.path)
    return url


class _Writer:
    """Keeps the cursor and starts new pages when the current one is full."""

    def __init__(self, c: canvas.Canvas):
        self.c = c
        self.y = PAGE_HEIGHT - MARGIN

    def need(self, height: float):
        if self.y - height < MARGIN:
            self.c.showPage()
            self.y = PAGE_HEIGHT - MARGIN

    def heading(self, text: str):
        self.need(3 * LINE)
        self.y -= LINE
        self.c.setFont(FONT_NAME + "-Bold", 12)
        self.c.drawString(MARGIN, self.y, text)
        self.y -= LINE

    def row(self, *cells: tuple[float, str], bold: bool = False):
        self.need(LINE)
        self.c.setFont(FONT_NAME + ("-Bold" if bold else ""), 9)
        for x, text in cells:
            self.c.drawString(MARGIN + x, self.y, text)
        self.y -= LINE


def generate_job_report(
    detail: JobDetail,
    company_name: str,
    url: str,
    photo_url: Optional[Callable[[str], str]] = None,
    output_path: Optional[str] = None,
) -> str:
    """Render a job report PDF and return its absolute path."""
    job = detail.job
    if not output_path:
        output_path = os.path.join(
            tempfile.gettempdir(), f"job_{job.job_no or job.id}.pdf"
        )

    c = canvas.Canvas(output_path, pagesize=A4)
    c.setTitle(f"{company_name} - {job.display_title}")
    w = _Writer(c)

    # Header with QR code on the right
    c.setFont(FONT_NAME + "-Bold", 18)
    c.drawString(MARGIN, w.y - 6 * mm, company_name)
    c.setFont(FONT_NAME, 11)
    c.drawString(MARGIN, w.y - 13 * mm, job.display_title)
    c.setFont(FONT_NAME, 8)
    c.drawString(MARGIN, w.y - 19 * mm, url)
    c.drawImage(
        ImageReader(job_qr_png(url)),
        PAGE_WIDTH - MARGIN - QR_SIZE, w.y - QR_SIZE,
        width=QR_SIZE, height=QR_SIZE,
    )
    w.y -= QR_SIZE + LINE

    w.heading("Job")
    status = "Done" if job.is_done else "Open"
    for label, value in (
        ("Job no.", job.job_no or "--"),
        ("Customer", job.customer or "--"),
        ("Vehicle", job.vehicle or "--"),
        ("Plate", job.plate or "--"),
        ("Odometer", f"{job.odometer_km} km" if job.odometer_km else "--"),
        ("Drop-off", format_timestamp(job.dropoff_at)),
        ("Pick-up", format_timestamp(job.pickup_at)),
        ("Created", format_timestamp(job.created_at)),
        ("Status", status),
    ):
        w.row((0, label), (40 * mm, value))

    w.heading("Checklist")
    for key, label in CHECKLIST_KEYS:
        mark = "[x]" if detail.checklist.get(key) else "[ ]"
        w.row((0, mark), (10 * mm, label))

    w.heading("Time entries")
    w.row((0, "Date"), (30 * mm, "Worker"), (70 * mm, "Task"),
          (130 * mm, "Duration"), bold=True)
    entries = sorted(detail.completed, key=lambda ce: ce.entry.start_ts)
    if not entries:
        w.row((0, "No time entries"))
    for ce in entries:
        w.row(
            (0, format_date_short(ce.entry.start_ts)),
            (30 * mm, ce.entry.worker or "--"),
            (70 * mm, ce.entry.task or "--"),
            (130 * mm, format_duration(ce.minutes)),
        )
    w.row((0, "Total"), (130 * mm, format_duration(detail.total_minutes)),
          bold=True)

    w.heading("Items")
    w.row((0, "Type"), (30 * mm, "Description"), (100 * mm, "Qty"),
          (120 * mm, "Unit price"), (150 * mm, "Total"), bold=True)
    for item in detail.items:
        w.row(
            (0, item.item_type),
            (30 * mm, item.description or "--"),
            (100 * mm, f"{item.qty:g}"),
            (120 * mm, format_money(item.unit_price)),
            (150 * mm, format_money(item.line_total)),
        )
    w.row((0, "Total"), (150 * mm, format_money(detail.items_total)),
          bold=True)

    if photo_url is not None:
        photos = [detail.id_photo] if detail.id_photo else []
        photos += detail.photos[:MAX_PHOTOS]
        if photos:
            w.heading("Photos")
        for idx, photo in enumerate(photos):
            col = idx % 3
            if col == 0:
                w.need(PHOTO_HEIGHT + LINE)
                w.y -= PHOTO_HEIGHT
            try:
                image = ImageReader(_image_source(photo_url(photo.path)))
            except OSError as e:
                logger.debug("Skipping photo %s: %s", photo.path, e)
                continue
            c.drawImage(
                image, MARGIN + col * (PHOTO_WIDTH + 3 * mm), w.y,
                width=PHOTO_WIDTH, height=PHOTO_HEIGHT,
                preserveAspectRatio=True,
            )
        if photos:
            w.y -= LINE

    w.heading("Signature")
    sig = detail.signature
    image = _data_url_image(sig.signature_data) if sig else None
    if image is None:
        w.row((0, "Not signed"))
    else:
        w.need(30 * mm + 2 * LINE)
        w.y -= 30 * mm
        c.drawImage(image, MARGIN, w.y, width=60 * mm, height=30 * mm)
        w.y -= LINE
        w.row((0, f"{sig.signer_name} - {format_timestamp(sig.signed_at)}"))

    c.save()
    return os.path.abspath(output_path)
