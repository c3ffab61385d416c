"""Prescription PDF rendering.

One fixed-layout page per prescription: doctor and date header, a
"Care to be taken" box, a "Medicine" box, two divider bands and a footer.
Coordinates are PDF points with the origin at the bottom-left corner.
"""
import io
import time
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Optional

from reportlab.lib.colors import Color, black
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

PAGE_SIZE = (600, 800)
FONT = "Helvetica"
BAND_COLOR = Color(0, 0, 0.6)

TEXT_SIZE = 11
LABEL_SIZE = 12
LINE_HEIGHT = 15
TEXT_MAX_WIDTH = 480


@dataclass
class RenderedPrescription:
    content: bytes
    path: str


def format_date(day: date) -> str:
    # e.g. "Mon Oct 19 2026"
    return day.strftime("%a %b %d %Y")


def _draw_wrapped(pdf, text: str, x: float, y: float):
    # Overflowing text keeps going below the box; nothing is clipped
    for line in simpleSplit(text, FONT, TEXT_SIZE, TEXT_MAX_WIDTH):
        pdf.drawString(x, y, line)
        y -= LINE_HEIGHT


def _draw_band(pdf, y: float):
    pdf.setFillColor(BAND_COLOR)
    pdf.rect(0, y, PAGE_SIZE[0], 4, stroke=0, fill=1)
    pdf.setFillColor(black)


def _draw_box(pdf, title: str, title_y: float, box_y: float, box_height: float):
    pdf.setFont(FONT, LABEL_SIZE)
    pdf.drawString(50, title_y, title)
    pdf.setLineWidth(1)
    pdf.setStrokeColor(black)
    pdf.rect(50, box_y, 500, box_height, stroke=1, fill=0)
    pdf.setFont(FONT, TEXT_SIZE)


def render_prescription(
    doctor_name: str,
    care: str,
    medicine: Optional[str] = None,
    day: Optional[date] = None,
) -> bytes:
    """Render the one-page prescription and return the PDF bytes."""
    day = day or date.today()
    buf = io.BytesIO()
    pdf = canvas.Canvas(buf, pagesize=PAGE_SIZE)
    pdf.setTitle(f"Prescription - Dr. {doctor_name}")

    # Header
    pdf.setFont(FONT, 14)
    pdf.drawString(50, 760, f"Dr. {doctor_name}")
    pdf.setFont(FONT, TEXT_SIZE)
    pdf.drawString(400, 760, f"Date: {format_date(day)}")

    _draw_band(pdf, 705)

    _draw_box(pdf, "Care to be taken", 670, 560, 90)
    _draw_wrapped(pdf, care, 55, 635)

    _draw_box(pdf, "Medicine", 520, 400, 100)
    _draw_wrapped(pdf, (medicine or "").strip() or "-", 55, 475)

    # Footer
    _draw_band(pdf, 365)
    pdf.setFont(FONT, TEXT_SIZE)
    pdf.drawString(420, 335, f"Dr. {doctor_name}")

    pdf.showPage()
    pdf.save()
    return buf.getvalue()


def prescription_filename(consultation_id: str) -> str:
    # A new name on every call so clients never get a cached copy
    return f"prescription_{consultation_id}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}.pdf"


class PrescriptionRenderer:
    def __init__(self, sink):
        self.sink = sink

    def publish(
        self,
        consultation_id: str,
        doctor_name: str,
        care: str,
        medicine: Optional[str] = None,
        day: Optional[date] = None,
    ) -> RenderedPrescription:
        content = render_prescription(doctor_name, care, medicine, day)
        path = self.sink.save(content, prescription_filename(consultation_id))
        return RenderedPrescription(content=content, path=path)
