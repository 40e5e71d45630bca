"""
pdf_export.py

PDF export of the timetable layout using reportlab.

The page is sized from the paper size in points, and every paper-pixel value
is linearly rescaled onto it (``units.paper_to_pdf_space``) before the PDF
y-axis flip. An element covering a given fraction of the screen paper covers
the same fraction of the page, whatever the screen DPI or zoom was.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Sequence, Tuple

from PyQt6.QtCore import QPointF, QRectF
from reportlab.lib import colors
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen import canvas

from geometry import tabular_cells
from models import (
    Element,
    ElementKind,
    FontSpec,
    Line,
    Paper,
    Rectangle,
    TabularBlock,
    TextField,
)
from units import mm_to_points, paper_to_pdf_space, points_to_pixels
from utils import hex_to_rgba

log = logging.getLogger(__name__)

LINE_SPACING = 1.2


class PdfExportError(Exception):
    """Raised when the PDF file cannot be written."""


def page_size_points(paper: Paper) -> Tuple[float, float]:
    """Page (width, height) in points for the paper size and orientation."""
    return mm_to_points(paper.width_mm), mm_to_points(paper.height_mm)


def element_box_to_pdf(rect: QRectF, paper: Paper, page_width: float, page_height: float) -> QRectF:
    """Rescale a paper-pixel rect onto the page, still with a top-left origin."""
    return QRectF(
        paper_to_pdf_space(rect.left(), paper.width_px, page_width),
        paper_to_pdf_space(rect.top(), paper.height_px, page_height),
        paper_to_pdf_space(rect.width(), paper.width_px, page_width),
        paper_to_pdf_space(rect.height(), paper.height_px, page_height),
    )


@dataclass
class PdfSpace:
    """Paper-pixel to PDF-point mapping for one export."""
    paper: Paper
    page_width: float
    page_height: float

    def box(self, rect: QRectF) -> QRectF:
        return element_box_to_pdf(rect, self.paper, self.page_width, self.page_height)

    def point(self, p: QPointF) -> Tuple[float, float]:
        x = paper_to_pdf_space(p.x(), self.paper.width_px, self.page_width)
        y = paper_to_pdf_space(p.y(), self.paper.height_px, self.page_height)
        return x, self.page_height - y

    def flip(self, top: float) -> float:
        return self.page_height - top

    def length(self, value: float) -> float:
        return paper_to_pdf_space(value, self.paper.width_px, self.page_width)

    def font_size(self, font: FontSpec) -> float:
        """Point size from the rescaled paper-pixel font height."""
        px = points_to_pixels(font.size_pt, self.paper.dpi_y)
        return paper_to_pdf_space(px, self.paper.height_px, self.page_height)


# ----------------------------
# Colors and fonts
# ----------------------------

def _color(value: str) -> colors.Color:
    r, g, b, a = hex_to_rgba(value)
    return colors.Color(r / 255.0, g / 255.0, b / 255.0, alpha=a / 255.0)


def _alpha(value: str) -> int:
    return hex_to_rgba(value)[3]


_BASE_FONTS: Dict[str, Tuple[str, str, str, str]] = {
    # regular, bold, italic, bold italic
    "helvetica": ("Helvetica", "Helvetica-Bold", "Helvetica-Oblique", "Helvetica-BoldOblique"),
    "times": ("Times-Roman", "Times-Bold", "Times-Italic", "Times-BoldItalic"),
    "courier": ("Courier", "Courier-Bold", "Courier-Oblique", "Courier-BoldOblique"),
}


def base_font_name(font: FontSpec) -> str:
    """Map a font family onto one of the standard PDF fonts."""
    family = font.family.lower()
    if "courier" in family or "mono" in family or "consolas" in family:
        names = _BASE_FONTS["courier"]
    elif "times" in family or "georgia" in family or ("serif" in family and "sans" not in family):
        names = _BASE_FONTS["times"]
    else:
        names = _BASE_FONTS["helvetica"]
    return names[(1 if font.bold else 0) + (2 if font.italic else 0)]


def wrap_text(text: str, font_name: str, font_size: float, max_width: float) -> List[str]:
    """Word-wrap ``text`` to ``max_width``; explicit newlines are kept."""
    lines: List[str] = []
    for paragraph in text.split("\n"):
        words = paragraph.split()
        if not words:
            lines.append("")
            continue
        current: List[str] = []
        for word in words:
            candidate = " ".join(current + [word])
            if pdfmetrics.stringWidth(candidate, font_name, font_size) <= max_width or not current:
                current.append(word)
            else:
                lines.append(" ".join(current))
                current = [word]
        lines.append(" ".join(current))
    return lines


def _clip_to(canv: canvas.Canvas, x: float, y: float, w: float, h: float) -> None:
    path = canv.beginPath()
    path.rect(x, y, w, h)
    canv.clipPath(path, stroke=0, fill=0)


# ----------------------------
# Element writers
# ----------------------------

def _write_text_field(canv: canvas.Canvas, el: TextField, space: PdfSpace) -> None:
    box = space.box(el.bounds())
    size = space.font_size(el.font)
    if size <= 0 or box.width() <= 0 or box.height() <= 0:
        return
    font_name = base_font_name(el.font)
    ascent = pdfmetrics.getAscent(font_name, size)
    descent = pdfmetrics.getDescent(font_name, size)
    bottom = space.flip(box.bottom())

    canv.saveState()
    _clip_to(canv, box.left(), bottom, box.width(), box.height())
    canv.setFont(font_name, size)
    canv.setFillColor(_color(el.color))
    canv.setStrokeColor(_color(el.color))

    baseline = space.flip(box.top()) - ascent
    for line in wrap_text(el.text, font_name, size, box.width()):
        if baseline + descent < bottom:
            break
        canv.drawString(box.left(), baseline, line)
        if el.font.underline and line:
            width = pdfmetrics.stringWidth(line, font_name, size)
            canv.setLineWidth(max(size / 15.0, 0.5))
            canv.line(box.left(), baseline - size * 0.1, box.left() + width, baseline - size * 0.1)
        baseline -= size * LINE_SPACING
    canv.restoreState()


def _write_rectangle(canv: canvas.Canvas, el: Rectangle, space: PdfSpace) -> None:
    box = space.box(el.bounds())
    fill = _alpha(el.fill_color) > 0
    stroke = el.border_width > 0 and _alpha(el.border_color) > 0
    if not (fill or stroke):
        return
    canv.saveState()
    canv.setFillColor(_color(el.fill_color))
    canv.setStrokeColor(_color(el.border_color))
    canv.setLineWidth(space.length(el.border_width))
    canv.rect(box.left(), space.flip(box.bottom()), box.width(), box.height(),
              stroke=int(stroke), fill=int(fill))
    canv.restoreState()


def _write_line(canv: canvas.Canvas, el: Line, space: PdfSpace) -> None:
    x1, y1 = space.point(el.start_point)
    x2, y2 = space.point(el.end_point)
    canv.saveState()
    canv.setStrokeColor(_color(el.color))
    canv.setLineWidth(space.length(el.line_width))
    canv.line(x1, y1, x2, y2)
    canv.restoreState()


def _write_tabular_block(canv: canvas.Canvas, el: TabularBlock, space: PdfSpace) -> None:
    box = space.box(el.bounds())
    header_name = base_font_name(el.header_font)
    content_name = base_font_name(el.content_font)
    header_size = space.font_size(el.header_font)
    content_size = space.font_size(el.content_font)

    canv.saveState()
    canv.setStrokeColor(_color(el.grid_color))
    canv.setLineWidth(0.5)
    for cell in tabular_cells(el, box):
        bottom = space.flip(cell.rect.bottom())
        canv.rect(cell.rect.left(), bottom, cell.rect.width(), cell.rect.height(), stroke=1, fill=0)
        if not cell.text:
            continue
        name, size = (header_name, header_size) if cell.header else (content_name, content_size)
        ascent = pdfmetrics.getAscent(name, size)
        descent = pdfmetrics.getDescent(name, size)
        center_y = space.flip(cell.rect.center().y())
        canv.setFont(name, size)
        canv.setFillColor(_color(el.header_color if cell.header else el.content_color))
        canv.drawCentredString(cell.rect.center().x(), center_y - (ascent + descent) / 2, cell.text)
    canv.restoreState()


_PDF_WRITERS: Dict[ElementKind, Callable] = {
    ElementKind.TEXT_FIELD: _write_text_field,
    ElementKind.RECTANGLE: _write_rectangle,
    ElementKind.LINE: _write_line,
    ElementKind.TABULAR_BLOCK: _write_tabular_block,
}


def _write_margin_guides(canv: canvas.Canvas, space: PdfSpace, color: str) -> None:
    inner = space.box(space.paper.margin_rect_px())
    top = space.flip(inner.top())
    bottom = space.flip(inner.bottom())
    canv.saveState()
    canv.setStrokeColor(_color(color))
    canv.setLineWidth(0.5)
    canv.setDash(3, 3)
    canv.line(inner.left(), 0, inner.left(), space.page_height)
    canv.line(inner.right(), 0, inner.right(), space.page_height)
    canv.line(0, top, space.page_width, top)
    canv.line(0, bottom, space.page_width, bottom)
    canv.restoreState()


def export_to_pdf(
    file_path: str,
    paper: Paper,
    elements: Sequence[Element],
    draw_margin_guides: bool = True,
    margin_guide_color: str = "#D3D3D3",
) -> None:
    """Write the layout to a single-page PDF at ``file_path``.

    Raises:
        PdfExportError: If the file cannot be written.
    """
    page_width, page_height = page_size_points(paper)
    space = PdfSpace(paper, page_width, page_height)

    canv = canvas.Canvas(str(file_path), pagesize=(page_width, page_height))
    canv.setTitle("Timetable")
    if draw_margin_guides:
        _write_margin_guides(canv, space, margin_guide_color)
    for element in elements:
        _PDF_WRITERS[element.kind](canv, element, space)
    canv.showPage()

    try:
        canv.save()
    except OSError as e:
        log.error("PDF export to %s failed: %s", file_path, e)
        raise PdfExportError(f"Could not write {file_path}: {e}") from e
    log.info("Exported %d elements to %s", len(elements), file_path)
