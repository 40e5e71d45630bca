"""
units.py

Unit and coordinate-space conversions for the layout designer.

Spaces used throughout the application:
    - paper millimeters: what the user thinks in (rulers, margins, paper size)
    - paper pixels: millimeters scaled by the device DPI; all element geometry
      lives here
    - control pixels: paper pixels scaled by the zoom factor and offset by the
      paper origin inside the widget
    - PDF points: 1/72 inch, the export page space
"""

from __future__ import annotations

from dataclasses import dataclass

from PyQt6.QtCore import QPointF, QRectF

MM_PER_INCH = 25.4
POINTS_PER_INCH = 72.0


def mm_to_pixels(mm: float, dpi: float) -> float:
    """Convert millimeters to pixels at the given DPI (apply per axis)."""
    return mm * dpi / MM_PER_INCH


def pixels_to_mm(pixels: float, dpi: float) -> float:
    """Convert pixels at the given DPI back to millimeters."""
    return pixels * MM_PER_INCH / dpi


def points_to_pixels(points: float, dpi: float) -> float:
    """Convert typographic points to pixels at the given DPI."""
    return points * dpi / POINTS_PER_INCH


def pixels_to_points(pixels: float, dpi: float) -> float:
    """Convert pixels at the given DPI to typographic points."""
    return pixels * POINTS_PER_INCH / dpi


def mm_to_points(mm: float) -> float:
    """Convert millimeters to PDF points."""
    return mm * POINTS_PER_INCH / MM_PER_INCH


def paper_to_pdf_space(value: float, original_dimension: float, pdf_dimension: float) -> float:
    """Rescale a paper-pixel value onto the PDF page.

    This is a linear remap of the whole paper extent onto the page extent,
    not a unit conversion: an element covering a fraction ``f`` of the paper
    covers the same fraction of the page, whatever DPI the screen used.

    Args:
        value: Coordinate or length in paper pixels.
        original_dimension: Paper width (or height) in paper pixels.
        pdf_dimension: Page width (or height) in PDF points.
    """
    return (value / original_dimension) * pdf_dimension


def paper_origin(
    viewport_width: float,
    paper_width_px: float,
    scale: float,
    top_offset: float,
    min_left: float = 0.0,
) -> QPointF:
    """Compute where the paper's top-left corner sits in control space.

    The scaled paper is centered horizontally in the viewport but never placed
    left of ``min_left`` (room for the vertical ruler). Vertically it sits at a
    fixed ``top_offset`` below the widget top (room for the horizontal ruler).
    """
    x = (viewport_width - paper_width_px * scale) / 2
    return QPointF(max(min_left, x), float(top_offset))


@dataclass(frozen=True)
class ViewTransform:
    """Affine paper-pixel <-> control-pixel mapping for one paint/event cycle.

    ``control = origin + paper * scale`` on both axes.
    """
    origin_x: float
    origin_y: float
    scale: float

    def paper_to_control(self, point: QPointF) -> QPointF:
        return QPointF(self.origin_x + point.x() * self.scale,
                       self.origin_y + point.y() * self.scale)

    def control_to_paper(self, point: QPointF) -> QPointF:
        return QPointF((point.x() - self.origin_x) / self.scale,
                       (point.y() - self.origin_y) / self.scale)

    def paper_rect_to_control(self, rect: QRectF) -> QRectF:
        top_left = self.paper_to_control(rect.topLeft())
        return QRectF(top_left.x(), top_left.y(),
                      rect.width() * self.scale, rect.height() * self.scale)

    def length_to_control(self, length: float) -> float:
        return length * self.scale

    def length_to_paper(self, length: float) -> float:
        return length / self.scale
