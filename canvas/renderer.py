"""
canvas/renderer.py

Paints the designer canvas: paper, margins, rulers, grid, elements,
selection decorations and snap lines.

Every placement goes through the controller's ViewTransform and the unit
functions, so what is drawn here is exactly what the controller hit-tests
and what the PDF exporter writes.
"""

from __future__ import annotations

from typing import Callable, Dict

from PyQt6.QtCore import Qt, QPointF, QRectF
from PyQt6.QtGui import QBrush, QColor, QFontMetricsF, QPainter, QPen, QPolygonF

from canvas.controller import CanvasController
from geometry import tabular_cells
from models import Element, ElementKind, Line, Paper, Rectangle, TabularBlock, TextField
from settings import AppSettings
from units import ViewTransform, mm_to_pixels, pixels_to_mm, points_to_pixels
from utils import hex_to_qcolor, make_qfont

BACKGROUND_COLOR = QColor(160, 160, 160)
RULER_COLOR = QColor(240, 240, 240)
GRID_COLOR = QColor(230, 230, 230)
CARET_COLOR = QColor(Qt.GlobalColor.red)
CARET_SIZE = 5.0
LABEL_PIXEL_SIZE = 10

# drawText takes the alignment and text flags as one int
_TEXT_FLAGS = ((Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignTop).value
               | Qt.TextFlag.TextWordWrap.value)
_CELL_FLAGS = Qt.AlignmentFlag.AlignCenter.value | Qt.TextFlag.TextWordWrap.value


def _font_pixels(paper: Paper, size_pt: float, t: ViewTransform) -> float:
    return t.length_to_control(points_to_pixels(size_pt, paper.dpi_y))


def _paint_text_field(painter: QPainter, el: TextField, t: ViewTransform, paper: Paper) -> None:
    rect = t.paper_rect_to_control(el.bounds())
    painter.setClipRect(rect)
    painter.setFont(make_qfont(el.font, _font_pixels(paper, el.font.size_pt, t)))
    painter.setPen(hex_to_qcolor(el.color))
    painter.drawText(rect, _TEXT_FLAGS, el.text)


def _paint_rectangle(painter: QPainter, el: Rectangle, t: ViewTransform, paper: Paper) -> None:
    rect = t.paper_rect_to_control(el.bounds())
    painter.setBrush(QBrush(hex_to_qcolor(el.fill_color)))
    if el.border_width > 0:
        painter.setPen(QPen(hex_to_qcolor(el.border_color), t.length_to_control(el.border_width)))
    else:
        painter.setPen(Qt.PenStyle.NoPen)
    painter.drawRect(rect)


def _paint_line(painter: QPainter, el: Line, t: ViewTransform, paper: Paper) -> None:
    painter.setPen(QPen(hex_to_qcolor(el.color), t.length_to_control(el.line_width)))
    painter.drawLine(t.paper_to_control(el.start_point), t.paper_to_control(el.end_point))


def _paint_tabular_block(painter: QPainter, el: TabularBlock, t: ViewTransform, paper: Paper) -> None:
    rect = t.paper_rect_to_control(el.bounds())
    header_font = make_qfont(el.header_font, _font_pixels(paper, el.header_font.size_pt, t))
    content_font = make_qfont(el.content_font, _font_pixels(paper, el.content_font.size_pt, t))
    grid_pen = QPen(hex_to_qcolor(el.grid_color), 1)

    painter.setBrush(Qt.BrushStyle.NoBrush)
    for cell in tabular_cells(el, rect):
        painter.setPen(grid_pen)
        painter.drawRect(cell.rect)
        painter.setFont(header_font if cell.header else content_font)
        painter.setPen(hex_to_qcolor(el.header_color if cell.header else el.content_color))
        painter.drawText(cell.rect, _CELL_FLAGS, cell.text)


_ELEMENT_PAINTERS: Dict[ElementKind, Callable] = {
    ElementKind.TEXT_FIELD: _paint_text_field,
    ElementKind.RECTANGLE: _paint_rectangle,
    ElementKind.LINE: _paint_line,
    ElementKind.TABULAR_BLOCK: _paint_tabular_block,
}


class CanvasRenderer:
    """Draws a controller's state with a QPainter.

    Stateless apart from the settings it reads colors and sizes from; a single
    instance can paint any number of frames.
    """

    def __init__(self, settings: AppSettings):
        self.settings = settings

    def paint(self, painter: QPainter, controller: CanvasController, viewport: QRectF) -> None:
        painter.save()
        try:
            painter.setRenderHint(QPainter.RenderHint.Antialiasing)
            painter.setRenderHint(QPainter.RenderHint.TextAntialiasing)
            t = controller.view_transform()
            paper = controller.paper

            painter.fillRect(viewport, BACKGROUND_COLOR)
            self._draw_paper(painter, paper, t)
            self._draw_margins(painter, paper, t)
            self._draw_rulers(painter, paper, t)
            if controller.show_grid:
                self._draw_grid(painter, paper, t)
            for element in controller.elements:
                self.draw_element(painter, element, t, paper)
            if controller.selected is not None:
                self._draw_selection(painter, controller.selected, t)
                self._draw_carets(painter, controller.selected, paper, t)
            if controller.show_snap_lines and controller.snap_lines:
                self._draw_snap_lines(painter, controller, t, viewport)
        finally:
            painter.restore()

    def draw_element(self, painter: QPainter, element: Element, t: ViewTransform, paper: Paper) -> None:
        painter.save()
        try:
            _ELEMENT_PAINTERS[element.kind](painter, element, t, paper)
        finally:
            painter.restore()

    # ------------------------------------------------------------------
    # Paper
    # ------------------------------------------------------------------

    def _draw_paper(self, painter: QPainter, paper: Paper, t: ViewTransform) -> None:
        painter.setPen(QPen(QColor(Qt.GlobalColor.black), 1))
        painter.setBrush(QBrush(QColor(Qt.GlobalColor.white)))
        painter.drawRect(t.paper_rect_to_control(paper.rect_px()))

    def _draw_margins(self, painter: QPainter, paper: Paper, t: ViewTransform) -> None:
        pen = QPen(hex_to_qcolor(self.settings.export.margin_guide_color), 1, Qt.PenStyle.DashLine)
        painter.setPen(pen)
        page = t.paper_rect_to_control(paper.rect_px())
        inner = t.paper_rect_to_control(paper.margin_rect_px())
        painter.drawLine(QPointF(inner.left(), page.top()), QPointF(inner.left(), page.bottom()))
        painter.drawLine(QPointF(inner.right(), page.top()), QPointF(inner.right(), page.bottom()))
        painter.drawLine(QPointF(page.left(), inner.top()), QPointF(page.right(), inner.top()))
        painter.drawLine(QPointF(page.left(), inner.bottom()), QPointF(page.right(), inner.bottom()))

    def _draw_rulers(self, painter: QPainter, paper: Paper, t: ViewTransform) -> None:
        rulers = self.settings.canvas.rulers
        size = rulers.size
        page = t.paper_rect_to_control(paper.rect_px())

        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(QBrush(RULER_COLOR))
        painter.drawRect(QRectF(page.left(), page.top() - size, page.width(), size))
        painter.drawRect(QRectF(page.left() - size, page.top(), size, page.height()))

        label_font = painter.font()
        label_font.setPixelSize(LABEL_PIXEL_SIZE)
        painter.setFont(label_font)
        metrics = QFontMetricsF(label_font)
        painter.setPen(QPen(QColor(Qt.GlobalColor.black), 1))

        step = max(1, rulers.minor_tick_mm)
        major_step = max(1, rulers.major_tick_mm)
        for mm in range(0, int(paper.width_mm) + 1, step):
            x = t.paper_to_control(QPointF(mm_to_pixels(mm, paper.dpi_x), 0)).x()
            major = mm % major_step == 0
            length = rulers.tick_length * (2 if major else 1)
            painter.drawLine(QPointF(x, page.top() - length), QPointF(x, page.top()))
            if major:
                label = str(mm)
                painter.drawText(QPointF(x - metrics.horizontalAdvance(label) / 2,
                                         page.top() - size + metrics.ascent()), label)

        for mm in range(0, int(paper.height_mm) + 1, step):
            y = t.paper_to_control(QPointF(0, mm_to_pixels(mm, paper.dpi_y))).y()
            major = mm % major_step == 0
            length = rulers.tick_length * (2 if major else 1)
            painter.drawLine(QPointF(page.left() - length, y), QPointF(page.left(), y))
            if major:
                label = str(mm)
                painter.drawText(QPointF(page.left() - size - metrics.horizontalAdvance(label) - 2,
                                         y + metrics.ascent() / 2), label)

    def _draw_grid(self, painter: QPainter, paper: Paper, t: ViewTransform) -> None:
        grid_mm = self.settings.canvas.rulers.grid_mm
        if grid_mm <= 0:
            return
        painter.setPen(QPen(GRID_COLOR, 1))
        page = t.paper_rect_to_control(paper.rect_px())
        mm = grid_mm
        while mm < paper.width_mm:
            x = t.paper_to_control(QPointF(mm_to_pixels(mm, paper.dpi_x), 0)).x()
            painter.drawLine(QPointF(x, page.top()), QPointF(x, page.bottom()))
            mm += grid_mm
        mm = grid_mm
        while mm < paper.height_mm:
            y = t.paper_to_control(QPointF(0, mm_to_pixels(mm, paper.dpi_y))).y()
            painter.drawLine(QPointF(page.left(), y), QPointF(page.right(), y))
            mm += grid_mm

    # ------------------------------------------------------------------
    # Decorations
    # ------------------------------------------------------------------

    def _draw_selection(self, painter: QPainter, element: Element, t: ViewTransform) -> None:
        selection = self.settings.canvas.selection
        handles = self.settings.canvas.handles
        rect = t.paper_rect_to_control(element.bounds())

        outline = hex_to_qcolor(selection.outline_color)
        fill = QColor(outline)
        fill.setAlpha(selection.fill_alpha)
        if isinstance(element, Line):
            painter.setPen(QPen(outline, 1, Qt.PenStyle.DashLine))
            painter.setBrush(Qt.BrushStyle.NoBrush)
        else:
            painter.setPen(QPen(outline, 2))
            painter.setBrush(QBrush(fill))
        painter.drawRect(rect)

        if element.resizable:
            side = handles.size
            painter.setPen(Qt.PenStyle.NoPen)
            painter.setBrush(QBrush(hex_to_qcolor(handles.color)))
            painter.drawRect(QRectF(rect.right() - side, rect.bottom() - side, side, side))

    def _draw_carets(self, painter: QPainter, element: Element, paper: Paper, t: ViewTransform) -> None:
        """Red triangles on the rulers at the selection's edges, with mm labels."""
        size = self.settings.canvas.rulers.size
        page = t.paper_rect_to_control(paper.rect_px())
        bounds = element.bounds()
        rect = t.paper_rect_to_control(bounds)

        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(QBrush(CARET_COLOR))
        ruler_top = page.top() - size
        ruler_left = page.left() - size
        for x in (rect.left(), rect.right()):
            painter.drawPolygon(QPolygonF([
                QPointF(x - CARET_SIZE, ruler_top),
                QPointF(x + CARET_SIZE, ruler_top),
                QPointF(x, ruler_top + CARET_SIZE),
            ]))
        for y in (rect.top(), rect.bottom()):
            painter.drawPolygon(QPolygonF([
                QPointF(ruler_left, y - CARET_SIZE),
                QPointF(ruler_left, y + CARET_SIZE),
                QPointF(ruler_left + CARET_SIZE, y),
            ]))

        label_font = painter.font()
        label_font.setPixelSize(LABEL_PIXEL_SIZE)
        painter.setFont(label_font)
        metrics = QFontMetricsF(label_font)
        painter.setPen(QPen(QColor(Qt.GlobalColor.black), 1))

        for x, px in ((rect.left(), bounds.left()), (rect.right(), bounds.right())):
            label = f"{pixels_to_mm(px, paper.dpi_x):.0f} mm"
            painter.drawText(QPointF(x - metrics.horizontalAdvance(label) / 2, ruler_top - metrics.descent() - 2), label)
        for y, px in ((rect.top(), bounds.top()), (rect.bottom(), bounds.bottom())):
            label = f"{pixels_to_mm(px, paper.dpi_y):.0f} mm"
            painter.drawText(QPointF(ruler_left - metrics.horizontalAdvance(label) - 2, y + metrics.ascent() / 2), label)

    def _draw_snap_lines(self, painter: QPainter, controller: CanvasController,
                         t: ViewTransform, viewport: QRectF) -> None:
        color = hex_to_qcolor(self.settings.canvas.snapping.line_color)
        painter.setPen(QPen(color, 1, Qt.PenStyle.DashLine))
        for snap in controller.snap_lines:
            if snap.is_vertical:
                x = t.paper_to_control(QPointF(snap.position, 0)).x()
                painter.drawLine(QPointF(x, viewport.top()), QPointF(x, viewport.bottom()))
            else:
                y = t.paper_to_control(QPointF(0, snap.position)).y()
                painter.drawLine(QPointF(viewport.left(), y), QPointF(viewport.right(), y))
