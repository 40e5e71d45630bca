"""
geometry.py

Hit testing, resize-handle detection, containment and snapping.

Everything here is a pure function over elements and points in paper-pixel
space; nothing mutates an element.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from PyQt6.QtCore import QPointF, QRectF, QSizeF

from models import Element, Line, Paper, SnapLine, TabularBlock


def distance_to_segment(point: QPointF, a: QPointF, b: QPointF) -> float:
    """Shortest distance from ``point`` to the segment ``a``-``b``.

    A zero-length segment degrades to the distance to ``a``.
    """
    dx = b.x() - a.x()
    dy = b.y() - a.y()
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return math.hypot(point.x() - a.x(), point.y() - a.y())
    t = ((point.x() - a.x()) * dx + (point.y() - a.y()) * dy) / length_sq
    t = max(0.0, min(1.0, t))
    closest_x = a.x() + t * dx
    closest_y = a.y() + t * dy
    return math.hypot(point.x() - closest_x, point.y() - closest_y)


def contains(rect: QRectF, point: QPointF) -> bool:
    """Inclusive containment test (QRectF.contains excludes empty rects)."""
    return (rect.left() <= point.x() <= rect.right()
            and rect.top() <= point.y() <= rect.bottom())


def hits_element(element: Element, point: QPointF, line_tolerance: float) -> bool:
    if isinstance(element, Line):
        return distance_to_segment(point, element.start_point, element.end_point) <= line_tolerance
    return contains(element.bounds(), point)


def element_at(elements: Sequence[Element], point: QPointF, line_tolerance: float = 5.0) -> Optional[Element]:
    """Topmost element under ``point``.

    The list is scanned back to front because the last element paints on top.
    Lines are hit within ``line_tolerance`` of the segment rather than by
    their bounding box, which can be empty for horizontal/vertical lines.
    """
    for element in reversed(elements):
        if hits_element(element, point, line_tolerance):
            return element
    return None


def resize_handle_rect(bounds: QRectF, handle_size: float, scale: float) -> QRectF:
    """Square resize handle at the bottom-right corner, in paper pixels.

    ``handle_size`` is in screen pixels, so the paper-space side is
    ``handle_size / scale`` and the handle keeps its on-screen size at every
    zoom level.
    """
    side = handle_size / scale
    return QRectF(bounds.right() - side, bounds.bottom() - side, side, side)


def is_over_resize_handle(element: Optional[Element], point: QPointF, handle_size: float, scale: float) -> bool:
    if element is None or not element.resizable:
        return False
    return contains(resize_handle_rect(element.bounds(), handle_size, scale), point)


def inner_body_rect(bounds: QRectF) -> QRectF:
    """Bounds inset by a fifth of the height on every side.

    The band between this rect and the bounds is where the move cursor shows.
    """
    inset = bounds.height() / 5
    return bounds.adjusted(inset, inset, -inset, -inset)


def clamp_location(location: QPointF, size: QSizeF, paper_width: float, paper_height: float) -> QPointF:
    """Clamp a top-left corner so the rect stays within the paper."""
    x = min(max(location.x(), 0.0), max(paper_width - size.width(), 0.0))
    y = min(max(location.y(), 0.0), max(paper_height - size.height(), 0.0))
    return QPointF(x, y)


def clamp_size(location: QPointF, size: QSizeF, minimum: float, paper_width: float, paper_height: float) -> QSizeF:
    """Floor a size at ``minimum`` and cap it at the paper edge.

    The floor wins when the element sits closer than ``minimum`` to the edge.
    """
    width = max(minimum, min(size.width(), paper_width - location.x()))
    height = max(minimum, min(size.height(), paper_height - location.y()))
    return QSizeF(width, height)


# ----------------------------
# Snapping
# ----------------------------

@dataclass(frozen=True)
class MarginGuide:
    """One of the four margin lines, usable as a snap target."""
    is_vertical: bool
    position: float


def margin_guides(paper: Paper) -> List[MarginGuide]:
    r = paper.margin_rect_px()
    return [
        MarginGuide(True, r.left()),
        MarginGuide(True, r.right()),
        MarginGuide(False, r.top()),
        MarginGuide(False, r.bottom()),
    ]


@dataclass
class SnapResult:
    location: QPointF
    snap_lines: List[SnapLine] = field(default_factory=list)


def _best_on_axis(
    edges: Tuple[float, float],
    targets: Iterable[float],
    threshold: float,
) -> Optional[Tuple[float, float]]:
    """Nearest (delta, target) pairing an edge with a target under threshold.

    ``edges`` is (near edge, far edge) of the moving rect on one axis. Ties keep
    the first pairing in scan order.
    """
    best: Optional[Tuple[float, float]] = None
    best_distance = threshold
    for target in targets:
        for edge in edges:
            distance = abs(target - edge)
            if distance < best_distance:
                best_distance = distance
                best = (target - edge, target)
    return best


def apply_snapping(
    candidate: QPointF,
    size: QSizeF,
    others: Sequence[Element],
    guides: Sequence[MarginGuide],
    threshold: float = 5.0,
) -> SnapResult:
    """Align a moving rect with nearby element edges and margin guides.

    Left/right edges of the moving rect are compared with the left/right edges
    of every other element and every vertical margin guide; top/bottom edges
    with top/bottom edges and horizontal guides. Each axis snaps on its own to
    the nearest target closer than ``threshold``, and records one SnapLine at
    the aligned coordinate. Already aligned input comes back unchanged.
    """
    x_targets: List[float] = []
    y_targets: List[float] = []
    for other in others:
        r = other.bounds()
        x_targets += [r.left(), r.right()]
        y_targets += [r.top(), r.bottom()]
    for guide in guides:
        (x_targets if guide.is_vertical else y_targets).append(guide.position)

    x, y = candidate.x(), candidate.y()
    snap_lines: List[SnapLine] = []

    best_x = _best_on_axis((x, x + size.width()), x_targets, threshold)
    if best_x is not None:
        x += best_x[0]
        snap_lines.append(SnapLine(is_vertical=True, position=best_x[1]))

    best_y = _best_on_axis((y, y + size.height()), y_targets, threshold)
    if best_y is not None:
        y += best_y[0]
        snap_lines.append(SnapLine(is_vertical=False, position=best_y[1]))

    return SnapResult(QPointF(x, y), snap_lines)


# ----------------------------
# Tabular blocks
# ----------------------------

@dataclass(frozen=True)
class TableCell:
    rect: QRectF
    text: str
    header: bool = False


def tabular_cells(block: TabularBlock, rect: QRectF) -> List[TableCell]:
    """Lay out a route schedule block inside ``rect``.

    The header row spans the full width and holds the route name; below it
    the first column holds the row labels and the remaining columns the
    cells. Works in any space, so the screen and the PDF share proportions.
    """
    column_width, row_height = block.grid_size(rect)
    cells = [TableCell(QRectF(rect.left(), rect.top(), rect.width(), row_height), block.route_name, True)]
    for row, label in enumerate(block.row_labels):
        top = rect.top() + (row + 1) * row_height
        cells.append(TableCell(QRectF(rect.left(), top, column_width, row_height), label, True))
        for column in range(block.column_count):
            left = rect.left() + (column + 1) * column_width
            cells.append(TableCell(QRectF(left, top, column_width, row_height), block.cell(column, row)))
    return cells
