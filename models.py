"""
models.py

Data models and constants for the Timetable Designer.

All element geometry is stored in paper pixels (millimeters scaled by the
device DPI). Conversions to millimeters or PDF points happen explicitly in
``units.py``.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, ClassVar, Dict, List, Tuple, Union

from PyQt6.QtCore import QPointF, QRectF, QSizeF

from units import mm_to_pixels


# ----------------------------
# Paper
# ----------------------------

class PaperSize(Enum):
    """Supported paper sizes."""
    A4 = "A4"
    A5 = "A5"
    A4_LANDSCAPE = "A4_LANDSCAPE"
    A5_LANDSCAPE = "A5_LANDSCAPE"


# Width x height in millimeters
PAPER_DIMENSIONS_MM: Dict[PaperSize, Tuple[float, float]] = {
    PaperSize.A4: (210.0, 297.0),
    PaperSize.A5: (148.0, 210.0),
    PaperSize.A4_LANDSCAPE: (297.0, 210.0),
    PaperSize.A5_LANDSCAPE: (210.0, 148.0),
}


def parse_paper_size(value: Union[str, PaperSize]) -> PaperSize:
    """Resolve a paper size name or enum member.

    Raises:
        ValueError: If the value is not a supported paper size.
    """
    if isinstance(value, PaperSize):
        return value
    try:
        return PaperSize(value)
    except ValueError:
        raise ValueError(f"Unsupported paper size: {value!r}") from None


def paper_dimensions_mm(size: Union[str, PaperSize]) -> Tuple[float, float]:
    """Return (width, height) in millimeters for a paper size."""
    return PAPER_DIMENSIONS_MM[parse_paper_size(size)]


@dataclass
class Margins:
    """Paper margins in millimeters."""
    top: float = 10.0
    left: float = 10.0
    right: float = 10.0
    bottom: float = 10.0

    @classmethod
    def uniform(cls, mm: float) -> "Margins":
        return cls(top=mm, left=mm, right=mm, bottom=mm)


@dataclass
class Paper:
    """The virtual page.

    Pixel dimensions are derived on every access from the millimeter size and
    the device DPI, so a DPI or paper-size change can never leave them stale.
    """
    size: PaperSize = PaperSize.A4
    margins: Margins = field(default_factory=Margins)
    dpi_x: float = 96.0
    dpi_y: float = 96.0

    @property
    def width_mm(self) -> float:
        return paper_dimensions_mm(self.size)[0]

    @property
    def height_mm(self) -> float:
        return paper_dimensions_mm(self.size)[1]

    @property
    def width_px(self) -> float:
        return mm_to_pixels(self.width_mm, self.dpi_x)

    @property
    def height_px(self) -> float:
        return mm_to_pixels(self.height_mm, self.dpi_y)

    def rect_px(self) -> QRectF:
        return QRectF(0.0, 0.0, self.width_px, self.height_px)

    def margin_rect_px(self) -> QRectF:
        """Rectangle inside the margins, in paper pixels."""
        left = mm_to_pixels(self.margins.left, self.dpi_x)
        top = mm_to_pixels(self.margins.top, self.dpi_y)
        right = self.width_px - mm_to_pixels(self.margins.right, self.dpi_x)
        bottom = self.height_px - mm_to_pixels(self.margins.bottom, self.dpi_y)
        return QRectF(QPointF(left, top), QPointF(right, bottom))


# ----------------------------
# Element styling
# ----------------------------

@dataclass
class FontSpec:
    """Font descriptor independent of any toolkit font object."""
    family: str = "Arial"
    size_pt: float = 12.0
    bold: bool = False
    italic: bool = False
    underline: bool = False

    def with_size(self, size_pt: float) -> "FontSpec":
        return replace(self, size_pt=size_pt)


TRANSPARENT = "#00000000"
BLACK = "#000000FF"


class ElementKind(Enum):
    """Tag of each element variant; also the ``kind`` of its JSON record."""
    TEXT_FIELD = "text"
    RECTANGLE = "rect"
    LINE = "line"
    TABULAR_BLOCK = "route_schedule"


# ----------------------------
# Elements
# ----------------------------

@dataclass(eq=False)
class BoxElement:
    """Element stored as a top-left corner plus a size, in paper pixels.

    Elements compare by identity so selection and list removal never confuse
    two equal-looking duplicates.
    """
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    resizable: bool = True

    kind: ClassVar[ElementKind]

    @property
    def location(self) -> QPointF:
        return QPointF(self.x, self.y)

    @location.setter
    def location(self, value: QPointF) -> None:
        self.x = value.x()
        self.y = value.y()

    @property
    def size(self) -> QSizeF:
        return QSizeF(self.width, self.height)

    @size.setter
    def size(self, value: QSizeF) -> None:
        self.width = value.width()
        self.height = value.height()

    def bounds(self) -> QRectF:
        return QRectF(self.x, self.y, self.width, self.height)

    def move(self, dx: float, dy: float) -> None:
        self.x += dx
        self.y += dy

    def resize(self, width: float, height: float) -> None:
        self.width = width
        self.height = height

    def clone(self):
        """Independent copy; fonts and list fields are not shared."""
        return copy.deepcopy(self)


@dataclass(eq=False)
class TextField(BoxElement):
    text: str = ""
    font: FontSpec = field(default_factory=FontSpec)
    color: str = BLACK

    kind: ClassVar[ElementKind] = ElementKind.TEXT_FIELD


@dataclass(eq=False)
class Rectangle(BoxElement):
    fill_color: str = TRANSPARENT
    border_color: str = BLACK
    border_width: float = 1.0

    kind: ClassVar[ElementKind] = ElementKind.RECTANGLE


@dataclass(eq=False)
class TabularBlock(BoxElement):
    """Route schedule: header row, a column of stop labels and a cell grid.

    ``cells`` is indexed ``cells[column][row]``.
    """
    route_name: str = ""
    row_labels: List[str] = field(default_factory=list)
    cells: List[List[str]] = field(default_factory=list)
    header_font: FontSpec = field(default_factory=lambda: FontSpec(bold=True))
    content_font: FontSpec = field(default_factory=lambda: FontSpec(size_pt=10.0))
    header_color: str = BLACK
    content_color: str = BLACK
    grid_color: str = BLACK

    kind: ClassVar[ElementKind] = ElementKind.TABULAR_BLOCK

    @property
    def row_count(self) -> int:
        return len(self.row_labels)

    @property
    def column_count(self) -> int:
        return len(self.cells)

    def cell(self, column: int, row: int) -> str:
        """Cell text, empty for positions the matrix does not cover."""
        if column < len(self.cells) and row < len(self.cells[column]):
            return self.cells[column][row]
        return ""

    def grid_size(self, rect: QRectF) -> Tuple[float, float]:
        """(column_width, row_height) for the block drawn into ``rect``.

        One extra row holds the header and one extra column the row labels.
        """
        return rect.width() / (self.column_count + 1), rect.height() / (self.row_count + 1)


@dataclass(eq=False)
class Line:
    """Straight line stored only as its two endpoints.

    ``location`` and ``size`` are derived: location is the start point and
    size is the absolute extent between the endpoints.
    """
    x1: float = 0.0
    y1: float = 0.0
    x2: float = 0.0
    y2: float = 0.0
    color: str = BLACK
    line_width: float = 1.0
    resizable: bool = True

    kind: ClassVar[ElementKind] = ElementKind.LINE

    @property
    def start_point(self) -> QPointF:
        return QPointF(self.x1, self.y1)

    @property
    def end_point(self) -> QPointF:
        return QPointF(self.x2, self.y2)

    @property
    def location(self) -> QPointF:
        return self.start_point

    @property
    def size(self) -> QSizeF:
        return QSizeF(abs(self.x2 - self.x1), abs(self.y2 - self.y1))

    def bounds(self) -> QRectF:
        return QRectF(QPointF(min(self.x1, self.x2), min(self.y1, self.y2)),
                      QPointF(max(self.x1, self.x2), max(self.y1, self.y2)))

    def move(self, dx: float, dy: float) -> None:
        self.x1 += dx
        self.y1 += dy
        self.x2 += dx
        self.y2 += dy

    def resize(self, width: float, height: float) -> None:
        """Change the extent, keeping the bounds' top-left corner and the direction.

        For the usual top-left to bottom-right line only the end point moves.
        """
        left = min(self.x1, self.x2)
        top = min(self.y1, self.y2)
        if self.x1 <= self.x2:
            self.x1, self.x2 = left, left + width
        else:
            self.x1, self.x2 = left + width, left
        if self.y1 <= self.y2:
            self.y1, self.y2 = top, top + height
        else:
            self.y1, self.y2 = top + height, top

    def clone(self) -> "Line":
        return copy.deepcopy(self)


Element = Union[TextField, Rectangle, Line, TabularBlock]


@dataclass(frozen=True)
class SnapLine:
    """Alignment guide shown while dragging, in paper pixels."""
    is_vertical: bool
    position: float


# ----------------------------
# JSON records
# ----------------------------

def round2(value: float) -> float:
    """Round geometry to two decimals for stable JSON output."""
    return round(value, 2)


def font_to_dict(font: FontSpec) -> Dict[str, Any]:
    return {
        "family": font.family,
        "size_pt": round2(font.size_pt),
        "bold": font.bold,
        "italic": font.italic,
        "underline": font.underline,
    }


def font_from_dict(d: Dict[str, Any]) -> FontSpec:
    defaults = FontSpec()
    return FontSpec(
        family=d.get("family", defaults.family),
        size_pt=float(d.get("size_pt", defaults.size_pt)),
        bold=bool(d.get("bold", False)),
        italic=bool(d.get("italic", False)),
        underline=bool(d.get("underline", False)),
    )


def _box_geom(el: BoxElement) -> Dict[str, float]:
    return {"x": round2(el.x), "y": round2(el.y), "w": round2(el.width), "h": round2(el.height)}


def element_to_record(el: Element) -> Dict[str, Any]:
    """Serialize an element to a JSON-ready record dict."""
    if isinstance(el, Line):
        return {
            "kind": el.kind.value,
            "geom": {"x1": round2(el.x1), "y1": round2(el.y1),
                     "x2": round2(el.x2), "y2": round2(el.y2)},
            "style": {"color": el.color, "width": el.line_width},
            "resizable": el.resizable,
        }
    rec: Dict[str, Any] = {"kind": el.kind.value, "geom": _box_geom(el), "resizable": el.resizable}
    if isinstance(el, TextField):
        rec["text"] = el.text
        rec["style"] = {"font": font_to_dict(el.font), "color": el.color}
    elif isinstance(el, Rectangle):
        rec["style"] = {
            "fill": el.fill_color,
            "border": el.border_color,
            "border_width": el.border_width,
        }
    elif isinstance(el, TabularBlock):
        rec["table"] = {
            "route_name": el.route_name,
            "row_labels": list(el.row_labels),
            "cells": [list(column) for column in el.cells],
        }
        rec["style"] = {
            "header_font": font_to_dict(el.header_font),
            "content_font": font_to_dict(el.content_font),
            "header_color": el.header_color,
            "content_color": el.content_color,
            "grid_color": el.grid_color,
        }
    return rec


def element_from_record(rec: Dict[str, Any]) -> Element:
    """Build an element from a record produced by ``element_to_record``.

    Raises:
        ValueError: If the record kind is unknown.
    """
    try:
        kind = ElementKind(rec.get("kind"))
    except ValueError:
        raise ValueError(f"Unknown element kind: {rec.get('kind')!r}") from None

    geom = rec.get("geom", {})
    style = rec.get("style", {})
    resizable = bool(rec.get("resizable", True))

    if kind is ElementKind.LINE:
        return Line(
            x1=float(geom.get("x1", 0)), y1=float(geom.get("y1", 0)),
            x2=float(geom.get("x2", 0)), y2=float(geom.get("y2", 0)),
            color=style.get("color", BLACK),
            line_width=float(style.get("width", 1.0)),
            resizable=resizable,
        )

    box = dict(
        x=float(geom.get("x", 0)), y=float(geom.get("y", 0)),
        width=float(geom.get("w", 0)), height=float(geom.get("h", 0)),
        resizable=resizable,
    )
    if kind is ElementKind.TEXT_FIELD:
        return TextField(
            text=rec.get("text", ""),
            font=font_from_dict(style.get("font", {})),
            color=style.get("color", BLACK),
            **box,
        )
    if kind is ElementKind.RECTANGLE:
        return Rectangle(
            fill_color=style.get("fill", TRANSPARENT),
            border_color=style.get("border", BLACK),
            border_width=float(style.get("border_width", 1.0)),
            **box,
        )
    table = rec.get("table", {})
    return TabularBlock(
        route_name=table.get("route_name", ""),
        row_labels=list(table.get("row_labels", [])),
        cells=[list(column) for column in table.get("cells", [])],
        header_font=font_from_dict(style.get("header_font", {"bold": True})),
        content_font=font_from_dict(style.get("content_font", {"size_pt": 10.0})),
        header_color=style.get("header_color", BLACK),
        content_color=style.get("content_color", BLACK),
        grid_color=style.get("grid_color", BLACK),
        **box,
    )


# ----------------------------
# Example content
# ----------------------------

def sample_route_schedule() -> Tuple[str, List[str], List[List[str]]]:
    """Hard-coded example content for a new route schedule block.

    Returns:
        (route_name, row_labels, cells) with ``cells[column][row]``.
    """
    route_name = "Route 12"
    row_labels = ["Main Station", "City Hall", "Market Square", "Hospital", "University"]
    departures = ["6:05", "6:35", "7:05", "7:35"]
    cells = []
    for start in departures:
        hour, minute = (int(part) for part in start.split(":"))
        column = []
        for stop_index in range(len(row_labels)):
            total = hour * 60 + minute + stop_index * 4
            column.append(f"{total // 60}:{total % 60:02d}")
        cells.append(column)
    return route_name, row_labels, cells


# ----------------------------
# Interaction constants
# ----------------------------

class Command(Enum):
    """Host toolbar/menu commands handled by ``CanvasController.execute``."""
    DUPLICATE = "duplicate"
    DELETE = "delete"
    BRING_TO_FRONT = "bring_to_front"
    SEND_TO_BACK = "send_to_back"
    ZOOM_IN = "zoom_in"
    ZOOM_OUT = "zoom_out"
    TOGGLE_SNAPPING = "toggle_snapping"
    TOGGLE_SNAP_LINES = "toggle_snap_lines"
    TOGGLE_FONT_SCALING = "toggle_font_scaling"
    TOGGLE_GRID = "toggle_grid"


# Context menu entries in display order
CONTEXT_MENU_COMMANDS: Tuple[Tuple[Command, str], ...] = (
    (Command.DUPLICATE, "Duplicate"),
    (Command.DELETE, "Delete"),
    (Command.BRING_TO_FRONT, "Bring to Front"),
    (Command.SEND_TO_BACK, "Send to Back"),
)
