"""Tests for the element model and layout records."""
from __future__ import annotations

import os
import sys

import pytest
from PyQt6.QtCore import QPointF, QRectF

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from models import (
    ElementKind,
    FontSpec,
    Line,
    Margins,
    Paper,
    PaperSize,
    Rectangle,
    TabularBlock,
    TextField,
    element_from_record,
    element_to_record,
    paper_dimensions_mm,
    parse_paper_size,
    round2,
    sample_route_schedule,
)


# ---------------------------------------------------------------------------
# Paper
# ---------------------------------------------------------------------------

def test_parse_paper_size_accepts_names_and_members():
    assert parse_paper_size("A5_LANDSCAPE") is PaperSize.A5_LANDSCAPE
    assert parse_paper_size(PaperSize.A4) is PaperSize.A4


def test_parse_paper_size_rejects_unknown():
    with pytest.raises(ValueError):
        parse_paper_size("Letter")


def test_landscape_swaps_dimensions():
    w, h = paper_dimensions_mm(PaperSize.A4)
    assert paper_dimensions_mm(PaperSize.A4_LANDSCAPE) == (h, w)


def test_paper_pixels_follow_dpi():
    paper = Paper(PaperSize.A4, dpi_x=96.0, dpi_y=96.0)
    assert paper.width_px == pytest.approx(210.0 * 96.0 / 25.4)
    paper.dpi_x = 192.0
    assert paper.width_px == pytest.approx(2 * 210.0 * 96.0 / 25.4)


def test_margin_rect():
    paper = Paper(PaperSize.A4, margins=Margins.uniform(25.4), dpi_x=96.0, dpi_y=96.0)
    r = paper.margin_rect_px()
    assert r.left() == pytest.approx(96.0)
    assert r.top() == pytest.approx(96.0)
    assert paper.width_px - r.right() == pytest.approx(96.0)


# ---------------------------------------------------------------------------
# Elements
# ---------------------------------------------------------------------------

def test_line_location_and_size_are_derived():
    line = Line(x1=100, y1=80, x2=40, y2=20)
    assert line.location == QPointF(100, 80)
    assert line.size.width() == 60
    assert line.size.height() == 60
    assert line.bounds() == QRectF(40, 20, 60, 60)


def test_line_move_keeps_direction_and_length():
    line = Line(x1=10, y1=10, x2=110, y2=60)
    line.move(5, -3)
    assert (line.x1, line.y1, line.x2, line.y2) == (15, 7, 115, 57)


def test_line_resize_preserves_direction():
    line = Line(x1=100, y1=10, x2=40, y2=70)
    line.resize(30, 90)
    assert line.bounds().topLeft() == QPointF(40, 10)
    assert line.x1 > line.x2
    assert line.y2 > line.y1
    assert line.size.width() == 30
    assert line.size.height() == 90


def test_elements_compare_by_identity():
    a = Rectangle(x=0, y=0, width=10, height=10)
    b = Rectangle(x=0, y=0, width=10, height=10)
    assert a != b
    assert a == a


def test_clone_does_not_share_font():
    field_ = TextField(x=1, y=2, width=30, height=10, text="Hi", font=FontSpec(size_pt=9))
    copy = field_.clone()
    assert copy is not field_
    assert copy.font is not field_.font
    copy.font.bold = True
    assert field_.font.bold is False


def test_clone_tabular_block_copies_cells():
    name, labels, cells = sample_route_schedule()
    block = TabularBlock(route_name=name, row_labels=labels, cells=cells)
    copy = block.clone()
    copy.cells[0][0] = "changed"
    assert block.cells[0][0] != "changed"


def test_tabular_grid_size():
    block = TabularBlock(row_labels=["a", "b", "c"], cells=[["1", "2", "3"]])
    col_w, row_h = block.grid_size(QRectF(0, 0, 200, 100))
    assert col_w == pytest.approx(100.0)
    assert row_h == pytest.approx(25.0)
    assert block.cell(5, 0) == ""


def test_sample_route_schedule_shape():
    name, labels, cells = sample_route_schedule()
    assert name
    assert all(len(column) == len(labels) for column in cells)
    assert cells[0][0] == "6:05"
    assert cells[0][1] == "6:09"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

def test_text_record_round_trip():
    field_ = TextField(x=10.5, y=20, width=100, height=30, text="Departures",
                       font=FontSpec(family="Times New Roman", size_pt=14, italic=True),
                       color="#112233FF", resizable=False)
    rec = element_to_record(field_)
    assert rec["kind"] == "text"
    assert rec["geom"] == {"x": 10.5, "y": 20, "w": 100, "h": 30}
    restored = element_from_record(rec)
    assert isinstance(restored, TextField)
    assert restored.text == "Departures"
    assert restored.font == field_.font
    assert restored.resizable is False


def test_line_record_keeps_endpoints():
    rec = element_to_record(Line(x1=300, y1=10, x2=20, y2=50, line_width=2.5))
    restored = element_from_record(rec)
    assert isinstance(restored, Line)
    assert (restored.x1, restored.y1, restored.x2, restored.y2) == (300, 10, 20, 50)
    assert restored.line_width == 2.5


def test_route_schedule_record():
    name, labels, cells = sample_route_schedule()
    block = TabularBlock(x=0, y=0, width=400, height=150, route_name=name, row_labels=labels, cells=cells)
    restored = element_from_record(element_to_record(block))
    assert restored.kind is ElementKind.TABULAR_BLOCK
    assert restored.cells == cells
    assert restored.header_font.bold


def test_unknown_record_kind_raises():
    with pytest.raises(ValueError):
        element_from_record({"kind": "ellipse", "geom": {}})


def test_record_geometry_rounds_to_two_decimals():
    assert round2(33.33333) == 33.33
    rec = element_to_record(Rectangle(x=10.126, y=5, width=33.33333, height=1.004))
    assert rec["geom"] == {"x": 10.13, "y": 5, "w": 33.33, "h": 1.0}
    rec = element_to_record(Line(x1=0.125001, y1=1, x2=2.499, y2=3))
    assert rec["geom"] == {"x1": 0.13, "y1": 1, "x2": 2.5, "y2": 3}


@pytest.mark.parametrize("element", [
    TextField(x=1, y=2, width=3, height=4, text="a"),
    Rectangle(x=1, y=2, width=3, height=4),
    Line(x1=1, y1=2, x2=3, y2=4),
    TabularBlock(x=1, y=2, width=3, height=4, route_name="12", row_labels=["A"], cells=[["08:00"]]),
])
def test_every_kind_restores_to_its_class(element):
    restored = element_from_record(element_to_record(element))
    assert type(restored) is type(element)
    assert restored.kind is element.kind
    assert restored.bounds() == element.bounds()
