"""Tests for the canvas controller: selection, drag, resize, snapping and editing.

The ``controller`` fixture runs at 100% zoom with the paper origin at
control position (60, 40), so ``ctl(x, y)`` turns a paper position into the
pointer position a user would click.
"""
from __future__ import annotations

import os
import sys

import pytest
from PyQt6.QtCore import Qt, QPointF, QRectF, QSizeF

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from canvas.controller import CanvasController, InteractionState, estimate_text_size
from models import Command, FontSpec, Line, Margins, PaperSize, Rectangle, TextField


def ctl(x: float, y: float) -> QPointF:
    return QPointF(x + 60.0, y + 40.0)


def drag(c: CanvasController, start: QPointF, end: QPointF) -> None:
    c.pointer_down(ctl(start.x(), start.y()))
    c.pointer_move(ctl(end.x(), end.y()))


def test_fixture_origin(controller):
    origin = controller.view_transform().paper_to_control(QPointF(0, 0))
    assert (origin.x(), origin.y()) == (60.0, 40.0)
    p = controller.to_paper(ctl(12.5, 30))
    assert (p.x(), p.y()) == pytest.approx((12.5, 30))


# ---------------------------------------------------------------------------
# Adding and removing
# ---------------------------------------------------------------------------

def test_added_element_is_selected_and_on_top(controller):
    a = controller.add_rectangle(QPointF(0, 0), QSizeF(50, 10))
    b = controller.add_rectangle(QPointF(100, 0), QSizeF(50, 10))
    assert controller.elements == [a, b]
    assert controller.selected is b


def test_text_field_auto_size(controller):
    field_ = controller.add_text_field("Hello", QPointF(10, 10))
    # 12 pt at 96 DPI is 16 px; estimate plus handle size
    assert field_.width == pytest.approx(5 * 16 * 0.6 + 8)
    assert field_.height == pytest.approx(16 * 1.5 + 8)
    assert field_.font == FontSpec(family="Arial", size_pt=12.0)


def test_estimate_text_size_multiline():
    size = estimate_text_size("ab\nabcd", FontSpec(size_pt=12), 96.0, 96.0)
    assert size.width() == pytest.approx(4 * 16 * 0.6)
    assert size.height() == pytest.approx(2 * 16 * 1.5)


def test_remove_unknown_element_returns_false(controller):
    controller.add_rectangle(QPointF(0, 0), QSizeF(50, 10))
    assert controller.remove_element(Rectangle(x=0, y=0, width=50, height=10)) is False
    assert len(controller.elements) == 1


def test_on_changed_fires(controller):
    calls = []
    controller.on_changed = lambda: calls.append(1)
    controller.add_rectangle(QPointF(0, 0), QSizeF(50, 10))
    controller.margins = Margins.uniform(5)
    assert len(calls) == 2


# ---------------------------------------------------------------------------
# Dragging and snapping
# ---------------------------------------------------------------------------

def test_drag_snaps_to_neighbour_edge(controller):
    controller.add_rectangle(QPointF(0, 0), QSizeF(50, 10))
    b = controller.add_rectangle(QPointF(100, 0), QSizeF(50, 10))

    controller.pointer_down(ctl(125, 5))
    assert controller.state is InteractionState.DRAGGING
    controller.pointer_move(ctl(76, 5))

    assert b.x == pytest.approx(50)
    assert b.y == pytest.approx(0)
    vertical = [s.position for s in controller.snap_lines if s.is_vertical]
    assert vertical == [pytest.approx(50)]

    controller.pointer_up(ctl(76, 5))
    assert controller.state is InteractionState.IDLE
    assert controller.snap_lines == []


def test_drag_without_snapping(controller):
    controller.add_rectangle(QPointF(0, 0), QSizeF(50, 10))
    b = controller.add_rectangle(QPointF(100, 0), QSizeF(50, 10))
    controller.execute(Command.TOGGLE_SNAPPING)
    assert controller.snapping_enabled is False

    drag(controller, QPointF(125, 5), QPointF(76, 5))
    assert b.x == pytest.approx(51)
    assert controller.snap_lines == []


@pytest.mark.parametrize("target", [QPointF(-100, -100), QPointF(5000, 5000), QPointF(5000, -40)])
def test_drag_stays_on_paper(controller, target):
    rect = controller.add_rectangle(QPointF(100, 100), QSizeF(50, 10))
    drag(controller, QPointF(125, 105), target)
    paper = controller.paper
    assert rect.x >= 0 and rect.y >= 0
    assert rect.x + rect.width <= paper.width_px + 1e-6
    assert rect.y + rect.height <= paper.height_px + 1e-6


def test_drag_line_moves_both_endpoints(controller):
    line = controller.add_line(QPointF(10, 10), QPointF(110, 60))
    controller.snapping_enabled = False
    drag(controller, QPointF(60, 35), QPointF(80, 45))
    assert (line.x1, line.y1, line.x2, line.y2) == pytest.approx((30, 20, 130, 70))
    assert line.size == QSizeF(100, 50)


def test_press_on_empty_paper_clears_selection(controller):
    controller.add_rectangle(QPointF(0, 0), QSizeF(50, 10))
    controller.pointer_down(ctl(400, 400))
    assert controller.selected is None
    assert controller.state is InteractionState.IDLE


def test_right_press_selects_without_dragging(controller):
    a = controller.add_rectangle(QPointF(0, 0), QSizeF(50, 10))
    controller.add_rectangle(QPointF(100, 0), QSizeF(50, 10))
    controller.pointer_down(ctl(25, 5), Qt.MouseButton.RightButton)
    assert controller.selected is a
    assert controller.state is InteractionState.IDLE


# ---------------------------------------------------------------------------
# Resizing
# ---------------------------------------------------------------------------

def test_resize_from_handle(controller):
    rect = controller.add_rectangle(QPointF(100, 100), QSizeF(50, 50))
    controller.pointer_down(ctl(149, 149))
    assert controller.state is InteractionState.RESIZING
    controller.pointer_move(ctl(299, 199))
    assert rect.size == QSizeF(200, 100)
    assert rect.location == QPointF(100, 100)


def test_resize_is_floored(controller):
    rect = controller.add_rectangle(QPointF(100, 100), QSizeF(50, 50))
    controller.pointer_down(ctl(149, 149))
    controller.pointer_move(ctl(90, 90))
    assert rect.width == pytest.approx(10)
    assert rect.height == pytest.approx(10)


def test_resize_is_capped_at_paper_edge(controller):
    rect = controller.add_rectangle(QPointF(100, 100), QSizeF(50, 50))
    controller.pointer_down(ctl(149, 149))
    controller.pointer_move(ctl(5000, 5000))
    assert rect.x + rect.width == pytest.approx(controller.paper.width_px)
    assert rect.y + rect.height == pytest.approx(controller.paper.height_px)


def test_resize_horizontal_line_keeps_it_flat(controller):
    line = controller.add_line(QPointF(10, 50), QPointF(110, 50))
    controller.pointer_down(ctl(109, 49))
    assert controller.state is InteractionState.RESIZING
    controller.pointer_move(ctl(210, 49))
    assert (line.x1, line.y1, line.x2, line.y2) == pytest.approx((10, 50, 211, 50))


def test_fixed_size_element_is_dragged_from_corner(controller):
    rect = controller.add_rectangle(QPointF(100, 100), QSizeF(50, 50))
    rect.resizable = False
    controller.pointer_down(ctl(149, 149))
    assert controller.state is InteractionState.DRAGGING


def test_font_scales_with_height_when_enabled(controller):
    field_ = controller.add_text_field("Stop", QPointF(100, 100), QSizeF(100, 20))
    controller.execute(Command.TOGGLE_FONT_SCALING)
    controller.pointer_down(ctl(199, 119))
    controller.pointer_move(ctl(199, 139))
    assert field_.height == pytest.approx(40)
    assert field_.font.size_pt == pytest.approx(24)


def test_font_unchanged_by_default(controller):
    field_ = controller.add_text_field("Stop", QPointF(100, 100), QSizeF(100, 20))
    controller.pointer_down(ctl(199, 119))
    controller.pointer_move(ctl(199, 139))
    assert field_.font.size_pt == pytest.approx(12)


# ---------------------------------------------------------------------------
# Paper and zoom
# ---------------------------------------------------------------------------

def test_paper_switch_leaves_elements_untouched(controller):
    rect = controller.add_rectangle(QPointF(100, 100), QSizeF(50, 50))
    width_a4 = controller.paper.width_px
    controller.paper_size = "A5"
    assert controller.paper_size is PaperSize.A5
    assert controller.paper.width_px < width_a4
    assert rect.bounds() == QRectF(100, 100, 50, 50)


def test_invalid_paper_size_raises(controller):
    with pytest.raises(ValueError):
        controller.paper_size = "B5"


def test_negative_margins_are_floored(controller):
    controller.margins = Margins(top=-3, left=5, right=-1, bottom=0)
    assert controller.margins == Margins(top=0, left=5, right=0, bottom=0)


def test_invalid_dpi_raises(controller):
    with pytest.raises(ValueError):
        controller.set_dpi(0, 96)


def test_zoom_is_clamped(controller):
    controller.scale_factor = 10
    assert controller.scale_factor == pytest.approx(5.0)
    controller.scale_factor = 0.01
    assert controller.scale_factor == pytest.approx(0.1)


def test_zoom_commands_step(controller):
    controller.execute(Command.ZOOM_IN)
    assert controller.scale_factor == pytest.approx(1.1)
    controller.execute(Command.ZOOM_OUT)
    controller.execute(Command.ZOOM_OUT)
    assert controller.scale_factor == pytest.approx(0.9)


def test_toggle_commands(controller):
    assert controller.show_grid is False
    controller.execute(Command.TOGGLE_GRID)
    assert controller.show_grid is True
    controller.execute(Command.TOGGLE_SNAP_LINES)
    assert controller.show_snap_lines is False


# ---------------------------------------------------------------------------
# Ordering, duplicate and delete
# ---------------------------------------------------------------------------

def test_z_order(controller):
    a = controller.add_rectangle(QPointF(0, 0), QSizeF(10, 10))
    b = controller.add_rectangle(QPointF(20, 0), QSizeF(10, 10))
    c = controller.add_rectangle(QPointF(40, 0), QSizeF(10, 10))
    controller.bring_to_front(a)
    assert controller.elements == [b, c, a]
    controller.send_to_back(c)
    assert controller.elements == [c, b, a]
    controller.selected = b
    controller.execute(Command.BRING_TO_FRONT)
    assert controller.elements == [c, a, b]


def test_duplicate_offsets_copy(controller):
    rect = controller.add_rectangle(QPointF(100, 100), QSizeF(50, 50))
    copy = controller.duplicate_selected()
    assert copy is not rect
    assert isinstance(copy, Rectangle)
    assert copy.location == QPointF(120, 120)
    assert controller.elements[-1] is copy
    assert controller.selected is copy


def test_duplicate_is_clamped_to_paper(controller):
    right = controller.paper.width_px - 50
    controller.add_rectangle(QPointF(right, 0), QSizeF(50, 50))
    copy = controller.duplicate_selected()
    assert copy.x == pytest.approx(right)
    assert copy.y == pytest.approx(20)


def test_duplicate_line(controller):
    controller.add_line(QPointF(10, 10), QPointF(110, 60))
    copy = controller.duplicate_selected()
    assert isinstance(copy, Line)
    assert (copy.x1, copy.y1, copy.x2, copy.y2) == pytest.approx((30, 30, 130, 80))


def test_duplicate_without_selection(controller):
    assert controller.duplicate_selected() is None


def test_context_menu_then_delete(controller):
    rect = controller.add_rectangle(QPointF(100, 100), QSizeF(50, 50))
    controller.add_rectangle(QPointF(300, 300), QSizeF(50, 50))
    commands = controller.context_commands(ctl(125, 125))
    assert [label for _, label in commands] == ["Duplicate", "Delete", "Bring to Front", "Send to Back"]
    assert controller.selected is rect
    controller.execute(Command.DELETE)
    assert rect not in controller.elements
    assert controller.selected is None
    assert len(controller.elements) == 1


def test_context_menu_on_empty_paper(controller):
    controller.add_rectangle(QPointF(100, 100), QSizeF(50, 50))
    assert controller.context_commands(ctl(500, 500)) == []


# ---------------------------------------------------------------------------
# Inline text editing
# ---------------------------------------------------------------------------

def test_double_click_opens_editor_and_enter_commits(controller):
    field_ = controller.add_text_field("Hello", QPointF(100, 100), QSizeF(100, 30))
    assert controller.double_click(ctl(150, 115)) is True
    assert controller.state is InteractionState.EDITING_TEXT
    assert controller.edit_target is field_

    overlay = controller.edit_overlay()
    assert overlay.rect == QRectF(160, 140, 100, 30)
    assert overlay.text == "Hello"
    assert overlay.font_pixel_size == pytest.approx(16)

    consumed = controller.handle_edit_key(Qt.Key.Key_Return, Qt.KeyboardModifier.NoModifier, "World")
    assert consumed is True
    assert field_.text == "World"
    assert controller.state is InteractionState.IDLE
    assert controller.edit_overlay() is None


def test_modified_enter_does_not_commit(controller):
    field_ = controller.add_text_field("Hello", QPointF(100, 100), QSizeF(100, 30))
    controller.double_click(ctl(150, 115))
    consumed = controller.handle_edit_key(Qt.Key.Key_Return, Qt.KeyboardModifier.ControlModifier, "a\nb")
    assert consumed is False
    assert controller.state is InteractionState.EDITING_TEXT
    assert field_.text == "Hello"


def test_escape_asks_before_discarding(controller):
    field_ = controller.add_text_field("Hello", QPointF(100, 100), QSizeF(100, 30))
    controller.double_click(ctl(150, 115))

    controller.confirm_discard = lambda: False
    assert controller.handle_edit_key(Qt.Key.Key_Escape, Qt.KeyboardModifier.NoModifier, "x") is True
    assert controller.state is InteractionState.EDITING_TEXT

    controller.confirm_discard = lambda: True
    controller.handle_edit_key(Qt.Key.Key_Escape, Qt.KeyboardModifier.NoModifier, "x")
    assert controller.state is InteractionState.IDLE
    assert field_.text == "Hello"


def test_double_click_on_rectangle_does_not_edit(controller):
    controller.add_rectangle(QPointF(100, 100), QSizeF(50, 50))
    assert controller.double_click(ctl(125, 125)) is False
    assert controller.state is InteractionState.IDLE


def test_press_ends_editing(controller):
    controller.add_text_field("Hello", QPointF(100, 100), QSizeF(100, 30))
    controller.double_click(ctl(150, 115))
    controller.pointer_down(ctl(500, 500))
    assert controller.state is InteractionState.IDLE
    assert controller.commit_text_edit("late") is False


# ---------------------------------------------------------------------------
# Cursor feedback
# ---------------------------------------------------------------------------

def test_cursor_shapes(controller):
    controller.add_rectangle(QPointF(100, 100), QSizeF(100, 50))
    assert controller.cursor_for(ctl(199, 149)) is Qt.CursorShape.SizeFDiagCursor
    assert controller.cursor_for(ctl(150, 125)) is Qt.CursorShape.ArrowCursor
    assert controller.cursor_for(ctl(102, 125)) is Qt.CursorShape.SizeAllCursor
    assert controller.cursor_for(ctl(500, 500)) is Qt.CursorShape.ArrowCursor

    controller.pointer_down(ctl(150, 125))
    assert controller.cursor_for(ctl(150, 125)) is Qt.CursorShape.SizeAllCursor


def test_cursor_over_line(controller):
    controller.add_line(QPointF(10, 10), QPointF(210, 10))
    controller.selected = None
    assert controller.cursor_for(ctl(100, 12)) is Qt.CursorShape.SizeAllCursor


def test_text_field_is_a_text_field(controller):
    field_ = controller.add_text_field("x", QPointF(0, 0), QSizeF(20, 20))
    assert isinstance(field_, TextField)
