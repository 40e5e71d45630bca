"""Widget-level tests driving the DesignerView with synthetic input events."""
from __future__ import annotations

import os
import sys

import pytest
from PyQt6.QtCore import Qt, QPoint, QPointF, QSizeF
from PyQt6.QtTest import QTest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from canvas.controller import CanvasController, InteractionState
from canvas.view import DesignerView
from models import FontSpec
from settings import AppSettings


@pytest.fixture()
def view(qapp):
    settings = AppSettings()
    controller = CanvasController(settings)
    controller.scale_factor = 1.0
    widget = DesignerView(controller, settings)
    widget.resize(1000, 1300)
    widget.show()
    QTest.qWaitForWindowExposed(widget)
    yield widget
    widget.close()
    widget.deleteLater()


def to_widget(view: DesignerView, x: float, y: float) -> QPoint:
    return view.controller.view_transform().paper_to_control(QPointF(x, y)).toPoint()


def test_view_hooks_into_controller(view):
    c = view.controller
    assert c.on_changed is not None
    assert c.text_measurer == view.measure_text
    assert c.paper.dpi_x == float(view.logicalDpiX())


def test_measure_text_uses_font_metrics(view):
    one = view.measure_text("Stop", FontSpec(size_pt=12), 96.0, 96.0)
    two = view.measure_text("Stop\nStop", FontSpec(size_pt=12), 96.0, 96.0)
    assert one.width() > 0
    assert two.height() == pytest.approx(one.height() * 2)
    assert two.width() == pytest.approx(one.width())


def test_double_click_edits_and_enter_commits(view):
    c = view.controller
    field_ = c.add_text_field("Hello", QPointF(100, 100), QSizeF(200, 40))
    QTest.mouseDClick(view, Qt.MouseButton.LeftButton, Qt.KeyboardModifier.NoModifier,
                      to_widget(view, 150, 120))
    assert c.state is InteractionState.EDITING_TEXT
    assert view._editor.isVisible()

    QTest.keyClicks(view._editor, "Central")
    QTest.keyClick(view._editor, Qt.Key.Key_Return)
    assert c.state is InteractionState.IDLE
    assert field_.text == "Central"
    assert not view._editor.isVisible()


def test_delete_key_removes_selection(view):
    c = view.controller
    c.add_rectangle(QPointF(100, 100), QSizeF(50, 50))
    QTest.keyClick(view, Qt.Key.Key_Delete)
    assert c.elements == []


def test_minimum_size_tracks_zoom(view):
    before = view.minimumSize().width()
    view.controller.scale_factor = 2.0
    assert view.minimumSize().width() > before
