"""
canvas/view.py

QWidget host for the designer canvas.

The widget forwards pointer and key events to the CanvasController, paints
through the CanvasRenderer and owns the Qt-only pieces the controller must not
know about: the inline text editor, the context menu, the discard
confirmation and the cursor.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from PyQt6.QtCore import Qt, QPointF, QRectF, QSize, QSizeF
from PyQt6.QtGui import QAction, QFontMetricsF, QKeyEvent, QPainter, QPalette
from PyQt6.QtWidgets import QFrame, QMenu, QMessageBox, QTextEdit, QWidget

from canvas.controller import CanvasController, InteractionState
from canvas.renderer import CanvasRenderer
from models import Command, FontSpec
from settings import AppSettings, get_settings
from units import points_to_pixels
from utils import hex_to_qcolor, make_qfont

log = logging.getLogger(__name__)


class InlineTextEditor(QTextEdit):
    """Frameless editor placed over a text field while it is edited.

    Keys are first offered to ``on_key``; Ctrl+Enter inserts a line break.
    """

    def __init__(self, on_key: Callable[[QKeyEvent], bool], parent=None):
        super().__init__(parent)
        self.on_key = on_key
        self.setFrameShape(QFrame.Shape.NoFrame)
        self.setAcceptRichText(False)
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self.setVerticalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self.document().setDocumentMargin(0)
        self.hide()

    def keyPressEvent(self, event: QKeyEvent):
        if self.on_key(event):
            event.accept()
            return
        if (event.key() in (Qt.Key.Key_Return, Qt.Key.Key_Enter)
                and event.modifiers() & Qt.KeyboardModifier.ControlModifier):
            self.insertPlainText("\n")
            event.accept()
            return
        super().keyPressEvent(event)


class DesignerView(QWidget):
    """
    Canvas widget showing the paper and its elements.

    Interaction:
    - Left-drag moves the element under the pointer, or resizes the selected
      one from its bottom-right handle
    - Double-click on a text field edits it in place (Enter commits,
      Escape asks to discard, Ctrl+Enter inserts a line break)
    - Right-click opens Duplicate / Delete / Bring to Front / Send to Back
    - Delete removes the selection
    """

    def __init__(self, controller: CanvasController, settings: Optional[AppSettings] = None, parent=None):
        super().__init__(parent)
        self.controller = controller
        self.settings = settings if settings is not None else get_settings().settings
        self.renderer = CanvasRenderer(self.settings)

        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setAutoFillBackground(False)

        self._editor = InlineTextEditor(self._on_editor_key, self)

        controller.on_changed = self._on_controller_changed
        controller.confirm_discard = self._confirm_discard
        controller.text_measurer = self.measure_text
        self._sync_dpi()
        self._update_minimum_size()

    # ------------------------------------------------------------------
    # Controller hooks
    # ------------------------------------------------------------------

    def measure_text(self, text: str, font: FontSpec, dpi_x: float, dpi_y: float) -> QSizeF:
        """Text extent in paper pixels using real font metrics."""
        qfont = make_qfont(font, points_to_pixels(font.size_pt, dpi_y))
        metrics = QFontMetricsF(qfont)
        lines = text.splitlines() or [""]
        width = max(metrics.horizontalAdvance(line) for line in lines)
        return QSizeF(width, metrics.lineSpacing() * len(lines))

    def _confirm_discard(self) -> bool:
        answer = QMessageBox.question(
            self,
            "Discard changes",
            "Discard the changes to this text field?",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
            QMessageBox.StandardButton.No,
        )
        return answer == QMessageBox.StandardButton.Yes

    def _on_controller_changed(self) -> None:
        self._update_minimum_size()
        self._sync_editor()
        self.update()

    def _sync_dpi(self) -> None:
        self.controller.set_dpi(float(self.logicalDpiX()), float(self.logicalDpiY()))

    def _update_minimum_size(self) -> None:
        c = self.controller
        rulers = self.settings.canvas.rulers
        width = c.paper.width_px * c.scale_factor + c.left_gutter * 2
        height = c.paper.height_px * c.scale_factor + self.settings.canvas.paper_top_offset + rulers.size * 2
        size = QSize(int(width) + 1, int(height) + 1)
        if size != self.minimumSize():
            self.setMinimumSize(size)

    # ------------------------------------------------------------------
    # Inline editor
    # ------------------------------------------------------------------

    def _open_editor(self) -> None:
        overlay = self.controller.edit_overlay()
        if overlay is None:
            return
        self._editor.setPlainText(overlay.text)
        self._place_editor()
        self._editor.selectAll()
        self._editor.show()
        self._editor.setFocus()

    def _place_editor(self) -> None:
        overlay = self.controller.edit_overlay()
        if overlay is None:
            return
        self._editor.setGeometry(overlay.rect.toAlignedRect())
        self._editor.setFont(make_qfont(overlay.font, overlay.font_pixel_size))
        palette = self._editor.palette()
        palette.setColor(QPalette.ColorRole.Text, hex_to_qcolor(overlay.color))
        self._editor.setPalette(palette)

    def _sync_editor(self) -> None:
        editing = self.controller.state is InteractionState.EDITING_TEXT
        if editing and self._editor.isVisible():
            self._place_editor()
        elif not editing and self._editor.isVisible():
            self._editor.hide()
            self.setFocus()

    def _on_editor_key(self, event: QKeyEvent) -> bool:
        return self.controller.handle_edit_key(event.key(), event.modifiers(), self._editor.toPlainText())

    def _commit_editor(self) -> None:
        if self.controller.state is InteractionState.EDITING_TEXT:
            self.controller.commit_text_edit(self._editor.toPlainText())

    # ------------------------------------------------------------------
    # Qt events
    # ------------------------------------------------------------------

    def paintEvent(self, event):
        painter = QPainter(self)
        try:
            self.renderer.paint(painter, self.controller, QRectF(self.rect()))
        finally:
            painter.end()

    def resizeEvent(self, event):
        self.controller.set_viewport_size(float(self.width()), float(self.height()))
        self._sync_editor()
        super().resizeEvent(event)

    def showEvent(self, event):
        self._sync_dpi()
        self.controller.set_viewport_size(float(self.width()), float(self.height()))
        super().showEvent(event)

    def mousePressEvent(self, event):
        self._commit_editor()
        self.setFocus()
        self.controller.pointer_down(event.position(), event.button())
        event.accept()

    def mouseMoveEvent(self, event):
        pos = event.position()
        self.controller.pointer_move(pos)
        self.setCursor(self.controller.cursor_for(pos))

    def mouseReleaseEvent(self, event):
        self.controller.pointer_up(event.position())
        self.setCursor(self.controller.cursor_for(event.position()))

    def mouseDoubleClickEvent(self, event):
        if event.button() != Qt.MouseButton.LeftButton:
            return
        if self.controller.double_click(event.position()):
            self._open_editor()

    def contextMenuEvent(self, event):
        commands = self.controller.context_commands(QPointF(event.pos()))
        if not commands:
            return
        menu = QMenu(self)
        for command, label in commands:
            action = QAction(label, menu)
            action.triggered.connect(lambda checked=False, c=command: self.controller.execute(c))
            menu.addAction(action)
        menu.exec(event.globalPos())

    def keyPressEvent(self, event):
        if event.key() == Qt.Key.Key_Delete and self.controller.selected is not None:
            self.controller.execute(Command.DELETE)
            event.accept()
            return
        super().keyPressEvent(event)
