"""
main.py

Timetable Designer - Main Application

PyQt6 application for laying out printed timetables:
- Text fields, rectangles, lines and route schedule blocks on a paper sheet
- Drag, resize and snap to other elements and the paper margins
- Rulers, optional grid, A4/A5 in portrait or landscape
- Single-page PDF export matching the on-screen layout

Usage:
    python main.py

Dependencies:
    pip install PyQt6 platformdirs tomli-w reportlab jsonschema
"""

from __future__ import annotations

import logging
import os
import sys
import traceback

from PyQt6.QtCore import Qt, QPointF, QSize, QSizeF, QUrl
from PyQt6.QtGui import QAction, QColor, QDesktopServices, QKeySequence
from PyQt6.QtWidgets import (
    QApplication,
    QColorDialog,
    QComboBox,
    QDoubleSpinBox,
    QFileDialog,
    QFontDialog,
    QInputDialog,
    QLabel,
    QMainWindow,
    QMessageBox,
    QScrollArea,
    QToolBar,
)

from canvas import CanvasController, DesignerView
from models import TRANSPARENT, Command, FontSpec, Margins, PaperSize, sample_route_schedule
from pdf_export import PdfExportError
from project_io import LayoutFileError, load_layout, save_layout
from settings import SettingsManager, get_settings
from utils import font_from_qfont, make_qfont, qcolor_to_hex

log = logging.getLogger(__name__)

PAPER_LABELS = {
    PaperSize.A4: "A4",
    PaperSize.A5: "A5",
    PaperSize.A4_LANDSCAPE: "A4 Landscape",
    PaperSize.A5_LANDSCAPE: "A5 Landscape",
}

# Default sizes (paper pixels) for newly inserted elements
NEW_RECTANGLE_SIZE = QSizeF(150, 80)
NEW_LINE_LENGTH = 200.0
NEW_SCHEDULE_SIZE = QSizeF(450, 180)


class MainWindow(QMainWindow):
    """Main application window for the Timetable Designer.

    Args:
        settings_manager: The SettingsManager instance for application settings.
    """

    def __init__(self, settings_manager: SettingsManager):
        super().__init__()
        self.settings_manager = settings_manager
        self.setWindowTitle("Timetable Designer")

        settings = settings_manager.settings
        self.controller = CanvasController(settings)
        self.view = DesignerView(self.controller, settings)

        self.scroll = QScrollArea()
        self.scroll.setWidget(self.view)
        self.scroll.setWidgetResizable(True)
        self.scroll.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.setCentralWidget(self.scroll)

        self._build_menus()
        self._build_toolbar()

        self.statusBar().showMessage("Insert elements from the toolbar. Double-click a text field to edit it.")

    # ------------------------------------------------------------------
    # Menus and toolbar
    # ------------------------------------------------------------------

    def _command_action(self, text: str, command: Command, shortcut=None, checkable: bool = False,
                        checked: bool = False) -> QAction:
        act = QAction(text, self)
        if shortcut is not None:
            act.setShortcut(shortcut)
        if checkable:
            act.setCheckable(True)
            act.setChecked(checked)
        act.triggered.connect(lambda _checked=False, c=command: self._run_command(c))
        return act

    def _build_menus(self):
        """Build the application menu bar."""
        menubar = self.menuBar()
        c = self.controller

        # File menu
        file_menu = menubar.addMenu("&File")

        open_layout = QAction("Open Layout...", self)
        open_layout.setShortcut(QKeySequence.StandardKey.Open)
        open_layout.triggered.connect(self.open_layout_dialog)
        file_menu.addAction(open_layout)

        save_layout_act = QAction("Save Layout...", self)
        save_layout_act.setShortcut(QKeySequence.StandardKey.Save)
        save_layout_act.triggered.connect(self.save_layout_dialog)
        file_menu.addAction(save_layout_act)

        file_menu.addSeparator()

        export_pdf = QAction("Export PDF...", self)
        export_pdf.setShortcut("Ctrl+E")
        export_pdf.triggered.connect(self.export_pdf_dialog)
        file_menu.addAction(export_pdf)

        file_menu.addSeparator()

        exit_act = QAction("E&xit", self)
        exit_act.triggered.connect(self.close)
        file_menu.addAction(exit_act)

        # Edit menu
        edit_menu = menubar.addMenu("&Edit")
        edit_menu.addAction(self._command_action("Duplicate", Command.DUPLICATE, "Ctrl+D"))
        edit_menu.addAction(self._command_action("Delete", Command.DELETE))
        edit_menu.addSeparator()
        edit_menu.addAction(self._command_action("Bring to Front", Command.BRING_TO_FRONT, "Ctrl+]"))
        edit_menu.addAction(self._command_action("Send to Back", Command.SEND_TO_BACK, "Ctrl+["))

        # Insert menu
        insert_menu = menubar.addMenu("&Insert")
        for text, slot in self._insert_actions():
            act = QAction(text, self)
            act.triggered.connect(slot)
            insert_menu.addAction(act)

        # View menu
        view_menu = menubar.addMenu("&View")
        view_menu.addAction(self._command_action("Zoom In", Command.ZOOM_IN, QKeySequence.StandardKey.ZoomIn))
        view_menu.addAction(self._command_action("Zoom Out", Command.ZOOM_OUT, QKeySequence.StandardKey.ZoomOut))
        view_menu.addSeparator()
        self.act_snapping = self._command_action("Snapping", Command.TOGGLE_SNAPPING,
                                                 checkable=True, checked=c.snapping_enabled)
        self.act_snap_lines = self._command_action("Show Snap Lines", Command.TOGGLE_SNAP_LINES,
                                                   checkable=True, checked=c.show_snap_lines)
        self.act_font_scaling = self._command_action("Scale Font While Resizing", Command.TOGGLE_FONT_SCALING,
                                                     checkable=True, checked=c.scale_font_while_resizing)
        self.act_grid = self._command_action("Show Grid", Command.TOGGLE_GRID, "Ctrl+G",
                                             checkable=True, checked=c.show_grid)
        for act in (self.act_snapping, self.act_snap_lines, self.act_font_scaling, self.act_grid):
            view_menu.addAction(act)

    def _insert_actions(self):
        return [
            ("Text Field...", self.add_text_field_dialog),
            ("Rectangle...", self.add_rectangle_dialog),
            ("Line...", self.add_line_dialog),
            ("Route Schedule", self.add_route_schedule),
        ]

    def _build_toolbar(self):
        """Build the application toolbar."""
        tb = QToolBar("Tools")
        tb.setIconSize(QSize(18, 18))
        self.addToolBar(tb)

        for text, slot in self._insert_actions():
            act = QAction(text.rstrip("."), self)
            act.triggered.connect(slot)
            tb.addAction(act)

        tb.addSeparator()

        tb.addWidget(QLabel(" Paper: "))
        self.paper_combo = QComboBox()
        for size, label in PAPER_LABELS.items():
            self.paper_combo.addItem(label, size)
        self.paper_combo.setCurrentIndex(list(PAPER_LABELS).index(self.controller.paper_size))
        self.paper_combo.currentIndexChanged.connect(self._on_paper_changed)
        tb.addWidget(self.paper_combo)

        tb.addWidget(QLabel(" Margin (mm): "))
        self.margin_spin = QDoubleSpinBox()
        self.margin_spin.setRange(0.0, 50.0)
        self.margin_spin.setSingleStep(1.0)
        self.margin_spin.setDecimals(1)
        self.margin_spin.setValue(self.controller.margins.top)
        self.margin_spin.valueChanged.connect(self._on_margin_changed)
        tb.addWidget(self.margin_spin)

        tb.addSeparator()

        tb.addAction(self._command_action("Zoom In", Command.ZOOM_IN))
        tb.addAction(self._command_action("Zoom Out", Command.ZOOM_OUT))
        tb.addAction(self.act_snapping)
        tb.addAction(self.act_grid)

        tb.addSeparator()

        export_act = QAction("Export PDF", self)
        export_act.triggered.connect(self.export_pdf_dialog)
        tb.addAction(export_act)

    # ------------------------------------------------------------------
    # Settings-backed controls
    # ------------------------------------------------------------------

    def _run_command(self, command: Command):
        self.controller.execute(command)
        c = self.controller
        s = self.settings_manager.settings
        s.canvas.snapping.enabled = c.snapping_enabled
        s.canvas.snapping.show_lines = c.show_snap_lines
        s.canvas.shapes.scale_font_while_resizing = c.scale_font_while_resizing
        s.canvas.rulers.show_grid = c.show_grid
        if command in (Command.ZOOM_IN, Command.ZOOM_OUT):
            self.statusBar().showMessage(f"Zoom: {c.scale_factor:.0%}")

    def _on_paper_changed(self, index: int):
        size = self.paper_combo.itemData(index)
        self.controller.paper_size = size
        self.settings_manager.settings.paper.size = size.value
        self.statusBar().showMessage(f"Paper: {PAPER_LABELS[size]}")

    def _on_margin_changed(self, value: float):
        self.controller.margins = Margins.uniform(value)
        p = self.settings_manager.settings.paper
        p.margin_top = p.margin_left = p.margin_right = p.margin_bottom = value

    def _insertion_point(self) -> QPointF:
        return self.controller.paper.margin_rect_px().topLeft()

    # ------------------------------------------------------------------
    # Insert dialogs
    # ------------------------------------------------------------------

    def _pick_color(self, title: str, initial: QColor, alpha: bool = False):
        if alpha:
            color = QColorDialog.getColor(initial, self, title, QColorDialog.ColorDialogOption.ShowAlphaChannel)
        else:
            color = QColorDialog.getColor(initial, self, title)
        return color if color.isValid() else None

    def add_text_field_dialog(self):
        text, ok = QInputDialog.getText(self, "Text Field", "Text:")
        if not ok or not text:
            return
        defaults = self.settings_manager.settings.defaults
        initial_font = make_qfont(FontSpec(family=defaults.font_family), 16)
        initial_font.setPointSizeF(defaults.font_size)
        qfont, ok = QFontDialog.getFont(initial_font, self, "Text Field Font")
        if not ok:
            return
        color = self._pick_color("Text Color", QColor(Qt.GlobalColor.black))
        if color is None:
            return
        self.controller.add_text_field(text, self._insertion_point(),
                                       font=font_from_qfont(qfont), color=qcolor_to_hex(color))

    def add_rectangle_dialog(self):
        fill = self._pick_color("Fill Color", QColor(255, 255, 255, 0), alpha=True)
        if fill is None:
            return
        border = self._pick_color("Border Color", QColor(Qt.GlobalColor.black))
        if border is None:
            return
        self.controller.add_rectangle(self._insertion_point(), NEW_RECTANGLE_SIZE,
                                      fill_color=qcolor_to_hex(fill) if fill.alpha() else TRANSPARENT,
                                      border_color=qcolor_to_hex(border))

    def add_line_dialog(self):
        color = self._pick_color("Line Color", QColor(Qt.GlobalColor.black))
        if color is None:
            return
        start = self._insertion_point()
        self.controller.add_line(start, start + QPointF(NEW_LINE_LENGTH, 0), color=qcolor_to_hex(color))

    def add_route_schedule(self):
        route_name, row_labels, cells = sample_route_schedule()
        self.controller.add_tabular_block(self._insertion_point(), NEW_SCHEDULE_SIZE,
                                          route_name, row_labels, cells)

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def save_layout_dialog(self):
        """Save the layout as JSON in the workspace directory."""
        workspace = str(self.settings_manager.get_workspace_dir())
        path, _ = QFileDialog.getSaveFileName(
            self, "Save Layout", workspace, "Layout (*.json)"
        )
        if not path:
            return
        if not path.lower().endswith(".json"):
            path += ".json"
        try:
            save_layout(path, self.controller)
            self.statusBar().showMessage(f"Saved layout: {path}")
        except LayoutFileError as e:
            QMessageBox.critical(self, "Save failed", str(e))

    def open_layout_dialog(self):
        """Open a layout JSON from the workspace directory."""
        workspace = str(self.settings_manager.get_workspace_dir())
        path, _ = QFileDialog.getOpenFileName(
            self, "Open Layout", workspace, "Layout (*.json)"
        )
        if not path:
            return
        try:
            load_layout(path, self.controller)
        except (LayoutFileError, ValueError) as e:
            QMessageBox.critical(self, "Open failed", str(e))
            return
        self._sync_paper_controls()
        self.statusBar().showMessage(f"Opened layout: {path}")

    def _sync_paper_controls(self):
        for widget in (self.paper_combo, self.margin_spin):
            widget.blockSignals(True)
        self.paper_combo.setCurrentIndex(list(PAPER_LABELS).index(self.controller.paper_size))
        self.margin_spin.setValue(self.controller.margins.top)
        for widget in (self.paper_combo, self.margin_spin):
            widget.blockSignals(False)

    def export_pdf_dialog(self):
        """Export the layout to a single-page PDF."""
        export = self.settings_manager.settings.export
        initial = os.path.join(str(self.settings_manager.get_workspace_dir()), export.default_file_name)
        path, _ = QFileDialog.getSaveFileName(
            self, "Export PDF", initial, "PDF (*.pdf)"
        )
        if not path:
            return

        # Ensure .pdf extension
        if not path.lower().endswith(".pdf"):
            path += ".pdf"

        try:
            self.controller.export_to_pdf(path)
        except PdfExportError as e:
            QMessageBox.critical(self, "Export failed", str(e))
            return
        self.statusBar().showMessage(f"Exported PDF: {path}")

        if export.open_after_export:
            answer = QMessageBox.question(
                self, "Export complete", f"Saved {os.path.basename(path)}. Open it now?",
                QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
            )
            if answer == QMessageBox.StandardButton.Yes:
                QDesktopServices.openUrl(QUrl.fromLocalFile(path))


def main():
    """Application entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    log.info("Application starting")
    app = QApplication(sys.argv)

    # Load settings (use singleton to ensure single instance)
    settings_manager = get_settings()

    # Ensure settings file has all sections
    settings_manager.ensure_file_complete()

    # Save settings on application quit
    def save_on_quit():
        log.info("Saving settings on quit")
        settings_manager.save()

    app.aboutToQuit.connect(save_on_quit)

    w = MainWindow(settings_manager)
    w.resize(1200, 950)
    w.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    # Set up global exception handler to catch crashes
    def excepthook(exc_type, exc_value, exc_tb):
        log.critical("Uncaught exception:\n%s",
                     "".join(traceback.format_exception(exc_type, exc_value, exc_tb)))
        sys.__excepthook__(exc_type, exc_value, exc_tb)

    sys.excepthook = excepthook

    main()
