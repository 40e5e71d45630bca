"""
canvas/controller.py

Interactive state machine of the designer canvas.

The controller owns the element list, the selection and the drag/resize/edit
mode. It receives pointer and key input in control (widget) coordinates,
converts it to paper pixels and delegates hit testing, clamping and snapping
to ``geometry``. It holds no widgets, so the host view only forwards events
and repaints when ``on_changed`` fires.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from PyQt6.QtCore import Qt, QPointF, QRectF, QSizeF

from geometry import (
    apply_snapping,
    clamp_location,
    clamp_size,
    contains,
    element_at,
    inner_body_rect,
    is_over_resize_handle,
    margin_guides,
)
from models import (
    CONTEXT_MENU_COMMANDS,
    Command,
    Element,
    FontSpec,
    Line,
    Margins,
    Paper,
    PaperSize,
    Rectangle,
    SnapLine,
    TabularBlock,
    TextField,
    TRANSPARENT,
    parse_paper_size,
)
from settings import AppSettings, get_settings
from units import ViewTransform, paper_origin, points_to_pixels

log = logging.getLogger(__name__)

TextMeasurer = Callable[[str, FontSpec, float, float], QSizeF]


def estimate_text_size(text: str, font: FontSpec, dpi_x: float, dpi_y: float) -> QSizeF:
    """Rough text extent in paper pixels when no font metrics are available."""
    lines = text.splitlines() or [""]
    char_width = points_to_pixels(font.size_pt, dpi_x) * 0.6
    line_height = points_to_pixels(font.size_pt, dpi_y) * 1.5
    return QSizeF(max(len(line) for line in lines) * char_width, len(lines) * line_height)


class InteractionState(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    RESIZING = "resizing"
    EDITING_TEXT = "editing_text"


@dataclass
class Interaction:
    """Current state together with the data only that state needs.

    ``grab_offset`` is the pointer offset from the element origin (dragging)
    or from its bottom-right corner (resizing). ``edit_target`` is the text
    field under the inline editor.
    """
    state: InteractionState = InteractionState.IDLE
    grab_offset: QPointF = field(default_factory=QPointF)
    edit_target: Optional[TextField] = None


@dataclass
class EditOverlay:
    """Where and how the host should show the inline text editor."""
    rect: QRectF
    text: str
    font: FontSpec
    font_pixel_size: float
    color: str


class CanvasController:
    """Owns the layout and turns pointer input into element mutations.

    Args:
        settings: Application settings; defaults to the global settings.
        text_measurer: Callable returning the text extent in paper pixels
            for ``(text, font, dpi_x, dpi_y)``. The view passes one backed by
            real font metrics.
    """

    def __init__(self, settings: Optional[AppSettings] = None,
                 text_measurer: Optional[TextMeasurer] = None):
        s = settings if settings is not None else get_settings().settings
        self.settings = s

        self.paper = Paper(
            size=parse_paper_size(s.paper.size),
            margins=Margins(top=s.paper.margin_top, left=s.paper.margin_left,
                            right=s.paper.margin_right, bottom=s.paper.margin_bottom),
            dpi_x=s.paper.default_dpi,
            dpi_y=s.paper.default_dpi,
        )
        self.elements: List[Element] = []
        self.selected: Optional[Element] = None
        self.snap_lines: List[SnapLine] = []
        self._interaction = Interaction()

        self._scale_factor = s.canvas.zoom.default
        self.viewport_width = 0.0
        self.viewport_height = 0.0

        self.snapping_enabled = s.canvas.snapping.enabled
        self.show_snap_lines = s.canvas.snapping.show_lines
        self.scale_font_while_resizing = s.canvas.shapes.scale_font_while_resizing
        self.show_grid = s.canvas.rulers.show_grid

        self.text_measurer: TextMeasurer = text_measurer or estimate_text_size
        # Host hooks: repaint request and the "discard edits?" confirmation
        self.on_changed: Optional[Callable[[], None]] = None
        self.confirm_discard: Callable[[], bool] = lambda: True

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    @property
    def state(self) -> InteractionState:
        return self._interaction.state

    @property
    def edit_target(self) -> Optional[TextField]:
        return self._interaction.edit_target

    @property
    def scale_factor(self) -> float:
        return self._scale_factor

    @scale_factor.setter
    def scale_factor(self, value: float) -> None:
        zoom = self.settings.canvas.zoom
        self._scale_factor = max(zoom.minimum, min(float(value), zoom.maximum))
        self._notify()

    @property
    def paper_size(self) -> PaperSize:
        return self.paper.size

    @paper_size.setter
    def paper_size(self, value) -> None:
        # Elements keep their paper-pixel geometry; only the sheet changes.
        self.paper.size = parse_paper_size(value)
        log.debug("Paper size set to %s", self.paper.size.value)
        self._notify()

    @property
    def margins(self) -> Margins:
        return self.paper.margins

    @margins.setter
    def margins(self, value: Margins) -> None:
        self.paper.margins = Margins(
            top=max(0.0, value.top), left=max(0.0, value.left),
            right=max(0.0, value.right), bottom=max(0.0, value.bottom),
        )
        self._notify()

    def set_dpi(self, dpi_x: float, dpi_y: float) -> None:
        if dpi_x <= 0 or dpi_y <= 0:
            raise ValueError(f"DPI must be positive, got {dpi_x}x{dpi_y}")
        if (dpi_x, dpi_y) != (self.paper.dpi_x, self.paper.dpi_y):
            self.paper.dpi_x = dpi_x
            self.paper.dpi_y = dpi_y
            self._notify()

    def set_viewport_size(self, width: float, height: float) -> None:
        self.viewport_width = width
        self.viewport_height = height

    @property
    def left_gutter(self) -> float:
        """Control-space room left of the paper for the ruler and its labels."""
        return self.settings.canvas.rulers.size * 3

    def view_transform(self) -> ViewTransform:
        origin = paper_origin(
            self.viewport_width,
            self.paper.width_px,
            self._scale_factor,
            self.settings.canvas.paper_top_offset,
            self.left_gutter,
        )
        return ViewTransform(origin.x(), origin.y(), self._scale_factor)

    def to_paper(self, pos: QPointF) -> QPointF:
        return self.view_transform().control_to_paper(pos)

    # ------------------------------------------------------------------
    # Element management
    # ------------------------------------------------------------------

    def _append(self, element: Element) -> Element:
        self.elements.append(element)
        self.selected = element
        log.debug("Added %s (%d elements)", element.kind.value, len(self.elements))
        self._notify()
        return element

    def add_text_field(self, text: str, location: QPointF, size: Optional[QSizeF] = None,
                       font: Optional[FontSpec] = None, color: Optional[str] = None) -> TextField:
        """Append a text field; without a size it is sized to fit its text."""
        defaults = self.settings.defaults
        if font is None:
            font = FontSpec(family=defaults.font_family, size_pt=defaults.font_size)
        if size is None:
            measured = self.text_measurer(text, font, self.paper.dpi_x, self.paper.dpi_y)
            handle = self.settings.canvas.handles.size
            size = QSizeF(measured.width() + handle, measured.height() + handle)
        field_ = TextField(
            x=location.x(), y=location.y(), width=size.width(), height=size.height(),
            text=text, font=font, color=color or defaults.text_color,
        )
        return self._append(field_)

    def add_rectangle(self, location: QPointF, size: QSizeF, fill_color: str = TRANSPARENT,
                      border_color: Optional[str] = None, border_width: Optional[float] = None) -> Rectangle:
        defaults = self.settings.defaults
        rect = Rectangle(
            x=location.x(), y=location.y(), width=size.width(), height=size.height(),
            fill_color=fill_color,
            border_color=border_color or defaults.line_color,
            border_width=defaults.border_width if border_width is None else border_width,
        )
        return self._append(rect)

    def add_line(self, start: QPointF, end: QPointF, color: Optional[str] = None,
                 width: Optional[float] = None) -> Line:
        defaults = self.settings.defaults
        line = Line(
            x1=start.x(), y1=start.y(), x2=end.x(), y2=end.y(),
            color=color or defaults.line_color,
            line_width=defaults.line_width if width is None else width,
        )
        return self._append(line)

    def add_tabular_block(self, location: QPointF, size: QSizeF, route_name: str,
                          row_labels: Sequence[str], cells: Sequence[Sequence[str]]) -> TabularBlock:
        block = TabularBlock(
            x=location.x(), y=location.y(), width=size.width(), height=size.height(),
            route_name=route_name,
            row_labels=list(row_labels),
            cells=[list(column) for column in cells],
        )
        return self._append(block)

    def remove_element(self, element: Element) -> bool:
        for i, candidate in enumerate(self.elements):
            if candidate is element:
                del self.elements[i]
                break
        else:
            return False
        if self.selected is element:
            self.selected = None
        if self._interaction.edit_target is element or self.state is not InteractionState.IDLE:
            self._interaction = Interaction()
            self.snap_lines = []
        log.debug("Removed %s (%d elements)", element.kind.value, len(self.elements))
        self._notify()
        return True

    def replace_elements(self, elements: Sequence[Element]) -> None:
        """Swap in a whole new layout (used when a layout file is opened)."""
        self.elements = list(elements)
        self.selected = None
        self.snap_lines = []
        self._interaction = Interaction()
        self._notify()

    def duplicate_selected(self) -> Optional[Element]:
        """Clone the selection, offset it and append the copy on top."""
        if self.selected is None:
            return None
        copy = self.selected.clone()
        offset = self.settings.canvas.shapes.duplicate_offset
        bounds = copy.bounds()
        target = clamp_location(bounds.topLeft() + QPointF(offset, offset), bounds.size(),
                                self.paper.width_px, self.paper.height_px)
        copy.move(target.x() - bounds.left(), target.y() - bounds.top())
        return self._append(copy)

    def delete_selected(self) -> bool:
        if self.selected is None:
            return False
        return self.remove_element(self.selected)

    def _index_of(self, element: Element) -> int:
        for i, candidate in enumerate(self.elements):
            if candidate is element:
                return i
        return -1

    def bring_to_front(self, element: Optional[Element] = None) -> None:
        element = element if element is not None else self.selected
        i = self._index_of(element) if element is not None else -1
        if i < 0:
            return
        self.elements.append(self.elements.pop(i))
        self._notify()

    def send_to_back(self, element: Optional[Element] = None) -> None:
        element = element if element is not None else self.selected
        i = self._index_of(element) if element is not None else -1
        if i < 0:
            return
        self.elements.insert(0, self.elements.pop(i))
        self._notify()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def execute(self, command: Command) -> None:
        """Run a toolbar or context-menu command."""
        handlers: Dict[Command, Callable[[], object]] = {
            Command.DUPLICATE: self.duplicate_selected,
            Command.DELETE: self.delete_selected,
            Command.BRING_TO_FRONT: self.bring_to_front,
            Command.SEND_TO_BACK: self.send_to_back,
            Command.ZOOM_IN: self.zoom_in,
            Command.ZOOM_OUT: self.zoom_out,
            Command.TOGGLE_SNAPPING: self._toggle_snapping,
            Command.TOGGLE_SNAP_LINES: self._toggle_snap_lines,
            Command.TOGGLE_FONT_SCALING: self._toggle_font_scaling,
            Command.TOGGLE_GRID: self._toggle_grid,
        }
        log.debug("Command %s", command.value)
        handlers[command]()

    def zoom_in(self) -> None:
        self.scale_factor = self._scale_factor + self.settings.canvas.zoom.step

    def zoom_out(self) -> None:
        self.scale_factor = self._scale_factor - self.settings.canvas.zoom.step

    def _toggle_snapping(self) -> None:
        self.snapping_enabled = not self.snapping_enabled
        self._notify()

    def _toggle_snap_lines(self) -> None:
        self.show_snap_lines = not self.show_snap_lines
        self._notify()

    def _toggle_font_scaling(self) -> None:
        self.scale_font_while_resizing = not self.scale_font_while_resizing

    def _toggle_grid(self) -> None:
        self.show_grid = not self.show_grid
        self._notify()

    def context_commands(self, pos: QPointF) -> List[Tuple[Command, str]]:
        """Select the element under ``pos`` and list its context-menu commands."""
        hit = element_at(self.elements, self.to_paper(pos), self.settings.canvas.shapes.line_hit_tolerance)
        if hit is None:
            return []
        if hit is not self.selected:
            self.selected = hit
            self._notify()
        return list(CONTEXT_MENU_COMMANDS)

    # ------------------------------------------------------------------
    # Pointer input
    # ------------------------------------------------------------------

    def pointer_down(self, pos: QPointF, button: Qt.MouseButton = Qt.MouseButton.LeftButton) -> None:
        """Start a drag or resize, or change the selection.

        While the inline editor is open the view commits its text before
        forwarding the press; the edit session simply ends here.
        """
        if self.state is InteractionState.EDITING_TEXT:
            self._interaction = Interaction()

        paper_pos = self.to_paper(pos)
        left = button == Qt.MouseButton.LeftButton

        if left and is_over_resize_handle(self.selected, paper_pos,
                                          self.settings.canvas.handles.size, self._scale_factor):
            corner = self.selected.bounds().bottomRight()
            self._interaction = Interaction(InteractionState.RESIZING, grab_offset=paper_pos - corner)
            log.debug("Resizing %s", self.selected.kind.value)
            self._notify()
            return

        hit = element_at(self.elements, paper_pos, self.settings.canvas.shapes.line_hit_tolerance)
        self.selected = hit
        if hit is not None and left:
            self._interaction = Interaction(InteractionState.DRAGGING,
                                            grab_offset=paper_pos - hit.location)
            log.debug("Dragging %s", hit.kind.value)
        else:
            self._interaction = Interaction()
        self._notify()

    def pointer_move(self, pos: QPointF) -> None:
        state = self.state
        if state is InteractionState.DRAGGING:
            self._drag_to(self.to_paper(pos))
            self._notify()
        elif state is InteractionState.RESIZING:
            self._resize_to(self.to_paper(pos))
            self._notify()

    def pointer_up(self, pos: Optional[QPointF] = None) -> None:
        if self.state in (InteractionState.DRAGGING, InteractionState.RESIZING):
            self._interaction = Interaction()
        self.snap_lines = []
        self._notify()

    def _drag_to(self, paper_pos: QPointF) -> None:
        element = self.selected
        if element is None:
            return
        desired = paper_pos - self._interaction.grab_offset
        bounds = element.bounds()
        size = bounds.size()
        width, height = self.paper.width_px, self.paper.height_px

        candidate = bounds.topLeft() + (desired - element.location)
        candidate = clamp_location(candidate, size, width, height)
        if self.snapping_enabled:
            others = [e for e in self.elements if e is not element]
            result = apply_snapping(candidate, size, others, margin_guides(self.paper),
                                    self.settings.canvas.snapping.threshold)
            # snapping to an element outside the paper must not break containment
            candidate = clamp_location(result.location, size, width, height)
            self.snap_lines = result.snap_lines
        else:
            self.snap_lines = []

        element.move(candidate.x() - bounds.left(), candidate.y() - bounds.top())

    def _resize_to(self, paper_pos: QPointF) -> None:
        element = self.selected
        if element is None:
            return
        bounds = element.bounds()
        corner = paper_pos - self._interaction.grab_offset
        requested = QSizeF(corner.x() - bounds.left(), corner.y() - bounds.top())
        minimum = self.settings.canvas.shapes.min_size
        width, height = self.paper.width_px, self.paper.height_px

        if isinstance(element, Line):
            # Lines may be flat on one axis; only their overall extent is floored.
            new_size = clamp_size(bounds.topLeft(), requested, 0.0, width, height)
            if max(new_size.width(), new_size.height()) < minimum:
                if bounds.width() >= bounds.height():
                    new_size.setWidth(minimum)
                else:
                    new_size.setHeight(minimum)
        else:
            new_size = clamp_size(bounds.topLeft(), requested, minimum, width, height)

        if (self.scale_font_while_resizing and isinstance(element, TextField)
                and bounds.height() > 0):
            factor = new_size.height() / bounds.height()
            element.font = element.font.with_size(max(1.0, element.font.size_pt * factor))

        element.resize(new_size.width(), new_size.height())

    # ------------------------------------------------------------------
    # Inline text editing
    # ------------------------------------------------------------------

    def double_click(self, pos: QPointF) -> bool:
        """Open the inline editor on the text field under ``pos``."""
        paper_pos = self.to_paper(pos)
        hit = element_at(self.elements, paper_pos, self.settings.canvas.shapes.line_hit_tolerance)
        self.snap_lines = []
        if not isinstance(hit, TextField):
            self._interaction = Interaction()
            return False
        self.selected = hit
        self._interaction = Interaction(InteractionState.EDITING_TEXT, edit_target=hit)
        log.debug("Editing text field %r", hit.text)
        self._notify()
        return True

    def edit_overlay(self) -> Optional[EditOverlay]:
        target = self._interaction.edit_target
        if self.state is not InteractionState.EDITING_TEXT or target is None:
            return None
        transform = self.view_transform()
        return EditOverlay(
            rect=transform.paper_rect_to_control(target.bounds()),
            text=target.text,
            font=target.font,
            font_pixel_size=transform.length_to_control(points_to_pixels(target.font.size_pt, self.paper.dpi_y)),
            color=target.color,
        )

    def commit_text_edit(self, text: str) -> bool:
        target = self._interaction.edit_target
        if self.state is not InteractionState.EDITING_TEXT or target is None:
            return False
        target.text = text
        self._interaction = Interaction()
        self._notify()
        return True

    def cancel_text_edit(self) -> bool:
        """Discard the edit if the host confirms; returns whether editing ended."""
        if self.state is not InteractionState.EDITING_TEXT:
            return False
        if not self.confirm_discard():
            return False
        self._interaction = Interaction()
        self._notify()
        return True

    def handle_edit_key(self, key: Qt.Key, modifiers: Qt.KeyboardModifier, text: str) -> bool:
        """Enter (without modifiers) commits, Escape asks to discard.

        Returns True when the key was consumed.
        """
        if self.state is not InteractionState.EDITING_TEXT:
            return False
        if key in (Qt.Key.Key_Return, Qt.Key.Key_Enter):
            blocking = (Qt.KeyboardModifier.ControlModifier
                        | Qt.KeyboardModifier.ShiftModifier
                        | Qt.KeyboardModifier.AltModifier)
            if modifiers & blocking:
                return False
            return self.commit_text_edit(text)
        if key == Qt.Key.Key_Escape:
            self.cancel_text_edit()
            return True
        return False

    # ------------------------------------------------------------------
    # Hover feedback
    # ------------------------------------------------------------------

    def cursor_for(self, pos: QPointF) -> Qt.CursorShape:
        """Cursor shape hinting what a press at ``pos`` would do."""
        state = self.state
        if state is InteractionState.DRAGGING:
            return Qt.CursorShape.SizeAllCursor
        if state is InteractionState.RESIZING:
            return Qt.CursorShape.SizeFDiagCursor
        if state is InteractionState.EDITING_TEXT:
            return Qt.CursorShape.ArrowCursor

        paper_pos = self.to_paper(pos)
        if is_over_resize_handle(self.selected, paper_pos,
                                 self.settings.canvas.handles.size, self._scale_factor):
            return Qt.CursorShape.SizeFDiagCursor
        hit = element_at(self.elements, paper_pos, self.settings.canvas.shapes.line_hit_tolerance)
        if hit is None:
            return Qt.CursorShape.ArrowCursor
        if isinstance(hit, Line) or not contains(inner_body_rect(hit.bounds()), paper_pos):
            return Qt.CursorShape.SizeAllCursor
        return Qt.CursorShape.ArrowCursor

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export_to_pdf(self, file_path: str) -> None:
        """Write the layout to a single-page PDF.

        Raises:
            PdfExportError: If the file cannot be written.
        """
        from pdf_export import export_to_pdf

        export = self.settings.export
        export_to_pdf(
            file_path,
            self.paper,
            self.elements,
            draw_margin_guides=export.draw_margin_guides,
            margin_guide_color=export.margin_guide_color,
        )

    def _notify(self) -> None:
        if self.on_changed:
            self.on_changed()
