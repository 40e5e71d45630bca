"""
project_io.py

Saving and loading timetable layouts as JSON files.

A layout file holds the paper settings and the element records in z-order:

    {"version": "layout-1",
     "paper": {"size": "A4", "margins": {"top": 10, ...}},
     "elements": [{"kind": "text", "geom": {...}, ...}, ...]}

Geometry is stored in paper pixels at the DPI the layout was edited with,
recorded under ``paper.dpi`` so a file opened on another screen is rescaled.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional

from canvas.controller import CanvasController
from models import Element, Line, Margins, element_from_record, element_to_record
from schemas import LAYOUT_VERSION, validate_layout

log = logging.getLogger(__name__)


class LayoutFileError(Exception):
    """Raised when a layout file cannot be read, parsed or validated."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = list(errors or [])

    def __str__(self) -> str:
        base = super().__str__()
        if not self.errors:
            return base
        return base + "\n" + "\n".join(self.errors)


def layout_to_dict(controller: CanvasController) -> Dict[str, Any]:
    paper = controller.paper
    m = paper.margins
    return {
        "version": LAYOUT_VERSION,
        "paper": {
            "size": paper.size.value,
            "margins": {"top": m.top, "left": m.left, "right": m.right, "bottom": m.bottom},
            "dpi": [paper.dpi_x, paper.dpi_y],
        },
        "elements": [element_to_record(el) for el in controller.elements],
    }


def _rescale(element: Element, sx: float, sy: float) -> None:
    """Map geometry saved at another DPI onto the current one."""
    if isinstance(element, Line):
        element.x1 *= sx
        element.x2 *= sx
        element.y1 *= sy
        element.y2 *= sy
    else:
        element.x *= sx
        element.width *= sx
        element.y *= sy
        element.height *= sy


def apply_layout_dict(data: Dict[str, Any], controller: CanvasController) -> None:
    """Validate ``data`` and replace the controller's paper and elements.

    Raises:
        LayoutFileError: If the document does not match the layout schema.
    """
    ok, errors = validate_layout(data)
    if not ok:
        raise LayoutFileError("Invalid layout file", errors)

    paper = data["paper"]
    margins = paper["margins"]
    elements = [element_from_record(rec) for rec in data["elements"]]

    dpi = paper.get("dpi")
    if isinstance(dpi, list) and len(dpi) == 2 and all(isinstance(v, (int, float)) and v > 0 for v in dpi):
        sx = controller.paper.dpi_x / dpi[0]
        sy = controller.paper.dpi_y / dpi[1]
        if (sx, sy) != (1.0, 1.0):
            for element in elements:
                _rescale(element, sx, sy)

    controller.paper_size = paper["size"]
    controller.margins = Margins(top=margins["top"], left=margins["left"],
                                 right=margins["right"], bottom=margins["bottom"])
    controller.replace_elements(elements)


def save_layout(path: str, controller: CanvasController) -> None:
    """Write the controller's layout to ``path``.

    Raises:
        LayoutFileError: If the file cannot be written.
    """
    data = layout_to_dict(controller)
    try:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
    except OSError as e:
        raise LayoutFileError(f"Could not write {path}: {e}") from e
    log.info("Saved layout with %d elements to %s", len(data["elements"]), path)


def load_layout(path: str, controller: CanvasController) -> None:
    """Read a layout file into the controller.

    Raises:
        LayoutFileError: If the file cannot be read, is not JSON or does not
            match the layout schema.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise LayoutFileError(f"Could not read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise LayoutFileError(f"{path} is not valid JSON: {e}") from e

    apply_layout_dict(data, controller)
    log.info("Loaded layout with %d elements from %s", len(controller.elements), path)
