"""
canvas package

Interaction controller, renderer and QWidget host for the designer canvas.
"""

from canvas.controller import CanvasController, EditOverlay, InteractionState
from canvas.renderer import CanvasRenderer
from canvas.view import DesignerView

__all__ = [
    "CanvasController",
    "EditOverlay",
    "InteractionState",
    "CanvasRenderer",
    "DesignerView",
]
