"""Shared pytest fixtures.

The suite runs headless: Qt is pointed at the offscreen platform before any
QApplication is created.
"""
from __future__ import annotations

import os
import sys

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from PyQt6.QtWidgets import QApplication

from canvas.controller import CanvasController
from settings import AppSettings


@pytest.fixture(scope="session")
def qapp():
    """Provide a single QApplication for the entire test session."""
    app = QApplication.instance() or QApplication(sys.argv)
    yield app


@pytest.fixture()
def settings():
    """Default settings, independent of the user's settings file."""
    return AppSettings()


@pytest.fixture()
def controller(settings):
    """Controller at 100% zoom with the paper origin at (60, 40) in control space."""
    c = CanvasController(settings)
    c.scale_factor = 1.0
    c.set_viewport_size(0.0, 0.0)
    return c
