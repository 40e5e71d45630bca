"""
schemas/__init__.py

JSON Schema definition and validation for saved timetable layouts.
"""

from __future__ import annotations

import json
import os
from typing import Dict, List, Optional, Tuple

from jsonschema import Draft202012Validator

# Schema file paths
SCHEMA_DIR = os.path.dirname(os.path.abspath(__file__))
LAYOUT_SCHEMA_PATH = os.path.join(SCHEMA_DIR, "layout_schema.json")

LAYOUT_VERSION = "layout-1"

# Cached schema
_layout_schema: Optional[Dict] = None


def get_layout_schema() -> Dict:
    """Load and return the layout file schema."""
    global _layout_schema
    if _layout_schema is None:
        with open(LAYOUT_SCHEMA_PATH, "r", encoding="utf-8") as f:
            _layout_schema = json.load(f)
    return _layout_schema


def validate_layout(data: Dict) -> Tuple[bool, List[str]]:
    """
    Validate a layout document against the schema.

    Args:
        data: The parsed JSON document

    Returns:
        Tuple of (is_valid, list_of_error_messages)
    """
    validator = Draft202012Validator(get_layout_schema())
    errors = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.absolute_path])

    if not errors:
        return True, []

    error_messages = []
    for error in errors:
        path = " -> ".join(str(p) for p in error.absolute_path) if error.absolute_path else "root"
        error_messages.append(f"{path}: {error.message}")

    return False, error_messages
