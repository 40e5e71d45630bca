"""
settings.py

Persistent settings management for the Timetable Designer.

Handles cross-platform settings storage using TOML format with platformdirs
for proper user config directory detection.

Settings file location:
    - Windows: %APPDATA%/timetable-designer/settings.toml
    - macOS: ~/Library/Application Support/timetable-designer/settings.toml
    - Linux: ~/.config/timetable-designer/settings.toml

Default values are documented in comments throughout this file.
If settings.toml is corrupted, these defaults will be used.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import platformdirs

# TOML reading - use tomllib for Python 3.11+, tomli for earlier versions
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w

APP_NAME = "timetable-designer"

log = logging.getLogger(__name__)

# Global settings manager instance (singleton)
_settings_manager: Optional["SettingsManager"] = None


def get_settings() -> "SettingsManager":
    """Get the global settings manager instance.

    Returns:
        The singleton SettingsManager instance.
    """
    global _settings_manager
    if _settings_manager is None:
        _settings_manager = SettingsManager()
    return _settings_manager


# =============================================================================
# Canvas Settings
# =============================================================================

@dataclass
class CanvasHandleSettings:
    """Resize handle settings.

    Defaults:
        size: 8.0
        color: "#0000FF"
    """
    size: float = 8.0          # Default: 8.0 screen pixels (constant at any zoom)
    color: str = "#0000FF"     # Default: blue


@dataclass
class CanvasSnapSettings:
    """Snapping settings.

    Defaults:
        enabled: True
        show_lines: True
        threshold: 5.0
        line_color: "#FF0000"
    """
    enabled: bool = True           # Default: True
    show_lines: bool = True        # Default: True
    threshold: float = 5.0         # Default: 5.0 paper pixels
    line_color: str = "#FF0000"    # Default: red


@dataclass
class CanvasShapeSettings:
    """Element geometry settings.

    Defaults:
        min_size: 10.0
        line_hit_tolerance: 5.0
        duplicate_offset: 20.0
        scale_font_while_resizing: False
    """
    min_size: float = 10.0                   # Default: 10.0 paper pixels
    line_hit_tolerance: float = 5.0          # Default: 5.0 paper pixels
    duplicate_offset: float = 20.0           # Default: 20.0 paper pixels
    scale_font_while_resizing: bool = False  # Default: False


@dataclass
class CanvasRulerSettings:
    """Ruler and grid settings.

    Defaults:
        size: 20
        minor_tick_mm: 10
        major_tick_mm: 50
        tick_length: 5
        grid_mm: 10.0
        show_grid: False
    """
    size: int = 20              # Default: 20 screen pixels
    minor_tick_mm: int = 10     # Default: every 10 mm
    major_tick_mm: int = 50     # Default: labelled every 50 mm
    tick_length: int = 5        # Default: 5 screen pixels (major ticks are doubled)
    grid_mm: float = 10.0       # Default: 10 mm grid cells
    show_grid: bool = False     # Default: False


@dataclass
class CanvasSelectionSettings:
    """Selection appearance settings.

    Defaults:
        outline_color: "#0078D7"
        fill_alpha: 50
    """
    outline_color: str = "#0078D7"  # Default: blue
    fill_alpha: int = 50            # Default: 50 (0-255)


@dataclass
class CanvasZoomSettings:
    """Zoom behavior settings.

    Defaults:
        default: 0.65
        step: 0.1
        minimum: 0.1
        maximum: 5.0
    """
    default: float = 0.65   # Default: 0.65
    step: float = 0.1       # Default: 0.1 per zoom in/out
    minimum: float = 0.1    # Default: 0.1
    maximum: float = 5.0    # Default: 5.0


@dataclass
class CanvasSettings:
    """All canvas-related settings."""
    handles: CanvasHandleSettings = field(default_factory=CanvasHandleSettings)
    snapping: CanvasSnapSettings = field(default_factory=CanvasSnapSettings)
    shapes: CanvasShapeSettings = field(default_factory=CanvasShapeSettings)
    rulers: CanvasRulerSettings = field(default_factory=CanvasRulerSettings)
    selection: CanvasSelectionSettings = field(default_factory=CanvasSelectionSettings)
    zoom: CanvasZoomSettings = field(default_factory=CanvasZoomSettings)
    paper_top_offset: int = 40   # Default: 40 screen pixels above the paper (ruler space)


# =============================================================================
# Paper Settings
# =============================================================================

@dataclass
class PaperSettings:
    """Paper defaults.

    Defaults:
        size: "A4"
        margin_top / margin_left / margin_right / margin_bottom: 10.0
        default_dpi: 96.0
    """
    size: str = "A4"              # Default: "A4" (A4, A5, A4_LANDSCAPE, A5_LANDSCAPE)
    margin_top: float = 10.0      # Default: 10 mm
    margin_left: float = 10.0     # Default: 10 mm
    margin_right: float = 10.0    # Default: 10 mm
    margin_bottom: float = 10.0   # Default: 10 mm
    default_dpi: float = 96.0     # Default: 96 DPI until the widget reports its own


# =============================================================================
# Export Settings
# =============================================================================

@dataclass
class ExportSettings:
    """PDF export settings.

    Defaults:
        draw_margin_guides: True
        margin_guide_color: "#D3D3D3"
        default_file_name: "Timetable.pdf"
        open_after_export: True
    """
    draw_margin_guides: bool = True          # Default: True
    margin_guide_color: str = "#D3D3D3"      # Default: light gray
    default_file_name: str = "Timetable.pdf"  # Default: "Timetable.pdf"
    open_after_export: bool = True           # Default: ask to open the file afterwards


# =============================================================================
# Default Element Settings
# =============================================================================

@dataclass
class DefaultElementSettings:
    """Defaults used when the host adds new elements.

    Defaults:
        font_family: "Arial"
        font_size: 12.0
        text_color: "#000000FF"
        line_color: "#000000FF"
        line_width: 1.0
        border_width: 1.0
    """
    font_family: str = "Arial"        # Default: "Arial"
    font_size: float = 12.0           # Default: 12 pt
    text_color: str = "#000000FF"     # Default: opaque black
    line_color: str = "#000000FF"     # Default: opaque black
    line_width: float = 1.0           # Default: 1.0
    border_width: float = 1.0         # Default: 1.0


# =============================================================================
# Main App Settings
# =============================================================================

@dataclass
class AppSettings:
    """Application settings with default values.

    Attributes:
        workspace_dir: Default directory for saving/loading layouts.
        canvas: Canvas-related settings.
        paper: Paper defaults.
        export: PDF export settings.
        defaults: Defaults for newly added elements.
    """
    # Workspace directory for layout save/load (empty = ~/Documents/TimetableDesigner)
    workspace_dir: str = ""

    # Nested settings categories
    canvas: CanvasSettings = field(default_factory=CanvasSettings)
    paper: PaperSettings = field(default_factory=PaperSettings)
    export: ExportSettings = field(default_factory=ExportSettings)
    defaults: DefaultElementSettings = field(default_factory=DefaultElementSettings)


def _apply_section(target: Any, data: Dict[str, Any]) -> None:
    """Copy known keys from a TOML table onto a settings dataclass.

    Nested dataclasses recurse into sub-tables; unknown keys are ignored and
    values whose type does not match the default are skipped.
    """
    for f in fields(target):
        if f.name not in data:
            continue
        current = getattr(target, f.name)
        value = data[f.name]
        if is_dataclass(current):
            if isinstance(value, dict):
                _apply_section(current, value)
            continue
        if isinstance(current, bool):
            if isinstance(value, bool):
                setattr(target, f.name, value)
        elif isinstance(current, float):
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                setattr(target, f.name, float(value))
        elif isinstance(current, int):
            if isinstance(value, int) and not isinstance(value, bool):
                setattr(target, f.name, value)
        elif isinstance(current, str):
            if isinstance(value, str):
                setattr(target, f.name, value)


def _section_dict(source: Any) -> Dict[str, Any]:
    """Convert a settings dataclass into a TOML-compatible dict."""
    out: Dict[str, Any] = {}
    for f in fields(source):
        value = getattr(source, f.name)
        out[f.name] = _section_dict(value) if is_dataclass(value) else value
    return out


# =============================================================================
# Settings Manager
# =============================================================================

class SettingsManager:
    """Manages loading, saving, and accessing application settings.

    Settings are stored in a TOML file at the platform-appropriate location.
    If the settings file doesn't exist, defaults are used and the file is
    created on first save.

    Args:
        app_name: Application name used for the config directory.
        config_dir: Explicit directory overriding the platform location.
    """

    def __init__(self, app_name: str = APP_NAME, config_dir: Optional[Path] = None):
        if config_dir is None:
            config_dir = Path(platformdirs.user_config_dir(app_name))
        self.settings_dir = Path(config_dir)
        self.settings_file = self.settings_dir / "settings.toml"
        self.settings = self.load()
        self._needs_save = not self.settings_file.exists()  # Save if file didn't exist

    def ensure_file_complete(self) -> None:
        """Ensure settings file exists with all sections. Call once at startup."""
        if self._needs_save or not self.settings_file.exists():
            self.save()
            self._needs_save = False

    def load(self) -> AppSettings:
        """Load settings from the TOML file.

        Returns:
            AppSettings instance with values from file or defaults if file
            doesn't exist or is invalid.
        """
        if not self.settings_file.exists():
            return AppSettings()

        try:
            with open(self.settings_file, "rb") as f:
                data = tomllib.load(f)

            return self._parse_toml(data)
        except (OSError, tomllib.TOMLDecodeError) as e:
            # If file is corrupted or invalid, return defaults
            log.warning("Ignoring unreadable settings file %s: %s", self.settings_file, e)
            return AppSettings()

    def _parse_toml(self, data: Dict[str, Any]) -> AppSettings:
        """Parse TOML data into AppSettings.

        Args:
            data: Parsed TOML dictionary.

        Returns:
            AppSettings instance populated from TOML data.
        """
        settings = AppSettings()

        general = data.get("general", {})
        if isinstance(general, dict):
            workspace = general.get("workspace_dir", settings.workspace_dir)
            if isinstance(workspace, str):
                settings.workspace_dir = workspace

        for section in ("canvas", "paper", "export", "defaults"):
            table = data.get(section, {})
            if isinstance(table, dict):
                _apply_section(getattr(settings, section), table)

        return settings

    def save(self) -> None:
        """Save current settings to the TOML file.

        Creates the settings directory if it doesn't exist.
        """
        self.settings_dir.mkdir(parents=True, exist_ok=True)

        data = self._to_toml_dict()

        with open(self.settings_file, "wb") as f:
            tomli_w.dump(data, f)
        log.debug("Settings saved to %s", self.settings_file)

    def _to_toml_dict(self) -> Dict[str, Any]:
        """Convert settings to a TOML-compatible dictionary structure.

        Returns:
            Dictionary organized by TOML sections.
        """
        s = self.settings
        return {
            "general": {
                "workspace_dir": s.workspace_dir,
            },
            "canvas": _section_dict(s.canvas),
            "paper": _section_dict(s.paper),
            "export": _section_dict(s.export),
            "defaults": _section_dict(s.defaults),
        }

    def to_toml(self) -> str:
        """Convert current settings to a TOML-formatted string.

        Returns:
            TOML representation of the current settings.
        """
        return tomli_w.dumps(self._to_toml_dict())

    def get_workspace_dir(self) -> Path:
        """Get the resolved workspace directory path.

        Returns:
            Path to workspace directory. Falls back to
            ~/Documents/TimetableDesigner if workspace_dir setting is empty.
        """
        if self.settings.workspace_dir:
            return Path(self.settings.workspace_dir)
        return Path.home() / "Documents" / "TimetableDesigner"

    def get_settings_path(self) -> Path:
        """Get the path to the settings file.

        Returns:
            Path object pointing to the settings file location.
        """
        return self.settings_file
