"""
utils.py

Utility functions for the Timetable Designer.
"""

from __future__ import annotations

from typing import Optional, Tuple

from PyQt6.QtGui import QColor, QFont

from models import FontSpec


def qcolor_to_hex(c: QColor, include_alpha: bool = True) -> str:
    """
    Convert a QColor to a hex string.

    Args:
        c: The QColor to convert
        include_alpha: If True, include alpha channel as 4th byte

    Returns:
        Hex string like "#RRGGBB" or "#RRGGBBAA"
    """
    if include_alpha:
        return "#{:02X}{:02X}{:02X}{:02X}".format(c.red(), c.green(), c.blue(), c.alpha())
    return "#{:02X}{:02X}{:02X}".format(c.red(), c.green(), c.blue())


def hex_to_rgba(s: str, fallback: Tuple[int, int, int, int] = (0, 0, 0, 255)) -> Tuple[int, int, int, int]:
    """
    Parse a hex string to an (r, g, b, a) tuple of 0-255 ints.

    Args:
        s: Hex string like "#RRGGBB" or "#RRGGBBAA"
        fallback: Value returned if parsing fails

    Returns:
        Parsed channels or fallback
    """
    if not s:
        return fallback
    s = s.strip().lstrip("#")
    if len(s) not in (6, 8):
        return fallback
    try:
        channels = [int(s[i:i + 2], 16) for i in range(0, len(s), 2)]
    except ValueError:
        return fallback
    if len(channels) == 3:
        channels.append(255)
    return channels[0], channels[1], channels[2], channels[3]


def hex_to_qcolor(s: str, fallback: Optional[QColor] = None) -> QColor:
    """
    Parse a hex string to a QColor.

    Args:
        s: Hex string like "#RRGGBB" or "#RRGGBBAA"
        fallback: Color to return if parsing fails (default opaque black)

    Returns:
        Parsed QColor or fallback
    """
    fallback = QColor(fallback) if fallback is not None else QColor(0, 0, 0)
    rgba = hex_to_rgba(s, (-1, -1, -1, -1))
    if rgba[0] < 0:
        return fallback
    return QColor(*rgba)


def make_qfont(font: FontSpec, pixel_size: float) -> QFont:
    """Build a QFont for ``font`` drawn at ``pixel_size`` control pixels."""
    qfont = QFont(font.family)
    qfont.setPixelSize(max(1, int(round(pixel_size))))
    qfont.setBold(font.bold)
    qfont.setItalic(font.italic)
    qfont.setUnderline(font.underline)
    return qfont


def font_from_qfont(qfont: QFont) -> FontSpec:
    """Inverse of ``make_qfont`` for fonts picked in a QFontDialog (point sized)."""
    size = qfont.pointSizeF()
    return FontSpec(
        family=qfont.family(),
        size_pt=size if size > 0 else 12.0,
        bold=qfont.bold(),
        italic=qfont.italic(),
        underline=qfont.underline(),
    )
