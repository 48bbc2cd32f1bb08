"""Shared color palette for the Portalshot overlay.

This module provides a centralized color theme used by the overlay painter.
"""

from PyQt6.QtGui import QColor


class PortalshotColors:
    """Centralized color palette for Portalshot UI components."""

    # Selection rectangle border and handles
    THEME_BLUE = QColor(76, 154, 255, 220)

    # Dimming outside the selection; alpha set by the overlay
    DARK_OVERLAY_BLACK = QColor(0, 0, 0, 110)

    # Text colors
    WHITE_TEXT_READABLE = QColor(235, 235, 235, 255)

    # Background for the dimension label
    SEMI_TRANSPARENT_BLACK = QColor(0, 0, 0, 120)

    # Hint pill
    PILL_SHADOW = QColor(0, 0, 0, 64)
    PILL_GRADIENT_TOP = QColor(28, 28, 33, 245)
    PILL_GRADIENT_BOTTOM = QColor(20, 20, 26, 245)
    PILL_OUTLINE = QColor(64, 64, 71, 128)
    PILL_SEPARATOR = QColor(71, 71, 82, 102)
