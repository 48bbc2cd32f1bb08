#!/usr/bin/env python3
"""
Portalshot selection overlay.

This module contains the PyQt6 full-screen overlay used to draw a region
before capturing it. It provides:
- Drag selection with a live preview rectangle and dimension label
- An animated hint pill showing the confirm/cancel keys
- Hand-off of the committed region to the capture orchestrator

The overlay owns a SelectionSession and forwards all pointer and key input to
it. Once the session commits, the overlay hides itself (so it is not part of
the screenshot), starts the orchestrator and closes when the orchestrator
reports completion or failure.

This module is imported and used by the portalshot.cli module.
"""

import logging
import sys
from typing import Optional, Set

from PyQt6.QtCore import QRectF, Qt, QTimer
from PyQt6.QtGui import (
    QCursor,
    QFont,
    QGuiApplication,
    QKeyEvent,
    QKeySequence,
    QLinearGradient,
    QMouseEvent,
    QPainter,
    QPainterPath,
    QPaintEvent,
    QPen,
)
from PyQt6.QtWidgets import QApplication, QWidget

from portalshot.utils.animation import (
    AnimationConstants,
    ProgressDriver,
    affordance_shape,
)
from portalshot.utils.capture import CaptureBackend, create_backend, query_monitors
from portalshot.utils.config import Config
from portalshot.utils.errors import ScreenshotError
from portalshot.utils.export import ExportResult, ExportTarget
from portalshot.utils.notifications import notify_error, notify_screenshot_saved
from portalshot.utils.orchestrator import CaptureOrchestrator, CaptureRequest
from portalshot.utils.region import MonitorGeometry, Region
from portalshot.utils.session import SelectionSession, SessionState
from portalshot.utils.single_instance import acquire_overlay_lock
from portalshot.utils.theme import PortalshotColors

logger = logging.getLogger(__name__)


class UIConstants:
    """Configuration constants for the selection overlay."""

    # Time for the compositor to drop the hidden overlay from the screen
    # before the capture is requested (milliseconds)
    HIDE_SETTLE_MS = 150

    # UI layout (pixels)
    DIMENSIONS_DISPLAY_PADDING = 6
    DIMENSIONS_DISPLAY_MARGIN = 10
    SELECTION_BORDER_WIDTH = 2
    PILL_FONT_SIZE = 11.5

    CONTROL_HINTS = ("Space  Save", "Esc  Cancel")


KEY_ALIASES = {
    "space": Qt.Key.Key_Space,
    "escape": Qt.Key.Key_Escape,
    "esc": Qt.Key.Key_Escape,
    "return": Qt.Key.Key_Return,
    "enter": Qt.Key.Key_Enter,
}


def resolve_key(name: str) -> Optional[Qt.Key]:
    """Translate a configured key name ("space", "Escape", "q") to a Qt key."""
    key = KEY_ALIASES.get(name.strip().lower())
    if key is not None:
        return key

    sequence = QKeySequence(name)
    if sequence.count() == 0:
        logger.warning(f"Unknown key name '{name}' in shortcuts")
        return None
    return sequence[0].key()


class SelectionOverlay(QWidget):
    """Full-screen transparent overlay for region selection."""

    def __init__(
        self,
        config: Config,
        backend: CaptureBackend,
        export: ExportTarget,
        monitor: Optional[MonitorGeometry] = None,
    ):
        super().__init__()
        self.config = config
        self.exit_code: int = 0

        self.monitor = monitor or self._monitor_under_cursor()
        self.session = SelectionSession(self.monitor, on_commit=self._on_commit)

        self.orchestrator = CaptureOrchestrator(backend, export, parent=self)
        self.orchestrator.completed.connect(self._on_capture_completed)
        self.orchestrator.failed.connect(self._on_capture_failed)

        self.confirm_keys: Set[Qt.Key] = {Qt.Key.Key_Return, Qt.Key.Key_Enter}
        confirm = resolve_key(config.shortcuts.get("confirm", "space"))
        if confirm is not None:
            self.confirm_keys.add(confirm)
        self.cancel_key = resolve_key(config.shortcuts.get("cancel", "Escape")) or Qt.Key.Key_Escape

        self.progress_driver = ProgressDriver(config.animation_duration_ms)
        self.animation_timer: Optional[QTimer] = None

        self.setup_window()
        self.setup_geometry()
        self.setup_animation()

    def setup_window(self):
        """Configure the overlay window properties."""
        self.setWindowFlags(
            Qt.WindowType.FramelessWindowHint
            | Qt.WindowType.WindowStaysOnTopHint
            | Qt.WindowType.Tool
        )
        self.setAttribute(Qt.WidgetAttribute.WA_TranslucentBackground, True)

        # Accept focus to receive key events
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setMouseTracking(True)
        self.setCursor(Qt.CursorShape.CrossCursor)
        self.setWindowTitle("Portalshot")

    def _monitor_under_cursor(self) -> MonitorGeometry:
        monitors = query_monitors()
        if not monitors:
            raise ScreenshotError("no monitors reported by Qt")

        cursor = QCursor.pos()
        for monitor in monitors:
            geometry = monitor.geometry
            if (geometry.x <= cursor.x() < geometry.x + geometry.width
                    and geometry.y <= cursor.y() < geometry.y + geometry.height):
                return monitor

        return next((m for m in monitors if m.is_primary), monitors[0])

    def setup_geometry(self):
        """Place the overlay over the selected monitor."""
        for screen in QGuiApplication.screens():
            if screen.name() == self.monitor.name:
                self.setScreen(screen)
                break

        self.setGeometry(self.monitor.x, self.monitor.y, self.monitor.width, self.monitor.height)
        logger.info(f"Overlay prepared for monitor {self.monitor}")

    def setup_animation(self):
        """Set up the timer that drives the hint pill animation."""
        self.animation_timer = QTimer(self)
        self.animation_timer.setInterval(AnimationConstants.TICK_INTERVAL_MS)
        self.animation_timer.timeout.connect(self._on_animation_tick)

    def _on_animation_tick(self):
        self.progress_driver.tick()
        if self.progress_driver.finished:
            self.animation_timer.stop()
            logger.debug("Hint animation finished, controls visible")
        self.update()

    def showEvent(self, event):
        """Handle window show event."""
        super().showEvent(event)

        # Ensure window has focus to receive key events
        self.setFocus()
        self.activateWindow()
        self.raise_()

        if not self.animation_timer.isActive() and not self.progress_driver.finished:
            self.progress_driver.start()
            self.animation_timer.start()

    def keyPressEvent(self, event: QKeyEvent):
        """Route confirm/cancel keys to the selection session."""
        key = event.key()
        if key in self.confirm_keys:
            if not self.session.confirm():
                logger.debug("Nothing to confirm yet")
        elif key == self.cancel_key:
            self.cancel()
        else:
            super().keyPressEvent(event)

    def mousePressEvent(self, event: QMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton:
            position = event.position()
            if self.session.press(position.x(), position.y()):
                self.update()
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event: QMouseEvent):
        position = event.position()
        if self.session.move(position.x(), position.y()):
            self.update()
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event: QMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton:
            position = event.position()
            if self.session.release(position.x(), position.y()):
                self.update()
        super().mouseReleaseEvent(event)

    def cancel(self):
        if self.session.cancel():
            logger.info("Escape pressed - closing overlay without capturing")
            self.close()
        elif self.session.state is SessionState.COMMITTED:
            # The capture service may already hold a temporary file; let the
            # request finish so it gets cleaned up.
            logger.info("Capture already in flight - overlay closes when it finishes")

    def _on_commit(self, region: Region):
        """Session committed: get out of the way, then start the capture."""
        self.animation_timer.stop()
        self.hide()

        request = CaptureRequest.for_selection(region)
        QTimer.singleShot(UIConstants.HIDE_SETTLE_MS, lambda: self.orchestrator.start(request))

    def _on_capture_completed(self, result: ExportResult):
        if result.path:
            print(result.path)
        notify_screenshot_saved(result.path, result.size, result.copied)
        self.close()

    def _on_capture_failed(self, error: ScreenshotError):
        print(f"Screenshot failed: {error}", file=sys.stderr)
        notify_error("Screenshot Failed", str(error))
        self.exit_code = 1
        self.close()

    @property
    def capture_in_flight(self) -> bool:
        return self.session.state is SessionState.COMMITTED and not self.orchestrator.finished

    def _draw_dimmed_background(self, painter: QPainter, selection: Optional[QRectF]):
        path = QPainterPath()
        path.addRect(QRectF(self.rect()))
        if selection is not None:
            cutout = QPainterPath()
            cutout.addRect(selection)
            path = path.subtracted(cutout)
        painter.fillPath(path, PortalshotColors.DARK_OVERLAY_BLACK)

    def _draw_selection_border(self, painter: QPainter, selection: QRectF):
        pen = QPen(PortalshotColors.THEME_BLUE)
        pen.setWidth(UIConstants.SELECTION_BORDER_WIDTH)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(selection)

    def _draw_selection_dimensions(self, painter: QPainter, region: Region):
        text = f"{region.width} × {region.height}"
        metrics = painter.fontMetrics()
        padding = UIConstants.DIMENSIONS_DISPLAY_PADDING
        text_width = metrics.horizontalAdvance(text) + padding * 2
        text_height = metrics.height() + padding

        x = region.x
        y = region.y - text_height - UIConstants.DIMENSIONS_DISPLAY_MARGIN
        if y < 0:
            # No room above the selection
            y = region.y + region.height + UIConstants.DIMENSIONS_DISPLAY_MARGIN

        box = QRectF(x, y, text_width, text_height)
        painter.fillRect(box, PortalshotColors.SEMI_TRANSPARENT_BLACK)
        painter.setPen(PortalshotColors.WHITE_TEXT_READABLE)
        painter.drawText(box, Qt.AlignmentFlag.AlignCenter, text)

    def _draw_hint_pill(self, painter: QPainter):
        shape = affordance_shape(self.progress_driver.progress, self.width())
        rect = QRectF(shape.x, shape.y, shape.width, shape.height)

        shadow = QPainterPath()
        shadow.addRoundedRect(rect.translated(0, 1.5), shape.radius, shape.radius)
        painter.fillPath(shadow, PortalshotColors.PILL_SHADOW)

        pill = QPainterPath()
        pill.addRoundedRect(rect, shape.radius, shape.radius)
        gradient = QLinearGradient(0, rect.top(), 0, rect.bottom())
        gradient.setColorAt(0.0, PortalshotColors.PILL_GRADIENT_TOP)
        gradient.setColorAt(1.0, PortalshotColors.PILL_GRADIENT_BOTTOM)
        painter.fillPath(pill, gradient)

        outline = QPen(PortalshotColors.PILL_OUTLINE)
        outline.setWidthF(0.8)
        painter.setPen(outline)
        painter.drawPath(pill)

        if (self.progress_driver.controls_visible
                and self.progress_driver.progress >= AnimationConstants.CONTROLS_THRESHOLD):
            self._draw_controls(painter, rect)

    def _draw_controls(self, painter: QPainter, rect: QRectF):
        font = QFont("Sans")
        font.setPointSizeF(UIConstants.PILL_FONT_SIZE)
        painter.setFont(font)

        hints = UIConstants.CONTROL_HINTS
        section_width = rect.width() / len(hints)
        for i, hint in enumerate(hints):
            section = QRectF(rect.x() + i * section_width, rect.y(), section_width, rect.height())
            painter.setPen(PortalshotColors.WHITE_TEXT_READABLE)
            painter.drawText(section, Qt.AlignmentFlag.AlignCenter, hint)

            if i < len(hints) - 1:
                separator = QPen(PortalshotColors.PILL_SEPARATOR)
                separator.setWidthF(0.8)
                painter.setPen(separator)
                painter.drawLine(
                    int(section.right()), int(rect.top() + 12),
                    int(section.right()), int(rect.bottom() - 12),
                )

    def paintEvent(self, event: QPaintEvent):
        """Paint dimming, selection and the hint pill."""
        if self.session.state.is_terminal:
            return

        painter = QPainter(self)
        try:
            painter.setRenderHint(QPainter.RenderHint.Antialiasing)

            selection = self.session.current_selection
            selection_rect = None
            if selection is not None:
                selection_rect = QRectF(selection.x, selection.y, selection.width, selection.height)

            self._draw_dimmed_background(painter, selection_rect)
            if selection is not None:
                self._draw_selection_border(painter, selection_rect)
                self._draw_selection_dimensions(painter, selection)
            self._draw_hint_pill(painter)
        finally:
            painter.end()

    def closeEvent(self, event):
        """Handle window close event."""
        if self.capture_in_flight:
            event.ignore()
            return

        logger.info("Overlay window closing")
        if self.animation_timer:
            self.animation_timer.stop()

        app = QApplication.instance()
        if app:
            app.exit(self.exit_code)
        super().closeEvent(event)


class ScreenshotUI:
    """Main overlay controller."""

    def __init__(self, config: Config, export: Optional[ExportTarget] = None):
        self.config = config
        self.export = export or ExportTarget(config)
        self.app: Optional[QApplication] = None
        self.backend: Optional[CaptureBackend] = None
        self.overlay: Optional[SelectionOverlay] = None

    def run(self) -> int:
        """Launch the overlay and block until it closes."""
        self.app = QApplication.instance()
        if not self.app:
            self.app = QApplication(sys.argv)
        # The overlay hides itself while capturing; quit is explicit
        self.app.setQuitOnLastWindowClosed(False)

        try:
            self.backend = create_backend(self.config.backend, self.config.capture_timeout_seconds)
            self.overlay = SelectionOverlay(self.config, self.backend, self.export)
        except ScreenshotError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

        logger.info("Starting selection overlay...")
        self.overlay.showFullScreen()
        try:
            return self.app.exec()
        finally:
            self.cleanup()

    def cleanup(self):
        if self.backend:
            self.backend.cleanup()
            self.backend = None
        self.overlay = None
        logger.info("Selection overlay cleanup completed")


def main(config: Optional[Config] = None, export: Optional[ExportTarget] = None) -> int:
    """Main entry point for the selection overlay."""
    lock = acquire_overlay_lock()
    if lock is None:
        logger.info("Another selection overlay is already running, exiting")
        return 0

    try:
        ui = ScreenshotUI(config or Config.load(), export)
        return ui.run()
    finally:
        lock.release()
