"""
Desktop notifications for Portalshot.

Notifications go through notify-send. They are feedback only: every failure
is logged and swallowed so a missing notification daemon never fails a
capture.
"""

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class NotificationTimeouts:
    """Timeout constants for notifications (milliseconds)."""

    NOTIFICATION_DISPLAY_MS = 5000
    ERROR_NOTIFICATION_MS = 3000


class NotificationSystem:
    """Handles desktop notifications for Portalshot."""

    APP_NAME = "Portalshot"

    def __init__(self):
        self.notification_available = shutil.which("notify-send") is not None
        if not self.notification_available:
            logger.warning("notify-send not found - desktop notifications disabled")

    def _format_file_size(self, size_bytes: int) -> str:
        """
        Format file size in human-readable format.

        Args:
            size_bytes: File size in bytes

        Returns:
            Formatted string (e.g., "2.4 MB", "156 KB")
        """
        if size_bytes < 1024:
            return f"{size_bytes} B"
        elif size_bytes < 1024 * 1024:
            return f"{size_bytes / 1024:.1f} KB"
        else:
            return f"{size_bytes / (1024 * 1024):.1f} MB"

    def _send(self, summary: str, body: str, icon: str, urgency: str, timeout_ms: int) -> None:
        if not self.notification_available:
            return

        try:
            subprocess.Popen(
                [
                    "notify-send",
                    "-i", icon,
                    "-u", urgency,
                    "-t", str(timeout_ms),
                    "-a", self.APP_NAME,
                    summary,
                    body,
                ],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            logger.error(f"Failed to show notification: {e}")

    def notify_screenshot_saved(self, filepath: Optional[str], file_size: int, copied: bool) -> None:
        if filepath:
            body = f"{self._format_file_size(file_size)}\n{Path(filepath).name}"
            if copied:
                body += "\nCopied to clipboard"
        else:
            body = "Copied to clipboard"

        self._send(
            f"{self.APP_NAME} - Screenshot Saved!",
            body,
            "camera-photo",
            "normal",
            NotificationTimeouts.NOTIFICATION_DISPLAY_MS,
        )

    def notify_error(self, title: str, message: str) -> None:
        self._send(
            f"{self.APP_NAME} - {title}",
            message,
            "dialog-error",
            "critical",
            NotificationTimeouts.ERROR_NOTIFICATION_MS,
        )


# Global notification system instance
_notification_system: Optional[NotificationSystem] = None


def get_notification_system() -> NotificationSystem:
    """Get the global notification system instance."""
    global _notification_system
    if _notification_system is None:
        _notification_system = NotificationSystem()
    return _notification_system


def notify_screenshot_saved(filepath: Optional[str], file_size: int, copied: bool = False) -> None:
    """Show notification for saved screenshot."""
    get_notification_system().notify_screenshot_saved(filepath, file_size, copied)


def notify_error(title: str, message: str) -> None:
    """Show error notification."""
    get_notification_system().notify_error(title, message)
