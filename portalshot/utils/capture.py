"""
Screen capture backends for Portalshot.

A backend performs one operation: capture the whole desktop, or let the
capture service show its own picker (interactive mode), and hand back a PIL
image. The call returns a PendingCapture immediately and resolves later on the
Qt event loop, so the overlay stays responsive while a permission prompt or
compositor round-trip is in progress.

Backends:
- PortalBackend: org.freedesktop.portal.Screenshot over the session bus
  (Wayland, sandboxed or permission-gated desktops)
- X11Backend: direct root window grab through python-xlib
"""

import logging
import os
import uuid
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

from PIL import Image
from PyQt6.QtCore import QObject, QTimer, QUrl, pyqtSignal, pyqtSlot
from PyQt6.QtDBus import QDBusConnection, QDBusMessage
from PyQt6.QtGui import QGuiApplication
from Xlib import X, display
from Xlib.ext import randr

from .errors import (
    ArtifactReadFailed,
    CaptureDenied,
    CaptureFailed,
    CaptureUnavailable,
    ScreenshotError,
)
from .region import MonitorGeometry

logger = logging.getLogger(__name__)


class PortalConstants:
    """D-Bus names of the desktop portal screenshot API."""

    SERVICE = "org.freedesktop.portal.Desktop"
    PATH = "/org/freedesktop/portal/desktop"
    SCREENSHOT_INTERFACE = "org.freedesktop.portal.Screenshot"
    REQUEST_INTERFACE = "org.freedesktop.portal.Request"
    REQUEST_PATH_PREFIX = "/org/freedesktop/portal/desktop/request"

    # Request.Response codes
    RESPONSE_SUCCESS = 0
    RESPONSE_CANCELLED = 1

    DEFAULT_TIMEOUT_SECONDS = 60


class PendingCapture(QObject):
    """An in-flight capture that resolves exactly once.

    Late subscribers still receive the outcome, so a backend may resolve
    before the caller has connected.
    """

    succeeded = pyqtSignal(object)  # PIL.Image.Image
    failed = pyqtSignal(object)  # ScreenshotError

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.done: bool = False
        self._image: Optional[Image.Image] = None
        self._error: Optional[ScreenshotError] = None

    def resolve(self, image: Image.Image) -> None:
        if self.done:
            logger.debug("Ignoring second resolution of capture request")
            return
        self.done = True
        self._image = image
        self.succeeded.emit(image)

    def reject(self, error: ScreenshotError) -> None:
        if self.done:
            logger.debug(f"Ignoring late capture failure: {error}")
            return
        self.done = True
        self._error = error
        self.failed.emit(error)

    def subscribe(
        self,
        on_success: Callable[[Image.Image], None],
        on_failure: Callable[[ScreenshotError], None],
    ) -> None:
        if self.done:
            if self._error is not None:
                on_failure(self._error)
            else:
                on_success(self._image)
            return
        self.succeeded.connect(on_success)
        self.failed.connect(on_failure)


class CaptureBackend(ABC):
    """Capability: produce a full-desktop or service-picked raster."""

    name = "abstract"

    @abstractmethod
    def capture(self, interactive: bool) -> PendingCapture:
        """Start a capture. Dimensions of the result are chosen by the service."""

    def cleanup(self) -> None:
        """Release backend resources."""


def read_artifact(path: str) -> Image.Image:
    """Read and decode a screenshot file handed over by a capture service.

    The file is deleted afterwards whether or not decoding succeeded.
    """
    try:
        with Image.open(path) as artifact:
            artifact.load()
            image = artifact.convert("RGBA")
        logger.debug(f"Read capture artifact {path}: {image.width}x{image.height}")
        return image
    except OSError as e:
        # Covers missing files, permission errors and PIL.UnidentifiedImageError
        raise ArtifactReadFailed(f"{path}: {e}") from e
    finally:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove capture artifact {path}: {e}")


class PortalRequest(PendingCapture):
    """One org.freedesktop.portal.Screenshot round-trip."""

    def __init__(self, bus: QDBusConnection, interactive: bool, timeout_seconds: int):
        super().__init__()
        self.bus = bus
        self.interactive = interactive
        self.token = f"portalshot_{uuid.uuid4().hex}"

        # The portal derives the request object path from our unique bus name
        # and the handle token, so we can subscribe before calling.
        sender = bus.baseService().lstrip(":").replace(".", "_")
        self.handle = f"{PortalConstants.REQUEST_PATH_PREFIX}/{sender}/{self.token}"
        self._subscribed = False

        self.timeout_timer = QTimer(self)
        self.timeout_timer.setSingleShot(True)
        self.timeout_timer.setInterval(max(timeout_seconds, 1) * 1000)
        self.timeout_timer.timeout.connect(self._on_timeout)

    def send(self) -> None:
        self._subscribed = self.bus.connect(
            PortalConstants.SERVICE,
            self.handle,
            PortalConstants.REQUEST_INTERFACE,
            "Response",
            self._on_response,
        )
        if not self._subscribed:
            self.reject(CaptureFailed("could not subscribe to portal response signal"))
            return

        message = QDBusMessage.createMethodCall(
            PortalConstants.SERVICE,
            PortalConstants.PATH,
            PortalConstants.SCREENSHOT_INTERFACE,
            "Screenshot",
        )
        message.setArguments(["", {"handle_token": self.token, "interactive": self.interactive}])

        logger.info(f"Requesting portal screenshot (interactive={self.interactive})")
        reply = self.bus.call(message)
        if reply.type() == QDBusMessage.MessageType.ErrorMessage:
            self._finish()
            if reply.errorName() == "org.freedesktop.DBus.Error.ServiceUnknown":
                self.reject(CaptureUnavailable(reply.errorMessage()))
            else:
                self.reject(CaptureFailed(f"{reply.errorName()}: {reply.errorMessage()}"))
            return

        self.timeout_timer.start()

    @pyqtSlot(QDBusMessage)
    def _on_response(self, message: QDBusMessage) -> None:
        self._finish()
        arguments = message.arguments()
        if len(arguments) < 2:
            self.reject(CaptureFailed("malformed portal response"))
            return

        response, results = arguments[0], arguments[1]
        logger.debug(f"Portal response {response}: {results}")

        if response == PortalConstants.RESPONSE_CANCELLED:
            self.reject(CaptureDenied("screenshot request was cancelled or denied"))
            return
        if response != PortalConstants.RESPONSE_SUCCESS:
            self.reject(CaptureFailed(f"portal returned response code {response}"))
            return

        uri = results.get("uri", "") if isinstance(results, dict) else ""
        path = QUrl(uri).toLocalFile()
        if not path:
            self.reject(ArtifactReadFailed(f"invalid file URI '{uri}'"))
            return

        try:
            image = read_artifact(path)
        except ArtifactReadFailed as e:
            self.reject(e)
            return
        self.resolve(image)

    def _on_timeout(self) -> None:
        logger.warning(f"Portal request {self.token} timed out")
        self._finish()
        self.reject(CaptureFailed("portal did not answer in time"))

    def _finish(self) -> None:
        self.timeout_timer.stop()
        if self._subscribed:
            self.bus.disconnect(
                PortalConstants.SERVICE,
                self.handle,
                PortalConstants.REQUEST_INTERFACE,
                "Response",
                self._on_response,
            )
            self._subscribed = False


class PortalBackend(CaptureBackend):
    """Capture through xdg-desktop-portal (works on Wayland compositors)."""

    name = "portal"

    def __init__(self, timeout_seconds: int = PortalConstants.DEFAULT_TIMEOUT_SECONDS):
        self.timeout_seconds = timeout_seconds
        self.bus = QDBusConnection.sessionBus()
        if not self.bus.isConnected():
            raise CaptureUnavailable("D-Bus session bus is not reachable")

        # Keep requests referenced until they resolve
        self._requests: List[PortalRequest] = []

    def capture(self, interactive: bool) -> PendingCapture:
        request = PortalRequest(self.bus, interactive, self.timeout_seconds)
        self._requests.append(request)
        request.succeeded.connect(lambda _image: self._forget(request))
        request.failed.connect(lambda _error: self._forget(request))
        request.send()
        return request

    def _forget(self, request: PortalRequest) -> None:
        if request in self._requests:
            self._requests.remove(request)


class X11Backend(CaptureBackend):
    """Grab the X11 root window directly. No permission prompt, no picker."""

    name = "x11"

    def __init__(self):
        try:
            self.display = display.Display()
        except Exception as e:
            # Xlib raises DisplayNameError, DisplayConnectionError or plain
            # socket errors depending on how $DISPLAY is broken.
            raise CaptureUnavailable(f"cannot open X display: {e}") from e
        self.screen = self.display.screen()
        self.root = self.screen.root

    def get_screen_geometry(self) -> Tuple[int, int, int, int]:
        """
        Get the full screen geometry including all monitors.

        Returns:
            Tuple of (x, y, width, height) covering all screens
        """
        try:
            screen_resources = randr.get_screen_resources(self.root)

            min_x = min_y = 0
            max_x = max_y = 0

            for output in screen_resources.outputs:
                output_info = randr.get_output_info(
                    self.root, output, screen_resources.config_timestamp
                )
                if output_info.connection == randr.Connected and output_info.crtc:
                    crtc_info = randr.get_crtc_info(
                        self.root, output_info.crtc, screen_resources.config_timestamp
                    )
                    min_x = min(min_x, crtc_info.x)
                    min_y = min(min_y, crtc_info.y)
                    max_x = max(max_x, crtc_info.x + crtc_info.width)
                    max_y = max(max_y, crtc_info.y + crtc_info.height)

            if max_x > 0 and max_y > 0:
                return (min_x, min_y, max_x - min_x, max_y - min_y)

        except Exception as e:
            logger.warning(f"RandR extension failed, falling back to root window geometry: {e}")

        geometry = self.root.get_geometry()
        return (0, 0, geometry.width, geometry.height)

    def grab(self) -> Image.Image:
        x, y, width, height = self.get_screen_geometry()
        try:
            raw_image = self.root.get_image(x, y, width, height, X.ZPixmap, 0xFFFFFFFF)
        except Exception as e:
            raise CaptureFailed(f"X11 GetImage failed: {e}") from e

        if raw_image.depth == 24:
            image = Image.frombytes("RGB", (width, height), raw_image.data, "raw", "BGRX")
        elif raw_image.depth == 32:
            image = Image.frombytes("RGBA", (width, height), raw_image.data, "raw", "BGRA")
        else:
            raise ArtifactReadFailed(f"unsupported color depth {raw_image.depth}")

        logger.debug(f"Grabbed X11 root window: {width}x{height} at ({x}, {y})")
        return image.convert("RGBA")

    def capture(self, interactive: bool) -> PendingCapture:
        pending = PendingCapture()

        def run():
            if interactive:
                pending.reject(
                    CaptureUnavailable("interactive picking requires the desktop portal")
                )
                return
            try:
                pending.resolve(self.grab())
            except ScreenshotError as e:
                pending.reject(e)

        # Resolve on the next loop turn, matching the portal's timing
        QTimer.singleShot(0, run)
        return pending

    def cleanup(self) -> None:
        try:
            self.display.close()
        except Exception as e:
            logger.warning(f"Error closing X display: {e}")


def create_backend(
    preference: str = "auto",
    timeout_seconds: int = PortalConstants.DEFAULT_TIMEOUT_SECONDS,
) -> CaptureBackend:
    """Pick a capture backend for the current session type."""
    preference = (preference or "auto").lower()

    if preference == "portal":
        return PortalBackend(timeout_seconds)
    if preference == "x11":
        return X11Backend()
    if preference != "auto":
        raise CaptureUnavailable(f"unknown backend '{preference}'")

    if os.environ.get("WAYLAND_DISPLAY"):
        logger.info("Wayland session detected - using desktop portal backend")
        return PortalBackend(timeout_seconds)
    if os.environ.get("DISPLAY"):
        logger.info("X11 session detected - using X11 backend")
        return X11Backend()
    raise CaptureUnavailable("neither WAYLAND_DISPLAY nor DISPLAY is set")


def query_monitors() -> List[MonitorGeometry]:
    """Snapshot the monitor layout from Qt. Requires a QGuiApplication."""
    app = QGuiApplication.instance()
    if app is None:
        raise CaptureUnavailable("monitor geometry requires a running QGuiApplication")

    primary = app.primaryScreen()
    monitors = []
    for screen in app.screens():
        geometry = screen.geometry()
        monitors.append(
            MonitorGeometry(
                name=screen.name(),
                x=geometry.x(),
                y=geometry.y(),
                width=geometry.width(),
                height=geometry.height(),
                scale=screen.devicePixelRatio(),
                is_primary=screen == primary,
            )
        )
    return monitors
