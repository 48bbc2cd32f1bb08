"""Pytest configuration and fixtures."""

import os
from typing import List, Optional, Tuple

import pytest
from PIL import Image
from PyQt6.QtWidgets import QApplication

from portalshot.utils.capture import CaptureBackend, PendingCapture
from portalshot.utils.config import Config
from portalshot.utils.errors import ScreenshotError
from portalshot.utils.region import MonitorGeometry

# Widgets are created without a display server
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


class FakeBackend(CaptureBackend):
    """Stands in for the portal: records requests and answers with a solid raster."""

    name = "fake"

    def __init__(
        self,
        size: Tuple[int, int] = (1920, 1080),
        error: Optional[ScreenshotError] = None,
        deferred: bool = False,
    ):
        self.size = size
        self.error = error
        self.deferred = deferred
        self.requests: List[bool] = []
        self.pending: List[PendingCapture] = []
        self.cleaned_up = False

    def raster(self) -> Image.Image:
        return Image.new("RGBA", self.size, (40, 80, 120, 255))

    def capture(self, interactive: bool) -> PendingCapture:
        self.requests.append(interactive)
        pending = PendingCapture()
        self.pending.append(pending)
        if not self.deferred:
            self.finish(pending)
        return pending

    def finish(self, pending: PendingCapture) -> None:
        if self.error is not None:
            pending.reject(self.error)
        else:
            pending.resolve(self.raster())

    def cleanup(self) -> None:
        self.cleaned_up = True


@pytest.fixture(scope="session")
def qapp():
    """Shared Qt application for signal, timer and widget tests."""
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    return app


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def monitor():
    """Second monitor of a side-by-side dual 1080p layout."""
    return MonitorGeometry("DP-2", 1920, 0, 1920, 1080)


@pytest.fixture
def config(tmp_path):
    """Config saving into a temporary directory."""
    return Config(save_directory=str(tmp_path / "shots"))
