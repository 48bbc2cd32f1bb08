"""
Capture orchestration for Portalshot.

The orchestrator takes one committed request and drives it to a single
terminal outcome:

    capture -> validate region against the returned raster -> crop -> export

Exactly one of `completed` or `failed` is emitted. Both are delivered on the
Qt event loop, so the overlay can tear itself down from the handler.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from PIL import Image
from PyQt6.QtCore import QObject, pyqtSignal

from .capture import CaptureBackend, PendingCapture
from .errors import ExportFailed, InvalidRegion, ScreenshotError
from .processing import ImageProcessor
from .region import Region
from .screenshot import CaptureMode, Screenshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CaptureRequest:
    mode: CaptureMode
    interactive: bool
    region: Optional[Region] = None  # global coordinates

    @classmethod
    def for_mode(cls, mode: CaptureMode, region: Optional[Region] = None) -> "CaptureRequest":
        """Map a capture mode to the backend's interactivity.

        Screen and monitor captures grab everything and crop locally. Window
        and region captures rely on the capture service's own picker. An
        explicit region is applied as a local crop in every mode.
        """
        interactive = mode in (CaptureMode.WINDOW, CaptureMode.REGION)
        return cls(mode, interactive, region)

    @classmethod
    def for_selection(cls, region: Region) -> "CaptureRequest":
        """Request for a region the user already drew on the overlay."""
        return cls(CaptureMode.REGION, False, region)


class CaptureOrchestrator(QObject):
    """Runs one capture request to completion."""

    completed = pyqtSignal(object)  # whatever the export callable returns
    failed = pyqtSignal(object)  # ScreenshotError

    def __init__(
        self,
        backend: CaptureBackend,
        export: Callable[[Screenshot], object],
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self.backend = backend
        self.export = export
        self.request: Optional[CaptureRequest] = None
        self.pending: Optional[PendingCapture] = None
        self.finished: bool = False

    @property
    def started(self) -> bool:
        return self.request is not None

    def start(self, request: CaptureRequest) -> bool:
        """Begin capturing. Only the first call per orchestrator does anything."""
        if self.started:
            logger.warning("Capture already requested for this session, ignoring")
            return False

        self.request = request
        logger.info(
            f"Starting {request.mode.value} capture via {self.backend.name} "
            f"(interactive={request.interactive}, region={request.region})"
        )

        try:
            self.pending = self.backend.capture(request.interactive)
        except ScreenshotError as e:
            self._fail(e)
            return True

        self.pending.subscribe(self._on_raster, self._fail)
        return True

    def _on_raster(self, raster: Image.Image) -> None:
        logger.info(f"Capture returned {raster.width}x{raster.height} raster")
        try:
            screenshot = self.crop(raster)
            result = self.export(screenshot)
        except ScreenshotError as e:
            self._fail(e)
            return
        except OSError as e:
            self._fail(ExportFailed(str(e)))
            return

        self.finished = True
        self.completed.emit(result)

    def crop(self, raster: Image.Image) -> Screenshot:
        """Crop the raster to the requested region.

        The raster's own size is authoritative: the capture service may return
        a different size than the monitor layout suggests. Out-of-bounds
        regions fail with InvalidRegion instead of being clamped.
        """
        request = self.request
        screenshot = Screenshot.from_image(
            raster, request.mode, region=request.region, backend=self.backend.name
        )
        if request.region is None:
            return screenshot

        region = request.region.normalize()
        region.validate_within(raster.width, raster.height)
        if region.is_empty:
            raise InvalidRegion(f"selection {region} has no area")
        return ImageProcessor.crop(screenshot, region)

    def _fail(self, error: ScreenshotError) -> None:
        if self.finished:
            return
        self.finished = True
        logger.error(f"Capture failed: {error}")
        self.failed.emit(error)
