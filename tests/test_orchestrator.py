"""Tests for the capture orchestrator, end to end with a fake backend."""

import pytest
from PIL import Image

from conftest import FakeBackend
from portalshot.utils.errors import (
    CaptureDenied,
    CaptureUnavailable,
    ExportFailed,
    InvalidRegion,
)
from portalshot.utils.orchestrator import CaptureOrchestrator, CaptureRequest
from portalshot.utils.region import Region
from portalshot.utils.screenshot import CaptureMode
from portalshot.utils.session import SelectionSession

pytestmark = pytest.mark.usefixtures("qapp")


class Recorder:
    """Export callable plus signal sink."""

    def __init__(self):
        self.exported = []
        self.completed = []
        self.failed = []

    def __call__(self, screenshot):
        self.exported.append(screenshot)
        return f"result-{len(self.exported)}"

    def attach(self, orchestrator):
        orchestrator.completed.connect(self.completed.append)
        orchestrator.failed.connect(self.failed.append)
        return orchestrator


@pytest.fixture
def recorder():
    return Recorder()


def make_orchestrator(backend, recorder):
    return recorder.attach(CaptureOrchestrator(backend, recorder))


class TestCaptureRequest:
    """Test mode to interactivity mapping."""

    @pytest.mark.parametrize(
        "mode, region, interactive",
        [
            (CaptureMode.SCREEN, None, False),
            (CaptureMode.MONITOR, Region(0, 0, 10, 10), False),
            (CaptureMode.WINDOW, None, True),
            (CaptureMode.REGION, None, True),
            (CaptureMode.REGION, Region(0, 0, 10, 10), True),
            (CaptureMode.WINDOW, Region(0, 0, 10, 10), True),
            (CaptureMode.SCREEN, Region(0, 0, 10, 10), False),
        ],
    )
    def test_for_mode(self, mode, region, interactive) -> None:
        request = CaptureRequest.for_mode(mode, region)
        assert request.interactive is interactive
        assert request.region == region

    def test_for_selection(self) -> None:
        request = CaptureRequest.for_selection(Region(1, 2, 3, 4))
        assert request.mode is CaptureMode.REGION
        assert not request.interactive


class TestCaptureOrchestrator:
    """Test CaptureOrchestrator outcomes."""

    def test_crops_full_hd_raster(self, backend, recorder) -> None:
        orchestrator = make_orchestrator(backend, recorder)
        assert orchestrator.start(CaptureRequest.for_selection(Region(100, 100, 200, 150)))

        assert backend.requests == [False]
        assert len(recorder.exported) == 1
        screenshot = recorder.exported[0]
        assert (screenshot.width, screenshot.height) == (200, 150)
        assert screenshot.metadata.region == Region(100, 100, 200, 150)
        assert screenshot.metadata.backend == "fake"
        assert recorder.completed == ["result-1"]
        assert recorder.failed == []
        assert orchestrator.finished

    def test_crop_takes_the_right_pixels(self, recorder) -> None:
        class MarkedBackend(FakeBackend):
            def raster(self):
                image = Image.new("RGBA", self.size, (0, 0, 0, 255))
                image.putpixel((10, 20), (255, 0, 0, 255))
                return image

        orchestrator = make_orchestrator(MarkedBackend(size=(64, 64)), recorder)
        orchestrator.start(CaptureRequest.for_selection(Region(10, 20, 5, 5)))

        image = recorder.exported[0].image
        assert image.getpixel((0, 0)) == (255, 0, 0, 255)
        assert image.getpixel((1, 1)) == (0, 0, 0, 255)

    def test_region_larger_than_raster_fails(self, recorder) -> None:
        """The raster size wins over any monitor layout assumption."""
        orchestrator = make_orchestrator(FakeBackend(size=(500, 400)), recorder)
        orchestrator.start(CaptureRequest.for_selection(Region(0, 0, 600, 400)))

        assert recorder.exported == []
        assert recorder.completed == []
        assert len(recorder.failed) == 1
        assert isinstance(recorder.failed[0], InvalidRegion)

    def test_empty_region_fails_after_capture(self, backend, recorder) -> None:
        orchestrator = make_orchestrator(backend, recorder)
        orchestrator.start(CaptureRequest.for_selection(Region(50, 50, 0, 0)))

        assert backend.requests == [False]
        assert isinstance(recorder.failed[0], InvalidRegion)

    def test_no_region_exports_full_raster(self, backend, recorder) -> None:
        orchestrator = make_orchestrator(backend, recorder)
        orchestrator.start(CaptureRequest.for_mode(CaptureMode.SCREEN))

        assert (recorder.exported[0].width, recorder.exported[0].height) == (1920, 1080)
        assert recorder.exported[0].metadata.mode is CaptureMode.SCREEN

    def test_second_start_is_ignored(self, backend, recorder) -> None:
        orchestrator = make_orchestrator(backend, recorder)
        request = CaptureRequest.for_selection(Region(0, 0, 10, 10))

        assert orchestrator.start(request)
        assert not orchestrator.start(request)
        assert len(backend.requests) == 1
        assert len(recorder.completed) == 1

    def test_capture_denied_is_reported(self, recorder) -> None:
        backend = FakeBackend(error=CaptureDenied("user said no"))
        orchestrator = make_orchestrator(backend, recorder)
        orchestrator.start(CaptureRequest.for_selection(Region(0, 0, 10, 10)))

        assert recorder.exported == []
        assert len(recorder.failed) == 1
        assert isinstance(recorder.failed[0], CaptureDenied)

    def test_backend_raising_on_capture_is_reported(self, recorder) -> None:
        class BrokenBackend(FakeBackend):
            def capture(self, interactive):
                raise CaptureUnavailable("no portal")

        orchestrator = make_orchestrator(BrokenBackend(), recorder)
        assert orchestrator.start(CaptureRequest.for_selection(Region(0, 0, 10, 10)))
        assert isinstance(recorder.failed[0], CaptureUnavailable)
        assert orchestrator.finished

    def test_export_error_is_reported(self, backend, recorder) -> None:
        def failing_export(screenshot):
            raise ExportFailed("disk full")

        orchestrator = recorder.attach(CaptureOrchestrator(backend, failing_export))
        orchestrator.start(CaptureRequest.for_selection(Region(0, 0, 10, 10)))

        assert recorder.completed == []
        assert isinstance(recorder.failed[0], ExportFailed)

    def test_export_os_error_becomes_export_failed(self, backend, recorder) -> None:
        def failing_export(screenshot):
            raise PermissionError("read-only file system")

        orchestrator = recorder.attach(CaptureOrchestrator(backend, failing_export))
        orchestrator.start(CaptureRequest.for_selection(Region(0, 0, 10, 10)))

        assert isinstance(recorder.failed[0], ExportFailed)
        assert "read-only" in str(recorder.failed[0])

    def test_waits_for_deferred_capture(self, recorder) -> None:
        backend = FakeBackend(deferred=True)
        orchestrator = make_orchestrator(backend, recorder)
        orchestrator.start(CaptureRequest.for_selection(Region(0, 0, 10, 10)))

        assert recorder.completed == []
        assert not orchestrator.finished

        backend.finish(backend.pending[0])
        assert recorder.completed == ["result-1"]

        # A stray second answer from the service changes nothing
        backend.finish(backend.pending[0])
        assert len(recorder.completed) == 1
        assert recorder.failed == []


class TestSessionToCapture:
    """Selection session wired to an orchestrator the way the overlay does it."""

    @pytest.fixture
    def wired(self, monitor, recorder):
        backend = FakeBackend(size=(3840, 1080))
        orchestrator = make_orchestrator(backend, recorder)
        session = SelectionSession(
            monitor,
            on_commit=lambda region: orchestrator.start(CaptureRequest.for_selection(region)),
        )
        return session, backend

    def test_no_capture_without_confirm(self, wired, recorder) -> None:
        session, backend = wired
        session.press(100, 100)
        session.move(200, 200)
        session.release(300, 250)

        assert backend.requests == []
        assert recorder.exported == []

    def test_confirm_captures_exactly_once(self, wired, recorder) -> None:
        session, backend = wired
        session.press(100, 100)
        session.release(300, 250)
        session.confirm()
        session.confirm()

        assert len(backend.requests) == 1
        screenshot = recorder.exported[0]
        assert screenshot.metadata.region == Region(2020, 100, 200, 150)
        assert (screenshot.width, screenshot.height) == (200, 150)

    def test_cancel_before_confirm_never_captures(self, wired, recorder) -> None:
        session, backend = wired
        session.press(100, 100)
        session.release(300, 250)
        session.cancel()
        session.confirm()

        assert backend.requests == []
        assert recorder.completed == []
        assert recorder.failed == []

    def test_click_and_confirm_issues_one_failing_capture(self, wired, recorder) -> None:
        session, backend = wired
        session.press(100, 100)
        session.release(100, 100)
        session.confirm()

        assert len(backend.requests) == 1
        assert isinstance(recorder.failed[0], InvalidRegion)
