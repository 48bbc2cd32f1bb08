"""Exception hierarchy for Portalshot.

Every failure that can end a capture session derives from ScreenshotError,
so callers (overlay, CLI) can report it with a single except clause.
"""


class ScreenshotError(Exception):
    """Base class for all Portalshot errors."""

    label = "Screenshot error"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        if self.message:
            return f"{self.label}: {self.message}"
        return self.label


class InvalidRegion(ScreenshotError):
    """Region falls outside the raster it is supposed to be cropped from."""

    label = "Invalid region"


class CaptureUnavailable(ScreenshotError):
    """No capture backend can serve this session type."""

    label = "Capture backend not available"


class CaptureDenied(ScreenshotError):
    """The capture service or the user declined the request."""

    label = "Capture denied"


class CaptureFailed(ScreenshotError):
    """The capture service errored or never answered."""

    label = "Capture failed"


class ArtifactReadFailed(ScreenshotError):
    """The returned screenshot file could not be read or decoded."""

    label = "Could not read captured image"


class ExportFailed(ScreenshotError):
    """Saving or copying the cropped image failed."""

    label = "Export failed"


class ConfigError(ScreenshotError):
    """Configuration file is malformed."""

    label = "Invalid configuration"
