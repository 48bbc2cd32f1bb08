"""Value types shared by capture, processing and export."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from PIL import Image

from .region import Region


class CaptureMode(Enum):
    SCREEN = "screen"
    WINDOW = "window"
    REGION = "region"
    MONITOR = "monitor"

    @classmethod
    def parse(cls, text: str) -> "CaptureMode":
        try:
            return cls(text.strip().lower())
        except ValueError:
            choices = ", ".join(mode.value for mode in cls)
            raise ValueError(f"Unknown capture mode '{text}' (choose from {choices})")


class OutputFormat(Enum):
    PNG = "png"
    JPEG = "jpeg"
    WEBP = "webp"
    CLIPBOARD = "clipboard"

    @classmethod
    def parse(cls, text: str) -> "OutputFormat":
        value = text.strip().lower()
        if value == "jpg":
            value = "jpeg"
        try:
            return cls(value)
        except ValueError:
            choices = ", ".join(fmt.value for fmt in cls)
            raise ValueError(f"Unknown output format '{text}' (choose from {choices})")

    @property
    def extension(self) -> str:
        return {"png": ".png", "jpeg": ".jpg", "webp": ".webp"}.get(self.value, "")

    @classmethod
    def from_path(cls, path: str) -> "OutputFormat":
        """Guess the format from a file extension, defaulting to PNG."""
        suffix = str(path).rsplit(".", 1)[-1].lower() if "." in str(path) else ""
        if suffix in ("jpg", "jpeg"):
            return cls.JPEG
        if suffix == "webp":
            return cls.WEBP
        return cls.PNG


@dataclass
class ScreenshotMetadata:
    width: int
    height: int
    mode: CaptureMode
    format: OutputFormat = OutputFormat.PNG
    region: Optional[Region] = None
    backend: str = ""
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        region = None
        if self.region is not None:
            region = {
                "x": self.region.x,
                "y": self.region.y,
                "width": self.region.width,
                "height": self.region.height,
            }
        return {
            "width": self.width,
            "height": self.height,
            "mode": self.mode.value,
            "format": self.format.value,
            "region": region,
            "backend": self.backend,
            "timestamp": self.timestamp.isoformat(timespec="seconds"),
        }


@dataclass
class Screenshot:
    """A captured (and possibly cropped) image with its metadata."""

    image: Image.Image
    metadata: ScreenshotMetadata

    @classmethod
    def from_image(cls, image: Image.Image, mode: CaptureMode, **metadata) -> "Screenshot":
        return cls(image, ScreenshotMetadata(image.width, image.height, mode, **metadata))

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    def with_image(self, image: Image.Image) -> "Screenshot":
        """Copy with a new image; metadata size follows the image."""
        metadata = replace(self.metadata, width=image.width, height=image.height)
        return Screenshot(image, metadata)
