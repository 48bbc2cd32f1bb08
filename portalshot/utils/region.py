"""Rectangle and monitor geometry types for Portalshot.

A Region never records which coordinate space it lives in. The overlay works
in overlay-local pixels, the orchestrator in global desktop pixels; callers
track which is which.
"""

import math
from dataclasses import dataclass
from typing import Tuple

from .errors import InvalidRegion

Point = Tuple[float, float]


@dataclass(frozen=True)
class Region:
    """Axis-aligned rectangle with a non-negative size."""

    x: int
    y: int
    width: int
    height: int

    def __post_init__(self):
        if self.width < 0 or self.height < 0:
            raise ValueError(
                f"Region size must be non-negative, got {self.width}x{self.height}"
            )

    @classmethod
    def from_points(cls, start: Point, end: Point) -> "Region":
        """Build the rectangle spanned by two drag points.

        The result is anchored at the smaller coordinate on each axis, so
        dragging up-left and down-right over the same pixels gives equal
        regions. Fractional pointer positions are floored to pixels.
        """
        x1, y1 = math.floor(start[0]), math.floor(start[1])
        x2, y2 = math.floor(end[0]), math.floor(end[1])
        return cls(min(x1, x2), min(y1, y2), abs(x2 - x1), abs(y2 - y1))

    @classmethod
    def parse(cls, text: str) -> "Region":
        """Parse the CLI area format "x,y,width,height"."""
        parts = [part.strip() for part in text.split(",")]
        if len(parts) != 4:
            raise ValueError(f"Expected x,y,width,height, got '{text}'")
        x, y, width, height = map(int, parts)
        return cls(x, y, width, height)

    def normalize(self) -> "Region":
        """Return the canonical top-left anchored rectangle.

        Sizes are stored unsigned, so the stored corner already is the
        top-left one; this returns an equal rectangle and never touches
        width or height.
        """
        return Region(self.x, self.y, self.width, self.height)

    def translate(self, dx: int, dy: int) -> "Region":
        return Region(self.x + dx, self.y + dy, self.width, self.height)

    def to_global(self, monitor: "MonitorGeometry") -> "Region":
        """Translate an overlay-local region into global desktop space."""
        # Logical pixels only; monitor.scale is not applied, so on a scaled
        # output the crop is off by that factor against a physical raster.
        return self.translate(monitor.x, monitor.y)

    def validate_within(self, width: int, height: int) -> None:
        """Raise InvalidRegion unless the region fits inside width x height."""
        if self.x < 0 or self.y < 0:
            raise InvalidRegion(
                f"region origin ({self.x}, {self.y}) is negative"
            )
        if self.x + self.width > width or self.y + self.height > height:
            raise InvalidRegion(
                f"region {self.width}x{self.height} at ({self.x}, {self.y}) "
                f"exceeds {width}x{height} image"
            )

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    @property
    def box(self) -> Tuple[int, int, int, int]:
        """(left, upper, right, lower) box as used by PIL.Image.crop."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    def __str__(self) -> str:
        return f"{self.width}x{self.height} at ({self.x}, {self.y})"


@dataclass(frozen=True)
class MonitorGeometry:
    """One physical output's placement in the global desktop."""

    name: str
    x: int
    y: int
    width: int
    height: int
    scale: float = 1.0
    is_primary: bool = False

    @property
    def geometry(self) -> Region:
        return Region(self.x, self.y, self.width, self.height)

    def __str__(self) -> str:
        return (
            f"{self.name} - {self.width}x{self.height} @ ({self.x}, {self.y}) "
            f"scale: {self.scale}"
        )
