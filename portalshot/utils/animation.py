"""Progress driver for the overlay's animated hint widget.

The driver only produces a progress value in [0, 1] and a "controls visible"
flag. The overlay polls it from a QTimer and repaints; capture logic never
reads it.
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional


class AnimationConstants:
    """Shape parameters for the hint pill (pixels)."""

    TICK_INTERVAL_MS = 16
    START_RADIUS = 22.0
    END_WIDTH = 280.0
    END_HEIGHT = 52.0
    CORNER_RADIUS = 26.0
    TOP_OFFSET = 35.0
    CONTROLS_THRESHOLD = 0.95


class ProgressDriver:
    """Monotonic progress from wall time elapsed since start()."""

    def __init__(self, duration_ms: int, clock: Callable[[], float] = time.monotonic):
        self.duration_ms = duration_ms
        self.clock = clock
        self.progress: float = 0.0
        self.controls_visible: bool = False
        self._started_at: Optional[float] = None

    @property
    def finished(self) -> bool:
        return self.progress >= 1.0

    def start(self) -> None:
        self._started_at = self.clock()

    def tick(self) -> float:
        if self._started_at is None or self.finished:
            return self.progress

        if self.duration_ms <= 0:
            progress = 1.0
        else:
            elapsed_ms = (self.clock() - self._started_at) * 1000.0
            progress = min(elapsed_ms / self.duration_ms, 1.0)

        # Clock jitter must never move the widget backwards
        self.progress = max(self.progress, progress)
        if self.finished:
            self.controls_visible = True
        return self.progress


def ease_in_out_cubic(t: float) -> float:
    if t < 0.5:
        return 4.0 * t * t * t
    return 1.0 - (-2.0 * t + 2.0) ** 3 / 2.0


@dataclass(frozen=True)
class PillShape:
    x: float
    y: float
    width: float
    height: float
    radius: float


def affordance_shape(progress: float, canvas_width: float) -> PillShape:
    """Geometry of the hint widget morphing from a circle into a pill."""
    t = ease_in_out_cubic(max(0.0, min(progress, 1.0)))
    c = AnimationConstants
    start_size = c.START_RADIUS * 2.0

    width = start_size + t * (c.END_WIDTH - start_size)
    height = start_size + t * (c.END_HEIGHT - start_size)

    circle_radius = min(width, height) / 2.0
    if t < 0.3:
        radius = circle_radius
    else:
        morph = (t - 0.3) / 0.7
        radius = circle_radius + morph * (c.CORNER_RADIUS - circle_radius)

    x = canvas_width / 2.0 - width / 2.0
    y = c.TOP_OFFSET - height / 2.0
    return PillShape(x, y, width, height, radius)
