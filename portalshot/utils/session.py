"""Selection session state machine for the Portalshot overlay.

The session turns pointer and key input into at most one committed region in
global coordinates. It is plain Python with no Qt dependency: the overlay
owns one instance and forwards its input events to it.

States:
    IDLE -> DRAGGING -> PREVIEWING -> COMMITTED
    any non-terminal state -> CANCELLED

Invalid transitions are ignored (methods return False); nothing here raises.
"""

import logging
from enum import Enum
from typing import Callable, Optional

from .region import MonitorGeometry, Point, Region

logger = logging.getLogger(__name__)


class SessionState(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    PREVIEWING = "previewing"
    COMMITTED = "committed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.COMMITTED, SessionState.CANCELLED)


class SelectionSession:
    """Drag selection lifecycle for one overlay window."""

    def __init__(
        self,
        monitor: MonitorGeometry,
        on_commit: Optional[Callable[[Region], None]] = None,
    ):
        self.monitor = monitor
        self.on_commit = on_commit

        self.state = SessionState.IDLE
        self.drag_anchor: Optional[Point] = None
        self.current_selection: Optional[Region] = None
        self.dragging: bool = False
        self._committed_region: Optional[Region] = None

    @property
    def committed_region(self) -> Optional[Region]:
        return self._committed_region

    def press(self, x: float, y: float) -> bool:
        # A new press while previewing starts the selection over.
        if self.state not in (SessionState.IDLE, SessionState.PREVIEWING):
            return False

        self.drag_anchor = (x, y)
        self.current_selection = None
        self.dragging = True
        self.state = SessionState.DRAGGING
        logger.debug(f"Drag started at ({x}, {y})")
        return True

    def move(self, x: float, y: float) -> bool:
        if self.state is not SessionState.DRAGGING:
            return False

        self.current_selection = Region.from_points(self.drag_anchor, (x, y)).normalize()
        return True

    def release(self, x: float, y: float) -> bool:
        if self.state is not SessionState.DRAGGING:
            return False

        self.current_selection = Region.from_points(self.drag_anchor, (x, y)).normalize()
        self.drag_anchor = None
        self.dragging = False
        self.state = SessionState.PREVIEWING
        logger.info(f"Selection finished: {self.current_selection}")
        return True

    def confirm(self) -> bool:
        """Commit the previewed selection, translated to global space.

        The commit callback fires exactly once per session.
        """
        if self.state is not SessionState.PREVIEWING or self.current_selection is None:
            logger.debug(f"Confirm ignored in state {self.state.value}")
            return False

        self._committed_region = self.current_selection.to_global(self.monitor)
        self.state = SessionState.COMMITTED
        logger.info(
            f"Selection committed: {self._committed_region} (monitor {self.monitor.name})"
        )

        if self.on_commit:
            self.on_commit(self._committed_region)
        return True

    def cancel(self) -> bool:
        if self.state.is_terminal:
            logger.debug(f"Cancel ignored in state {self.state.value}")
            return False

        self.drag_anchor = None
        self.current_selection = None
        self.dragging = False
        self.state = SessionState.CANCELLED
        logger.info("Selection cancelled")
        return True
