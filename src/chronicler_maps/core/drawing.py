"""Polygon drawing state machine."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from PyQt6.QtCore import QObject, pyqtSignal

from .coordinates import to_pixel_point
from .models import Point, PolygonRegion

logger = logging.getLogger(__name__)

MIN_POLYGON_POINTS = 3


class DrawingState(str, Enum):
    IDLE = "idle"
    DRAWING = "drawing"


@dataclass(frozen=True)
class DraftRegion:
    """
    A polygon that has been drawn but not yet saved.

    Points are integer pixel-space coordinates. The draft is handed to
    the edit form, which turns it into a region with an id and fields.
    """

    points: Tuple[Point, ...]

    def to_region(self, region_id: str, **fields) -> PolygonRegion:
        return PolygonRegion(id=region_id, points=self.points, **fields)


class DrawingStateMachine(QObject):
    """
    Collects vertices while the user authors a new polygon.

    States are ``IDLE -> DRAWING -> IDLE``. Vertices arrive in renderer
    coordinates and are converted to pixel space only when the polygon
    is finished.
    """

    # Emitted when a drawing session starts or ends
    state_changed = pyqtSignal(str)
    # Open polyline preview in renderer coordinates: list of (x, y)
    preview_changed = pyqtSignal(object)
    # Emitted with a DraftRegion when a polygon is finished
    draft_created = pyqtSignal(object)
    # Default double-click zoom must be disabled while drawing
    double_click_zoom_changed = pyqtSignal(bool)
    # Drawing needs the full canvas
    console_close_requested = pyqtSignal()

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._state = DrawingState.IDLE
        self._vertices: List[Tuple[float, float]] = []
        self._height: float = 0.0

    @property
    def state(self) -> DrawingState:
        return self._state

    @property
    def is_drawing(self) -> bool:
        return self._state == DrawingState.DRAWING

    @property
    def vertices(self) -> List[Tuple[float, float]]:
        """Buffered vertices in renderer coordinates."""
        return list(self._vertices)

    def start_drawing(self, map_height: float) -> None:
        """
        Enter the drawing state with an empty vertex buffer.

        Args:
            map_height: Reference height used to unflip Y on finish
        """
        self._vertices = []
        self._height = map_height
        self._state = DrawingState.DRAWING

        self.double_click_zoom_changed.emit(False)
        self.console_close_requested.emit()
        self.preview_changed.emit([])
        self.state_changed.emit(self._state.value)
        logger.debug("Polygon drawing started")

    def add_vertex(self, rx: float, ry: float) -> bool:
        """
        Add a vertex at renderer coordinates ``(rx, ry)``.

        A vertex identical to the previous one is ignored, so the two
        clicks of a finishing double-click do not duplicate a point.

        Returns:
            True if the vertex was added
        """
        if not self.is_drawing:
            return False
        if self._vertices and self._vertices[-1] == (rx, ry):
            return False

        self._vertices.append((rx, ry))
        self.preview_changed.emit(list(self._vertices))
        return True

    def finish(self) -> Optional[DraftRegion]:
        """
        Leave the drawing state, emitting a draft if enough points exist.

        Fewer than three vertices are discarded silently.

        Returns:
            The draft region, or None if nothing was emitted
        """
        if not self.is_drawing:
            return None

        draft = None
        if len(self._vertices) >= MIN_POLYGON_POINTS:
            draft = DraftRegion(
                points=tuple(to_pixel_point(rx, ry, self._height) for rx, ry in self._vertices)
            )
        else:
            logger.debug(f"Discarding polygon with {len(self._vertices)} points")

        self._reset()

        if draft is not None:
            self.draft_created.emit(draft)
        return draft

    def cancel(self) -> None:
        """Discard the vertex buffer without emitting a draft."""
        if not self.is_drawing:
            return
        logger.debug("Polygon drawing cancelled")
        self._reset()

    def _reset(self) -> None:
        self._vertices = []
        self._state = DrawingState.IDLE
        self.preview_changed.emit([])
        self.double_click_zoom_changed.emit(True)
        self.state_changed.emit(self._state.value)
