"""Pointer interaction state machine: drag to rotate/pan, click to drop the pin.

Two states only. While idle, pointer moves update the live coordinate
readout. Between pointer-down and pointer-up the controller is dragging:
horizontal motion rotates the central meridian, vertical motion pans the
rendered geometry. Releasing the pointer either ends the drag or, if the
gesture was short and small enough, places the single pin.
"""

import logging
import math
from collections.abc import Callable

from weatherlens.config import (
    BASE_SCALE,
    CLICK_MAX_DISTANCE_PX,
    CLICK_MAX_DURATION_S,
    VIEW_BOX,
    ZOOM_IN_FACTOR,
    ZOOM_MAX,
    ZOOM_MIN,
    ZOOM_OUT_FACTOR,
    PanPolicy,
)
from weatherlens.models import (
    CanvasPoint,
    ContainerRect,
    Coordinate,
    DragStart,
    GestureKind,
    PointerEvent,
    ViewBox,
)
from weatherlens.projection import Projection, make_projection
from weatherlens.viewport import client_to_canvas

logger = logging.getLogger(__name__)

CountryLookup = Callable[[Coordinate], str | None]


def classify_gesture(
    down: PointerEvent,
    up: PointerEvent,
    max_distance: float = CLICK_MAX_DISTANCE_PX,
    max_duration: float = CLICK_MAX_DURATION_S,
) -> GestureKind:
    """Click iff the pointer moved less than `max_distance` px in less than `max_duration` s."""
    distance = math.hypot(up.client_x - down.client_x, up.client_y - down.client_y)
    elapsed = up.timestamp - down.timestamp
    if distance < max_distance and elapsed < max_duration:
        return GestureKind.CLICK
    return GestureKind.DRAG


def apply_wheel(zoom: float, delta_y: float) -> float:
    """Scale zoom by one wheel notch (negative delta zooms in) and clamp to [1, 8]."""
    factor = ZOOM_IN_FACTOR if delta_y < 0 else ZOOM_OUT_FACTOR
    return max(ZOOM_MIN, min(zoom * factor, ZOOM_MAX))


class InteractionController:
    """Owns rotation, pan, zoom and the pin for one map view.

    Args:
        view_box: Intrinsic canvas size.
        pan_policy: Bound applied to vertical pan (unbounded by default).
        country_lookup: Resolves a coordinate to a country name. Called on
            idle pointer moves and on pin placement.
        base_scale: Projection scale at zoom 1.
    """

    def __init__(
        self,
        view_box: ViewBox = VIEW_BOX,
        pan_policy: PanPolicy = PanPolicy(),
        country_lookup: CountryLookup | None = None,
        base_scale: float = BASE_SCALE,
    ) -> None:
        self.view_box = view_box
        self.pan_policy = pan_policy
        self.country_lookup = country_lookup
        self.base_scale = base_scale

        self.rotation = 0.0
        self.pan_y = 0.0
        self.zoom = 1.0
        self.pin: Coordinate | None = None
        self.readout: Coordinate | None = None
        self.country: str | None = None
        self._drag: DragStart | None = None

    @property
    def dragging(self) -> bool:
        return self._drag is not None

    @property
    def view_key(self) -> str:
        """Identifies the current rotation, pan and zoom; changes whenever the view does."""
        return f"{self.rotation:.6f}/{self.pan_y:.3f}/{self.zoom:.6f}"

    def projection(self, rotation: float | None = None) -> Projection:
        """Projection at the live rotation, or at an explicit one."""
        rot = self.rotation if rotation is None else rotation
        return make_projection(rot, self.zoom, self.view_box, self.base_scale)

    def invert(
        self, point: CanvasPoint, rotation: float | None = None, pan_y: float | None = None
    ) -> Coordinate | None:
        """Canvas point → coordinate, undoing the vertical pan first."""
        pan = self.pan_y if pan_y is None else pan_y
        return self.projection(rotation).invert(CanvasPoint(point.x, point.y - pan))

    # --- pointer events -------------------------------------------------

    def pointer_down(self, event: PointerEvent, rect: ContainerRect | None) -> None:
        canvas = client_to_canvas(rect, event.client_x, event.client_y, self.view_box)
        start_lon = None
        if canvas is not None:
            start = self.invert(canvas, self.rotation, self.pan_y)
            start_lon = start.lon if start is not None else None
        self._drag = DragStart(
            client_x=event.client_x,
            client_y=event.client_y,
            timestamp=event.timestamp,
            canvas=canvas,
            rotation=self.rotation,
            pan_y=self.pan_y,
            start_lon=start_lon,
        )

    def pointer_move(self, event: PointerEvent, rect: ContainerRect | None) -> None:
        canvas = client_to_canvas(rect, event.client_x, event.client_y, self.view_box)
        if canvas is None:
            return
        drag = self._drag
        if drag is None:
            self._update_readout(canvas)
            return

        # Interpret the pointer in the projection frozen at drag start so the
        # rotation we are writing does not feed back into the measurement.
        current = self.invert(canvas, drag.rotation, drag.pan_y)
        if current is not None and drag.start_lon is not None:
            self.rotation = drag.rotation + (current.lon - drag.start_lon)

        if drag.canvas is not None:
            self.pan_y = self.pan_policy.apply(drag.pan_y + (canvas.y - drag.canvas.y))

        self._update_readout(canvas)

    def pointer_up(self, event: PointerEvent, rect: ContainerRect | None) -> GestureKind | None:
        """End the gesture. Returns its classification, or None if no drag was active."""
        drag = self._drag
        self._drag = None
        if drag is None:
            return None

        down = PointerEvent(drag.client_x, drag.client_y, drag.timestamp)
        kind = classify_gesture(down, event)
        if kind is GestureKind.DRAG:
            return kind

        canvas = client_to_canvas(rect, event.client_x, event.client_y, self.view_box)
        if canvas is None:
            return kind
        coord = self.invert(canvas)
        if coord is None:
            logger.debug("Click at %s does not map onto the globe", canvas)
            return kind

        self.pin = coord
        self.readout = coord
        self.country = self._lookup_country(coord)
        return kind

    def pointer_cancel(self) -> None:
        """Abandon an in-progress gesture without classifying it."""
        self._drag = None

    def wheel(self, delta_y: float) -> float:
        self.zoom = apply_wheel(self.zoom, delta_y)
        return self.zoom

    def clear_pin(self) -> None:
        self.pin = None

    # --- helpers --------------------------------------------------------

    def _update_readout(self, canvas: CanvasPoint) -> None:
        coord = self.invert(canvas)
        if coord is None:
            return
        self.readout = coord
        self.country = self._lookup_country(coord)

    def _lookup_country(self, coord: Coordinate) -> str | None:
        if self.country_lookup is None:
            return None
        return self.country_lookup(coord)
