"""Rotated, zoomable Mercator projection between geographic and viewBox coordinates.

The sphere-to-plane step is PROJ's spherical Mercator (``+proj=merc``) with
the sphere radius set to the on-screen scale, so projected metres are
canvas pixels. Rotation is expressed as the central meridian ``lon_0`` and
PROJ folds longitudes around it into [-180, 180], matching d3-geo's
``rotate([λ, 0])``. Only the translate to the canvas centre and the y flip
are done here.
"""

import math
from dataclasses import dataclass
from functools import cached_property

from pyproj import Proj

from weatherlens.config import BASE_SCALE, VIEW_BOX
from weatherlens.models import CanvasPoint, Coordinate, ViewBox


def wrap_longitude(lon: float) -> float:
    """Fold a longitude into [-180, 180]."""
    if abs(lon) > 180:
        lon -= round(lon / 360) * 360
    return lon


@dataclass(frozen=True)
class Projection:
    rotation: float = 0.0  # Central meridian offset, degrees
    zoom: float = 1.0
    view_box: ViewBox = VIEW_BOX
    base_scale: float = BASE_SCALE

    @property
    def scale(self) -> float:
        return self.base_scale * self.zoom

    @property
    def world_width(self) -> float:
        """Canvas width of one full turn of longitude."""
        return 2 * math.pi * self.scale

    @cached_property
    def _proj(self) -> Proj:
        # One PROJ object per projection instance; they are not shared across threads.
        return Proj(proj="merc", lon_0=wrap_longitude(-self.rotation), R=self.scale)

    def forward(self, coord: Coordinate) -> CanvasPoint | None:
        """Project a geographic coordinate, or None at the poles."""
        if not (math.isfinite(coord.lat) and math.isfinite(coord.lon)) or abs(coord.lat) >= 90:
            return None
        x, y = self._proj(wrap_longitude(coord.lon), coord.lat)
        if not (math.isfinite(x) and math.isfinite(y)):
            return None
        return CanvasPoint(
            x=self.view_box.width / 2 + x,
            y=self.view_box.height / 2 - y,
        )

    def invert(self, point: CanvasPoint) -> Coordinate | None:
        """Unproject a canvas point, or None if it does not map to the globe."""
        if not (math.isfinite(point.x) and math.isfinite(point.y)):
            return None
        lon, lat = self._proj(
            point.x - self.view_box.width / 2,
            self.view_box.height / 2 - point.y,
            inverse=True,
        )
        if not (math.isfinite(lon) and math.isfinite(lat)):
            return None
        return Coordinate(lat=lat, lon=wrap_longitude(lon))


def make_projection(
    rotation: float,
    zoom: float,
    view_box: ViewBox = VIEW_BOX,
    base_scale: float = BASE_SCALE,
) -> Projection:
    """Build the projection in effect for a given rotation and zoom."""
    return Projection(rotation=rotation, zoom=zoom, view_box=view_box, base_scale=base_scale)
