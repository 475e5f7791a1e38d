"""Project shapely geometries into canvas polylines shared by the renderers."""

from collections.abc import Iterator
from typing import Any

from weatherlens.models import Coordinate
from weatherlens.projection import Projection

Polyline = list[tuple[float, float]]


def _rings(geometry: Any) -> Iterator[Any]:
    kind = geometry.geom_type
    if kind == "Polygon":
        yield geometry.exterior
        yield from geometry.interiors
    elif kind in ("MultiPolygon", "GeometryCollection"):
        for part in geometry.geoms:
            yield from _rings(part)


def project_ring(projection: Projection, coords: Any) -> list[Polyline]:
    """Project one ring, breaking it wherever it wraps across the antimeridian.

    A jump of more than half the world width between consecutive points
    means the segment left one side of the map and entered the other.
    """
    limit = projection.world_width / 2
    pieces: list[Polyline] = []
    current: Polyline = []
    for lon, lat, *_ in coords:
        point = projection.forward(Coordinate(lat=lat, lon=lon))
        if point is None:
            if len(current) > 1:
                pieces.append(current)
            current = []
            continue
        if current and abs(point.x - current[-1][0]) > limit:
            if len(current) > 1:
                pieces.append(current)
            current = []
        current.append((point.x, point.y))
    if len(current) > 1:
        pieces.append(current)
    return pieces


def project_geometry(projection: Projection, geometry: Any) -> list[Polyline]:
    """All polylines for a (multi)polygon; empty for None or unsupported types."""
    if geometry is None:
        return []
    polylines: list[Polyline] = []
    for ring in _rings(geometry):
        polylines.extend(project_ring(projection, ring.coords))
    return polylines


# Continent labels drawn over the map: (name, lon, lat).
REGION_LABELS: tuple[tuple[str, float, float], ...] = (
    ("NORTH AMERICA", -100.0, 35.0),
    ("SOUTH AMERICA", -58.0, -10.0),
    ("EUROPE", 20.0, 50.0),
    ("AFRICA", 27.0, 0.0),
    ("ASIA", 90.0, 46.5),
    ("OCEANIA", 133.5, -28.0),
)


def project_labels(
    projection: Projection,
    pan_y: float = 0.0,
    labels: tuple[tuple[str, float, float], ...] = REGION_LABELS,
) -> list[tuple[str, float, float]]:
    """Canvas anchors (name, x, y) for labels, panned like the geography.

    Labels that do not project are left out.
    """
    placed = []
    for name, lon, lat in labels:
        point = projection.forward(Coordinate(lat=lat, lon=lon))
        if point is None:
            continue
        placed.append((name, point.x, point.y + pan_y))
    return placed
