"""Country polygons: dataset loading (GeoJSON or TopoJSON) and point lookup."""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

import httpx
from shapely.errors import ShapelyError
from shapely.geometry import Point, shape
from shapely.prepared import prep

from weatherlens.models import CountryDataError, CountryFeature, Coordinate
from weatherlens.projection import wrap_longitude

logger = logging.getLogger(__name__)

NAME_KEYS: tuple[str, ...] = ("ADMIN", "name", "NAME", "NAME_LONG", "SOVEREIGNT")


def resolve_name(properties: Mapping[str, Any] | None, keys: Iterable[str] = NAME_KEYS) -> str | None:
    """Return the first non-empty candidate property, or None."""
    if not properties:
        return None
    for key in keys:
        value = properties.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


# --- TopoJSON ----------------------------------------------------------


def _decode_arcs(topology: Mapping[str, Any]) -> list[list[tuple[float, float]]]:
    """Absolute positions for every arc, undoing delta quantisation when present."""
    transform = topology.get("transform")
    arcs: list[list[tuple[float, float]]] = []
    for raw in topology.get("arcs", []):
        if transform:
            sx, sy = transform["scale"]
            tx, ty = transform["translate"]
            x = y = 0
            points = []
            for dx, dy, *_ in raw:
                x += dx
                y += dy
                points.append((x * sx + tx, y * sy + ty))
        else:
            points = [(float(p[0]), float(p[1])) for p in raw]
        arcs.append(points)
    return arcs


def _ring(indices: Iterable[int], arcs: list[list[tuple[float, float]]]) -> list[tuple[float, float]]:
    """Stitch arcs into one ring; a negative index ~i walks arc i backwards."""
    coords: list[tuple[float, float]] = []
    for index in indices:
        arc = arcs[~index][::-1] if index < 0 else arcs[index]
        coords.extend(arc if not coords else arc[1:])
    return coords


def _topo_geometry(geom: Mapping[str, Any], arcs: list[list[tuple[float, float]]]) -> dict[str, Any] | None:
    kind = geom.get("type")
    if kind == "Polygon":
        return {"type": "Polygon", "coordinates": [_ring(r, arcs) for r in geom["arcs"]]}
    if kind == "MultiPolygon":
        return {
            "type": "MultiPolygon",
            "coordinates": [[_ring(r, arcs) for r in poly] for poly in geom["arcs"]],
        }
    return None


def topology_to_features(topology: Mapping[str, Any], object_name: str | None = None) -> list[dict[str, Any]]:
    """Convert one TopoJSON object (default: the first) into GeoJSON feature dicts."""
    objects = topology.get("objects") or {}
    if not objects:
        raise CountryDataError("topology has no objects")
    name = object_name or next(iter(objects))
    collection = objects[name]
    members = collection.get("geometries", [collection])
    arcs = _decode_arcs(topology)

    features = []
    for geom in members:
        properties = geom.get("properties") or {}
        try:
            geometry = _topo_geometry(geom, arcs)
        except (KeyError, IndexError, TypeError) as exc:
            logger.warning("Bad arcs for %s: %s", resolve_name(properties), exc)
            geometry = None
        features.append(
            {
                "type": "Feature",
                "id": geom.get("id"),
                "properties": properties,
                "geometry": geometry,
            }
        )
    return features


# --- Index -------------------------------------------------------------


def _build_feature(raw: Mapping[str, Any]) -> CountryFeature:
    properties = dict(raw.get("properties") or {})
    geometry = None
    if raw.get("geometry"):
        try:
            geometry = shape(raw["geometry"])
        except (ShapelyError, ValueError, TypeError, KeyError, IndexError) as exc:
            logger.warning("Skipping geometry for %s: %s", resolve_name(properties), exc)
    return CountryFeature(name=resolve_name(properties), properties=properties, geometry=geometry)


class CountryIndex:
    """Read-only set of country features, searched in dataset order."""

    def __init__(self, features: Iterable[CountryFeature]) -> None:
        self.features = tuple(features)
        self._prepared = [prep(f.geometry) if f.geometry is not None else None for f in self.features]

    @classmethod
    def from_data(cls, data: Mapping[str, Any]) -> "CountryIndex":
        """Build an index from a parsed GeoJSON FeatureCollection or TopoJSON Topology."""
        kind = data.get("type")
        if kind == "Topology":
            raw_features = topology_to_features(data)
        elif kind == "FeatureCollection":
            raw_features = data.get("features") or []
        else:
            raise CountryDataError(f"unsupported dataset type: {kind!r}")
        return cls(_build_feature(f) for f in raw_features)

    def __len__(self) -> int:
        return len(self.features)

    def find(self, coord: Coordinate) -> CountryFeature | None:
        """First feature whose polygon covers the point, or None.

        Geometry faults count as no match.
        """
        try:
            point = Point(wrap_longitude(coord.lon), coord.lat)
            for feature, prepared in zip(self.features, self._prepared):
                if prepared is not None and prepared.covers(point):
                    return feature
        except (ShapelyError, ValueError, TypeError) as exc:
            logger.debug("Country lookup failed at %s: %s", coord, exc)
        return None

    def name_at(self, coord: Coordinate) -> str | None:
        feature = self.find(coord)
        return feature.name if feature is not None else None


def resolve_country(coord: Coordinate, index: CountryIndex | None) -> str | None:
    """Country name at `coord`; None while the dataset is not loaded or nothing matches."""
    if index is None:
        return None
    return index.name_at(coord)


def fetch_country_index(url: str, timeout: float = 10.0) -> CountryIndex:
    """Download and index the country dataset.

    Raises:
        CountryDataError: On HTTP failure or an unrecognised payload.
    """
    try:
        resp = httpx.get(url, timeout=timeout, follow_redirects=True)
        resp.raise_for_status()
        data = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        raise CountryDataError(f"could not load country data from {url}: {exc}") from exc
    index = CountryIndex.from_data(data)
    logger.info("Loaded %d country features", len(index))
    return index
