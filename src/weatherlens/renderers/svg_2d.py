"""SVG world map renderer.

Produces a standalone SVG string in viewBox space (800×600 by default)
with ``preserveAspectRatio="xMidYMid slice"``, matching the crop-to-fill
mapping used to interpret pointer input.

Layering:
  background rect (not panned)
  <g translate(0, pan_y)>  country outlines + region labels + pin marker + pin label
"""

from __future__ import annotations

from html import escape

from weatherlens.countries import CountryIndex
from weatherlens.models import Coordinate
from weatherlens.projection import Projection
from weatherlens.readout import format_coordinate
from weatherlens.renderers.paths import Polyline, project_geometry, project_labels

_BG = "#cbc8c8"
_LAND = "#1f3b5c"
_BORDER = "#e8eef5"
_PIN = "#14b88a"
_LABEL = "#0b2545"
_REGION = "#14b88a"

PIN_SIZE = 28
_PIN_PATH = "M14 0C9.029 0 5 4.03 5 9.01 5 16.01 14 28 14 28s9-11.99 9-18.99C23 4.03 18.971 0 14 0z"


def _path_data(polylines: list[Polyline]) -> str:
    parts = []
    for line in polylines:
        head, *rest = line
        segs = " ".join(f"L{x:.2f},{y:.2f}" for x, y in rest)
        parts.append(f"M{head[0]:.2f},{head[1]:.2f} {segs}")
    return " ".join(parts)


def render_pin(projection: Projection, pin: Coordinate) -> str:
    """Pin marker whose tip sits on the projected coordinate, label underneath.

    Returns an empty string if the pin does not project (poles).
    """
    point = projection.forward(pin)
    if point is None:
        return ""
    x = point.x - PIN_SIZE / 2
    y = point.y - PIN_SIZE
    label = escape(format_coordinate(pin))
    return (
        f'<g id="pin" transform="translate({x:.2f}, {y:.2f})" pointer-events="none">'
        f'<path d="{_PIN_PATH}" fill="{_PIN}"/>'
        f'<circle cx="14" cy="9" r="3.5" fill="white"/>'
        f'<text x="{PIN_SIZE / 2:g}" y="{PIN_SIZE + 12}" text-anchor="middle" font-size="10"'
        f' font-weight="700" fill="{_LABEL}">{label}</text>'
        f"</g>"
    )


def render_map_svg(
    projection: Projection,
    countries: CountryIndex | None,
    pan_y: float = 0.0,
    pin: Coordinate | None = None,
) -> str:
    """Render the map at the given projection, pan, and pin.

    Args:
        projection: Rotation/zoom in effect for this frame.
        countries: Loaded country polygons; None draws only the background.
        pan_y: Vertical translation of the geography in canvas pixels.
        pin: The single pin, if any.

    Returns:
        An ``<svg>`` element as a string.
    """
    vb = projection.view_box
    country_parts: list[str] = []
    if countries is not None:
        for feature in countries.features:
            polylines = project_geometry(projection, feature.geometry)
            if not polylines:
                continue
            title = f"<title>{escape(feature.name)}</title>" if feature.name else ""
            country_parts.append(
                f'<path d="{_path_data(polylines)}" fill="{_LAND}" stroke="{_BORDER}"'
                f' stroke-width="0.5" fill-rule="evenodd">{title}</path>'
            )

    # Inside the translated group, so no pan here.
    label_svg = "\n    ".join(
        f'<text x="{x:.2f}" y="{y:.2f}" text-anchor="middle" font-size="12" font-weight="700"'
        f' letter-spacing="0.1em" fill="{_REGION}" pointer-events="none">{escape(name)}</text>'
        for name, x, y in project_labels(projection)
    )
    pin_svg = render_pin(projection, pin) if pin is not None else ""
    countries_svg = "\n    ".join(country_parts)

    return f"""<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 {vb.width:g} {vb.height:g}"
     preserveAspectRatio="xMidYMid slice" width="100%" height="100%">
  <rect x="0" y="0" width="{vb.width:g}" height="{vb.height:g}" fill="{_BG}"/>
  <g id="geography" transform="translate(0, {pan_y:.2f})">
    {countries_svg}
    {label_svg}
    {pin_svg}
  </g>
</svg>"""
