"""Coordinate text for the live readout and the pin label."""

import math

from weatherlens.models import Coordinate


def _missing(value: float | None) -> bool:
    return value is None or math.isnan(value)


def format_lat(lat: float | None) -> str:
    if _missing(lat):
        return "--"
    hemisphere = "N" if lat >= 0 else "S"
    return f"{abs(lat):.3f}°{hemisphere}"


def format_lon(lon: float | None) -> str:
    if _missing(lon):
        return "--"
    hemisphere = "E" if lon >= 0 else "W"
    return f"{abs(lon):.3f}°{hemisphere}"


def format_coordinate(coord: Coordinate | None) -> str:
    """``lon , lat`` with hemisphere suffixes, e.g. ``100.000°W , 35.000°N``."""
    if coord is None:
        return f"{format_lon(None)} , {format_lat(None)}"
    return f"{format_lon(coord.lon)} , {format_lat(coord.lat)}"
