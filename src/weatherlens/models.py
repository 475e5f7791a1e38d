"""Data model for the map, pointer input, forecasts and exports."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Literal


class WeatherLensError(Exception):
    """Base class for all weatherlens errors."""


class MissingInputError(WeatherLensError):
    """A forecast was requested before a pin was placed."""


class ApiError(WeatherLensError):
    """Remote call failed: transport error, non-2xx status, or unparseable body."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CountryDataError(WeatherLensError):
    """Country polygon dataset could not be fetched or decoded."""


@dataclass(frozen=True)
class ViewBox:
    """Intrinsic canvas size the map is authored in."""

    width: float = 800.0
    height: float = 600.0


@dataclass(frozen=True)
class ContainerRect:
    """On-screen bounding rectangle of the map container (client pixels)."""

    left: float
    top: float
    width: float
    height: float


@dataclass(frozen=True)
class CanvasPoint:
    """Point in viewBox space."""

    x: float
    y: float


@dataclass(frozen=True)
class Coordinate:
    """Geographic position in degrees."""

    lat: float  # [-90, 90]
    lon: float  # Conventionally [-180, 180]


@dataclass(frozen=True)
class PointerEvent:
    """A single pointer sample as delivered by the UI."""

    client_x: float
    client_y: float
    timestamp: float  # Seconds, any monotonic origin


class GestureKind(Enum):
    CLICK = "click"
    DRAG = "drag"


@dataclass(frozen=True)
class CountryFeature:
    """One polygon feature of the country dataset."""

    name: str | None  # First non-empty candidate property
    properties: dict[str, Any]
    geometry: Any  # shapely geometry, None when the source geometry was unusable


@dataclass(frozen=True)
class HourlySample:
    timestamp: datetime
    precipitation: float  # mm


@dataclass(frozen=True)
class ForecastResult:
    """Eight hourly precipitation samples plus their total and a summary."""

    hours: tuple[HourlySample, ...]
    total: float  # mm, rounded to 1 decimal
    summary: str


METRIC_UNITS: dict[str, str] = {
    "temperature": "°C",
    "precipitation": "mm",
    "humidity": "%",
    "windspeed": "m/s",
    "air_quality": "AQI",
}


@dataclass(frozen=True)
class ModelMetrics:
    temperature: float
    precipitation: float
    humidity: float
    windspeed: float
    air_quality: float

    def items(self) -> list[tuple[str, float, str]]:
        """Return (name, value, unit) triples in display order."""
        return [(name, getattr(self, name), unit) for name, unit in METRIC_UNITS.items()]


@dataclass(frozen=True)
class ModelResult:
    """Derived metrics and probabilities for one (pin, datetime) pair."""

    metrics: ModelMetrics
    extremes: dict[str, float]  # ExtremeProbabilities, each in [0, 1]
    comfort: dict[str, float]  # ComfortIndices, each in [0, 1]
    description: str


@dataclass(frozen=True)
class ForecastOutcome:
    """A complete forecast. `source` tells live data apart from the synthetic stand-in."""

    pin: Coordinate
    when: datetime
    forecast: ForecastResult
    model: ModelResult
    source: Literal["live", "synthetic"]

    @property
    def is_fallback(self) -> bool:
        return self.source == "synthetic"


@dataclass(frozen=True)
class ForecastState:
    """What the forecast panel should show right now."""

    loading: bool = False
    outcome: ForecastOutcome | None = None
    error: str | None = None  # Blocking message (no pin)
    advisory: str | None = None  # Non-fatal transport failure


@dataclass(frozen=True)
class ExportArtifact:
    """A downloadable file produced by the CSV exporter."""

    filename: str
    content: bytes
    source: Literal["remote", "local"]
    media_type: str = "text/csv"


@dataclass(frozen=True)
class HealthStatus:
    status_code: int | None  # None when the server could not be reached
    reason: str
    text: str

    @property
    def ok(self) -> bool:
        return self.status_code is not None and 200 <= self.status_code < 300


@dataclass(frozen=True)
class DragStart:
    """Snapshot taken at pointer-down; the drag is interpreted against it."""

    client_x: float
    client_y: float
    timestamp: float
    canvas: CanvasPoint | None
    rotation: float
    pan_y: float
    start_lon: float | None  # Longitude under the pointer in the frozen projection
