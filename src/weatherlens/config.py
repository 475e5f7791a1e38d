"""Runtime configuration: environment-driven settings and fixed map constants."""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from weatherlens.models import ViewBox

DEFAULT_API_URL = "https://nasa-hackathon-3dwe.onrender.com"
DEFAULT_COUNTRIES_URL = "https://cdn.jsdelivr.net/npm/world-atlas@2/countries-110m.json"

VIEW_BOX = ViewBox(width=800.0, height=600.0)
BASE_SCALE = 200.0  # Mercator scale at zoom 1 (canvas px per radian)

ZOOM_MIN = 1.0
ZOOM_MAX = 8.0
ZOOM_IN_FACTOR = 1.2
ZOOM_OUT_FACTOR = 0.8

CLICK_MAX_DISTANCE_PX = 6.0  # Strictly less than
CLICK_MAX_DURATION_S = 0.3  # Strictly less than

FORECAST_HOURS = 8
UNITS = "metric"


@dataclass(frozen=True)
class PanPolicy:
    """Vertical pan bound. `limit=None` means pan accumulates freely."""

    limit: float | None = None

    def apply(self, pan_y: float) -> float:
        if self.limit is None:
            return pan_y
        return max(-self.limit, min(pan_y, self.limit))


@dataclass(frozen=True)
class Settings:
    api_base_url: str = DEFAULT_API_URL
    countries_url: str = DEFAULT_COUNTRIES_URL
    request_timeout: float = 10.0  # Seconds
    fallback_delay: float = 0.6  # Seconds of simulated latency before a synthetic result lands
    pan_policy: PanPolicy = PanPolicy()


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def load_settings() -> Settings:
    """Build Settings from the process environment (after loading `.env`).

    Recognised variables:
        WEATHERLENS_API_URL: Forecast backend base URL.
        WEATHERLENS_COUNTRIES_URL: GeoJSON or TopoJSON country dataset URL.
        WEATHERLENS_TIMEOUT: HTTP timeout in seconds.
        WEATHERLENS_FALLBACK_DELAY: Delay before a synthetic forecast is committed.
        WEATHERLENS_PAN_LIMIT: Symmetric vertical pan bound in canvas pixels.
            Unset or empty leaves pan unbounded.

    Raises:
        ValueError: When a numeric variable does not parse.
    """
    load_dotenv()

    pan_raw = os.environ.get("WEATHERLENS_PAN_LIMIT", "").strip()
    pan_limit = _float_env("WEATHERLENS_PAN_LIMIT", 0.0) if pan_raw else None
    if pan_limit is not None and pan_limit < 0:
        raise ValueError("WEATHERLENS_PAN_LIMIT must not be negative")

    return Settings(
        api_base_url=os.environ.get("WEATHERLENS_API_URL") or DEFAULT_API_URL,
        countries_url=os.environ.get("WEATHERLENS_COUNTRIES_URL") or DEFAULT_COUNTRIES_URL,
        request_timeout=_float_env("WEATHERLENS_TIMEOUT", 10.0),
        fallback_delay=_float_env("WEATHERLENS_FALLBACK_DELAY", 0.6),
        pan_policy=PanPolicy(limit=pan_limit),
    )
