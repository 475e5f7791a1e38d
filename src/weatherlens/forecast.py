"""Forecast retrieval with a deterministic synthetic fallback.

The live path asks the backend for the pin and datetime. Any transport
problem is reported once as an advisory and replaced by a synthetic
forecast. The synthetic forecast is built from sine terms of the
coordinates, so the same inputs always give the same numbers.
"""

import asyncio
import logging
import math
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta
from typing import Any

from weatherlens.api import WeatherLensApi
from weatherlens.config import FORECAST_HOURS
from weatherlens.models import (
    ApiError,
    Coordinate,
    ForecastOutcome,
    ForecastResult,
    ForecastState,
    HourlySample,
    MissingInputError,
    ModelMetrics,
    ModelResult,
)

logger = logging.getLogger(__name__)

MISSING_PIN_MESSAGE = "Please place a pin on the map before predicting."
NOTABLE_THRESHOLD = 0.07

SYNTHETIC_SUMMARY = (
    "Persistent rainfall is expected throughout the day, with precipitation peaking in the early afternoon. "
    "Humidity levels will remain high, creating a damp and uncomfortable atmosphere. "
    "Winds are moderate but may increase near coastal areas as the system strengthens. "
    "Residents should prepare for occasional thunderstorms and possible flooding in low-lying regions."
)

AdvisoryHandler = Callable[[str], None]


# --- numeric helpers ---------------------------------------------------


def _half_up(value: float) -> float:
    """Round half toward +inf, like JavaScript's Math.round."""
    return float(math.floor(value + 0.5))


def _round_to(value: float, digits: int) -> float:
    factor = 10**digits
    return _half_up(value * factor) / factor


def _clamp01(value: float) -> float:
    return max(0.0, min(value, 1.0))


def _probability(value: float) -> float:
    return _round_to(_clamp01(value), 2)


def _number(value: Any, default: float = math.nan) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError, OverflowError):
        return math.nan


def _display_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def _label(key: str) -> str:
    return key.replace("_", " ")


def _notable(probabilities: Mapping[str, float]) -> list[str]:
    """Names and percentages above the threshold, highest first."""
    ranked = sorted(probabilities.items(), key=lambda kv: kv[1], reverse=True)
    return [
        f"{_label(key)} {int(_half_up(value * 100))}%"
        for key, value in ranked
        if value > NOTABLE_THRESHOLD
    ]


def _hour_steps(when: datetime, values: list[float]) -> tuple[HourlySample, ...]:
    return tuple(
        HourlySample(timestamp=when + timedelta(hours=i), precipitation=v)
        for i, v in enumerate(values)
    )


def _join(*parts: str) -> str:
    return " ".join(p for p in parts if p).strip()


# --- synthetic path ----------------------------------------------------


def synthesize_forecast(lat: float, lon: float, when: datetime) -> ForecastResult:
    """Eight hourly precipitation values derived from sin((lat + lon + i) * 0.12345)."""
    base = (abs(lat) + abs(lon)) % 10
    values = []
    for i in range(FORECAST_HOURS):
        seed = math.sin((lat + lon + i) * 0.12345)
        values.append(max(0.0, _half_up(((seed + 1) * 5 + (base % 3)) * 10) / 10))
    total = sum(values)
    return ForecastResult(
        hours=_hour_steps(when, values),
        total=_round_to(total, 1),
        summary=SYNTHETIC_SUMMARY,
    )


def _synthetic_climate(lat: float, lon: float) -> tuple[float, float, float]:
    """(temperature, humidity, windspeed) as pure functions of the coordinates."""
    temperature = 20 + math.fmod(lat, 10) + math.sin(lon * 0.1) * 5
    humidity = 50 + abs(math.fmod(lon, 20))
    windspeed = 3 + abs(math.fmod(lat, 5))
    return temperature, humidity, windspeed


def synthesize_metrics(lat: float, lon: float, precip_total: float) -> ModelMetrics:
    """Closed-form stand-in metrics. Only precipitation depends on the hourly series."""
    temperature, humidity, windspeed = _synthetic_climate(lat, lon)
    air_quality = max(10.0, _half_up(50 + abs(lat) % 50))
    return ModelMetrics(
        temperature=_round_to(temperature, 1),
        precipitation=_round_to(precip_total, 1),
        humidity=_round_to(humidity, 0),
        windspeed=_round_to(windspeed, 1),
        air_quality=air_quality,
    )


def extreme_probabilities(lon: float, temperature: float, windspeed: float, precip_total: float) -> dict[str, float]:
    return {
        "typhoon_probability": _probability(0.01 if abs(lon) > 120 else 0.0),
        "heatwave_probability": _probability((temperature - 28) / 50),
        "cold_wave_probability": _probability((5 - temperature) / 50),
        "heavy_rain_probability": _probability(precip_total / 30),
        "strong_wind_probability": _probability(windspeed / 20),
        "thunderstorm_probability": _probability(precip_total / 8),
    }


def comfort_indices(temperature: float, windspeed: float, humidity: float) -> dict[str, float]:
    return {
        "very_hot": _probability((temperature - 30) / 10),
        "very_cold": _probability((0 - temperature) / 10),
        "very_windy": _probability((windspeed - 12) / 20),
        "very_wet": _probability(humidity / 120),
        "very_uncomfortable": _probability((humidity / 100 + max(0.0, (temperature - 28) / 10)) / 2),
    }


def synthesize_model(lat: float, lon: float, forecast: ForecastResult) -> ModelResult:
    """Metrics, probabilities and narrative for a synthetic forecast."""
    precip_total = sum(h.precipitation for h in forecast.hours)
    # Probabilities use the unrounded inputs; metrics are rounded for display.
    temperature, humidity, windspeed = _synthetic_climate(lat, lon)

    extremes = extreme_probabilities(lon, temperature, windspeed, precip_total)
    comfort = comfort_indices(temperature, windspeed, humidity)

    description = (
        f"Forecast: {len(forecast.hours)} hourly steps, "
        f"total precip {_display_number(_round_to(precip_total, 1))} mm."
    )
    notable_extremes = _notable(extremes)
    if notable_extremes:
        description += f" Notable extremes: {', '.join(notable_extremes)}."
    notable_comfort = _notable(comfort)
    if notable_comfort:
        description += f" Comfort concerns: {', '.join(notable_comfort)}."

    return ModelResult(
        metrics=synthesize_metrics(lat, lon, precip_total),
        extremes=extremes,
        comfort=comfort,
        description=_join(forecast.summary, description),
    )


# --- live path ---------------------------------------------------------


def _value(data: Mapping[str, Any], key: str) -> Any:
    entry = data.get(key)
    return entry.get("value") if isinstance(entry, Mapping) else None


def _probabilities(raw: Any) -> dict[str, float]:
    if not isinstance(raw, Mapping):
        return {}
    result = {}
    for key, value in raw.items():
        number = _number(value)
        if math.isnan(number):
            continue
        result[str(key)] = _clamp01(number)
    return result


def normalize_response(body: Mapping[str, Any], when: datetime) -> tuple[ForecastResult, ModelResult]:
    """Map a /api/weather payload onto the forecast and model shapes.

    The endpoint reports a single precipitation value, which is repeated
    across the eight hourly steps. Absent metrics become NaN.

    Raises:
        ValueError: When the precipitation value is not a finite number.
    """
    data = body.get("data")
    if not isinstance(data, Mapping):
        data = {}

    precip = _number(_value(data, "precipitation"), default=0.0)
    if not math.isfinite(precip):
        raise ValueError(f"precipitation is not a finite number: {precip}")
    hours = _hour_steps(when, [precip] * FORECAST_HOURS)
    total = _round_to(sum(h.precipitation for h in hours), 1)

    climate = data.get("climate_description") or ""
    if not isinstance(climate, str):
        climate = str(climate)
    if climate:
        summary = climate
    elif total > 20:
        summary = "Heavy precipitation expected"
    elif total > 5:
        summary = "Moderate rain expected"
    else:
        summary = "Light or no rain expected"

    metrics = ModelMetrics(
        temperature=_number(_value(data, "temperature")),
        precipitation=_number(_value(data, "precipitation")),
        humidity=_number(_value(data, "humidity")),
        windspeed=_number(_value(data, "windspeed")),
        air_quality=_number(_value(data, "air_quality")),
    )
    comfort_raw = data.get("comfort_index") or data.get("comfort")
    model = ModelResult(
        metrics=metrics,
        extremes=_probabilities(data.get("extreme_weather")),
        comfort=_probabilities(comfort_raw),
        description=summary,
    )
    return ForecastResult(hours=hours, total=total, summary=summary), model


# --- service -----------------------------------------------------------


class ForecastService:
    """Live forecast with synthetic fallback.

    Args:
        api: Backend client.
        on_advisory: Called once per failed live request with a short message.
    """

    def __init__(self, api: WeatherLensApi, on_advisory: AdvisoryHandler | None = None) -> None:
        self.api = api
        self.on_advisory = on_advisory

    async def fetch_live(self, pin: Coordinate, when: datetime) -> ForecastOutcome:
        """Live forecast only.

        Raises:
            ApiError: On any transport or decoding failure, including a
                payload that cannot be normalised.
        """
        body = await self.api.weather(pin.lat, pin.lon, when)
        try:
            forecast, model = normalize_response(body, when)
        except (ArithmeticError, ValueError, TypeError) as exc:
            raise ApiError(f"malformed forecast payload: {exc}") from exc
        return ForecastOutcome(pin=pin, when=when, forecast=forecast, model=model, source="live")

    def synthesize(self, pin: Coordinate, when: datetime) -> ForecastOutcome:
        forecast = synthesize_forecast(pin.lat, pin.lon, when)
        model = synthesize_model(pin.lat, pin.lon, forecast)
        return ForecastOutcome(pin=pin, when=when, forecast=forecast, model=model, source="synthetic")

    def report(self, message: str) -> None:
        if self.on_advisory is not None:
            self.on_advisory(message)

    async def forecast(self, pin: Coordinate | None, when: datetime) -> ForecastOutcome:
        """Live forecast, or the synthetic one if the backend fails.

        Raises:
            MissingInputError: No pin; nothing is fetched.
        """
        if pin is None:
            raise MissingInputError(MISSING_PIN_MESSAGE)
        try:
            return await self.fetch_live(pin, when)
        except ApiError as exc:
            logger.warning("Forecast API failed (%s); using synthetic forecast", exc)
            self.report(str(exc))
            return self.synthesize(pin, when)


def _fire(waiter: asyncio.Future) -> None:
    if not waiter.done():
        waiter.set_result(True)


class ForecastSession:
    """Forecast panel state for one map view.

    Every `refresh` takes a new request token; only the newest request may
    commit. A synthetic result waits `fallback_delay` seconds on a timer the
    session owns, and `close` cancels that timer.
    """

    def __init__(self, service: ForecastService, fallback_delay: float = 0.6) -> None:
        self.service = service
        self.fallback_delay = fallback_delay
        self.state = ForecastState()
        self._token = 0
        self._timer: asyncio.TimerHandle | None = None
        self._waiter: asyncio.Future | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _current(self, token: int) -> bool:
        return not self._closed and token == self._token

    async def refresh(self, pin: Coordinate | None, when: datetime) -> ForecastState:
        """Fetch for (pin, when) and commit the result if nothing newer was requested.

        Returns:
            The session state after this request settles. For a superseded
            request that is whatever the newer request has committed so far.
        """
        self._token += 1
        token = self._token
        self._cancel_timer()

        if self._closed:
            return self.state
        if pin is None:
            self.state = ForecastState(error=MISSING_PIN_MESSAGE)
            return self.state

        self.state = ForecastState(loading=True)
        try:
            return await self._settle(token, pin, when)
        finally:
            # Every exit of the current request clears the spinner.
            if self._current(token) and self.state.loading:
                self.state = ForecastState()

    async def _settle(self, token: int, pin: Coordinate, when: datetime) -> ForecastState:
        advisory = None
        try:
            outcome = await self.service.fetch_live(pin, when)
        except ApiError as exc:
            if not self._current(token):
                logger.debug("Dropping failure of superseded request %d", token)
                return self.state
            advisory = str(exc)
            logger.warning("Forecast API failed (%s); using synthetic forecast", exc)
            self.service.report(advisory)
            if not await self._delay(self.fallback_delay):
                return self.state
            outcome = self.service.synthesize(pin, when)

        if not self._current(token):
            logger.debug("Dropping stale forecast for request %d", token)
            return self.state
        self.state = ForecastState(outcome=outcome, advisory=advisory)
        return self.state

    async def _delay(self, seconds: float) -> bool:
        """Wait on the owned timer. False if it was cancelled first."""
        loop = asyncio.get_running_loop()
        waiter = loop.create_future()
        self._waiter = waiter
        self._timer = loop.call_later(seconds, _fire, waiter)
        try:
            return await waiter
        finally:
            if self._waiter is waiter:
                self._timer = None
                self._waiter = None

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._waiter is not None and not self._waiter.done():
            self._waiter.set_result(False)
        self._waiter = None

    def close(self) -> None:
        """Tear down: no pending timer may write to this session afterwards."""
        self._closed = True
        self._cancel_timer()
        if self.state.loading:
            self.state = ForecastState()
