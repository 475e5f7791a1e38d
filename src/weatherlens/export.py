"""CSV export: server-side history file first, locally built forecast table otherwise."""

import csv
import io
import logging
import time

from weatherlens.api import WeatherLensApi
from weatherlens.models import ApiError, Coordinate, ExportArtifact, ForecastOutcome

logger = logging.getLogger(__name__)


def build_forecast_csv(outcome: ForecastOutcome | None) -> str:
    """Render the hourly series and metrics as CSV, every cell quoted.

    Layout: a ``time,precip_mm`` header and one row per hour, a blank row,
    then a ``metric,value`` header, one row per metric and a final
    ``description`` row holding the narrative.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(["time", "precip_mm"])
    if outcome is not None:
        for hour in outcome.forecast.hours:
            writer.writerow([hour.timestamp.isoformat(), hour.precipitation])
    writer.writerow([])
    writer.writerow(["metric", "value"])
    if outcome is not None:
        for name, value, _unit in outcome.model.metrics.items():
            writer.writerow([name, value])
        writer.writerow(["description", outcome.model.description])
    return buffer.getvalue()


class CsvExporter:
    def __init__(self, api: WeatherLensApi, clock=time.time) -> None:
        self.api = api
        self._clock = clock

    async def export(self, pin: Coordinate, outcome: ForecastOutcome | None) -> ExportArtifact:
        """Return a downloadable CSV for the pin.

        Any remote failure falls through to the local table built from
        `outcome`; local generation does not raise.
        """
        stamp = int(self._clock() * 1000)
        try:
            content = await self.api.history_csv(pin.lat, pin.lon)
        except ApiError as exc:
            logger.warning("History CSV unavailable (%s); building it locally", exc)
        else:
            return ExportArtifact(
                filename=f"history_{pin.lat}_{pin.lon}_{stamp}.csv",
                content=content,
                source="remote",
            )

        return ExportArtifact(
            filename=f"forecast_{stamp}.csv",
            content=build_forecast_csv(outcome).encode("utf-8"),
            source="local",
        )
