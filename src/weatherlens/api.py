"""Async HTTP client for the forecast backend."""

import logging
from datetime import datetime
from typing import Any

import httpx

from weatherlens.config import UNITS
from weatherlens.models import ApiError, HealthStatus

logger = logging.getLogger(__name__)


class WeatherLensApi:
    """Thin wrapper around the backend endpoints.

    A fresh ``httpx.AsyncClient`` is opened per call, so one instance can be
    shared across separate event loops (Streamlit runs each script pass in
    its own ``asyncio.run``).

    Args:
        base_url: Backend root, e.g. ``https://example.org``.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> httpx.Response:
        try:
            async with self._client() as client:
                resp = await client.get(path, params=params)
        except httpx.HTTPError as exc:
            raise ApiError(f"{path}: {exc.__class__.__name__}: {exc}") from exc
        if not resp.is_success:
            raise ApiError(f"server {resp.status_code}", status_code=resp.status_code)
        return resp

    async def health(self) -> HealthStatus:
        """Check that the server answers. Never raises; unreachable servers yield status_code=None."""
        try:
            async with self._client() as client:
                resp = await client.get("/api/health")
        except httpx.HTTPError as exc:
            return HealthStatus(status_code=None, reason=exc.__class__.__name__, text=str(exc))
        return HealthStatus(status_code=resp.status_code, reason=resp.reason_phrase, text=resp.text)

    async def weather(
        self, latitude: float, longitude: float, when: datetime | None, units: str = UNITS
    ) -> dict[str, Any]:
        """GET /api/weather and return the decoded JSON object.

        Raises:
            ApiError: Transport failure, non-2xx status, or a body that is not a JSON object.
        """
        params: dict[str, Any] = {"latitude": str(latitude), "longitude": str(longitude)}
        if when is not None:
            params["datetime"] = when.isoformat()
        params["units"] = units
        resp = await self._get("/api/weather", params=params)
        try:
            body = resp.json()
        except ValueError as exc:
            raise ApiError("invalid json", status_code=resp.status_code) from exc
        if not isinstance(body, dict):
            raise ApiError("unexpected payload", status_code=resp.status_code)
        return body

    async def history_csv(self, latitude: float, longitude: float) -> bytes:
        """GET /api/history.csv as raw bytes."""
        params = {"latitude": str(latitude), "longitude": str(longitude)}
        resp = await self._get("/api/history.csv", params=params)
        return resp.content

    async def chat(self, text: str) -> dict[str, Any]:
        """POST /api/nasa with ``{"input": text}``."""
        try:
            async with self._client() as client:
                resp = await client.post("/api/nasa", json={"input": text})
        except httpx.HTTPError as exc:
            raise ApiError(f"/api/nasa: {exc.__class__.__name__}: {exc}") from exc
        if not resp.is_success:
            raise ApiError(f"server {resp.status_code}", status_code=resp.status_code)
        try:
            body = resp.json()
        except ValueError as exc:
            raise ApiError("invalid json", status_code=resp.status_code) from exc
        return body if isinstance(body, dict) else {}
