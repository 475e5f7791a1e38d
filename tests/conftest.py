from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

import httpx
import pytest

from weatherlens.api import WeatherLensApi
from weatherlens.models import ContainerRect

BASE_URL = "http://weatherlens.test"


class Recorder:
    """MockTransport handler that records requests and delegates to a responder."""

    def __init__(self, responder: Callable[[httpx.Request], httpx.Response]) -> None:
        self.responder = responder
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)


def make_api(responder: Callable[[httpx.Request], httpx.Response]) -> tuple[WeatherLensApi, Recorder]:
    recorder = Recorder(responder)
    api = WeatherLensApi(BASE_URL, timeout=1.0, transport=httpx.MockTransport(recorder))
    return api, recorder


def unreachable(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("network is unreachable", request=request)


@pytest.fixture
def when() -> datetime:
    return datetime(2025, 10, 4, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def canvas_rect() -> ContainerRect:
    """A container exactly the size of the 800x600 canvas, so client == canvas."""
    return ContainerRect(left=0.0, top=0.0, width=800.0, height=600.0)


def square(x0: float, y0: float, x1: float, y1: float) -> dict:
    return {
        "type": "Polygon",
        "coordinates": [[[x0, y0], [x1, y0], [x1, y1], [x0, y1], [x0, y0]]],
    }


@pytest.fixture
def feature_collection() -> dict:
    return {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "properties": {"ADMIN": "Squareland"}, "geometry": square(-10, -10, 10, 10)},
            {"type": "Feature", "properties": {"name": "Overlap"}, "geometry": square(0, 0, 5, 5)},
            {
                "type": "Feature",
                "properties": {"name": "", "NAME_LONG": "Republic of Long Name"},
                "geometry": square(20, 20, 30, 30),
            },
            {
                "type": "Feature",
                "properties": {"name": "Broken"},
                "geometry": {"type": "Polygon", "coordinates": [[[40, 40], [41, 41]]]},
            },
        ],
    }
