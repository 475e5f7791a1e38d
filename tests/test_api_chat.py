import asyncio
import json

import httpx
import pytest

from conftest import make_api, unreachable
from weatherlens.chat import NO_RESPONSE, ask
from weatherlens.models import ApiError


def test_health_ok():
    api, recorder = make_api(lambda request: httpx.Response(200, text="ok"))

    status = asyncio.run(api.health())

    assert status.ok
    assert status.status_code == 200
    assert status.reason == "OK"
    assert status.text == "ok"
    assert recorder.requests[0].url.path == "/api/health"


def test_health_reports_server_error_without_raising():
    api, _ = make_api(lambda request: httpx.Response(502, text="bad gateway"))

    status = asyncio.run(api.health())

    assert not status.ok
    assert status.status_code == 502


def test_health_unreachable():
    api, _ = make_api(unreachable)

    status = asyncio.run(api.health())

    assert status.status_code is None
    assert status.reason == "ConnectError"
    assert not status.ok


def test_weather_error_carries_status():
    api, _ = make_api(lambda request: httpx.Response(404))

    with pytest.raises(ApiError) as excinfo:
        asyncio.run(api.weather(1.0, 2.0, None))

    assert excinfo.value.status_code == 404


def test_weather_without_datetime_omits_param():
    api, recorder = make_api(lambda request: httpx.Response(200, json={"data": {}}))

    body = asyncio.run(api.weather(1.0, 2.0, None))

    assert body == {"data": {}}
    assert "datetime" not in recorder.requests[0].url.params


def test_ask_posts_input_and_returns_response():
    api, recorder = make_api(lambda request: httpx.Response(200, json={"response": "Bring an umbrella."}))

    reply = asyncio.run(ask(api, "  Will it rain?  "))

    assert reply == "Bring an umbrella."
    (request,) = recorder.requests
    assert request.method == "POST"
    assert request.url.path == "/api/nasa"
    assert json.loads(request.content) == {"input": "Will it rain?"}


def test_ask_missing_response_field():
    api, _ = make_api(lambda request: httpx.Response(200, json={"other": 1}))

    assert asyncio.run(ask(api, "hello")) == NO_RESPONSE


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
def test_ask_blank_input_sends_nothing(text):
    api, recorder = make_api(lambda request: httpx.Response(200, json={"response": "x"}))

    assert asyncio.run(ask(api, text)) is None
    assert recorder.requests == []


def test_ask_strips_control_characters():
    api, recorder = make_api(lambda request: httpx.Response(200, json={"response": "ok"}))

    asyncio.run(ask(api, "rain\x00fall\x1b"))

    assert json.loads(recorder.requests[0].content) == {"input": "rainfall"}


def test_ask_server_error_raises():
    api, _ = make_api(lambda request: httpx.Response(500))

    with pytest.raises(ApiError):
        asyncio.run(ask(api, "hello"))
