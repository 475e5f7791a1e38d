import pytest

from weatherlens import config
from weatherlens.config import DEFAULT_API_URL, PanPolicy, load_settings

ENV_VARS = (
    "WEATHERLENS_API_URL",
    "WEATHERLENS_COUNTRIES_URL",
    "WEATHERLENS_TIMEOUT",
    "WEATHERLENS_FALLBACK_DELAY",
    "WEATHERLENS_PAN_LIMIT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.setattr(config, "load_dotenv", lambda: None)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = load_settings()

    assert settings.api_base_url == DEFAULT_API_URL
    assert settings.request_timeout == 10.0
    assert settings.fallback_delay == 0.6
    assert settings.pan_policy.limit is None


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("WEATHERLENS_API_URL", "http://localhost:8000")
    monkeypatch.setenv("WEATHERLENS_TIMEOUT", "2.5")
    monkeypatch.setenv("WEATHERLENS_FALLBACK_DELAY", "0")
    monkeypatch.setenv("WEATHERLENS_PAN_LIMIT", "200")

    settings = load_settings()

    assert settings.api_base_url == "http://localhost:8000"
    assert settings.request_timeout == 2.5
    assert settings.fallback_delay == 0.0
    assert settings.pan_policy == PanPolicy(limit=200.0)


@pytest.mark.parametrize("name, value", [("WEATHERLENS_TIMEOUT", "soon"), ("WEATHERLENS_PAN_LIMIT", "-5")])
def test_invalid_values(monkeypatch, name, value):
    monkeypatch.setenv(name, value)

    with pytest.raises(ValueError, match=name):
        load_settings()


def test_pan_policy():
    assert PanPolicy().apply(1234.0) == 1234.0
    assert PanPolicy(limit=200).apply(250.0) == 200.0
    assert PanPolicy(limit=200).apply(-250.0) == -200.0
    assert PanPolicy(limit=200).apply(10.0) == 10.0
