"""Shared fixtures for the weather gateway test suite."""

import logging

import pytest

from src.config.settings import Settings, get_settings
from src.logging.audit import LOGGER_NAME
from src.providers.base import WeatherSnapshot


@pytest.fixture(autouse=True)
def reset_audit_logger():
    """Undo setup_logging() so caplog sees records in every test."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def make_settings():
    """Factory fixture: build a Settings value with test defaults.

    Usage:
        make_settings(cache_max_size=10, environment="production")
    """
    def _make(**overrides) -> Settings:
        values = {
            "openweather_api_key": "test-owm-key",
            "openweather_base_url": "https://owm.test/data/2.5",
            "trusted_hosts": "localhost,example.com",
            "allowed_origins": "http://localhost:3000,https://weather.example.com",
            "audit_log_file": "",
        }
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def settings(make_settings) -> Settings:
    return make_settings()


@pytest.fixture
def override_settings(monkeypatch):
    """Factory fixture: set env vars and clear settings cache.

    Usage:
        override_settings(OPENWEATHER_API_KEY="k", CACHE_TTL_SECONDS="60")
    """
    def _override(**kwargs):
        for key, value in kwargs.items():
            monkeypatch.setenv(key.upper(), str(value))
        # Clear lru_cache so Settings re-reads env
        get_settings.cache_clear()

    yield _override

    # Always clear cache on teardown so other tests get fresh settings
    get_settings.cache_clear()


@pytest.fixture
def cape_town_payload() -> dict:
    """Current-conditions body as returned by OpenWeather for Cape Town."""
    return {
        "coord": {"lon": 18.4232, "lat": -33.9258},
        "weather": [
            {"id": 801, "main": "Clouds", "description": "few clouds", "icon": "02d"},
        ],
        "main": {
            "temp": 19.4,
            "feels_like": 19.1,
            "humidity": 68,
            "pressure": 1017,
        },
        "wind": {"speed": 6.2, "deg": 160},
        "sys": {"country": "ZA", "sunrise": 1729742000, "sunset": 1729789400},
        "name": "Cape Town",
        "cod": 200,
    }


@pytest.fixture
def cape_town(cape_town_payload) -> WeatherSnapshot:
    return WeatherSnapshot.from_payload(cape_town_payload)
