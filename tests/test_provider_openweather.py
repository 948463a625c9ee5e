"""Tests for src/providers/openweather.py — OpenWeather provider."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from src.errors import ErrorKind, WeatherError
from src.providers.openweather import OpenWeatherProvider


def _mock_client(status_code=200, payload=None, json_error=None):
    response = MagicMock()
    response.status_code = status_code
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload

    client = AsyncMock()
    client.get.return_value = response
    client.is_closed = False
    return client


@pytest.fixture
def provider(settings):
    return OpenWeatherProvider(settings)


class TestCurrentWeather:

    async def test_success(self, provider, cape_town_payload):
        provider._client = _mock_client(payload=cape_town_payload)

        snapshot = await provider.current_weather("Cape Town")

        assert snapshot.city == "Cape Town"
        assert snapshot.country == "ZA"
        assert snapshot.to_dict() == cape_town_payload

    async def test_request_shape(self, provider, cape_town_payload):
        client = _mock_client(payload=cape_town_payload)
        provider._client = client

        await provider.current_weather("Cape Town")

        call = client.get.call_args
        assert call.args[0] == "https://owm.test/data/2.5/weather"
        assert call.kwargs["params"] == {
            "q": "Cape Town",
            "appid": "test-owm-key",
            "units": "metric",
        }
        assert call.kwargs["headers"]["Accept"] == "application/json"

    async def test_single_attempt(self, provider):
        client = _mock_client(status_code=503, payload={})
        provider._client = client
        with pytest.raises(WeatherError):
            await provider.current_weather("Durban")
        assert client.get.await_count == 1

    @pytest.mark.parametrize("status,kind", [
        (404, ErrorKind.NOT_FOUND),
        (401, ErrorKind.UPSTREAM_UNAUTHORIZED),
        (429, ErrorKind.RATE_LIMITED),
        (500, ErrorKind.EXTERNAL_SERVICE),
        (503, ErrorKind.EXTERNAL_SERVICE),
        (302, ErrorKind.EXTERNAL_SERVICE),
    ])
    async def test_status_mapping(self, provider, status, kind):
        provider._client = _mock_client(status_code=status, payload={"cod": str(status)})
        with pytest.raises(WeatherError) as exc_info:
            await provider.current_weather("Nonexistentville")
        assert exc_info.value.kind == kind
        assert exc_info.value.upstream_status == status

    async def test_not_found_message_names_city(self, provider):
        provider._client = _mock_client(status_code=404, payload={})
        with pytest.raises(WeatherError) as exc_info:
            await provider.current_weather("Nonexistentville")
        assert "Nonexistentville" in exc_info.value.message

    async def test_malformed_json(self, provider):
        provider._client = _mock_client(json_error=ValueError("Expecting value"))
        with pytest.raises(WeatherError) as exc_info:
            await provider.current_weather("Durban")
        assert exc_info.value.kind == ErrorKind.EXTERNAL_SERVICE
        assert "Invalid response format" in exc_info.value.message

    @pytest.mark.parametrize("payload", [[1, 2], "text", None, 42])
    async def test_non_object_json(self, provider, payload):
        provider._client = _mock_client(payload=payload)
        with pytest.raises(WeatherError) as exc_info:
            await provider.current_weather("Durban")
        assert exc_info.value.kind == ErrorKind.EXTERNAL_SERVICE

    async def test_httpx_timeout(self, provider):
        client = _mock_client()
        client.get.side_effect = httpx.ReadTimeout("Timed out")
        provider._client = client
        with pytest.raises(WeatherError) as exc_info:
            await provider.current_weather("Durban")
        assert exc_info.value.kind == ErrorKind.EXTERNAL_SERVICE
        assert "timeout" in exc_info.value.message.lower()

    async def test_overall_deadline(self, make_settings):
        provider = OpenWeatherProvider(make_settings(upstream_timeout_seconds=0.05))

        async def hang(*args, **kwargs):
            await asyncio.sleep(5)

        client = _mock_client()
        client.get.side_effect = hang
        provider._client = client

        with pytest.raises(WeatherError) as exc_info:
            await provider.current_weather("Durban")
        assert "timeout" in exc_info.value.message.lower()

    async def test_connect_error(self, provider):
        client = _mock_client()
        client.get.side_effect = httpx.ConnectError("Connection refused")
        provider._client = client
        with pytest.raises(WeatherError) as exc_info:
            await provider.current_weather("Durban")
        assert exc_info.value.kind == ErrorKind.EXTERNAL_SERVICE
        assert exc_info.value.status_code == 502


class TestClose:

    async def test_close(self, provider):
        client = AsyncMock()
        client.is_closed = False
        provider._client = client

        await provider.close()
        client.aclose.assert_called_once()
        assert provider._client is None

    async def test_close_when_no_client(self, provider):
        await provider.close()

    async def test_client_created_lazily(self, provider):
        client = await provider._get_client()
        assert isinstance(client, httpx.AsyncClient)
        assert await provider._get_client() is client
        await provider.close()
