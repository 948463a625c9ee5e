"""OpenWeather Current Weather API provider.

One GET per call, no retries: a failed or slow upstream surfaces straight
back to the caller as a typed WeatherError.
"""

import asyncio

import httpx

from src.config.settings import Settings
from src.errors import ErrorKind, WeatherError
from src.logging.audit import RequestTimer, get_audit_logger
from src.providers.base import WeatherProvider, WeatherSnapshot

SERVICE_NAME = "OpenWeather API"
USER_AGENT = "SAWeatherGateway/1.0"


class OpenWeatherProvider(WeatherProvider):
    """Fetches current conditions from ``{base_url}/weather``."""

    def __init__(self, settings: Settings):
        self._base_url = settings.openweather_base_url.rstrip("/")
        self._api_key = settings.openweather_api_key
        self._timeout = settings.upstream_timeout_seconds
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return self._client

    async def current_weather(self, city: str) -> WeatherSnapshot:
        url = f"{self._base_url}/weather"
        params = {"q": city, "appid": self._api_key, "units": "metric"}
        headers = {"Accept": "application/json", "User-Agent": USER_AGENT}

        client = await self._get_client()
        try:
            with RequestTimer() as timer:
                # Overall deadline; httpx's own timeouts are per phase
                response = await asyncio.wait_for(
                    client.get(url, params=params, headers=headers),
                    timeout=self._timeout,
                )
        except (httpx.TimeoutException, asyncio.TimeoutError):
            raise WeatherError(
                ErrorKind.EXTERNAL_SERVICE,
                "Request timeout while fetching weather data",
            )
        except httpx.HTTPError as e:
            raise WeatherError(
                ErrorKind.EXTERNAL_SERVICE,
                f"Cannot reach {SERVICE_NAME}: {type(e).__name__}",
            )

        get_audit_logger().debug(
            "Upstream responded",
            extra={"audit_data": {
                "service": SERVICE_NAME,
                "upstream_status": response.status_code,
                "latency_ms": timer.elapsed_ms,
            }},
        )

        if response.status_code < 200 or response.status_code >= 300:
            raise _status_error(response.status_code, city)

        try:
            data = response.json()
        except ValueError:
            data = None

        if not isinstance(data, dict):
            raise WeatherError(
                ErrorKind.EXTERNAL_SERVICE,
                f"Invalid response format from {SERVICE_NAME}",
                upstream_status=response.status_code,
            )

        return WeatherSnapshot.from_payload(data)

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None


def _status_error(status: int, city: str) -> WeatherError:
    if status == 404:
        return WeatherError(ErrorKind.NOT_FOUND, f'City "{city}" not found', upstream_status=status)
    if status == 401:
        return WeatherError(
            ErrorKind.UPSTREAM_UNAUTHORIZED,
            f"Invalid API key for {SERVICE_NAME}",
            upstream_status=status,
        )
    if status == 429:
        return WeatherError(
            ErrorKind.RATE_LIMITED,
            f"{SERVICE_NAME} rate limit exceeded",
            upstream_status=status,
        )
    return WeatherError(
        ErrorKind.EXTERNAL_SERVICE,
        f"{SERVICE_NAME} returned status {status}",
        upstream_status=status,
    )
