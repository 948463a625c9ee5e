"""Weather endpoint orchestration: validate -> cache lookup -> fetch -> store.

Errors are caught once, at the endpoint boundary, classified, logged with
request context and turned into the structured JSON error response.
"""

import re
from dataclasses import dataclass

from fastapi import Request
from fastapi.responses import JSONResponse

from src.cache.weather import WeatherCache, cache_key
from src.config.settings import Settings
from src.errors import ErrorKind, WeatherError, classify, error_body
from src.logging.audit import bind_request_context, get_audit_logger
from src.providers.base import WeatherProvider, WeatherSnapshot
from src.security.client import client_ip

MAX_CITY_LENGTH = 100
_CITY_PATTERN = re.compile(r"[A-Za-z\s\-']+")

NO_STORE = "no-cache, no-store, must-revalidate"


def validate_city(city: str | None) -> str:
    """Return the city unchanged if acceptable, else raise a VALIDATION error."""
    if city is None:
        raise WeatherError(
            ErrorKind.VALIDATION, "City parameter is required and must be a string"
        )
    if not city.strip():
        raise WeatherError(ErrorKind.VALIDATION, "City parameter cannot be empty")
    if len(city) > MAX_CITY_LENGTH:
        raise WeatherError(
            ErrorKind.VALIDATION,
            f"City name is too long (max {MAX_CITY_LENGTH} characters)",
        )
    # Only letters, spaces, hyphens and apostrophes
    if not _CITY_PATTERN.fullmatch(city):
        raise WeatherError(ErrorKind.VALIDATION, "City name contains invalid characters")
    return city


@dataclass
class WeatherLookup:
    snapshot: WeatherSnapshot
    cache_hit: bool


class WeatherService:
    """Cache-aside lookup of current weather."""

    def __init__(self, settings: Settings, cache: WeatherCache, provider: WeatherProvider):
        self.settings = settings
        self.cache = cache
        self.provider = provider

    async def lookup(self, method: str, city: str | None) -> WeatherLookup:
        if method.upper() != "GET":
            raise WeatherError(ErrorKind.METHOD_NOT_ALLOWED, "Method not allowed")

        city = validate_city(city)
        key = cache_key(city)

        cached = self.cache.get(key)
        if cached is not None:
            return WeatherLookup(snapshot=cached, cache_hit=True)

        snapshot = await self.provider.current_weather(city)
        self.cache.put(key, snapshot)
        return WeatherLookup(snapshot=snapshot, cache_hit=False)

    async def handle(self, request: Request) -> JSONResponse:
        """Serve one /api/weather request."""
        try:
            result = await self.lookup(request.method, request.query_params.get("city"))
        except Exception as exc:
            return self._error_response(request, classify(exc))

        outcome = "HIT" if result.cache_hit else "MISS"
        bind_request_context(cache=outcome)
        if self.settings.enable_request_logging:
            get_audit_logger().info(
                "Weather served",
                extra={"audit_data": {"city": result.snapshot.city}},
            )

        return JSONResponse(
            status_code=200,
            content=result.snapshot.to_dict(),
            headers={
                "X-Cache": outcome,
                "Cache-Control": f"public, max-age={self.settings.cache_ttl_seconds}",
            },
        )

    def _error_response(self, request: Request, err: WeatherError) -> JSONResponse:
        if self.settings.enable_request_logging:
            get_audit_logger().error(
                "Weather request failed",
                exc_info=None if err.operational else err.__cause__,
                extra={"audit_data": {
                    "error_code": err.code,
                    "error_kind": err.kind.value,
                    "error_message": err.message,
                    "status_code": err.status_code,
                    "upstream_status": err.upstream_status,
                    "url": str(request.url),
                    "method": request.method,
                    "user_agent": request.headers.get("user-agent"),
                    "client_ip": client_ip(request.headers),
                    "environment": self.settings.environment,
                }},
            )

        return JSONResponse(
            status_code=err.status_code,
            content=error_body(err, include_stack=self.settings.is_development),
            headers={"Cache-Control": NO_STORE},
        )
