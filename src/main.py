"""South Africa Weather Gateway — FastAPI application factory.

A small proxy in front of the OpenWeather current-conditions API that
gates every request (trusted host, rate limit, CORS, security headers) and
keeps recent answers in an in-process cache.

Run locally with:  uvicorn --factory src.main:create_app
"""

from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request, Response

from src.cache.weather import WeatherCache
from src.config.settings import Settings, get_settings
from src.logging.audit import get_audit_logger, setup_logging
from src.providers.base import WeatherProvider
from src.providers.openweather import OpenWeatherProvider
from src.proxy.handler import WeatherService
from src.security.gate import RequestGate
from src.security.hosts import CorsPolicy, HostGuard
from src.security.ratelimit import RateLimiter

VERSION = "1.0.0"

WEATHER_PATH = "/api/weather"

router = APIRouter()


@router.get("/health")
async def health():
    return {"status": "healthy", "version": VERSION}


# Non-GET methods are routed too so the handler answers with a structured 405
@router.api_route(WEATHER_PATH, methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"])
async def weather(request: Request):
    """Current weather for ``?city=<name>``; served from cache when fresh."""
    service: WeatherService = request.app.state.weather_service
    return await service.handle(request)


@router.options(WEATHER_PATH)
async def weather_preflight():
    # CORS headers are attached by the gating middleware
    return Response(status_code=200)


def create_app(
    settings: Settings | None = None,
    provider: WeatherProvider | None = None,
) -> FastAPI:
    """Build the application with all components sharing one Settings value."""
    if settings is None:
        settings = get_settings()
    if provider is None:
        provider = OpenWeatherProvider(settings)

    limiter = RateLimiter(settings)
    cache = WeatherCache(settings)
    service = WeatherService(settings, cache, provider)
    gate = RequestGate(settings, limiter, HostGuard(settings), CorsPolicy(settings))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown lifecycle hooks."""
        setup_logging(settings)
        get_audit_logger().info(
            "Gateway started",
            extra={"audit_data": {"version": VERSION, "environment": settings.environment}},
        )
        yield
        await provider.close()
        get_audit_logger().info("Gateway stopped")

    app = FastAPI(
        title="South Africa Weather Gateway",
        description="Rate-limited, cached proxy for current weather conditions",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.weather_service = service

    app.middleware("http")(gate)
    app.include_router(router)
    return app
