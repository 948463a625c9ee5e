"""Request gating middleware.

Pipeline: Log -> Excluded path bypass -> Trusted host -> Suspicious headers
(production) -> Rate limit -> Preflight / handler -> Security headers -> CORS
"""

from collections.abc import Awaitable, Callable

from fastapi import Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from src.config.settings import Settings
from src.logging.audit import (
    bind_request_context,
    generate_request_id,
    get_audit_logger,
    request_context_var,
    request_id_var,
)
from src.security.client import client_ip, client_key
from src.security.headers import apply_security_headers
from src.security.hosts import CorsDecision, CorsPolicy, HostGuard
from src.security.ratelimit import RateLimiter

SUSPICIOUS_HEADERS = ("x-forwarded-host", "x-original-url", "x-rewrite-url")

CallNext = Callable[[Request], Awaitable[Response]]


class RequestGate:
    """HTTP middleware applying host, header, rate-limit and CORS policy."""

    def __init__(
        self,
        settings: Settings,
        limiter: RateLimiter,
        host_guard: HostGuard,
        cors: CorsPolicy,
    ):
        self.settings = settings
        self.limiter = limiter
        self.host_guard = host_guard
        self.cors = cors
        self._excluded = tuple(settings.excluded_paths_list)

    async def __call__(self, request: Request, call_next: CallNext) -> Response:
        rid = generate_request_id()
        request_id_var.set(rid)
        key = client_key(request.headers)
        request_context_var.set({"client_key": key})
        logger = get_audit_logger()
        path = request.url.path

        if self.settings.enable_request_logging:
            logger.info(
                "Request received",
                extra={"audit_data": {
                    "method": request.method,
                    "url": str(request.url),
                    "user_agent": request.headers.get("user-agent"),
                    "client_ip": client_ip(request.headers),
                    "referer": request.headers.get("referer"),
                }},
            )

        if path.startswith(self._excluded):
            return await call_next(request)

        # 1. Trusted host
        host = request.headers.get("host")
        if not self.host_guard.is_trusted(host):
            self._security_event(request, "UNTRUSTED_HOST", host=host)
            return PlainTextResponse("Forbidden", status_code=403)

        # 2. Suspicious headers (production only)
        if not self._headers_ok(request):
            self._security_event(request, "SUSPICIOUS_HEADERS")
            return PlainTextResponse("Bad Request", status_code=400)

        decision = self.cors.decide(request.headers.get("origin"), request.method)

        # 3. Rate limiting
        tier = self.limiter.tier_for_path(path)
        bind_request_context(tier=tier.name)
        result = self.limiter.check(key, tier)
        if not result.allowed:
            self._security_event(
                request,
                "RATE_LIMIT_EXCEEDED",
                tier=tier.name,
                retry_after=result.retry_after,
                block_remaining=result.block_remaining,
            )
            headers = {}
            if result.wait_seconds is not None:
                headers["Retry-After"] = str(result.wait_seconds)
            content = {"error": "Rate limit exceeded"}
            if result.retry_after is not None:
                content["retryAfter"] = result.retry_after
            if result.block_remaining is not None:
                content["blockRemaining"] = result.block_remaining
            content["message"] = "Too many requests, please try again later."
            response = JSONResponse(status_code=429, content=content, headers=headers)
            return self._finish(response, decision, rid)

        # 4. Preflight short-circuits with the CORS template
        if decision.preflight:
            response = Response(status_code=decision.status_code)
        else:
            response = await call_next(request)

        return self._finish(response, decision, rid)

    def _finish(self, response: Response, decision: CorsDecision, rid: str) -> Response:
        apply_security_headers(response, self.settings)
        for name, value in decision.headers.items():
            response.headers[name] = value
        response.headers["X-Request-Id"] = rid
        return response

    def _headers_ok(self, request: Request) -> bool:
        if not self.settings.is_production:
            return True
        return not any(request.headers.get(name) for name in SUSPICIOUS_HEADERS)

    def _security_event(self, request: Request, event: str, **details) -> None:
        if not self.settings.enable_request_logging:
            return
        get_audit_logger().warning(
            f"SECURITY EVENT: {event}",
            extra={"audit_data": {
                "event": event,
                "method": request.method,
                "url": str(request.url),
                "client_key": client_key(request.headers),
                "user_agent": request.headers.get("user-agent"),
                **details,
            }},
        )
