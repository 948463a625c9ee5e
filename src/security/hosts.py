"""Trusted-host validation and CORS decisions.

Both sets (trusted hosts, allowed origins) are read once from settings and
never mutated afterwards.
"""

from dataclasses import dataclass, field

from src.config.settings import Settings

PREFLIGHT_METHOD = "OPTIONS"


class HostGuard:
    """Validates the Host header against the configured trusted hosts."""

    def __init__(self, settings: Settings):
        self._trusted = frozenset(settings.trusted_hosts_list)

    def is_trusted(self, host: str | None) -> bool:
        """Exact match, or a subdomain of a trusted host (dot boundary required)."""
        if not host:
            return False
        return any(
            host == trusted or host.endswith(f".{trusted}")
            for trusted in self._trusted
        )


@dataclass
class CorsDecision:
    preflight: bool
    headers: dict[str, str] = field(default_factory=dict)
    status_code: int = 200  # only meaningful for the preflight template


class CorsPolicy:
    """Computes CORS response headers against an allow-list of origins."""

    def __init__(self, settings: Settings):
        self._origins = frozenset(settings.allowed_origins_list)
        self._credentials = settings.cors_allow_credentials
        self._methods = settings.cors_allow_methods
        self._headers = settings.cors_allow_headers
        self._max_age = settings.cors_max_age

    def is_allowed_origin(self, origin: str | None) -> bool:
        return bool(origin) and origin in self._origins

    def decide(self, origin: str | None, method: str) -> CorsDecision:
        headers: dict[str, str] = {}

        # Never defaulted to "*": unknown origins get no echo header at all
        if self.is_allowed_origin(origin):
            headers["Access-Control-Allow-Origin"] = origin
            headers["Vary"] = "Origin"

        if self._credentials:
            headers["Access-Control-Allow-Credentials"] = "true"

        if method.upper() != PREFLIGHT_METHOD:
            return CorsDecision(preflight=False, headers=headers)

        headers["Access-Control-Allow-Methods"] = self._methods
        headers["Access-Control-Allow-Headers"] = self._headers
        headers["Access-Control-Max-Age"] = str(self._max_age)
        return CorsDecision(preflight=True, headers=headers)
