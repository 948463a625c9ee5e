"""Error taxonomy for the weather endpoint.

A single exception type carries an ErrorKind discriminant; the HTTP status
and machine-readable code for each kind live in one table so that
construction and the error-to-response mapping stay in the same place.
"""

import traceback
from enum import Enum

import httpx


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    METHOD_NOT_ALLOWED = "method_not_allowed"
    NOT_FOUND = "not_found"
    UPSTREAM_UNAUTHORIZED = "upstream_unauthorized"
    RATE_LIMITED = "rate_limited"
    EXTERNAL_SERVICE = "external_service"
    CACHE = "cache"
    INTERNAL = "internal"


# kind -> (HTTP status, machine code)
_ERROR_TABLE: dict[ErrorKind, tuple[int, str]] = {
    ErrorKind.VALIDATION: (400, "VALIDATION_ERROR"),
    ErrorKind.METHOD_NOT_ALLOWED: (405, "METHOD_NOT_ALLOWED"),
    ErrorKind.NOT_FOUND: (404, "NOT_FOUND"),
    # Provider credential problems must never reach the client as a 401
    ErrorKind.UPSTREAM_UNAUTHORIZED: (502, "EXTERNAL_API_ERROR"),
    ErrorKind.RATE_LIMITED: (429, "RATE_LIMIT_EXCEEDED"),
    ErrorKind.EXTERNAL_SERVICE: (502, "EXTERNAL_API_ERROR"),
    ErrorKind.CACHE: (500, "CACHE_ERROR"),
    ErrorKind.INTERNAL: (500, "INTERNAL_ERROR"),
}


class WeatherError(Exception):
    """Operational failure raised inside validation or the upstream fetch."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        upstream_status: int | None = None,
        operational: bool = True,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.upstream_status = upstream_status
        self.operational = operational

    @property
    def status_code(self) -> int:
        return _ERROR_TABLE[self.kind][0]

    @property
    def code(self) -> str:
        return _ERROR_TABLE[self.kind][1]

    def __repr__(self) -> str:
        return f"WeatherError({self.kind.value!r}, {self.message!r})"


def classify(exc: BaseException) -> WeatherError:
    """Convert anything raised at the endpoint boundary into a WeatherError."""
    if isinstance(exc, WeatherError):
        return exc

    if isinstance(exc, (httpx.TimeoutException, TimeoutError)):
        err = WeatherError(
            ErrorKind.EXTERNAL_SERVICE,
            "Request timeout while fetching weather data",
        )
    elif isinstance(exc, httpx.HTTPError):
        err = WeatherError(
            ErrorKind.EXTERNAL_SERVICE,
            "Network error occurred while fetching weather data",
        )
    else:
        err = WeatherError(
            ErrorKind.INTERNAL,
            str(exc) or "An unexpected error occurred",
            operational=False,
        )
    err.__cause__ = exc
    return err


def error_body(err: WeatherError, include_stack: bool = False) -> dict:
    """Render the structured JSON error payload."""
    payload = {
        "message": err.message,
        "code": err.code,
        "statusCode": err.status_code,
    }
    if include_stack:
        source = err.__cause__ or err
        payload["stack"] = "".join(
            traceback.format_exception(type(source), source, source.__traceback__)
        )
    return {"error": payload}
