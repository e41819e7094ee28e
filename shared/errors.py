"""
Shared error handling for the Prism edge gateway.

Errors fall into three families:

- ClientError: the caller sent something malformed; surfaced as a 4xx.
- UpstreamTransientError: an upstream timed out, failed or returned garbage.
  Aggregators absorb these and fall back to the last good value.
- ConfigurationError: a required setting is missing; surfaced as a 500
  naming the setting.

A rate-limit denial is deliberately not an exception: the middleware answers
it directly with a 429.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel

from shared.logging import get_request_id


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class GatewayException(Exception):
    """Base exception for gateway errors that map onto an HTTP response."""

    status_code: int = 500

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=get_request_id(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class ClientError(GatewayException):
    """Malformed or unsupported request."""

    status_code = 400

    def __init__(self, message: str = "Invalid request", details: Optional[Dict[str, Any]] = None, status_code: int = 400):
        super().__init__("CLIENT_ERROR", message, details, status_code)


class ConfigurationError(GatewayException):
    """A required endpoint or credential is not configured."""

    status_code = 500

    def __init__(self, setting: str, message: Optional[str] = None):
        self.setting = setting
        super().__init__(
            "CONFIGURATION_ERROR",
            message or f"Missing required setting: {setting}",
            {"setting": setting},
        )


class UpstreamTransientError(GatewayException):
    """Timeout, network failure, non-2xx or malformed payload from an upstream."""

    status_code = 502

    def __init__(self, upstream: str, message: str = "Upstream request failed", details: Optional[Dict[str, Any]] = None):
        self.upstream = upstream
        super().__init__("UPSTREAM_ERROR", f"{upstream}: {message}", details)


class CircuitOpenError(UpstreamTransientError):
    """Raised instead of calling an upstream whose circuit breaker is open."""

    def __init__(self, upstream: str):
        super().__init__(upstream, "circuit breaker is open")


class UpstreamUnavailableError(GatewayException):
    """An aggregation failed and no previously good value exists to fall back to."""

    status_code = 503

    def __init__(self, resource: str, cause: Optional[BaseException] = None):
        details: Dict[str, Any] = {"resource": resource}
        if cause is not None:
            details["cause"] = str(cause)
        super().__init__("UPSTREAM_UNAVAILABLE", f"{resource} is temporarily unavailable", details)
