"""Error taxonomy shared by the tools, agents and HTTP layer.

Lower layers raise these with short client-safe messages and log the detail
themselves. ``server.api`` is the only place that turns them into responses.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class StylistError(Exception):
    """Base class for errors with a client-safe message and HTTP status."""

    status_code = 500
    error_code = "internal_error"

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.error_code, "message": self.message}


class AuthenticationError(StylistError):
    status_code = 401
    error_code = "unauthorized"


class AuthorizationError(StylistError):
    status_code = 403
    error_code = "forbidden"

    def __init__(self, message: str = "You do not have permission to access this resource") -> None:
        super().__init__(message)


class RequestValidationError(StylistError):
    """Malformed request body or query; carries field level detail."""

    status_code = 400
    error_code = "validation_error"

    def __init__(self, message: str = "Validation failed", details: Optional[List[Dict[str, Any]]] = None) -> None:
        super().__init__(message)
        self.details = details or []

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["details"] = self.details
        return payload


class InvalidImageURLError(RequestValidationError):
    def __init__(self, message: str = "Invalid image URL") -> None:
        super().__init__(message, details=[{"loc": ["imageUrl"], "msg": message}])


class InvalidImageFileError(RequestValidationError):
    def __init__(self, message: str) -> None:
        super().__init__(message, details=[{"loc": ["image"], "msg": message}])


class NotFoundError(StylistError):
    status_code = 404
    error_code = "not_found"


class LocationNotFoundError(NotFoundError):
    def __init__(self, message: str = "Location not found") -> None:
        super().__init__(message)


class UpstreamServiceError(StylistError):
    """A third-party provider failed; the message never carries its detail."""

    status_code = 502
    error_code = "upstream_error"


class LLMRequestError(UpstreamServiceError):
    def __init__(self, message: str = "AI request failed") -> None:
        super().__init__(message)


class WeatherServiceError(UpstreamServiceError):
    def __init__(self, message: str = "Failed to fetch weather data") -> None:
        super().__init__(message)


class AnalysisTimeoutError(UpstreamServiceError):
    status_code = 504
    error_code = "timeout"

    def __init__(self, message: str = "AI analysis timed out") -> None:
        super().__init__(message)


class ServiceNotConfiguredError(StylistError):
    status_code = 503
    error_code = "service_unavailable"


class ResponseParseError(StylistError):
    error_code = "parse_error"

    def __init__(self, message: str = "Failed to parse AI response") -> None:
        super().__init__(message)


class RateLimitExceededError(StylistError):
    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(self, limit: int, current: int, reset_in: int, reset_at_ms: int) -> None:
        super().__init__(f"Too many requests. Please try again in {reset_in} seconds.")
        self.limit = limit
        self.current = current
        self.reset_in = reset_in
        self.reset_at_ms = reset_at_ms

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload.update({"resetIn": self.reset_in, "current": self.current, "limit": self.limit})
        return payload

    def headers(self) -> Dict[str, str]:
        return {
            "Retry-After": str(self.reset_in),
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(self.reset_at_ms),
        }


class CostLimitExceededError(StylistError):
    status_code = 402
    error_code = "cost_limit_exceeded"

    def __init__(self, current_cost: float, threshold: float) -> None:
        super().__init__("Monthly AI usage limit reached. Please try again next month.")
        self.current_cost = current_cost
        self.threshold = threshold

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload.update({"currentCost": self.current_cost, "threshold": self.threshold})
        return payload


__all__ = [
    "StylistError",
    "AuthenticationError",
    "AuthorizationError",
    "RequestValidationError",
    "InvalidImageURLError",
    "InvalidImageFileError",
    "NotFoundError",
    "LocationNotFoundError",
    "UpstreamServiceError",
    "LLMRequestError",
    "WeatherServiceError",
    "AnalysisTimeoutError",
    "ServiceNotConfiguredError",
    "ResponseParseError",
    "RateLimitExceededError",
    "CostLimitExceededError",
]
