"""
Error taxonomy shared by the orchestration core and its endpoint handlers.

Every error carries an HTTP-like status code, an ``is_operational`` flag
(expected runtime condition vs. programming bug) and a stable machine code.
Backend failures are normalised into ``ModelUnavailableError`` with a closed
``FailureReason`` tag so callers never have to parse provider messages.
"""

from __future__ import annotations

import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class FailureReason(str, Enum):
    """Why a backend could not serve a request."""

    QUOTA_EXCEEDED = "quota_exceeded"
    SERVICE_DOWN = "service_down"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class AppError(Exception):
    """Base for all application errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        is_operational: bool = True,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.is_operational = is_operational
        self.code = code


class ValidationError(AppError):
    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message, 400, True, "VALIDATION_ERROR")
        self.field = field


class NotFoundError(AppError):
    def __init__(self, resource: str = "Resource") -> None:
        super().__init__(f"{resource} not found", 404, True, "NOT_FOUND")


class UnauthorizedError(AppError):
    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message, 401, True, "UNAUTHORIZED")


class RateLimitError(AppError):
    def __init__(self, message: str = "Too many requests") -> None:
        super().__init__(message, 429, True, "RATE_LIMIT")


class ExternalServiceError(AppError):
    """An external dependency is unavailable (also raised by an OPEN circuit)."""

    def __init__(self, service: str, message: Optional[str] = None) -> None:
        super().__init__(
            message or f"External service {service} is unavailable",
            503,
            True,
            "EXTERNAL_SERVICE_ERROR",
        )
        self.service = service


class ModelUnavailableError(AppError):
    """A single AI backend failed; ``reason`` drives the orchestrator's demotion policy."""

    def __init__(
        self,
        model_name: str,
        reason: FailureReason = FailureReason.UNKNOWN,
        message: Optional[str] = None,
    ) -> None:
        super().__init__(
            message or f"AI model {model_name} is unavailable: {reason.value}",
            503,
            True,
            "MODEL_UNAVAILABLE",
        )
        self.model_name = model_name
        self.reason = reason


class AIResponseError(AppError):
    """Response generation failed for good; only raised on misconfiguration."""

    def __init__(
        self,
        model_name: str,
        message: Optional[str] = None,
        latency_ms: Optional[float] = None,
        tokens_used: Optional[int] = None,
    ) -> None:
        super().__init__(
            message or f"AI model {model_name} failed to generate response",
            500,
            True,
            "AI_RESPONSE_ERROR",
        )
        self.model_name = model_name
        self.latency_ms = latency_ms
        self.tokens_used = tokens_used


# ── Provider error classification ──

_QUOTA_MARKERS = ("quota", "429", "resource exhausted", "resource_exhausted", "rate limit", "rate_limit")
_TIMEOUT_MARKERS = ("timeout", "timed out", "deadline exceeded")
_SERVICE_DOWN_MARKERS = (
    "500",
    "502",
    "503",
    "504",
    "unavailable",
    "overloaded",
    "connection",
    "reset by peer",
)


def classify_backend_error(exc: BaseException) -> FailureReason:
    """Map a provider/SDK exception onto the closed ``FailureReason`` tag set."""
    if isinstance(exc, ModelUnavailableError):
        return exc.reason
    if isinstance(exc, ExternalServiceError):
        return FailureReason.SERVICE_DOWN
    if isinstance(exc, TimeoutError):
        return FailureReason.TIMEOUT
    if isinstance(exc, ConnectionError):
        return FailureReason.SERVICE_DOWN
    msg = str(exc).lower()
    if any(m in msg for m in _QUOTA_MARKERS):
        return FailureReason.QUOTA_EXCEEDED
    if any(m in msg for m in _TIMEOUT_MARKERS):
        return FailureReason.TIMEOUT
    if any(m in msg for m in _SERVICE_DOWN_MARKERS):
        return FailureReason.SERVICE_DOWN
    return FailureReason.UNKNOWN


def format_error_response(error: BaseException, include_stack: bool = False) -> dict[str, Any]:
    """Client-safe error payload; non-application errors are masked."""
    is_app_error = isinstance(error, AppError)
    body: dict[str, Any] = {
        "message": error.message if is_app_error else "Internal server error",
        "code": error.code if is_app_error else "INTERNAL_ERROR",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if include_stack:
        body["stack"] = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    return {"success": False, "error": body}
