"""
Process-wide structured logging.

``configure_logging`` installs the structlog pipeline once at startup; every
record goes to stderr with a timestamp, level, message and context. The only
difference between environments is rendering (JSON in production, key/value
console output otherwise) and whether stack traces are attached (development
only). ``ErrorLogger`` is the thin facade used by the resilience primitives
and the orchestrator.
"""

from __future__ import annotations

import logging
import sys
import traceback
from typing import Any

import structlog

from src.errors import AppError

_state = {"include_stack": True, "configured": False}


def configure_logging(environment: str = "development", level: str = "INFO") -> None:
    """Configure structlog for the given environment. Safe to call more than once."""
    production = environment.strip().lower() == "production"
    renderer: Any
    if production:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.strip().upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
    _state["include_stack"] = not production
    _state["configured"] = True


def ensure_default_logging() -> None:
    """Send records to stderr when nothing has called ``configure_logging`` yet."""
    if not structlog.is_configured():
        structlog.configure(logger_factory=structlog.PrintLoggerFactory(file=sys.stderr))


def stack_traces_enabled() -> bool:
    return bool(_state["include_stack"])


def _format_stack(error: BaseException) -> str:
    return "".join(traceback.format_exception(type(error), error, error.__traceback__))


class ErrorLogger:
    """Leveled structured logging for errors, warnings and informational events."""

    _logger = structlog.get_logger("ai_core")

    @classmethod
    def log(cls, error: BaseException, **context: Any) -> None:
        fields: dict[str, Any] = {
            "error_type": type(error).__name__,
            "context": context,
        }
        if isinstance(error, AppError):
            fields["status_code"] = error.status_code
            fields["is_operational"] = error.is_operational
            fields["code"] = error.code
        if stack_traces_enabled():
            fields["stack"] = _format_stack(error)
        cls._logger.error(str(error), **fields)

    @classmethod
    def log_warning(cls, message: str, **context: Any) -> None:
        cls._logger.warning(message, context=context)

    @classmethod
    def log_info(cls, message: str, **context: Any) -> None:
        cls._logger.info(message, context=context)


ensure_default_logging()
