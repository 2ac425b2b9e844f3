"""Observability: structured logging and Prometheus metrics for the AI orchestration core."""

from src.observability.logger import ErrorLogger, configure_logging, ensure_default_logging
from src.observability.metrics import metrics

__all__ = ["ErrorLogger", "configure_logging", "ensure_default_logging", "metrics"]
