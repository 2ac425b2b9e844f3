"""
Prometheus metrics for the AI orchestration core.

All metrics are no-op when observability.metrics_enabled is False.
Exposes track_backend_call, record_tokens, record_cost, record_fallback,
record_local_fallback, record_breaker_state, record_quota, start_server.
"""

from __future__ import annotations

import contextlib
import threading
import time
from typing import Any

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    start_http_server as prometheus_start_http_server,
)

_BREAKER_STATE_VALUES = {"CLOSED": 0, "HALF_OPEN": 1, "OPEN": 2}


def _enabled() -> bool:
    try:
        from src.config import get_settings
        return bool(get_settings().observability.metrics_enabled)
    except Exception:
        return False


# Lazy registry: only create metrics when enabled and first used
_metrics_created = False


def _ensure_metrics() -> bool:
    global _metrics_created
    if _metrics_created or not _enabled():
        return _metrics_created
    _create_metrics()
    _metrics_created = True
    return True


def _create_metrics() -> None:
    """Create all Prometheus metrics (called once when enabled)."""
    _call_duration = Histogram(
        "ai_backend_call_duration_seconds",
        "AI backend call latency",
        ["backend", "provider"],
        buckets=[0.5, 1, 2, 5, 10, 30],
    )
    _tokens = Counter(
        "ai_backend_tokens_total",
        "Estimated tokens consumed",
        ["backend"],
    )
    _cost = Counter(
        "ai_backend_cost_usd",
        "Estimated cost in USD",
        ["backend"],
    )
    _errors = Counter(
        "ai_backend_errors_total",
        "AI backend call errors",
        ["backend", "reason"],
    )
    _fallback = Counter(
        "ai_backend_fallback_total",
        "Switches from a failing backend to the next candidate",
        ["from_backend", "reason"],
    )
    _local_fallback = Counter(
        "ai_local_fallback_total",
        "Responses served by the local responder",
        ["context"],
    )
    _breaker_state = Gauge(
        "ai_backend_circuit_state",
        "Circuit breaker state (0 closed, 1 half-open, 2 open)",
        ["backend"],
    )
    _quota = Gauge(
        "ai_backend_quota_percentage",
        "Quota used as a percentage of the limit",
        ["backend"],
    )

    # Store on module for access from MetricsCollector
    _registry = {
        "call_duration": _call_duration,
        "tokens": _tokens,
        "cost": _cost,
        "errors": _errors,
        "fallback": _fallback,
        "local_fallback": _local_fallback,
        "breaker_state": _breaker_state,
        "quota": _quota,
    }
    setattr(_MetricsCollector, "_registry", _registry)


class _MetricsCollector:
    """Collector that delegates to Prometheus when enabled, no-op otherwise."""

    _registry: dict[str, Any] = {}

    def _get(self, name: str) -> Any:
        _ensure_metrics()
        return self._registry.get(name)

    @contextlib.asynccontextmanager
    async def track_backend_call(self, backend: str = "", provider: str = ""):
        h = self._get("call_duration")
        start = time.perf_counter()
        try:
            yield
        finally:
            if h:
                h.labels(
                    backend=backend or "unknown",
                    provider=provider or "unknown",
                ).observe(time.perf_counter() - start)

    def record_error(self, backend: str, reason: str) -> None:
        c = self._get("errors")
        if c:
            c.labels(backend=backend or "unknown", reason=reason or "unknown").inc()

    def record_tokens(self, backend: str, tokens: int) -> None:
        c = self._get("tokens")
        if c and tokens > 0:
            c.labels(backend=backend or "unknown").inc(tokens)

    def record_cost(self, backend: str, cost_usd: float) -> None:
        c = self._get("cost")
        if c and cost_usd > 0:
            c.labels(backend=backend or "unknown").inc(cost_usd)

    def record_fallback(self, from_backend: str, reason: str) -> None:
        c = self._get("fallback")
        if c:
            c.labels(from_backend=from_backend or "unknown", reason=reason or "unknown").inc()

    def record_local_fallback(self, context: str = "") -> None:
        c = self._get("local_fallback")
        if c:
            c.labels(context=context or "default").inc()

    def record_breaker_state(self, backend: str, state: str) -> None:
        g = self._get("breaker_state")
        if g:
            g.labels(backend=backend or "unknown").set(_BREAKER_STATE_VALUES.get(state, 0))

    def record_quota(self, backend: str, percentage: float) -> None:
        g = self._get("quota")
        if g:
            g.labels(backend=backend or "unknown").set(percentage)

    def start_server(self, port: int = 8000) -> bool:
        if not _enabled():
            return False
        _ensure_metrics()

        def run() -> None:
            try:
                prometheus_start_http_server(port, addr="0.0.0.0")
            except OSError:
                pass

        t = threading.Thread(target=run, daemon=True)
        t.start()
        return True


metrics = _MetricsCollector()
