"""
Model registry and quota tracker.

Owns every configured backend descriptor for the process lifetime and
answers "which backend should serve the next request". Quota resets are a
pure function of the supplied time so a periodic tick, the orchestrator and
tests with synthetic clocks can all drive them.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import structlog

from src.models import ModelStatus, Provider
from src.observability import ErrorLogger
from src.observability import metrics as obs_metrics
from src.resilience.circuit_breaker import CircuitBreaker

logger = structlog.get_logger()


def next_midnight(now: float) -> float:
    """Epoch seconds of the next local midnight strictly after ``now``."""
    tomorrow = datetime.fromtimestamp(now) + timedelta(days=1)
    return tomorrow.replace(hour=0, minute=0, second=0, microsecond=0).timestamp()


@dataclass
class BackendDescriptor:
    """One configured provider+model. Exclusively owns its circuit breaker."""

    id: str
    display_name: str
    provider: Provider
    model: str
    max_tokens: int
    cost_per_token: float
    quota_limit: float
    priority: int
    breaker: CircuitBreaker
    quota_used: int = 0
    quota_reset_at: float = math.inf
    is_available: bool = True
    last_error: Optional[str] = None

    @property
    def has_quota(self) -> bool:
        return self.quota_used < self.quota_limit

    @property
    def quota_percentage(self) -> float:
        if self.quota_limit <= 0:
            return 100.0
        return self.quota_used / self.quota_limit * 100

    @property
    def is_local(self) -> bool:
        return self.provider == Provider.LOCAL


class ModelRegistry:
    """id -> BackendDescriptor with candidate selection and quota bookkeeping."""

    def __init__(
        self,
        descriptors: Iterable[BackendDescriptor] = (),
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._clock = clock
        self._models: dict[str, BackendDescriptor] = {}
        for d in descriptors:
            self.register(d)

    # ── container protocol ──

    def __len__(self) -> int:
        return len(self._models)

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._models

    def __iter__(self) -> Iterator[BackendDescriptor]:
        return iter(self._models.values())

    def get(self, model_id: str) -> Optional[BackendDescriptor]:
        return self._models.get(model_id)

    def register(self, descriptor: BackendDescriptor) -> None:
        if descriptor.id in self._models:
            raise ValueError(f"Duplicate backend id: {descriptor.id}")
        self._models[descriptor.id] = descriptor

    @property
    def local_fallback(self) -> Optional[BackendDescriptor]:
        for d in self._models.values():
            if d.is_local:
                return d
        return None

    def validate(self) -> None:
        """Exactly one local backend with unlimited quota must be registered."""
        local = [d for d in self._models.values() if d.is_local]
        if len(local) != 1:
            raise ValueError(f"Expected exactly one local fallback backend, found {len(local)}")
        if not math.isinf(local[0].quota_limit):
            raise ValueError("Local fallback backend must have an unlimited quota")

    # ── selection ──

    def is_candidate(self, d: BackendDescriptor, now: Optional[float] = None) -> bool:
        # An OPEN breaker whose cool-down has elapsed is eligible: the call becomes its trial
        return d.is_available and d.has_quota and d.breaker.allows_request(now)

    def get_available_model(self) -> Optional[BackendDescriptor]:
        """Lowest-priority-number backend that is available, under quota and whose breaker admits a call."""
        now = self._clock()
        candidates = sorted(
            (d for d in self._models.values() if self.is_candidate(d, now)),
            key=lambda d: d.priority,
        )
        return candidates[0] if candidates else None

    # ── bookkeeping ──

    def record_usage(self, d: BackendDescriptor, tokens: int) -> None:
        d.quota_used += tokens
        obs_metrics.record_quota(d.id, d.quota_percentage)

    def mark_unavailable(self, d: BackendDescriptor, error: str) -> None:
        d.last_error = error
        if d.is_local:
            # The local responder is never taken out of rotation
            return
        d.is_available = False

    def apply_quota_resets(self, now: Optional[float] = None) -> list[str]:
        """Reset every backend whose window has lapsed. No-op when none has."""
        now = self._clock() if now is None else now
        reset_ids: list[str] = []
        for d in self._models.values():
            if now >= d.quota_reset_at:
                d.quota_used = 0
                d.quota_reset_at = next_midnight(now)
                d.is_available = True
                reset_ids.append(d.id)
                obs_metrics.record_quota(d.id, 0.0)
                ErrorLogger.log_info(f"Quota reset for model: {d.display_name}", model_id=d.id)
        return reset_ids

    def reset_model(self, model_id: str) -> bool:
        """Operator reset: available again, quota cleared, last error dropped."""
        d = self._models.get(model_id)
        if d is None:
            return False
        d.is_available = True
        d.quota_used = 0
        d.last_error = None
        obs_metrics.record_quota(d.id, 0.0)
        logger.info("model_reset", model_id=model_id)
        return True

    def get_model_status(self) -> list[ModelStatus]:
        return [
            ModelStatus(
                id=d.id,
                name=d.display_name,
                provider=d.provider,
                priority=d.priority,
                is_available=d.is_available,
                quota_used=d.quota_used,
                quota_limit=d.quota_limit,
                quota_percentage=d.quota_percentage,
                last_error=d.last_error,
                breaker_state=d.breaker.state.value,
            )
            for d in self._models.values()
        ]
