"""
Circuit breaker guarding calls to one unreliable backend.

CLOSED passes calls through and counts consecutive failures; reaching the
threshold opens the circuit. OPEN rejects immediately without invoking the
operation until the cool-down has elapsed, at which point the next call moves
the breaker to HALF_OPEN and is let through as the single trial. The trial's
outcome closes or re-opens the circuit. Transitions are evaluated lazily on
call attempts; there is no timer.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Optional, TypeVar

from src.errors import ExternalServiceError
from src.observability import ErrorLogger
from src.observability import metrics as obs_metrics

T = TypeVar("T")


class BreakerState(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


@dataclass(frozen=True)
class BreakerSnapshot:
    """Read-only view of a breaker for diagnostics."""

    state: BreakerState
    failure_count: int
    last_failure_at: float


class CircuitBreaker:
    def __init__(
        self,
        threshold: int = 5,
        open_duration: float = 60.0,
        monitoring_period: float = 120.0,
        name: str = "",
        clock: Callable[[], float] = time.time,
    ) -> None:
        if threshold < 1:
            raise ValueError("threshold must be >= 1")
        self.threshold = threshold
        self.open_duration = open_duration
        # Reported only; does not influence transitions
        self.monitoring_period = monitoring_period
        self.name = name
        self._clock = clock
        self._state = BreakerState.CLOSED
        self._failure_count = 0
        self._last_failure_at = 0.0
        self._trial_in_flight = False

    @property
    def state(self) -> BreakerState:
        return self._state

    def allows_request(self, now: Optional[float] = None) -> bool:
        """Whether ``execute`` would invoke the operation right now. Does not change state."""
        if self._state == BreakerState.OPEN:
            now = self._clock() if now is None else now
            return now - self._last_failure_at > self.open_duration
        if self._state == BreakerState.HALF_OPEN:
            return not self._trial_in_flight
        return True

    def get_state(self) -> BreakerSnapshot:
        return BreakerSnapshot(
            state=self._state,
            failure_count=self._failure_count,
            last_failure_at=self._last_failure_at,
        )

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` under the breaker, re-raising its error after recording it."""
        if self._state == BreakerState.OPEN:
            if self._clock() - self._last_failure_at > self.open_duration:
                self._transition(BreakerState.HALF_OPEN)
            else:
                raise ExternalServiceError(
                    self.name or "backend",
                    f"Circuit breaker is OPEN for {self.name or 'backend'}",
                )

        is_trial = self._state == BreakerState.HALF_OPEN
        if is_trial:
            if self._trial_in_flight:
                raise ExternalServiceError(
                    self.name or "backend",
                    f"Circuit breaker is HALF_OPEN for {self.name or 'backend'}; trial in progress",
                )
            self._trial_in_flight = True

        try:
            result = await operation()
        except Exception:
            self._on_failure()
            raise
        else:
            self._on_success()
            return result
        finally:
            if is_trial:
                self._trial_in_flight = False

    def _on_success(self) -> None:
        self._failure_count = 0
        if self._state != BreakerState.CLOSED:
            self._transition(BreakerState.CLOSED)

    def _on_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_at = self._clock()
        if self._state == BreakerState.HALF_OPEN or self._failure_count >= self.threshold:
            if self._state != BreakerState.OPEN:
                self._transition(BreakerState.OPEN)

    def _transition(self, new_state: BreakerState) -> None:
        old_state = self._state
        self._state = new_state
        obs_metrics.record_breaker_state(self.name, new_state.value)
        if new_state == BreakerState.OPEN:
            ErrorLogger.log_warning(
                "Circuit breaker opened",
                breaker=self.name,
                from_state=old_state.value,
                failures=self._failure_count,
                threshold=self.threshold,
            )
        else:
            ErrorLogger.log_info(
                f"Circuit breaker {new_state.value.lower()}",
                breaker=self.name,
                from_state=old_state.value,
            )
