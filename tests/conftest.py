"""Shared pytest fixtures: synthetic clock, scripted backend, descriptor factory."""

from __future__ import annotations

import math
from collections.abc import Callable
from typing import Any, Optional

import pytest

from src.models import Provider
from src.registry import BackendDescriptor, ModelRegistry
from src.resilience.circuit_breaker import CircuitBreaker

START = 1_700_000_000.0


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, now: float = START) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeBackend:
    """BackendClient whose behaviour per backend id is scripted by the test.

    A behaviour is a reply string, an exception instance (raised), or an
    async callable returning the reply.
    """

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.behaviour: dict[str, Any] = {}

    async def generate(self, descriptor: BackendDescriptor, prompt: str) -> str:
        self.calls.append(descriptor.id)
        b = self.behaviour.get(descriptor.id, f"reply from {descriptor.id}")
        if isinstance(b, BaseException):
            raise b
        if callable(b):
            return await b()
        return b


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def make_descriptor(clock: FakeClock) -> Callable[..., BackendDescriptor]:
    def _make(
        model_id: str,
        priority: int,
        provider: Provider = Provider.GEMINI,
        quota_limit: float = 1000,
        cost_per_token: float = 0.001,
        threshold: int = 5,
        open_duration: float = 60.0,
        quota_reset_at: Optional[float] = None,
    ) -> BackendDescriptor:
        return BackendDescriptor(
            id=model_id,
            display_name=model_id.upper(),
            provider=provider,
            model=model_id,
            max_tokens=1024,
            cost_per_token=cost_per_token,
            quota_limit=quota_limit,
            priority=priority,
            quota_reset_at=quota_reset_at if quota_reset_at is not None else clock() + 3600,
            breaker=CircuitBreaker(threshold, open_duration, 120.0, name=model_id, clock=clock),
        )

    return _make


@pytest.fixture
def local_descriptor(clock: FakeClock) -> BackendDescriptor:
    return BackendDescriptor(
        id="local-fallback",
        display_name="Local Fallback",
        provider=Provider.LOCAL,
        model="local-responses",
        max_tokens=1000,
        cost_per_token=0.0,
        quota_limit=math.inf,
        quota_reset_at=math.inf,
        priority=99,
        breaker=CircuitBreaker(10, 30.0, 60.0, name="local-fallback", clock=clock),
    )


@pytest.fixture
def registry(
    make_descriptor: Callable[..., BackendDescriptor],
    local_descriptor: BackendDescriptor,
    clock: FakeClock,
) -> ModelRegistry:
    """Backends a (p1), b (p2), c (p3) plus the local fallback."""
    return ModelRegistry(
        [
            make_descriptor("a", 1),
            make_descriptor("b", 2),
            make_descriptor("c", 3),
            local_descriptor,
        ],
        clock=clock,
    )

