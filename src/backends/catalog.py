"""
Compiled-in backend catalogue.

Remote backends are only registered when their provider key is configured;
the local fallback is always registered and is the registry's guarantee that
a candidate exists.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from typing import Optional

from src.config import Settings, get_settings
from src.models import Provider
from src.registry import BackendDescriptor, ModelRegistry, next_midnight
from src.resilience.circuit_breaker import CircuitBreaker

LOCAL_FALLBACK_ID = "local-fallback"


def default_backends(
    settings: Optional[Settings] = None,
    clock: Callable[[], float] = time.time,
) -> list[BackendDescriptor]:
    settings = settings or get_settings()
    res = settings.resilience
    llm = settings.llm
    reset_at = next_midnight(clock())

    def remote(
        model_id: str,
        name: str,
        provider: Provider,
        cost_per_token: float,
        quota_limit: int,
        priority: int,
        max_tokens: int = 8192,
    ) -> BackendDescriptor:
        return BackendDescriptor(
            id=model_id,
            display_name=name,
            provider=provider,
            model=model_id,
            max_tokens=max_tokens,
            cost_per_token=cost_per_token,
            quota_limit=quota_limit,
            quota_reset_at=reset_at,
            priority=priority,
            breaker=CircuitBreaker(
                res.breaker_threshold,
                res.breaker_open_duration,
                res.breaker_monitoring_period,
                name=model_id,
                clock=clock,
            ),
        )

    backends: list[BackendDescriptor] = []
    if llm.gemini_api_key.strip():
        backends += [
            remote(llm.gemini_primary_model, "Gemini 2.5 Flash", Provider.GEMINI, 0.000075, 2000, 1),
            remote(llm.gemini_secondary_model, "Gemini 1.5 Flash", Provider.GEMINI, 0.000075, 1500, 2),
            remote(llm.gemini_lite_model, "Gemini 1.5 Flash 8B", Provider.GEMINI, 0.0000375, 4000, 3),
        ]
    if llm.openai_api_key.strip():
        backends.append(remote(llm.openai_model, "GPT-4o mini", Provider.OPENAI, 0.0006, 2000, 4, 4096))
    if llm.anthropic_api_key.strip():
        backends.append(remote(llm.claude_model, "Claude 3.5 Haiku", Provider.ANTHROPIC, 0.004, 1000, 5, 4096))

    backends.append(
        BackendDescriptor(
            id=LOCAL_FALLBACK_ID,
            display_name="Local Fallback",
            provider=Provider.LOCAL,
            model="local-responses",
            max_tokens=1000,
            cost_per_token=0.0,
            quota_limit=math.inf,
            quota_reset_at=math.inf,
            priority=99,
            breaker=CircuitBreaker(
                res.local_breaker_threshold,
                res.local_breaker_open_duration,
                res.local_breaker_monitoring_period,
                name=LOCAL_FALLBACK_ID,
                clock=clock,
            ),
        )
    )
    return backends


def build_registry(
    settings: Optional[Settings] = None,
    clock: Callable[[], float] = time.time,
) -> ModelRegistry:
    registry = ModelRegistry(default_backends(settings, clock), clock=clock)
    registry.validate()
    return registry
