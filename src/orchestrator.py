"""
Response orchestrator: multi-backend generation with graceful degradation.

Given a prompt, picks the caller's preferred backend when it is usable,
otherwise the best-priority candidate from the registry, and calls it
through that backend's circuit breaker with a bounded timeout. A failing
backend is demoted and the next one is tried; when nothing remote is left
the local responder answers. Callers therefore always receive a response,
except when the local fallback itself is missing or broken, which is a
deployment bug and raises ``AIResponseError``.

Design decisions:
  - One outbound call at a time per request; no speculative fan-out
  - Failures are dispatched on ``FailureReason``, never on message text
  - Token usage is the coarse ``ceil(len(content) / 4)`` estimate
"""

from __future__ import annotations

import asyncio
import math
import time
from collections.abc import Callable
from functools import partial
from typing import Optional

import structlog

from src.backends.base import BackendClient
from src.backends.local import LocalResponder
from src.config import Settings, get_settings
from src.errors import (
    AIResponseError,
    FailureReason,
    ModelUnavailableError,
    classify_backend_error,
)
from src.models import AIResponse, ModelStatus
from src.observability import ErrorLogger, ensure_default_logging
from src.observability import metrics as obs_metrics
from src.registry import BackendDescriptor, ModelRegistry

logger = structlog.get_logger()


def estimate_tokens(text: str) -> int:
    """Rough token count: one token per four characters, rounded up."""
    return math.ceil(len(text) / 4)


class ResponseOrchestrator:
    """Process-scoped service; construct once at startup and pass it to callers."""

    def __init__(
        self,
        registry: ModelRegistry,
        remote: BackendClient,
        local: Optional[LocalResponder] = None,
        call_timeout: Optional[float] = 30.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        ensure_default_logging()
        self.registry = registry
        self.remote = remote
        self.local = local or LocalResponder()
        self.call_timeout = call_timeout
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.time,
    ) -> ResponseOrchestrator:
        """Wire the default catalogue and LangChain backends from configuration."""
        from src.backends.catalog import build_registry
        from src.backends.langchain_backend import LangChainBackend

        settings = settings or get_settings()
        return cls(
            registry=build_registry(settings, clock),
            remote=LangChainBackend(settings),
            local=LocalResponder(),
            call_timeout=settings.resilience.call_timeout,
            clock=clock,
        )

    # ── public API ──

    async def generate_response(
        self,
        prompt: str,
        context: Optional[str] = None,
        preferred_model: Optional[str] = None,
    ) -> AIResponse:
        start = time.perf_counter()
        self.registry.apply_quota_resets(self._clock())

        attempts = 0
        max_attempts = len(self.registry)
        while attempts < max_attempts:
            attempts += 1
            target = self._select_candidate(preferred_model)
            if target is None:
                return self._local_fallback_response(prompt, context, start)

            try:
                content = await target.breaker.execute(partial(self._invoke, target, prompt, context))
            except Exception as e:
                reason = classify_backend_error(e)
                obs_metrics.record_error(target.id, reason.value)
                ErrorLogger.log(
                    e,
                    model=target.display_name,
                    attempt=attempts,
                    reason=reason.value,
                    prompt=prompt[:100],
                )

                if reason == FailureReason.QUOTA_EXCEEDED:
                    self.registry.mark_unavailable(target, "Quota exceeded")
                    ErrorLogger.log_warning(
                        f"Model {target.display_name} quota exceeded, switching to fallback",
                        model_id=target.id,
                        quota_used=target.quota_used,
                        quota_limit=target.quota_limit,
                        error_type=reason.value,
                    )
                    obs_metrics.record_fallback(target.id, reason.value)
                    continue

                if attempts >= max_attempts:
                    raise AIResponseError(
                        target.display_name,
                        f"Failed after {max_attempts} attempts: {e}",
                        latency_ms=(time.perf_counter() - start) * 1000,
                    ) from e

                self.registry.mark_unavailable(target, str(e))
                obs_metrics.record_fallback(target.id, reason.value)
                continue

            return self._record_success(target, content, start)

        return self._local_fallback_response(prompt, context, start)

    def get_model_status(self) -> list[ModelStatus]:
        return self.registry.get_model_status()

    def reset_model(self, model_id: str) -> bool:
        return self.registry.reset_model(model_id)

    # ── internals ──

    def _select_candidate(self, preferred_model: Optional[str]) -> Optional[BackendDescriptor]:
        if preferred_model:
            preferred = self.registry.get(preferred_model)
            if preferred is not None and preferred.is_available and preferred.has_quota:
                return preferred
        return self.registry.get_available_model()

    async def _invoke(self, target: BackendDescriptor, prompt: str, context: Optional[str]) -> str:
        if target.is_local:
            return self.local.respond(prompt, context)
        async with obs_metrics.track_backend_call(backend=target.id, provider=target.provider.value):
            try:
                if self.call_timeout is None:
                    return await self.remote.generate(target, prompt)
                return await asyncio.wait_for(self.remote.generate(target, prompt), self.call_timeout)
            except asyncio.TimeoutError as e:
                raise ModelUnavailableError(
                    target.display_name,
                    FailureReason.TIMEOUT,
                    f"AI model {target.display_name} timed out after {self.call_timeout}s",
                ) from e

    def _record_success(self, target: BackendDescriptor, content: str, start: float) -> AIResponse:
        tokens_used = estimate_tokens(content)
        self.registry.record_usage(target, tokens_used)
        cost = tokens_used * target.cost_per_token
        elapsed_ms = (time.perf_counter() - start) * 1000
        obs_metrics.record_tokens(target.id, tokens_used)
        obs_metrics.record_cost(target.id, cost)
        ErrorLogger.log_info(
            f"AI Model used: {target.display_name}",
            tokens_used=tokens_used,
            quota_remaining=target.quota_limit - target.quota_used,
            response_time_ms=round(elapsed_ms, 1),
        )
        return AIResponse(
            content=content,
            model=target.display_name,
            backend_id=target.id,
            tokens_used=tokens_used,
            cost=cost,
            response_time_ms=elapsed_ms,
        )

    def _local_fallback_response(self, prompt: str, context: Optional[str], start: float) -> AIResponse:
        fallback = self.registry.local_fallback
        if fallback is None:
            raise AIResponseError("Local Fallback", "Critical error: Local fallback model not available")
        content = self.local.respond(prompt, context)
        obs_metrics.record_local_fallback(context or "default")
        logger.warning("local_fallback_response", context=context or "default")
        return AIResponse(
            content=content,
            model=fallback.display_name,
            backend_id=fallback.id,
            tokens_used=estimate_tokens(content),
            cost=0.0,
            response_time_ms=(time.perf_counter() - start) * 1000,
        )
