"""
Framework-free endpoint handlers over the orchestrator.

Each handler takes an already-parsed payload plus a client identifier and
returns a ``HandlerResult`` that any web framework can turn into a response:
the assistant chat endpoint, the model health/status endpoint and the admin
reset action.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from src.errors import AppError, NotFoundError, RateLimitError, ValidationError, format_error_response
from src.models import HealthReport
from src.observability import ErrorLogger
from src.observability.logger import stack_traces_enabled
from src.orchestrator import ResponseOrchestrator
from src.prompts.templates import build_assistant_prompt, resolve_page_context
from src.resilience.rate_limiter import FixedWindowRateLimiter

_NO_CACHE = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


@dataclass
class HandlerResult:
    status_code: int
    body: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)


def _error(error: BaseException, headers: Optional[dict[str, str]] = None) -> HandlerResult:
    status = error.status_code if isinstance(error, AppError) else 500
    return HandlerResult(
        status_code=status,
        body=format_error_response(error, include_stack=stack_traces_enabled() and status >= 500),
        headers=headers or {},
    )


def _rate_limited(limiter: Optional[FixedWindowRateLimiter], client_id: str) -> Optional[HandlerResult]:
    if limiter is None:
        return None
    result = limiter.check(client_id)
    if result.allowed:
        return None
    return _error(
        RateLimitError("Too many requests, please try again later"),
        headers=limiter.headers(result),
    )


async def handle_assistant(
    orchestrator: ResponseOrchestrator,
    payload: dict[str, Any],
    client_id: str = "unknown",
    limiter: Optional[FixedWindowRateLimiter] = None,
) -> HandlerResult:
    """Chat endpoint: build the persona prompt and generate a reply."""
    limited = _rate_limited(limiter, client_id)
    if limited:
        return limited

    message = str(payload.get("message") or "").strip()
    if not message:
        return _error(ValidationError("Message is required", field="message"))

    history = payload.get("conversation_history") or []
    if not isinstance(history, list):
        return _error(ValidationError("conversation_history must be a list", field="conversation_history"))

    locale = str(payload.get("locale") or "en")
    page = resolve_page_context(payload.get("page_context") or payload.get("context"))
    prompt = build_assistant_prompt(
        message,
        page_context=page,
        locale=locale,
        history=history,
    )
    try:
        response = await orchestrator.generate_response(
            prompt,
            context=page,
            preferred_model=payload.get("preferred_model"),
        )
    except Exception as e:
        ErrorLogger.log(e, endpoint="ai-assistant", page=page)
        return _error(e)

    return HandlerResult(
        status_code=200,
        body={
            "response": response.content,
            "model": response.model,
            "tokens_used": response.tokens_used,
            "cost": response.cost,
            "response_time_ms": response.response_time_ms,
        },
    )


def handle_status(
    orchestrator: ResponseOrchestrator,
    client_id: str = "unknown",
    limiter: Optional[FixedWindowRateLimiter] = None,
) -> HandlerResult:
    """Health check: per-model status plus derived overall system status."""
    limited = _rate_limited(limiter, client_id)
    if limited:
        return limited
    try:
        orchestrator.registry.apply_quota_resets()
        report = HealthReport.from_statuses(orchestrator.get_model_status())
    except Exception as e:
        ErrorLogger.log(e, endpoint="ai-models-status")
        return _error(e)
    return HandlerResult(status_code=200, body=report.model_dump(mode="json"), headers=dict(_NO_CACHE))


def handle_admin_action(
    orchestrator: ResponseOrchestrator,
    payload: dict[str, Any],
    client_id: str = "unknown",
    limiter: Optional[FixedWindowRateLimiter] = None,
) -> HandlerResult:
    """Operator actions; only ``reset`` is supported."""
    limited = _rate_limited(limiter, client_id)
    if limited:
        return limited

    action = payload.get("action")
    model_id = payload.get("model_id") or payload.get("modelId")
    if action != "reset" or not model_id:
        return _error(ValidationError("Invalid action or missing modelId"))

    if not orchestrator.reset_model(model_id):
        return _error(NotFoundError(f"Model {model_id}"))

    ErrorLogger.log_warning(f"Model {model_id} manually reset", endpoint="ai-models-status", action="reset")
    return HandlerResult(
        status_code=200,
        body={
            "success": True,
            "message": f"Model {model_id} has been reset",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )
