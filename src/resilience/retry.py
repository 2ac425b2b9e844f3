"""
Retry-with-backoff for fallible async operations.

Delays grow as ``base_delay * 2**attempt`` capped at ``max_delay``; after
``max_retries`` retries the last error is re-raised unchanged. Every failed
attempt is logged. This helper is independent of the circuit breaker.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.observability import ErrorLogger

T = TypeVar("T")


def _log_before_sleep(max_retries: int) -> Callable[[RetryCallState], None]:
    def _log(rs: RetryCallState) -> None:
        delay = rs.next_action.sleep if rs.next_action else 0.0
        ErrorLogger.log_warning(
            f"Operation failed, retrying in {delay:g}s",
            attempt=rs.attempt_number,
            max_retries=max_retries,
            error=str(rs.outcome.exception()) if rs.outcome else "unknown",
        )

    return _log


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 10.0,
    *,
    retry_on: type[BaseException] | tuple[type[BaseException], ...] = Exception,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """
    Await ``operation()`` up to ``max_retries + 1`` times.

    Raises:
        The last exception raised by ``operation`` once retries are exhausted,
        or immediately for exceptions outside ``retry_on``.
    """
    if max_retries < 0:
        raise ValueError("max_retries must be >= 0")

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(multiplier=base_delay, exp_base=2, min=0, max=max_delay),
        retry=retry_if_exception_type(retry_on),
        before_sleep=_log_before_sleep(max_retries),
        sleep=sleep,
        reraise=True,
    )
    attempts = 0
    try:
        async for attempt in retrying:
            with attempt:
                attempts = attempt.retry_state.attempt_number
                return await operation()
    except Exception as exc:
        ErrorLogger.log(
            exc,
            operation="retry_exhausted" if attempts > max_retries else "retry_aborted",
            attempts=attempts,
            max_retries=max_retries,
        )
        raise
    raise RuntimeError("Retry loop finished without returning or raising.")
