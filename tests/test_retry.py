"""Retry-with-backoff: delay schedule, cap, exhaustion and logging."""

from __future__ import annotations

import pytest
from structlog.testing import capture_logs

from src.resilience.retry import with_retry


class Flaky:
    def __init__(self, failures: int, exc: type[Exception] = RuntimeError) -> None:
        self.failures = failures
        self.exc = exc
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc(f"failure {self.calls}")
        return "success"


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.mark.asyncio
async def test_first_try_success_does_not_sleep() -> None:
    sleep = RecordingSleep()
    op = Flaky(failures=0)
    assert await with_retry(op, sleep=sleep) == "success"
    assert op.calls == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_exponential_delays_then_last_error() -> None:
    sleep = RecordingSleep()
    op = Flaky(failures=10)
    with pytest.raises(RuntimeError, match="failure 4"):
        await with_retry(op, max_retries=3, base_delay=1.0, max_delay=10.0, sleep=sleep)
    assert op.calls == 4
    assert sleep.delays == [1.0, 2.0, 4.0]


@pytest.mark.asyncio
async def test_delay_never_exceeds_max() -> None:
    sleep = RecordingSleep()
    op = Flaky(failures=10)
    with pytest.raises(RuntimeError):
        await with_retry(op, max_retries=4, base_delay=4.0, max_delay=10.0, sleep=sleep)
    assert sleep.delays == [4.0, 8.0, 10.0, 10.0]


@pytest.mark.asyncio
async def test_recovers_after_transient_failures() -> None:
    sleep = RecordingSleep()
    op = Flaky(failures=2)
    assert await with_retry(op, max_retries=3, sleep=sleep) == "success"
    assert op.calls == 3
    assert sleep.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_non_matching_errors_are_not_retried() -> None:
    sleep = RecordingSleep()
    op = Flaky(failures=5, exc=KeyError)
    with pytest.raises(KeyError):
        await with_retry(op, retry_on=ValueError, sleep=sleep)
    assert op.calls == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_every_failed_attempt_is_logged() -> None:
    sleep = RecordingSleep()
    with capture_logs() as logs:
        with pytest.raises(RuntimeError):
            await with_retry(Flaky(failures=10), max_retries=3, sleep=sleep)
    warnings = [e for e in logs if e["log_level"] == "warning"]
    errors = [e for e in logs if e["log_level"] == "error"]
    assert [w["context"]["attempt"] for w in warnings] == [1, 2, 3]
    assert all("failure" in w["context"]["error"] for w in warnings)
    assert len(errors) == 1
    assert errors[0]["context"]["operation"] == "retry_exhausted"
    assert errors[0]["context"]["attempts"] == 4


@pytest.mark.asyncio
async def test_negative_retries_rejected() -> None:
    with pytest.raises(ValueError):
        await with_retry(Flaky(failures=0), max_retries=-1)
