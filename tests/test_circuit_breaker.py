"""Circuit breaker transition laws: CLOSED -> OPEN -> HALF_OPEN -> CLOSED/OPEN."""

from __future__ import annotations

import asyncio

import pytest

from src.errors import ExternalServiceError
from src.resilience.circuit_breaker import BreakerState, CircuitBreaker


class Boom(Exception):
    pass


class CountingOp:
    def __init__(self, fail: bool = False, result: str = "ok") -> None:
        self.fail = fail
        self.result = result
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.fail:
            raise Boom("backend exploded")
        return self.result


async def _trip(breaker: CircuitBreaker, times: int) -> None:
    op = CountingOp(fail=True)
    for _ in range(times):
        with pytest.raises(Boom):
            await breaker.execute(op)


@pytest.fixture
def breaker(clock) -> CircuitBreaker:
    return CircuitBreaker(threshold=3, open_duration=60.0, monitoring_period=120.0, name="test", clock=clock)


class TestClosed:
    @pytest.mark.asyncio
    async def test_starts_closed_and_passes_through(self, breaker: CircuitBreaker) -> None:
        op = CountingOp(result="hello")
        assert breaker.state == BreakerState.CLOSED
        assert await breaker.execute(op) == "hello"
        assert op.calls == 1
        assert breaker.get_state().failure_count == 0

    @pytest.mark.asyncio
    async def test_opens_after_threshold_consecutive_failures(self, breaker: CircuitBreaker, clock) -> None:
        await _trip(breaker, 2)
        assert breaker.state == BreakerState.CLOSED
        await _trip(breaker, 1)
        snap = breaker.get_state()
        assert snap.state == BreakerState.OPEN
        assert snap.failure_count == 3
        assert snap.last_failure_at == clock()

    @pytest.mark.asyncio
    async def test_success_resets_failure_count(self, breaker: CircuitBreaker) -> None:
        await _trip(breaker, 2)
        await breaker.execute(CountingOp())
        assert breaker.get_state().failure_count == 0
        await _trip(breaker, 2)
        assert breaker.state == BreakerState.CLOSED

    @pytest.mark.asyncio
    async def test_original_error_is_reraised(self, breaker: CircuitBreaker) -> None:
        with pytest.raises(Boom, match="backend exploded"):
            await breaker.execute(CountingOp(fail=True))


class TestOpen:
    @pytest.mark.asyncio
    async def test_rejects_without_invoking_operation(self, breaker: CircuitBreaker, clock) -> None:
        await _trip(breaker, 3)
        clock.advance(30)
        op = CountingOp()
        with pytest.raises(ExternalServiceError, match="OPEN"):
            await breaker.execute(op)
        assert op.calls == 0
        assert breaker.state == BreakerState.OPEN

    @pytest.mark.asyncio
    async def test_still_open_exactly_at_cooldown_boundary(self, breaker: CircuitBreaker, clock) -> None:
        await _trip(breaker, 3)
        clock.advance(60)
        op = CountingOp()
        with pytest.raises(ExternalServiceError):
            await breaker.execute(op)
        assert op.calls == 0

    @pytest.mark.asyncio
    async def test_rejection_is_a_503(self, breaker: CircuitBreaker) -> None:
        await _trip(breaker, 3)
        with pytest.raises(ExternalServiceError) as exc_info:
            await breaker.execute(CountingOp())
        assert exc_info.value.status_code == 503
        assert exc_info.value.code == "EXTERNAL_SERVICE_ERROR"


class TestHalfOpen:
    @pytest.mark.asyncio
    async def test_trial_after_cooldown_invokes_once_and_closes(self, breaker: CircuitBreaker, clock) -> None:
        await _trip(breaker, 3)
        clock.advance(61)
        op = CountingOp(result="recovered")
        assert await breaker.execute(op) == "recovered"
        assert op.calls == 1
        snap = breaker.get_state()
        assert snap.state == BreakerState.CLOSED
        assert snap.failure_count == 0

    @pytest.mark.asyncio
    async def test_trial_failure_reopens_and_increments(self, breaker: CircuitBreaker, clock) -> None:
        await _trip(breaker, 3)
        clock.advance(61)
        op = CountingOp(fail=True)
        with pytest.raises(Boom):
            await breaker.execute(op)
        assert op.calls == 1
        snap = breaker.get_state()
        assert snap.state == BreakerState.OPEN
        assert snap.failure_count == 4
        assert snap.last_failure_at == clock()

        # A fresh cool-down starts from the failed trial
        clock.advance(30)
        with pytest.raises(ExternalServiceError):
            await breaker.execute(CountingOp())

    @pytest.mark.asyncio
    async def test_only_one_trial_in_flight(self, breaker: CircuitBreaker, clock) -> None:
        await _trip(breaker, 3)
        clock.advance(61)
        release = asyncio.Event()

        async def slow() -> str:
            await release.wait()
            return "done"

        trial = asyncio.create_task(breaker.execute(slow))
        await asyncio.sleep(0)
        assert breaker.state == BreakerState.HALF_OPEN

        second = CountingOp()
        with pytest.raises(ExternalServiceError, match="trial in progress"):
            await breaker.execute(second)
        assert second.calls == 0

        release.set()
        assert await trial == "done"
        assert breaker.state == BreakerState.CLOSED


class TestAllowsRequest:
    @pytest.mark.asyncio
    async def test_tracks_cooldown_without_changing_state(self, breaker: CircuitBreaker, clock) -> None:
        assert breaker.allows_request()
        await _trip(breaker, 3)
        assert not breaker.allows_request()
        clock.advance(60)
        assert not breaker.allows_request()
        assert breaker.allows_request(clock() + 1)
        clock.advance(1)
        assert breaker.allows_request()
        assert breaker.state == BreakerState.OPEN

    @pytest.mark.asyncio
    async def test_half_open_admits_only_when_no_trial_is_running(self, breaker: CircuitBreaker, clock) -> None:
        await _trip(breaker, 3)
        clock.advance(61)
        release = asyncio.Event()

        async def slow() -> str:
            await release.wait()
            return "done"

        trial = asyncio.create_task(breaker.execute(slow))
        await asyncio.sleep(0)
        assert not breaker.allows_request()
        release.set()
        await trial
        assert breaker.allows_request()


def test_threshold_must_be_positive() -> None:
    with pytest.raises(ValueError):
        CircuitBreaker(threshold=0)
