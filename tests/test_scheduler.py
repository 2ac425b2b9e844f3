"""Tests for the periodic quota-reset scheduler."""

import asyncio

import pytest

from src.scheduler import QuotaResetScheduler


def test_tick_before_window_is_noop(registry, clock) -> None:
    scheduler = QuotaResetScheduler(registry, clock=clock)
    assert scheduler.tick() == []


def test_tick_after_window_resets(registry, clock) -> None:
    registry.mark_unavailable(registry.get("a"), "Quota exceeded")
    clock.advance(3600)
    scheduler = QuotaResetScheduler(registry, clock=clock)
    assert scheduler.tick() == ["a", "b", "c"]
    assert registry.get("a").is_available


@pytest.mark.asyncio
async def test_run_ticks_every_interval(registry, clock) -> None:
    slept: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        slept.append(seconds)
        clock.advance(seconds)
        if len(slept) >= 3:
            raise asyncio.CancelledError

    registry.mark_unavailable(registry.get("b"), "Quota exceeded")
    scheduler = QuotaResetScheduler(registry, interval=1800, clock=clock, sleep=fake_sleep)
    with pytest.raises(asyncio.CancelledError):
        await scheduler.run()
    assert slept == [1800, 1800, 1800]
    assert registry.get("b").is_available


@pytest.mark.asyncio
async def test_start_and_stop(registry, clock) -> None:
    scheduler = QuotaResetScheduler(registry, interval=3600, clock=clock)
    scheduler.start()
    assert scheduler.running
    scheduler.start()
    await scheduler.stop()
    assert not scheduler.running
    await scheduler.stop()
