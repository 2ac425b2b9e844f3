"""
Periodic driver for the registry's quota-reset check.

The reset logic itself is ``ModelRegistry.apply_quota_resets(now)``; this
module only decides when to call it. The host process starts the scheduler
at startup and stops it at shutdown.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any, Optional

import structlog

from src.registry import ModelRegistry

logger = structlog.get_logger()


class QuotaResetScheduler:
    """Runs ``registry.apply_quota_resets`` every ``interval`` seconds."""

    def __init__(
        self,
        registry: ModelRegistry,
        interval: float = 60 * 60,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.registry = registry
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._task: Optional[asyncio.Task[None]] = None

    def tick(self) -> list[str]:
        reset_ids = self.registry.apply_quota_resets(self._clock())
        if reset_ids:
            logger.info("quota_reset_tick", reset=reset_ids)
        return reset_ids

    async def run(self) -> None:
        while True:
            await self._sleep(self.interval)
            try:
                self.tick()
            except Exception as e:
                logger.error("quota_reset_tick_failed", error=str(e))

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self.run())
        logger.info("quota_reset_scheduler_started", interval=self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("quota_reset_scheduler_stopped")
