"""
Fixed-window per-client rate limiter for the endpoint handlers.

Each identifier gets a counter that lives for ``window`` seconds from its
first request; requests beyond ``max_requests`` inside the window are
refused until it expires.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass

import structlog

logger = structlog.get_logger()


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float


@dataclass
class _Window:
    count: int
    reset_at: float


class FixedWindowRateLimiter:
    """Per-identifier fixed-window counter."""

    def __init__(
        self,
        max_requests: int,
        window: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.max_requests = max_requests
        self.window = window
        self._clock = clock
        self._windows: dict[str, _Window] = {}

    def check(self, identifier: str) -> RateLimitResult:
        """Count one request for ``identifier`` and report whether it is allowed."""
        now = self._clock()
        win = self._windows.get(identifier)
        if win is None or now > win.reset_at:
            win = _Window(count=1, reset_at=now + self.window)
            self._windows[identifier] = win
        else:
            win.count += 1

        allowed = win.count <= self.max_requests
        if not allowed:
            logger.warning("rate_limited", identifier=identifier, count=win.count, limit=self.max_requests)
        return RateLimitResult(
            allowed=allowed,
            remaining=max(0, self.max_requests - win.count),
            reset_at=win.reset_at,
        )

    def headers(self, result: RateLimitResult) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.max_requests),
            "X-RateLimit-Remaining": str(result.remaining),
            "X-RateLimit-Reset": str(math.ceil(result.reset_at)),
        }

    def cleanup(self) -> int:
        """Drop expired windows; returns how many were removed."""
        now = self._clock()
        expired = [k for k, w in self._windows.items() if now > w.reset_at]
        for k in expired:
            del self._windows[k]
        return len(expired)


def client_identifier(headers: Mapping[str, str]) -> str:
    """Derive ``"<ip>:<user-agent prefix>"`` from proxy-aware request headers."""
    lowered = {k.lower(): v for k, v in headers.items()}
    forwarded = lowered.get("x-forwarded-for", "")
    ip = (
        forwarded.split(",")[0].strip()
        or lowered.get("x-real-ip", "").strip()
        or lowered.get("cf-connecting-ip", "").strip()
        or "unknown"
    )
    user_agent = lowered.get("user-agent") or "unknown"
    return f"{ip}:{user_agent[:50]}"
