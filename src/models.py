"""
Core data models for the AI orchestration core.

Pydantic models for everything that crosses the core's boundary: the
per-call response record, the per-backend status projection and the health
report derived from it. Mutable runtime state (backend descriptors and their
breakers) lives in ``src.registry``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

UTC = timezone.utc


def _now_utc() -> datetime:
    return datetime.now(UTC)


# ═══════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════


class Provider(str, Enum):
    """Calling convention of a backend."""

    GEMINI = "gemini"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    LOCAL = "local"


class SystemStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    CRITICAL = "critical"


# ═══════════════════════════════════════════════════════════
# Response / status records
# ═══════════════════════════════════════════════════════════


class AIResponse(BaseModel):
    """Result of one generate_response call. Never persisted by the core."""

    content: str
    model: str = Field(description="Display name of the backend that answered")
    backend_id: str
    tokens_used: int = 0
    cost: float = 0.0
    response_time_ms: float = 0.0


class ModelStatus(BaseModel):
    """Read-only projection of one backend for dashboards and health checks."""

    id: str
    name: str
    provider: Provider
    priority: int
    is_available: bool
    quota_used: int
    quota_limit: float
    quota_percentage: float
    last_error: Optional[str] = None
    breaker_state: str


class HealthSummary(BaseModel):
    total_models: int
    available_models: int
    unavailable_models: int
    primary_model: str
    average_quota_usage: float


class HealthReport(BaseModel):
    system_status: SystemStatus
    health_percentage: float
    timestamp: datetime = Field(default_factory=_now_utc)
    models: list[ModelStatus] = Field(default_factory=list)
    summary: HealthSummary

    @classmethod
    def from_statuses(cls, statuses: list[ModelStatus]) -> HealthReport:
        """Derive overall health: >=80% available is healthy, >=40% degraded, else critical."""
        total = len(statuses)
        available = [s for s in statuses if s.is_available]
        health = (len(available) / total * 100) if total else 0.0
        if health >= 80:
            status = SystemStatus.HEALTHY
        elif health >= 40:
            status = SystemStatus.DEGRADED
        else:
            status = SystemStatus.CRITICAL

        remote = sorted(
            (s for s in available if s.provider != Provider.LOCAL),
            key=lambda s: s.priority,
        )
        average_quota = (sum(s.quota_percentage for s in statuses) / total) if total else 0.0
        return cls(
            system_status=status,
            health_percentage=health,
            models=statuses,
            summary=HealthSummary(
                total_models=total,
                available_models=len(available),
                unavailable_models=total - len(available),
                primary_model=remote[0].name if remote else "Fallback Active",
                average_quota_usage=average_quota,
            ),
        )
