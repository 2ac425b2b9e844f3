"""
Centralized configuration for the AI assistant orchestration core.

All settings are loaded from environment variables with sensible defaults.
Pydantic Settings provides validation and type coercion. Tuning values
(thresholds, quotas, priorities) are compiled-in defaults; only API keys and
observability switches are expected to come from the environment.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

# Load .env then .env.local (so .env.local overrides). Use override=True so file wins over shell.
_repo_root = Path(__file__).resolve().parent.parent
load_dotenv(_repo_root / ".env", override=True)
_env_local = _repo_root / ".env.local"
if _env_local.exists():
    load_dotenv(_env_local, override=True)


class LLMConfig(BaseSettings):
    """Provider API keys and model identifiers."""

    gemini_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    )
    openai_api_key: str = Field(default="", alias="OPENAI_API_KEY")
    anthropic_api_key: str = Field(default="", alias="ANTHROPIC_API_KEY")

    gemini_primary_model: str = Field(default="gemini-2.5-flash", alias="GEMINI_PRIMARY_MODEL")
    gemini_secondary_model: str = Field(default="gemini-1.5-flash", alias="GEMINI_SECONDARY_MODEL")
    gemini_lite_model: str = Field(default="gemini-1.5-flash-8b", alias="GEMINI_LITE_MODEL")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    claude_model: str = Field(default="claude-3-5-haiku-latest", alias="CLAUDE_MODEL")

    # Shared generation params
    temperature: float = 0.7
    max_tokens: int = 1024


class ResilienceConfig(BaseSettings):
    """Circuit breaker, timeout, quota-check and retry tuning (seconds)."""

    breaker_threshold: int = 5
    breaker_open_duration: float = 60.0
    breaker_monitoring_period: float = 120.0

    # The local responder gets a more tolerant breaker
    local_breaker_threshold: int = 10
    local_breaker_open_duration: float = 30.0
    local_breaker_monitoring_period: float = 60.0

    call_timeout: float = Field(default=30.0, alias="AI_CALL_TIMEOUT_SECONDS")
    quota_check_interval: float = 60 * 60

    retry_max_retries: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 10.0


class RateLimitConfig(BaseSettings):
    """Fixed-window request limits for the endpoint handlers."""

    assistant_max_requests: int = 10
    assistant_window: float = 60.0
    api_max_requests: int = 100
    api_window: float = 15 * 60


class ObservabilityConfig(BaseSettings):
    """Logging and Prometheus metrics."""

    environment: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    # Prometheus: exposes /metrics on this port when enabled
    metrics_enabled: bool = Field(default=False, alias="PROMETHEUS_METRICS_ENABLED")
    metrics_port: int = Field(default=8000, alias="PROMETHEUS_METRICS_PORT")

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"


class Settings(BaseSettings):
    """Root settings container; access all config from one object."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    resilience: ResilienceConfig = Field(default_factory=ResilienceConfig)
    rate_limits: RateLimitConfig = Field(default_factory=RateLimitConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton settings instance. Cached after first call."""
    return Settings()
