"""textsense — Application Configuration."""

from __future__ import annotations

import enum
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from textsense.domain.enums import ClaudeTier


class Environment(str, enum.Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class StoreBackend(str, enum.Enum):
    MEMORY = "memory"
    FILE = "file"
    REDIS = "redis"


class Settings(BaseSettings):
    """Centralised, validated configuration loaded from environment / .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ──────────────────────────────────────────
    app_name: str = "textsense"
    app_env: Environment = Environment.DEVELOPMENT
    app_debug: bool = False
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "INFO"
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    # ── Key-value store ──────────────────────────────────────
    store_backend: StoreBackend = StoreBackend.MEMORY
    store_path: str = ".textsense/store.json"
    redis_url: str = "redis://localhost:6379/0"
    redis_max_connections: int = 20

    # ── Credentials (seeded into the store at startup) ───────
    groq_api_key: str = ""
    claude_api_key: str = ""
    preferred_provider: str = ""

    # ── Providers ────────────────────────────────────────────
    groq_base_url: str = "https://api.groq.com/openai/v1"
    groq_model: str = "llama-3.1-8b-instant"
    claude_base_url: str = "https://api.anthropic.com/v1"
    claude_model: str = "claude-3-5-haiku-latest"
    claude_api_version: str = "2023-06-01"
    claude_tier: str = ClaudeTier.TIER1.value
    validate_credentials: bool = True
    provider_timeout_seconds: float = 60.0

    # ── Orchestration ────────────────────────────────────────
    cache_ttl_seconds: float = 300.0
    cache_max_entries: int = 100
    cache_key_prefix_chars: int = 500
    provider_error_threshold: int = 3
    provider_error_cooldown_seconds: float = 300.0
    provider_rate_limit_cooldown_seconds: float = 60.0

    # ── Derived helpers ──────────────────────────────────────
    @property
    def is_production(self) -> bool:
        return self.app_env == Environment.PRODUCTION

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, v: str) -> str:
        return v.upper()

    @field_validator("claude_tier")
    @classmethod
    def _validate_claude_tier(cls, v: str) -> str:
        allowed = {t.value for t in ClaudeTier}
        if v.lower() not in allowed:
            raise ValueError(f"claude_tier must be one of {sorted(allowed)}")
        return v.lower()

    @field_validator("preferred_provider")
    @classmethod
    def _lower_preferred_provider(cls, v: str) -> str:
        return v.strip().lower()


def get_settings(**overrides: Any) -> Settings:
    """Factory that allows test-time overrides."""
    return Settings(**overrides)
