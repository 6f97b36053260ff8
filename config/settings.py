"""Application settings loaded from environment variables.

Uses pydantic-settings for validation and type coercion. App-specific
settings use the ``JANSUNWAI_`` prefix; infrastructure settings and the
penalty amount keep their canonical environment variable names via
``validation_alias``.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Central configuration for the JanSunwai complaint service.

    Environment variables are loaded from a ``.env`` file when present.
    Workflow policy values (reopen bound, penalty, duplicate window) are
    read once at start-up and handed to the lifecycle engine.
    """

    model_config = SettingsConfigDict(
        env_prefix="JANSUNWAI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # ── App ────────────────────────────────────────────────────────────
    env: Literal["development", "production"] = "development"

    # ── API ────────────────────────────────────────────────────────────
    api_host: str = Field(default="0.0.0.0", validation_alias="API_HOST")
    api_port: int = Field(default=8000, validation_alias="API_PORT")
    cors_origins: str = Field(default="", validation_alias="CORS_ORIGINS")

    # ── Rate Limiting ──────────────────────────────────────────────────
    rate_limit_per_minute: int = Field(default=30, validation_alias="RATE_LIMIT_PER_MINUTE")
    trusted_proxy_count: int = Field(
        default=1,
        ge=0,
        validation_alias="TRUSTED_PROXY_COUNT",
    )

    # ── Logging ────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_format: str = Field(default="json", validation_alias="LOG_FORMAT")

    # ── Workflow policy ────────────────────────────────────────────────
    max_reopens: int = Field(default=2, ge=0)
    fake_complaint_penalty: float = Field(default=100.0, ge=0, validation_alias="FAKE_COMPLAINT_PENALTY")
    high_risk_threshold: float = Field(default=70.0, ge=0, le=100)

    # ── Duplicate detection ────────────────────────────────────────────
    duplicate_lookback_days: int = Field(default=7, ge=1)
    duplicate_similarity_threshold: float = Field(default=0.80, ge=0, le=1)
    duplicate_max_distance_m: float = Field(default=500.0, gt=0)

    # ── AI classifier ──────────────────────────────────────────────────
    classifier_url: str | None = Field(default=None, validation_alias="CLASSIFIER_URL")
    classifier_api_key: str = Field(default="", validation_alias="CLASSIFIER_API_KEY")
    classifier_timeout_seconds: float = Field(default=10.0, gt=0)
    classifier_max_attempts: int = Field(default=3, ge=1)

    # ── Identity seed ──────────────────────────────────────────────────
    # Actors and submitter standing loaded into the in-process directory at
    # start-up.  Empty path selects the bundled file.
    seed_identities: bool = True
    seed_file: str = ""

    # ── Derived Properties ─────────────────────────────────────────────

    @property
    def is_production(self) -> bool:
        return self.env == Environment.PRODUCTION

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


# Module-level singleton — import ``settings`` everywhere.
settings = Settings()
