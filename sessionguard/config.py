"""Application settings and logging configuration."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from functools import lru_cache
from typing import Any, Literal

import structlog
from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_CONTEXT: dict[str, str] = {"environment": "development", "service": "session-service"}

DAY_SECONDS = 24 * 60 * 60


class AppSettings(BaseModel):
    """Application identity and runtime settings."""

    environment: Literal["development", "staging", "production"] = "development"
    service: str = "session-service"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


class JWTSettings(BaseModel):
    """JWT signing and lifetime settings."""

    algorithm: Literal["RS256"] = "RS256"
    private_key_pem: SecretStr = SecretStr("")
    public_key_pem: SecretStr = SecretStr("")
    access_token_ttl_seconds: int = Field(default=15 * 60, ge=1)
    elevated_access_token_ttl_seconds: int = Field(default=2 * 60 * 60, ge=1)
    elevated_roles: list[str] = Field(default_factory=lambda: ["admin"])
    refresh_token_ttl_seconds: int = Field(default=30 * DAY_SECONDS, ge=1)


class SessionSettings(BaseModel):
    """Session expiry and reaper settings."""

    absolute_ttl_seconds: int = Field(default=30 * DAY_SECONDS, ge=1)
    inactivity_ttl_seconds: int = Field(default=7 * DAY_SECONDS, ge=1)
    reaper_interval_seconds: float = Field(default=float(DAY_SECONDS), gt=0)
    reaper_enabled: bool = True


class CookieSettings(BaseModel):
    """Refresh credential cookie settings."""

    name: str = "refreshToken"
    path: str = "/"
    secure: bool | None = None
    samesite: Literal["lax", "strict", "none"] | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        """Reject blank cookie names."""
        if not value.strip():
            raise ValueError("cookie.name must not be blank.")
        return value.strip()


class Settings(BaseSettings):
    """Root application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app: AppSettings = Field(default_factory=AppSettings)
    jwt: JWTSettings = Field(default_factory=JWTSettings)
    sessions: SessionSettings = Field(default_factory=SessionSettings)
    cookie: CookieSettings = Field(default_factory=CookieSettings)


def _standard_log_fields(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Inject required structured logging fields."""
    context_vars = structlog.contextvars.get_contextvars()
    event_dict.setdefault("correlation_id", str(context_vars.get("correlation_id", "unknown")))
    event_dict.setdefault("environment", _LOG_CONTEXT["environment"])
    event_dict.setdefault("service", _LOG_CONTEXT["service"])
    event_dict.setdefault("timestamp", datetime.now(UTC).isoformat())
    return event_dict


def configure_structlog(settings: Settings) -> None:
    """Configure structlog for JSON output with required fields."""
    _LOG_CONTEXT["environment"] = settings.app.environment
    _LOG_CONTEXT["service"] = settings.app.service

    log_level = getattr(logging, settings.app.log_level, logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            _standard_log_fields,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


@lru_cache
def get_settings() -> Settings:
    """Load and cache application settings from environment variables."""
    return Settings()
