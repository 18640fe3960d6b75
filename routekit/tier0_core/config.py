"""
routekit.tier0_core.config
───────────────────────────
Typed configuration with env layering. Reads from .env → environment
variables. All fields are typed via Pydantic. Invalid values fail at startup,
not at request time.

Minimal stack: pydantic-settings + python-dotenv
"""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PORT = 8085
DEFAULT_CALL_TIMEOUT = 60.0


class RouteKitConfig(BaseSettings):
    """
    Typed routekit configuration.
    All env vars are prefixed with ROUTEKIT_.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ───────────────────────────────────────────────────────────
    app_name: str = Field(default="routekit-service", alias="ROUTEKIT_APP_NAME")
    environment: str = Field(default="development", alias="ROUTEKIT_ENV")

    # ── Server ────────────────────────────────────────────────────────────────
    server_backend: str = Field(default="wsgiref", alias="ROUTEKIT_SERVER_BACKEND")
    server_host: str = Field(default="0.0.0.0", alias="ROUTEKIT_SERVER_HOST")
    server_port: int = Field(default=DEFAULT_PORT, alias="ROUTEKIT_SERVER_PORT")

    # ── Client ────────────────────────────────────────────────────────────────
    client_timeout: float = Field(default=DEFAULT_CALL_TIMEOUT, alias="ROUTEKIT_CLIENT_TIMEOUT")

    # ── Logging ───────────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", alias="ROUTEKIT_LOG_LEVEL")
    log_format: str = Field(default="json", alias="ROUTEKIT_LOG_FORMAT")

    @field_validator("environment")
    @classmethod
    def validate_env(cls, v: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if v.lower() not in allowed:
            raise ValueError(f"environment must be one of {allowed}, got {v!r}")
        return v.lower()

    @field_validator("server_port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        # 0 asks the OS for an ephemeral port
        if v < 0 or v > 65535:
            raise ValueError(f"server_port must be between 0 and 65535, got {v}")
        return v

    @field_validator("client_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"client_timeout must be positive, got {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"log_level must be a standard logging level, got {v!r}")
        return level

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v.lower() not in {"json", "console"}:
            raise ValueError(f"log_format must be 'json' or 'console', got {v!r}")
        return v.lower()


@lru_cache(maxsize=1)
def get_config() -> RouteKitConfig:
    """
    Return the singleton routekit config. Cached after first call.
    Call _reset_config() in tests to pick up new env vars.
    """
    return RouteKitConfig()


def _reset_config() -> None:
    """For tests — clear the config cache."""
    get_config.cache_clear()
