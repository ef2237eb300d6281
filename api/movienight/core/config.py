"""Application settings parsed from environment variables and defaults."""

import json
from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


def _split_list(value: str | list[str] | None) -> list[str] | None:
    """Split JSON, CSV, or list inputs into cleaned strings; None when empty."""
    if isinstance(value, list):
        cleaned = [item.strip() for item in value if isinstance(item, str) and item.strip()]
        return cleaned or None
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            parsed = json.loads(stripped)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            cleaned = [str(item).strip() for item in parsed if str(item).strip()]
            return cleaned or None
        items = [item.strip() for item in stripped.split(",") if item.strip()]
        return items or None
    return None


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    app_name: str = "Movie Night API"
    environment: str = "development"
    api_prefix: str = "/api"

    database_url: str
    test_database_url: Optional[str] = None

    basic_auth_user: str = "admin"
    basic_auth_password: str = Field(
        default="movies",
        validation_alias=AliasChoices("basic_auth_password", "basic_auth_pass"),
    )
    basic_auth_password_hash: Optional[str] = None
    basic_auth_default_email: str = "family@movienight.local"
    basic_auth_default_user_id: str = "basic-auth-user"
    basic_auth_realm: str = "Family Movies"

    jwt_secret_key: Optional[str] = None
    jwt_algorithm: str = "HS256"
    jwt_audience: Optional[str] = None

    chat_webhook_url: Optional[str] = None
    log_movie_webhook_url: Optional[str] = None
    block_recommendation_webhook_url: Optional[str] = None
    webhook_timeout_seconds: float = 15.0
    webhook_max_attempts: int = 2
    webhook_circuit_threshold: int = 3

    chat_history_limit: int = 40

    log_level: str = "INFO"
    cors_origins: list[str] | str = Field(default_factory=lambda: DEFAULT_CORS_ORIGINS.copy())
    health_allowlist: list[str] | str = Field(default_factory=list)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_cors_origins(cls, value: str | list[str] | None) -> list[str]:
        """Normalize CORS origins from JSON, CSV, or list inputs."""
        return _split_list(value) or DEFAULT_CORS_ORIGINS.copy()

    @field_validator("health_allowlist", mode="before")
    @classmethod
    def _split_health_allowlist(cls, value: str | list[str] | None) -> list[str]:
        """Normalize health allowlist entries from JSON, CSV, or list inputs."""
        return _split_list(value) or []

    @field_validator("webhook_max_attempts")
    @classmethod
    def _at_least_one_attempt(cls, value: int) -> int:
        return max(1, value)

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True
    )


@lru_cache
def get_settings() -> Settings:
    """Return cached settings to avoid re-parsing environment variables."""
    return Settings()


settings = get_settings()
