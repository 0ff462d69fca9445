"""Environment configuration and validation.

This module defines strongly-typed application settings loaded from environment variables
(optionally via a local `.env` file).

The OpenRouter API key is optional at startup: a missing key is a user-actionable condition that
the HTTP and CLI surfaces report on their own, not a reason to refuse to boot.
"""

from __future__ import annotations

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MODEL = "openai/gpt-3.5-turbo"
DEFAULT_API_BASE = "https://openrouter.ai/api/v1"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    openrouter_api_key: str | None = Field(default=None, alias="OPENROUTER_API_KEY")
    openrouter_default_model: str = Field(default=DEFAULT_MODEL, alias="OPENROUTER_DEFAULT_MODEL")
    openrouter_api_base: str = Field(default=DEFAULT_API_BASE, alias="OPENROUTER_API_BASE")

    llm_max_tokens: int = Field(default=1000, alias="LLM_MAX_TOKENS")
    llm_temperature: float = Field(default=0.7, alias="LLM_TEMPERATURE")

    parse_timeout_s: float = Field(default=30.0, alias="INTENT_PARSE_TIMEOUT_S")
    execute_timeout_s: float = Field(default=60.0, alias="INTENT_EXECUTE_TIMEOUT_S")
    models_fetch_timeout_s: float = Field(default=10.0, alias="MODELS_FETCH_TIMEOUT_S")
    models_cache_ttl_s: float = Field(default=12 * 60 * 60, alias="MODELS_CACHE_TTL_S")

    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8080, alias="PORT")
    web_dir: str = Field(default="web", alias="WEB_DIR")

    @field_validator("openrouter_api_key")
    @classmethod
    def blank_key_is_missing(cls, value: str | None) -> str | None:
        """Treat an empty or whitespace-only key as not configured."""

        if value is None:
            return None
        value = value.strip()
        return value or None

    @field_validator("openrouter_default_model")
    @classmethod
    def validate_default_model(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("OPENROUTER_DEFAULT_MODEL must not be empty")
        return value

    @field_validator(
        "parse_timeout_s",
        "execute_timeout_s",
        "models_fetch_timeout_s",
        "models_cache_ttl_s",
    )
    @classmethod
    def validate_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeouts and TTLs must be positive")
        return value

    @property
    def has_api_key(self) -> bool:
        return self.openrouter_api_key is not None


def load_settings() -> Settings:
    """Load and validate settings from environment variables.

    Raises:
        RuntimeError: If the environment configuration is invalid.
    """

    try:
        return Settings()
    except ValidationError as exc:
        raise RuntimeError(f"Invalid environment configuration: {exc}") from exc
