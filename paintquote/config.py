"""Application configuration via pydantic-settings.

All values can be overridden from environment variables (.env file).
Settings are organized into logical groups and composed into a single Settings object.
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RedisSettings(BaseSettings):
    """Redis connection settings (session store, rate limiter, locks)."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection string",
    )


class SessionSettings(BaseSettings):
    """Conversation session storage."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    session_backend: str = Field(default="memory", description="memory | redis")
    session_idle_minutes: int = Field(default=30, description="Idle window before a session expires")
    session_lock_timeout: int = Field(default=10, description="Per-session lock timeout in seconds")

    @field_validator("session_backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Ensure the backend is one we can build."""
        lower = v.lower()
        if lower not in {"memory", "redis"}:
            msg = f"Invalid session backend: {v}. Must be 'memory' or 'redis'"
            raise ValueError(msg)
        return lower


class RateLimitSettings(BaseSettings):
    """Per-session turn limits for the conversational endpoints."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    chat_rate_limit: int = Field(default=20, description="Max turns per window per session")
    chat_rate_window: int = Field(default=60, description="Window size in seconds")


class LLMSettings(BaseSettings):
    """Assistant provider selection and Ollama configuration."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    assistant_provider: str = Field(
        default="rules",
        description="rules (step machine only) | ollama (step machine + LLM phrasing)",
    )
    ollama_base_url: str = Field(
        default="http://localhost:11434",
        description="Ollama API base URL",
    )
    conversation_model: str = Field(default="qwen3:8b-q4_K_M", description="Model used to phrase replies")
    conversation_timeout: int = Field(default=30, description="Conversation LLM timeout in seconds")
    conversation_max_tokens: int = Field(default=200, description="Max tokens for a phrased reply")
    conversation_temperature: float = Field(default=0.4)


class QuoteSettings(BaseSettings):
    """Quote record defaults."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    quote_valid_days: int = Field(default=30, description="Days a new quote stays valid")


class Settings(BaseSettings):
    """Root settings composing all sub-settings.

    Usage:
        settings = Settings()
        settings.sessions.session_idle_minutes
        settings.llm.assistant_provider
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")

    # Composed settings (loaded from same .env)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    sessions: SessionSettings = Field(default_factory=SessionSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    quotes: QuoteSettings = Field(default_factory=QuoteSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid:
            msg = f"Invalid log level: {v}. Must be one of {valid}"
            raise ValueError(msg)
        return upper

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


# Module-level singleton — import this wherever settings are needed.
settings = Settings()
