"""
Configuration Management for Finchat

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.

The deployment-mode switch (remote generation vs. local-only) is read
ONCE when the application components are built, never per request.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ChatSettings(BaseSettings):
    """Cache, memory and retry tuning for the query engine."""

    model_config = SettingsConfigDict(
        env_prefix="CHAT_",
        extra="ignore"
    )

    # Response cache: short lived, financial data changes often
    response_cache_ttl_seconds: float = Field(
        default=30.0,
        gt=0,
        description="How long a generated answer stays cached"
    )
    response_cache_max_entries: int = Field(
        default=50,
        ge=1,
        description="Maximum number of cached answers"
    )

    # Context cache: aggregation is the expensive step
    context_cache_ttl_seconds: float = Field(
        default=60.0,
        gt=0,
        description="How long an aggregated financial snapshot stays cached"
    )
    context_cache_max_entries: int = Field(
        default=100,
        ge=1,
        description="Maximum number of cached snapshots"
    )

    # Conversation memory
    conversation_max_messages: int = Field(
        default=10,
        ge=2,
        description="Messages kept per user (user + assistant)"
    )
    conversation_timeout_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Inactivity window after which a conversation is dropped"
    )
    conversation_max_users: int = Field(
        default=200,
        ge=1,
        description="Maximum number of conversations held in memory"
    )

    # Remote generation retry policy
    max_retries: int = Field(
        default=2,
        ge=0,
        le=5,
        description="Retries for retriable remote failures"
    )
    retry_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Base delay; the n-th retry waits n times this value"
    )

    assistant_name: str = Field(
        default="Balanzo",
        min_length=1,
        description="Name the assistant uses for itself"
    )


class RemoteGenerationSettings(BaseSettings):
    """Remote language-generation endpoint configuration."""

    model_config = SettingsConfigDict(
        env_prefix="REMOTE_GENERATION_",
        extra="ignore"
    )

    endpoint_url: str = Field(
        ...,
        description="URL accepting POST {message, userId}"
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=120,
        description="Per-attempt request timeout"
    )

    @field_validator('endpoint_url')
    @classmethod
    def validate_endpoint_url(cls, v: str) -> str:
        """Only absolute http(s) URLs can be called."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(
                f"Remote generation endpoint must be an http(s) URL, got: {v}"
            )
        return v.rstrip("/")


class SupabaseSettings(BaseSettings):
    """Hosted database (Supabase) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SUPABASE_",
        extra="ignore"
    )

    url: str = Field(
        ...,
        description="Supabase project URL"
    )
    service_key: str = Field(
        ...,
        description="Supabase service or anon key"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Deployment-mode switch. When unset, production uses the remote
    # endpoint and every other environment answers locally.
    use_remote_generation: Optional[bool] = Field(
        default=None,
        description="Force remote generation on or off"
    )

    @property
    def remote_generation_enabled(self) -> bool:
        if self.use_remote_generation is not None:
            return self.use_remote_generation
        return self.app_environment.lower() == "production"


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def chat(self) -> ChatSettings:
        return ChatSettings()

    @property
    def remote_generation(self) -> RemoteGenerationSettings:
        return RemoteGenerationSettings()

    @property
    def supabase(self) -> SupabaseSettings:
        return SupabaseSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    sections = {
        "chat": lambda: settings.chat,
        "remote_generation": lambda: settings.remote_generation,
        "supabase": lambda: settings.supabase,
        "app": lambda: settings.app,
    }

    for name, load in sections.items():
        try:
            load()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
