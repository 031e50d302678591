"""
Configuration Management for Expense App

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SupabaseSettings(BaseSettings):
    """Remote table store (Supabase) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SUPABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    url: str = Field(
        ...,
        description="Supabase project URL"
    )
    key: str = Field(
        ...,
        description="Supabase anon or service key"
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Project URLs are used as a base, so drop any trailing slash."""
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Supabase URL must be http(s): {v}")
        return v


class LocalStorageSettings(BaseSettings):
    """Where the offline cache and preferences live on disk."""

    model_config = SettingsConfigDict(
        env_prefix="EXPENSE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path.home() / ".expense_app",
        description="Directory holding the cache and preferences files"
    )
    cache_filename: str = Field(
        default="data_cache.json",
        description="Snapshot of the last successful fetch"
    )
    preferences_filename: str = Field(
        default="preferences.json",
        description="Persistent flags and user settings"
    )

    @property
    def cache_path(self) -> Path:
        return self.data_dir.expanduser() / self.cache_filename

    @property
    def preferences_path(self) -> Path:
        return self.data_dir.expanduser() / self.preferences_filename


class SyncSettings(BaseSettings):
    """Tuning for the synchronization layer."""

    model_config = SettingsConfigDict(
        env_prefix="SYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    category_push_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for the background category order push"
    )
    category_push_min_wait: float = Field(
        default=1.0,
        ge=0.0,
        description="Minimum backoff between push attempts (seconds)"
    )
    category_push_max_wait: float = Field(
        default=10.0,
        ge=0.0,
        description="Maximum backoff between push attempts (seconds)"
    )
    recent_events_limit: int = Field(
        default=200,
        ge=0,
        description="How many sync events the logger keeps in memory"
    )


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
    def supabase(self) -> SupabaseSettings:
        return SupabaseSettings()

    @property
    def local(self) -> LocalStorageSettings:
        return LocalStorageSettings()

    @property
    def sync(self) -> SyncSettings:
        return SyncSettings()


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

    for name in ("supabase", "local", "sync"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
