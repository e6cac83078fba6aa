"""
Configuration Management for pocketledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see where data is written and how credentials are
hashed, and ensures configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Registry and audit log file locations."""

    model_config = SettingsConfigDict(
        env_prefix="POCKETLEDGER_STORAGE_",
        extra="ignore"
    )

    registry_path: str = Field(
        default="users.json",
        description="Path to the JSON file holding all users and wallets"
    )
    audit_log_path: Optional[str] = Field(
        default=None,
        description="Path to a JSON-lines audit log. If unset, audit events are only logged locally"
    )
    save_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times a failed registry write is attempted"
    )

    @field_validator('registry_path')
    @classmethod
    def validate_registry_path(cls, v: str) -> str:
        """Warn if the parent directory doesn't exist (but don't fail - might be mounted later)."""
        parent = Path(v).parent
        if not parent.exists():
            import warnings
            warnings.warn(
                f"Registry directory not found at {parent}. "
                "Make sure it exists before saving."
            )
        return v


class SecuritySettings(BaseSettings):
    """Credential hashing configuration."""

    model_config = SettingsConfigDict(
        env_prefix="POCKETLEDGER_SECURITY_",
        extra="ignore"
    )

    password_hash_iterations: int = Field(
        default=390_000,
        ge=1_000,
        description="PBKDF2-SHA256 iteration count for new password hashes"
    )
    min_password_length: int = Field(
        default=1,
        ge=1,
        le=128,
        description="Shortest password accepted at registration"
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
    log_level: str = Field(
        default="INFO",
        description="Minimum level for local structured logs"
    )

    # Behaviour
    autosave_on_change: bool = Field(
        default=False,
        description="Persist the registry after every successful wallet change"
    )
    timestamp_format: str = Field(
        default="%Y/%m/%d %H:%M:%S",
        description="strftime format used when rendering record timestamps"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Only accept standard logging level names."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Unsupported log level: {v}. Allowed: {sorted(allowed)}")
        return v.upper()


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
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def security(self) -> SecuritySettings:
        return SecuritySettings()

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

    for name in ("storage", "security", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
