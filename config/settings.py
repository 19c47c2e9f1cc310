"""
Configuration management for the session cache service.

This module provides centralized configuration loading and validation using
Pydantic settings. Values come from environment variables or .env files.

Recognized options:
- SESSION_TTL: lifetime of a stored session in seconds (default 60)
- SESSIONS_CACHE_TTL: lifetime of cached session lookups in seconds (default 180)
- STORE_SWEEP_INTERVAL: seconds between in-memory expiry sweeps (default 1.0)
- STORE_BACKEND / REDIS_URL / KEY_PREFIX / STORE_TIMEOUT: backing store wiring
"""

import os
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Optional, List, Tuple

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Supported deployment environments."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


def _detect_environment() -> Environment:
    """
    Detect the current environment from the ENVIRONMENT variable.

    Returns:
        Environment: The detected environment, defaults to DEVELOPMENT if not set.
    """
    env_value = os.environ.get("ENVIRONMENT", "development").lower().strip()
    try:
        return Environment(env_value)
    except ValueError:
        return Environment.DEVELOPMENT


def _get_env_files(environment: Environment) -> Tuple[str, ...]:
    """
    Get the list of .env files to load for the given environment.

    Files are loaded in order, with later files overriding earlier ones.

    Args:
        environment: The target environment.

    Returns:
        Tuple of .env file paths to load.
    """
    return (".env", f".env.{environment.value}")


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Every field has a default so the service starts with an in-memory
    store out of the box. Environment-specific overrides live in
    .env.development, .env.staging and .env.production.
    """

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Deployment environment (development, staging, production)"
    )

    # Backing store
    store_backend: str = Field(
        default="memory",
        description="Expiring store backend: 'memory' or 'redis'"
    )
    redis_url: Optional[str] = Field(
        default=None,
        description="Redis connection URL, required for the redis backend"
    )
    key_prefix: str = Field(
        default="demo",
        description="Prefix applied to every key written to Redis"
    )
    store_timeout: float = Field(
        default=5.0,
        gt=0,
        le=60,
        description="Seconds before a backing store call fails with STORE_UNAVAILABLE"
    )
    store_sweep_interval: float = Field(
        default=1.0,
        gt=0,
        le=300,
        description="Seconds between expiry sweeps of the in-memory store"
    )

    # Keyspace TTLs
    session_ttl: int = Field(
        default=60,
        ge=1,
        le=86400,
        description="Session time-to-live in seconds"
    )
    sessions_cache_ttl: int = Field(
        default=180,
        ge=1,
        le=86400,
        description="Time-to-live of cached session lookups in seconds"
    )

    # Observability
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def session_ttl_delta(self) -> timedelta:
        return timedelta(seconds=self.session_ttl)

    @property
    def sessions_cache_ttl_delta(self) -> timedelta:
        return timedelta(seconds=self.sessions_cache_ttl)

    @field_validator("store_backend")
    @classmethod
    def validate_store_backend(cls, v: str) -> str:
        """Validate that store_backend is either 'memory' or 'redis'."""
        v = v.strip().lower()
        if v not in {"memory", "redis"}:
            raise ValueError("store_backend must be 'memory' or 'redis'")
        return v

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate the Redis URL scheme when one is given."""
        if v is None or not v.strip():
            return None
        v = v.strip()
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("redis_url must start with redis://, rediss:// or unix://")
        return v

    @field_validator("key_prefix")
    @classmethod
    def validate_key_prefix(cls, v: str) -> str:
        """Key prefixes must be non-empty and must not contain the key separator."""
        v = v.strip()
        if not v:
            raise ValueError("key_prefix cannot be empty")
        if ":" in v:
            raise ValueError("key_prefix must not contain ':'")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that log_level is a valid logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v = v.strip().upper()
        if v not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(sorted(valid_levels))}")
        return v

    @model_validator(mode="after")
    def validate_store_config(self) -> "Settings":
        """The redis backend needs a URL outside development."""
        if self.store_backend == "redis" and not self.redis_url:
            if self.environment != Environment.DEVELOPMENT:
                raise ValueError(
                    "redis_url is required when store_backend is 'redis' "
                    "in non-development environments"
                )
        return self


class ConfigurationError(Exception):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, missing_fields: Optional[List[str]] = None,
                 invalid_fields: Optional[dict] = None):
        self.message = message
        self.missing_fields = missing_fields or []
        self.invalid_fields = invalid_fields or {}
        super().__init__(self.format_error_message())

    def format_error_message(self) -> str:
        """Format a descriptive error message listing all issues."""
        parts = [self.message]

        if self.missing_fields:
            parts.append(f"\nMissing required fields: {', '.join(self.missing_fields)}")

        if self.invalid_fields:
            invalid_parts = [f"  - {field}: {error}" for field, error in self.invalid_fields.items()]
            parts.append("\nInvalid field values:\n" + "\n".join(invalid_parts))

        return "".join(parts)


def create_settings_for_environment(environment: Optional[Environment] = None) -> Settings:
    """
    Factory function to create Settings for a specific environment.

    Args:
        environment: Optional environment override. If not provided, detected from
                    the ENVIRONMENT variable.

    Returns:
        Settings: Validated settings for the specified environment.

    Raises:
        ConfigurationError: If settings are missing or invalid.
    """
    if environment is None:
        environment = _detect_environment()

    env_files = [f for f in _get_env_files(environment) if Path(f).exists()]

    try:
        class EnvironmentSettings(Settings):
            model_config = SettingsConfigDict(
                env_file=tuple(env_files) or None,
                env_file_encoding="utf-8",
                case_sensitive=False,
                extra="ignore"
            )

        return EnvironmentSettings()
    except Exception as e:
        missing_fields = []
        invalid_fields = {}

        if hasattr(e, 'errors'):
            for error in e.errors():
                field_name = '.'.join(str(loc) for loc in error.get('loc', []))
                error_type = error.get('type', '')
                error_msg = error.get('msg', str(error))

                if error_type == 'missing':
                    missing_fields.append(field_name)
                else:
                    invalid_fields[field_name or "settings"] = error_msg

        raise ConfigurationError(
            f"Failed to load configuration for environment '{environment.value}'",
            missing_fields=missing_fields,
            invalid_fields=invalid_fields
        ) from e


_settings_cache: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Settings are loaded once and cached for subsequent calls.

    Raises:
        ConfigurationError: If settings are missing or invalid.
    """
    global _settings_cache

    if _settings_cache is None:
        _settings_cache = create_settings_for_environment()

    return _settings_cache


def clear_settings_cache() -> None:
    """Clear the settings cache so the next get_settings() reloads."""
    global _settings_cache
    _settings_cache = None


def validate_startup() -> None:
    """
    Validate cross-field settings at application startup.

    Raises:
        ConfigurationError: If the combination of settings is unusable.
    """
    settings = get_settings()

    validation_errors = {}

    if settings.store_backend == "redis" and not settings.redis_url:
        validation_errors["redis_url"] = "redis_url is required for the redis store backend"

    if settings.store_sweep_interval > settings.session_ttl:
        validation_errors["store_sweep_interval"] = (
            f"store_sweep_interval ({settings.store_sweep_interval}s) must not exceed "
            f"session_ttl ({settings.session_ttl}s)"
        )

    if validation_errors:
        raise ConfigurationError(
            "Configuration validation failed during startup",
            invalid_fields=validation_errors
        )
