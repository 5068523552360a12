"""
Configuration management for the session store.

This module provides centralized configuration loading and validation using
Pydantic settings. Values are loaded from environment variables or .env
files, with an environment-specific file layered over the base one.
"""

import os
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
    Get the .env files to load for the given environment.

    The base .env file is loaded first, then the environment-specific file
    overrides it.
    """
    env_file_map = {
        Environment.DEVELOPMENT: ".env.development",
        Environment.STAGING: ".env.staging",
        Environment.PRODUCTION: ".env.production",
    }
    env_specific_file = env_file_map.get(environment, ".env.development")

    return (".env", env_specific_file)


class Settings(BaseSettings):
    """
    Session store settings loaded from environment variables.

    The ENVIRONMENT variable selects which environment-specific .env file
    is layered over the base .env file.
    """

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Deployment environment (development, staging, production)"
    )

    # Document store backend
    document_store_type: str = Field(
        default="elasticsearch",
        description="Document store backend: 'elasticsearch' or 'memory'"
    )
    elastic_endpoint: Optional[str] = Field(
        default=None,
        description="Elasticsearch endpoint URL"
    )
    elastic_api_key: Optional[str] = Field(
        default=None,
        description="Elasticsearch API key for authentication"
    )
    session_index: str = Field(
        default="sessions",
        description="Name of the index holding session documents"
    )

    # Session lifecycle
    session_ttl_override: Optional[int] = Field(
        default=None,
        ge=0,
        description="TTL in seconds used when a session carries no cookie max-age"
    )
    session_key_prefix: str = Field(
        default="sess:",
        description="Prefix prepended to session ids to build document ids"
    )
    session_disable_ttl_refresh: bool = Field(
        default=False,
        description="Turn touch() into a no-op"
    )

    # Expiry index and garbage collection
    expiry_index_name: str = Field(
        default="express_expired_sessions",
        description="Name of the expired-sessions index"
    )
    expiry_index_design_name: str = Field(
        default="expired_sessions",
        description="Design (namespace) name the expiry index is stored under"
    )
    max_expired_per_cleanup: int = Field(
        default=100,
        ge=1,
        le=10000,
        description="Maximum number of expired sessions deleted per cleanup run"
    )

    # Connectivity
    connection_check_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Timeout in seconds for the store reachability probe"
    )
    store_failure_threshold: int = Field(
        default=3,
        ge=1,
        description="Consecutive store failures before the circuit opens"
    )
    store_recovery_timeout_seconds: int = Field(
        default=30,
        ge=1,
        description="Seconds the circuit stays open before probing again"
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

    @field_validator("elastic_endpoint")
    @classmethod
    def validate_elastic_endpoint(cls, v: Optional[str]) -> Optional[str]:
        """Validate that elastic_endpoint, when given, is an HTTP(S) URL."""
        if v is None:
            return v
        v = v.strip().strip('"')
        if not v:
            return None
        if not (v.startswith("http://") or v.startswith("https://")):
            raise ValueError("elastic_endpoint must be a valid HTTP/HTTPS URL")
        return v

    @field_validator("session_index")
    @classmethod
    def validate_session_index(cls, v: str) -> str:
        """Elasticsearch index names must be lowercase and non-empty."""
        v = v.strip()
        if not v:
            raise ValueError("session_index cannot be empty")
        if v != v.lower() or v.startswith(("_", "-", "+")):
            raise ValueError("session_index must be lowercase and must not start with '_', '-' or '+'")
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

    @field_validator("document_store_type")
    @classmethod
    def validate_document_store_type(cls, v: str) -> str:
        """Validate that document_store_type is either 'elasticsearch' or 'memory'."""
        v = v.strip().lower()
        if v not in {"elasticsearch", "memory"}:
            raise ValueError("document_store_type must be 'elasticsearch' or 'memory'")
        return v

    @model_validator(mode="after")
    def validate_document_store_config(self) -> "Settings":
        """Require an Elasticsearch endpoint outside development."""
        if self.document_store_type == "elasticsearch" and not self.elastic_endpoint:
            # In development the memory store is used as a fallback
            if self.environment != Environment.DEVELOPMENT:
                raise ValueError(
                    "elastic_endpoint is required when document_store_type is "
                    "'elasticsearch' in non-development environments"
                )
        if self.environment == Environment.PRODUCTION and self.document_store_type == "memory":
            raise ValueError("document_store_type 'memory' is not allowed in production")
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
    Create Settings for a specific environment.

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

    env_files = _get_env_files(environment)
    existing_env_files = [f for f in env_files if Path(f).exists()] or list(env_files)

    try:
        class EnvironmentSettings(Settings):
            model_config = SettingsConfigDict(
                env_file=tuple(existing_env_files),
                env_file_encoding="utf-8",
                case_sensitive=False,
                extra="ignore"
            )

        return EnvironmentSettings(environment=environment)
    except Exception as e:
        missing_fields = []
        invalid_fields = {}

        # Extract field-level errors from Pydantic ValidationError
        if hasattr(e, 'errors'):
            for error in e.errors():
                field_name = '.'.join(str(loc) for loc in error.get('loc', [])) or "settings"
                error_type = error.get('type', '')
                error_msg = error.get('msg', str(error))

                if error_type == 'missing':
                    missing_fields.append(field_name)
                else:
                    invalid_fields[field_name] = error_msg

        raise ConfigurationError(
            f"Failed to load configuration for environment '{environment.value}'",
            missing_fields=missing_fields,
            invalid_fields=invalid_fields
        ) from e


_settings_cache: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the settings singleton.

    Settings are loaded once and cached for subsequent calls.

    Raises:
        ConfigurationError: If settings are missing or invalid.
    """
    global _settings_cache

    if _settings_cache is None:
        _settings_cache = create_settings_for_environment()

    return _settings_cache


def clear_settings_cache() -> None:
    """Clear the settings cache so the next get_settings() reloads them."""
    global _settings_cache
    _settings_cache = None
