# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""Configuration management for the Resource Server.

This module handles loading and validating configuration from environment
variables with sensible defaults.
"""

from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# A cached verification outlives revocation at the provider by up to the TTL
MAX_TOKEN_CACHE_TTL = 300


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have sensible defaults for local development.
    In production, these should be set via environment variables
    or a .env file.
    """

    # Server Configuration
    host: str = Field(
        default="0.0.0.0",
        description="Host to bind the server to",
        validation_alias=AliasChoices("SERVER_HOST", "HOST"),
    )
    port: int = Field(
        default=8080,
        description="Port to run the server on",
        validation_alias=AliasChoices("SERVER_PORT", "PORT"),
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        validation_alias="LOG_LEVEL",
    )
    environment: str = Field(
        default="development",
        description="Environment name (development, staging, production)",
        validation_alias=AliasChoices("ENVIRONMENT", "ENV"),
    )

    # Routing
    api_prefix: str = Field(
        default="/api",
        description="Prefix under which the resource API is mounted",
        validation_alias="API_PREFIX",
    )
    public_path_prefixes: str = Field(
        default="/health,/api/auth",
        description="Comma-separated path prefixes that bypass authentication",
        validation_alias="PUBLIC_PATH_PREFIXES",
    )

    # Storage
    database_path: str = Field(
        default="resources.db",
        description="Path to the resource SQLite database (':memory:' for ephemeral)",
        validation_alias=AliasChoices("DATABASE_PATH", "RESOURCE_DB_PATH"),
    )
    audit_db_path: Optional[str] = Field(
        default=None,
        description="Path to the audit events SQLite database (disabled when unset)",
        validation_alias="AUDIT_DB_PATH",
    )

    # Identity provider
    auth_provider: str = Field(
        default="static",
        description="Identity provider backend: 'static' or 'http'",
        validation_alias="AUTH_PROVIDER",
    )
    static_tokens: str = Field(
        default="",
        description="Comma-separated token:user_id pairs for the static provider",
        validation_alias="STATIC_TOKENS",
    )
    identity_userinfo_url: Optional[str] = Field(
        default=None,
        description="User-info endpoint used to verify bearer tokens",
        validation_alias=AliasChoices("IDENTITY_USERINFO_URL", "SUPABASE_USERINFO_URL"),
    )
    identity_api_key: Optional[str] = Field(
        default=None,
        description="API key sent to the identity provider alongside the token",
        validation_alias=AliasChoices("IDENTITY_API_KEY", "SUPABASE_ANON_KEY"),
    )
    identity_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for identity provider calls in seconds",
        validation_alias="IDENTITY_TIMEOUT_SECONDS",
    )

    # Token verification cache
    redis_url: Optional[str] = Field(
        default=None,
        description="Redis URL for caching token verifications (disabled when unset)",
        validation_alias="REDIS_URL",
    )
    token_cache_ttl: int = Field(
        default=60,
        ge=1,
        le=MAX_TOKEN_CACHE_TTL,
        description="TTL in seconds for cached token verifications",
        validation_alias="TOKEN_CACHE_TTL",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
    )

    @field_validator("auth_provider", mode="before")
    @classmethod
    def normalize_auth_provider(cls, value):
        if isinstance(value, str):
            value = value.strip().lower()
        if value not in ("static", "http"):
            raise ValueError("AUTH_PROVIDER must be 'static' or 'http'")
        return value

    @field_validator("api_prefix", mode="before")
    @classmethod
    def normalize_api_prefix(cls, value):
        if isinstance(value, str):
            value = "/" + value.strip().strip("/")
        return value

    def get_public_prefixes(self) -> tuple[str, ...]:
        """Return the configured public path prefixes as a tuple."""
        prefixes = [p.strip() for p in self.public_path_prefixes.split(",")]
        return tuple(p for p in prefixes if p)


def get_settings() -> Settings:
    """
    Get application settings.

    Loads settings from environment variables and .env file.

    Returns:
        Settings instance with all configuration values
    """
    return Settings()


# Global settings instance (lazy loaded)
_settings: Optional[Settings] = None


def settings() -> Settings:
    """
    Get the global settings instance.

    Creates the settings instance on first call and caches it.

    Returns:
        Global Settings instance
    """
    global _settings
    if _settings is None:
        _settings = get_settings()
    return _settings
