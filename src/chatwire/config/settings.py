"""
Configuration settings for chatwire.

This module provides configuration management using Pydantic settings
with support for environment variables and .env files.
"""

from typing import Any, Dict
from pathlib import Path
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ChatwireSettings(BaseSettings):
    """
    Main configuration settings for chatwire.

    Settings are loaded from multiple sources in order of preference:
    1. Environment variables (prefixed with CHATWIRE_)
    2. .env file
    3. Default values
    """

    model_config = SettingsConfigDict(
        env_prefix="CHATWIRE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Backend Configuration
    api_url: str = Field(
        default="http://localhost:8080/api",
        description="Base URL of the REST API (development proxy prefix)"
    )

    socket_url: str = Field(
        default="ws://localhost:3030/ws",
        description="URL of the real-time WebSocket endpoint"
    )

    transport: str = Field(
        default="socket",
        description="Transport used for remote calls: 'rest' or 'socket'"
    )

    timeout: float = Field(
        default=30.0,
        description="Request timeout in seconds",
        gt=0
    )

    # Authentication Configuration
    auth_strategy: str = Field(
        default="local",
        description="Default authentication strategy"
    )

    storage_key: str = Field(
        default="chatwire-jwt",
        description="Name of the stored access token"
    )

    persist_token: bool = Field(
        default=True,
        description="Keep the access token on disk between runs"
    )

    # Chat Configuration
    message_page_size: int = Field(
        default=25,
        description="Number of messages loaded when the chat view opens",
        gt=0,
        le=500
    )

    # Directory Configuration
    config_dir: Path = Field(
        default_factory=lambda: Path.home() / ".config" / "chatwire",
        description="Configuration directory path"
    )

    cache_dir: Path = Field(
        default_factory=lambda: Path.home() / ".cache" / "chatwire",
        description="Cache directory path"
    )

    # Logging Configuration
    log_level: str = Field(
        default="WARNING",
        description="Logging level"
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    @field_validator("transport")
    @classmethod
    def validate_transport(cls, v: str) -> str:
        """Validate transport name."""
        valid_transports = {"rest", "socket"}
        v_lower = v.lower()
        if v_lower not in valid_transports:
            raise ValueError(f"Invalid transport '{v}'. Valid transports: {', '.join(sorted(valid_transports))}")
        return v_lower

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level '{v}'. Valid levels: {', '.join(sorted(valid_levels))}")
        return v_upper

    @field_validator("api_url", "socket_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    def ensure_directories(self) -> None:
        """Ensure configuration and cache directories exist."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    @property
    def token_file(self) -> Path:
        """Path of the stored access token."""
        return self.cache_dir / self.storage_key

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to a printable dictionary."""
        data = self.model_dump()
        data["config_dir"] = str(self.config_dir)
        data["cache_dir"] = str(self.cache_dir)
        return data


def get_settings(**overrides: Any) -> ChatwireSettings:
    """Get the current chatwire settings."""
    return ChatwireSettings(**overrides)
