"""
Tree Mirror Configuration System.

This module provides a type-safe configuration system using Pydantic.
Settings can be loaded from:
1. Environment variables (prefixed with TREE_MIRROR_)
2. Config file (TOML or JSON)
3. CLI arguments (highest priority)

Example usage:
    from tree_mirror.config import Settings

    # Load from environment
    settings = Settings()

    # Or with explicit values
    settings = Settings(
        source_prefix="https://example.org/announcements/",
        mirror_prefix="https://example.org/datasets/synced/",
    )
"""

from __future__ import annotations

import json
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class HttpOptions(BaseModel):
    """Transport options for the HTTP resource store."""

    model_config = ConfigDict(validate_assignment=True)

    connect_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Seconds to wait for a connection",
    )
    read_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Seconds to wait for a response body",
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Transport attempts for rate limits and connection errors",
    )
    retry_delay: float = Field(
        default=1.0,
        ge=0,
        description="Base delay between transport attempts (linear backoff)",
    )


class SyncOptions(BaseModel):
    """Options controlling sync behavior."""

    model_config = ConfigDict(validate_assignment=True)

    poll_interval: float = Field(
        default=0.0,
        ge=0,
        description="Seconds between successive page fetches of the source",
    )
    max_concurrency: int = Field(
        default=4,
        ge=1,
        le=32,
        description="Pages mirrored concurrently within one cycle",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(validate_assignment=True)

    level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Log level",
    )
    file: Path | None = Field(
        default=None,
        description="Log file path (None = console only)",
    )
    format: str = Field(
        default="rich",
        pattern="^(rich|json|simple)$",
        description="Log format: rich (colored), json, or simple",
    )
    max_file_size_mb: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Max log file size before rotation",
    )
    backup_count: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Number of rotated log files to keep",
    )


class Settings(BaseSettings):
    """
    Main settings class for Tree Mirror.

    Settings are loaded in this priority (highest first):
    1. Explicit constructor arguments
    2. Environment variables (TREE_MIRROR_* prefix)
    3. Config file (if specified)
    4. Defaults

    Example:
        # From environment
        export TREE_MIRROR_SOURCE_PREFIX="https://example.org/announcements/"
        export TREE_MIRROR_MIRROR_PREFIX="https://example.org/datasets/synced/"
        settings = Settings()

        # From config file
        settings = Settings.from_file("config.toml")
    """

    model_config = SettingsConfigDict(
        env_prefix="TREE_MIRROR_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
    )

    # Locations
    source_prefix: str = Field(
        default="",
        description="Container of the source log (ends with '/')",
    )
    mirror_prefix: str = Field(
        default="",
        description="Container of the mirror (ends with '/')",
    )
    root_name: str = Field(
        default="root.ttl",
        min_length=1,
        description="Name of the root resource inside both containers",
    )

    # Credentials
    api_token: SecretStr = Field(
        default=SecretStr(""),
        description="Bearer token sent to the resource server",
    )

    # Nested configs
    http: HttpOptions = Field(default_factory=HttpOptions)
    sync: SyncOptions = Field(default_factory=SyncOptions)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("api_token", mode="before")
    @classmethod
    def validate_token(cls, v: Any) -> SecretStr:
        """Handle token from various sources."""
        if isinstance(v, SecretStr):
            return v
        if isinstance(v, str):
            return SecretStr(v)
        return SecretStr("")

    @classmethod
    def from_file(cls, path: Path | str) -> "Settings":
        """Load settings from a TOML or JSON config file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        content = path.read_text()

        if path.suffix in (".toml", ".tml"):
            data = tomllib.loads(content)
        elif path.suffix == ".json":
            data = json.loads(content)
        else:
            raise ValueError(f"Unsupported config format: {path.suffix}")

        return cls.model_validate(data)

    def to_file(self, path: Path | str) -> None:
        """Save current settings to a config file."""
        path = Path(path)
        data = self.model_dump(mode="json", exclude_none=True)

        # Mask sensitive data
        if "api_token" in data:
            data["api_token"] = "***REDACTED***"

        if path.suffix in (".toml", ".tml"):
            # Basic TOML serialization
            lines = []
            for key, value in data.items():
                if not isinstance(value, dict):
                    lines.append(f"{key} = {json.dumps(value)}")
            for key, value in data.items():
                if isinstance(value, dict):
                    lines.append(f"\n[{key}]")
                    for k, v in value.items():
                        lines.append(f"{k} = {json.dumps(v)}")
            path.write_text("\n".join(lines) + "\n")
        else:
            path.write_text(json.dumps(data, indent=2))

    def validate_locations(self) -> list[str]:
        """Validate that source and mirror prefixes are usable. Returns list of errors."""
        errors = []
        if not self.source_prefix:
            errors.append("source_prefix is required")
        elif not self.source_prefix.endswith("/"):
            errors.append("source_prefix must end with '/'")
        if not self.mirror_prefix:
            errors.append("mirror_prefix is required")
        elif not self.mirror_prefix.endswith("/"):
            errors.append("mirror_prefix must end with '/'")
        if self.source_prefix and self.mirror_prefix:
            if self.source_prefix == self.mirror_prefix:
                errors.append("source_prefix and mirror_prefix must differ")
            elif self.source_prefix.startswith(self.mirror_prefix) or (
                self.mirror_prefix.startswith(self.source_prefix)
            ):
                errors.append("source_prefix and mirror_prefix must not be nested")
        return errors


# Convenience function for loading settings
def load_settings(
    config_file: Path | str | None = None,
    **overrides: Any,
) -> Settings:
    """
    Load settings with optional config file and overrides.

    Args:
        config_file: Optional path to config file
        **overrides: Settings to override (highest priority)

    Returns:
        Configured Settings instance
    """
    if config_file:
        settings = Settings.from_file(config_file)
        if overrides:
            data = settings.model_dump()
            data.update(overrides)
            return Settings.model_validate(data)
        return settings
    return Settings(**overrides)
