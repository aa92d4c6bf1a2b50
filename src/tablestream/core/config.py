"""Configuration management for tablestream."""

from __future__ import annotations

import os
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tablestream.utils.helpers import parse_duration


class LogFormat(str, Enum):
    """Supported log renderers."""

    JSON = "json"
    CONSOLE = "console"


# ============================================================================
# Source Configuration
# ============================================================================
class TableConfig(BaseModel):
    """One table to poll."""

    table: str = Field(description="Table name")
    tag: str | None = Field(default=None, description="Tag suffix, defaults to the table name")
    update_column: str | None = Field(
        default=None,
        description="Monotonic column used to order and bound queries",
    )
    time_column: str | None = Field(default=None, description="Column holding the event time")
    primary_key: str | None = Field(default=None, description="Primary key override")


class SourceConfig(BaseModel):
    """Relational source configuration."""

    adapter: str = Field(description="Database driver name (mysql, postgresql, sqlite, ...)")
    host: str | None = Field(default=None, description="Database host")
    port: int | None = Field(default=None, description="Database port")
    database: str = Field(default="", description="Database name (file path for sqlite)")
    username: str | None = Field(default=None, description="Login user name")
    password: SecretStr | None = Field(default=None, description="Login password")
    socket: str | None = Field(default=None, description="Unix socket path")

    state_file: str | None = Field(default=None, description="File storing the last checkpoints")
    tag_prefix: str | None = Field(default=None, description="Prefix of emitted tags")
    select_interval: float = Field(default=60.0, gt=0, description="Seconds between polls")
    select_limit: int = Field(default=500, description="Row limit per table per poll")

    tables: list[TableConfig] = Field(default_factory=list)

    @field_validator("select_interval", mode="before")
    @classmethod
    def _parse_interval(cls, value: Any) -> Any:
        if isinstance(value, str):
            stripped = value.strip()
            try:
                return float(stripped)
            except ValueError:
                return parse_duration(stripped).total_seconds()
        return value


# ============================================================================
# Sink Configuration
# ============================================================================
class KinesisSinkConfig(BaseModel):
    """Kinesis output configuration."""

    stream_name: str = Field(description="Kinesis stream name")
    partition_key: str | None = Field(default=None, description="Record field used as partition key")
    random_partition_key: bool = Field(default=False, description="Use a random UUID as partition key")

    region: str | None = Field(default=None, description="AWS region")
    aws_key_id: SecretStr | None = Field(default=None, description="AWS access key ID")
    aws_sec_key: SecretStr | None = Field(default=None, description="AWS secret access key")
    endpoint_url: str | None = Field(default=None, description="Custom endpoint URL")
    ensure_stream_connection: bool = Field(default=True)
    debug: bool = Field(default=False)

    include_time_key: bool = Field(default=True)
    time_key: str = Field(default="time")
    time_format: str | None = Field(default=None, description="strftime format, ISO 8601 if unset")
    include_tag_key: bool = Field(default=True)
    tag_key: str = Field(default="tag")

    retries_on_put_records: int = Field(default=3, ge=0)
    retry_initial_delay: float = Field(default=0.5, ge=0)


# ============================================================================
# Logging Configuration
# ============================================================================
class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO")
    format: LogFormat = Field(default=LogFormat.JSON)
    file: str | None = Field(default=None)


# ============================================================================
# Main Settings
# ============================================================================
class Settings(BaseSettings):
    """Main settings for tablestream."""

    model_config = SettingsConfigDict(
        env_prefix="TABLESTREAM_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    source: SourceConfig | None = Field(default=None)
    sink: KinesisSinkConfig | None = Field(default=None)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path) as f:
            config_dict = yaml.safe_load(f) or {}

        # Expand environment variables
        config_dict = cls._expand_env_vars(config_dict)

        return cls(**config_dict)

    @classmethod
    def _expand_env_vars(cls, config: Any) -> Any:
        """Recursively expand environment variables in config."""
        if isinstance(config, dict):
            return {k: cls._expand_env_vars(v) for k, v in config.items()}
        elif isinstance(config, list):
            return [cls._expand_env_vars(item) for item in config]
        elif isinstance(config, str):
            # Handle ${VAR} and ${VAR:default} syntax
            if config.startswith("${") and "}" in config:
                var_part = config[2 : config.index("}")]
                if ":" in var_part:
                    var_name, default = var_part.split(":", 1)
                else:
                    var_name, default = var_part, None

                value = os.environ.get(var_name, default)
                return value if value is not None else config
            return config
        return config


@lru_cache
def get_settings(config_path: str | None = None) -> Settings:
    """Get cached settings instance."""
    if config_path:
        return Settings.from_yaml(config_path)

    default_paths = [
        Path("config/tablestream.yaml"),
        Path("tablestream.yaml"),
        Path.home() / ".tablestream" / "tablestream.yaml",
    ]

    for path in default_paths:
        if path.exists():
            return Settings.from_yaml(path)

    return Settings()
