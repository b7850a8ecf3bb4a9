"""
Configuration system for tenantsync using Pydantic.
"""

import os
from pathlib import Path
from typing import Any, Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError
from .schema.identifiers import is_valid_identifier


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO", description="Log level"
    )
    format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format used for the log file",
    )
    file: Optional[str] = Field(None, description="Log file path")
    max_size: int = Field(10485760, description="Max log file size in bytes")  # 10MB
    backup_count: int = Field(5, description="Number of backup log files")


class TenantSyncConfig(BaseSettings):
    """Main tenantsync configuration."""

    master_connection_string: str = Field(
        "", description="DSN of the master database"
    )
    command_timeout: float = Field(
        60.0, gt=0, description="Per-statement timeout in seconds"
    )
    connect_timeout: float = Field(
        30.0, gt=0, description="Connection timeout in seconds"
    )
    schema_name: str = Field("public", description="Schema holding the table")
    table_name: str = Field("applicant_types", description="Table to provision")

    # Tenant discovery
    tenants_query: str = Field(
        "SELECT connection_string FROM public.tenants",
        description="Query run against the master to list tenant DSNs",
    )
    tenants_column: str = Field(
        "connection_string", description="Result column holding the DSN"
    )

    max_concurrency: int = Field(
        1, ge=1, description="Number of targets reconciled at the same time"
    )

    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="TENANTSYNC_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("schema_name", "table_name")
    @classmethod
    def validate_identifier(cls, v: str) -> str:
        if not is_valid_identifier(v):
            raise ValueError(f"'{v}' is not an allowed SQL identifier")
        return v

    @field_validator("tenants_query", "tenants_column")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "TenantSyncConfig":
        """Load configuration from a YAML file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}

            # Expand environment variables in the data
            data = cls._expand_env_vars(data)

            return cls(**data)
        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "TenantSyncConfig":
        """Load from a YAML file if given, otherwise from the environment only."""
        if path:
            return cls.from_yaml(path)
        try:
            return cls()
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

    @classmethod
    def _expand_env_vars(cls, data: Any) -> Any:
        """Recursively expand environment variables in configuration data."""
        if isinstance(data, dict):
            return {k: cls._expand_env_vars(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [cls._expand_env_vars(item) for item in data]
        elif isinstance(data, str):
            return os.path.expandvars(data)
        else:
            return data

    def require_master_connection_string(self) -> str:
        """Return the master DSN or fail before any target is touched."""
        value = self.master_connection_string
        if not value or not value.strip():
            raise ConfigurationError(
                "master_connection_string is not configured "
                "(set it in the config file or TENANTSYNC_MASTER_CONNECTION_STRING)"
            )
        return value.strip()

    def to_yaml(self, path: Union[str, Path]) -> None:
        """Save configuration to a YAML file."""
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.model_dump(exclude_none=True), f, default_flow_style=False, indent=2
            )
