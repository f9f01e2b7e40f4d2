"""Pydantic schema for configuration validation.

All config values are validated at startup. Typos and invalid values
fail fast with clear error messages.

Usage:
    from starklytics.config_schema import load_validated_config, AppConfig
    config = load_validated_config("config/config.yaml")
    # config is now a validated AppConfig instance
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# BASE MODEL WITH STRICT VALIDATION
# =============================================================================

class StrictModel(BaseModel):
    """Base model that rejects unknown fields (catches typos)."""

    model_config = ConfigDict(extra="forbid")


# =============================================================================
# SPELLBOOK MODEL
# =============================================================================

class SpellbookConfig(StrictModel):
    """Rollup and query dispatch configuration."""

    default_source: str = Field(
        default="starknet",
        min_length=1,
        description="Source used when a query carries no blockchain clause"
    )
    transfer_min_usd: float = Field(
        default=1.0,
        ge=0,
        description="Transfers below this USD amount are treated as dust"
    )
    events_file: str | None = Field(
        default=None,
        description="JSONL file of raw events (None = bundled sample events)"
    )

    @field_validator("default_source")
    @classmethod
    def _lowercase_source(cls, value: str) -> str:
        return value.strip().lower()


# =============================================================================
# GATEWAY MODEL
# =============================================================================

class GatewayConfig(StrictModel):
    """Live query transport configuration."""

    heartbeat_interval_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Seconds between liveness pings to every open connection"
    )
    query_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Seconds before a submitted query is answered with a timeout"
    )
    websocket_path: str = Field(
        default="/ws",
        description="WebSocket endpoint path"
    )


# =============================================================================
# DASHBOARDS MODEL
# =============================================================================

class DashboardsConfig(StrictModel):
    """Dashboard repository configuration."""

    storage_file: str | None = Field(
        default=None,
        description="JSON snapshot file for dashboards (None = memory only)"
    )


# =============================================================================
# SERVER MODEL
# =============================================================================

class ServerConfig(StrictModel):
    """HTTP server configuration."""

    host: str = Field(
        default="0.0.0.0",
        description="Host to bind (0.0.0.0 for all interfaces)"
    )
    port: int = Field(
        default=8080,
        gt=0,
        description="Port number"
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Allowed CORS origins"
    )


# =============================================================================
# LOGGING MODEL
# =============================================================================

class LoggingConfig(StrictModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Root log level"
    )


# =============================================================================
# ROOT MODEL
# =============================================================================

class AppConfig(StrictModel):
    """Root configuration model for the entire application.

    All fields have sensible defaults, so an empty config file is valid.
    """

    spellbook: SpellbookConfig = Field(default_factory=SpellbookConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    dashboards: DashboardsConfig = Field(default_factory=DashboardsConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# LOADING FUNCTIONS
# =============================================================================

def load_validated_config(config_path: str | Path = "config/config.yaml") -> AppConfig:
    """Load and validate configuration from YAML file.

    Args:
        config_path: Path to config YAML file.

    Returns:
        Validated AppConfig instance.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        pydantic.ValidationError: If config is invalid (with detailed error message).
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw_config = yaml.safe_load(f) or {}

    return AppConfig.model_validate(raw_config)


def validate_config_dict(config_dict: dict[str, Any]) -> AppConfig:
    """Validate a configuration dictionary.

    Args:
        config_dict: Configuration as a dictionary.

    Returns:
        Validated AppConfig instance.

    Raises:
        pydantic.ValidationError: If config is invalid.
    """
    return AppConfig.model_validate(config_dict)


__all__ = [
    "AppConfig",
    "SpellbookConfig",
    "GatewayConfig",
    "DashboardsConfig",
    "ServerConfig",
    "LoggingConfig",
    "load_validated_config",
    "validate_config_dict",
]
