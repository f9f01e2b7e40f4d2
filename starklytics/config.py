"""Configuration loader for Starklytics.

All tunables come from config/config.yaml and are validated at load
time using Pydantic. Typos and invalid values fail fast with clear
error messages.

Usage:
    from starklytics.config import load_config, get_validated_config

    # Load and validate (call once at startup)
    load_config("config/config.yaml")

    # Typed config object
    config = get_validated_config()
    interval = config.gateway.heartbeat_interval_seconds
"""

from __future__ import annotations

from pathlib import Path

from .config_schema import AppConfig, load_validated_config

# Global config instance
_validated_config: AppConfig | None = None

# Default config path
DEFAULT_CONFIG_PATH: Path = Path(__file__).parent.parent / "config" / "config.yaml"


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate configuration from YAML file.

    Args:
        config_path: Path to config file. Defaults to config/config.yaml.

    Returns:
        Validated AppConfig instance.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        pydantic.ValidationError: If config is invalid.
    """
    global _validated_config

    path: Path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    _validated_config = load_validated_config(path)
    return _validated_config


def get_validated_config() -> AppConfig:
    """Get the validated configuration object.

    Loads default config if not already loaded.
    """
    if _validated_config is None:
        load_config()
    if _validated_config is None:
        raise RuntimeError("Validated config failed to load. Call load_config() first.")
    return _validated_config


def reset_config() -> None:
    """Forget the loaded configuration (used by tests)."""
    global _validated_config
    _validated_config = None
