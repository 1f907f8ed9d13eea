"""Configuration loading and validation utilities."""

from .loader import (
    ConfigError,
    config_to_params,
    load_simulation_config,
    migrate_config_dict,
    normalize_config_dict,
)

__all__ = [
    "ConfigError",
    "config_to_params",
    "load_simulation_config",
    "migrate_config_dict",
    "normalize_config_dict",
]
