"""Configuration loading (YAML file + environment overrides)."""

from .config_loader import (
    InsightsConfig,
    get_config_path,
    get_config_value,
    get_insights_config,
    reload_configs,
)

__all__ = [
    "InsightsConfig",
    "get_config_path",
    "get_config_value",
    "get_insights_config",
    "reload_configs",
]
