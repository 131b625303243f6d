"""Configuration loading for insightloom.

Reads config/insightloom.yaml (or $INSIGHTLOOM_CONFIG_DIR/insightloom.yaml),
then applies environment overrides. A .env file is honoured via python-dotenv.
Parsed YAML is cached; call reload_configs() after editing the file.
"""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

import yaml
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "insightloom.yaml"
CONFIG_DIR_ENV = "INSIGHTLOOM_CONFIG_DIR"

# Defaults used when neither file nor environment sets a value
DEFAULT_CHUNK_TOKEN_LIMIT_RATIO = 0.7
DEFAULT_AVG_CHARS_PER_TOKEN = 3.6
DEFAULT_MAX_CONCURRENCY = 3
DEFAULT_MAX_TOKENS = 128_000

_ENV_OVERRIDES = {
    "chunk_token_limit_ratio": ("INSIGHTLOOM_CHUNK_TOKEN_LIMIT_RATIO", float),
    "avg_chars_per_token": ("INSIGHTLOOM_AVG_CHARS_PER_TOKEN", float),
    "max_concurrency": ("INSIGHTLOOM_MAX_CONCURRENCY", int),
    "max_tokens": ("INSIGHTLOOM_MAX_TOKENS", int),
}


@dataclass(frozen=True)
class InsightsConfig:
    """Tuning knobs for insight generation."""
    chunk_token_limit_ratio: float = DEFAULT_CHUNK_TOKEN_LIMIT_RATIO
    avg_chars_per_token: float = DEFAULT_AVG_CHARS_PER_TOKEN
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    max_tokens: int = DEFAULT_MAX_TOKENS


def get_config_path() -> Path:
    """Directory holding insightloom.yaml."""
    override = os.getenv(CONFIG_DIR_ENV)
    if override:
        return Path(override)
    # insightloom/core/config/config_loader.py -> <repo>/config
    return Path(__file__).parent.parent.parent.parent / "config"


@lru_cache(maxsize=1)
def load_unified_config() -> Dict[str, Any]:
    """Load and cache the YAML config. Missing or empty file yields {}."""
    config_file = get_config_path() / CONFIG_FILENAME
    if not config_file.exists():
        logger.warning(f"{CONFIG_FILENAME} not found at {config_file}, using defaults")
        return {}

    with open(config_file, "r") as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ValueError(f"{config_file} must contain a mapping at the top level")
    logger.debug(f"Loaded config from {config_file}")
    return config


def reload_configs() -> None:
    """Drop cached config so the next read hits the file again."""
    load_unified_config.cache_clear()


def get_config_value(*keys: str, default: Any = None) -> Any:
    """Walk nested keys into the config, returning default when absent.

    Example:
        >>> get_config_value("insights", "max_concurrency", default=3)
    """
    node: Any = load_unified_config()
    for key in keys:
        if not isinstance(node, dict) or key not in node:
            return default
        node = node[key]
    return default if node is None else node


def get_insights_config() -> InsightsConfig:
    """Build InsightsConfig from defaults, the YAML file, then the environment."""
    values: Dict[str, Any] = {
        "chunk_token_limit_ratio": get_config_value(
            "insights", "chunk_token_limit_ratio", default=DEFAULT_CHUNK_TOKEN_LIMIT_RATIO
        ),
        "avg_chars_per_token": get_config_value(
            "insights", "avg_chars_per_token", default=DEFAULT_AVG_CHARS_PER_TOKEN
        ),
        "max_concurrency": get_config_value(
            "insights", "max_concurrency", default=DEFAULT_MAX_CONCURRENCY
        ),
        "max_tokens": get_config_value(
            "insights", "max_tokens", default=DEFAULT_MAX_TOKENS
        ),
    }

    for name, (env_var, cast) in _ENV_OVERRIDES.items():
        raw = os.getenv(env_var)
        if raw is None or raw == "":
            continue
        try:
            values[name] = cast(raw)
        except ValueError:
            logger.warning(f"Ignoring invalid {env_var}={raw!r}")

    return InsightsConfig(
        chunk_token_limit_ratio=float(values["chunk_token_limit_ratio"]),
        avg_chars_per_token=float(values["avg_chars_per_token"]),
        max_concurrency=int(values["max_concurrency"]),
        max_tokens=int(values["max_tokens"]),
    )
