"""YAML configuration loading with environment variable expansion."""

import os
import re
from pathlib import Path
from typing import Any

import yaml

from famchat.config.models import AppConfig

# Matches a whole value of the form ${VAR_NAME}
ENV_VAR_PATTERN = re.compile(r"^\$\{([A-Za-z_][A-Za-z0-9_]*)\}$")

# Environment variable naming the config file when no path is given
CONFIG_PATH_ENV = "FAMCHAT_CONFIG"


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigFileNotFoundError(ConfigError):
    """Raised when the configuration file is not found."""


class ConfigParseError(ConfigError):
    """Raised when the YAML file cannot be parsed."""


class EnvVarNotFoundError(ConfigError):
    """Raised when an environment variable is not found."""


def expand_env_vars(data: Any) -> Any:
    """Replace ``${VAR}`` values with the environment variable's value.

    Only whole-string values are expanded; "prefix${VAR}" is kept verbatim.

    Raises:
        EnvVarNotFoundError: If a referenced variable is not defined.
    """
    if isinstance(data, dict):
        return {key: expand_env_vars(value) for key, value in data.items()}
    if isinstance(data, list):
        return [expand_env_vars(item) for item in data]
    if not isinstance(data, str):
        return data

    match = ENV_VAR_PATTERN.match(data)
    if match is None:
        return data
    var_name = match.group(1)
    value = os.environ.get(var_name)
    if value is None:
        raise EnvVarNotFoundError(f"Environment variable '{var_name}' not found")
    return value


def resolve_config_path(path: Path | None) -> Path:
    """Return the explicit path, else $FAMCHAT_CONFIG, else ./config.yaml."""
    if path is not None:
        return path
    return Path(os.environ.get(CONFIG_PATH_ENV, "config.yaml"))


def load_config(path: Path | None = None) -> AppConfig:
    """Load and validate configuration from a YAML file.

    Args:
        path: Path to the YAML file. See ``resolve_config_path`` for the
            fallback order.

    Returns:
        Validated AppConfig instance.

    Raises:
        ConfigFileNotFoundError: If the file does not exist.
        ConfigParseError: If the YAML cannot be parsed or is not a mapping.
        EnvVarNotFoundError: If an environment variable is not defined.
        ValidationError: If the configuration fails Pydantic validation.
    """
    config_path = resolve_config_path(path)
    if not config_path.exists():
        raise ConfigFileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path) as f:
            raw_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigParseError(f"Failed to parse YAML: {e}") from e

    if raw_data is None:
        raw_data = {}
    if not isinstance(raw_data, dict):
        raise ConfigParseError("Configuration root must be a mapping")

    return AppConfig(**expand_env_vars(raw_data))
