"""Configuration module for famchat."""

from famchat.config.loader import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigParseError,
    EnvVarNotFoundError,
    load_config,
)
from famchat.config.models import (
    AppConfig,
    ChatConfig,
    DatabaseConfig,
    LoggingConfig,
    MemberConfig,
    RealtimeConfig,
    ServerConfig,
    StorageConfig,
)

__all__ = [
    # Exceptions
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigParseError",
    "EnvVarNotFoundError",
    # Functions
    "load_config",
    # Models
    "AppConfig",
    "ChatConfig",
    "DatabaseConfig",
    "LoggingConfig",
    "MemberConfig",
    "RealtimeConfig",
    "ServerConfig",
    "StorageConfig",
]
