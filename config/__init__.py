"""Usage Stats - Configuration Module.

Loads application configuration from ``config.yaml`` and environment
variables.
"""

from .config_manager import (
    AppConfig,
    AuthConfig,
    ConfigError,
    ConfigManager,
    DatabaseConfig,
    get_config,
    reset_config,
)

__all__ = [
    "AppConfig",
    "AuthConfig",
    "ConfigError",
    "ConfigManager",
    "DatabaseConfig",
    "get_config",
    "reset_config",
]
