"""Configuration management for Usage Stats.

Configuration is read from an optional ``config.yaml`` in the config
directory (``~/.usage-stats`` by default) and then overridden by
environment variables. The storage backend is chosen from this
configuration once per process; see ``storage.database``.
"""

import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, SecretStr, ValidationError

logger = logging.getLogger(__name__)

# Connection-string variables, checked in order. First non-empty wins.
CONNECTION_STRING_VARS = ("POSTGRES_URL", "POSTGRES_PRISMA_URL", "DATABASE_URL")
POSTGRES_SCHEMES = ("postgres://", "postgresql://")


class ConfigError(Exception):
    """Raised when configuration operations fail."""

    pass


class DatabaseConfig(BaseModel):
    """Database configuration."""

    url: Optional[SecretStr] = None
    path: str = Field(default="~/.usage-stats/email_stats.db")
    pool_min_size: int = Field(default=1, ge=1)
    pool_max_size: int = Field(default=5, ge=1)
    init_timeout_seconds: float = Field(default=10.0, gt=0)


class AuthConfig(BaseModel):
    """Authentication gate configuration."""

    required: bool = True
    seed_email: Optional[str] = None
    seed_password: Optional[SecretStr] = None
    seed_name: Optional[str] = None


class AppConfig(BaseModel):
    """Application configuration."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    log_level: str = "INFO"
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    def database_url(self) -> Optional[str]:
        """Return the connection string if one is configured."""
        if self.database.url is None:
            return None
        return self.database.url.get_secret_value() or None

    def is_postgres(self) -> bool:
        """True when a recognized PostgreSQL connection string is configured."""
        url = self.database_url()
        return bool(url) and url.startswith(POSTGRES_SCHEMES)

    def sqlite_path(self) -> Path:
        return Path(self.database.path).expanduser()


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class ConfigManager:
    """Loads application configuration from YAML and the environment.

    Attributes:
        config_dir: Path to the configuration directory.
    """

    DEFAULT_CONFIG_DIR = Path.home() / ".usage-stats"
    CONFIG_FILE = "config.yaml"

    def __init__(
        self,
        config_dir: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        """Initialize the configuration manager.

        Args:
            config_dir: Custom configuration directory path.
            environ: Environment mapping, defaults to ``os.environ``.
        """
        self._environ = os.environ if environ is None else environ
        home = self._environ.get("USAGE_STATS_HOME")
        if config_dir is not None:
            self.config_dir = Path(config_dir)
        elif home:
            self.config_dir = Path(home).expanduser()
        else:
            self.config_dir = self.DEFAULT_CONFIG_DIR
        self._config: Optional[AppConfig] = None

    @property
    def config_path(self) -> Path:
        """Path to the YAML configuration file."""
        return self.config_dir / self.CONFIG_FILE

    def _read_file(self) -> dict[str, Any]:
        if not self.config_path.exists():
            return {}
        try:
            data = yaml.safe_load(self.config_path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid configuration format: {e}") from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(
                f"Configuration at {self.config_path} must be a mapping"
            )
        return data

    def _apply_environment(self, data: dict[str, Any]) -> None:
        env = self._environ
        database = data["database"] = dict(data.get("database") or {})
        auth = data["auth"] = dict(data.get("auth") or {})

        for var in CONNECTION_STRING_VARS:
            value = env.get(var)
            if value:
                database["url"] = value
                break

        if env.get("USAGE_STATS_DB_PATH"):
            database["path"] = env["USAGE_STATS_DB_PATH"]
        if env.get("DB_INIT_TIMEOUT"):
            database["init_timeout_seconds"] = env["DB_INIT_TIMEOUT"]
        if env.get("DB_POOL_MAX_SIZE"):
            database["pool_max_size"] = env["DB_POOL_MAX_SIZE"]
        if env.get("USAGE_STATS_AUTH_REQUIRED"):
            auth["required"] = _parse_bool(env["USAGE_STATS_AUTH_REQUIRED"])
        if env.get("USAGE_STATS_LOG_LEVEL"):
            data["log_level"] = env["USAGE_STATS_LOG_LEVEL"]

    def load(self) -> AppConfig:
        """Load configuration from file and environment.

        Returns:
            The loaded AppConfig.

        Raises:
            ConfigError: If the file or a value cannot be parsed.
        """
        data = self._read_file()
        self._apply_environment(data)
        try:
            self._config = AppConfig(**data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e
        return self._config

    def get_config(self) -> AppConfig:
        """Get the current configuration, loading if necessary."""
        if self._config is None:
            self._config = self.load()
        return self._config

    def is_configured(self) -> bool:
        """Check if a configuration file exists."""
        return self.config_path.exists()


_manager: Optional[ConfigManager] = None


def get_config() -> AppConfig:
    """Return the process-wide configuration."""
    global _manager
    if _manager is None:
        _manager = ConfigManager()
    return _manager.get_config()


def reset_config() -> None:
    """Forget the cached configuration (used by tests)."""
    global _manager
    _manager = None
