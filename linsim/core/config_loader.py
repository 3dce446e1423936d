"""
linsim Configuration Loader

Configuration management for the filesystem service:
- JSON configuration file loading
- Environment variable overrides (LINSIM_*)
- Configuration validation
- Default value handling
- Type-safe access to configuration values

Version: 1.0.0
"""

import json
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, List, Mapping

from linsim.exceptions import BootFailureError, ConfigValidationError


_LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'WARN', 'ERROR', 'CRITICAL')

DEFAULT_WELCOME_TEMPLATE = """Welcome to Linux Simulator!

This is a simulated Linux filesystem where you can practice basic Linux commands.
Try exploring the filesystem with commands like:
  - ls     (list files)
  - cd     (change directory)
  - cat    (view file contents)
  - mkdir  (create directory)
  - touch  (create file)

Your personal home directory is /home/{username}.
The /tmp directory is shared and writable by everyone.

Have fun learning!"""


@dataclass
class DatabaseConfig:
    """Node store connection settings."""
    url: str = "sqlite:///linsim.db"
    echo: bool = False
    isolation_level: Optional[str] = "SERIALIZABLE"


@dataclass
class LoggingConfig:
    """Logging configuration settings."""
    level: str = "INFO"
    log_file: Optional[str] = None
    console_output: bool = True
    use_colors: bool = True


@dataclass
class FilesystemConfig:
    """Shared directories seeded under the root, as (path, permissions)."""
    system_directories: List[tuple[str, str]] = field(default_factory=lambda: [
        ("bin", "rwxr-xr-x"),
        ("etc", "rwxr-xr-x"),
        ("home", "rwxr-xr-x"),
        ("tmp", "rwxrwxrwx"),
        ("usr", "rwxr-xr-x"),
        ("var", "rwxr-xr-x"),
        ("var/log", "rwxr-xr-x"),
    ])


@dataclass
class ProvisioningConfig:
    """Personal home directory settings."""
    home_directory: str = "home"
    home_permissions: str = "rwx------"
    welcome_file: str = "welcome.txt"
    welcome_permissions: str = "rw-r--r--"
    welcome_template: str = DEFAULT_WELCOME_TEMPLATE


@dataclass
class Config:
    """
    Main configuration container.

    Holds all configuration settings for the filesystem service.
    """
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    filesystem: FilesystemConfig = field(default_factory=FilesystemConfig)
    provisioning: ProvisioningConfig = field(default_factory=ProvisioningConfig)


class ConfigLoader:
    """
    Configuration loader and manager.

    Loads configuration from a JSON file, applies environment overrides
    and validates the result.

    Example:
        >>> loader = ConfigLoader()
        >>> config = loader.load('linsim.json')
        >>> print(config.database.url)
        sqlite:///linsim.db
    """

    ENV_PREFIX = "LINSIM_"

    _instance: Optional['ConfigLoader'] = None
    _lock = threading.Lock()

    def __new__(cls) -> 'ConfigLoader':
        """Singleton pattern for configuration access."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._config = Config()
                cls._instance._loaded = False
            return cls._instance

    def load(
        self,
        config_path: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None
    ) -> Config:
        """
        Load configuration from a JSON file and the environment.

        Args:
            config_path: Path to the configuration file; None uses defaults
            environ: Environment mapping (defaults to os.environ)

        Returns:
            Config object with loaded settings

        Raises:
            BootFailureError: If the file cannot be loaded or parsed
            ConfigValidationError: If a setting is invalid
        """
        data: dict[str, Any] = {}

        if config_path is not None:
            path = Path(config_path)

            if not path.exists():
                raise BootFailureError(
                    f"Configuration file not found: {config_path}",
                    subsystem="config"
                )

            try:
                with open(path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except json.JSONDecodeError as e:
                raise BootFailureError(
                    f"Invalid JSON in configuration file: {e}",
                    subsystem="config"
                )
            except OSError as e:
                raise BootFailureError(
                    f"Cannot read configuration file: {e}",
                    subsystem="config"
                )

        config = self._parse_config(data)
        self._apply_environment(config, os.environ if environ is None else environ)
        self._validate(config)

        self._config = config
        self._loaded = True
        return self._config

    def _parse_config(self, data: dict[str, Any]) -> Config:
        """Parse configuration data into Config object."""
        config = Config()

        if 'database' in data:
            db_data = data['database']
            config.database = DatabaseConfig(
                url=db_data.get('url', config.database.url),
                echo=db_data.get('echo', config.database.echo),
                isolation_level=db_data.get('isolation_level', config.database.isolation_level),
            )

        if 'logging' in data:
            log_data = data['logging']
            config.logging = LoggingConfig(
                level=log_data.get('level', config.logging.level),
                log_file=log_data.get('log_file', config.logging.log_file),
                console_output=log_data.get('console_output', config.logging.console_output),
                use_colors=log_data.get('use_colors', config.logging.use_colors),
            )

        if 'filesystem' in data:
            fs_data = data['filesystem']
            directories = fs_data.get('system_directories')
            if directories is not None:
                config.filesystem = FilesystemConfig(
                    system_directories=[(str(path), str(perms)) for path, perms in directories]
                )

        if 'provisioning' in data:
            prov_data = data['provisioning']
            config.provisioning = ProvisioningConfig(
                home_directory=prov_data.get('home_directory', config.provisioning.home_directory),
                home_permissions=prov_data.get('home_permissions', config.provisioning.home_permissions),
                welcome_file=prov_data.get('welcome_file', config.provisioning.welcome_file),
                welcome_permissions=prov_data.get('welcome_permissions', config.provisioning.welcome_permissions),
                welcome_template=prov_data.get('welcome_template', config.provisioning.welcome_template),
            )

        return config

    def _apply_environment(self, config: Config, environ: Mapping[str, str]) -> None:
        """Apply LINSIM_* overrides on top of the file settings."""
        url = environ.get(f"{self.ENV_PREFIX}DATABASE_URL")
        if url:
            config.database.url = url

        level = environ.get(f"{self.ENV_PREFIX}LOG_LEVEL")
        if level:
            config.logging.level = level.upper()

        log_file = environ.get(f"{self.ENV_PREFIX}LOG_FILE")
        if log_file:
            config.logging.log_file = log_file

    def _validate(self, config: Config) -> None:
        # Import here to avoid circular dependency
        from linsim.filesystem.permissions import validate_permissions

        if not config.database.url:
            raise ConfigValidationError("Database URL must not be empty", key="database.url")

        if config.logging.level.upper() not in _LOG_LEVELS:
            raise ConfigValidationError(
                f"Unknown log level: {config.logging.level}",
                key="logging.level"
            )

        for path, permissions in config.filesystem.system_directories:
            segments = [s for s in path.split('/') if s]
            if not segments:
                raise ConfigValidationError(
                    f"Invalid system directory path: {path!r}",
                    key="filesystem.system_directories"
                )
            if not validate_permissions(permissions):
                raise ConfigValidationError(
                    f"Invalid permissions for {path}: {permissions!r}",
                    key="filesystem.system_directories"
                )

        provisioning = config.provisioning
        for key in ('home_permissions', 'welcome_permissions'):
            if not validate_permissions(getattr(provisioning, key)):
                raise ConfigValidationError(
                    f"Invalid permissions: {getattr(provisioning, key)!r}",
                    key=f"provisioning.{key}"
                )
        for key in ('home_directory', 'welcome_file'):
            value = getattr(provisioning, key)
            if not value or '/' in value:
                raise ConfigValidationError(
                    f"Invalid name: {value!r}",
                    key=f"provisioning.{key}"
                )

    @property
    def config(self) -> Config:
        """Get the current configuration."""
        if not self._loaded:
            return Config()
        return self._config

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value by dot-notation key.

        Args:
            key: Dot-notation key (e.g., 'database.url')
            default: Default value if key not found
        """
        obj: Any = self.config

        for part in key.split('.'):
            if hasattr(obj, part):
                obj = getattr(obj, part)
            else:
                return default

        return obj

    def reset(self) -> None:
        """Forget the loaded configuration and fall back to defaults."""
        self._config = Config()
        self._loaded = False


def get_config() -> Config:
    """
    Get the global configuration instance.

    Returns:
        Config object with current settings
    """
    loader = ConfigLoader()
    return loader.config
