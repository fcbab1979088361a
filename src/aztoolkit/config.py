"""Configuration management module.

This module handles persistent configuration storage using TOML format.
Stores user preferences like default subscription, resource group, page
size and transport settings.

Security:
- Config file permissions: 0600 (owner read/write only)
- Atomic writes using temporary file
"""

import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

import tomli
import tomlkit

from aztoolkit import __version__
from aztoolkit.cache.paged_loader import DEFAULT_PAGE_SIZE
from aztoolkit.exceptions import ConfigError

logger = logging.getLogger(__name__)

AUTH_METHODS = ("cli", "default")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class ToolkitConfig:
    """aztoolkit configuration data."""

    default_subscription: str | None = None
    default_resource_group: str | None = None
    page_size: int = DEFAULT_PAGE_SIZE
    user_agent: str = f"aztoolkit/{__version__}"
    log_level: str = "WARNING"
    request_timeout: int = 60  # seconds, Kudu transport
    auth_method: str = "cli"

    def __post_init__(self) -> None:
        if self.page_size <= 0:
            raise ConfigError(f"page_size must be positive, got {self.page_size}")
        if self.request_timeout <= 0:
            raise ConfigError(f"request_timeout must be positive, got {self.request_timeout}")
        if self.auth_method not in AUTH_METHODS:
            raise ConfigError(f"auth_method must be one of {', '.join(AUTH_METHODS)}")
        self.log_level = self.log_level.upper()
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)}")

    @property
    def sdk_logging_enabled(self) -> bool:
        """Whether Azure SDK HTTP logging should be switched on."""
        return self.log_level == "DEBUG"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        # TOML has no null
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ToolkitConfig":
        """Create from dictionary."""
        defaults = cls()
        return cls(
            default_subscription=data.get("default_subscription"),
            default_resource_group=data.get("default_resource_group"),
            page_size=int(data.get("page_size", defaults.page_size)),
            user_agent=data.get("user_agent", defaults.user_agent),
            log_level=data.get("log_level", defaults.log_level),
            request_timeout=int(data.get("request_timeout", defaults.request_timeout)),
            auth_method=data.get("auth_method", defaults.auth_method),
        )


class ConfigManager:
    """Manage the aztoolkit configuration file.

    Configuration is stored at ~/.aztoolkit/config.toml with secure permissions.
    """

    DEFAULT_CONFIG_DIR = Path.home() / ".aztoolkit"
    DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

    @classmethod
    def get_config_path(cls, custom_path: str | None = None) -> Path:
        """Get configuration file path.

        Args:
            custom_path: Custom config file path (optional)

        Returns:
            Path to config file
        """
        if custom_path:
            return Path(custom_path).expanduser().resolve()
        return cls.DEFAULT_CONFIG_FILE

    @classmethod
    def load_config(cls, custom_path: str | None = None) -> ToolkitConfig:
        """Load configuration from file, defaults when the file does not exist.

        Raises:
            ConfigError: If the file cannot be read or holds invalid values
        """
        config_path = cls.get_config_path(custom_path)

        if not config_path.exists():
            logger.debug("Config file not found, using defaults")
            return ToolkitConfig()

        try:
            mode = config_path.stat().st_mode & 0o777
            if mode & 0o077:
                logger.warning(
                    f"Config file has insecure permissions: {oct(mode)}. Fixing to 0600..."
                )
                os.chmod(config_path, 0o600)

            with open(config_path, "rb") as f:
                data = tomli.load(f)

            logger.debug(f"Loaded config from: {config_path}")
            return ToolkitConfig.from_dict(data)

        except ConfigError:
            raise
        except Exception as e:
            raise ConfigError(f"Failed to load config {config_path}: {e}") from e

    @classmethod
    def save_config(cls, config: ToolkitConfig, custom_path: str | None = None) -> Path:
        """Save configuration to file, preserving comments of an existing file.

        Returns:
            Path the configuration was written to

        Raises:
            ConfigError: If saving fails
        """
        config_path = cls.get_config_path(custom_path)
        temp_path: Path | None = None
        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            if config_path.parent == cls.DEFAULT_CONFIG_DIR:
                os.chmod(config_path.parent, 0o700)

            temp_path = config_path.with_suffix(".tmp")

            if config_path.exists():
                with open(config_path) as f:
                    doc = tomlkit.load(f)
            else:
                doc = tomlkit.document()
            for key, value in config.to_dict().items():
                doc[key] = value

            with open(temp_path, "w") as f:
                tomlkit.dump(doc, f)

            os.chmod(temp_path, 0o600)
            temp_path.replace(config_path)

            logger.debug(f"Saved config to: {config_path}")
            return config_path

        except Exception as e:
            if temp_path and temp_path.exists():
                temp_path.unlink()
            raise ConfigError(f"Failed to save config {config_path}: {e}") from e

    @classmethod
    def get_subscription(cls, cli_value: str | None, custom_path: str | None = None) -> str:
        """Resolve the subscription: CLI value beats the config file.

        Raises:
            ConfigError: If neither provides one
        """
        if cli_value:
            return cli_value
        config = cls.load_config(custom_path)
        if config.default_subscription:
            return config.default_subscription
        raise ConfigError(
            "No subscription given. Use --subscription or set default_subscription "
            f"in {cls.get_config_path(custom_path)}"
        )

    @classmethod
    def get_resource_group(cls, cli_value: str | None, custom_path: str | None = None) -> str | None:
        """Resolve the resource group: CLI value, then config, else None."""
        if cli_value:
            return cli_value
        return cls.load_config(custom_path).default_resource_group


__all__ = ["ConfigManager", "ToolkitConfig"]
