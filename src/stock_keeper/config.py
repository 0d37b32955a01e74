"""Configuration management for Stock Keeper."""

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .models import DEFAULT_CATEGORY


@dataclass
class DataConfig:
    """Where the database lives and how often it is written back."""

    storage_dir: Path
    db_filename: str = "stock-keeper.db"
    flush_interval_seconds: float = 5.0

    @property
    def db_path(self) -> Path:
        return self.storage_dir / self.db_filename


@dataclass
class DefaultsConfig:
    """Values used when a new item or location leaves them out."""

    category: str = DEFAULT_CATEGORY
    unit: str = "pcs"
    location_type: str = "other"


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "WARNING"


@dataclass
class Config:
    """All configuration sections."""

    data: DataConfig
    defaults: DefaultsConfig
    logging: LoggingConfig


class ConfigManager:
    """Reads stock-keeper settings from a TOML file."""

    def __init__(self, config_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            config_path: Optional explicit path to config file.
                        If not provided, searches standard locations.
        """
        self.config_path = config_path or self._find_config()
        self._config = self._load_config()

    @property
    def data(self) -> DataConfig:
        """Storage settings."""
        return self._config.data

    @property
    def defaults(self) -> DefaultsConfig:
        """Default values for new records."""
        return self._config.defaults

    @property
    def logging(self) -> LoggingConfig:
        """Logging settings."""
        return self._config.logging

    def _find_config(self) -> Path:
        """Return the first existing config file, or the preferred location."""
        locations = [
            Path.cwd() / "config.toml",
            Path.home() / ".config" / "stock-keeper" / "config.toml",
            Path.home() / ".stock-keeper" / "config.toml",
        ]

        for loc in locations:
            if loc.exists():
                return loc

        return Path.home() / ".config" / "stock-keeper" / "config.toml"

    def _load_config(self) -> Config:
        """Parse the TOML file, filling in missing keys."""
        if not self.config_path.exists():
            return self._default_config()

        with open(self.config_path, "rb") as f:
            data = tomllib.load(f)

        data_section = data.get("data", {})
        defaults_section = data.get("defaults", {})

        return Config(
            data=DataConfig(
                storage_dir=Path(
                    data_section.get("storage_dir", "~/stock-keeper/data")
                ).expanduser(),
                db_filename=data_section.get("db_filename", "stock-keeper.db"),
                flush_interval_seconds=float(data_section.get("flush_interval_seconds", 5.0)),
            ),
            defaults=DefaultsConfig(
                category=defaults_section.get("category", DEFAULT_CATEGORY),
                unit=defaults_section.get("unit", "pcs"),
                location_type=defaults_section.get("location_type", "other"),
            ),
            logging=LoggingConfig(
                level=str(data.get("logging", {}).get("level", "WARNING")).upper(),
            ),
        )

    def _default_config(self) -> Config:
        """Configuration used when no file exists."""
        return Config(
            data=DataConfig(storage_dir=Path.home() / "stock-keeper" / "data"),
            defaults=DefaultsConfig(),
            logging=LoggingConfig(),
        )

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get config value by dot-notation path.

        Args:
            key_path: Dot-separated path like 'data.storage_dir'
            default: Default value if path not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split(".")
        value: Any = self._config

        for key in keys:
            if hasattr(value, key):
                value = getattr(value, key)
            elif isinstance(value, dict):
                value = value.get(key)
                if value is None:
                    return default
            else:
                return default

        return value if value is not None else default
