"""Configuration settings and the TOML-backed config manager."""

import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional, Union

import click
import tomli_w
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..errors import ConfigError

logger = logging.getLogger(__name__)

APP_NAME = "save-sync"
CONFIG_PATH_ENV = "SAVE_SYNC_CONFIG_PATH"
DEFAULT_XXHASH_SEED = 1_912_251_925_143
DEFAULT_USERNAME = "Default"

_I64_MIN = -(2 ** 63)
_I64_MAX = 2 ** 63 - 1


def default_data_location() -> Path:
    """Directory holding the database and every backup UUID directory."""
    return Path(click.get_app_dir(APP_NAME)) / "data"


class SyncConfig(BaseModel):
    """Process-wide settings, built once at startup and passed explicitly."""
    data_location: Path = Field(default_factory=default_data_location)
    db_location: Optional[Path] = None
    # TOML integers are signed 64-bit, so the seed is stored signed
    xxhash_seed: int = DEFAULT_XXHASH_SEED
    local_username: str = DEFAULT_USERNAME
    log_level: str = "WARNING"
    log_file: Optional[Path] = None

    def model_post_init(self, __context: Any) -> None:
        if self.db_location is None:
            self.db_location = self.data_location / "saves.db"

    @field_validator("xxhash_seed")
    @classmethod
    def validate_seed(cls, v: int) -> int:
        if not _I64_MIN <= v <= _I64_MAX:
            raise ValueError("xxhash_seed must fit in a signed 64-bit integer")
        return v

    @field_validator("local_username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("local_username must not be empty")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level: {v}")
        return level

    @property
    def hash_seed(self) -> int:
        """The seed as the unsigned 64-bit value fed to the hasher."""
        return self.xxhash_seed & 0xFFFF_FFFF_FFFF_FFFF

    @classmethod
    def from_toml(cls, config_path: Union[str, Path]) -> "SyncConfig":
        """Load configuration from a TOML file."""
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, "rb") as f:
                config_data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Unable to read configuration file {config_path}: {e}") from e

        try:
            return cls(**config_data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e

    def to_toml(self, config_path: Union[str, Path]) -> None:
        """Save configuration to a TOML file."""
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data: Dict[str, Any] = {
            key: str(value) if isinstance(value, Path) else value
            for key, value in self.model_dump(exclude_none=True).items()
        }
        try:
            with open(config_path, "wb") as f:
                tomli_w.dump(data, f)
        except OSError as e:
            raise ConfigError(f"Unable to write configuration file {config_path}: {e}") from e


class ConfigManager:
    """Locate, create, load and persist the TOML settings file."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize config manager.

        Args:
            config_path: Settings file to use. Defaults to
                ``$SAVE_SYNC_CONFIG_PATH`` or ``<app dir>/settings.toml``.
        """
        self.config_path = Path(config_path) if config_path else self.default_path()

    @staticmethod
    def default_path() -> Path:
        env = os.environ.get(CONFIG_PATH_ENV)
        if env:
            return Path(env)
        return Path(click.get_app_dir(APP_NAME)) / "settings.toml"

    def load(self) -> SyncConfig:
        """Load the settings file, writing one with defaults if it is absent."""
        if not self.config_path.exists():
            config = SyncConfig()
            logger.info(f"Creating default configuration at {self.config_path}")
            config.to_toml(self.config_path)
            return config

        return SyncConfig.from_toml(self.config_path)

    def write(self, config: SyncConfig) -> None:
        config.to_toml(self.config_path)
        logger.debug(f"Wrote configuration to {self.config_path}")
