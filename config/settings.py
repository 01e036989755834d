"""
Configuration settings with environment variable loading.

Values are read from environment variables, optionally seeded from a
.env file. Environment variables always take precedence over the file.
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


@dataclass(frozen=True)
class StorageConfig:
    """Persistent storage configuration."""
    database_path: Path = field(default_factory=lambda: Path("data/sync_status.db"))

    def __post_init__(self):
        if not str(self.database_path).strip():
            raise ConfigurationError("LABSYNC_DATABASE_PATH must not be empty")
        object.__setattr__(self, 'database_path', Path(self.database_path))


@dataclass(frozen=True)
class LedgerConfig:
    """Sync ledger configuration."""
    account: str = "local"

    def __post_init__(self):
        if not self.account:
            raise ConfigurationError("LABSYNC_ACCOUNT must not be empty")


@dataclass(frozen=True)
class Settings:
    """
    Application settings container.

    All configuration is loaded from environment variables.
    """
    storage: StorageConfig
    ledger: LedgerConfig
    log_level: str = "INFO"

    def __post_init__(self):
        if self.log_level not in VALID_LOG_LEVELS:
            raise ConfigurationError(
                f"LOG_LEVEL must be one of {', '.join(VALID_LOG_LEVELS)}, "
                f"got {self.log_level!r}"
            )

    def __repr__(self) -> str:
        return (
            f"Settings(\n"
            f"  storage={self.storage},\n"
            f"  ledger={self.ledger},\n"
            f"  log_level={self.log_level}\n"
            f")"
        )


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """
    Load settings from environment variables.

    Optionally loads from a .env file first.

    Args:
        env_file: Optional path to .env file

    Returns:
        Configured Settings instance

    Raises:
        ConfigurationError: If configuration is invalid
    """
    if env_file is not None:
        if not env_file.exists():
            raise ConfigurationError(f"Environment file not found: {env_file}")
        _load_env_file(env_file)
    elif Path(".env").exists():
        _load_env_file(Path(".env"))

    try:
        storage = StorageConfig(
            database_path=os.getenv("LABSYNC_DATABASE_PATH", "data/sync_status.db"),
        )

        ledger = LedgerConfig(
            account=os.getenv("LABSYNC_ACCOUNT", "local").strip(),
        )

        log_level = os.getenv("LOG_LEVEL", "INFO").upper()

        settings = Settings(
            storage=storage,
            ledger=ledger,
            log_level=log_level,
        )

        logger.info("Configuration loaded successfully")
        logger.debug(f"Settings: {settings}")

        return settings

    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(f"Failed to load configuration: {e}") from e


def _load_env_file(path: Path) -> None:
    """
    Load environment variables from a file.

    Simple .env parser that handles:
    - KEY=value
    - KEY="quoted value"
    - # comments
    - Empty lines
    """
    logger.debug(f"Loading environment from {path}")

    with open(path) as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()

            if not line or line.startswith("#"):
                continue

            if "=" not in line:
                logger.warning(f"Invalid line {line_num} in {path}: no '=' found")
                continue

            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip()

            if value.startswith('"') and value.endswith('"'):
                value = value[1:-1]
            elif value.startswith("'") and value.endswith("'"):
                value = value[1:-1]

            # Only set if not already defined (env vars take precedence)
            if key not in os.environ:
                os.environ[key] = value
