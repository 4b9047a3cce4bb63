"""
Configuration management for libbackup.

All configuration is done via environment variables.
This module provides typed configuration classes with validation.

Invariants:
    - All settings have sensible defaults for local use
    - Invalid values fail fast in validate(), before any file is touched

How to change safely:
    - Add new settings with defaults that maintain backward compatibility
    - Document new variables in the CLI help text
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass(frozen=True)
class StorageConfig:
    """Library database configuration.

    Attributes:
        db_path: SQLite library database file
        wal_mode: SQLite WAL mode enabled
        busy_timeout_ms: SQLite busy timeout in milliseconds
    """

    db_path: str = "./library.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000

    @classmethod
    def from_env(cls) -> StorageConfig:
        """Load configuration from environment variables."""
        return cls(
            db_path=os.getenv("LIBBACKUP_DB_PATH", "./library.db"),
            wal_mode=_env_bool("SQLITE_WAL_MODE", "true"),
            busy_timeout_ms=int(os.getenv("SQLITE_BUSY_TIMEOUT_MS", "5000")),
        )


@dataclass(frozen=True)
class BackupConfig:
    """Backup file configuration.

    Attributes:
        backup_dir: Directory for backups created without an explicit path
        compression_level: gzip level (0-9)
        filename_pattern: Name of new backup files; {timestamp} is replaced
            with the UTC creation time
    """

    backup_dir: str = "./backups"
    compression_level: int = 9
    filename_pattern: str = "library_{timestamp}.proto.gz"

    @classmethod
    def from_env(cls) -> BackupConfig:
        """Load configuration from environment variables."""
        return cls(
            backup_dir=os.getenv("BACKUP_DIR", "./backups"),
            compression_level=int(os.getenv("BACKUP_COMPRESSION_LEVEL", "9")),
            filename_pattern=os.getenv("BACKUP_FILENAME_PATTERN", "library_{timestamp}.proto.gz"),
        )

    def default_destination(self, now: datetime | None = None) -> Path:
        """Path for a new backup file in backup_dir."""
        now = now or datetime.now(timezone.utc)
        filename = self.filename_pattern.format(timestamp=now.strftime("%Y-%m-%d_%H-%M-%S"))
        return Path(self.backup_dir) / filename


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    log_level: str = "INFO"
    log_format: str = "json"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "json"),
        )


@dataclass
class AppConfig:
    """Complete libbackup configuration.

    Attributes:
        storage: Library database configuration
        backup: Backup file configuration
        observability: Logging configuration
    """

    storage: StorageConfig = field(default_factory=StorageConfig)
    backup: BackupConfig = field(default_factory=BackupConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> AppConfig:
        """Load complete configuration from environment variables.

        Raises:
            ValueError: If configuration is invalid.
        """
        config = cls(
            storage=StorageConfig.from_env(),
            backup=BackupConfig.from_env(),
            observability=ObservabilityConfig.from_env(),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        if not 0 <= self.backup.compression_level <= 9:
            raise ValueError(
                f"BACKUP_COMPRESSION_LEVEL must be between 0 and 9, "
                f"got {self.backup.compression_level}"
            )
        if "{timestamp}" not in self.backup.filename_pattern:
            raise ValueError("BACKUP_FILENAME_PATTERN must contain '{timestamp}'")
        if self.observability.log_format not in ("json", "text"):
            raise ValueError(
                f"Invalid LOG_FORMAT '{self.observability.log_format}'. Must be one of: json, text"
            )
        if self.storage.busy_timeout_ms < 0:
            raise ValueError("SQLITE_BUSY_TIMEOUT_MS must not be negative")

        if not os.path.exists(self.storage.db_path):
            logger.warning(
                f"Library database does not exist: {self.storage.db_path}. "
                "It will be created on first restore."
            )

    def log_config(self) -> None:
        """Log the effective configuration."""
        logger.info(
            "Configuration loaded",
            extra={
                "db_path": self.storage.db_path,
                "backup_dir": self.backup.backup_dir,
                "compression_level": self.backup.compression_level,
                "log_level": self.observability.log_level,
            },
        )
