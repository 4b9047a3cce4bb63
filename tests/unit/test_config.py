"""
Unit tests for environment configuration.
"""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from tracker.libbackup.config import AppConfig, BackupConfig, StorageConfig

ENV_VARS = (
    "LIBBACKUP_DB_PATH",
    "SQLITE_WAL_MODE",
    "SQLITE_BUSY_TIMEOUT_MS",
    "BACKUP_DIR",
    "BACKUP_COMPRESSION_LEVEL",
    "BACKUP_FILENAME_PATTERN",
    "LOG_LEVEL",
    "LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestFromEnv:
    def test_defaults(self):
        config = AppConfig.from_env()

        assert config.storage == StorageConfig()
        assert config.backup.compression_level == 9
        assert config.backup.filename_pattern == "library_{timestamp}.proto.gz"
        assert config.observability.log_format == "json"

    def test_reads_environment(self, monkeypatch, data_dir):
        monkeypatch.setenv("LIBBACKUP_DB_PATH", f"{data_dir}/lib.db")
        monkeypatch.setenv("SQLITE_WAL_MODE", "false")
        monkeypatch.setenv("SQLITE_BUSY_TIMEOUT_MS", "250")
        monkeypatch.setenv("BACKUP_DIR", data_dir)
        monkeypatch.setenv("BACKUP_COMPRESSION_LEVEL", "3")
        monkeypatch.setenv("LOG_FORMAT", "text")

        config = AppConfig.from_env()

        assert config.storage.db_path == f"{data_dir}/lib.db"
        assert config.storage.wal_mode is False
        assert config.storage.busy_timeout_ms == 250
        assert config.backup.backup_dir == data_dir
        assert config.backup.compression_level == 3
        assert config.observability.log_format == "text"


class TestValidate:
    @pytest.mark.parametrize(
        "name,value",
        [
            ("BACKUP_COMPRESSION_LEVEL", "10"),
            ("BACKUP_COMPRESSION_LEVEL", "-1"),
            ("BACKUP_FILENAME_PATTERN", "library.proto.gz"),
            ("LOG_FORMAT", "xml"),
            ("SQLITE_BUSY_TIMEOUT_MS", "-5"),
        ],
    )
    def test_invalid_values_rejected(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)

        with pytest.raises(ValueError):
            AppConfig.from_env()

    def test_non_integer_rejected(self, monkeypatch):
        monkeypatch.setenv("BACKUP_COMPRESSION_LEVEL", "high")

        with pytest.raises(ValueError):
            AppConfig.from_env()


class TestDefaultDestination:
    def test_timestamp_in_filename(self):
        config = BackupConfig(backup_dir="/backups")
        now = datetime(2024, 3, 9, 7, 5, 1, tzinfo=timezone.utc)

        path = config.default_destination(now)

        assert path == Path("/backups/library_2024-03-09_07-05-01.proto.gz")
