"""
Integration tests for the libbackup command line.
"""

import asyncio
import logging
import os

import pytest

from tests.factories import make_item
from tracker.libbackup import BackupManager
from tracker.libbackup.models import Category, Unit
from tracker.libbackup.store import InMemoryLibraryStore
from tracker.libbackup.tools.cli import main


@pytest.fixture(autouse=True)
def cli_env(monkeypatch, data_dir):
    monkeypatch.setenv("LIBBACKUP_DB_PATH", os.path.join(data_dir, "library.db"))
    monkeypatch.setenv("BACKUP_DIR", os.path.join(data_dir, "backups"))
    monkeypatch.setenv("LOG_FORMAT", "text")
    monkeypatch.delenv("BACKUP_COMPRESSION_LEVEL", raising=False)

    root_logger = logging.getLogger()
    handlers, level = root_logger.handlers[:], root_logger.level
    yield
    root_logger.handlers = handlers
    root_logger.setLevel(level)


@pytest.fixture
def backup_file(data_dir):
    store = InMemoryLibraryStore()
    category = store.add_category(Category(id=0, name="Action", order=0))
    item = store.add_item(make_item(key="/one"))
    store.add_unit(Unit(id=0, item_id=item.id, key="1", read=True))
    store.add_unit(Unit(id=0, item_id=item.id, key="2"))
    store.add_membership(item.id, category.id)
    store.add_item(make_item(key="/two"))

    path = os.path.join(data_dir, "source.proto.gz")
    return str(asyncio.run(BackupManager(store.repositories()).create_backup(path)))


class TestCommands:
    def test_inspect(self, backup_file, capsys):
        assert main(["inspect", "--input", backup_file]) == 0

        out = capsys.readouterr().out
        assert "items: 2" in out
        assert "units: 2" in out
        assert "categories: 1" in out

    def test_restore_then_create(self, backup_file, data_dir, capsys):
        db = os.path.join(data_dir, "restored.db")
        output = os.path.join(data_dir, "out", "copy.proto.gz")

        assert main(["restore", "--input", backup_file, "--db", db]) == 0
        restored_out = capsys.readouterr().out
        assert "Restore completed successfully" in restored_out
        assert "items_inserted: 2" in restored_out

        assert main(["create", "--db", db, "--output", output]) == 0
        assert os.path.exists(output)

        assert main(["inspect", "--input", output]) == 0
        assert "items: 2" in capsys.readouterr().out

    def test_create_uses_default_destination(self, backup_file, data_dir, capsys):
        assert main(["restore", "--input", backup_file]) == 0

        assert main(["create"]) == 0

        created = os.listdir(os.path.join(data_dir, "backups"))
        assert len(created) == 1
        assert created[0].startswith("library_")
        assert created[0].endswith(".proto.gz")


class TestFailures:
    def test_create_without_database(self, data_dir, capsys):
        assert main(["create", "--db", os.path.join(data_dir, "none.db")]) == 1

        assert "create failed" in capsys.readouterr().err

    def test_restore_corrupt_file(self, data_dir, capsys):
        path = os.path.join(data_dir, "corrupt.proto.gz")
        with open(path, "wb") as f:
            f.write(b"not gzip")

        assert main(["restore", "--input", path]) == 1
        assert "restore failed" in capsys.readouterr().err

    def test_inspect_missing_file(self, data_dir):
        assert main(["inspect", "--input", os.path.join(data_dir, "missing")]) == 1

    def test_invalid_configuration(self, monkeypatch, backup_file, capsys):
        monkeypatch.setenv("BACKUP_COMPRESSION_LEVEL", "12")

        assert main(["inspect", "--input", backup_file]) == 2
        assert "Configuration error" in capsys.readouterr().err

    def test_missing_command_is_usage_error(self):
        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 2
