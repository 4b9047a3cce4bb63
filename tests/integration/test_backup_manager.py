"""
Integration tests for BackupManager.

Backups are created from one library and restored into another, using both
the in-memory and the SQLite stores.
"""

import gzip
import os

import pytest

from tests.factories import library_state, make_item
from tracker.libbackup import BackupManager
from tracker.libbackup.codec import encode
from tracker.libbackup.errors import CorruptBackupError
from tracker.libbackup.models import Backup, Category, TrackRecord, Unit
from tracker.libbackup.store import InMemoryLibraryStore, SqliteLibraryStore


def populate(store: InMemoryLibraryStore) -> None:
    store.add_category(Category(id=0, name="Default", order=0, is_system=True))
    action = store.add_category(Category(id=0, name="Action", order=1))
    later = store.add_category(Category(id=0, name="Later", order=2, flags=3))

    one = store.add_item(
        make_item(key="/one", tags=("shonen",), last_update=200, last_init=100, date_added=50)
    )
    store.add_unit(Unit(id=0, item_id=one.id, key="1", read=True, progress=10, number=1.0))
    store.add_unit(Unit(id=0, item_id=one.id, key="2", bookmark=True, number=2.0))
    store.add_membership(one.id, action.id)
    store.add_membership(one.id, later.id)
    store.add_track(TrackRecord(id=0, item_id=one.id, site_id=1, last_read=1.0, total_chapters=2))

    two = store.add_item(make_item(key="/two", source_id=9))
    store.add_membership(two.id, later.id)

    store.add_item(make_item(key="/removed", favorite=False))


class TestInMemoryRoundTrip:
    @pytest.mark.asyncio
    async def test_restore_into_empty_library(self, data_dir):
        source = InMemoryLibraryStore()
        populate(source)
        path = os.path.join(data_dir, "nested", "library.proto.gz")

        written = await BackupManager(source.repositories()).create_backup(path)

        target = InMemoryLibraryStore()
        target.add_category(Category(id=0, name="Default", order=0, is_system=True))
        summary = await BackupManager(target.repositories()).restore_backup(written)

        expected = library_state(source)
        expected["items"] = [i for i in expected["items"] if i.key != "/removed"]
        assert library_state(target) == expected
        assert summary.items_inserted == 2

    @pytest.mark.asyncio
    async def test_second_restore_changes_nothing(self, store, data_dir):
        source = InMemoryLibraryStore()
        populate(source)
        path = await BackupManager(source.repositories()).create_backup(
            os.path.join(data_dir, "b.proto.gz")
        )
        manager = BackupManager(store.repositories())

        await manager.restore_backup(path)
        once = library_state(store)
        await manager.restore_backup(path)

        assert library_state(store) == once

    @pytest.mark.asyncio
    async def test_corrupt_file_changes_nothing(self, store, data_dir):
        path = os.path.join(data_dir, "broken.proto.gz")
        with open(path, "wb") as f:
            f.write(gzip.compress(b"\x0a\x05ab"))

        with pytest.raises(CorruptBackupError) as exc_info:
            await BackupManager(store.repositories()).restore_backup(path)

        assert exc_info.value.source == path
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_zero_length_file_is_corrupt(self, store, data_dir):
        """An interrupted create_backup can leave an empty file; restoring it must fail."""
        path = os.path.join(data_dir, "empty.proto.gz")
        open(path, "wb").close()

        with pytest.raises(CorruptBackupError):
            await BackupManager(store.repositories()).restore_backup(path)

        assert store.calls == []

    @pytest.mark.asyncio
    async def test_missing_file_raises_os_error(self, store, data_dir):
        with pytest.raises(OSError):
            await BackupManager(store.repositories()).restore_backup(
                os.path.join(data_dir, "nope.proto.gz")
            )


class TestDumpBytes:
    @pytest.mark.asyncio
    async def test_create_dump_is_uncompressed_protobuf(self, store):
        populate(store)
        manager = BackupManager(store.repositories())

        data = await manager.create_dump()
        backup = await manager.load_dump(data)

        assert data == encode(backup)
        assert [item.key for item in backup.library] == ["/one", "/two"]
        assert [c.name for c in backup.categories] == ["Action", "Later"]

    @pytest.mark.asyncio
    async def test_empty_library_dump(self, store):
        manager = BackupManager(store.repositories())

        assert await manager.create_dump() == b""
        assert await manager.load_dump(b"") == Backup()


class TestSqliteRoundTrip:
    @pytest.mark.asyncio
    async def test_backup_restored_into_sqlite_and_back(self, data_dir):
        source = InMemoryLibraryStore()
        populate(source)
        path = await BackupManager(source.repositories()).create_backup(
            os.path.join(data_dir, "library.proto.gz")
        )

        sqlite_store = SqliteLibraryStore(os.path.join(data_dir, "library.db"))
        await sqlite_store.initialize()
        await sqlite_store.seed_system_categories()
        manager = BackupManager(sqlite_store.repositories())

        first = await manager.restore_backup(path)
        second = await manager.restore_backup(path)

        assert first.items_inserted == 2
        assert first.categories_inserted == 2
        assert second.items_inserted == 0
        assert second.categories_inserted == 0
        assert second.units_inserted == 0

        restored = await manager.dump_builder.build_dump()
        original = await BackupManager(source.repositories()).dump_builder.build_dump()
        assert restored.library == original.library
        assert restored.categories == original.categories
