"""
Unit tests for snapshot/domain conversions.
"""

from tests.factories import make_item
from tracker.libbackup.models import (
    BackupCategory,
    BackupItem,
    BackupTrack,
    BackupUnit,
    Category,
    TrackRecord,
    Unit,
)


class TestBackupItem:
    def test_from_domain_copies_metadata(self):
        item = make_item(
            key="/manga/7",
            source_id=42,
            title="Seven",
            tags=("action", "drama"),
            last_update=100,
            last_init=50,
            viewer_mode=3,
        )

        backup_item = BackupItem.from_domain(item, categories=(0, 2))

        assert backup_item.source_id == 42
        assert backup_item.key == "/manga/7"
        assert backup_item.tags == ("action", "drama")
        assert (backup_item.last_update, backup_item.last_init) == (100, 50)
        assert backup_item.categories == (0, 2)
        assert backup_item.units == ()

    def test_to_domain_is_always_favorite(self):
        """Restored items always join the library."""
        item = BackupItem(source_id=1, key="/x", title="X").to_domain()

        assert item.id == 0
        assert item.favorite is True

    def test_round_trip_preserves_metadata(self):
        item = make_item(title="Round", author="Someone", status=2, custom_cover=True)

        assert BackupItem.from_domain(item).to_domain() == item


class TestChildren:
    def test_unit_conversion(self):
        unit = Unit(
            id=9, item_id=3, key="c1", name="Ch. 1", read=True, progress=12, number=1.0
        )

        backup_unit = BackupUnit.from_domain(unit)
        restored = backup_unit.to_domain(item_id=5)

        assert backup_unit.read is True
        assert restored.id == 0
        assert restored.item_id == 5
        assert (restored.key, restored.name, restored.progress, restored.number) == (
            "c1",
            "Ch. 1",
            12,
            1.0,
        )

    def test_category_conversion_drops_id(self):
        category = Category(id=4, name="Comedy", order=2, flags=1)

        backup_category = BackupCategory.from_domain(category)

        assert backup_category == BackupCategory(name="Comedy", order=2, flags=1)
        assert backup_category.to_domain() == Category(id=0, name="Comedy", order=2, flags=1)

    def test_track_conversion(self):
        track = TrackRecord(
            id=1, item_id=2, site_id=3, title="Remote", last_read=4.5, total_chapters=10
        )

        restored = BackupTrack.from_domain(track).to_domain(item_id=8)

        assert restored == TrackRecord(
            id=0, item_id=8, site_id=3, title="Remote", last_read=4.5, total_chapters=10
        )
