"""
Builders for test records and a comparable view of store contents.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from tracker.libbackup.models import BackupItem, LibraryItem
from tracker.libbackup.store import InMemoryLibraryStore


def make_item(key: str = "/item/1", source_id: int = 1, **kwargs: Any) -> LibraryItem:
    """Unsaved favourite library item."""
    kwargs.setdefault("title", f"Title {key}")
    kwargs.setdefault("favorite", True)
    return LibraryItem(id=0, source_id=source_id, key=key, **kwargs)


def make_backup_item(key: str = "/item/1", source_id: int = 1, **kwargs: Any) -> BackupItem:
    kwargs.setdefault("title", f"Title {key}")
    return BackupItem(source_id=source_id, key=key, **kwargs)


def library_state(store: InMemoryLibraryStore) -> dict[str, list]:
    """Store contents with database ids replaced by natural keys."""
    items = {item.id: item for item in store.items.values()}
    categories = {category.id: category for category in store.categories.values()}

    def item_key(item_id: int) -> tuple[int, str]:
        return (items[item_id].source_id, items[item_id].key)

    return {
        "items": sorted(
            (replace(item, id=0) for item in items.values()),
            key=lambda i: (i.source_id, i.key),
        ),
        "units": sorted(
            ((item_key(u.item_id), replace(u, id=0, item_id=0)) for u in store.units.values()),
            key=lambda pair: (pair[0], pair[1].key),
        ),
        "categories": sorted(
            (c.name, c.order, c.flags, c.is_system) for c in categories.values()
        ),
        "memberships": sorted(
            (item_key(item_id), categories[category_id].name)
            for (item_id, category_id) in store.memberships
        ),
        "tracks": sorted(
            ((item_key(t.item_id), replace(t, id=0, item_id=0)) for t in store.tracks.values()),
            key=lambda pair: (pair[0], pair[1].site_id),
        ),
    }
