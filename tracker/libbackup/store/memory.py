"""
In-memory repository implementation for testing.

This module provides a dict-backed library store for:
- Unit tests of the dump builder and the restorer
- Integration tests that need repository behaviour without SQLite
- Local experiments

Invariants:
    - All data is lost on process exit
    - Enforces the same uniqueness rules as the SQLite store
    - Storage order is insertion order, like a rowid-ordered table

How to change safely:
    - This is test-only code, changes don't affect production
    - Keep interface compatible with the protocols in store/base.py
    - Add features to help with testing scenarios
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import fields, replace
from typing import Any

from ..models.domain import (
    Category,
    ItemCategory,
    LibraryItem,
    LibraryItemUpdate,
    TrackRecord,
    TrackUpdate,
    Unit,
    UnitUpdate,
)
from .base import Repositories

logger = logging.getLogger(__name__)


class DuplicateRecordError(Exception):
    """A uniqueness constraint would be broken."""

    pass


class RecordNotFoundError(Exception):
    """An update referenced an id that does not exist."""

    pass


def _apply_update(record: Any, update: Any) -> Any:
    changes = {
        f.name: getattr(update, f.name)
        for f in fields(update)
        if f.name != "id" and getattr(update, f.name) is not None
    }
    return replace(record, **changes)


class InMemoryLibraryStore:
    """In-memory implementation of the library repositories.

    Attributes:
        items: Items by id
        units: Units by id
        categories: Categories by id
        memberships: (item_id, category_id) pairs in insertion order
        tracks: Tracking records by id
        calls: Every repository call as (entity, operation), oldest first

    Thread safety:
        Uses an asyncio lock for writes. Safe to use from multiple coroutines.

    Example:
        >>> store = InMemoryLibraryStore()
        >>> item = store.add_item(LibraryItem(0, 1, "/item/1", "Title", favorite=True))
        >>> manager = BackupManager(store.repositories())
    """

    def __init__(self) -> None:
        self.items: dict[int, LibraryItem] = {}
        self.units: dict[int, Unit] = {}
        self.categories: dict[int, Category] = {}
        self.memberships: dict[tuple[int, int], None] = {}
        self.tracks: dict[int, TrackRecord] = {}
        self.calls: list[tuple[str, str]] = []
        self._next_ids: dict[str, int] = defaultdict(lambda: 1)
        self._failures: dict[tuple[str, str], Exception] = {}
        self._lock = asyncio.Lock()

    def repositories(self) -> Repositories:
        """Bundle the repositories backed by this store."""
        return Repositories(
            items=_ItemRepository(self),
            units=_UnitRepository(self),
            categories=_CategoryRepository(self),
            item_categories=_ItemCategoryRepository(self),
            tracks=_TrackRepository(self),
        )

    # =========================================================================
    # Testing helpers
    # =========================================================================

    def fail_on(self, entity: str, operation: str, error: Exception | None = None) -> None:
        """Make the next and all later calls of entity.operation raise.

        Args:
            entity: "item", "unit", "category", "item_category" or "track"
            operation: Repository method name, e.g. "insert"
            error: Exception to raise (defaults to RuntimeError)
        """
        self._failures[(entity, operation)] = error or RuntimeError(
            f"Injected failure: {entity}.{operation}"
        )

    def clear_failures(self) -> None:
        self._failures.clear()

    def add_item(self, item: LibraryItem) -> LibraryItem:
        """Store an item synchronously, assigning an id. For test setup."""
        for existing in self.items.values():
            if existing.key == item.key and existing.source_id == item.source_id:
                raise DuplicateRecordError(f"Item exists: {item.source_id}:{item.key}")
        stored = replace(item, id=self._next_id("item"))
        self.items[stored.id] = stored
        return stored

    def add_unit(self, unit: Unit) -> Unit:
        for existing in self.units.values():
            if existing.item_id == unit.item_id and existing.key == unit.key:
                raise DuplicateRecordError(f"Unit exists: {unit.item_id}:{unit.key}")
        stored = replace(unit, id=self._next_id("unit"))
        self.units[stored.id] = stored
        return stored

    def add_category(self, category: Category) -> Category:
        stored = replace(category, id=self._next_id("category"))
        self.categories[stored.id] = stored
        return stored

    def add_membership(self, item_id: int, category_id: int) -> None:
        self.memberships[(item_id, category_id)] = None

    def add_track(self, track: TrackRecord) -> TrackRecord:
        for existing in self.tracks.values():
            if existing.item_id == track.item_id and existing.site_id == track.site_id:
                raise DuplicateRecordError(f"Track exists: {track.item_id}:{track.site_id}")
        stored = replace(track, id=self._next_id("track"))
        self.tracks[stored.id] = stored
        return stored

    def units_for(self, item_id: int) -> list[Unit]:
        return [u for u in self.units.values() if u.item_id == item_id]

    def tracks_for(self, item_id: int) -> list[TrackRecord]:
        return [t for t in self.tracks.values() if t.item_id == item_id]

    def category_ids_for(self, item_id: int) -> list[int]:
        return [cat_id for (i_id, cat_id) in self.memberships if i_id == item_id]

    # =========================================================================
    # Internals
    # =========================================================================

    def _next_id(self, entity: str) -> int:
        next_id = self._next_ids[entity]
        self._next_ids[entity] = next_id + 1
        return next_id

    def _record_call(self, entity: str, operation: str) -> None:
        self.calls.append((entity, operation))
        failure = self._failures.get((entity, operation))
        if failure is not None:
            logger.debug(f"Raising injected failure for {entity}.{operation}")
            raise failure


class _ItemRepository:
    def __init__(self, store: InMemoryLibraryStore) -> None:
        self._store = store

    async def find(self, key: str, source_id: int) -> LibraryItem | None:
        self._store._record_call("item", "find")
        for item in self._store.items.values():
            if item.key == key and item.source_id == source_id:
                return item
        return None

    async def find_favorites(self) -> list[LibraryItem]:
        self._store._record_call("item", "find_favorites")
        return [item for item in self._store.items.values() if item.favorite]

    async def insert(self, item: LibraryItem) -> int:
        self._store._record_call("item", "insert")
        async with self._store._lock:
            return self._store.add_item(item).id

    async def update_partial(self, update: LibraryItemUpdate) -> None:
        self._store._record_call("item", "update_partial")
        async with self._store._lock:
            current = self._store.items.get(update.id)
            if current is None:
                raise RecordNotFoundError(f"Item not found: {update.id}")
            self._store.items[update.id] = _apply_update(current, update)


class _UnitRepository:
    def __init__(self, store: InMemoryLibraryStore) -> None:
        self._store = store

    async def find_for_item(self, item_id: int) -> list[Unit]:
        self._store._record_call("unit", "find_for_item")
        return self._store.units_for(item_id)

    async def insert(self, units: Sequence[Unit]) -> None:
        self._store._record_call("unit", "insert")
        async with self._store._lock:
            keys = [(u.item_id, u.key) for u in units]
            if len(set(keys)) != len(keys):
                raise DuplicateRecordError("Duplicate unit keys in insert batch")
            for unit in units:
                self._store.add_unit(unit)

    async def delete(self, units: Sequence[Unit]) -> None:
        self._store._record_call("unit", "delete")
        async with self._store._lock:
            for unit in units:
                self._store.units.pop(unit.id, None)

    async def update_partial(self, updates: Sequence[UnitUpdate]) -> None:
        self._store._record_call("unit", "update_partial")
        async with self._store._lock:
            for update in updates:
                current = self._store.units.get(update.id)
                if current is None:
                    raise RecordNotFoundError(f"Unit not found: {update.id}")
                self._store.units[update.id] = _apply_update(current, update)


class _CategoryRepository:
    def __init__(self, store: InMemoryLibraryStore) -> None:
        self._store = store

    async def find_all(self) -> list[Category]:
        self._store._record_call("category", "find_all")
        return sorted(self._store.categories.values(), key=lambda c: c.order)

    async def find_for_item(self, item_id: int) -> list[Category]:
        self._store._record_call("category", "find_for_item")
        return [
            self._store.categories[cat_id]
            for cat_id in self._store.category_ids_for(item_id)
            if cat_id in self._store.categories
        ]

    async def insert(self, categories: Sequence[Category]) -> None:
        self._store._record_call("category", "insert")
        async with self._store._lock:
            for category in categories:
                self._store.add_category(category)


class _ItemCategoryRepository:
    def __init__(self, store: InMemoryLibraryStore) -> None:
        self._store = store

    async def replace_for_item(self, item_id: int, memberships: Sequence[ItemCategory]) -> None:
        self._store._record_call("item_category", "replace_for_item")
        async with self._store._lock:
            for pair in [p for p in self._store.memberships if p[0] == item_id]:
                del self._store.memberships[pair]
            for membership in memberships:
                self._store.add_membership(item_id, membership.category_id)


class _TrackRepository:
    def __init__(self, store: InMemoryLibraryStore) -> None:
        self._store = store

    async def find_for_item(self, item_id: int) -> list[TrackRecord]:
        self._store._record_call("track", "find_for_item")
        return self._store.tracks_for(item_id)

    async def insert(self, tracks: Sequence[TrackRecord]) -> None:
        self._store._record_call("track", "insert")
        async with self._store._lock:
            for track in tracks:
                self._store.add_track(track)

    async def update_partial(self, updates: Sequence[TrackUpdate]) -> None:
        self._store._record_call("track", "update_partial")
        async with self._store._lock:
            for update in updates:
                current = self._store.tracks.get(update.id)
                if current is None:
                    raise RecordNotFoundError(f"Track not found: {update.id}")
                self._store.tracks[update.id] = _apply_update(current, update)
