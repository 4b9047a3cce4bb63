"""
Backup reconciliation for libbackup.

The BackupRestorer merges a decoded Backup into the live repositories. All
conflicts are resolved automatically:

- Categories: inserted only when no live non-system category has the same
  name (case-insensitive); new ones are appended after existing orders
- Items: inserted when unknown; metadata overwritten only when the backup's
  last_init is newer or the live item left the library
- Units: when the backup's last_update is newer the backup's units replace
  the live ones; otherwise live units are kept. Either way read/bookmark are
  OR'd and progress takes the maximum of both sides
- Memberships: replaced wholesale with the resolved backup set
- Tracks: inserted when unknown; last_read and total_chapters only grow

Invariants:
    - Processing order: categories, category id mapping, then per item:
      item, units, memberships, tracks
    - Backup-local category indices are resolved through a mapping built
      once, before any item is processed
    - Restoring the same Backup twice leaves the store as restoring it once
    - The first failing repository call aborts the restore; work already
      committed stays
    - Restore is not transactional across entity types

How to change safely:
    - Merge rules must stay monotonic or idempotence breaks
    - Test every rule against the in-memory store (tests/unit/test_reconciler.py)
      and the SQLite store (tests/integration/test_sqlite_restore.py)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import asdict, dataclass, replace

from ..errors import InvariantViolation, repository_errors
from ..models.backup import Backup, BackupCategory, BackupItem
from ..models.domain import (
    Category,
    ItemCategory,
    LibraryItemUpdate,
    TrackRecord,
    TrackUpdate,
    Unit,
    UnitUpdate,
)
from ..store.base import Repositories

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ItemRestoreResult:
    """Outcome of restoring one item.

    Attributes:
        item_id: Live id of the item
        inserted: Whether the item was created by this restore
        previous_last_update: Live last_update before the restore touched the
            item (None when inserted)
    """

    item_id: int
    inserted: bool
    previous_last_update: int | None


@dataclass
class RestoreSummary:
    """Counters collected during a restore."""

    categories_inserted: int = 0
    items_inserted: int = 0
    items_updated: int = 0
    units_inserted: int = 0
    units_updated: int = 0
    units_deleted: int = 0
    memberships_replaced: int = 0
    tracks_inserted: int = 0
    tracks_updated: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class BackupRestorer:
    """Applies a Backup to live repositories.

    Each step is a public coroutine so it can be exercised on its own;
    restore() runs them in the required order.

    Attributes:
        repositories: Repository collaborators
        summary: Counters of the current (or last) restore

    Example:
        >>> restorer = BackupRestorer(store.repositories())
        >>> summary = await restorer.restore(backup)
        >>> summary.items_inserted
        3
    """

    def __init__(self, repositories: Repositories) -> None:
        self.repositories = repositories
        self.summary = RestoreSummary()

    async def restore(self, backup: Backup) -> RestoreSummary:
        """Merge a whole Backup into the store.

        Args:
            backup: Decoded backup

        Returns:
            Counters of what changed

        Raises:
            RepositoryFailure: A repository call failed; later items are not processed
            InvariantViolation: Internal logic defect
        """
        self.summary = RestoreSummary()
        logger.info(
            "Starting restore",
            extra={"items": len(backup.library), "categories": len(backup.categories)},
        )

        await self.restore_categories(backup.categories)
        category_ids = await self.category_ids_by_backup_id(backup.categories)

        for item in backup.library:
            restored = await self.restore_item(item)
            await self.restore_units(item, restored)
            if item.categories:
                resolved = [category_ids[i] for i in item.categories if i in category_ids]
                if len(resolved) < len(item.categories):
                    logger.debug(
                        f"Dropped {len(item.categories) - len(resolved)} unresolved "
                        f"category references of {item.source_id}:{item.key}"
                    )
                await self.restore_item_categories(restored.item_id, resolved)
            await self.restore_tracks(item, restored.item_id)

        logger.info("Restore finished", extra=self.summary.to_dict())
        return self.summary

    # =========================================================================
    # Categories
    # =========================================================================

    async def restore_categories(self, categories: Sequence[BackupCategory]) -> list[Category]:
        """Insert backup categories whose names are unknown to the store.

        Args:
            categories: Categories from the backup

        Returns:
            The categories that were inserted
        """
        if not categories:
            return []

        with repository_errors("category", "find_all"):
            existing = await self.repositories.categories.find_all()

        known_names = {c.name.casefold() for c in existing if not c.is_system}
        next_order = max((c.order for c in existing), default=-1) + 1

        to_add: list[Category] = []
        for category in categories:
            folded = category.name.casefold()
            if folded in known_names:
                continue
            known_names.add(folded)
            to_add.append(replace(category.to_domain(), order=next_order + len(to_add)))

        if to_add:
            with repository_errors("category", "insert"):
                await self.repositories.categories.insert(to_add)
            logger.debug(f"Inserted {len(to_add)} categories")

        self.summary.categories_inserted += len(to_add)
        return to_add

    async def category_ids_by_backup_id(
        self, categories: Sequence[BackupCategory]
    ) -> dict[int, int]:
        """Map each backup-local category index to a live category id.

        Must run after restore_categories(), so every backup category has a
        live counterpart.

        Raises:
            InvariantViolation: A backup category has no live match
        """
        if not categories:
            return {}

        with repository_errors("category", "find_all"):
            live = await self.repositories.categories.find_all()

        ids_by_name: dict[str, int] = {}
        for category in live:
            if not category.is_system:
                ids_by_name.setdefault(category.name.casefold(), category.id)

        mapping: dict[int, int] = {}
        for category in categories:
            category_id = ids_by_name.get(category.name.casefold())
            if category_id is None:
                raise InvariantViolation(
                    f"Category '{category.name}' missing after category restore",
                    name=category.name,
                    order=category.order,
                )
            mapping[category.order] = category_id
        return mapping

    # =========================================================================
    # Items
    # =========================================================================

    async def restore_item(self, item: BackupItem) -> ItemRestoreResult:
        """Insert the item, or refresh its metadata when the backup is fresher."""
        with repository_errors("item", "find"):
            live = await self.repositories.items.find(item.key, item.source_id)

        if live is None:
            with repository_errors("item", "insert"):
                item_id = await self.repositories.items.insert(item.to_domain())
            self.summary.items_inserted += 1
            logger.debug("Inserted item", extra={"item_id": item_id, "key": item.key})
            return ItemRestoreResult(item_id=item_id, inserted=True, previous_last_update=None)

        if item.last_init > live.last_init or not live.favorite:
            update = LibraryItemUpdate(
                id=live.id,
                title=item.title,
                artist=item.artist,
                author=item.author,
                description=item.description,
                tags=item.tags,
                status=item.status,
                cover=item.cover,
                custom_cover=item.custom_cover,
                favorite=True,
                last_update=item.last_update,
                last_init=item.last_init,
                date_added=item.date_added,
                viewer_mode=item.viewer_mode,
                flags=item.flags,
            )
            with repository_errors("item", "update_partial"):
                await self.repositories.items.update_partial(update)
            self.summary.items_updated += 1
            logger.debug("Refreshed item metadata", extra={"item_id": live.id, "key": item.key})

        return ItemRestoreResult(
            item_id=live.id,
            inserted=False,
            previous_last_update=live.last_update,
        )

    # =========================================================================
    # Units
    # =========================================================================

    async def restore_units(
        self,
        item: BackupItem,
        restored: ItemRestoreResult | None = None,
    ) -> None:
        """Merge the item's units.

        Args:
            item: Backup item whose units to restore
            restored: Result of restore_item() for this item. Its
                previous_last_update is the freshness baseline; without it
                the live item's current last_update is used.

        Raises:
            InvariantViolation: The item is not in the store
        """
        if not item.units:
            return

        with repository_errors("item", "find"):
            live_item = await self.repositories.items.find(item.key, item.source_id)
        if live_item is None:
            raise InvariantViolation(
                f"Item {item.source_id}:{item.key} not found while restoring units",
                source_id=item.source_id,
                key=item.key,
            )

        with repository_errors("unit", "find_for_item"):
            live_units = await self.repositories.units.find_for_item(live_item.id)

        if restored is None:
            backup_is_newer = item.last_update > live_item.last_update
        elif restored.inserted:
            backup_is_newer = True
        else:
            backup_is_newer = item.last_update > (restored.previous_last_update or 0)

        if backup_is_newer:
            await self._replace_units(item, live_item.id, live_units)
        else:
            await self._merge_units(item, live_units)

    async def _replace_units(self, item: BackupItem, item_id: int, live_units: list[Unit]) -> None:
        live_by_key = {unit.key: unit for unit in live_units}

        if live_units:
            with repository_errors("unit", "delete"):
                await self.repositories.units.delete(live_units)
            self.summary.units_deleted += len(live_units)

        seen: set[str] = set()
        to_add: list[Unit] = []
        for backup_unit in item.units:
            if backup_unit.key in seen:
                continue
            seen.add(backup_unit.key)

            unit = backup_unit.to_domain(item_id)
            live_unit = live_by_key.get(backup_unit.key)
            if live_unit is not None:
                unit = replace(
                    unit,
                    read=backup_unit.read or live_unit.read,
                    bookmark=backup_unit.bookmark or live_unit.bookmark,
                    progress=max(backup_unit.progress, live_unit.progress),
                )
            to_add.append(unit)

        with repository_errors("unit", "insert"):
            await self.repositories.units.insert(to_add)
        self.summary.units_inserted += len(to_add)

    async def _merge_units(self, item: BackupItem, live_units: list[Unit]) -> None:
        backup_by_key = {}
        for backup_unit in item.units:
            backup_by_key.setdefault(backup_unit.key, backup_unit)

        updates: list[UnitUpdate] = []
        for live_unit in live_units:
            backup_unit = backup_by_key.get(live_unit.key)
            if backup_unit is None:
                continue
            read = live_unit.read or backup_unit.read
            bookmark = live_unit.bookmark or backup_unit.bookmark
            progress = max(live_unit.progress, backup_unit.progress)
            if (read, bookmark, progress) != (live_unit.read, live_unit.bookmark, live_unit.progress):
                updates.append(
                    UnitUpdate(id=live_unit.id, read=read, bookmark=bookmark, progress=progress)
                )

        if updates:
            with repository_errors("unit", "update_partial"):
                await self.repositories.units.update_partial(updates)
            self.summary.units_updated += len(updates)

    # =========================================================================
    # Memberships and tracks
    # =========================================================================

    async def restore_item_categories(self, item_id: int, category_ids: Sequence[int]) -> None:
        """Replace the item's memberships with the given live category ids.

        An empty list leaves the memberships alone.
        """
        if not category_ids:
            return

        memberships = [
            ItemCategory(item_id=item_id, category_id=category_id)
            for category_id in dict.fromkeys(category_ids)
        ]
        with repository_errors("item_category", "replace_for_item"):
            await self.repositories.item_categories.replace_for_item(item_id, memberships)
        self.summary.memberships_replaced += 1

    async def restore_tracks(self, item: BackupItem, item_id: int) -> None:
        """Insert unknown tracks and grow the progress of known ones."""
        if not item.tracks:
            return

        with repository_errors("track", "find_for_item"):
            live_tracks = await self.repositories.tracks.find_for_item(item_id)
        live_by_site = {track.site_id: track for track in live_tracks}

        to_add: list[TrackRecord] = []
        to_update: list[TrackUpdate] = []
        for track in item.tracks:
            live_track = live_by_site.get(track.site_id)
            if live_track is None:
                if all(t.site_id != track.site_id for t in to_add):
                    to_add.append(track.to_domain(item_id))
            elif (
                track.last_read > live_track.last_read
                or track.total_chapters > live_track.total_chapters
            ):
                to_update.append(
                    TrackUpdate(
                        id=live_track.id,
                        last_read=max(live_track.last_read, track.last_read),
                        total_chapters=max(live_track.total_chapters, track.total_chapters),
                    )
                )

        if to_add:
            with repository_errors("track", "insert"):
                await self.repositories.tracks.insert(to_add)
            self.summary.tracks_inserted += len(to_add)
        if to_update:
            with repository_errors("track", "update_partial"):
                await self.repositories.tracks.update_partial(to_update)
            self.summary.tracks_updated += len(to_update)
