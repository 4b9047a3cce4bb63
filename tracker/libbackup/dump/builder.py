"""
Dump builder for libbackup.

Walks the live repositories and produces a Backup of the user's library.

Invariants:
    - Read-only: never calls a mutating repository method
    - Only favourite items are dumped
    - System categories are excluded from both the root category list and
      item memberships
    - Item memberships reference categories by their order value, which is
      the backup-local index restore resolves against the root list
    - Output order follows repository fetch order
"""

from __future__ import annotations

import logging

from ..errors import repository_errors
from ..models.backup import Backup, BackupCategory, BackupItem, BackupTrack, BackupUnit
from ..store.base import Repositories

logger = logging.getLogger(__name__)


class DumpBuilder:
    """Builds a Backup from live repositories.

    Example:
        >>> builder = DumpBuilder(store.repositories())
        >>> backup = await builder.build_dump()
        >>> len(backup.library)
        12
    """

    def __init__(self, repositories: Repositories) -> None:
        self.repositories = repositories

    async def build_dump(self) -> Backup:
        """Capture the whole library."""
        backup = Backup(
            library=tuple(await self.dump_library()),
            categories=tuple(await self.dump_categories()),
        )
        logger.info(
            "Built library dump",
            extra={"items": len(backup.library), "categories": len(backup.categories)},
        )
        return backup

    async def dump_library(self) -> list[BackupItem]:
        with repository_errors("item", "find_favorites"):
            favorites = await self.repositories.items.find_favorites()

        library = []
        for item in favorites:
            units = await self.dump_units(item.id)
            categories = await self.dump_item_categories(item.id)
            tracks = await self.dump_tracks(item.id)
            library.append(
                BackupItem.from_domain(
                    item,
                    units=tuple(units),
                    categories=tuple(categories),
                    tracks=tuple(tracks),
                )
            )
        return library

    async def dump_units(self, item_id: int) -> list[BackupUnit]:
        with repository_errors("unit", "find_for_item"):
            units = await self.repositories.units.find_for_item(item_id)
        return [BackupUnit.from_domain(unit) for unit in units]

    async def dump_item_categories(self, item_id: int) -> list[int]:
        """Backup-local indices of the item's non-system categories."""
        with repository_errors("category", "find_for_item"):
            categories = await self.repositories.categories.find_for_item(item_id)
        return [category.order for category in categories if not category.is_system]

    async def dump_tracks(self, item_id: int) -> list[BackupTrack]:
        with repository_errors("track", "find_for_item"):
            tracks = await self.repositories.tracks.find_for_item(item_id)
        return [BackupTrack.from_domain(track) for track in tracks]

    async def dump_categories(self) -> list[BackupCategory]:
        with repository_errors("category", "find_all"):
            categories = await self.repositories.categories.find_all()
        return [
            BackupCategory.from_domain(category)
            for category in categories
            if not category.is_system
        ]
