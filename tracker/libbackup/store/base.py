"""
Repository protocols consumed by the backup core.

The dump builder and the restorer only talk to storage through these narrow
async interfaces, so they can run against SQLite, an in-memory fake, or any
other engine.

Invariants:
    - Every call reflects all previous calls (no caching in the core)
    - insert() assigns ids; records passed in have id == 0
    - update_partial() writes only fields that are not None
    - Errors propagate as exceptions; the core wraps them in RepositoryFailure

How to change safely:
    - Protocol changes require updating every implementation
    - Keep methods coarse (batch insert/update/delete) so backends can use
      one transaction per call
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

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


@runtime_checkable
class ItemRepository(Protocol):
    """Library items."""

    @abstractmethod
    async def find(self, key: str, source_id: int) -> LibraryItem | None:
        """Find an item by its identity key, favourite or not."""
        ...

    @abstractmethod
    async def find_favorites(self) -> list[LibraryItem]:
        """Return every item currently in the library, in storage order."""
        ...

    @abstractmethod
    async def insert(self, item: LibraryItem) -> int:
        """Insert a new item and return its id."""
        ...

    @abstractmethod
    async def update_partial(self, update: LibraryItemUpdate) -> None:
        ...


@runtime_checkable
class UnitRepository(Protocol):
    """Units (chapters) of library items."""

    @abstractmethod
    async def find_for_item(self, item_id: int) -> list[Unit]:
        ...

    @abstractmethod
    async def insert(self, units: Sequence[Unit]) -> None:
        ...

    @abstractmethod
    async def delete(self, units: Sequence[Unit]) -> None:
        ...

    @abstractmethod
    async def update_partial(self, updates: Sequence[UnitUpdate]) -> None:
        ...


@runtime_checkable
class CategoryRepository(Protocol):
    """User and system categories."""

    @abstractmethod
    async def find_all(self) -> list[Category]:
        """Return all categories, system ones included, ordered by order."""
        ...

    @abstractmethod
    async def find_for_item(self, item_id: int) -> list[Category]:
        """Return the categories an item belongs to."""
        ...

    @abstractmethod
    async def insert(self, categories: Sequence[Category]) -> None:
        ...


@runtime_checkable
class ItemCategoryRepository(Protocol):
    """Item to category memberships."""

    @abstractmethod
    async def replace_for_item(self, item_id: int, memberships: Sequence[ItemCategory]) -> None:
        """Replace every membership of item_id with the given ones."""
        ...


@runtime_checkable
class TrackRepository(Protocol):
    """Tracking site records of library items."""

    @abstractmethod
    async def find_for_item(self, item_id: int) -> list[TrackRecord]:
        ...

    @abstractmethod
    async def insert(self, tracks: Sequence[TrackRecord]) -> None:
        ...

    @abstractmethod
    async def update_partial(self, updates: Sequence[TrackUpdate]) -> None:
        ...


@dataclass(frozen=True)
class Repositories:
    """The full set of collaborators the backup core needs."""

    items: ItemRepository
    units: UnitRepository
    categories: CategoryRepository
    item_categories: ItemCategoryRepository
    tracks: TrackRepository
