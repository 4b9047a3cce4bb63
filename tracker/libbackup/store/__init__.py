"""
Storage abstraction for libbackup.

This module provides the repository protocols the backup core depends on,
plus two implementations:
- SQLite (a real library database)
- In-memory (for testing)

Invariants:
    - The backup core only uses the protocols, never a concrete store
    - Implementations enforce the same uniqueness rules

How to change safely:
    - New backends must implement every protocol in base.py
    - Run the restore tests against each backend
"""

from .base import (
    CategoryRepository,
    ItemCategoryRepository,
    ItemRepository,
    Repositories,
    TrackRepository,
    UnitRepository,
)
from .memory import InMemoryLibraryStore
from .sqlite import SqliteLibraryStore, StoreNotInitializedError

__all__ = [
    # Protocols
    "ItemRepository",
    "UnitRepository",
    "CategoryRepository",
    "ItemCategoryRepository",
    "TrackRepository",
    "Repositories",
    # Implementations
    "InMemoryLibraryStore",
    "SqliteLibraryStore",
    "StoreNotInitializedError",
]
