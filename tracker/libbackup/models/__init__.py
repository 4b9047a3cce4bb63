"""
Data models for libbackup.

- domain: live entities and partial updates exchanged with repositories
- backup: the portable snapshot model written to backup files
"""

from .backup import Backup, BackupCategory, BackupItem, BackupTrack, BackupUnit
from .domain import (
    Category,
    ItemCategory,
    LibraryItem,
    LibraryItemUpdate,
    TrackRecord,
    TrackUpdate,
    Unit,
    UnitUpdate,
)

__all__ = [
    # Snapshot
    "Backup",
    "BackupItem",
    "BackupUnit",
    "BackupCategory",
    "BackupTrack",
    # Live
    "LibraryItem",
    "LibraryItemUpdate",
    "Unit",
    "UnitUpdate",
    "Category",
    "ItemCategory",
    "TrackRecord",
    "TrackUpdate",
]
