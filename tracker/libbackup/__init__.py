"""
libbackup - Backup and restore for a personal library tracker.

This package captures a user's library (favourite items with their units,
category memberships and tracking records, plus the category list) into a
portable snapshot, and merges such a snapshot back into a live store.

Architecture:
    ┌──────────────┐   ┌──────────────┐   ┌──────────────┐
    │ Repositories │──▶│ DumpBuilder  │──▶│    Backup    │
    └──────────────┘   └──────────────┘   └──────┬───────┘
           ▲                                     │ protobuf + gzip
           │                                     ▼
    ┌──────┴───────┐   ┌──────────────┐   ┌──────────────┐
    │BackupRestorer│◀──│    Backup    │◀──│  .proto.gz   │
    └──────────────┘   └──────────────┘   └──────────────┘

Invariants:
    - Restore never deletes newer local state
    - Restoring the same snapshot twice equals restoring it once
    - Entity types are restored in dependency order: categories, then per
      item: item, units, memberships, tracks
    - Snapshot category references are backup-local and never persisted

How to change safely:
    - Wire schema changes follow protobuf evolution rules (new field numbers only)
    - Merge rules must stay monotonic (OR for flags, max for progress counters)
"""

from ._version import __version__
from .errors import BackupError, CorruptBackupError, InvariantViolation, RepositoryFailure
from .manager import BackupManager

__all__ = [
    "__version__",
    "BackupManager",
    "BackupError",
    "CorruptBackupError",
    "RepositoryFailure",
    "InvariantViolation",
]
