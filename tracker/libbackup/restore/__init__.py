"""
Restore module for libbackup.

Merges a decoded Backup into live repositories with deterministic,
idempotent conflict resolution.
"""

from .reconciler import BackupRestorer, ItemRestoreResult, RestoreSummary

__all__ = ["BackupRestorer", "ItemRestoreResult", "RestoreSummary"]
