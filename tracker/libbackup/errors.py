"""
Error types for libbackup.

This module defines all exception types raised by the backup core:
- BackupError: Base exception
- CorruptBackupError: Snapshot bytes cannot be decompressed or decoded
- RepositoryFailure: A repository collaborator call failed
- InvariantViolation: Internal logic defect (e.g. missing parent item)

Invariants:
    - All errors inherit from BackupError
    - Errors include context for debugging
    - RepositoryFailure always names the entity kind it was touching
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any


class BackupError(Exception):
    """Base exception for all libbackup errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "BACKUP_ERROR"
        self.details = details or {}


class CorruptBackupError(BackupError):
    """Backup data is unusable.

    Raised when:
    - The gzip container is truncated or not gzip at all
    - The decompressed bytes do not parse as a backup message
    """

    def __init__(self, message: str, source: str | None = None) -> None:
        super().__init__(
            message,
            code="CORRUPT_BACKUP",
            details={"source": source},
        )
        self.source = source


class RepositoryFailure(BackupError):
    """A repository call failed during dump or restore.

    The original exception is chained as ``__cause__``.

    Attributes:
        entity: Entity kind ("item", "unit", "category", "item_category", "track")
        operation: Repository method that failed
    """

    def __init__(self, message: str, entity: str, operation: str) -> None:
        super().__init__(
            message,
            code="REPOSITORY_FAILURE",
            details={"entity": entity, "operation": operation},
        )
        self.entity = entity
        self.operation = operation


class InvariantViolation(BackupError):
    """Internal invariant broken.

    Indicates a logic defect rather than bad input. Never swallowed.
    """

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message, code="INVARIANT_VIOLATION", details=context)


@contextmanager
def repository_errors(entity: str, operation: str) -> Iterator[None]:
    """Re-raise collaborator exceptions as RepositoryFailure.

    BackupError subclasses pass through untouched.

    Example:
        >>> with repository_errors("unit", "insert"):
        ...     await units.insert(new_units)
    """
    try:
        yield
    except BackupError:
        raise
    except Exception as e:
        raise RepositoryFailure(
            f"Repository call {entity}.{operation} failed: {e}",
            entity=entity,
            operation=operation,
        ) from e
