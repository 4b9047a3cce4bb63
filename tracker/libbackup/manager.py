"""
Backup manager for libbackup.

Entry points used by the application:

    create_backup(destination)   repositories -> Backup -> protobuf -> gzip -> file
    restore_backup(source)       file -> gunzip -> protobuf -> Backup -> repositories

Invariants:
    - One backup or restore runs at a time per store; the caller ensures it
      (two concurrent restores can both insert the same new category)
    - Processing is strictly sequential; no parallelism across items
    - File reads/writes run in the default executor
    - A cancelled create_backup may leave a truncated file behind

How to change safely:
    - Keep create_dump()/load_dump() free of file I/O so they stay testable
    - Changes to merge rules belong in restore/reconciler.py
"""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path

from .codec import DEFAULT_COMPRESSION_LEVEL, decode, dump_bytes, encode, load_bytes
from .dump import DumpBuilder
from .models.backup import Backup
from .restore import BackupRestorer, RestoreSummary
from .store.base import Repositories

logger = logging.getLogger(__name__)


class BackupManager:
    """Creates and restores library backups.

    Attributes:
        repositories: Repository collaborators
        dump_builder: Builds Backup snapshots from the repositories
        restorer: Merges Backup snapshots into the repositories
        compression_level: gzip level used for new files

    Example:
        >>> manager = BackupManager(store.repositories())
        >>> await manager.create_backup(Path("library.proto.gz"))
        >>> summary = await manager.restore_backup(Path("library.proto.gz"))
    """

    def __init__(
        self,
        repositories: Repositories,
        compression_level: int = DEFAULT_COMPRESSION_LEVEL,
    ) -> None:
        """Initialize the manager.

        Args:
            repositories: Repository collaborators
            compression_level: gzip level (0-9) for new backup files
        """
        self.repositories = repositories
        self.compression_level = compression_level
        self.dump_builder = DumpBuilder(repositories)
        self.restorer = BackupRestorer(repositories)

    async def create_backup(self, destination: str | Path) -> Path:
        """Write a backup of the library to destination.

        Args:
            destination: Backup file path (parent directories are created)

        Returns:
            The path written

        Raises:
            RepositoryFailure: Reading the library failed
            OSError: Writing the file failed
        """
        start_time = time.time()
        path = Path(destination)

        backup = await self.dump_builder.build_dump()
        data = dump_bytes(backup, self.compression_level)

        await asyncio.get_running_loop().run_in_executor(None, self._write_file, path, data)

        logger.info(
            "Created backup",
            extra={
                "path": str(path),
                "size_bytes": len(data),
                "items": len(backup.library),
                "duration_ms": int((time.time() - start_time) * 1000),
            },
        )
        return path

    async def restore_backup(self, source: str | Path) -> RestoreSummary:
        """Merge a backup file into the library.

        Args:
            source: Backup file path

        Returns:
            Counters of what the restore changed

        Raises:
            CorruptBackupError: The file is not a valid backup
            RepositoryFailure: A repository call failed; the restore stopped there
            InvariantViolation: Internal logic defect
            OSError: Reading the file failed
        """
        start_time = time.time()
        path = Path(source)

        data = await asyncio.get_running_loop().run_in_executor(None, path.read_bytes)
        backup = load_bytes(data, source=str(path))

        try:
            summary = await self.restorer.restore(backup)
        except Exception as e:
            logger.error(f"Restore of {path} failed: {e}", exc_info=True)
            raise

        logger.info(
            "Restored backup",
            extra={
                "path": str(path),
                "duration_ms": int((time.time() - start_time) * 1000),
                **summary.to_dict(),
            },
        )
        return summary

    async def create_dump(self) -> bytes:
        """Build the library snapshot and return it protobuf-encoded, uncompressed."""
        return encode(await self.dump_builder.build_dump())

    async def load_dump(self, data: bytes) -> Backup:
        """Decode uncompressed protobuf bytes into a Backup.

        Raises:
            CorruptBackupError: The bytes do not parse
        """
        return decode(data)

    @staticmethod
    def _write_file(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)
