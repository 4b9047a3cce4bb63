"""
Backup CLI tool for libbackup.

Commands:
- create: Back up a SQLite library to a backup file
- restore: Merge a backup file into a SQLite library
- inspect: Print what a backup file contains

Usage:
    libbackup create [--db PATH] [--output FILE]
    libbackup restore --input FILE [--db PATH]
    libbackup inspect --input FILE

Invariants:
    - Exit code 0 on success, 1 on backup errors, 2 on usage errors
    - restore creates the library schema and the default category if the
      database is new
    - inspect never opens a library database

How to change safely:
    - Add new commands, don't modify existing ones
    - Keep output format stable for scripts
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from ..codec import load_bytes
from ..config import AppConfig
from ..errors import BackupError
from ..logging_setup import setup_logging
from ..manager import BackupManager
from ..models.backup import Backup
from ..store.sqlite import SqliteLibraryStore, StoreNotInitializedError

logger = logging.getLogger(__name__)


class BackupCLI:
    """Implements the CLI commands against a SQLite library.

    Example:
        >>> cli = BackupCLI(AppConfig())
        >>> path = await cli.create(None, None)
    """

    def __init__(self, config: AppConfig) -> None:
        self.config = config

    def _store(self, db_path: str | None) -> SqliteLibraryStore:
        return SqliteLibraryStore(
            db_path or self.config.storage.db_path,
            wal_mode=self.config.storage.wal_mode,
            busy_timeout_ms=self.config.storage.busy_timeout_ms,
        )

    async def create(self, db_path: str | None, output: str | None) -> Path:
        store = self._store(db_path)
        if not store.db_path.exists():
            raise StoreNotInitializedError(f"Library database not found: {store.db_path}")

        destination = Path(output) if output else self.config.backup.default_destination()
        manager = BackupManager(
            store.repositories(),
            compression_level=self.config.backup.compression_level,
        )
        return await manager.create_backup(destination)

    async def restore(self, input_path: str, db_path: str | None) -> dict[str, int]:
        store = self._store(db_path)
        await store.initialize()
        await store.seed_system_categories()
        manager = BackupManager(store.repositories())
        summary = await manager.restore_backup(input_path)
        return summary.to_dict()

    def inspect(self, input_path: str) -> dict[str, int]:
        data = Path(input_path).read_bytes()
        backup = load_bytes(data, source=input_path)
        return describe(backup)


def describe(backup: Backup) -> dict[str, int]:
    """Count the records in a backup."""
    return {
        "items": len(backup.library),
        "units": sum(len(item.units) for item in backup.library),
        "tracks": sum(len(item.tracks) for item in backup.library),
        "categories": len(backup.categories),
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="libbackup",
        description="Create, restore and inspect library backups",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create", help="Back up the library")
    create.add_argument("--db", help="Library database (default: LIBBACKUP_DB_PATH)")
    create.add_argument("--output", help="Backup file (default: BACKUP_DIR/BACKUP_FILENAME_PATTERN)")

    restore = subparsers.add_parser("restore", help="Merge a backup into the library")
    restore.add_argument("--input", required=True, help="Backup file")
    restore.add_argument("--db", help="Library database (default: LIBBACKUP_DB_PATH)")

    inspect = subparsers.add_parser("inspect", help="Show backup contents")
    inspect.add_argument("--input", required=True, help="Backup file")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = AppConfig.from_env()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    setup_logging(config.observability, verbose=args.verbose)
    config.log_config()
    cli = BackupCLI(config)

    try:
        if args.command == "create":
            path = asyncio.run(cli.create(args.db, args.output))
            print(f"Backup written to {path}")
        elif args.command == "restore":
            summary = asyncio.run(cli.restore(args.input, args.db))
            print("Restore completed successfully")
            for name, count in summary.items():
                print(f"  {name}: {count}")
        else:
            counts = cli.inspect(args.input)
            for name, count in counts.items():
                print(f"{name}: {count}")
    except (BackupError, StoreNotInitializedError, OSError) as e:
        print(f"{args.command} failed: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
