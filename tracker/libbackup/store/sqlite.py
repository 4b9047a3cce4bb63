"""
SQLite library store for libbackup.

This module manages a single SQLite database holding:
- Library items with their metadata
- Units (chapters) of each item
- Categories and item memberships
- Tracking site records

It implements the repository protocols from store/base.py so the backup
core can dump from and restore into a real database.

Invariants:
    - One SQLite file per library
    - Multi-row writes run in a single transaction
    - (key, source_id) is unique for items; unit keys and track site ids are
      unique per item
    - Deleting an item cascades to its units, tracks and memberships

How to change safely:
    - Schema migrations must be backward compatible
    - Bump SCHEMA_VERSION and add the migration to _create_schema
    - Use transactions for all write operations

Table schema:
    items:
        - id INTEGER PRIMARY KEY
        - source_id INTEGER, key TEXT (UNIQUE together)
        - title, artist, author, description, cover TEXT
        - tags_json TEXT (JSON list)
        - status, viewer_mode, flags INTEGER
        - custom_cover, favorite INTEGER (0/1)
        - last_update, last_init, date_added INTEGER (Unix ms)

    units:
        - id INTEGER PRIMARY KEY
        - item_id INTEGER REFERENCES items(id)
        - key TEXT (UNIQUE per item_id)
        - name, scanlator TEXT
        - read, bookmark INTEGER (0/1)
        - progress, date_upload, date_fetch, source_order INTEGER
        - number REAL

    categories:
        - id INTEGER PRIMARY KEY
        - name TEXT, sort_order INTEGER, flags INTEGER, is_system INTEGER

    item_categories:
        - item_id, category_id (PRIMARY KEY together)

    tracks:
        - id INTEGER PRIMARY KEY
        - item_id INTEGER REFERENCES items(id)
        - site_id INTEGER (UNIQUE per item_id)
        - remote_id, library_id, total_chapters, status INTEGER
        - start_date, finish_date INTEGER
        - title, remote_url TEXT
        - last_read, score REAL
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import fields
from pathlib import Path
from typing import Any

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
from .base import Repositories

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY_NAME = "Default"


class StoreNotInitializedError(Exception):
    """Library database does not exist."""

    pass


_ITEM_COLUMNS = (
    "source_id",
    "key",
    "title",
    "artist",
    "author",
    "description",
    "tags_json",
    "status",
    "cover",
    "custom_cover",
    "favorite",
    "last_update",
    "last_init",
    "date_added",
    "viewer_mode",
    "flags",
)

_UNIT_COLUMNS = (
    "item_id",
    "key",
    "name",
    "scanlator",
    "read",
    "bookmark",
    "progress",
    "date_upload",
    "date_fetch",
    "number",
    "source_order",
)

_TRACK_COLUMNS = (
    "item_id",
    "site_id",
    "remote_id",
    "library_id",
    "title",
    "last_read",
    "total_chapters",
    "status",
    "score",
    "remote_url",
    "start_date",
    "finish_date",
)


def _column_value(name: str, value: Any) -> Any:
    if name == "tags":
        return json.dumps(list(value))
    if isinstance(value, bool):
        return int(value)
    return value


def _item_row(item: LibraryItem) -> tuple[Any, ...]:
    values = {f.name: getattr(item, f.name) for f in fields(item)}
    values["tags_json"] = json.dumps(list(item.tags))
    return tuple(_column_value(c, values[c]) for c in _ITEM_COLUMNS)


def _item_from_row(row: sqlite3.Row) -> LibraryItem:
    return LibraryItem(
        id=row["id"],
        source_id=row["source_id"],
        key=row["key"],
        title=row["title"],
        artist=row["artist"],
        author=row["author"],
        description=row["description"],
        tags=tuple(json.loads(row["tags_json"])),
        status=row["status"],
        cover=row["cover"],
        custom_cover=bool(row["custom_cover"]),
        favorite=bool(row["favorite"]),
        last_update=row["last_update"],
        last_init=row["last_init"],
        date_added=row["date_added"],
        viewer_mode=row["viewer_mode"],
        flags=row["flags"],
    )


def _unit_from_row(row: sqlite3.Row) -> Unit:
    return Unit(
        id=row["id"],
        item_id=row["item_id"],
        key=row["key"],
        name=row["name"],
        scanlator=row["scanlator"],
        read=bool(row["read"]),
        bookmark=bool(row["bookmark"]),
        progress=row["progress"],
        date_upload=row["date_upload"],
        date_fetch=row["date_fetch"],
        number=row["number"],
        source_order=row["source_order"],
    )


def _category_from_row(row: sqlite3.Row) -> Category:
    return Category(
        id=row["id"],
        name=row["name"],
        order=row["sort_order"],
        flags=row["flags"],
        is_system=bool(row["is_system"]),
    )


def _track_from_row(row: sqlite3.Row) -> TrackRecord:
    return TrackRecord(
        id=row["id"],
        item_id=row["item_id"],
        site_id=row["site_id"],
        remote_id=row["remote_id"],
        library_id=row["library_id"],
        title=row["title"],
        last_read=row["last_read"],
        total_chapters=row["total_chapters"],
        status=row["status"],
        score=row["score"],
        remote_url=row["remote_url"],
        start_date=row["start_date"],
        finish_date=row["finish_date"],
    )


def _set_clause(update: Any) -> tuple[str, list[Any]]:
    """Build "col = ?, ..." for the non-None fields of a partial update."""
    columns = []
    params: list[Any] = []
    for f in fields(update):
        value = getattr(update, f.name)
        if f.name == "id" or value is None:
            continue
        columns.append("tags_json = ?" if f.name == "tags" else f"{f.name} = ?")
        params.append(_column_value(f.name, value))
    return ", ".join(columns), params


class SqliteLibraryStore:
    """SQLite-backed library store.

    Thread safety:
        Each operation opens its own connection.
        SQLite handles concurrent access via WAL mode.

    Example:
        >>> store = SqliteLibraryStore("/var/lib/library/library.db")
        >>> await store.initialize()
        >>> manager = BackupManager(store.repositories())
    """

    SCHEMA_VERSION = 1

    def __init__(
        self,
        db_path: str | Path,
        wal_mode: bool = True,
        busy_timeout_ms: int = 5000,
    ) -> None:
        """Initialize the store.

        Args:
            db_path: SQLite database file
            wal_mode: Enable SQLite WAL mode
            busy_timeout_ms: SQLite busy timeout
        """
        self.db_path = Path(db_path)
        self.wal_mode = wal_mode
        self.busy_timeout_ms = busy_timeout_ms

    @contextmanager
    def connection(self, create: bool = False) -> Iterator[sqlite3.Connection]:
        """Open a configured connection to the library database.

        Args:
            create: Whether to create the database file if missing

        Yields:
            SQLite connection in autocommit mode

        Raises:
            StoreNotInitializedError: If the file doesn't exist and create=False
        """
        if not create and not self.db_path.exists():
            raise StoreNotInitializedError(f"Library database not found: {self.db_path}")

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(
            str(self.db_path),
            timeout=self.busy_timeout_ms / 1000.0,
            isolation_level=None,  # Autocommit by default, explicit transactions
        )
        conn.row_factory = sqlite3.Row

        try:
            conn.execute(f"PRAGMA busy_timeout = {self.busy_timeout_ms}")
            if self.wal_mode:
                conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA synchronous = NORMAL")
            conn.execute("PRAGMA foreign_keys = ON")

            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Connection wrapped in BEGIN IMMEDIATE / COMMIT, rolled back on error."""
        with self.connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
                conn.execute("COMMIT")
            except Exception:
                conn.execute("ROLLBACK")
                raise

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                source_id INTEGER NOT NULL,
                key TEXT NOT NULL,
                title TEXT NOT NULL DEFAULT '',
                artist TEXT NOT NULL DEFAULT '',
                author TEXT NOT NULL DEFAULT '',
                description TEXT NOT NULL DEFAULT '',
                tags_json TEXT NOT NULL DEFAULT '[]',
                status INTEGER NOT NULL DEFAULT 0,
                cover TEXT NOT NULL DEFAULT '',
                custom_cover INTEGER NOT NULL DEFAULT 0,
                favorite INTEGER NOT NULL DEFAULT 0,
                last_update INTEGER NOT NULL DEFAULT 0,
                last_init INTEGER NOT NULL DEFAULT 0,
                date_added INTEGER NOT NULL DEFAULT 0,
                viewer_mode INTEGER NOT NULL DEFAULT 0,
                flags INTEGER NOT NULL DEFAULT 0,
                UNIQUE (key, source_id)
            );

            CREATE INDEX IF NOT EXISTS idx_items_favorite ON items(favorite);

            CREATE TABLE IF NOT EXISTS units (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                item_id INTEGER NOT NULL REFERENCES items(id) ON DELETE CASCADE,
                key TEXT NOT NULL,
                name TEXT NOT NULL DEFAULT '',
                scanlator TEXT NOT NULL DEFAULT '',
                read INTEGER NOT NULL DEFAULT 0,
                bookmark INTEGER NOT NULL DEFAULT 0,
                progress INTEGER NOT NULL DEFAULT 0,
                date_upload INTEGER NOT NULL DEFAULT 0,
                date_fetch INTEGER NOT NULL DEFAULT 0,
                number REAL NOT NULL DEFAULT -1,
                source_order INTEGER NOT NULL DEFAULT 0,
                UNIQUE (item_id, key)
            );

            CREATE TABLE IF NOT EXISTS categories (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                sort_order INTEGER NOT NULL DEFAULT 0,
                flags INTEGER NOT NULL DEFAULT 0,
                is_system INTEGER NOT NULL DEFAULT 0
            );

            CREATE TABLE IF NOT EXISTS item_categories (
                item_id INTEGER NOT NULL REFERENCES items(id) ON DELETE CASCADE,
                category_id INTEGER NOT NULL REFERENCES categories(id) ON DELETE CASCADE,
                PRIMARY KEY (item_id, category_id)
            );

            CREATE TABLE IF NOT EXISTS tracks (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                item_id INTEGER NOT NULL REFERENCES items(id) ON DELETE CASCADE,
                site_id INTEGER NOT NULL,
                remote_id INTEGER NOT NULL DEFAULT 0,
                library_id INTEGER NOT NULL DEFAULT 0,
                title TEXT NOT NULL DEFAULT '',
                last_read REAL NOT NULL DEFAULT 0,
                total_chapters INTEGER NOT NULL DEFAULT 0,
                status INTEGER NOT NULL DEFAULT 0,
                score REAL NOT NULL DEFAULT 0,
                remote_url TEXT NOT NULL DEFAULT '',
                start_date INTEGER NOT NULL DEFAULT 0,
                finish_date INTEGER NOT NULL DEFAULT 0,
                UNIQUE (item_id, site_id)
            );

            INSERT OR IGNORE INTO schema_version (version, applied_at)
            VALUES (1, strftime('%s', 'now') * 1000);
        """)

    async def initialize(self) -> None:
        """Create the database file and schema if they don't exist."""
        with self.connection(create=True) as conn:
            self._create_schema(conn)
        logger.info(f"Initialized library database: {self.db_path}")

    async def seed_system_categories(self) -> None:
        """Insert the default system category if the library has none."""
        with self.transaction() as conn:
            row = conn.execute("SELECT 1 FROM categories WHERE is_system = 1").fetchone()
            if row is None:
                conn.execute(
                    "INSERT INTO categories (name, sort_order, flags, is_system) VALUES (?, 0, 0, 1)",
                    (DEFAULT_CATEGORY_NAME,),
                )

    def repositories(self) -> Repositories:
        """Bundle the repositories backed by this database."""
        return Repositories(
            items=SqliteItemRepository(self),
            units=SqliteUnitRepository(self),
            categories=SqliteCategoryRepository(self),
            item_categories=SqliteItemCategoryRepository(self),
            tracks=SqliteTrackRepository(self),
        )


class SqliteItemRepository:
    def __init__(self, store: SqliteLibraryStore) -> None:
        self._store = store

    async def find(self, key: str, source_id: int) -> LibraryItem | None:
        with self._store.connection() as conn:
            row = conn.execute(
                "SELECT * FROM items WHERE key = ? AND source_id = ?",
                (key, source_id),
            ).fetchone()
            return _item_from_row(row) if row else None

    async def find_favorites(self) -> list[LibraryItem]:
        with self._store.connection() as conn:
            rows = conn.execute("SELECT * FROM items WHERE favorite = 1 ORDER BY id").fetchall()
            return [_item_from_row(row) for row in rows]

    async def insert(self, item: LibraryItem) -> int:
        placeholders = ", ".join("?" for _ in _ITEM_COLUMNS)
        with self._store.transaction() as conn:
            cursor = conn.execute(
                f"INSERT INTO items ({', '.join(_ITEM_COLUMNS)}) VALUES ({placeholders})",
                _item_row(item),
            )
            item_id = cursor.lastrowid
        logger.debug("Inserted item", extra={"item_id": item_id, "key": item.key})
        return item_id

    async def update_partial(self, update: LibraryItemUpdate) -> None:
        clause, params = _set_clause(update)
        if not clause:
            return
        with self._store.transaction() as conn:
            conn.execute(f"UPDATE items SET {clause} WHERE id = ?", (*params, update.id))


class SqliteUnitRepository:
    def __init__(self, store: SqliteLibraryStore) -> None:
        self._store = store

    async def find_for_item(self, item_id: int) -> list[Unit]:
        with self._store.connection() as conn:
            rows = conn.execute(
                "SELECT * FROM units WHERE item_id = ? ORDER BY id", (item_id,)
            ).fetchall()
            return [_unit_from_row(row) for row in rows]

    async def insert(self, units: Sequence[Unit]) -> None:
        placeholders = ", ".join("?" for _ in _UNIT_COLUMNS)
        with self._store.transaction() as conn:
            conn.executemany(
                f"INSERT INTO units ({', '.join(_UNIT_COLUMNS)}) VALUES ({placeholders})",
                [tuple(_column_value(c, getattr(u, c)) for c in _UNIT_COLUMNS) for u in units],
            )

    async def delete(self, units: Sequence[Unit]) -> None:
        with self._store.transaction() as conn:
            conn.executemany("DELETE FROM units WHERE id = ?", [(u.id,) for u in units])

    async def update_partial(self, updates: Sequence[UnitUpdate]) -> None:
        with self._store.transaction() as conn:
            for update in updates:
                clause, params = _set_clause(update)
                if clause:
                    conn.execute(f"UPDATE units SET {clause} WHERE id = ?", (*params, update.id))


class SqliteCategoryRepository:
    def __init__(self, store: SqliteLibraryStore) -> None:
        self._store = store

    async def find_all(self) -> list[Category]:
        with self._store.connection() as conn:
            rows = conn.execute("SELECT * FROM categories ORDER BY sort_order, id").fetchall()
            return [_category_from_row(row) for row in rows]

    async def find_for_item(self, item_id: int) -> list[Category]:
        with self._store.connection() as conn:
            rows = conn.execute(
                """
                SELECT c.* FROM categories c
                JOIN item_categories ic ON ic.category_id = c.id
                WHERE ic.item_id = ?
                ORDER BY c.sort_order, c.id
                """,
                (item_id,),
            ).fetchall()
            return [_category_from_row(row) for row in rows]

    async def insert(self, categories: Sequence[Category]) -> None:
        with self._store.transaction() as conn:
            conn.executemany(
                "INSERT INTO categories (name, sort_order, flags, is_system) VALUES (?, ?, ?, ?)",
                [(c.name, c.order, c.flags, int(c.is_system)) for c in categories],
            )


class SqliteItemCategoryRepository:
    def __init__(self, store: SqliteLibraryStore) -> None:
        self._store = store

    async def replace_for_item(self, item_id: int, memberships: Sequence[ItemCategory]) -> None:
        with self._store.transaction() as conn:
            conn.execute("DELETE FROM item_categories WHERE item_id = ?", (item_id,))
            conn.executemany(
                "INSERT OR IGNORE INTO item_categories (item_id, category_id) VALUES (?, ?)",
                [(item_id, m.category_id) for m in memberships],
            )


class SqliteTrackRepository:
    def __init__(self, store: SqliteLibraryStore) -> None:
        self._store = store

    async def find_for_item(self, item_id: int) -> list[TrackRecord]:
        with self._store.connection() as conn:
            rows = conn.execute(
                "SELECT * FROM tracks WHERE item_id = ? ORDER BY id", (item_id,)
            ).fetchall()
            return [_track_from_row(row) for row in rows]

    async def insert(self, tracks: Sequence[TrackRecord]) -> None:
        placeholders = ", ".join("?" for _ in _TRACK_COLUMNS)
        with self._store.transaction() as conn:
            conn.executemany(
                f"INSERT INTO tracks ({', '.join(_TRACK_COLUMNS)}) VALUES ({placeholders})",
                [tuple(getattr(t, c) for c in _TRACK_COLUMNS) for t in tracks],
            )

    async def update_partial(self, updates: Sequence[TrackUpdate]) -> None:
        with self._store.transaction() as conn:
            for update in updates:
                clause, params = _set_clause(update)
                if clause:
                    conn.execute(f"UPDATE tracks SET {clause} WHERE id = ?", (*params, update.id))
