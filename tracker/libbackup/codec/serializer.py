"""
Backup file codec.

A backup file is a gzip stream wrapping one protobuf-encoded Backup message.
Default-valued fields are omitted on the wire (proto3 semantics) and
restored on decode.

Invariants:
    - load_bytes(dump_bytes(b)) == b for every valid Backup b
    - Any decompression or parse failure raises CorruptBackupError,
      never a partial Backup; input without a gzip header (an empty file
      included) is corrupt
    - Compressed output is reproducible (gzip mtime is fixed to 0)
    - Nothing here touches repositories
"""

from __future__ import annotations

import gzip
import logging
import zlib
from dataclasses import fields
from typing import Any

from google.protobuf.message import DecodeError

from ..errors import CorruptBackupError
from ..models.backup import Backup, BackupCategory, BackupItem, BackupTrack, BackupUnit
from .schema import BackupMessage

logger = logging.getLogger(__name__)

DEFAULT_COMPRESSION_LEVEL = 9

GZIP_MAGIC = b"\x1f\x8b"

_NESTED_ITEM_FIELDS = ("tags", "units", "categories", "tracks")

_UNIT_FIELDS = tuple(f.name for f in fields(BackupUnit))
_CATEGORY_FIELDS = tuple(f.name for f in fields(BackupCategory))
_TRACK_FIELDS = tuple(f.name for f in fields(BackupTrack))
_ITEM_FIELDS = tuple(f.name for f in fields(BackupItem) if f.name not in _NESTED_ITEM_FIELDS)


def _fill(message: Any, record: Any, names: tuple[str, ...]) -> None:
    for name in names:
        setattr(message, name, getattr(record, name))


def _read(cls: type, message: Any, names: tuple[str, ...]) -> Any:
    return cls(**{name: getattr(message, name) for name in names})


def encode(backup: Backup) -> bytes:
    """Encode a Backup to protobuf bytes.

    Args:
        backup: Snapshot to encode

    Returns:
        Serialized Backup message
    """
    message = BackupMessage()

    for item in backup.library:
        item_message = message.library.add()
        _fill(item_message, item, _ITEM_FIELDS)
        item_message.tags.extend(item.tags)
        item_message.categories.extend(item.categories)
        for unit in item.units:
            _fill(item_message.units.add(), unit, _UNIT_FIELDS)
        for track in item.tracks:
            _fill(item_message.tracks.add(), track, _TRACK_FIELDS)

    for category in backup.categories:
        _fill(message.categories.add(), category, _CATEGORY_FIELDS)

    return message.SerializeToString()


def decode(data: bytes, source: str | None = None) -> Backup:
    """Decode protobuf bytes into a Backup.

    Args:
        data: Serialized Backup message
        source: Optional description of where the bytes came from (for errors)

    Returns:
        Decoded Backup

    Raises:
        CorruptBackupError: If the bytes are not a valid Backup message
    """
    message = BackupMessage()
    try:
        message.ParseFromString(data)
    except DecodeError as e:
        raise CorruptBackupError(f"Backup data does not parse: {e}", source=source) from e

    library = tuple(
        BackupItem(
            **{name: getattr(item, name) for name in _ITEM_FIELDS},
            tags=tuple(item.tags),
            units=tuple(_read(BackupUnit, unit, _UNIT_FIELDS) for unit in item.units),
            categories=tuple(item.categories),
            tracks=tuple(_read(BackupTrack, track, _TRACK_FIELDS) for track in item.tracks),
        )
        for item in message.library
    )
    categories = tuple(
        _read(BackupCategory, category, _CATEGORY_FIELDS) for category in message.categories
    )
    return Backup(library=library, categories=categories)


def compress(data: bytes, level: int = DEFAULT_COMPRESSION_LEVEL) -> bytes:
    """Wrap bytes in a gzip stream."""
    return gzip.compress(data, compresslevel=level, mtime=0)


def decompress(data: bytes, source: str | None = None) -> bytes:
    """Unwrap a gzip stream.

    Raises:
        CorruptBackupError: If the stream is not valid gzip or is truncated
    """
    # gzip.decompress() accepts b"" and returns b""; an empty file is never a backup
    if not data.startswith(GZIP_MAGIC):
        raise CorruptBackupError("Backup is not a gzip stream (missing header)", source=source)
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as e:
        raise CorruptBackupError(f"Backup is not a valid gzip stream: {e}", source=source) from e


def dump_bytes(backup: Backup, level: int = DEFAULT_COMPRESSION_LEVEL) -> bytes:
    """Encode and compress a Backup, ready to be written to a file."""
    raw = encode(backup)
    compressed = compress(raw, level)
    logger.debug(
        "Encoded backup",
        extra={
            "items": len(backup.library),
            "categories": len(backup.categories),
            "raw_bytes": len(raw),
            "compressed_bytes": len(compressed),
        },
    )
    return compressed


def load_bytes(data: bytes, source: str | None = None) -> Backup:
    """Decompress and decode the contents of a backup file."""
    return decode(decompress(data, source=source), source=source)
