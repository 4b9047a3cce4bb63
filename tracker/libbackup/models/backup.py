"""
Portable snapshot model.

A Backup is the repository-independent picture of a library, used only while
a backup or restore is running. It is never persisted except through the
encoded backup file.

Invariants:
    - All records are immutable; collections are tuples so equality is
      field-for-field
    - Every field has the same default as its wire type (empty string, 0,
      False), so omitting defaults on the wire is lossless
    - BackupItem.categories holds backup-local indices (category order at
      dump time), never live category ids

How to change safely:
    - New fields need a default equal to the wire default
    - Add the matching field to codec/schema.py with a new field number
"""

from __future__ import annotations

from dataclasses import dataclass

from .domain import Category, LibraryItem, TrackRecord, Unit


@dataclass(frozen=True)
class BackupUnit:
    key: str
    name: str = ""
    scanlator: str = ""
    read: bool = False
    bookmark: bool = False
    progress: int = 0
    date_upload: int = 0
    date_fetch: int = 0
    number: float = 0.0
    source_order: int = 0

    @classmethod
    def from_domain(cls, unit: Unit) -> BackupUnit:
        return cls(
            key=unit.key,
            name=unit.name,
            scanlator=unit.scanlator,
            read=unit.read,
            bookmark=unit.bookmark,
            progress=unit.progress,
            date_upload=unit.date_upload,
            date_fetch=unit.date_fetch,
            number=unit.number,
            source_order=unit.source_order,
        )

    def to_domain(self, item_id: int) -> Unit:
        return Unit(
            id=0,
            item_id=item_id,
            key=self.key,
            name=self.name,
            scanlator=self.scanlator,
            read=self.read,
            bookmark=self.bookmark,
            progress=self.progress,
            date_upload=self.date_upload,
            date_fetch=self.date_fetch,
            number=self.number,
            source_order=self.source_order,
        )


@dataclass(frozen=True)
class BackupCategory:
    """A category as captured in a backup.

    ``order`` doubles as the backup-local index items use to reference it.
    """

    name: str
    order: int = 0
    flags: int = 0

    @classmethod
    def from_domain(cls, category: Category) -> BackupCategory:
        return cls(name=category.name, order=category.order, flags=category.flags)

    def to_domain(self) -> Category:
        return Category(id=0, name=self.name, order=self.order, flags=self.flags)


@dataclass(frozen=True)
class BackupTrack:
    site_id: int
    remote_id: int = 0
    library_id: int = 0
    title: str = ""
    last_read: float = 0.0
    total_chapters: int = 0
    status: int = 0
    score: float = 0.0
    remote_url: str = ""
    start_date: int = 0
    finish_date: int = 0

    @classmethod
    def from_domain(cls, track: TrackRecord) -> BackupTrack:
        return cls(
            site_id=track.site_id,
            remote_id=track.remote_id,
            library_id=track.library_id,
            title=track.title,
            last_read=track.last_read,
            total_chapters=track.total_chapters,
            status=track.status,
            score=track.score,
            remote_url=track.remote_url,
            start_date=track.start_date,
            finish_date=track.finish_date,
        )

    def to_domain(self, item_id: int) -> TrackRecord:
        return TrackRecord(
            id=0,
            item_id=item_id,
            site_id=self.site_id,
            remote_id=self.remote_id,
            library_id=self.library_id,
            title=self.title,
            last_read=self.last_read,
            total_chapters=self.total_chapters,
            status=self.status,
            score=self.score,
            remote_url=self.remote_url,
            start_date=self.start_date,
            finish_date=self.finish_date,
        )


@dataclass(frozen=True)
class BackupItem:
    """A library item with its children embedded.

    Attributes:
        source_id: Catalogue source
        key: Item key within the source
        units: Units of the item
        categories: Backup-local category indices
        tracks: Tracking records of the item

    The remaining attributes mirror LibraryItem metadata.
    """

    source_id: int
    key: str
    title: str = ""
    artist: str = ""
    author: str = ""
    description: str = ""
    tags: tuple[str, ...] = ()
    status: int = 0
    cover: str = ""
    custom_cover: bool = False
    last_update: int = 0
    last_init: int = 0
    date_added: int = 0
    viewer_mode: int = 0
    flags: int = 0
    units: tuple[BackupUnit, ...] = ()
    categories: tuple[int, ...] = ()
    tracks: tuple[BackupTrack, ...] = ()

    @classmethod
    def from_domain(
        cls,
        item: LibraryItem,
        units: tuple[BackupUnit, ...] = (),
        categories: tuple[int, ...] = (),
        tracks: tuple[BackupTrack, ...] = (),
    ) -> BackupItem:
        return cls(
            source_id=item.source_id,
            key=item.key,
            title=item.title,
            artist=item.artist,
            author=item.author,
            description=item.description,
            tags=tuple(item.tags),
            status=item.status,
            cover=item.cover,
            custom_cover=item.custom_cover,
            last_update=item.last_update,
            last_init=item.last_init,
            date_added=item.date_added,
            viewer_mode=item.viewer_mode,
            flags=item.flags,
            units=units,
            categories=categories,
            tracks=tracks,
        )

    def to_domain(self) -> LibraryItem:
        """Build a new, unsaved library item. Always a favourite."""
        return LibraryItem(
            id=0,
            source_id=self.source_id,
            key=self.key,
            title=self.title,
            artist=self.artist,
            author=self.author,
            description=self.description,
            tags=self.tags,
            status=self.status,
            cover=self.cover,
            custom_cover=self.custom_cover,
            favorite=True,
            last_update=self.last_update,
            last_init=self.last_init,
            date_added=self.date_added,
            viewer_mode=self.viewer_mode,
            flags=self.flags,
        )


@dataclass(frozen=True)
class Backup:
    """Root aggregate of a backup."""

    library: tuple[BackupItem, ...] = ()
    categories: tuple[BackupCategory, ...] = ()
