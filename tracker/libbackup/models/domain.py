"""
Live library entities as stored by the repositories.

These are the records the repositories hand out and accept. The backup core
never persists them itself; it only reads them and issues insert, update and
delete requests.

Invariants:
    - id == 0 means "not persisted yet"; repositories assign ids on insert
    - LibraryItem is unique by (key, source_id)
    - Unit is unique by key within item_id
    - TrackRecord is unique by site_id within item_id
    - Update records leave fields set to None untouched
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class LibraryItem:
    """An item in the user's library.

    Attributes:
        id: Database identifier
        source_id: Catalogue source the item comes from
        key: Item key within its source
        title: Display title
        artist: Artist credit
        author: Author credit
        description: Synopsis
        tags: Genre tags
        status: Publication status code
        cover: Cover image reference
        custom_cover: Whether the user replaced the cover
        favorite: Whether the item is in the library
        last_update: Content freshness timestamp (Unix ms)
        last_init: Metadata freshness timestamp (Unix ms)
        date_added: When the item was added to the library (Unix ms)
        viewer_mode: Preferred reader mode
        flags: Display/sort bitmask
    """

    id: int
    source_id: int
    key: str
    title: str
    artist: str = ""
    author: str = ""
    description: str = ""
    tags: tuple[str, ...] = ()
    status: int = 0
    cover: str = ""
    custom_cover: bool = False
    favorite: bool = False
    last_update: int = 0
    last_init: int = 0
    date_added: int = 0
    viewer_mode: int = 0
    flags: int = 0


@dataclass(frozen=True)
class LibraryItemUpdate:
    """Partial update of a LibraryItem. None fields are not written."""

    id: int
    title: str | None = None
    artist: str | None = None
    author: str | None = None
    description: str | None = None
    tags: tuple[str, ...] | None = None
    status: int | None = None
    cover: str | None = None
    custom_cover: bool | None = None
    favorite: bool | None = None
    last_update: int | None = None
    last_init: int | None = None
    date_added: int | None = None
    viewer_mode: int | None = None
    flags: int | None = None


@dataclass(frozen=True)
class Unit:
    """A readable unit (chapter) of a library item.

    Attributes:
        id: Database identifier
        item_id: Owning item
        key: Unit key, unique within the item
        name: Display name
        scanlator: Group credit
        read: Whether the unit was read
        bookmark: Whether the unit is bookmarked
        progress: Last read page
        date_upload: Upload timestamp (Unix ms)
        date_fetch: When the unit was discovered (Unix ms)
        number: Parsed unit number, -1 if unknown
        source_order: Position reported by the source
    """

    id: int
    item_id: int
    key: str
    name: str = ""
    scanlator: str = ""
    read: bool = False
    bookmark: bool = False
    progress: int = 0
    date_upload: int = 0
    date_fetch: int = 0
    number: float = -1.0
    source_order: int = 0


@dataclass(frozen=True)
class UnitUpdate:
    id: int
    read: bool | None = None
    bookmark: bool | None = None
    progress: int | None = None


@dataclass(frozen=True)
class Category:
    """A user category.

    System categories (such as the implicit default one) are never backed up
    or restored.
    """

    id: int
    name: str
    order: int = 0
    flags: int = 0
    is_system: bool = False


@dataclass(frozen=True)
class ItemCategory:
    item_id: int
    category_id: int


@dataclass(frozen=True)
class TrackRecord:
    """Progress of an item on an external tracking site.

    Attributes:
        id: Database identifier
        item_id: Owning item
        site_id: Tracking site, unique within the item
        remote_id: Entry id on the site
        library_id: User list entry id on the site
        title: Title on the site
        last_read: Last unit number read
        total_chapters: Total units known to the site
        status: Reading status code on the site
        score: User score
        remote_url: Link to the entry
        start_date: Reading start (Unix ms)
        finish_date: Reading finish (Unix ms)
    """

    id: int
    item_id: int
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


@dataclass(frozen=True)
class TrackUpdate:
    id: int
    last_read: float | None = None
    total_chapters: int | None = None
