"""Source adapters: turn host records into plain, namespaced Folder/Item records."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional, Protocol

from scenelib.errors import SourceUnavailable

from .models import WORLD_SOURCE_ID, Folder, Item, make_id

logger = logging.getLogger(__name__)

SCENE_FOLDER_TYPE = "Scene"


def _ref_id(value: Any) -> Optional[str]:
    """Extract an id from a reference that may be a plain id or a nested record."""
    if value is None or value == "":
        return None
    if isinstance(value, Mapping):
        ref = value.get("id") or value.get("_id")
        return str(ref) if ref else None
    return str(value)


def _record_id(record: Mapping) -> str:
    raw = record.get("id") or record.get("_id")
    if not raw:
        raise ValueError(f"Record without id: {dict(record)!r}")
    return str(raw)


def _image_src(value: Any) -> Optional[str]:
    if isinstance(value, Mapping):
        value = value.get("src")
    return str(value) if value else None


def _has_grid(value: Any) -> bool:
    if isinstance(value, Mapping):
        value = value.get("type", 0)
    return bool(value)


def folder_from_record(record: Mapping, source_id: str) -> Folder:
    """Convert a host folder record into a Folder of ``source_id``."""
    original_id = _record_id(record)
    parent = _ref_id(record.get("folder", record.get("parent")))
    count = record.get("count", record.get("item_count"))
    return Folder(
        id=make_id(source_id, original_id),
        name=str(record.get("name") or ""),
        original_id=original_id,
        source_id=source_id,
        parent_id=make_id(source_id, parent) if parent else None,
        color=record.get("color") or None,
        sort_key=int(record.get("sort") or 0),
        item_count=int(count) if count is not None else None,
    )


def item_from_record(record: Mapping, source_id: str) -> Item:
    """Convert a host scene record into an Item of ``source_id``."""
    original_id = _record_id(record)
    folder = _ref_id(record.get("folder"))
    return Item(
        id=make_id(source_id, original_id),
        name=str(record.get("name") or ""),
        original_id=original_id,
        source_id=source_id,
        folder_id=make_id(source_id, folder) if folder else None,
        tags=[str(t) for t in record.get("tags") or []],
        sort_key=int(record.get("sort") or 0),
        thumbnail=_image_src(record.get("thumb")),
        background=_image_src(record.get("background", record.get("img"))),
        active=bool(record.get("active", False)),
        navigation=bool(record.get("navigation", False)),
        has_grid=_has_grid(record.get("grid")),
        has_vision=record.get("tokenVision") is True,
    )


class SourceAdapter(ABC):
    """A content source the library can browse."""

    source_id: str = ""
    label: str = ""
    read_only: bool = True

    @abstractmethod
    async def list_folders(self) -> list[Folder]:
        """Return every folder of this source."""
        pass

    @abstractmethod
    async def list_items(self, folder_id: Optional[str] = None) -> list[Item]:
        """
        Return the items of this source.

        Args:
            folder_id: Composite folder id to restrict to, or None for all items.
        """
        pass

    def owns(self, composite_id: str) -> bool:
        """Check whether an id was minted by this source."""
        return composite_id.startswith(make_id(self.source_id, ""))

    def invalidate(self) -> None:
        """Forget anything cached from the underlying source."""
        pass


class WorldHost(Protocol):
    """The host's mutable collection, read as plain mappings."""

    def folders(self) -> Iterable[Mapping]:
        ...

    def scenes(self) -> Iterable[Mapping]:
        ...


class WorldSource(SourceAdapter):
    """The mutable collection. Reads are cheap and never cached."""

    read_only = False

    def __init__(
        self,
        host: WorldHost,
        source_id: str = WORLD_SOURCE_ID,
        label: str = "World",
        folder_type: Optional[str] = SCENE_FOLDER_TYPE,
    ):
        self.host = host
        self.source_id = source_id
        self.label = label
        self.folder_type = folder_type

    def folders_now(self) -> list[Folder]:
        """Synchronous read of the folders."""
        return [
            folder_from_record(record, self.source_id)
            for record in self.host.folders()
            if self.folder_type is None or record.get("type", self.folder_type) == self.folder_type
        ]

    def items_now(self) -> list[Item]:
        """Synchronous read of the items."""
        return [item_from_record(record, self.source_id) for record in self.host.scenes()]

    def item_ids(self) -> list[str]:
        return [make_id(self.source_id, _record_id(record)) for record in self.host.scenes()]

    async def list_folders(self) -> list[Folder]:
        return self.folders_now()

    async def list_items(self, folder_id: Optional[str] = None) -> list[Item]:
        items = self.items_now()
        if folder_id is not None:
            items = [item for item in items if item.folder_id == folder_id]
        return items


IndexFetcher = Callable[[], Awaitable[Mapping]]


class PackSource(SourceAdapter):
    """
    A read-only pack whose index is fetched asynchronously and cached.

    The index is a mapping with an ``items`` list and an optional ``folders``
    list. Packs without folder metadata get placeholder folders built from
    the distinct folder references found on items, named by position.
    """

    read_only = True

    def __init__(self, pack_id: str, fetch_index: IndexFetcher, label: Optional[str] = None):
        if not pack_id or pack_id == WORLD_SOURCE_ID:
            raise ValueError(f"Invalid pack id: {pack_id!r}")
        self.source_id = pack_id
        self.label = label or pack_id
        self._fetch_index = fetch_index
        self._folders: Optional[list[Folder]] = None
        self._items: Optional[list[Item]] = None
        self._lock = asyncio.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._items is not None

    async def list_folders(self) -> list[Folder]:
        await self._ensure_loaded()
        return list(self._folders or [])

    async def list_items(self, folder_id: Optional[str] = None) -> list[Item]:
        await self._ensure_loaded()
        items = list(self._items or [])
        if folder_id is not None:
            items = [item for item in items if item.folder_id == folder_id]
        return items

    def invalidate(self) -> None:
        self._folders = None
        self._items = None

    async def _ensure_loaded(self) -> None:
        async with self._lock:
            if self._items is not None:
                return
            try:
                index = await self._fetch_index()
            except Exception as e:
                logger.warning(f"Could not read index of pack {self.source_id}: {e}")
                raise SourceUnavailable(self.source_id, str(e)) from e
            if not isinstance(index, Mapping):
                raise SourceUnavailable(self.source_id, "index is not a mapping")

            try:
                items = [item_from_record(r, self.source_id) for r in index.get("items") or []]
                folder_records = index.get("folders")
                if folder_records is None:
                    folders = self._placeholder_folders(items)
                else:
                    folders = [folder_from_record(r, self.source_id) for r in folder_records]
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Malformed index in pack {self.source_id}: {e}")
                raise SourceUnavailable(self.source_id, f"malformed index: {e}") from e

            self._items = items
            self._folders = folders
            logger.debug(
                f"Loaded pack {self.source_id}: {len(folders)} folders, {len(items)} items"
            )

    def _placeholder_folders(self, items: list[Item]) -> list[Folder]:
        refs = dict.fromkeys(item.folder_id for item in items if item.folder_id)
        prefix = make_id(self.source_id, "")
        return [
            Folder(
                id=folder_id,
                name=f"Folder {position}",
                original_id=folder_id[len(prefix):],
                source_id=self.source_id,
                sort_key=position,
            )
            for position, folder_id in enumerate(refs, start=1)
        ]
