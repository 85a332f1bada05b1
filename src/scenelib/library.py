"""The scene library: query and mutation API over all registered sources."""

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional, Protocol

from scenelib.config import LibrarySettings, get_settings
from scenelib.content.compose import Page, check_folder_move, compose_items
from scenelib.content.events import ChangeKind, EventBus, SourceChanged
from scenelib.content.favorites import FavoritesStore, RecentList
from scenelib.content.flags import FlagStore, write_flag
from scenelib.content.models import FOLDER, ITEM, Folder, Item, make_id, resolve_image
from scenelib.content.sources import SourceAdapter, WorldSource
from scenelib.content.tags import TagCatalog, normalize_tags
from scenelib.content.tree import FolderIndex, TreeNode, build_visible_tree
from scenelib.content.view_state import ViewState
from scenelib.errors import NotFound, PersistenceFailed, SourceUnavailable, WouldCreateCycle

logger = logging.getLogger(__name__)


class Mutator(Protocol):
    """Host operations that change the mutable collection. Ids are original ids."""

    async def move_item(self, item_id: str, folder_id: Optional[str]) -> None:
        ...

    async def move_folder(self, folder_id: str, parent_id: Optional[str]) -> None:
        ...

    async def import_item(self, source_id: str, item_id: str, folder_id: Optional[str]) -> str:
        ...


@dataclass
class TreeView:
    """Visible folder tree plus any source failures met while building it."""

    nodes: list[TreeNode]
    errors: list[SourceUnavailable] = field(default_factory=list)

    def walk(self):
        for node in self.nodes:
            yield from node.walk()


@dataclass
class ScopeCounts:
    """Badge counts of the system scopes."""

    favorites: int = 0
    all_items: int = 0
    unsorted: int = 0
    recent: int = 0


class SceneLibrary:
    """
    Aggregates the mutable world source and read-only packs, and answers
    what should be visible for a given ViewState.

    Every query is recomputed from the current source data; only the tag
    vocabulary is cached, and it is kept consistent by the tag mutations and
    by ``ITEM_DELETED`` notifications on the event bus.

    Args:
        world: The mutable source.
        flags: Store for favorites, recents, tags and display preferences.
        mutator: Host operations for moves and imports (optional for
            read-only use).
        packs: Read-only sources to register.
        settings: Library settings (defaults to the global settings).
        bus: Event bus to subscribe to (a private one is created otherwise).
    """

    def __init__(
        self,
        world: WorldSource,
        flags: FlagStore,
        mutator: Optional[Mutator] = None,
        packs: Iterable[SourceAdapter] = (),
        settings: Optional[LibrarySettings] = None,
        bus: Optional[EventBus] = None,
    ):
        self.settings = settings or get_settings()
        s = self.settings
        self.world = world
        self.flags = flags
        self.mutator = mutator
        self._sources: dict[str, SourceAdapter] = {world.source_id: world}
        for pack in packs:
            self.add_source(pack)

        self.favorites = FavoritesStore(flags, s.flag_key(s.favorites_key))
        self.recent = RecentList(flags, s.flag_key(s.recent_key), limit=s.recent_limit)
        self.tags = TagCatalog(flags, live_item_ids=world.item_ids, key=s.flag_key(s.tags_key))

        self.bus = bus or EventBus()
        self._unsubscribe = self.bus.subscribe(self._on_source_changed)

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    @property
    def sources(self) -> list[SourceAdapter]:
        return list(self._sources.values())

    def add_source(self, source: SourceAdapter) -> None:
        if source.source_id in self._sources:
            raise ValueError(f"Source already registered: {source.source_id}")
        self._sources[source.source_id] = source

    def get_source(self, source_id: str) -> Optional[SourceAdapter]:
        return self._sources.get(source_id)

    def source_for(self, composite_id: str) -> Optional[SourceAdapter]:
        """The source that minted ``composite_id``, if any."""
        # Longest id first, so "a" never claims ids of a source named "a:b".
        for source_id in sorted(self._sources, key=len, reverse=True):
            if self._sources[source_id].owns(composite_id):
                return self._sources[source_id]
        return None

    async def load(
        self, source_id: str, use_full_image: Optional[bool] = None
    ) -> tuple[list[Folder], list[Item]]:
        """
        Read folders and enriched items of one source.

        Unknown sources yield empty lists. ``use_full_image`` defaults to the
        library setting.

        Raises:
            SourceUnavailable: If the source cannot be read.
        """
        source = self.get_source(source_id)
        if source is None:
            return [], []
        if use_full_image is None:
            use_full_image = self.settings.use_full_image
        if source is self.world:
            try:
                await self.tags.prune_deleted()
            except PersistenceFailed as e:
                logger.warning(f"Could not save pruned tags: {e}")
        folders = await source.list_folders()
        items = await source.list_items()
        favorite_items = self.favorites.items
        return folders, [self._enrich(item, use_full_image, favorite_items) for item in items]

    def _enrich(self, item: Item, use_full_image: bool, favorite_items: frozenset) -> Item:
        if item.source_id == self.world.source_id:
            tags = self.tags.get_tags(item.id)
        else:
            tags = normalize_tags(item.tags)
        return replace(
            item,
            tags=tags,
            is_favorite=item.id in favorite_items,
            image=resolve_image(item, use_full_image, self.settings.placeholder_image),
        )

    async def _load_view(
        self, view: ViewState
    ) -> tuple[list[Folder], list[Item], list[SourceUnavailable]]:
        try:
            folders, items = await self.load(view.source_id, view.use_full_image)
        except SourceUnavailable as e:
            return [], [], [e]
        return folders, items, []

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def initial_view(self) -> ViewState:
        """Starting view, with the image choice taken from the settings."""
        return ViewState(use_full_image=self.settings.use_full_image)

    async def get_visible_tree(self, view: ViewState) -> TreeView:
        """Folder tree of the view's source under its folder search and expansion."""
        folders, items, errors = await self._load_view(view)
        nodes = build_visible_tree(
            folders,
            items,
            favorite_folders=self.favorites.folders,
            favorite_items=self.favorites.items,
            expanded=view.expanded,
            search=view.folder_search,
            active_folder_id=view.scope.folder_id,
        )
        return TreeView(nodes=nodes, errors=errors)

    async def get_visible_items(self, view: ViewState) -> Page:
        """Ordered, paged items of the view's scope under its item search."""
        _, items, errors = await self._load_view(view)
        page = compose_items(
            items,
            view.scope,
            view.query,
            recent_ids=self.recent.ids,
            page=view.page,
            page_size=self.settings.page_size,
            paginated=self.paginate,
        )
        page.errors = errors
        return page

    async def get_scope_counts(self, view: ViewState) -> ScopeCounts:
        _, items, _ = await self._load_view(view)
        ids = {item.id for item in items}
        return ScopeCounts(
            favorites=sum(1 for item in items if item.is_favorite),
            all_items=len(items),
            unsorted=sum(1 for item in items if item.folder_id is None),
            recent=sum(1 for item_id in self.recent.ids if item_id in ids),
        )

    def get_vocabulary(self) -> list[str]:
        return self.tags.get_vocabulary()

    def get_tags(self, item_id: str) -> list[str]:
        return self.tags.get_tags(item_id)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def toggle_favorite(self, kind: str, id: str) -> bool:
        """Flip a folder or item favorite. Returns the new membership."""
        if kind == FOLDER:
            await self._require_folder(id)
        elif kind == ITEM:
            await self._require_item(id)
        return await self.favorites.toggle(kind, id)

    async def set_tags(self, item_id: str, tags: Iterable[str]) -> list[str]:
        """Replace the tags of a world item."""
        if not self.world.owns(item_id):
            raise NotFound(ITEM, item_id)
        return await self.tags.set_tags(item_id, tags)

    async def add_to_recent(self, item_id: str) -> None:
        await self._require_item(item_id)
        await self.recent.add(item_id)

    async def remove_from_recent(self, item_id: str) -> None:
        """Remove an item from the recency list. Existing items not listed are a no-op."""
        if not await self.recent.remove(item_id):
            await self._require_item(item_id)

    async def clear_recent(self) -> None:
        await self.recent.clear()

    async def move_item(self, item_id: str, folder_id: Optional[str]) -> None:
        """Move a world item into a world folder, or to unsorted with None."""
        mutator = self._require_mutator()
        item = await self._require_item(item_id, self.world)
        folder = await self._require_folder(folder_id, self.world) if folder_id else None
        await mutator.move_item(item.original_id, folder.original_id if folder else None)
        await self.bus.publish(
            SourceChanged(ChangeKind.ITEM_UPDATED, self.world.source_id, (item_id,))
        )

    async def move_folder(self, folder_id: str, new_parent_id: Optional[str]) -> None:
        """
        Reparent a world folder.

        Raises:
            WouldCreateCycle: If the folder would end up inside itself. Nothing
                is changed.
        """
        mutator = self._require_mutator()
        folders = await self.world.list_folders()
        index = FolderIndex(folders)
        folder = index.get(folder_id)
        if folder is None:
            raise NotFound(FOLDER, folder_id)
        parent = None
        if new_parent_id is not None:
            parent = index.get(new_parent_id)
            if parent is None:
                raise NotFound(FOLDER, new_parent_id)
        try:
            check_folder_move(index, folder_id, new_parent_id)
        except WouldCreateCycle:
            logger.warning(f"Rejected move of {folder_id} under {new_parent_id}")
            raise
        await mutator.move_folder(folder.original_id, parent.original_id if parent else None)
        await self.bus.publish(
            SourceChanged(ChangeKind.FOLDER_UPDATED, self.world.source_id, (folder_id,))
        )

    async def import_item(self, item_id: str, dest_folder_id: Optional[str] = None) -> str:
        """
        Copy a pack item into the world.

        Returns:
            Composite id of the new world item.
        """
        mutator = self._require_mutator()
        source = self.source_for(item_id)
        if source is None or source is self.world:
            raise NotFound(ITEM, item_id)
        item = await self._require_item(item_id, source)
        folder = None
        if dest_folder_id is not None:
            folder = await self._require_folder(dest_folder_id, self.world)
        new_original_id = await mutator.import_item(
            source.source_id, item.original_id, folder.original_id if folder else None
        )
        new_id = make_id(self.world.source_id, new_original_id)
        logger.info(f"Imported {item_id} as {new_id}")
        await self.bus.publish(
            SourceChanged(ChangeKind.ITEM_CREATED, self.world.source_id, (new_id,))
        )
        return new_id

    async def notify(self, event: SourceChanged) -> None:
        """Forward a host change notification to the library's caches."""
        await self.bus.publish(event)

    def close(self) -> None:
        """Stop listening to the event bus."""
        self._unsubscribe()

    # ------------------------------------------------------------------
    # Display preferences
    # ------------------------------------------------------------------

    @property
    def show_tags(self) -> bool:
        return bool(self.flags.get(self._pref_key(self.settings.show_tags_key), False))

    @property
    def paginate(self) -> bool:
        return bool(self.flags.get(self._pref_key(self.settings.paginate_key), True))

    async def toggle_show_tags(self) -> bool:
        value = not self.show_tags
        await write_flag(self.flags, self._pref_key(self.settings.show_tags_key), value)
        return value

    async def toggle_paginate(self) -> bool:
        value = not self.paginate
        await write_flag(self.flags, self._pref_key(self.settings.paginate_key), value)
        return value

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _pref_key(self, name: str) -> str:
        return self.settings.flag_key(name)

    def _require_mutator(self) -> Mutator:
        if self.mutator is None:
            raise RuntimeError("No mutator configured for this library")
        return self.mutator

    async def _require_item(self, item_id: str, source: Optional[SourceAdapter] = None) -> Item:
        source = source or self.source_for(item_id)
        if source is None or not source.owns(item_id):
            raise NotFound(ITEM, item_id)
        for item in await source.list_items():
            if item.id == item_id:
                return item
        raise NotFound(ITEM, item_id)

    async def _require_folder(
        self, folder_id: str, source: Optional[SourceAdapter] = None
    ) -> Folder:
        source = source or self.source_for(folder_id)
        if source is None or not source.owns(folder_id):
            raise NotFound(FOLDER, folder_id)
        for folder in await source.list_folders():
            if folder.id == folder_id:
                return folder
        raise NotFound(FOLDER, folder_id)

    async def _on_source_changed(self, event: SourceChanged) -> None:
        source = self.get_source(event.source_id)
        if source is None:
            return
        if source is not self.world:
            source.invalidate()
            return
        if event.kind is ChangeKind.ITEM_DELETED:
            for item_id in event.affected_ids:
                await self.tags.on_item_deleted(item_id)
