"""Per-item tags and the incrementally maintained tag vocabulary."""

import logging
from typing import Callable, Iterable, Optional

from scenelib.errors import NotFound

from .flags import FlagStore, write_flag

logger = logging.getLogger(__name__)

DEFAULT_TAGS_KEY = "sceneTags"


def normalize_tag(tag: str) -> str:
    """Trim, strip leading ``#`` characters and case-fold a single tag."""
    return tag.strip().lstrip("#").strip().casefold()


def normalize_tags(tags: Iterable[str]) -> list[str]:
    """Normalize tags, dropping empties and duplicates (first occurrence wins)."""
    result: list[str] = []
    seen: set[str] = set()
    for tag in tags:
        norm = normalize_tag(tag)
        if not norm or norm in seen:
            continue
        seen.add(norm)
        result.append(norm)
    return result


class TagCatalog:
    """
    Tag assignments of the mutable source plus a cached global vocabulary.

    The vocabulary is built by one full scan on first access. After that,
    ``set_tags`` and ``on_item_deleted`` keep it consistent incrementally:
    added tags are inserted unconditionally, and a removed tag is dropped only
    when no other item still references it.

    Args:
        flags: Store holding the ``{item_id: [tags]}`` mapping.
        live_item_ids: Returns the ids of the items that currently exist.
            When given, unknown items are rejected and tags of items that no
            longer exist are ignored by the full scan.
        key: Flag key of the tag mapping.
    """

    def __init__(
        self,
        flags: FlagStore,
        live_item_ids: Optional[Callable[[], Iterable[str]]] = None,
        key: str = DEFAULT_TAGS_KEY,
    ):
        self._flags = flags
        self._live_item_ids = live_item_ids
        self.key = key
        stored = flags.get(key) or {}
        self._tags: dict[str, list[str]] = {
            item_id: normalize_tags(tags) for item_id, tags in stored.items() if tags
        }
        self._vocabulary: Optional[set[str]] = None
        self._unsaved = False

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_tags(self, item_id: str) -> list[str]:
        """Tags assigned to an item (empty if unknown)."""
        return list(self._tags.get(item_id, []))

    def get_vocabulary(self) -> list[str]:
        """Sorted, de-duplicated, case-folded list of every tag in use."""
        return sorted(self._ensure_vocabulary())

    def scan_vocabulary(self) -> set[str]:
        """Compute the vocabulary from scratch without touching the cache."""
        live = self._live_ids()
        vocabulary: set[str] = set()
        for item_id, tags in self._tags.items():
            if live is not None and item_id not in live:
                continue
            vocabulary.update(tags)
        return vocabulary

    @property
    def is_cached(self) -> bool:
        return self._vocabulary is not None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def set_tags(self, item_id: str, tags: Iterable[str]) -> list[str]:
        """
        Replace the tags of an item and persist the mapping.

        Returns:
            The normalized tag list now assigned to the item.

        Raises:
            NotFound: If live item ids are known and ``item_id`` is not one.
            PersistenceFailed: If the flag store write fails. The in-memory
                change is kept.
        """
        live = self._live_ids()
        if live is not None and item_id not in live:
            raise NotFound("item", item_id)

        vocabulary = self._ensure_vocabulary()
        old = set(self._tags.get(item_id, []))
        new_tags = normalize_tags(tags)

        if new_tags:
            self._tags[item_id] = new_tags
        else:
            self._tags.pop(item_id, None)

        for tag in old - set(new_tags):
            if not self._is_referenced(tag, exclude=item_id):
                vocabulary.discard(tag)
        vocabulary.update(new_tags)

        await self._persist()
        return list(new_tags)

    async def on_item_deleted(self, item_id: str) -> None:
        """Forget a deleted item's tags, dropping tags nobody else uses."""
        old = self._tags.pop(item_id, None)
        if old is None:
            return
        if self._vocabulary is not None:
            for tag in old:
                if not self._is_referenced(tag, exclude=item_id):
                    self._vocabulary.discard(tag)
        await self._persist()

    async def prune_deleted(self) -> None:
        """
        Drop assignments of items that no longer exist and persist the mapping.

        Raises:
            PersistenceFailed: If the flag store write fails. The drop is kept
                and retried by the next call.
        """
        if self._drop_dead():
            self._vocabulary = None
        if self._unsaved:
            await self._persist()

    def invalidate(self) -> None:
        """Drop the cached vocabulary; the next read rebuilds it."""
        self._vocabulary = None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _live_ids(self) -> Optional[set[str]]:
        if self._live_item_ids is None:
            return None
        return set(self._live_item_ids())

    def _ensure_vocabulary(self) -> set[str]:
        if self._vocabulary is None:
            self._drop_dead()
            self._vocabulary = self.scan_vocabulary()
            logger.debug(f"Built tag vocabulary: {len(self._vocabulary)} tags")
        return self._vocabulary

    def _drop_dead(self) -> list[str]:
        # Assignments of items deleted behind our back would keep their tags
        # alive in the incremental path.
        live = self._live_ids()
        if live is None:
            return []
        dead = [item_id for item_id in self._tags if item_id not in live]
        for item_id in dead:
            del self._tags[item_id]
        if dead:
            self._unsaved = True
            logger.debug(f"Dropped tags of {len(dead)} deleted items")
        return dead

    def _is_referenced(self, tag: str, exclude: str) -> bool:
        for other_id, tags in self._tags.items():
            if other_id != exclude and tag in tags:
                return True
        return False

    async def _persist(self) -> None:
        await write_flag(self._flags, self.key, {k: list(v) for k, v in self._tags.items()})
        self._unsaved = False
