"""Favorite folders/items and the most-recently-used item list."""

import logging
from typing import Optional

from .flags import FlagStore, write_flag
from .models import ENTITY_KINDS, FOLDER

logger = logging.getLogger(__name__)

DEFAULT_FAVORITES_KEY = "sceneLibraryFavs"
DEFAULT_RECENT_KEY = "sceneLibraryRecent"
DEFAULT_RECENT_LIMIT = 50


def _check_kind(kind: str) -> None:
    if kind not in ENTITY_KINDS:
        raise ValueError(f"Unknown favorite kind: {kind!r} (expected one of {ENTITY_KINDS})")


class FavoritesStore:
    """
    Two membership sets, favorite folders and favorite items.

    Stored as ``{"folders": [...], "items": [...]}``. The legacy ``scenes``
    key is read as the item set.
    """

    def __init__(self, flags: FlagStore, key: str = DEFAULT_FAVORITES_KEY):
        self._flags = flags
        self.key = key
        stored = flags.get(key) or {}
        # Lists keep insertion order so the persisted value stays stable.
        self._folders: list[str] = list(dict.fromkeys(stored.get("folders", [])))
        self._items: list[str] = list(
            dict.fromkeys(stored.get("items", stored.get("scenes", [])))
        )

    @property
    def folders(self) -> frozenset[str]:
        return frozenset(self._folders)

    @property
    def items(self) -> frozenset[str]:
        return frozenset(self._items)

    def is_favorite(self, kind: str, id: str) -> bool:
        _check_kind(kind)
        return id in (self._folders if kind == FOLDER else self._items)

    async def toggle(self, kind: str, id: str) -> bool:
        """
        Flip the membership of ``id`` and persist.

        Returns:
            True if ``id`` is now a favorite.
        """
        _check_kind(kind)
        members = self._folders if kind == FOLDER else self._items
        if id in members:
            members.remove(id)
            now_favorite = False
        else:
            members.append(id)
            now_favorite = True
        logger.debug(f"Favorite {kind} {id} -> {now_favorite}")
        await write_flag(self._flags, self.key, self.to_dict())
        return now_favorite

    def to_dict(self) -> dict:
        return {"folders": list(self._folders), "items": list(self._items)}


class RecentList:
    """Bounded most-recently-used list of item ids, most recent first."""

    def __init__(
        self,
        flags: FlagStore,
        key: str = DEFAULT_RECENT_KEY,
        limit: int = DEFAULT_RECENT_LIMIT,
    ):
        if limit < 1:
            raise ValueError(f"Recent list limit must be positive (got {limit})")
        self._flags = flags
        self.key = key
        self.limit = limit
        stored = flags.get(key) or []
        self._ids: list[str] = list(dict.fromkeys(stored))[:limit]

    @property
    def ids(self) -> list[str]:
        return list(self._ids)

    def position(self, item_id: str) -> Optional[int]:
        """Index of ``item_id`` in the list, or None if absent."""
        try:
            return self._ids.index(item_id)
        except ValueError:
            return None

    def __contains__(self, item_id: str) -> bool:
        return item_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    async def add(self, item_id: str) -> None:
        """Move ``item_id`` to the front, dropping the oldest entries past the limit."""
        if item_id in self._ids:
            self._ids.remove(item_id)
        self._ids.insert(0, item_id)
        del self._ids[self.limit:]
        await self._persist()

    async def remove(self, item_id: str) -> bool:
        """Remove ``item_id``. Returns False when it was not in the list."""
        if item_id not in self._ids:
            return False
        self._ids.remove(item_id)
        await self._persist()
        return True

    async def clear(self) -> None:
        self._ids.clear()
        await self._persist()

    async def _persist(self) -> None:
        await write_flag(self._flags, self.key, list(self._ids))
