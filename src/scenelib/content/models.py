"""Plain records mirrored from content sources."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

WORLD_SOURCE_ID = "world"
ID_SEPARATOR = ":"
DEFAULT_PLACEHOLDER_IMAGE = "icons/svg/mystery-man.svg"

FOLDER = "folder"
ITEM = "item"
ENTITY_KINDS = (FOLDER, ITEM)


def make_id(source_id: str, original_id: str) -> str:
    """Build the composite id that keeps entities of different sources apart."""
    return f"{source_id}{ID_SEPARATOR}{original_id}"


@dataclass
class Folder:
    """A folder of a content source."""

    id: str  # Composite id (source id + original id)
    name: str
    original_id: str
    source_id: str = WORLD_SOURCE_ID
    parent_id: Optional[str] = None  # Composite id of the parent, None for roots
    color: Optional[str] = None
    sort_key: int = 0
    item_count: Optional[int] = None  # Aggregate declared by the source, if any

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        d = {
            "id": self.id,
            "name": self.name,
            "original_id": self.original_id,
            "source_id": self.source_id,
            "parent_id": self.parent_id,
            "sort_key": self.sort_key,
        }
        if self.color:
            d["color"] = self.color
        if self.item_count is not None:
            d["item_count"] = self.item_count
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "Folder":
        """Deserialize from dictionary."""
        return cls(
            id=data["id"],
            name=data["name"],
            original_id=data.get("original_id", data["id"]),
            source_id=data.get("source_id", WORLD_SOURCE_ID),
            parent_id=data.get("parent_id"),
            color=data.get("color"),
            sort_key=data.get("sort_key", 0),
            item_count=data.get("item_count"),
        )


@dataclass
class Item:
    """A scene of a content source, with the fields the browser displays."""

    id: str  # Composite id (source id + original id)
    name: str
    original_id: str
    source_id: str = WORLD_SOURCE_ID
    folder_id: Optional[str] = None  # None means "unsorted"
    tags: list[str] = field(default_factory=list)
    sort_key: int = 0
    thumbnail: Optional[str] = None
    background: Optional[str] = None
    image: str = DEFAULT_PLACEHOLDER_IMAGE  # Resolved display image
    active: bool = False
    navigation: bool = False
    has_grid: bool = False
    has_vision: bool = False
    is_favorite: bool = False  # Derived from the favorites store per query

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        d = {
            "id": self.id,
            "name": self.name,
            "original_id": self.original_id,
            "source_id": self.source_id,
            "folder_id": self.folder_id,
            "sort_key": self.sort_key,
            "image": self.image,
            "is_favorite": self.is_favorite,
        }
        if self.tags:
            d["tags"] = list(self.tags)
        if self.thumbnail:
            d["thumbnail"] = self.thumbnail
        if self.background:
            d["background"] = self.background
        for flag in ("active", "navigation", "has_grid", "has_vision"):
            if getattr(self, flag):
                d[flag] = True
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "Item":
        """Deserialize from dictionary."""
        return cls(
            id=data["id"],
            name=data["name"],
            original_id=data.get("original_id", data["id"]),
            source_id=data.get("source_id", WORLD_SOURCE_ID),
            folder_id=data.get("folder_id"),
            tags=data.get("tags", []),
            sort_key=data.get("sort_key", 0),
            thumbnail=data.get("thumbnail"),
            background=data.get("background"),
            image=data.get("image", DEFAULT_PLACEHOLDER_IMAGE),
            active=data.get("active", False),
            navigation=data.get("navigation", False),
            has_grid=data.get("has_grid", False),
            has_vision=data.get("has_vision", False),
            is_favorite=data.get("is_favorite", False),
        )


def resolve_image(
    item: Item,
    use_full_image: bool = False,
    placeholder: str = DEFAULT_PLACEHOLDER_IMAGE,
) -> str:
    """
    Pick the image to display for an item.

    The thumbnail is preferred unless ``use_full_image`` is set. A thumbnail
    that is missing or is itself the placeholder falls back to the background,
    and the placeholder is used when neither is available.
    """
    if use_full_image:
        image = item.background
    else:
        image = item.thumbnail
        if not image or placeholder in image:
            image = item.background
    return image or placeholder


class ScopeKind(str, Enum):
    FAVORITES = "favorites"
    ALL_ITEMS = "all"
    UNSORTED = "unsorted"
    RECENT = "recent"
    FOLDER = "folder"


SYSTEM_SCOPE_KINDS = frozenset(
    {ScopeKind.FAVORITES, ScopeKind.ALL_ITEMS, ScopeKind.UNSORTED, ScopeKind.RECENT}
)


@dataclass(frozen=True)
class Scope:
    """The selector that decides which items are candidates for display."""

    kind: ScopeKind
    folder_id: Optional[str] = None

    @classmethod
    def favorites(cls) -> "Scope":
        return cls(ScopeKind.FAVORITES)

    @classmethod
    def all_items(cls) -> "Scope":
        return cls(ScopeKind.ALL_ITEMS)

    @classmethod
    def unsorted(cls) -> "Scope":
        return cls(ScopeKind.UNSORTED)

    @classmethod
    def recent(cls) -> "Scope":
        return cls(ScopeKind.RECENT)

    @classmethod
    def folder(cls, folder_id: str) -> "Scope":
        if not folder_id:
            raise ValueError("A folder scope needs a folder id")
        return cls(ScopeKind.FOLDER, folder_id)

    @classmethod
    def parse(cls, value: str) -> "Scope":
        """
        Parse a scope selector.

        ``favorites``, ``all``, ``unsorted`` (or ``root``) and ``recent`` select
        the system scopes; anything else is taken as a folder id.
        """
        key = value.strip().lower()
        if key == "root":
            return cls.unsorted()
        for kind in SYSTEM_SCOPE_KINDS:
            if key == kind.value:
                return cls(kind)
        return cls.folder(value.strip())

    @property
    def is_system(self) -> bool:
        """True for the scopes that do not correspond to a real folder."""
        return self.kind in SYSTEM_SCOPE_KINDS

    def __str__(self) -> str:
        if self.kind is ScopeKind.FOLDER:
            return f"folder({self.folder_id})"
        return self.kind.value
