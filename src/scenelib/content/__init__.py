"""Indexing and query core: sources, tags, favorites, search, tree and item lists."""

from .compose import Page, compose_items
from .favorites import FavoritesStore, RecentList
from .flags import FlagStore, MemoryFlagStore
from .models import Folder, Item, Scope, ScopeKind
from .search import SearchMode, SearchQuery, parse_query
from .sources import PackSource, SourceAdapter, WorldSource
from .tags import TagCatalog
from .tree import TreeNode, build_visible_tree
from .view_state import ViewState

__all__ = [
    "FavoritesStore",
    "FlagStore",
    "Folder",
    "Item",
    "MemoryFlagStore",
    "PackSource",
    "Page",
    "RecentList",
    "Scope",
    "ScopeKind",
    "SearchMode",
    "SearchQuery",
    "SourceAdapter",
    "TagCatalog",
    "TreeNode",
    "ViewState",
    "WorldSource",
    "build_visible_tree",
    "compose_items",
    "parse_query",
]
