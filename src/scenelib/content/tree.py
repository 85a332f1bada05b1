"""Folder tree visibility: favorites propagation, search force-expand and pruning."""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import AbstractSet, Iterable, Iterator, Mapping, Optional

from .models import Folder, Item

logger = logging.getLogger(__name__)

CHEVRON_OPEN = "open"
CHEVRON_CLOSED = "closed"
CHEVRON_HIDDEN = "hidden"


@dataclass(frozen=True)
class NodeVisibility:
    """Decision for a single folder, given the state inherited from its parent."""

    visible: bool
    force_expand: bool = False
    show_children: bool = False
    only_favorites_below: bool = False
    has_favorite_inside: bool = False


HIDDEN = NodeVisibility(visible=False)


@dataclass
class TreeNode:
    """A visible folder, ready to render."""

    folder: Folder
    depth: int
    item_count: int = 0
    is_favorite: bool = False
    is_active: bool = False
    has_favorite_inside: bool = False
    force_expand: bool = False
    show_children: bool = False
    has_children: bool = False
    chevron: str = CHEVRON_HIDDEN
    children: list["TreeNode"] = field(default_factory=list)

    def walk(self) -> Iterator["TreeNode"]:
        """Yield this node and every rendered descendant, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        d = {
            "id": self.folder.id,
            "name": self.folder.name,
            "depth": self.depth,
            "item_count": self.item_count,
            "is_favorite": self.is_favorite,
            "is_active": self.is_active,
            "chevron": self.chevron,
        }
        if self.folder.color:
            d["color"] = self.folder.color
        if self.children:
            d["children"] = [c.to_dict() for c in self.children]
        return d


class FolderIndex:
    """Parent/child lookup over a flat folder list.

    Folders whose parent is missing from the list are treated as roots.
    """

    def __init__(self, folders: Iterable[Folder]):
        self.by_id: dict[str, Folder] = {}
        for folder in folders:
            self.by_id[folder.id] = folder
        self._children: dict[Optional[str], list[Folder]] = {}
        for folder in self.by_id.values():
            parent = folder.parent_id if folder.parent_id in self.by_id else None
            self._children.setdefault(parent, []).append(folder)

    def __contains__(self, folder_id: Optional[str]) -> bool:
        return folder_id in self.by_id

    def get(self, folder_id: Optional[str]) -> Optional[Folder]:
        if folder_id is None:
            return None
        return self.by_id.get(folder_id)

    def children_of(self, parent_id: Optional[str]) -> list[Folder]:
        return list(self._children.get(parent_id, []))

    def has_children(self, folder_id: str) -> bool:
        return bool(self._children.get(folder_id))

    def ancestors(self, folder_id: Optional[str]) -> Iterator[str]:
        """Yield ``folder_id`` and then each ancestor up to the root."""
        seen: set[str] = set()
        current = self.get(folder_id)
        while current is not None and current.id not in seen:
            seen.add(current.id)
            yield current.id
            current = self.get(current.parent_id)


def count_items(folders: Iterable[Folder], items: Iterable[Item]) -> dict[str, int]:
    """
    Item count per folder id.

    A count declared by the source takes precedence; otherwise the items
    whose folder reference resolves to the folder are counted.
    """
    counted = Counter(item.folder_id for item in items if item.folder_id)
    return {
        folder.id: folder.item_count if folder.item_count is not None else counted.get(folder.id, 0)
        for folder in folders
    }


class VisibilityFilter:
    """
    Decides which folders of a tree are shown for one query.

    Args:
        index: Folder lookup of the source being browsed.
        favorite_folders: Ids of favorite folders.
        favorite_item_folders: Ids of folders that directly hold a favorite item.
        expanded: Ids of folders the user expanded.
        search: Folder search term (case-insensitive substring).
    """

    def __init__(
        self,
        index: FolderIndex,
        favorite_folders: AbstractSet[str] = frozenset(),
        favorite_item_folders: AbstractSet[str] = frozenset(),
        expanded: AbstractSet[str] = frozenset(),
        search: str = "",
    ):
        self.index = index
        self.favorite_folders = favorite_folders
        self.favorite_item_folders = favorite_item_folders
        self.expanded = expanded
        self.term = (search or "").strip().casefold()
        self._fav_inside: dict[str, bool] = {}
        self._match_inside: dict[str, bool] = {}

    @property
    def search_active(self) -> bool:
        return bool(self.term)

    def is_favorite(self, folder_id: str) -> bool:
        return folder_id in self.favorite_folders

    def has_favorite_inside(self, folder_id: str) -> bool:
        """True if the folder, or any descendant folder or item, is a favorite."""
        return self._favorite_walk(folder_id, frozenset())[0]

    def _favorite_walk(self, folder_id: str, path: frozenset) -> tuple[bool, bool]:
        # Returns (result, cut). A False reached by stopping at a folder already
        # on the path is only valid for this walk and is not cached.
        if folder_id in self._fav_inside:
            return self._fav_inside[folder_id], False
        if folder_id in path:
            return False, True
        if self.is_favorite(folder_id) or folder_id in self.favorite_item_folders:
            self._fav_inside[folder_id] = True
            return True, False
        path = path | {folder_id}
        cut = False
        for child in self.index.children_of(folder_id):
            found, child_cut = self._favorite_walk(child.id, path)
            if found:
                self._fav_inside[folder_id] = True
                return True, False
            cut = cut or child_cut
        if not cut:
            self._fav_inside[folder_id] = False
        return False, cut

    def name_matches(self, folder: Folder) -> bool:
        return self.term in folder.name.casefold()

    def has_match_inside(self, folder_id: str) -> bool:
        """True if any descendant folder name contains the search term."""
        if not self.term:
            return False
        return self._match_walk(folder_id, frozenset())[0]

    def _match_walk(self, folder_id: str, path: frozenset) -> tuple[bool, bool]:
        if folder_id in self._match_inside:
            return self._match_inside[folder_id], False
        if folder_id in path:
            return False, True
        path = path | {folder_id}
        cut = False
        for child in self.index.children_of(folder_id):
            if self.name_matches(child):
                self._match_inside[folder_id] = True
                return True, False
            found, child_cut = self._match_walk(child.id, path)
            if found:
                self._match_inside[folder_id] = True
                return True, False
            cut = cut or child_cut
        if not cut:
            self._match_inside[folder_id] = False
        return False, cut

    def evaluate(self, folder: Folder, only_favorites: bool) -> NodeVisibility:
        """Decide visibility of one folder under the inherited only-favorites mode."""
        is_fav = self.is_favorite(folder.id)
        has_fav = self.has_favorite_inside(folder.id)
        if only_favorites and not is_fav and not has_fav:
            return HIDDEN

        match_inside = self.has_match_inside(folder.id)
        if self.search_active and not self.name_matches(folder) and not match_inside:
            return HIDDEN

        user_expanded = folder.id in self.expanded
        force_expand = self.search_active and match_inside
        return NodeVisibility(
            visible=True,
            force_expand=force_expand,
            show_children=user_expanded or force_expand or has_fav,
            only_favorites_below=only_favorites
            or (not user_expanded and not force_expand and has_fav),
            has_favorite_inside=has_fav,
        )

    def sorted_children(self, parent_id: Optional[str]) -> list[Folder]:
        """Children with favorite folders first, then by ascending sort key."""
        return sorted(
            self.index.children_of(parent_id),
            key=lambda f: (not self.is_favorite(f.id), f.sort_key),
        )

    def build(
        self,
        parent_id: Optional[str] = None,
        depth: int = 0,
        only_favorites: bool = False,
        item_counts: Optional[Mapping[str, int]] = None,
        active_folder_id: Optional[str] = None,
        _path: frozenset = frozenset(),
    ) -> list[TreeNode]:
        """Recursively build the visible nodes below ``parent_id``."""
        counts = item_counts or {}
        nodes: list[TreeNode] = []
        for folder in self.sorted_children(parent_id):
            if folder.id in _path:
                logger.warning(f"Folder cycle detected at {folder.id}; subtree skipped")
                continue
            decision = self.evaluate(folder, only_favorites)
            if not decision.visible:
                continue

            has_children = self.index.has_children(folder.id)
            if not has_children:
                chevron = CHEVRON_HIDDEN
            elif folder.id in self.expanded or decision.force_expand:
                chevron = CHEVRON_OPEN
            else:
                chevron = CHEVRON_CLOSED

            node = TreeNode(
                folder=folder,
                depth=depth,
                item_count=counts.get(folder.id, 0),
                is_favorite=self.is_favorite(folder.id),
                is_active=folder.id == active_folder_id,
                has_favorite_inside=decision.has_favorite_inside,
                force_expand=decision.force_expand,
                show_children=decision.show_children,
                has_children=has_children,
                chevron=chevron,
            )
            if decision.show_children:
                node.children = self.build(
                    folder.id,
                    depth + 1,
                    decision.only_favorites_below,
                    counts,
                    active_folder_id,
                    _path | {folder.id},
                )
            nodes.append(node)
        return nodes


def build_visible_tree(
    folders: Iterable[Folder],
    items: Iterable[Item] = (),
    favorite_folders: AbstractSet[str] = frozenset(),
    favorite_items: AbstractSet[str] = frozenset(),
    expanded: AbstractSet[str] = frozenset(),
    search: str = "",
    active_folder_id: Optional[str] = None,
) -> list[TreeNode]:
    """
    Compute the visible folder tree for one query.

    Args:
        folders: Every folder of the source being browsed.
        items: Every item of that source (for counts and favorite items).
        favorite_folders: Ids of favorite folders.
        favorite_items: Ids of favorite items.
        expanded: Ids of folders the user expanded.
        search: Folder search term.
        active_folder_id: Folder selected as scope, flagged on its node.

    Returns:
        Root-level visible nodes with their rendered subtrees.
    """
    folders = list(folders)
    items = list(items)
    index = FolderIndex(folders)
    favorite_item_folders = {
        item.folder_id for item in items if item.folder_id and item.id in favorite_items
    }
    vis = VisibilityFilter(
        index,
        favorite_folders=favorite_folders,
        favorite_item_folders=favorite_item_folders,
        expanded=expanded,
        search=search,
    )
    return vis.build(
        item_counts=count_items(folders, items),
        active_folder_id=active_folder_id,
    )
