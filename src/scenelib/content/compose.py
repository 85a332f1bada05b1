"""Item list composition: scope selection, search, ordering and pagination."""

import math
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from scenelib.errors import WouldCreateCycle

from .models import Item, Scope, ScopeKind
from .search import SearchQuery
from .tree import FolderIndex

DEFAULT_PAGE_SIZE = 12


@dataclass
class Page:
    """One page of the composed item list."""

    items: list[Item]
    page: int  # Current page after clamping (1-based)
    total_pages: int
    total: int  # Number of items after filtering, across all pages
    page_size: int
    errors: list = field(default_factory=list)  # SourceUnavailable conditions

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "items": [item.to_dict() for item in self.items],
            "page": self.page,
            "total_pages": self.total_pages,
            "total": self.total,
            "page_size": self.page_size,
            "errors": [str(e) for e in self.errors],
        }


def select_candidates(
    items: Iterable[Item],
    scope: Scope,
    recent_ids: Sequence[str] = (),
) -> list[Item]:
    """Pick the items a scope covers. Recent items come in recency order."""
    if scope.kind is ScopeKind.FAVORITES:
        return [item for item in items if item.is_favorite]
    if scope.kind is ScopeKind.ALL_ITEMS:
        return list(items)
    if scope.kind is ScopeKind.UNSORTED:
        return [item for item in items if item.folder_id is None]
    if scope.kind is ScopeKind.RECENT:
        by_id = {item.id: item for item in items}
        return [by_id[item_id] for item_id in recent_ids if item_id in by_id]
    return [item for item in items if item.folder_id == scope.folder_id]


def sort_items(items: Iterable[Item], scope: Scope) -> list[Item]:
    """Favorites first, then ascending sort key. Recent order is left untouched."""
    if scope.kind is ScopeKind.RECENT:
        return list(items)
    return sorted(items, key=lambda item: (not item.is_favorite, item.sort_key))


def paginate(items: Sequence[Item], page: int, page_size: int) -> Page:
    """
    Slice one page out of ``items``.

    A page past the end is clamped to the last page, and never below 1.
    """
    if page_size < 1:
        raise ValueError(f"Page size must be positive (got {page_size})")
    total = len(items)
    total_pages = math.ceil(total / page_size)
    page = max(1, min(page, total_pages))
    start = (page - 1) * page_size
    return Page(
        items=list(items[start:start + page_size]),
        page=page,
        total_pages=total_pages,
        total=total,
        page_size=page_size,
    )


def compose_items(
    items: Iterable[Item],
    scope: Scope,
    query: SearchQuery,
    recent_ids: Sequence[str] = (),
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    paginated: bool = True,
) -> Page:
    """
    Produce the ordered, paged item list for a scope and search.

    Items must already carry their ``is_favorite`` flag and tags. With
    ``paginated`` off the whole list is returned as a single page.
    """
    candidates = select_candidates(items, scope, recent_ids)
    matched = query.filter(candidates)
    ordered = sort_items(matched, scope)
    if not paginated:
        return Page(
            items=ordered,
            page=1,
            total_pages=1 if ordered else 0,
            total=len(ordered),
            page_size=max(len(ordered), 1),
        )
    return paginate(ordered, page, page_size)


def check_folder_move(index: FolderIndex, folder_id: str, new_parent_id: Optional[str]) -> None:
    """
    Reject a folder move that would put a folder inside itself.

    Raises:
        WouldCreateCycle: If ``folder_id`` is ``new_parent_id`` or one of its
            ancestors.
    """
    if new_parent_id is None:
        return
    if new_parent_id == folder_id or folder_id in index.ancestors(new_parent_id):
        raise WouldCreateCycle(folder_id, new_parent_id)
