"""Immutable browsing state passed into the query functions."""

from dataclasses import dataclass, field, replace
from typing import Optional

from .models import WORLD_SOURCE_ID, Scope
from .search import SearchQuery, parse_query


@dataclass(frozen=True)
class ViewState:
    """What the user is looking at. Transitions return a new state."""

    scope: Scope = field(default_factory=Scope.favorites)
    source_id: str = WORLD_SOURCE_ID
    folder_search: str = ""
    item_search: str = ""
    expanded: frozenset[str] = frozenset()
    page: int = 1
    use_full_image: Optional[bool] = None  # None follows the library setting

    @property
    def query(self) -> SearchQuery:
        return parse_query(self.item_search)

    @property
    def is_system_scope(self) -> bool:
        """Folder edit actions (rename, recolor, delete) do not apply to system scopes."""
        return self.scope.is_system

    def select_scope(self, scope: Scope) -> "ViewState":
        """
        Switch scope. Selecting a folder also expands it; the item search is
        cleared and the page reset.
        """
        expanded = self.expanded
        if scope.folder_id is not None:
            expanded = expanded | {scope.folder_id}
        return replace(self, scope=scope, expanded=expanded, item_search="", page=1)

    def select_source(self, source_id: str) -> "ViewState":
        """Browse another source, starting from all of its items."""
        return replace(
            self,
            source_id=source_id,
            scope=Scope.all_items(),
            expanded=frozenset(),
            folder_search="",
            item_search="",
            page=1,
        )

    def toggle_expanded(self, folder_id: str) -> "ViewState":
        if folder_id in self.expanded:
            return replace(self, expanded=self.expanded - {folder_id})
        return replace(self, expanded=self.expanded | {folder_id})

    def with_folder_search(self, term: str) -> "ViewState":
        return replace(self, folder_search=term)

    def with_item_search(self, term: str) -> "ViewState":
        return replace(self, item_search=term, page=1)

    def with_page(self, page: int) -> "ViewState":
        return replace(self, page=max(1, page))

    def toggle_full_image(self, default: bool = False) -> "ViewState":
        """Flip the image choice. An unset choice is taken as ``default``."""
        current = default if self.use_full_image is None else self.use_full_image
        return replace(self, use_full_image=not current)
