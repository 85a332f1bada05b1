"""Tests for item list composition and the folder move check."""

import pytest

from scenelib.content.compose import (
    check_folder_move,
    compose_items,
    paginate,
    select_candidates,
    sort_items,
)
from scenelib.content.models import Folder, Item, Scope
from scenelib.content.search import parse_query
from scenelib.content.tree import FolderIndex
from scenelib.errors import WouldCreateCycle


def _item(id, folder=None, sort=0, fav=False, name=None):
    return Item(
        id=id, name=name or id, original_id=id, folder_id=folder, sort_key=sort, is_favorite=fav
    )


ITEMS = [
    _item("a", folder="f1", sort=3),
    _item("b", folder="f1", sort=1, fav=True),
    _item("c", folder=None, sort=2),
    _item("d", folder="f2", sort=0, fav=True),
    _item("e", folder=None, sort=1),
]


def _ids(items):
    return [i.id for i in items]


class TestSelectCandidates:
    """Scope selection."""

    def test_favorites(self):
        assert _ids(select_candidates(ITEMS, Scope.favorites())) == ["b", "d"]

    def test_all_items(self):
        assert _ids(select_candidates(ITEMS, Scope.all_items())) == ["a", "b", "c", "d", "e"]

    def test_unsorted(self):
        assert _ids(select_candidates(ITEMS, Scope.unsorted())) == ["c", "e"]

    def test_folder(self):
        assert _ids(select_candidates(ITEMS, Scope.folder("f1"))) == ["a", "b"]

    def test_unknown_folder_is_empty(self):
        assert select_candidates(ITEMS, Scope.folder("nope")) == []

    def test_recent_follows_recency_order(self):
        recent = ["e", "missing", "a", "d"]
        assert _ids(select_candidates(ITEMS, Scope.recent(), recent)) == ["e", "a", "d"]


class TestSortItems:
    def test_favorites_first_then_sort_key(self):
        assert _ids(sort_items(ITEMS, Scope.all_items())) == ["d", "b", "e", "c", "a"]

    def test_recent_keeps_order(self):
        items = [ITEMS[0], ITEMS[3], ITEMS[1]]
        assert _ids(sort_items(items, Scope.recent())) == ["a", "d", "b"]


class TestPaginate:
    """Pagination and page clamping."""

    items = [_item(f"i{n:02d}", sort=n) for n in range(25)]

    def test_pages_of_twelve(self):
        first = paginate(self.items, 1, 12)
        second = paginate(self.items, 2, 12)
        third = paginate(self.items, 3, 12)

        assert first.total_pages == 3
        assert first.items == self.items[0:12]
        assert second.items == self.items[12:24]
        assert third.items == self.items[24:25]
        assert first.has_next and not first.has_previous
        assert not third.has_next

    def test_page_past_end_clamps_to_last(self):
        page = paginate(self.items, 9, 12)
        assert page.page == 3
        assert page.items == self.items[24:25]

    def test_shrinking_result_clamps_to_first_page(self):
        page = paginate(self.items[:3], 5, 12)
        assert page.page == 1
        assert page.total_pages == 1
        assert page.items == self.items[:3]

    def test_empty_list(self):
        page = paginate([], 4, 12)
        assert page.page == 1
        assert page.total_pages == 0
        assert page.items == []

    def test_page_size_must_be_positive(self):
        with pytest.raises(ValueError):
            paginate(self.items, 1, 0)


class TestComposeItems:
    def test_search_applies_before_sort_and_paging(self):
        items = ITEMS + [_item("castle", folder="f1", sort=9, name="Castle Gate")]
        page = compose_items(items, Scope.folder("f1"), parse_query("$castle"), page=1, page_size=12)
        assert _ids(page.items) == ["castle"]
        assert page.total == 1

    def test_recent_scope_does_not_pull_favorites_forward(self):
        page = compose_items(ITEMS, Scope.recent(), parse_query(""), recent_ids=["a", "b"])
        assert _ids(page.items) == ["a", "b"]

    def test_unpaginated_returns_everything(self):
        items = [_item(f"i{n}", sort=n) for n in range(30)]
        page = compose_items(items, Scope.all_items(), parse_query(""), page=2, paginated=False)
        assert page.page == 1
        assert page.total_pages == 1
        assert len(page.items) == 30


class TestFolderMoveCheck:
    """Cycle check for folder reparenting."""

    index = FolderIndex(
        [
            Folder(id="a", name="A", original_id="a"),
            Folder(id="b", name="B", original_id="b", parent_id="a"),
            Folder(id="c", name="C", original_id="c", parent_id="b"),
            Folder(id="d", name="D", original_id="d"),
        ]
    )

    def test_move_under_self_rejected(self):
        with pytest.raises(WouldCreateCycle):
            check_folder_move(self.index, "a", "a")

    def test_move_under_own_child_rejected(self):
        with pytest.raises(WouldCreateCycle):
            check_folder_move(self.index, "a", "b")

    def test_move_under_own_grandchild_rejected(self):
        with pytest.raises(WouldCreateCycle):
            check_folder_move(self.index, "a", "c")

    def test_valid_moves_accepted(self):
        check_folder_move(self.index, "c", "d")
        check_folder_move(self.index, "b", None)
        check_folder_move(self.index, "d", "c")
