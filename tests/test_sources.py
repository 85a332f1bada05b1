"""Tests for the source adapters."""

import asyncio

import pytest

from scenelib.content.models import DEFAULT_PLACEHOLDER_IMAGE, Item, resolve_image
from scenelib.content.sources import (
    PackSource,
    WorldSource,
    folder_from_record,
    item_from_record,
)
from scenelib.errors import SourceUnavailable


class _Host:
    def __init__(self, folders=(), scenes=()):
        self._folders = list(folders)
        self._scenes = list(scenes)

    def folders(self):
        return self._folders

    def scenes(self):
        return self._scenes


class TestRecordConversion:
    """Tests for folder_from_record and item_from_record."""

    def test_folder_ids_are_namespaced(self):
        folder = folder_from_record({"_id": "f2", "name": "Towers", "folder": "f1"}, "pack")
        assert folder.id == "pack:f2"
        assert folder.original_id == "f2"
        assert folder.parent_id == "pack:f1"
        assert folder.item_count is None

    def test_nested_parent_reference(self):
        folder = folder_from_record({"id": "c", "name": "C", "folder": {"id": "p"}}, "world")
        assert folder.parent_id == "world:p"

    def test_declared_count_kept(self):
        folder = folder_from_record({"id": "f", "name": "F", "count": "7"}, "pack")
        assert folder.item_count == 7

    def test_item_display_fields(self):
        item = item_from_record(SAMPLE_TAVERN, "world")
        assert item.id == "world:s5"
        assert item.folder_id == "world:capital"
        assert item.has_grid and item.has_vision
        assert not item.active

    def test_item_without_folder_is_unsorted(self):
        assert item_from_record({"id": "x", "name": "X", "folder": ""}, "world").folder_id is None

    def test_record_without_id_rejected(self):
        with pytest.raises(ValueError):
            item_from_record({"name": "nameless"}, "world")


SAMPLE_TAVERN = {
    "id": "s5",
    "name": "Tavern",
    "folder": "capital",
    "grid": {"type": 1},
    "tokenVision": True,
}


class TestResolveImage:
    def _item(self, thumb=None, background=None):
        return Item(id="w:i", name="i", original_id="i", thumbnail=thumb, background=background)

    def test_prefers_thumbnail(self):
        assert resolve_image(self._item("t.webp", "b.webp")) == "t.webp"

    def test_full_image_uses_background(self):
        assert resolve_image(self._item("t.webp", "b.webp"), use_full_image=True) == "b.webp"

    def test_placeholder_thumbnail_falls_back_to_background(self):
        item = self._item(DEFAULT_PLACEHOLDER_IMAGE, "b.webp")
        assert resolve_image(item) == "b.webp"

    def test_placeholder_when_nothing_available(self):
        assert resolve_image(self._item()) == DEFAULT_PLACEHOLDER_IMAGE
        assert resolve_image(self._item("t.webp"), use_full_image=True) == DEFAULT_PLACEHOLDER_IMAGE


class TestWorldSource:
    """Tests for WorldSource."""

    def test_reads_current_host_state(self, host, world):
        items = asyncio.run(world.list_items())
        assert len(items) == 6

        host.delete_scene("s6")
        assert "world:s6" not in [i.id for i in asyncio.run(world.list_items())]
        assert "world:s6" not in world.item_ids()

    def test_items_of_one_folder(self, world):
        items = asyncio.run(world.list_items("world:capital"))
        assert sorted(i.name for i in items) == ["Castle Gate", "Tavern"]

    def test_other_folder_types_skipped(self):
        host = _Host(
            folders=[
                {"id": "a", "name": "Scenes", "type": "Scene"},
                {"id": "b", "name": "Actors", "type": "Actor"},
            ]
        )
        folders = asyncio.run(WorldSource(host).list_folders())
        assert [f.id for f in folders] == ["world:a"]

    def test_owns(self, world):
        assert world.owns("world:s1")
        assert not world.owns("worlds:s1")
        assert not world.owns("maps-pack:s1")


class TestPackSource:
    """Tests for PackSource."""

    def test_ids_do_not_collide_with_world(self, pack, world):
        pack_ids = {i.id for i in asyncio.run(pack.list_items())}
        world_ids = {i.id for i in asyncio.run(world.list_items())}
        assert pack_ids == {"maps-pack:s1", "maps-pack:s2"}
        assert not pack_ids & world_ids

    def test_folders_from_index(self, pack):
        folders = asyncio.run(pack.list_folders())
        assert [(f.id, f.parent_id, f.item_count) for f in folders] == [
            ("maps-pack:p1", None, 40),
            ("maps-pack:p2", "maps-pack:p1", None),
        ]

    def test_placeholder_folders_without_metadata(self):
        async def fetch():
            return {
                "items": [
                    {"_id": "a", "name": "A", "folder": "zz"},
                    {"_id": "b", "name": "B", "folder": "yy"},
                    {"_id": "c", "name": "C", "folder": "zz"},
                    {"_id": "d", "name": "D"},
                ]
            }

        folders = asyncio.run(PackSource("p", fetch).list_folders())
        assert [(f.id, f.name, f.sort_key) for f in folders] == [
            ("p:zz", "Folder 1", 1),
            ("p:yy", "Folder 2", 2),
        ]
        assert folders[0].original_id == "zz"

    def test_index_fetched_once_until_invalidated(self, pack_index):
        calls = []

        async def fetch():
            calls.append(1)
            return pack_index

        pack = PackSource("p", fetch)

        async def scenario():
            await asyncio.gather(pack.list_items(), pack.list_folders(), pack.list_items())
            assert len(calls) == 1
            pack.invalidate()
            assert not pack.is_loaded
            await pack.list_items()

        asyncio.run(scenario())
        assert len(calls) == 2

    def test_fetch_failure_raises_source_unavailable(self):
        async def fetch():
            raise ConnectionError("pack server down")

        pack = PackSource("broken", fetch)
        with pytest.raises(SourceUnavailable) as exc_info:
            asyncio.run(pack.list_items())
        assert exc_info.value.source_id == "broken"
        assert not pack.is_loaded

    def test_malformed_index_raises_source_unavailable(self):
        async def fetch():
            return ["not", "a", "mapping"]

        with pytest.raises(SourceUnavailable):
            asyncio.run(PackSource("bad", fetch).list_folders())

    @pytest.mark.parametrize(
        "index",
        [
            {"items": [{"_id": "ok", "name": "Fine"}, {"name": "no id"}]},
            {"items": [{"_id": "x", "name": "X", "sort": "abc"}]},
            {"folders": [{"_id": "f", "name": "F", "count": "many"}], "items": []},
            {"items": "not a list"},
            {"items": 42},
        ],
    )
    def test_malformed_records_raise_source_unavailable(self, index):
        async def fetch():
            return index

        pack = PackSource("bad", fetch)
        with pytest.raises(SourceUnavailable) as exc_info:
            asyncio.run(pack.list_items())
        assert "malformed index" in str(exc_info.value)
        assert not pack.is_loaded

    def test_world_id_reserved(self):
        async def fetch():
            return {}

        with pytest.raises(ValueError):
            PackSource("world", fetch)
