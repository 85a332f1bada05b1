"""Shared fakes for the scene library tests."""

import pytest

from scenelib.config import LibrarySettings
from scenelib.content.flags import FlagStore, MemoryFlagStore
from scenelib.content.sources import PackSource, WorldSource
from scenelib.library import SceneLibrary


class FakeHost:
    """Host collection holding plain folder and scene records."""

    def __init__(self, folders=None, scenes=None):
        self.folder_records = [dict(f) for f in folders or []]
        self.scene_records = [dict(s) for s in scenes or []]

    def folders(self):
        return [dict(f) for f in self.folder_records]

    def scenes(self):
        return [dict(s) for s in self.scene_records]

    def delete_scene(self, scene_id):
        self.scene_records = [s for s in self.scene_records if s["id"] != scene_id]


class RecordingMutator:
    """Mutator that applies changes to a FakeHost and records every call."""

    def __init__(self, host):
        self.host = host
        self.calls = []
        self._next_id = 0

    async def move_item(self, item_id, folder_id):
        self.calls.append(("move_item", item_id, folder_id))
        for record in self.host.scene_records:
            if record["id"] == item_id:
                record["folder"] = folder_id

    async def move_folder(self, folder_id, parent_id):
        self.calls.append(("move_folder", folder_id, parent_id))
        for record in self.host.folder_records:
            if record["id"] == folder_id:
                record["folder"] = parent_id

    async def import_item(self, source_id, item_id, folder_id):
        self.calls.append(("import_item", source_id, item_id, folder_id))
        self._next_id += 1
        new_id = f"imported{self._next_id}"
        self.host.scene_records.append({"id": new_id, "name": f"Copy of {item_id}", "folder": folder_id})
        return new_id


class FailingFlagStore(FlagStore):
    """Flag store whose writes always fail."""

    def __init__(self, initial=None):
        self._inner = MemoryFlagStore(initial)

    def get(self, key, default=None):
        return self._inner.get(key, default)

    async def set(self, key, value):
        raise OSError("disk full")


SAMPLE_FOLDERS = [
    {"id": "dungeons", "name": "Dungeons", "sort": 1},
    {"id": "crypts", "name": "Crypts", "folder": "dungeons", "sort": 1},
    {"id": "deep", "name": "Deep Crypts", "folder": "crypts", "sort": 1},
    {"id": "caves", "name": "Caves", "folder": "dungeons", "sort": 2},
    {"id": "cities", "name": "Cities", "sort": 2, "color": "#3366ff"},
    {"id": "capital", "name": "Capital", "folder": "cities", "sort": 1},
    {"id": "wilds", "name": "Wilderness", "sort": 3},
]

SAMPLE_SCENES = [
    {"id": "s1", "name": "Castle Gate", "folder": "capital", "sort": 3, "thumb": "thumbs/s1.webp"},
    {"id": "s2", "name": "Dragon Lair", "folder": "caves", "sort": 1, "background": {"src": "maps/s2.webp"}},
    {"id": "s3", "name": "Old Castle Crypt", "folder": "crypts", "sort": 2},
    {"id": "s4", "name": "Forest Road", "folder": None, "sort": 5, "active": True, "navigation": True},
    {"id": "s5", "name": "Tavern", "folder": "capital", "sort": 1, "grid": {"type": 1}, "tokenVision": True},
    {"id": "s6", "name": "Bone Pit", "folder": "deep", "sort": 1},
]


@pytest.fixture
def settings():
    return LibrarySettings()


@pytest.fixture
def host():
    return FakeHost(SAMPLE_FOLDERS, SAMPLE_SCENES)


@pytest.fixture
def flags():
    return MemoryFlagStore()


@pytest.fixture
def failing_flags():
    return FailingFlagStore()


@pytest.fixture
def mutator(host):
    return RecordingMutator(host)


@pytest.fixture
def world(host):
    return WorldSource(host)


@pytest.fixture
def pack_index():
    return {
        "folders": [
            {"_id": "p1", "name": "Ruins", "count": 40},
            {"_id": "p2", "name": "Towers", "folder": "p1"},
        ],
        "items": [
            {"_id": "s1", "name": "Sunken Ruin", "folder": "p1", "tags": ["Water"]},
            {"_id": "s2", "name": "Wizard Tower", "folder": "p2", "tags": ["arcane", "tower"]},
        ],
    }


@pytest.fixture
def pack(pack_index):
    async def fetch():
        return pack_index

    return PackSource("maps-pack", fetch, label="Maps Pack")


@pytest.fixture
def library(world, flags, mutator, pack, settings):
    return SceneLibrary(world, flags, mutator=mutator, packs=[pack], settings=settings)
