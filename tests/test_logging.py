"""Tests for import and logging behavior."""

import asyncio
import importlib
import logging
import sys

import pytest

from scenelib.content.sources import PackSource
from scenelib.errors import SourceUnavailable, WouldCreateCycle


def test_importing_scenelib_does_not_configure_global_logging(monkeypatch):
    calls = {"count": 0}

    def fake_basic_config(*args, **kwargs):
        calls["count"] += 1

    monkeypatch.setattr(logging, "basicConfig", fake_basic_config)

    for module_name in [name for name in sys.modules if name.startswith("scenelib")]:
        monkeypatch.delitem(sys.modules, module_name)

    importlib.import_module("scenelib")
    importlib.import_module("scenelib.display")
    assert calls["count"] == 0


def test_pack_failure_is_logged(caplog):
    async def fetch():
        raise ConnectionError("offline")

    with caplog.at_level(logging.WARNING, logger="scenelib.content.sources"):
        with pytest.raises(SourceUnavailable):
            asyncio.run(PackSource("dead", fetch).list_items())

    assert "dead" in caplog.text


def test_rejected_folder_move_is_logged(library, caplog):
    with caplog.at_level(logging.WARNING, logger="scenelib.library"):
        with pytest.raises(WouldCreateCycle):
            asyncio.run(library.move_folder("world:dungeons", "world:crypts"))

    assert "Rejected move of world:dungeons" in caplog.text
