"""
scenelib - indexing and query core of a hierarchical scene library browser.

Usage:
    library = SceneLibrary(WorldSource(host), flags, mutator, packs=[...])
    tree = await library.get_visible_tree(view)
    page = await library.get_visible_items(view)
"""

__version__ = "0.1.0"

from .library import SceneLibrary

__all__ = ["SceneLibrary", "__version__"]
