"""Key-value flag store used to persist favorites, recents, tags and preferences."""

import copy
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from scenelib.errors import PersistenceFailed

logger = logging.getLogger(__name__)


class FlagStore(ABC):
    """
    Host-provided persistence for small JSON-like values.

    Reads are synchronous and answer from the host's copy; writes are
    asynchronous and must be awaited before the change counts as committed.
    """

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return the stored value for ``key`` or ``default``."""
        pass

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Persist ``value`` under ``key``."""
        pass


class MemoryFlagStore(FlagStore):
    """Flag store kept in a dictionary. Values are copied in and out."""

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self.writes = 0

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)
        self.writes += 1


async def write_flag(flags: FlagStore, key: str, value: Any) -> None:
    """Persist a value, reporting any store failure as PersistenceFailed."""
    try:
        await flags.set(key, value)
    except PersistenceFailed:
        raise
    except Exception as e:
        logger.warning(f"Flag store write failed for {key}: {e}")
        raise PersistenceFailed(key, str(e)) from e
