"""Change notifications from sources to the caches that depend on them."""

import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Union

logger = logging.getLogger(__name__)


class ChangeKind(str, Enum):
    FOLDER_CREATED = "folder_created"
    FOLDER_UPDATED = "folder_updated"
    FOLDER_DELETED = "folder_deleted"
    ITEM_CREATED = "item_created"
    ITEM_UPDATED = "item_updated"
    ITEM_DELETED = "item_deleted"
    INDEX_CHANGED = "index_changed"  # A pack index must be fetched again


@dataclass(frozen=True)
class SourceChanged:
    kind: ChangeKind
    source_id: str
    affected_ids: tuple[str, ...] = ()


Handler = Callable[[SourceChanged], Union[None, Awaitable[Any]]]


class EventBus:
    """Synchronous-order publisher; async handlers are awaited one after another."""

    def __init__(self) -> None:
        self._handlers: list[Handler] = []

    def subscribe(self, handler: Handler) -> Callable[[], None]:
        """Register a handler. Returns a function that unsubscribes it."""
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    async def publish(self, event: SourceChanged) -> None:
        logger.debug(f"{event.kind.value} in {event.source_id}: {len(event.affected_ids)} ids")
        for handler in list(self._handlers):
            result = handler(event)
            if inspect.isawaitable(result):
                await result
