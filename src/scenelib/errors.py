"""Error conditions raised by the scene library core."""

from typing import Optional


class LibraryError(Exception):
    """Base class for every error the library raises on purpose."""


class SourceUnavailable(LibraryError):
    """A content source (usually a pack index) could not be read."""

    def __init__(self, source_id: str, reason: str = ""):
        self.source_id = source_id
        self.reason = reason
        message = f"Source '{source_id}' is unavailable"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class WouldCreateCycle(LibraryError):
    """Moving a folder under the requested parent would make it its own ancestor."""

    def __init__(self, folder_id: str, new_parent_id: Optional[str]):
        self.folder_id = folder_id
        self.new_parent_id = new_parent_id
        super().__init__(
            f"Cannot move folder '{folder_id}' under '{new_parent_id}': "
            "a folder cannot be nested inside itself"
        )


class PersistenceFailed(LibraryError):
    """The flag store rejected a write. The in-memory state is kept."""

    def __init__(self, key: str, reason: str = ""):
        self.key = key
        self.reason = reason
        message = f"Failed to persist '{key}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class NotFound(LibraryError):
    """A mutation referenced a folder or item that does not exist."""

    def __init__(self, kind: str, id: str):
        self.kind = kind
        self.id = id
        super().__init__(f"Unknown {kind}: {id!r}")
