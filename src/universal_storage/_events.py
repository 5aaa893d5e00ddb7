"""Listener hooks and the synchronous, ordered event dispatcher."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from pathlib import Path

    from universal_storage._errors import StorageError
    from universal_storage._models import StorageEvent

log = logging.getLogger(__name__)


class StorageListener:
    """Base class for storage listeners. Every hook is a no-op.

    Subclass and override the hooks you care about. Any object works as a
    listener; hooks it does not define are skipped.
    """

    def before_store_file(self, file: Path, folder: Optional[str]) -> None:
        """Called before a local file is uploaded."""

    def before_remove_file(self, path: str) -> None:
        """Called before a remote file is deleted."""

    def before_create_folder(self, path: str) -> None:
        """Called before a folder is created."""

    def before_remove_folder(self, path: str) -> None:
        """Called before a folder subtree is deleted."""

    def on_file_stored(self, event: StorageEvent) -> None:
        """Called after a file was uploaded."""

    def on_folder_created(self, event: StorageEvent) -> None:
        """Called after a folder was created."""

    def on_file_removed(self, path: str) -> None:
        """Called after a file was deleted, with the logical path."""

    def on_folder_removed(self, path: str) -> None:
        """Called after a folder subtree was deleted, with the logical path."""

    def on_error(self, error: StorageError) -> None:
        """Called when any storage operation fails, before the error is raised."""


class EventDispatcher:
    """Fans notifications out to listeners in registration order.

    A listener that raises is logged and skipped; it cannot stop the others
    from being notified or change the outcome of the operation.
    """

    def __init__(self) -> None:
        self._listeners: list[Any] = []

    def __len__(self) -> int:
        return len(self._listeners)

    def __repr__(self) -> str:
        return f"EventDispatcher(listeners={len(self._listeners)})"

    @property
    def listeners(self) -> tuple[Any, ...]:
        return tuple(self._listeners)

    def register(self, listener: Any) -> None:
        """Add ``listener``. Registering the same object twice has no effect."""
        if any(existing is listener for existing in self._listeners):
            return
        self._listeners.append(listener)

    def unregister(self, listener: Any) -> bool:
        """Remove ``listener``. Returns ``False`` if it was not registered."""
        for index, existing in enumerate(self._listeners):
            if existing is listener:
                del self._listeners[index]
                return True
        return False

    def clear(self) -> None:
        self._listeners.clear()

    def fire(self, hook: str, *args: Any) -> None:
        """Invoke ``hook(*args)`` on every listener that defines it."""
        for listener in list(self._listeners):
            callback = getattr(listener, hook, None)
            if not callable(callback):
                continue
            try:
                callback(*args)
            except Exception:
                log.warning("Listener %r failed in %s; ignoring", listener, hook, exc_info=True)

    def error(self, error: StorageError) -> None:
        self.fire("on_error", error)
