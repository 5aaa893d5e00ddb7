"""Directory tree engine: segment-wise creation and post-order removal."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from universal_storage._errors import RemoteIOError
from universal_storage._path import SEPARATOR, RemotePath

if TYPE_CHECKING:
    from universal_storage._session import RemoteSession

log = logging.getLogger(__name__)


class DirectoryTree:
    """Builds and tears down directory trees one primitive call at a time.

    The session's working directory is shared state: every entry point
    returns to the filesystem root before it touches a path. Partial
    progress is never rolled back.

    :param session: A connected session.
    :param root: The configured storage root.
    """

    def __init__(self, session: RemoteSession, root: RemotePath) -> None:
        self._session = session
        self._root = root

    @property
    def root(self) -> RemotePath:
        return self._root

    def _fail(self, message: str, path: RemotePath | str) -> RemoteIOError:
        return RemoteIOError(message, path=str(path), session=self._session.scheme)

    def reset(self) -> None:
        """Return the session to the filesystem root."""
        if not self._session.change_working_directory(SEPARATOR):
            raise self._fail("Cannot change to the filesystem root", SEPARATOR)

    def ensure_path(self, path: RemotePath) -> int:
        """Make sure every segment of ``path`` exists, creating missing ones in order.

        Leaves the session inside ``path``.

        :returns: Number of directories created.
        :raises RemoteIOError: If a segment cannot be created or entered.
        """
        self.reset()
        created = 0
        walked = RemotePath(SEPARATOR)
        for segment in path.parts:
            walked = walked / segment
            if self._session.change_working_directory(segment):
                continue
            self._session.make_directory(segment)
            created += 1
            log.debug("Created %s", walked)
            if not self._session.change_working_directory(segment):
                raise self._fail(f"Created directory cannot be entered: '{walked}'", walked)
        return created

    def make_folder(self, path: RemotePath) -> bool:
        """Create the single directory ``path``; its parents must already exist.

        :returns: ``False`` if the folder already existed and creation was skipped.
        :raises RemoteIOError: If the directory cannot be created.
        """
        self.reset()
        if self._session.change_working_directory(str(path)):
            log.debug("Folder %s already exists, skipping", path)
            self.reset()
            return False
        self._session.make_directory(str(path))
        log.debug("Created %s", path)
        return True

    def remove_subtree(self, path: RemotePath) -> None:
        """Delete ``path`` and everything beneath it, children before parents.

        :raises RemoteIOError: If ``path`` cannot be listed (including when it
            does not exist) or any entry cannot be removed.
        """
        for entry in self._session.list_entries(str(path)):
            child = path / entry.name
            if entry.is_directory:
                self.remove_subtree(child)
            else:
                self._delete_file(child)
        self._session.remove_directory(str(path))
        log.debug("Removed %s", path)

    def _delete_file(self, path: RemotePath) -> None:
        if not self._session.delete_file(str(path)):
            raise self._fail(f"It couldn't remove this file '{path}'", path)
        log.debug("Deleted %s", path)

    def wipe_root(self) -> None:
        """Delete every child of the root, leaving the root present and empty."""
        self.ensure_path(self._root)
        self.reset()
        for entry in self._session.list_entries(str(self._root)):
            child = self._root / entry.name
            if entry.is_directory:
                self.remove_subtree(child)
            else:
                self._delete_file(child)
