"""UniversalStorage: the primary user-facing abstraction."""

from __future__ import annotations

import logging
import shutil
import tempfile
from collections.abc import Mapping
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, BinaryIO, Optional, Union

from universal_storage._config import StorageSettings
from universal_storage._errors import InvalidOperation, InvalidPath, RemoteIOError, StorageError
from universal_storage._events import EventDispatcher
from universal_storage._models import StorageEvent
from universal_storage._path import SEPARATOR, RemotePath, resolve, validate_path
from universal_storage._registry import create_session
from universal_storage._transfer import TransferEngine
from universal_storage._tree import DirectoryTree

if TYPE_CHECKING:
    from collections.abc import Iterator
    from types import TracebackType

    from universal_storage._session import RemoteSession

log = logging.getLogger(__name__)


class UniversalStorage:
    """A remote folder tree scoped to the configured root.

    The session is connected on construction and owned by the storage until
    :meth:`close`. Every operation notifies registered listeners; failures
    are reported to ``on_error`` and then raised as :class:`StorageError`.
    One caller at a time: the session's working directory is shared state.

    :param settings: Connection and staging settings.
    :param session: An unconnected session to use instead of one created
        from ``settings.protocol``.
    :raises RemoteIOError: If the session cannot connect or log in.
    """

    def __init__(self, settings: StorageSettings, session: Optional[RemoteSession] = None) -> None:
        settings.validate()
        self._settings = settings
        self._root = RemotePath(settings.root)
        self._session = session if session is not None else create_session(settings)
        self._events = EventDispatcher()
        self._closed = False

        self._open_session()
        self._owns_tmp = not settings.tmp
        tmp_dir = Path(tempfile.mkdtemp(prefix="universal-storage-")) if self._owns_tmp else Path(settings.tmp)
        self._tree = DirectoryTree(self._session, self._root)
        self._transfer = TransferEngine(self._session, self._tree, host=settings.host, tmp_dir=tmp_dir)

    def _open_session(self) -> None:
        s = self._settings
        try:
            self._session.connect(s.host, s.port)
            self._session.authenticate(s.username, s.password)
            self._session.set_passive_mode(s.passive)
            self._session.set_binary_mode()
        except StorageError:
            self._session.disconnect()
            raise
        except Exception as exc:
            self._session.disconnect()
            raise RemoteIOError(str(exc) or type(exc).__name__, session=self._session.scheme) from None

    def __repr__(self) -> str:
        return f"UniversalStorage(session={self._session.scheme!r}, host={self._settings.host!r}, root={str(self._root)!r})"

    @property
    def root(self) -> RemotePath:
        return self._root

    @property
    def tmp_dir(self) -> Path:
        """Local directory that receives retrieved files."""
        return self._transfer.tmp_dir

    @property
    def closed(self) -> bool:
        return self._closed

    # region: lifecycle
    def close(self) -> None:
        """Disconnect the session and drop all listeners. Safe to call twice.

        A temp directory created by the storage itself is deleted; one given
        in the settings is left in place.
        """
        if self._closed:
            return
        self._closed = True
        self._events.clear()
        self._session.disconnect()
        if self._owns_tmp:
            shutil.rmtree(self._transfer.tmp_dir, ignore_errors=True)
        log.info("Storage on %s closed", self._settings.host)

    def __enter__(self) -> UniversalStorage:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    # endregion

    # region: listeners
    def register_listener(self, listener: Any) -> None:
        """Register a listener; see :class:`~universal_storage.StorageListener` for hooks."""
        with self._operation():
            self._events.register(listener)

    def unregister_listener(self, listener: Any) -> bool:
        return self._events.unregister(listener)

    # endregion

    @contextmanager
    def _operation(self) -> Iterator[None]:
        """Reject calls after close, and report any failure to ``on_error`` before raising."""
        try:
            if self._closed:
                raise InvalidOperation("Storage is closed")
            yield
        except StorageError as exc:
            self._events.error(exc)
            raise
        except Exception as exc:
            error = RemoteIOError(str(exc) or type(exc).__name__, session=self._session.scheme)
            self._events.error(error)
            raise error from None

    # region: files
    def store_file(self, file: Union[str, Path], folder: Optional[str] = None) -> StorageEvent:
        """Upload a local file into ``folder``, creating missing folders on the way.

        The file keeps its base name. With ``folder=None`` it lands directly
        under the root; an existing remote file is replaced. For example, with
        root ``/storage`` the file ``/var/www/index.html`` and folder
        ``myfolder`` end up at ``/storage/myfolder/index.html``.

        :param file: Local file, as a :class:`~pathlib.Path` or a path string.
        :param folder: Root-relative target folder.
        :raises InvalidOperation: If ``file`` is a directory.
        """
        with self._operation():
            if not isinstance(file, Path):
                file = Path(validate_path(file))
            if folder is not None:
                validate_path(folder)
            self._events.fire("before_store_file", file, folder)
            event = self._transfer.store(file, folder)
            self._events.fire("on_file_stored", event)
            return event

    def remove_file(self, path: str) -> None:
        """Delete the remote file at the root-relative ``path``.

        :raises RemoteIOError: If the file does not exist or cannot be deleted.
        """
        with self._operation():
            validate_path(path)
            self._events.fire("before_remove_file", path)
            self._transfer.remove(path)
            self._events.fire("on_file_removed", path)

    def retrieve_file(self, path: str) -> Optional[Path]:
        """Download a remote file into :attr:`tmp_dir` and return the local path.

        :returns: ``None`` for a blank path.
        :raises InvalidOperation: If ``path`` looks like a folder.
        """
        with self._operation():
            return self._transfer.retrieve(path)

    def retrieve_file_as_stream(self, path: str) -> Optional[BinaryIO]:
        """Open a remote file for reading. The caller must close the stream.

        Over FTP no other operation may run on this storage until the stream
        is closed.

        :returns: ``None`` for a blank path.
        :raises InvalidOperation: If ``path`` looks like a folder.
        :raises RemoteIOError: If the remote file does not exist.
        """
        with self._operation():
            return self._transfer.open_stream(path)

    def clean(self) -> None:
        """Empty the local temp directory. No remote file is touched."""
        with self._operation():
            self._transfer.clean()

    # endregion

    # region: folders
    def create_folder(self, path: str) -> StorageEvent:
        """Create one folder; its parent folders must already exist.

        An existing folder is left as is.

        :raises InvalidPath: If ``path`` is blank.
        :raises RemoteIOError: If a parent folder is missing or creation fails.
        """
        with self._operation():
            validate_path(path)
            if not path.strip():
                raise InvalidPath("Invalid path. The path shouldn't be empty.", path=path)
            self._events.fire("before_create_folder", path)
            target = resolve(self._root, path)
            self._tree.make_folder(target)
            event = StorageEvent.build(
                scheme=self._session.scheme,
                host=self._settings.host,
                folder=str(target.parent),
                name=target.name,
                raw_name=SEPARATOR.join(RemotePath(path).parts),
            )
            self._events.fire("on_folder_created", event)
            return event

    def remove_folder(self, path: str) -> None:
        """Delete a folder and everything beneath it. A blank path does nothing.

        :raises InvalidOperation: If ``path`` resolves to the root; use :meth:`wipe`.
        :raises RemoteIOError: If the folder does not exist or cannot be removed.
        """
        with self._operation():
            validate_path(path)
            if not path.strip():
                return
            target = resolve(self._root, path)
            if target == self._root:
                raise InvalidOperation("The storage root cannot be removed; call wipe instead", path=path)
            self._events.fire("before_remove_folder", path)
            self._tree.reset()
            self._tree.remove_subtree(target)
            self._events.fire("on_folder_removed", path)

    def wipe(self) -> None:
        """Delete everything under the root. The root itself remains."""
        with self._operation():
            self._tree.wipe_root()

    # endregion


def open_storage(source: Union[StorageSettings, Mapping[str, Any], str, Path]) -> UniversalStorage:
    """Create a connected storage from settings, a settings dict, or a JSON settings file."""
    if isinstance(source, StorageSettings):
        settings = source
    elif isinstance(source, Mapping):
        settings = StorageSettings.from_dict(dict(source))
    else:
        settings = StorageSettings.from_file(source)
    return UniversalStorage(settings)
