"""Transfer engine: uploads, downloads and file removal."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO, Optional

from universal_storage._errors import InvalidOperation, RemoteIOError, local_errors, remote_errors
from universal_storage._models import StorageEvent
from universal_storage._path import SEPARATOR, RemotePath, resolve, validate_path

if TYPE_CHECKING:
    from universal_storage._session import RemoteSession
    from universal_storage._tree import DirectoryTree

log = logging.getLogger(__name__)

_CHUNK_SIZE = 32768


class TransferEngine:
    """Streams files between the local filesystem and the remote session.

    :param session: A connected session.
    :param tree: Directory tree engine sharing the same session and root.
    :param host: Host name used in storage event URLs.
    :param tmp_dir: Local directory that receives retrieved files.
    """

    def __init__(self, session: RemoteSession, tree: DirectoryTree, *, host: str, tmp_dir: Path) -> None:
        self._session = session
        self._tree = tree
        self._host = host
        self._tmp_dir = tmp_dir

    @property
    def tmp_dir(self) -> Path:
        return self._tmp_dir

    def store(self, file: Path, folder: Optional[str] = None) -> StorageEvent:
        """Upload ``file`` into ``folder`` (root-relative), creating missing folders.

        :raises InvalidOperation: If ``file`` is a directory.
        :raises LocalIOError: If ``file`` cannot be read.
        :raises RemoteIOError: If the remote side fails.
        """
        if file.is_dir():
            raise InvalidOperation(
                f"{file.name} is a folder. You should call create_folder instead.", path=str(file)
            )
        target = resolve(self._tree.root, folder or "")
        with local_errors(str(file)):
            source = open(file, "rb")
        with source:
            self._tree.ensure_path(target)
            self._upload(source, file.name, str(target / file.name))
        log.debug("Stored %s as %s", file, target / file.name)

        logical = RemotePath(folder or "") / file.name
        return StorageEvent.build(
            scheme=self._session.scheme,
            host=self._host,
            folder=str(target),
            name=file.name,
            raw_name=SEPARATOR.join(logical.parts),
        )

    def _upload(self, source: BinaryIO, name: str, target: str) -> None:
        scheme = self._session.scheme
        with remote_errors(target, scheme):
            sink = self._session.open_upload_stream(name)
        try:
            while True:
                with local_errors(getattr(source, "name", "")):
                    chunk = source.read(_CHUNK_SIZE)
                if not chunk:
                    break
                with remote_errors(target, scheme):
                    sink.write(chunk)
        except BaseException:
            try:
                sink.close()
            except Exception:
                log.debug("Closing aborted upload of %s failed", target, exc_info=True)
            raise
        with remote_errors(target, scheme):
            sink.close()

    def remove(self, path: str) -> RemotePath:
        """Delete the remote file at ``path`` (root-relative).

        :raises RemoteIOError: If the file is absent or the server refuses.
        """
        target = resolve(self._tree.root, path)
        self._tree.reset()
        if not self._session.delete_file(str(target)):
            raise RemoteIOError(
                f"It couldn't remove this file '{target}'", path=str(target), session=self._session.scheme
            )
        log.debug("Removed %s", target)
        return target

    def open_stream(self, path: str) -> Optional[BinaryIO]:
        """Open a download stream for ``path``; the caller must close it.

        :returns: ``None`` for a blank path.
        :raises InvalidOperation: If ``path`` ends with a separator.
        :raises RemoteIOError: If the remote file cannot be opened.
        """
        validate_path(path)
        if not path.strip():
            return None
        if path.strip().endswith(SEPARATOR):
            raise InvalidOperation("Invalid path. Looks like you're trying to retrieve a folder.", path=path)
        target = resolve(self._tree.root, path)
        self._tree.reset()
        with remote_errors(str(target), self._session.scheme):
            return self._session.open_download_stream(str(target))

    def retrieve(self, path: str) -> Optional[Path]:
        """Download ``path`` into the temp directory, named by its last segment.

        :returns: The local file, or ``None`` for a blank path.
        """
        stream = self.open_stream(path)
        if stream is None:
            return None
        scheme = self._session.scheme
        local = self._tmp_dir / RemotePath(path).name
        try:
            with local_errors(str(local)):
                self._tmp_dir.mkdir(parents=True, exist_ok=True)
                with open(local, "wb") as sink:
                    while True:
                        with remote_errors(path, scheme):
                            chunk = stream.read(_CHUNK_SIZE)
                        if not chunk:
                            break
                        sink.write(chunk)
        except BaseException:
            try:
                stream.close()
            except Exception:
                log.debug("Closing aborted download of %s failed", path, exc_info=True)
            raise
        with remote_errors(path, scheme):
            stream.close()
        log.debug("Retrieved %s into %s", path, local)
        return local

    def clean(self) -> None:
        """Remove everything inside the temp directory; the remote tree is untouched."""
        with local_errors(str(self._tmp_dir)):
            if not self._tmp_dir.is_dir():
                return
            for item in self._tmp_dir.iterdir():
                if item.is_dir() and not item.is_symlink():
                    shutil.rmtree(item)
                else:
                    item.unlink()
        log.debug("Cleaned %s", self._tmp_dir)
