"""Local directory session: stdlib-only reference implementation."""

from __future__ import annotations

import logging
import posixpath
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO, Optional

from universal_storage._errors import InvalidPath, RemoteIOError
from universal_storage._models import RemoteEntry
from universal_storage._session import RemoteSession

if TYPE_CHECKING:
    from collections.abc import Iterator

log = logging.getLogger(__name__)


class LocalSession(RemoteSession):
    """Session that treats a local directory as the server filesystem.

    The directory plays the part of ``/``; the working directory is emulated
    so the session behaves like an FTP connection, including refusing to
    create missing parents.

    :param base_dir: Local directory exposed as the server root.
    """

    def __init__(self, base_dir: str) -> None:
        self._base = Path(base_dir).resolve()
        self._base.mkdir(parents=True, exist_ok=True)
        self._cwd = "/"
        self._connected = False

    @property
    def scheme(self) -> str:
        return "file"

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def working_directory(self) -> str:
        return self._cwd

    # region: path safety
    def _virtual(self, path: str) -> str:
        """Absolute, normalized virtual path for ``path`` relative to the working directory."""
        joined = posixpath.join(self._cwd, path) if path else self._cwd
        return posixpath.normpath(joined).replace("//", "/")

    def _resolve(self, path: str) -> Path:
        """Resolve a session path to a local path within the base directory.

        :raises InvalidPath: If the resolved path escapes the base directory.
        """
        resolved = (self._base / self._virtual(path).lstrip("/")).resolve()
        try:
            resolved.relative_to(self._base)
        except ValueError:
            raise InvalidPath(f"Path escapes session root: {path}", path=path, session=self.scheme) from None
        return resolved

    @contextmanager
    def _errors(self, path: str) -> Iterator[None]:
        """Map OS exceptions to RemoteIOError."""
        if not self._connected:
            raise RemoteIOError("Session is not connected", path=path, session=self.scheme)
        try:
            yield
        except OSError as exc:
            raise RemoteIOError(f"{exc.strerror or exc}: {path}", path=path, session=self.scheme) from None

    # endregion

    # region: lifecycle
    def connect(self, host: str, port: Optional[int] = None) -> None:
        log.debug("Local session on %s (host %s ignored)", self._base, host)
        self._cwd = "/"

    def authenticate(self, user: Optional[str], password: Optional[str]) -> None:
        self._connected = True

    def set_passive_mode(self, passive: bool) -> None:
        pass

    def set_binary_mode(self) -> None:
        pass

    def disconnect(self) -> None:
        self._connected = False

    # endregion

    # region: directory primitives
    def change_working_directory(self, path: str) -> bool:
        with self._errors(path):
            if not self._resolve(path).is_dir():
                return False
            self._cwd = self._virtual(path)
            return True

    def make_directory(self, name: str) -> None:
        with self._errors(name):
            self._resolve(name).mkdir()

    def remove_directory(self, path: str) -> None:
        with self._errors(path):
            self._resolve(path).rmdir()

    def delete_file(self, path: str) -> bool:
        with self._errors(path):
            full = self._resolve(path)
            if not full.is_file():
                return False
            try:
                full.unlink()
            except PermissionError:
                return False
            return True

    def list_entries(self, path: str) -> list[RemoteEntry]:
        with self._errors(path):
            full = self._resolve(path)
            return [RemoteEntry(name=item.name, is_directory=item.is_dir()) for item in sorted(full.iterdir())]

    # endregion

    # region: streams
    def open_upload_stream(self, name: str) -> BinaryIO:
        with self._errors(name):
            return open(self._resolve(name), "wb")

    def open_download_stream(self, path: str) -> BinaryIO:
        with self._errors(path):
            return open(self._resolve(path), "rb")

    # endregion
