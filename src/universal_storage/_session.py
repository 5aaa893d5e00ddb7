"""RemoteSession abstract base class: the primitives the storage core consumes."""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, BinaryIO, ClassVar, Optional

if TYPE_CHECKING:
    from universal_storage._models import RemoteEntry


class RemoteSession(abc.ABC):
    """Stateful connection to a directory-and-file server.

    The working directory persists between calls. Relative paths passed to
    any primitive are interpreted against it. Implementations must map their
    native exceptions to :class:`~universal_storage.RemoteIOError`; only the
    two ``bool``-returning primitives report "does not exist" as ``False``.
    """

    default_port: ClassVar[int] = 0

    @property
    @abc.abstractmethod
    def scheme(self) -> str:
        """URL scheme used in storage event identifiers (e.g. ``'ftp'``)."""

    @property
    @abc.abstractmethod
    def connected(self) -> bool:
        """``True`` between a successful :meth:`authenticate` and :meth:`disconnect`."""

    @abc.abstractmethod
    def connect(self, host: str, port: Optional[int] = None) -> None:
        """Open the control connection to ``host``."""

    @abc.abstractmethod
    def authenticate(self, user: Optional[str], password: Optional[str]) -> None:
        """Log in. ``user=None`` means anonymous access where supported."""

    @abc.abstractmethod
    def set_passive_mode(self, passive: bool) -> None:
        """Select passive (``True``) or active data connections."""

    @abc.abstractmethod
    def set_binary_mode(self) -> None:
        """Switch transfers to binary (image) type."""

    @abc.abstractmethod
    def change_working_directory(self, path: str) -> bool:
        """Enter ``path``. Return ``False`` if it does not exist or is not a directory."""

    @abc.abstractmethod
    def make_directory(self, name: str) -> None:
        """Create one directory. Parents are never created."""

    @abc.abstractmethod
    def remove_directory(self, path: str) -> None:
        """Remove an empty directory."""

    @abc.abstractmethod
    def delete_file(self, path: str) -> bool:
        """Delete a file. Return ``False`` if the server refused or the file is absent."""

    @abc.abstractmethod
    def list_entries(self, path: str) -> list[RemoteEntry]:
        """List the direct children of a directory.

        A missing directory is an error, not an empty listing.
        """

    @abc.abstractmethod
    def open_upload_stream(self, name: str) -> BinaryIO:
        """Open a writable stream that creates or replaces ``name``."""

    @abc.abstractmethod
    def open_download_stream(self, path: str) -> BinaryIO:
        """Open a readable stream positioned at the start of ``path``."""

    @abc.abstractmethod
    def disconnect(self) -> None:
        """Close the connection. Never raises."""
