"""Normalized error hierarchy for universal_storage."""

from __future__ import annotations

import enum
from contextlib import contextmanager
from typing import TYPE_CHECKING, ClassVar, Optional

if TYPE_CHECKING:
    from collections.abc import Iterator


class ErrorKind(enum.Enum):
    """Tag carried by every :class:`StorageError`."""

    INVALID_PATH = "invalid_path"
    INVALID_OPERATION = "invalid_operation"
    REMOTE_IO = "remote_io"
    LOCAL_IO = "local_io"


class StorageError(Exception):
    """Base class for all universal_storage errors.

    :param message: Human-readable error description.
    :param path: The path involved in the error, if any.
    :param session: The session scheme involved (e.g. ``"ftp"``), if any.
    """

    kind: ClassVar[Optional[ErrorKind]] = None

    def __init__(self, message: str = "", *, path: Optional[str] = None, session: Optional[str] = None) -> None:
        self.path = path
        self.session = session
        super().__init__(message)

    @property
    def message(self) -> str:
        return super().__str__()

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.path is not None:
            parts.append(f"path={self.path!r}")
        if self.session is not None:
            parts.append(f"session={self.session!r}")
        return " | ".join(parts) if len(parts) > 1 else parts[0]

    def __repr__(self) -> str:
        cls = type(self).__name__
        args = [repr(super().__str__())]
        if self.kind is not None:
            args.append(f"kind={self.kind.value!r}")
        if self.path is not None:
            args.append(f"path={self.path!r}")
        if self.session is not None:
            args.append(f"session={self.session!r}")
        return f"{cls}({', '.join(args)})"


class InvalidPath(StorageError):
    """Raised for null, malformed or unsafe path strings."""

    kind = ErrorKind.INVALID_PATH


class InvalidOperation(StorageError):
    """Raised when a call is semantically wrong, e.g. storing a directory as a file."""

    kind = ErrorKind.INVALID_OPERATION


class RemoteIOError(StorageError):
    """Raised for any failure reported by the remote session."""

    kind = ErrorKind.REMOTE_IO


class LocalIOError(StorageError):
    """Raised when reading or writing the local filesystem fails."""

    kind = ErrorKind.LOCAL_IO


@contextmanager
def remote_errors(path: str = "", session: Optional[str] = None) -> Iterator[None]:
    """Map any non-storage exception raised in the block to :class:`RemoteIOError`."""
    try:
        yield
    except StorageError:
        raise
    except Exception as exc:
        raise RemoteIOError(str(exc) or type(exc).__name__, path=path or None, session=session) from None


@contextmanager
def local_errors(path: str = "") -> Iterator[None]:
    """Map OS errors raised in the block to :class:`LocalIOError`."""
    try:
        yield
    except StorageError:
        raise
    except OSError as exc:
        raise LocalIOError(str(exc) or type(exc).__name__, path=path or None) from None
