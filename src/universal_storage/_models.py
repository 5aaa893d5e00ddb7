"""Immutable records exchanged between sessions, engines and listeners."""

from __future__ import annotations

import dataclasses
import re

_DOUBLE_SEPARATOR = re.compile(r"/{2,}")


@dataclasses.dataclass(frozen=True)
class RemoteEntry:
    """A direct child of a listed remote directory.

    :param name: Entry name (no separators).
    :param is_directory: ``True`` for directories, ``False`` for files.
    """

    name: str
    is_directory: bool = False


@dataclasses.dataclass(frozen=True)
class StorageEvent:
    """Describes a completed store-file or create-folder operation.

    :param name: Base name of the stored file or created folder.
    :param url: URL-like identifier, ``<scheme>://<host>/<folder>/<name>``.
    :param raw_name: Root-relative logical path of the object.
    :param folder: Resolved remote path of the containing folder.
    """

    name: str
    url: str
    raw_name: str
    folder: str

    @classmethod
    def build(cls, *, scheme: str, host: str, folder: str, name: str, raw_name: str) -> StorageEvent:
        """Create an event, collapsing doubled separators in the URL path."""
        location = _DOUBLE_SEPARATOR.sub("/", f"{host}/{folder}/{name}")
        return cls(name=name, url=f"{scheme}://{location}", raw_name=raw_name, folder=folder)
