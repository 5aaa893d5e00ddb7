"""RemotePath value object, path validation and root-relative resolution."""

from __future__ import annotations

from typing import Final, Union

from universal_storage._errors import InvalidPath

SEPARATOR: Final = "/"


def validate_path(path: object) -> str:
    """Check a caller-supplied path string and return it unchanged.

    :raises InvalidPath: If ``path`` is ``None``, not a string, contains
        control characters, or contains a ``..`` segment.
    """
    if path is None:
        raise InvalidPath("Path must not be None")
    if not isinstance(path, str):
        raise InvalidPath(f"Path must be a string, got {type(path).__name__}", path=repr(path))
    if any(ord(ch) < 32 or ord(ch) == 127 for ch in path):
        raise InvalidPath("Path contains control characters", path=path)
    if ".." in path.split(SEPARATOR):
        raise InvalidPath("Path contains '..' segment", path=path)
    return path


class RemotePath:
    """An immutable, normalized path on the remote server.

    Empty and ``.`` segments are dropped and duplicate separators collapse.
    A leading separator marks the path as absolute. A path without segments
    is the filesystem root and renders as ``/``.

    :param raw: The raw path string to normalize.
    :raises InvalidPath: If the path contains a ``..`` segment.
    """

    __slots__ = ("_absolute", "_parts")
    _parts: Final[tuple[str, ...]]  # type: ignore[misc]
    _absolute: Final[bool]  # type: ignore[misc]

    def __init__(self, raw: str = "") -> None:
        parts: list[str] = []
        for segment in raw.split(SEPARATOR):
            if segment == "" or segment == ".":
                continue
            if segment == "..":
                raise InvalidPath("Path contains '..' segment", path=raw)
            parts.append(segment)
        object.__setattr__(self, "_parts", tuple(parts))
        object.__setattr__(self, "_absolute", raw.startswith(SEPARATOR) or not parts)

    @classmethod
    def _from_parts(cls, parts: tuple[str, ...], absolute: bool) -> RemotePath:
        p = object.__new__(cls)
        object.__setattr__(p, "_parts", parts)
        object.__setattr__(p, "_absolute", absolute)
        return p

    @property
    def parts(self) -> tuple[str, ...]:
        """Tuple of path segments."""
        return self._parts

    @property
    def is_absolute(self) -> bool:
        return self._absolute

    @property
    def is_root(self) -> bool:
        """``True`` if the path has no segments."""
        return not self._parts

    @property
    def name(self) -> str:
        """Final segment, or an empty string for the root."""
        return self._parts[-1] if self._parts else ""

    @property
    def parent(self) -> RemotePath:
        """Parent path. The parent of the root is the root."""
        parts = self._parts[:-1]
        return self._from_parts(parts, self._absolute or not parts)

    def __truediv__(self, other: Union[str, RemotePath]) -> RemotePath:
        return RemotePath(f"{self}{SEPARATOR}{other}")

    def __str__(self) -> str:
        if not self._parts:
            return SEPARATOR
        joined = SEPARATOR.join(self._parts)
        return f"{SEPARATOR}{joined}" if self._absolute else joined

    def __repr__(self) -> str:
        return f"RemotePath({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, RemotePath):
            return self._parts == other._parts and self._absolute == other._absolute
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self._parts, self._absolute))

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError(f"RemotePath is immutable: cannot set '{name}'")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"RemotePath is immutable: cannot delete '{name}'")


def resolve(root: Union[str, RemotePath], logical_path: str) -> RemotePath:
    """Resolve a logical, root-relative path against ``root``.

    For example ``resolve("/a/", "/b")`` returns ``RemotePath("/a/b")`` and an
    empty ``logical_path`` resolves to the root itself.

    :raises InvalidPath: If ``logical_path`` fails :func:`validate_path`.
    """
    validate_path(logical_path)
    base = root if isinstance(root, RemotePath) else RemotePath(root)
    if not logical_path:
        return base
    return base / logical_path
