"""Configuration model: immutable settings describing one storage instance."""

from __future__ import annotations

import dataclasses
import json
from pathlib import Path
from typing import Any, Optional, Union

_KNOWN_KEYS = frozenset({"protocol", "host", "port", "username", "password", "passive", "root", "tmp", "options"})


@dataclasses.dataclass(frozen=True)
class StorageSettings:
    """Describes the remote server and the local staging area of a storage.

    :param protocol: Session type identifier (e.g. ``"ftp"``, ``"sftp"``, ``"local"``).
    :param host: Server host name; also used in storage event URLs.
    :param port: Server port, or ``None`` for the session's default.
    :param username: Login user, or ``None`` for anonymous access.
    :param password: Login password.
    :param passive: Use passive data connections.
    :param root: Remote directory all logical paths resolve under.
    :param tmp: Local directory for retrieved files. ``None`` gives every
        storage instance its own fresh temporary directory.
    :param options: Session-specific keyword arguments.
    """

    protocol: str = "ftp"
    host: str = "localhost"
    port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = None
    passive: bool = True
    root: str = ""
    tmp: Optional[str] = None
    options: dict[str, Any] = dataclasses.field(default_factory=dict)

    def validate(self) -> None:
        """Check the settings for obvious mistakes.

        :raises ValueError: If protocol or host is empty, or port is not positive.
        """
        if not self.protocol or not self.protocol.strip():
            raise ValueError("protocol must be a non-empty string")
        if not self.host or not self.host.strip():
            raise ValueError("host must be a non-empty string")
        if self.port is not None and self.port <= 0:
            raise ValueError(f"port must be positive, got {self.port}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StorageSettings:
        """Construct from a plain dict (e.g. parsed JSON).

        :raises TypeError: If ``data`` or its ``options`` entry is not a dict.
        :raises ValueError: If ``data`` contains unknown keys.
        """
        if not isinstance(data, dict):
            msg = f"Expected settings to be a dict, got {type(data).__name__}"
            raise TypeError(msg)
        unknown = sorted(set(data) - _KNOWN_KEYS)
        if unknown:
            raise ValueError(f"Unknown settings keys: {unknown}. Known keys: {sorted(_KNOWN_KEYS)}")
        options = data.get("options", {})
        if not isinstance(options, dict):
            msg = "Expected 'options' to be a dict"
            raise TypeError(msg)

        port = data.get("port")
        tmp = data.get("tmp")
        username = data.get("username")
        password = data.get("password")
        return cls(
            protocol=str(data.get("protocol", "ftp")),
            host=str(data.get("host", "localhost")),
            port=int(port) if port is not None else None,
            username=str(username) if username is not None else None,
            password=str(password) if password is not None else None,
            passive=bool(data.get("passive", True)),
            root=str(data.get("root", "")),
            tmp=str(tmp) if tmp is not None else None,
            options=dict(options),
        )

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> StorageSettings:
        """Load settings from a JSON file."""
        with open(path, encoding="utf-8") as fh:
            return cls.from_dict(json.load(fh))
