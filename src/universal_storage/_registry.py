"""Session registry: maps protocol names to RemoteSession classes."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from universal_storage._config import StorageSettings
    from universal_storage._session import RemoteSession

# Global session factory registry: maps protocol strings to session classes.
_SESSION_FACTORIES: dict[str, type[RemoteSession]] = {}


def register_session(protocol: str, cls: type[RemoteSession]) -> None:
    """Register a session class for a given protocol string.

    :param protocol: The protocol identifier (e.g. ``"ftp"``).
    :param cls: The session class to instantiate.
    """
    _SESSION_FACTORIES[protocol] = cls


def _register_builtin_sessions() -> None:
    """Register the built-in sessions."""
    from universal_storage.sessions import FTPSession, LocalSession, SFTPSession

    for protocol, cls in (("ftp", FTPSession), ("sftp", SFTPSession), ("local", LocalSession)):
        if protocol not in _SESSION_FACTORIES:
            register_session(protocol, cls)


def registered_protocols() -> list[str]:
    """Sorted list of protocols a session can be created for."""
    _register_builtin_sessions()
    return sorted(_SESSION_FACTORIES)


def create_session(settings: StorageSettings) -> RemoteSession:
    """Instantiate the session class registered for ``settings.protocol``.

    ``settings.options`` are passed as keyword arguments. The session is
    returned unconnected.

    :raises ValueError: If the protocol is unknown or the options are invalid.
    """
    _register_builtin_sessions()
    if settings.protocol not in _SESSION_FACTORIES:
        raise ValueError(
            f"Unknown session protocol '{settings.protocol}'. Registered protocols: {sorted(_SESSION_FACTORIES)}"
        )
    factory = _SESSION_FACTORIES[settings.protocol]
    try:
        return factory(**settings.options)
    except TypeError as exc:
        raise ValueError(
            f"Invalid options for session protocol {settings.protocol!r}: {exc}. "
            f"Provided options: {sorted(settings.options)}"
        ) from exc
