"""Protocol-agnostic storage over hierarchical remote file servers."""

from universal_storage._config import StorageSettings
from universal_storage._errors import (
    ErrorKind,
    InvalidOperation,
    InvalidPath,
    LocalIOError,
    RemoteIOError,
    StorageError,
)
from universal_storage._events import EventDispatcher, StorageListener
from universal_storage._models import RemoteEntry, StorageEvent
from universal_storage._path import RemotePath, resolve, validate_path
from universal_storage._registry import register_session, registered_protocols
from universal_storage._session import RemoteSession
from universal_storage._storage import UniversalStorage, open_storage

__version__ = "0.1.0"

__all__ = [
    # Core
    "UniversalStorage",
    "open_storage",
    "RemoteSession",
    "register_session",
    "registered_protocols",
    # Path & Models
    "RemotePath",
    "resolve",
    "validate_path",
    "RemoteEntry",
    "StorageEvent",
    # Events
    "StorageListener",
    "EventDispatcher",
    # Config
    "StorageSettings",
    # Errors
    "ErrorKind",
    "StorageError",
    "InvalidPath",
    "InvalidOperation",
    "RemoteIOError",
    "LocalIOError",
    # Version
    "__version__",
]
