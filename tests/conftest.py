"""Shared test fixtures and marker registration."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from universal_storage import StorageListener, StorageSettings, UniversalStorage

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


def pytest_configure(config: object) -> None:
    """Register custom markers."""
    if isinstance(config, pytest.Config):
        config.addinivalue_line("markers", "integration: talks to an in-process network server")


class RecordingListener(StorageListener):
    """Listener that records every hook call as ``(hook, args)``."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    def _record(self, hook: str, *args: Any) -> None:
        self.calls.append((hook, args))

    @property
    def hooks(self) -> list[str]:
        return [hook for hook, _ in self.calls]

    def before_store_file(self, file: Any, folder: Any) -> None:
        self._record("before_store_file", file, folder)

    def before_remove_file(self, path: str) -> None:
        self._record("before_remove_file", path)

    def before_create_folder(self, path: str) -> None:
        self._record("before_create_folder", path)

    def before_remove_folder(self, path: str) -> None:
        self._record("before_remove_folder", path)

    def on_file_stored(self, event: Any) -> None:
        self._record("on_file_stored", event)

    def on_folder_created(self, event: Any) -> None:
        self._record("on_folder_created", event)

    def on_file_removed(self, path: str) -> None:
        self._record("on_file_removed", path)

    def on_folder_removed(self, path: str) -> None:
        self._record("on_folder_removed", path)

    def on_error(self, error: Any) -> None:
        self._record("on_error", error)


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def server_dir(tmp_path: Path) -> Path:
    """Local directory playing the part of the server filesystem."""
    d = tmp_path / "server"
    d.mkdir()
    return d


@pytest.fixture
def local_settings(server_dir: Path, tmp_path: Path) -> StorageSettings:
    return StorageSettings(
        protocol="local",
        host="localhost",
        root="universalstorage",
        tmp=str(tmp_path / "staging"),
        options={"base_dir": str(server_dir)},
    )


@pytest.fixture
def storage(local_settings: StorageSettings, listener: RecordingListener) -> Iterator[UniversalStorage]:
    """Storage over a local session, rooted at ``/universalstorage``, with a recording listener."""
    s = UniversalStorage(local_settings)
    s.register_listener(listener)
    yield s
    s.close()
