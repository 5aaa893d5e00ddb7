"""Tests for UniversalStorage: integration through the local session."""

from __future__ import annotations

import dataclasses
import json
from typing import TYPE_CHECKING, Any, Optional
from unittest import mock

import pytest

from universal_storage import (
    InvalidOperation,
    InvalidPath,
    RemoteIOError,
    StorageListener,
    StorageSettings,
    UniversalStorage,
    open_storage,
)
from universal_storage.sessions import LocalSession

if TYPE_CHECKING:
    from pathlib import Path

    from tests.conftest import RecordingListener


@pytest.fixture
def hello(tmp_path: Path) -> Path:
    f = tmp_path / "hello.txt"
    f.write_bytes(b"Hello, world")
    return f


class TestConstruction:
    def test_connects_on_construction(self, local_settings: StorageSettings) -> None:
        with UniversalStorage(local_settings) as s:
            assert not s.closed
            assert str(s.root) == "universalstorage"

    def test_explicit_session(self, local_settings: StorageSettings, tmp_path: Path, server_dir: Path) -> None:
        other = tmp_path / "other"
        settings = dataclasses.replace(local_settings, root="")
        with UniversalStorage(settings, session=LocalSession(str(other))) as s:
            s.create_folder("x")
        assert (other / "x").is_dir()
        assert not (server_dir / "x").exists()

    def test_connect_failure_disconnects(self, local_settings: StorageSettings) -> None:
        class _Unreachable(LocalSession):
            disconnected = False

            def authenticate(self, user: Optional[str], password: Optional[str]) -> None:
                raise ConnectionRefusedError("refused")

            def disconnect(self) -> None:
                type(self).disconnected = True
                super().disconnect()

        with pytest.raises(RemoteIOError, match="refused"):
            UniversalStorage(local_settings, session=_Unreachable(local_settings.options["base_dir"]))
        assert _Unreachable.disconnected

    def test_private_tmp_dir_by_default(self, server_dir: Path) -> None:
        settings = StorageSettings(protocol="local", options={"base_dir": str(server_dir)})
        with UniversalStorage(settings) as a, UniversalStorage(settings) as b:
            assert a.tmp_dir != b.tmp_dir
            assert a.tmp_dir.is_dir()

    def test_invalid_settings(self) -> None:
        with pytest.raises(ValueError):
            UniversalStorage(StorageSettings(host=""))

    def test_unknown_protocol(self) -> None:
        with pytest.raises(ValueError):
            UniversalStorage(StorageSettings(protocol="gopher"))

    def test_repr(self, storage: UniversalStorage) -> None:
        assert repr(storage) == "UniversalStorage(session='file', host='localhost', root='universalstorage')"


class TestStoreFile:
    def test_store_into_nested_folder(
        self, storage: UniversalStorage, hello: Path, server_dir: Path, listener: RecordingListener
    ) -> None:
        event = storage.store_file(hello, "a/b")
        assert (server_dir / "universalstorage" / "a" / "b" / "hello.txt").read_bytes() == b"Hello, world"
        assert event.raw_name == "a/b/hello.txt"
        assert event.url == "file://localhost/universalstorage/a/b/hello.txt"
        assert listener.calls == [("before_store_file", (hello, "a/b")), ("on_file_stored", (event,))]

    def test_store_accepts_string_path(self, storage: UniversalStorage, hello: Path, server_dir: Path) -> None:
        storage.store_file(str(hello))
        assert (server_dir / "universalstorage" / "hello.txt").exists()

    def test_store_directory(
        self, storage: UniversalStorage, tmp_path: Path, listener: RecordingListener
    ) -> None:
        with pytest.raises(InvalidOperation):
            storage.store_file(tmp_path, "a")
        assert listener.hooks == ["before_store_file", "on_error"]

    def test_invalid_folder(self, storage: UniversalStorage, hello: Path, listener: RecordingListener) -> None:
        with pytest.raises(InvalidPath):
            storage.store_file(hello, "../outside")
        assert listener.hooks == ["on_error"]

    @pytest.mark.parametrize("file", [None, 42])
    def test_non_path_file(self, storage: UniversalStorage, file: Any, listener: RecordingListener) -> None:
        with pytest.raises(InvalidPath):
            storage.store_file(file)
        assert listener.hooks == ["on_error"]


class TestRetrieve:
    def test_round_trip(self, storage: UniversalStorage, hello: Path) -> None:
        storage.store_file(hello, "a/b")
        local = storage.retrieve_file("a/b/hello.txt")
        assert local is not None
        assert local.parent == storage.tmp_dir
        assert local.read_bytes() == b"Hello, world"

    def test_stream_round_trip(self, storage: UniversalStorage, hello: Path) -> None:
        storage.store_file(hello, "a")
        stream = storage.retrieve_file_as_stream("a/hello.txt")
        assert stream is not None
        with stream:
            assert stream.read() == b"Hello, world"

    @pytest.mark.parametrize("blank", ["", "  "])
    def test_blank_paths_return_none(self, storage: UniversalStorage, blank: str) -> None:
        assert storage.retrieve_file(blank) is None
        assert storage.retrieve_file_as_stream(blank) is None

    def test_folder_like_path(self, storage: UniversalStorage, listener: RecordingListener) -> None:
        with pytest.raises(InvalidOperation):
            storage.retrieve_file("a/b/")
        assert listener.hooks == ["on_error"]

    def test_missing_file_stream(self, storage: UniversalStorage) -> None:
        with pytest.raises(RemoteIOError):
            storage.retrieve_file_as_stream("absent.txt")


class TestRemoveFile:
    def test_remove(
        self, storage: UniversalStorage, hello: Path, server_dir: Path, listener: RecordingListener
    ) -> None:
        storage.store_file(hello, "a")
        listener.calls.clear()
        storage.remove_file("a/hello.txt")
        assert not (server_dir / "universalstorage" / "a" / "hello.txt").exists()
        assert listener.calls == [("before_remove_file", ("a/hello.txt",)), ("on_file_removed", ("a/hello.txt",))]

    def test_remove_missing_fires_one_error(self, storage: UniversalStorage, listener: RecordingListener) -> None:
        with pytest.raises(RemoteIOError) as exc_info:
            storage.remove_file("absent.txt")
        assert listener.hooks == ["before_remove_file", "on_error"]
        assert listener.calls[-1][1] == (exc_info.value,)
        assert exc_info.value.path == "universalstorage/absent.txt"
        assert "universalstorage/absent.txt" in exc_info.value.message


class TestCreateFolder:
    def test_create(self, storage: UniversalStorage, server_dir: Path, listener: RecordingListener) -> None:
        (server_dir / "universalstorage").mkdir()
        event = storage.create_folder("reports")
        assert (server_dir / "universalstorage" / "reports").is_dir()
        assert event.name == "reports"
        assert event.raw_name == "reports"
        assert event.folder == "universalstorage"
        assert event.url == "file://localhost/universalstorage/reports"
        assert listener.hooks == ["before_create_folder", "on_folder_created"]

    def test_create_existing(self, storage: UniversalStorage, server_dir: Path, listener: RecordingListener) -> None:
        (server_dir / "universalstorage" / "reports").mkdir(parents=True)
        storage.create_folder("reports")
        assert listener.hooks == ["before_create_folder", "on_folder_created"]

    def test_not_recursive(self, storage: UniversalStorage, listener: RecordingListener) -> None:
        with pytest.raises(RemoteIOError):
            storage.create_folder("x/y/z")
        assert listener.hooks == ["before_create_folder", "on_error"]

    @pytest.mark.parametrize("blank", ["", "   "])
    def test_blank(self, storage: UniversalStorage, blank: str, listener: RecordingListener) -> None:
        with pytest.raises(InvalidPath):
            storage.create_folder(blank)
        assert listener.hooks == ["on_error"]


class TestRemoveFolder:
    def test_remove_subtree(
        self, storage: UniversalStorage, hello: Path, server_dir: Path, listener: RecordingListener
    ) -> None:
        storage.store_file(hello, "a/b/c")
        storage.store_file(hello, "a")
        listener.calls.clear()
        storage.remove_folder("a")
        assert not (server_dir / "universalstorage" / "a").exists()
        assert (server_dir / "universalstorage").is_dir()
        assert listener.calls == [("before_remove_folder", ("a",)), ("on_folder_removed", ("a",))]

    def test_blank_is_noop(self, storage: UniversalStorage, listener: RecordingListener) -> None:
        storage.remove_folder("")
        storage.remove_folder("  ")
        assert listener.calls == []

    def test_missing(self, storage: UniversalStorage, listener: RecordingListener) -> None:
        with pytest.raises(RemoteIOError):
            storage.remove_folder("absent")
        assert listener.hooks == ["before_remove_folder", "on_error"]

    @pytest.mark.parametrize("path", ["/", ".", "./", "//"])
    def test_root_rejected(
        self, storage: UniversalStorage, hello: Path, server_dir: Path, path: str, listener: RecordingListener
    ) -> None:
        storage.store_file(hello)
        listener.calls.clear()
        with pytest.raises(InvalidOperation, match="wipe"):
            storage.remove_folder(path)
        assert (server_dir / "universalstorage" / "hello.txt").exists()
        assert listener.hooks == ["on_error"]


class TestWipeAndClean:
    def test_wipe(self, storage: UniversalStorage, hello: Path, server_dir: Path) -> None:
        storage.store_file(hello, "a/b")
        storage.store_file(hello)
        storage.wipe()
        root = server_dir / "universalstorage"
        assert root.is_dir()
        assert list(root.iterdir()) == []

    def test_wipe_creates_root(self, storage: UniversalStorage, server_dir: Path) -> None:
        storage.wipe()
        assert (server_dir / "universalstorage").is_dir()

    def test_clean_leaves_remote(self, storage: UniversalStorage, hello: Path, server_dir: Path) -> None:
        storage.store_file(hello)
        storage.retrieve_file("hello.txt")
        storage.clean()
        assert list(storage.tmp_dir.iterdir()) == []
        assert (server_dir / "universalstorage" / "hello.txt").exists()


class TestListeners:
    def test_failing_listener_does_not_break_operation(
        self, storage: UniversalStorage, hello: Path, listener: RecordingListener
    ) -> None:
        class _Broken:
            def before_store_file(self, file: Any, folder: Optional[str]) -> None:
                raise RuntimeError("boom")

        storage.unregister_listener(listener)
        storage.register_listener(_Broken())
        storage.register_listener(listener)
        storage.store_file(hello)
        assert listener.hooks == ["before_store_file", "on_file_stored"]

    def test_unregister(self, storage: UniversalStorage, hello: Path, listener: RecordingListener) -> None:
        assert storage.unregister_listener(listener) is True
        storage.store_file(hello)
        assert listener.calls == []


class TestErrorNormalization:
    def test_unexpected_exception_wrapped_once(self, storage: UniversalStorage, listener: RecordingListener) -> None:
        with mock.patch.object(storage._tree, "wipe_root", side_effect=KeyError("session bug")):
            with pytest.raises(RemoteIOError, match="session bug") as exc_info:
                storage.wipe()
        assert listener.calls == [("on_error", (exc_info.value,))]
        assert exc_info.value.session == "file"

    def test_storage_error_not_rewrapped(self, storage: UniversalStorage, listener: RecordingListener) -> None:
        original = RemoteIOError("listing failed", path="/x")
        with mock.patch.object(storage._tree, "wipe_root", side_effect=original):
            with pytest.raises(RemoteIOError) as exc_info:
                storage.wipe()
        assert exc_info.value is original
        assert listener.hooks == ["on_error"]

    def test_no_retry(self, storage: UniversalStorage) -> None:
        with mock.patch.object(storage._transfer, "remove", side_effect=RemoteIOError("down")) as remove:
            with pytest.raises(RemoteIOError):
                storage.remove_file("x.txt")
        remove.assert_called_once_with("x.txt")


class TestClose:
    def test_close_idempotent(self, storage: UniversalStorage) -> None:
        storage.close()
        storage.close()
        assert storage.closed

    def test_operations_after_close(self, storage: UniversalStorage, hello: Path) -> None:
        storage.close()
        with pytest.raises(InvalidOperation, match="closed"):
            storage.store_file(hello)
        with pytest.raises(InvalidOperation):
            storage.remove_folder("a")

    def test_close_clears_listeners(self, storage: UniversalStorage, listener: RecordingListener) -> None:
        storage.close()
        with pytest.raises(InvalidOperation):
            storage.wipe()
        assert listener.calls == []

    def test_register_after_close(self, storage: UniversalStorage) -> None:
        storage.close()
        with pytest.raises(InvalidOperation, match="closed"):
            storage.register_listener(StorageListener())

    def test_private_tmp_dir_removed(self, server_dir: Path) -> None:
        settings = StorageSettings(protocol="local", options={"base_dir": str(server_dir)})
        with UniversalStorage(settings) as s:
            s.tmp_dir.joinpath("leftover.txt").write_text("x")
            tmp_dir = s.tmp_dir
        assert not tmp_dir.exists()

    def test_configured_tmp_dir_kept(self, local_settings: StorageSettings, hello: Path) -> None:
        with UniversalStorage(local_settings) as s:
            s.store_file(hello)
            local = s.retrieve_file("hello.txt")
        assert local is not None
        assert local.read_bytes() == b"Hello, world"


class TestOpenStorage:
    def test_from_dict(self, server_dir: Path) -> None:
        with open_storage({"protocol": "local", "root": "r", "options": {"base_dir": str(server_dir)}}) as s:
            s.wipe()
        assert (server_dir / "r").is_dir()

    def test_from_file(self, server_dir: Path, tmp_path: Path) -> None:
        config = tmp_path / "storage.json"
        config.write_text(
            json.dumps({"protocol": "local", "root": "/r", "options": {"base_dir": str(server_dir)}}),
            encoding="utf-8",
        )
        with open_storage(config) as s:
            assert str(s.root) == "/r"

    def test_from_settings(self, local_settings: StorageSettings) -> None:
        with open_storage(local_settings) as s:
            assert isinstance(s, UniversalStorage)
