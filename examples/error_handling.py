"""Error handling: catching InvalidPath, InvalidOperation and RemoteIOError.

Demonstrates the normalized error hierarchy, the ``kind`` tag every error
carries, and the ``on_error`` hook that sees each failure before it is raised.
"""

from __future__ import annotations

import tempfile

from universal_storage import (
    InvalidOperation,
    InvalidPath,
    RemoteIOError,
    StorageError,
    StorageListener,
    StorageSettings,
    UniversalStorage,
)


class PrintErrors(StorageListener):
    def on_error(self, error: StorageError) -> None:
        print(f"  [on_error] {error.kind.value}: {error.message}")


if __name__ == "__main__":
    with tempfile.TemporaryDirectory() as server, tempfile.TemporaryDirectory() as work:
        settings = StorageSettings(protocol="local", options={"base_dir": server})

        with UniversalStorage(settings) as storage:
            storage.register_listener(PrintErrors())

            # --- RemoteIOError ---
            try:
                storage.remove_file("nonexistent.txt")
            except RemoteIOError as exc:
                print(f"RemoteIOError: {exc}")
                print(f"  path={exc.path}, session={exc.session}")

            # --- InvalidOperation (a directory is not a file) ---
            try:
                storage.store_file(work)
            except InvalidOperation as exc:
                print(f"\nInvalidOperation: {exc}")

            # --- InvalidPath (path traversal attempt) ---
            try:
                storage.retrieve_file("../../etc/passwd")
            except InvalidPath as exc:
                print(f"\nInvalidPath: {exc}")

            # --- Blank paths are not errors for retrieval and folder removal ---
            print(f"\nretrieve_file('') -> {storage.retrieve_file('')}")
            storage.remove_folder("")

            # --- Catch any storage error with the base class ---
            for path in ["missing/", "missing.txt"]:
                try:
                    storage.retrieve_file(path)
                except StorageError as exc:
                    print(f"\nStorageError ({type(exc).__name__}): {exc}")

        # --- Operations on a closed storage ---
        try:
            storage.wipe()
        except InvalidOperation as exc:
            print(f"\nInvalidOperation: {exc}")

    print("\nDone!")
