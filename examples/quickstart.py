"""Quickstart: store, retrieve and remove files with universal-storage.

Demonstrates:
- Creating StorageSettings for a local directory session
- Storing a file into a nested folder (missing folders are created)
- Retrieving it into the temp directory and as a stream
- Removing the folder again
"""

from __future__ import annotations

import tempfile
from pathlib import Path

from universal_storage import StorageSettings, UniversalStorage

if __name__ == "__main__":
    with tempfile.TemporaryDirectory() as server, tempfile.TemporaryDirectory() as work:
        # protocol="ftp" with host/username/password talks to a real server instead
        settings = StorageSettings(protocol="local", root="universalstorage", options={"base_dir": server})

        source = Path(work) / "hello.txt"
        source.write_bytes(b"Hello, world!")

        with UniversalStorage(settings) as storage:
            event = storage.store_file(source, "a/b")
            print(f"Stored: {event.url} (raw name {event.raw_name})")

            local = storage.retrieve_file("a/b/hello.txt")
            print(f"Retrieved into {local}: {local.read_bytes()!r}")

            stream = storage.retrieve_file_as_stream("a/b/hello.txt")
            with stream:
                print(f"Streamed: {stream.read()!r}")

            storage.remove_folder("a")
            storage.clean()

    print("Done! Temp directories cleaned up automatically.")
