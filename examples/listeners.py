"""Listeners: observing storage operations.

Demonstrates registering listeners, the order hooks fire in, and loading
settings from a JSON file with :func:`open_storage`.
"""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path

from universal_storage import StorageEvent, StorageListener, open_storage


class AuditLog(StorageListener):
    def __init__(self) -> None:
        self.entries: list[str] = []

    def before_store_file(self, file: Path, folder: str | None) -> None:
        self.entries.append(f"storing {file.name} into {folder or '<root>'}")

    def on_file_stored(self, event: StorageEvent) -> None:
        self.entries.append(f"stored {event.url}")

    def on_folder_created(self, event: StorageEvent) -> None:
        self.entries.append(f"created {event.url}")

    def on_folder_removed(self, path: str) -> None:
        self.entries.append(f"removed folder {path}")


class Counter:
    """Any object works; only the hooks it defines are called."""

    def __init__(self) -> None:
        self.stored = 0

    def on_file_stored(self, event: StorageEvent) -> None:
        self.stored += 1


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG, format="%(name)s %(levelname)s %(message)s")

    with tempfile.TemporaryDirectory() as server, tempfile.TemporaryDirectory() as work:
        config = Path(work) / "storage.json"
        config.write_text(
            json.dumps({"protocol": "local", "host": "files.example.com", "root": "/shared", "options": {"base_dir": server}}),
            encoding="utf-8",
        )
        report = Path(work) / "q4.csv"
        report.write_text("revenue,profit\n100,20\n", encoding="utf-8")

        audit, counter = AuditLog(), Counter()
        with open_storage(config) as storage:
            storage.register_listener(audit)
            storage.register_listener(counter)

            storage.wipe()
            storage.create_folder("reports")
            storage.store_file(report, "reports")
            storage.store_file(report, "reports/archive/2024")
            storage.remove_folder("reports")

        print("\n".join(audit.entries))
        print(f"Files stored: {counter.stored}")
