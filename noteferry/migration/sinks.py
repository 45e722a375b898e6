"""
Snapshot sinks: where serialized snapshots end up.

A sink receives a suggested name and the JSON text and returns an identifier
for what it stored. A sink may raise SaveCancelled when the user declines the
save; the BackupManager treats that as a non-error.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from ..errors import StorageError
from ..storage.base import StorageBackend

SNAPSHOT_EXTENSION = ".json"


class SnapshotSink(ABC):
    """
    Abstract base class for snapshot destinations.
    """

    @abstractmethod
    def save(self, name: str, text: str) -> str:
        """
        Store a serialized snapshot.

        Args:
            name: Suggested name, without extension
            text: Snapshot JSON

        Returns:
            Identifier of the stored snapshot (a path or file name)

        Raises:
            SaveCancelled: If the user declined to save
        """
        pass


class DirectorySnapshotSink(SnapshotSink):
    """Writes snapshots as <name>.json files into a local directory."""

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def save(self, name: str, text: str) -> str:
        self.directory.mkdir(parents=True, exist_ok=True)
        file_path = self.directory / f"{name}{SNAPSHOT_EXTENSION}"
        with open(file_path, 'w', encoding='utf-8') as f:
            f.write(text)
        logging.info(f"Snapshot written to {file_path}")
        return str(file_path)


class StorageSnapshotSink(SnapshotSink):
    """
    Writes snapshots through a storage backend.

    When no directory handle is given, snapshots go to a subdirectory of the
    backend's root.
    """

    def __init__(self, storage: StorageBackend, directory: Optional[Any] = None,
                 subdirectory: str = "backups"):
        self.storage = storage
        self.directory = directory
        self.subdirectory = subdirectory

    def save(self, name: str, text: str) -> str:
        directory = self.directory
        if directory is None:
            directory = self.storage.create_subdirectory(self.storage.select_root(), self.subdirectory)
            self.directory = directory

        file_name = f"{name}{SNAPSHOT_EXTENSION}"
        try:
            self.storage.write_entry(directory, file_name, text, create=True)
        except StorageError as e:
            logging.error(f"Failed to write snapshot {file_name}: {e}")
            raise

        logging.info(f"Snapshot written as {file_name}")
        return file_name
