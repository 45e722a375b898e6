"""
In-memory storage backend.

Used for tests and dry runs, in the same spirit as the mock record source.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Set

from ..errors import StorageError, StorageErrorCode
from ..timestamps import utc_now
from .base import EntryMetadata, StorageBackend


@dataclass
class MemoryFile:
    """A file held in memory."""
    name: str
    path: str
    text: str = ""
    last_modified: datetime = field(default_factory=utc_now)


@dataclass
class MemoryDirectory:
    """A directory held in memory."""
    name: str
    path: str
    files: Dict[str, MemoryFile] = field(default_factory=dict)
    children: Dict[str, "MemoryDirectory"] = field(default_factory=dict)


class MemoryStorage(StorageBackend):
    """
    Storage backend that keeps everything in memory.

    Individual file names can be made to fail on write or read to exercise
    error handling.
    """

    def __init__(self):
        self.root = MemoryDirectory(name="", path="")
        self.fail_writes: Set[str] = set()
        self.fail_reads: Set[str] = set()
        self.write_count = 0

    def select_root(self) -> MemoryDirectory:
        return self.root

    def list_entries(self, directory: MemoryDirectory) -> List[MemoryFile]:
        return [directory.files[name] for name in sorted(directory.files)]

    def read_entry(self, file: MemoryFile) -> str:
        if file.name in self.fail_reads:
            raise StorageError(StorageErrorCode.READ_FAILED, "Simulated read failure", file.path)
        return file.text

    def write_entry(self, directory: MemoryDirectory, name: str, text: str, create: bool = True) -> MemoryFile:
        path = f"{directory.path}/{name}"
        if name in self.fail_writes:
            raise StorageError(StorageErrorCode.WRITE_FAILED, "Simulated write failure", path)

        existing = directory.files.get(name)
        if existing is None:
            if not create:
                raise StorageError(StorageErrorCode.FILE_NOT_FOUND, "File not found", path)
            existing = MemoryFile(name=name, path=path)
            directory.files[name] = existing

        existing.text = text
        existing.last_modified = utc_now()
        self.write_count += 1
        return existing

    def entry_exists(self, directory: MemoryDirectory, name: str) -> bool:
        return name in directory.files

    def create_subdirectory(self, directory: MemoryDirectory, name: str) -> MemoryDirectory:
        child = directory.children.get(name)
        if child is None:
            child = MemoryDirectory(name=name, path=f"{directory.path}/{name}")
            directory.children[name] = child
        return child

    def entry_metadata(self, file: MemoryFile) -> EntryMetadata:
        return EntryMetadata(
            name=file.name,
            size=len(file.text.encode('utf-8')),
            last_modified=file.last_modified
        )

    def get_directory(self, path: str) -> Optional[MemoryDirectory]:
        """Look up a directory by slash-separated path relative to the root."""
        directory = self.root
        for part in [p for p in path.split('/') if p]:
            directory = directory.children.get(part)
            if directory is None:
                return None
        return directory
