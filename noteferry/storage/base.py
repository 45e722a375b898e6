"""
Storage-primitive interface for noteferry.

The migration core never touches files directly. Everything it reads or
writes goes through a StorageBackend, whose handles are opaque to the core.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List

DirHandle = Any
FileHandle = Any


@dataclass
class EntryMetadata:
    """Metadata of a stored file."""
    name: str
    size: int
    last_modified: datetime


class StorageBackend(ABC):
    """
    Abstract base class for storage backends.

    Implementations raise noteferry.errors.StorageError with one of the
    StorageErrorCode values when a primitive fails.
    """

    @abstractmethod
    def select_root(self) -> DirHandle:
        """
        Select the root directory that migrated documents are written under.

        Returns:
            A directory handle
        """
        pass

    @abstractmethod
    def list_entries(self, directory: DirHandle) -> List[FileHandle]:
        """
        List the files (not subdirectories) of a directory.

        Args:
            directory: Directory handle

        Returns:
            File handles, sorted by name
        """
        pass

    @abstractmethod
    def read_entry(self, file: FileHandle) -> str:
        """Read a file as UTF-8 text."""
        pass

    @abstractmethod
    def write_entry(self, directory: DirHandle, name: str, text: str, create: bool = True) -> FileHandle:
        """
        Write text to a file in a directory.

        Args:
            directory: Directory handle
            name: File name
            text: Content to write (replaces any existing content)
            create: Create the file if it does not exist

        Returns:
            The handle of the written file
        """
        pass

    @abstractmethod
    def entry_exists(self, directory: DirHandle, name: str) -> bool:
        """Check whether a file with this name exists in the directory."""
        pass

    @abstractmethod
    def create_subdirectory(self, directory: DirHandle, name: str) -> DirHandle:
        """Create (or open, if present) a subdirectory and return its handle."""
        pass

    @abstractmethod
    def entry_metadata(self, file: FileHandle) -> EntryMetadata:
        """Return name, size and modification time of a file."""
        pass
