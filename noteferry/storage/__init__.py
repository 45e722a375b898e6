"""Storage backends consumed by the migration pipeline."""

from .base import StorageBackend, EntryMetadata
from .local import LocalDirectoryStorage
from .memory import MemoryStorage, MemoryDirectory, MemoryFile

__all__ = [
    "StorageBackend",
    "EntryMetadata",
    "LocalDirectoryStorage",
    "MemoryStorage",
    "MemoryDirectory",
    "MemoryFile",
]
