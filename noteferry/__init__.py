"""
noteferry: migrates note record collections into frontmatter Markdown vaults.

Records are backed up, converted into documents, written through a storage
backend and validated against their originals.
"""

__version__ = "0.1.0"
__author__ = "noteferry Project"

# Import main components
from .models import Record, Snapshot, MigrationOptions, MigrationResult
from .documents import FrontmatterCodec, DocumentConverter
from .migration import RecordCleaner, BackupManager, MigrationValidator, MigrationOrchestrator
from .storage import StorageBackend, LocalDirectoryStorage, MemoryStorage
from .sources import RecordSource, DatabaseRecordSource, JsonRecordSource, MockRecordSource
from .database import RecordDatabase
from .versioning import VaultVersioner

__all__ = [
    "Record",
    "Snapshot",
    "MigrationOptions",
    "MigrationResult",
    "FrontmatterCodec",
    "DocumentConverter",
    "RecordCleaner",
    "BackupManager",
    "MigrationValidator",
    "MigrationOrchestrator",
    "StorageBackend",
    "LocalDirectoryStorage",
    "MemoryStorage",
    "RecordSource",
    "DatabaseRecordSource",
    "JsonRecordSource",
    "MockRecordSource",
    "RecordDatabase",
    "VaultVersioner",
]
