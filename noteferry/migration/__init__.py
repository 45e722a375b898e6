"""Migration pipeline: cleaning, backup, orchestration and validation."""

from .cleaner import RecordCleaner
from .sinks import SnapshotSink, DirectorySnapshotSink, StorageSnapshotSink
from .backup import BackupManager
from .validator import MigrationValidator
from .orchestrator import MigrationOrchestrator

__all__ = [
    "RecordCleaner",
    "SnapshotSink",
    "DirectorySnapshotSink",
    "StorageSnapshotSink",
    "BackupManager",
    "MigrationValidator",
    "MigrationOrchestrator",
]
