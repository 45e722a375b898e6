"""Data models for noteferry."""

from .record import Record
from .snapshot import (
    Snapshot,
    SnapshotInfo,
    SnapshotKind,
    SnapshotMetadata,
    RestoreOptions,
    RestoreResult,
)
from .results import (
    CleaningResult,
    DurationEstimate,
    FileValidationResult,
    MigrationOptions,
    MigrationProgress,
    MigrationResult,
    MigrationStage,
    MigrationSummary,
    ValidationResult,
    ValidationStatistics,
)

__all__ = [
    "Record",
    "Snapshot",
    "SnapshotInfo",
    "SnapshotKind",
    "SnapshotMetadata",
    "RestoreOptions",
    "RestoreResult",
    "CleaningResult",
    "DurationEstimate",
    "FileValidationResult",
    "MigrationOptions",
    "MigrationProgress",
    "MigrationResult",
    "MigrationStage",
    "MigrationSummary",
    "ValidationResult",
    "ValidationStatistics",
]
