"""
Snapshot models for backup and restore.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .record import Record


class SnapshotKind(str, Enum):
    """Why a snapshot was taken."""

    MIGRATION = "migration"
    MANUAL = "manual"


class SnapshotMetadata(BaseModel):
    """Counts derived from the snapshotted records."""

    total: int = Field(..., description="Number of records in the snapshot")
    active: int = Field(..., description="Records not in the trash")
    deleted: int = Field(..., description="Records in the trash")
    kind: SnapshotKind = Field(..., description="Snapshot kind")


class Snapshot(BaseModel):
    """
    A full, versioned export of a record collection.

    Snapshots are created once per backup request and never mutated.
    """

    version: str = Field(..., description="Snapshot format version")
    timestamp: str = Field(..., description="ISO-8601 creation time")
    records: List[Record] = Field(default_factory=list)
    metadata: SnapshotMetadata


class SnapshotInfo(BaseModel):
    """Summary of a (possibly invalid) snapshot, for display before restoring."""

    version: str
    timestamp: Optional[datetime]
    total: int
    active: int
    deleted: int
    kind: str
    is_valid: bool


class RestoreOptions(BaseModel):
    """How a snapshot should be restored."""

    replace_all: bool = Field(
        default=False,
        description="The caller clears the target store before inserting"
    )
    include_deleted: bool = Field(
        default=True,
        description="Restore trashed records as well"
    )


class RestoreResult(BaseModel):
    """Outcome of a restore."""

    records: List[Record] = Field(default_factory=list)
    dropped: int = Field(default=0, description="Records rejected by the shape check")
    skipped_deleted: int = Field(default=0, description="Trashed records left out")
    replace_all: bool = False
