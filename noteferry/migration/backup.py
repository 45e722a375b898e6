"""
Backup and restore of record collections.

A backup is a Snapshot serialized as indented JSON:

    {
      "version": "1.0.0",
      "timestamp": "2024-05-01T10:00:00.000Z",
      "records": [{"id": ..., "createdAt": ..., ...}],
      "metadata": {"total": 3, "active": 2, "deleted": 1, "kind": "migration"}
    }
"""

import json
import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from ..errors import BackupError, SaveCancelled, StorageErrorCode
from ..models import (
    Record,
    RestoreOptions,
    RestoreResult,
    Snapshot,
    SnapshotInfo,
    SnapshotKind,
    SnapshotMetadata,
)
from ..timestamps import format_timestamp, parse_timestamp, utc_now
from .cleaner import RecordCleaner
from .sinks import SnapshotSink

SNAPSHOT_VERSION = "1.0.0"

_KINDS = {kind.value for kind in SnapshotKind}


class BackupManager:
    """
    Creates, saves, validates and restores snapshots.
    """

    def __init__(self, sink: Optional[SnapshotSink] = None,
                 fallback_sink: Optional[SnapshotSink] = None,
                 version: str = SNAPSHOT_VERSION,
                 cleaner: Optional[RecordCleaner] = None):
        """
        Initialize the backup manager.

        Args:
            sink: Primary destination for saved snapshots
            fallback_sink: Used when the primary sink reports a cancelled save
            version: Version string written into new snapshots
            cleaner: Cleaner used to coerce restored records
        """
        self.sink = sink
        self.fallback_sink = fallback_sink
        self.version = version
        self.cleaner = cleaner or RecordCleaner()

    def create_snapshot(self, records: Iterable[Record], kind: SnapshotKind) -> Snapshot:
        """
        Build a snapshot of a record collection.

        Args:
            records: Records to include
            kind: Why the snapshot is taken

        Returns:
            The snapshot, with counts derived from is_deleted
        """
        records = list(records)
        deleted = sum(1 for record in records if record.is_deleted)

        return Snapshot(
            version=self.version,
            timestamp=format_timestamp(utc_now()),
            records=records,
            metadata=SnapshotMetadata(
                total=len(records),
                active=len(records) - deleted,
                deleted=deleted,
                kind=SnapshotKind(kind)
            )
        )

    def create_migration_backup(self, records: Iterable[Record]) -> Optional[str]:
        """Snapshot and save records ahead of a migration."""
        snapshot = self.create_snapshot(records, SnapshotKind.MIGRATION)
        return self.save_snapshot(snapshot)

    def create_manual_backup(self, records: Iterable[Record], name: Optional[str] = None) -> Optional[str]:
        """Snapshot and save records on request."""
        snapshot = self.create_snapshot(records, SnapshotKind.MANUAL)
        return self.save_snapshot(snapshot, name)

    def save_snapshot(self, snapshot: Snapshot, name: Optional[str] = None) -> Optional[str]:
        """
        Serialize a snapshot and hand it to the sink.

        A cancelled save is not an error: the fallback sink is tried if there
        is one, otherwise None is returned.

        Args:
            snapshot: The snapshot to save
            name: File name without extension (derived from kind and time when omitted)

        Returns:
            Identifier of the saved snapshot, or None if the save was cancelled

        Raises:
            BackupError: If no sink is configured or the sink fails
        """
        sink = self.sink or self.fallback_sink
        if sink is None:
            raise BackupError(StorageErrorCode.NOT_SUPPORTED, "No snapshot destination configured")

        name = name or self.default_snapshot_name(snapshot.metadata.kind)
        text = self.serialize_snapshot(snapshot)

        try:
            identifier = sink.save(name, text)
        except SaveCancelled:
            logging.info("Snapshot save was cancelled")
            if self.fallback_sink is None or sink is self.fallback_sink:
                return None
            identifier = self._save_to_fallback(name, text)
        except Exception as e:
            raise BackupError(StorageErrorCode.WRITE_FAILED, f"Failed to save snapshot: {e}", e)

        if identifier is not None:
            logging.info(f"Saved {snapshot.metadata.kind.value} snapshot with {snapshot.metadata.total} records: {identifier}")
        return identifier

    @staticmethod
    def default_snapshot_name(kind: SnapshotKind) -> str:
        """backup-<kind>-YYYY-MM-DD-HHMMSS"""
        return f"backup-{SnapshotKind(kind).value}-{utc_now().strftime('%Y-%m-%d-%H%M%S')}"

    @staticmethod
    def serialize_snapshot(snapshot: Snapshot) -> str:
        """Render a snapshot as indented JSON with camelCase record keys."""
        data = snapshot.model_dump(mode="json", by_alias=True, exclude_none=True)
        return json.dumps(data, indent=2, ensure_ascii=False)

    @staticmethod
    def load_snapshot(text: str) -> Dict[str, Any]:
        """
        Parse snapshot JSON without validating it.

        Raises:
            BackupError: If the text is not a JSON object
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise BackupError(StorageErrorCode.READ_FAILED, f"Snapshot is not valid JSON: {e}", e)

        if not isinstance(data, dict):
            raise BackupError(StorageErrorCode.READ_FAILED, "Snapshot must be a JSON object")
        return data

    @staticmethod
    def validate_snapshot(data: Any) -> bool:
        """
        Structural check of a snapshot.

        Version and timestamp must be strings, records a list, and metadata
        must carry three numeric counts and a known kind.
        """
        if isinstance(data, Snapshot):
            return True
        if not isinstance(data, Mapping):
            return False

        if not isinstance(data.get("version"), str) or not isinstance(data.get("timestamp"), str):
            return False
        if not isinstance(data.get("records"), list):
            return False

        metadata = data.get("metadata")
        if not isinstance(metadata, Mapping):
            return False
        for key in ("total", "active", "deleted"):
            value = metadata.get(key)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                return False

        return metadata.get("kind") in _KINDS

    def restore(self, snapshot: Any, options: Optional[RestoreOptions] = None) -> RestoreResult:
        """
        Extract the records of a snapshot for re-insertion.

        Records that fail the shape check are dropped and counted; string
        dates are coerced. Clearing the target store when replace_all is set
        is up to the caller.

        Args:
            snapshot: A Snapshot or its decoded JSON
            options: Restore options

        Returns:
            RestoreResult with the records to insert

        Raises:
            BackupError: If the snapshot as a whole is malformed
        """
        options = options or RestoreOptions()

        if isinstance(snapshot, Snapshot):
            snapshot = snapshot.model_dump(mode="json", by_alias=True, exclude_none=True)
        if not self.validate_snapshot(snapshot):
            raise BackupError(StorageErrorCode.READ_FAILED, "Invalid snapshot format")

        result = RestoreResult(replace_all=options.replace_all)

        for raw in snapshot["records"]:
            if not self._has_record_shape(raw):
                result.dropped += 1
                continue

            record, _ = self.cleaner.clean(raw)
            if record.is_deleted and not options.include_deleted:
                result.skipped_deleted += 1
                continue
            result.records.append(record)

        if result.dropped:
            logging.warning(f"{result.dropped} invalid records were ignored during restore")
        logging.info(f"Restored {len(result.records)} records from snapshot")

        return result

    @staticmethod
    def get_snapshot_info(data: Any) -> SnapshotInfo:
        """Summarize a snapshot, tolerating missing or malformed fields."""
        if isinstance(data, Snapshot):
            data = data.model_dump(mode="json", by_alias=True)
        if not isinstance(data, Mapping):
            data = {}

        metadata = data.get("metadata")
        if not isinstance(metadata, Mapping):
            metadata = {}

        def count(key: str) -> int:
            value = metadata.get(key)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                return 0
            return int(value)

        version = data.get("version")
        kind = metadata.get("kind")
        return SnapshotInfo(
            version=version if isinstance(version, str) else "unknown",
            timestamp=parse_timestamp(data.get("timestamp")) if isinstance(data.get("timestamp"), str) else None,
            total=count("total"),
            active=count("active"),
            deleted=count("deleted"),
            kind=kind if isinstance(kind, str) else "unknown",
            is_valid=BackupManager.validate_snapshot(data)
        )

    @staticmethod
    def estimate_size(records: Iterable[Record]) -> Dict[str, int]:
        """Approximate size of the serialized records."""
        payload = [record.to_json_dict() for record in records]
        size = len(json.dumps(payload, indent=2, ensure_ascii=False).encode('utf-8'))
        return {
            "bytes": size,
            "kb": round(size / 1024),
            "mb": round(size / (1024 * 1024))
        }

    def _save_to_fallback(self, name: str, text: str) -> Optional[str]:
        try:
            return self.fallback_sink.save(name, text)
        except SaveCancelled:
            logging.info("Fallback snapshot save was cancelled")
            return None
        except Exception as e:
            raise BackupError(StorageErrorCode.WRITE_FAILED, f"Failed to save snapshot: {e}", e)

    @staticmethod
    def _has_record_shape(raw: Any) -> bool:
        if not isinstance(raw, Mapping):
            return False
        if not isinstance(raw.get("id"), str) or not raw["id"]:
            return False
        if not isinstance(raw.get("title"), str) or not isinstance(raw.get("content", ""), str):
            return False
        for keys in (("createdAt", "created_at"), ("updatedAt", "updated_at")):
            value = next((raw[key] for key in keys if key in raw), None)
            if parse_timestamp(value) is None:
                return False
        return True
