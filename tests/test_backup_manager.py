"""
Tests for snapshot creation, saving and restore.
"""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from noteferry.errors import BackupError, SaveCancelled, StorageErrorCode
from noteferry.migration import BackupManager, DirectorySnapshotSink, SnapshotSink, StorageSnapshotSink
from noteferry.models import Record, RestoreOptions, SnapshotKind
from noteferry.sources import MockRecordSource
from noteferry.storage import MemoryStorage

T1 = datetime(2024, 5, 1, 10, 0, 0, 123000, tzinfo=timezone.utc)


class RecordingSink(SnapshotSink):
    """Keeps saved snapshots in a dict, or fails in a chosen way."""

    def __init__(self, cancel: bool = False, error: Exception = None):
        self.cancel = cancel
        self.error = error
        self.saved = {}

    def save(self, name: str, text: str) -> str:
        if self.cancel:
            raise SaveCancelled("dismissed")
        if self.error is not None:
            raise self.error
        self.saved[name] = text
        return name


@pytest.fixture
def records():
    return MockRecordSource(count=3, trash_count=2).load_records()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def manager(sink):
    return BackupManager(sink=sink)


def test_snapshot_counts(manager, records):
    snapshot = manager.create_snapshot(records, SnapshotKind.MIGRATION)

    assert snapshot.version == "1.0.0"
    assert snapshot.metadata.total == 5
    assert snapshot.metadata.active == 3
    assert snapshot.metadata.deleted == 2
    assert snapshot.metadata.kind == SnapshotKind.MIGRATION
    assert snapshot.timestamp.endswith("Z")


def test_migration_backup_is_saved(manager, sink, records):
    identifier = manager.create_migration_backup(records)

    assert identifier.startswith("backup-migration-")
    data = json.loads(sink.saved[identifier])
    assert data["metadata"] == {"total": 5, "active": 3, "deleted": 2, "kind": "migration"}
    assert len(data["records"]) == 5
    assert "createdAt" in data["records"][0]
    assert "created_at" not in data["records"][0]
    assert "deletedAt" not in data["records"][0]


def test_manual_backup_uses_given_name(manager, sink, records):
    assert manager.create_manual_backup(records, name="before-cleanup") == "before-cleanup"
    assert json.loads(sink.saved["before-cleanup"])["metadata"]["kind"] == "manual"


def test_default_snapshot_name():
    assert BackupManager.default_snapshot_name(SnapshotKind.MIGRATION).startswith("backup-migration-")
    name = BackupManager.default_snapshot_name(SnapshotKind.MANUAL)
    assert len(name) == len("backup-manual-YYYY-MM-DD-HHMMSS")


def test_cancelled_save_without_fallback_returns_none(records):
    manager = BackupManager(sink=RecordingSink(cancel=True))
    assert manager.create_migration_backup(records) is None


def test_cancelled_save_uses_fallback(records):
    fallback = RecordingSink()
    manager = BackupManager(sink=RecordingSink(cancel=True), fallback_sink=fallback)

    identifier = manager.create_migration_backup(records)

    assert identifier in fallback.saved


def test_failing_sink_raises_backup_error(records):
    manager = BackupManager(sink=RecordingSink(error=OSError("disk full")))

    with pytest.raises(BackupError) as excinfo:
        manager.create_migration_backup(records)

    assert excinfo.value.code == StorageErrorCode.WRITE_FAILED
    assert "disk full" in str(excinfo.value)


def test_no_sink_is_not_supported(records):
    with pytest.raises(BackupError) as excinfo:
        BackupManager().create_migration_backup(records)
    assert excinfo.value.code == StorageErrorCode.NOT_SUPPORTED


def test_validate_snapshot(manager, records):
    data = json.loads(manager.serialize_snapshot(manager.create_snapshot(records, SnapshotKind.MANUAL)))
    assert manager.validate_snapshot(data)
    assert manager.validate_snapshot(manager.create_snapshot(records, SnapshotKind.MANUAL))

    for broken in (
        {**data, "version": 1},
        {**data, "records": {}},
        {**data, "metadata": {**data["metadata"], "kind": "weekly"}},
        {**data, "metadata": {**data["metadata"], "total": "5"}},
        {key: value for key, value in data.items() if key != "timestamp"},
        [],
        None,
    ):
        assert not manager.validate_snapshot(broken)


def test_restore_round_trip(manager, records):
    snapshot = manager.create_snapshot(records, SnapshotKind.MIGRATION)
    data = manager.load_snapshot(manager.serialize_snapshot(snapshot))

    result = manager.restore(data)

    assert result.dropped == 0
    assert result.skipped_deleted == 0
    assert [r.model_dump() for r in result.records] == [r.model_dump() for r in records]


def test_restore_without_deleted(manager, records):
    result = manager.restore(manager.create_snapshot(records, SnapshotKind.MANUAL),
                             RestoreOptions(include_deleted=False, replace_all=True))

    assert len(result.records) == 3
    assert result.skipped_deleted == 2
    assert result.replace_all
    assert not any(record.is_deleted for record in result.records)


def test_restore_drops_malformed_records(manager):
    data = {
        "version": "1.0.0",
        "timestamp": "2024-05-01T10:00:00.000Z",
        "records": [
            {"id": "ok", "title": "Fine", "content": "", "createdAt": "2024-05-01T10:00:00.000Z",
             "updatedAt": "2024-05-01T11:00:00.000Z"},
            {"id": "", "title": "No id", "createdAt": "2024-05-01T10:00:00.000Z",
             "updatedAt": "2024-05-01T10:00:00.000Z"},
            {"id": "bad-date", "title": "T", "createdAt": "soon", "updatedAt": "2024-05-01T10:00:00.000Z"},
            "not a record",
        ],
        "metadata": {"total": 4, "active": 4, "deleted": 0, "kind": "manual"},
    }

    result = manager.restore(data)

    assert [r.id for r in result.records] == ["ok"]
    assert result.records[0].updated_at == datetime(2024, 5, 1, 11, 0, tzinfo=timezone.utc)
    assert result.dropped == 3


def test_restore_drops_records_with_out_of_range_dates(manager):
    data = {
        "version": "1.0.0",
        "timestamp": "2024-05-01T10:00:00.000Z",
        "records": [
            {"id": "ok", "title": "Fine", "content": "", "createdAt": "2024-05-01T10:00:00.000Z",
             "updatedAt": "2024-05-01T11:00:00.000Z"},
            {"id": "edge", "title": "Far future", "content": "",
             "createdAt": "9999-12-31T23:00:00-05:00", "updatedAt": "2024-05-01T10:00:00.000Z"},
        ],
        "metadata": {"total": 2, "active": 2, "deleted": 0, "kind": "manual"},
    }

    result = manager.restore(data)

    assert [r.id for r in result.records] == ["ok"]
    assert result.dropped == 1


def test_restore_invalid_snapshot(manager):
    with pytest.raises(BackupError) as excinfo:
        manager.restore({"version": "1.0.0"})
    assert excinfo.value.code == StorageErrorCode.READ_FAILED


def test_load_snapshot_rejects_bad_json(manager):
    with pytest.raises(BackupError):
        manager.load_snapshot("{not json")
    with pytest.raises(BackupError):
        manager.load_snapshot("[1, 2]")


def test_snapshot_info(manager, records):
    snapshot = manager.create_snapshot(records, SnapshotKind.MANUAL)
    info = manager.get_snapshot_info(snapshot)

    assert info.version == "1.0.0"
    assert info.total == 5
    assert info.active == 3
    assert info.deleted == 2
    assert info.kind == "manual"
    assert info.is_valid
    assert info.timestamp is not None


def test_snapshot_info_tolerates_garbage(manager):
    info = manager.get_snapshot_info({"metadata": "nope"})

    assert info.version == "unknown"
    assert info.kind == "unknown"
    assert info.total == 0
    assert info.timestamp is None
    assert not info.is_valid


def test_estimate_size(manager, records):
    size = manager.estimate_size(records)

    assert size["bytes"] > 0
    assert size["kb"] == round(size["bytes"] / 1024)
    assert size["mb"] == 0
    assert manager.estimate_size([])["bytes"] == 2


def test_directory_sink(tmp_path, records):
    manager = BackupManager(sink=DirectorySnapshotSink(str(tmp_path / "backups")))

    path = manager.create_manual_backup(records, name="snap")

    assert Path(path) == tmp_path / "backups" / "snap.json"
    data = manager.load_snapshot(Path(path).read_text(encoding="utf-8"))
    assert manager.validate_snapshot(data)


def test_storage_sink(records):
    storage = MemoryStorage()
    manager = BackupManager(sink=StorageSnapshotSink(storage))

    identifier = manager.create_manual_backup(records, name="snap")

    assert identifier == "snap.json"
    backups = storage.get_directory("backups")
    assert backups is not None
    assert json.loads(backups.files["snap.json"].text)["metadata"]["total"] == 5


def test_storage_sink_write_failure(records):
    storage = MemoryStorage()
    storage.fail_writes.add("snap.json")
    manager = BackupManager(sink=StorageSnapshotSink(storage))

    with pytest.raises(BackupError) as excinfo:
        manager.create_manual_backup(records, name="snap")
    assert excinfo.value.code == StorageErrorCode.WRITE_FAILED


def test_restore_accepts_snake_case_keys(manager):
    record = Record(id="x", title="T", created_at=T1, updated_at=T1 + timedelta(minutes=1))
    data = {
        "version": "1.0.0",
        "timestamp": "2024-05-01T10:00:00.000Z",
        "records": [record.model_dump(mode="json")],
        "metadata": {"total": 1, "active": 1, "deleted": 0, "kind": "manual"},
    }

    result = manager.restore(data)

    assert [r.model_dump() for r in result.records] == [record.model_dump()]
