"""
Migration orchestrator for noteferry.

Runs the pipeline that moves a record collection from a RecordSource to a
StorageBackend:

    preparing -> backing-up (optional) -> migrating -> validating -> completed

with error reachable from any stage. Records are processed one at a time; a
failing record is reported and skipped, while failures to read the source,
save the backup or set up the target layout end the run.
"""

import logging
import math
import time
from typing import Callable, List, Optional, Tuple

from ..errors import LayoutError, NoteferryError, RecordConflictError, SourceError, StorageError
from ..models import (
    DurationEstimate,
    MigrationOptions,
    MigrationProgress,
    MigrationResult,
    MigrationStage,
    MigrationSummary,
    Record,
)
from ..storage.base import DirHandle, StorageBackend
from .backup import BackupManager
from .cleaner import RecordCleaner
from .validator import MigrationValidator

ProgressCallback = Callable[[MigrationProgress], None]


class MigrationOrchestrator:
    """
    Coordinates cleaning, backup, conversion, writing and validation.
    """

    def __init__(self, source, storage: StorageBackend, converter,
                 cleaner: RecordCleaner, backup_manager: BackupManager,
                 validator: MigrationValidator,
                 progress_callback: Optional[ProgressCallback] = None,
                 notes_dir_name: str = "notes", trash_dir_name: str = "trash",
                 test_dir_name: str = "migration-test", per_record_ms: int = 100):
        """
        Initialize the orchestrator.

        Args:
            source: RecordSource the records are read from
            storage: Backend the documents are written to
            converter: DocumentConverter turning records into documents
            cleaner: Cleaner applied to the source records
            backup_manager: Takes the pre-migration snapshot
            validator: Checks the written documents
            progress_callback: Receives a MigrationProgress at every step
            notes_dir_name: Subdirectory for active records
            trash_dir_name: Subdirectory for trashed records
            test_dir_name: Scratch subdirectory used by test_migration
            per_record_ms: Per-record cost used by estimate_duration
        """
        self.source = source
        self.storage = storage
        self.converter = converter
        self.cleaner = cleaner
        self.backup_manager = backup_manager
        self.validator = validator
        self.progress_callback = progress_callback
        self.notes_dir_name = notes_dir_name
        self.trash_dir_name = trash_dir_name
        self.test_dir_name = test_dir_name
        self.per_record_ms = per_record_ms
        self.progress = MigrationProgress(stage=MigrationStage.PREPARING)

    def migrate(self, options: Optional[MigrationOptions] = None) -> MigrationResult:
        """
        Run a full migration.

        Never raises: fatal failures end the run in the error stage with a
        "Critical migration failure" entry in the result.

        Args:
            options: Migration options

        Returns:
            The migration result; success is true iff no error was recorded
        """
        options = options or MigrationOptions()
        result = MigrationResult(stage=MigrationStage.PREPARING)
        started = time.monotonic()
        total = 0

        logging.info("Starting migration")
        self._emit(MigrationStage.PREPARING, 0, 0)

        try:
            records = self._load_records(result)
            active, trash = self._partition(records)
            trash_to_write = trash if options.include_trash else []
            total = len(active) + len(trash_to_write)
            logging.info(f"Found {len(active)} active and {len(trash)} trashed records")

            if options.create_backup:
                result.stage = MigrationStage.BACKING_UP
                self._emit(MigrationStage.BACKING_UP, 0, len(records))
                result.backup_path = self.backup_manager.create_migration_backup(records)
                if result.backup_path is None:
                    result.warnings.append("Backup save was cancelled; continuing without a backup")

            _, notes_dir, trash_dir = self._initialize_layout(options.target_root, options.include_trash)

            result.stage = MigrationStage.MIGRATING
            self._emit(MigrationStage.MIGRATING, 0, total)

            written_active, notes_files = self._write_records(
                active, notes_dir, options.overwrite_existing, result, 0, total
            )
            written_trash, trash_files = self._write_records(
                trash_to_write, trash_dir, options.overwrite_existing, result, len(active), total
            )
            result.migrated_records = len(written_active)
            result.migrated_trash = len(written_trash)

            result.stage = MigrationStage.VALIDATING
            self._emit(MigrationStage.VALIDATING, total, total)

            validation = self.validator.validate_migrated_data(
                notes_dir, trash_dir, written_active, written_trash, notes_files, trash_files
            )
            result.validation = validation
            result.errors.extend(validation.errors)
            result.warnings.extend(validation.warnings)

        except Exception as e:
            return self._fail(result, e, total)

        result.success = not result.errors
        result.stage = MigrationStage.COMPLETED
        self._emit(MigrationStage.COMPLETED, total, total)

        elapsed = time.monotonic() - started
        logging.info(
            f"Migration finished in {elapsed:.1f}s: {result.migrated_records} records, "
            f"{result.migrated_trash} in trash, {len(result.errors)} errors, {len(result.warnings)} warnings"
        )
        return result

    def test_migration(self, target_root: Optional[DirHandle] = None, max_records: int = 3) -> MigrationResult:
        """
        Dry run: write a few records into a scratch subdirectory.

        Only the layout and write steps run; there is no backup and no
        validation, and existing scratch files are overwritten.

        Args:
            target_root: Root to create the scratch directory under
                (the storage backend selects one when omitted)
            max_records: Maximum number of records to write

        Returns:
            The result of the dry run
        """
        result = MigrationResult(stage=MigrationStage.PREPARING)
        total = 0
        self._emit(MigrationStage.PREPARING, 0, 0)

        try:
            active, trash = self._partition(self._load_records(result))
            sample_active = active[:max_records]
            sample_trash = trash[:max(0, max_records - len(sample_active))]
            total = len(sample_active) + len(sample_trash)

            root = target_root if target_root is not None else self._select_root()
            scratch = self._create_directory(root, self.test_dir_name)
            _, notes_dir, trash_dir = self._initialize_layout(scratch, bool(sample_trash))

            result.stage = MigrationStage.MIGRATING
            self._emit(MigrationStage.MIGRATING, 0, total)

            written_active, _ = self._write_records(sample_active, notes_dir, True, result, 0, total)
            written_trash, _ = self._write_records(
                sample_trash, trash_dir, True, result, len(sample_active), total
            )
            result.migrated_records = len(written_active)
            result.migrated_trash = len(written_trash)

        except Exception as e:
            return self._fail(result, e, total)

        result.success = not result.errors
        result.stage = MigrationStage.COMPLETED
        self._emit(MigrationStage.COMPLETED, total, total)
        logging.info(f"Test migration wrote {result.migrated_records + result.migrated_trash} of {total} records")
        return result

    def estimate_duration(self, total_records: int) -> DurationEstimate:
        """Linear estimate of how long migrating total_records will take."""
        total_seconds = math.ceil(max(0, total_records) * self.per_record_ms / 1000)
        return DurationEstimate(
            total_seconds=total_seconds,
            minutes=total_seconds // 60,
            seconds=total_seconds % 60
        )

    def has_data_to_migrate(self) -> MigrationSummary:
        """Count what the source holds. An unreadable source counts as empty."""
        try:
            records = self._load_records(MigrationResult())
        except SourceError as e:
            logging.error(f"Failed to check source data: {e}")
            return MigrationSummary(has_data=False, active=0, trash=0)

        active, trash = self._partition(records)
        return MigrationSummary(has_data=bool(records), active=len(active), trash=len(trash))

    def _load_records(self, result: MigrationResult) -> List[Record]:
        """Load, clean, dedupe and sort the source records."""
        try:
            raw_records = self.source.load_records()
        except SourceError:
            raise
        except Exception as e:
            raise SourceError(f"Cannot read source records: {e}") from e

        cleaning = self.cleaner.clean_collection(raw_records)
        result.warnings.extend(cleaning.fixed_issues)
        result.errors.extend(f"Record could not be cleaned: {issue}" for issue in cleaning.unfixable_issues)

        unique = self.cleaner.remove_duplicates(cleaning.cleaned_records)
        if len(unique) != len(cleaning.cleaned_records):
            result.warnings.append(
                f"Skipped {len(cleaning.cleaned_records) - len(unique)} records with duplicate ids"
            )
        return self.cleaner.sort_by_updated_desc(unique)

    @staticmethod
    def _partition(records: List[Record]) -> Tuple[List[Record], List[Record]]:
        active = [record for record in records if not record.is_deleted]
        trash = [record for record in records if record.is_deleted]
        return active, trash

    def _initialize_layout(self, root: Optional[DirHandle],
                           include_trash: bool) -> Tuple[DirHandle, DirHandle, Optional[DirHandle]]:
        if root is None:
            root = self._select_root()
        notes_dir = self._create_directory(root, self.notes_dir_name)
        trash_dir = self._create_directory(root, self.trash_dir_name) if include_trash else None
        return root, notes_dir, trash_dir

    def _select_root(self) -> DirHandle:
        try:
            return self.storage.select_root()
        except StorageError as e:
            raise LayoutError(f"Cannot select target directory: {e}") from e

    def _create_directory(self, parent: DirHandle, name: str) -> DirHandle:
        try:
            return self.storage.create_subdirectory(parent, name)
        except StorageError as e:
            raise LayoutError(f"Cannot create directory '{name}': {e}") from e

    def _write_records(self, records: List[Record], directory: Optional[DirHandle], overwrite: bool,
                       result: MigrationResult, offset: int, total: int) -> Tuple[List[Record], List[str]]:
        """
        Convert and write records one by one.

        Returns:
            Tuple of (records written, file names written)
        """
        written: List[Record] = []
        names: List[str] = []
        used = set()

        for index, record in enumerate(records):
            name = self._unique_name(self.converter.generate_file_name(record.title), used)
            used.add(name)
            error = None

            try:
                text = self.converter.to_document(record)
                if not overwrite and self.storage.entry_exists(directory, name):
                    raise RecordConflictError(name)
                self.storage.write_entry(directory, name, text, create=True)
                written.append(record)
                names.append(name)
            except Exception as e:
                error = f'Failed to migrate "{record.title}" ({name}): {e}'
                logging.error(error)
                result.errors.append(error)

            self._emit(MigrationStage.MIGRATING, offset + index + 1, total, record.title, error)

        return written, names

    @staticmethod
    def _unique_name(name: str, used: set) -> str:
        """Suffix -2, -3, ... to names already taken earlier in the same run."""
        if name not in used:
            return name
        stem, dot, extension = name.rpartition(".")
        if not dot:
            stem, extension = name, ""
        counter = 2
        while True:
            candidate = f"{stem}-{counter}{dot}{extension}"
            if candidate not in used:
                return candidate
            counter += 1

    def _fail(self, result: MigrationResult, error: Exception, total: int) -> MigrationResult:
        message = f"Critical migration failure: {error}"
        if isinstance(error, NoteferryError):
            logging.error(message)
        else:
            logging.exception(message)

        result.errors.append(message)
        result.success = False
        result.stage = MigrationStage.ERROR
        self._emit(MigrationStage.ERROR, self.progress.processed, total, error=str(error))
        return result

    def _emit(self, stage: MigrationStage, processed: int, total: int,
              current_item: Optional[str] = None, error: Optional[str] = None) -> None:
        self.progress = MigrationProgress(
            stage=stage,
            processed=processed,
            total=total,
            current_item=current_item,
            error=error
        )
        if self.progress_callback is not None:
            self.progress_callback(self.progress)
