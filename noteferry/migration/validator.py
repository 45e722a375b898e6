"""
Post-migration validation.

Reads migrated documents back through the storage backend, re-parses them and
compares each one with the record it was written from. Discrepancies are
split into hard errors (the migration is not a success) and warnings.
"""

import logging
import re
from typing import Any, Iterable, List, Mapping, Optional, Set, Union

from ..errors import ParseError, StorageError
from ..models import FileValidationResult, Record, ValidationResult
from ..storage.base import DirHandle, FileHandle, StorageBackend
from ..timestamps import parse_timestamp

_WHITESPACE_RE = re.compile(r'\s+')

Originals = Union[Mapping[str, Record], Iterable[Record]]


class MigrationValidator:
    """
    Validates migrated documents against their original records.
    """

    def __init__(self, storage: StorageBackend, converter: Any,
                 tolerance_ms: int = 2000,
                 error_rate_threshold: float = 0.10,
                 warning_rate_threshold: float = 0.05):
        """
        Initialize the validator.

        Args:
            storage: Backend the documents were written to
            converter: DocumentConverter used to parse documents
            tolerance_ms: Allowed timestamp drift before a warning
            error_rate_threshold: Bad-file ratio above which validation fails
            warning_rate_threshold: Bad-file ratio above which a warning is added
        """
        self.storage = storage
        self.converter = converter
        self.tolerance_ms = tolerance_ms
        self.error_rate_threshold = error_rate_threshold
        self.warning_rate_threshold = warning_rate_threshold

    def validate_migrated_data(self, notes_dir: DirHandle, trash_dir: Optional[DirHandle],
                               original_active: List[Record], original_trash: List[Record],
                               notes_files: Optional[Iterable[str]] = None,
                               trash_files: Optional[Iterable[str]] = None) -> ValidationResult:
        """
        Validate the active and trash directories of a migration.

        Args:
            notes_dir: Directory holding active documents
            trash_dir: Directory holding trashed documents (None to skip)
            original_active: Active records that were migrated
            original_trash: Trashed records that were migrated
            notes_files: Only validate these file names in notes_dir
            trash_files: Only validate these file names in trash_dir

        Returns:
            The aggregated validation result
        """
        result = ValidationResult()
        stats = result.statistics
        stats.total_records_original = len(original_active)
        stats.total_trash_original = len(original_trash)

        sets = [("notes", notes_dir, original_active, notes_files)]
        if trash_dir is not None:
            sets.append(("trash", trash_dir, original_trash, trash_files))

        for label, directory, originals, names in sets:
            files = self._validate_directory(label, directory, originals, names, result)
            if label == "notes":
                stats.total_records_migrated = len(files)
            else:
                stats.total_trash_migrated = len(files)

        self._check_statistics(result)
        result.is_valid = not result.errors

        logging.info(
            f"Validation finished: {stats.valid_files} valid, {stats.invalid_files} invalid, "
            f"{stats.corrupted_files} corrupted, {len(result.errors)} errors, {len(result.warnings)} warnings"
        )
        return result

    def validate_file(self, file: FileHandle, originals: Originals,
                      file_name: Optional[str] = None) -> FileValidationResult:
        """Read one stored document and validate it."""
        if file_name is None:
            file_name = self._entry_name(file)

        try:
            text = self.storage.read_entry(file)
        except StorageError as e:
            fv = FileValidationResult(file_name=file_name, corrupted=True)
            fv.add_error(f"Cannot read file: {e}")
            return fv

        try:
            return self.validate_document(file_name, text, originals)
        except Exception as e:
            logging.warning(f"Could not validate {file_name}: {e}")
            fv = FileValidationResult(file_name=file_name, corrupted=True)
            fv.add_error(f"Cannot validate document: {e}")
            return fv

    def validate_document(self, file_name: str, text: str, originals: Originals) -> FileValidationResult:
        """
        Validate document text against the original records.

        Args:
            file_name: Name reported in the result
            text: The document text
            originals: Original records, as a list or keyed by id

        Returns:
            The per-file validation result
        """
        fv = FileValidationResult(file_name=file_name)

        try:
            self.converter.parse_document(text)
        except ParseError as e:
            fv.corrupted = True
            fv.add_error(f"Cannot parse document: {e}")
            return fv

        check = self.converter.validate_document_format(text)
        if not check.is_valid:
            fv.add_error(f"Invalid format: {check.error}")
            return fv

        migrated = self.converter.from_document(text)
        fv.migrated = migrated

        original = self._index(originals).get(migrated.id)
        if original is None:
            fv.add_warning(f"No original record found for id {migrated.id}")
            return fv

        fv.original = original
        self.compare_records(original, migrated, fv)
        return fv

    def compare_records(self, original: Record, migrated: Record,
                        fv: Optional[FileValidationResult] = None) -> FileValidationResult:
        """
        Compare an original record with its migrated counterpart.

        Args:
            original: The source record
            migrated: The record parsed back from the document
            fv: Result to add findings to (a new one is created when omitted)

        Returns:
            The result holding the findings
        """
        if fv is None:
            fv = FileValidationResult(file_name=self.converter.generate_file_name(original.title))

        if original.id != migrated.id:
            fv.add_error("Record id does not match")
        if original.title != migrated.title:
            fv.add_error("Record title does not match")
        if original.is_deleted != migrated.is_deleted:
            fv.add_error("Trash status does not match")

        if not self._content_matches(original, migrated):
            fv.add_warning("Record content was modified")

        self._compare_timestamp("Creation date", original.created_at, migrated.created_at, fv)
        self._compare_timestamp("Update date", original.updated_at, migrated.updated_at, fv)

        if original.deleted_at is not None and migrated.deleted_at is not None:
            if self._drift_ms(original.deleted_at, migrated.deleted_at) > self.tolerance_ms:
                fv.add_warning("Deletion date differs")
        elif original.deleted_at is not None:
            fv.add_error("Deletion date was lost in migration")
        elif migrated.deleted_at is not None:
            fv.add_warning("Deletion date was added in migration")

        if set(original.tags) != set(migrated.tags):
            fv.add_warning("Record tags were modified")

        return fv

    def validate_single_file(self, directory: DirHandle, name: str, originals: Originals) -> FileValidationResult:
        """Validate one document by name."""
        try:
            for file in self.storage.list_entries(directory):
                if self._entry_name(file) == name:
                    return self.validate_file(file, originals, name)
        except StorageError as e:
            fv = FileValidationResult(file_name=name, corrupted=True)
            fv.add_error(f"Cannot read directory: {e}")
            return fv

        fv = FileValidationResult(file_name=name, corrupted=True)
        fv.add_error("File not found")
        return fv

    def validate_document_quality(self, text: str) -> FileValidationResult:
        """
        Check a document on its own, without an original to compare with.

        Format problems are errors; an empty body and a creation date after the
        update date are warnings.
        """
        fv = FileValidationResult(file_name="")

        try:
            parsed = self.converter.parse_document(text)
        except ParseError as e:
            fv.corrupted = True
            fv.add_error(f"Cannot parse document: {e}")
            return fv

        check = self.converter.validate_document_format(text)
        if not check.is_valid:
            fv.add_error(f"Invalid format: {check.error}")
            return fv

        record = self.converter.from_document(text)
        fv.migrated = record
        fv.file_name = self.converter.generate_file_name(record.title)

        if not record.content.strip():
            fv.add_warning("Record content is empty")

        created = parse_timestamp(parsed.frontmatter.get("created"))
        updated = parse_timestamp(parsed.frontmatter.get("updated"))
        if created and updated and created > updated:
            fv.add_warning("Creation date is after the update date")

        return fv

    @staticmethod
    def generate_report(result: ValidationResult) -> str:
        """Render a validation result as a Markdown report."""
        stats = result.statistics
        status = "PASSED" if result.is_valid else "FAILED"

        report = "# Migration Validation Report\n\n"
        report += f"**Status**: {status}\n\n"
        report += "## Statistics\n"
        report += f"- **Original records**: {stats.total_records_original}\n"
        report += f"- **Migrated records**: {stats.total_records_migrated}\n"
        report += f"- **Original trash**: {stats.total_trash_original}\n"
        report += f"- **Migrated trash**: {stats.total_trash_migrated}\n"
        report += f"- **Valid files**: {stats.valid_files}\n"
        report += f"- **Invalid files**: {stats.invalid_files}\n"
        report += f"- **Corrupted files**: {stats.corrupted_files}\n"
        report += f"- **Count mismatches**: {stats.count_mismatches}\n\n"

        if result.errors:
            report += "## Errors\n"
            for error in result.errors:
                report += f"- {error}\n"
            report += "\n"

        if result.warnings:
            report += "## Warnings\n"
            for warning in result.warnings:
                report += f"- {warning}\n"
            report += "\n"

        return report

    def _validate_directory(self, label: str, directory: DirHandle, originals: List[Record],
                            names: Optional[Iterable[str]], result: ValidationResult) -> List[FileValidationResult]:
        wanted: Optional[Set[str]] = set(names) if names is not None else None
        stats = result.statistics

        try:
            entries = self.storage.list_entries(directory)
        except StorageError as e:
            result.errors.append(f"Cannot list {label} directory: {e}")
            return []

        by_id = self._index(originals)
        files = []
        for entry in entries:
            name = self._entry_name(entry)
            if wanted is not None and name not in wanted:
                continue
            if not name.endswith(self.converter.file_extension):
                continue

            fv = self.validate_file(entry, by_id, name)
            files.append(fv)
            result.files.append(fv)

            if fv.corrupted:
                stats.corrupted_files += 1
            elif fv.is_valid:
                stats.valid_files += 1
            else:
                stats.invalid_files += 1

            result.errors.extend(f"{label}/{name}: {error}" for error in fv.errors)
            result.warnings.extend(f"{label}/{name}: {warning}" for warning in fv.warnings)

        return files

    def _check_statistics(self, result: ValidationResult) -> None:
        stats = result.statistics

        if stats.total_records_original != stats.total_records_migrated:
            stats.count_mismatches += 1
            result.errors.append(
                f"Record count mismatch: {stats.total_records_original} original vs {stats.total_records_migrated} migrated"
            )
        if stats.total_trash_original != stats.total_trash_migrated:
            stats.count_mismatches += 1
            result.errors.append(
                f"Trash count mismatch: {stats.total_trash_original} original vs {stats.total_trash_migrated} migrated"
            )

        rate = stats.error_rate
        if rate > self.error_rate_threshold:
            result.errors.append(f"Error rate too high: {round(rate * 100)}% of files have problems")
        elif rate > self.warning_rate_threshold:
            result.warnings.append(f"Elevated error rate: {round(rate * 100)}% of files have problems")

    def _compare_timestamp(self, label: str, original: Any, migrated: Any, fv: FileValidationResult) -> None:
        if original is None or migrated is None:
            fv.add_error(f"{label} is missing or invalid")
            return
        if self._drift_ms(original, migrated) > self.tolerance_ms:
            fv.add_warning(f"{label} differs by more than {self.tolerance_ms} ms")

    def _content_matches(self, original: Record, migrated: Record) -> bool:
        expected = self._normalize(original.content)
        actual = self._normalize(migrated.content)
        if expected == actual:
            return True
        stripped = self.converter.strip_title_heading(original.content, original.title)
        return self._normalize(stripped) == actual

    def _entry_name(self, entry: FileHandle) -> str:
        return self.storage.entry_metadata(entry).name

    @staticmethod
    def _normalize(text: str) -> str:
        return _WHITESPACE_RE.sub(' ', text or '').strip()

    @staticmethod
    def _drift_ms(first, second) -> float:
        return abs((first - second).total_seconds()) * 1000

    @staticmethod
    def _index(originals: Originals) -> Mapping[str, Record]:
        if isinstance(originals, Mapping):
            return originals
        return {record.id: record for record in originals}
