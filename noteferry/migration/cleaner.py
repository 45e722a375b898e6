"""
Record cleaning for noteferry.

The RecordCleaner is the single normalization boundary of the system: raw
records from any source (database rows, JSON exports, decoded frontmatter)
pass through it once and come out as well-typed Record objects. Every repair
is reported as a human-readable fix string; nothing in here raises on bad
field values.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Tuple

from ..models import CleaningResult, Record
from ..timestamps import parse_timestamp, utc_now

DEFAULT_TITLE = "untitled"

_TRUE_STRINGS = {"true", "1", "yes", "y", "on"}

# Source keys accepted for each field, snake_case first
_FIELD_KEYS = {
    "id": ("id",),
    "title": ("title",),
    "content": ("content",),
    "tags": ("tags",),
    "created_at": ("created_at", "createdAt", "created"),
    "updated_at": ("updated_at", "updatedAt", "updated"),
    "is_deleted": ("is_deleted", "isDeleted"),
    "deleted_at": ("deleted_at", "deletedAt"),
}


class RecordCleaner:
    """
    Normalizes raw, possibly malformed records into Record objects.
    """

    def __init__(self, default_title: str = DEFAULT_TITLE):
        """
        Initialize the cleaner.

        Args:
            default_title: Title used when a record has no usable title
        """
        self.default_title = default_title

    def clean(self, raw: Any) -> Tuple[Record, List[str]]:
        """
        Clean a single record.

        Args:
            raw: A Record, or a mapping using snake_case or camelCase keys

        Returns:
            Tuple of (cleaned record, list of fixes applied)
        """
        fixes: List[str] = []
        data = self._as_mapping(raw, fixes)

        record_id = self._pick(data, "id")
        if not isinstance(record_id, str) or not record_id.strip():
            record_id = str(uuid.uuid4())
            fixes.append("Generated a new id")

        title = self._pick(data, "title")
        if not isinstance(title, str):
            title = self.default_title
            fixes.append(f"Non-string title replaced with '{self.default_title}'")
        elif not title.strip():
            title = self.default_title
            fixes.append(f"Empty title replaced with '{self.default_title}'")

        content = self._pick(data, "content")
        if content is None:
            content = ""
        elif not isinstance(content, str):
            content = str(content)
            fixes.append("Content converted to string")

        tags = self._clean_tags(self._pick(data, "tags"), fixes)

        created_at = self._clean_timestamp(self._pick(data, "created_at"), "creation date", fixes)
        updated_at = self._clean_timestamp(self._pick(data, "updated_at"), "update date", fixes)
        if updated_at < created_at:
            updated_at = created_at
            fixes.append("Update date moved forward to the creation date")

        raw_deleted_at = self._pick(data, "deleted_at")
        deleted_at = parse_timestamp(raw_deleted_at)
        if raw_deleted_at is not None and deleted_at is None:
            fixes.append("Invalid deletion date removed")

        is_deleted = self._clean_flag(self._pick(data, "is_deleted"), fixes)
        if is_deleted and deleted_at is None:
            deleted_at = updated_at
            fixes.append("Deletion date set to the update date")
        elif not is_deleted and deleted_at is not None:
            deleted_at = None
            fixes.append("Deletion date removed from a record that is not deleted")

        record = Record(
            id=record_id,
            title=title,
            content=content,
            tags=tags,
            created_at=created_at,
            updated_at=updated_at,
            is_deleted=is_deleted,
            deleted_at=deleted_at
        )
        return record, fixes

    def clean_collection(self, raw_records: Iterable[Any]) -> CleaningResult:
        """
        Clean every record of a collection.

        A record whose cleaning fails unexpectedly is reported in
        unfixable_issues and left out; all others are included.

        Args:
            raw_records: Raw records in source order

        Returns:
            CleaningResult with the cleaned records and issue lists
        """
        result = CleaningResult()

        for raw in raw_records:
            result.original_count += 1
            label = self._label(raw)
            try:
                record, fixes = self.clean(raw)
            except Exception as e:
                logging.warning(f"Could not clean record {label}: {e}")
                result.unfixable_issues.append(f"Record {label}: {e}")
                continue

            result.cleaned_records.append(record)
            result.cleaned_count += 1
            result.fixed_issues.extend(f"Record {label}: {fix}" for fix in fixes)

        if result.fixed_issues:
            logging.info(f"Applied {len(result.fixed_issues)} fixes while cleaning {result.original_count} records")

        return result

    @staticmethod
    def remove_duplicates(records: Iterable[Record]) -> List[Record]:
        """Keep the first record for each id."""
        seen = set()
        unique = []
        for record in records:
            if record.id in seen:
                logging.warning(f"Dropping duplicate record id: {record.id}")
                continue
            seen.add(record.id)
            unique.append(record)
        return unique

    @staticmethod
    def sort_by_updated_desc(records: Iterable[Record]) -> List[Record]:
        """Most recently updated first; ties keep their input order."""
        return sorted(records, key=lambda record: record.updated_at, reverse=True)

    @staticmethod
    def validate_record(record: Any) -> Tuple[bool, List[str]]:
        """
        Check whether a record is already well formed, without repairing it.

        Args:
            record: A Record or a raw mapping

        Returns:
            Tuple of (is_valid, list of problems)
        """
        if record is None:
            return False, ["Record is empty"]

        data = record.model_dump() if isinstance(record, Record) else record
        if not isinstance(data, Mapping):
            return False, ["Record is not a mapping"]

        errors = []
        record_id = RecordCleaner._pick(data, "id")
        if not isinstance(record_id, str) or not record_id.strip():
            errors.append("Invalid id")
        if not isinstance(RecordCleaner._pick(data, "title"), str):
            errors.append("Title must be a string")
        if not isinstance(RecordCleaner._pick(data, "content"), str):
            errors.append("Content must be a string")
        if not isinstance(RecordCleaner._pick(data, "tags", []), (list, tuple)):
            errors.append("Tags must be a list")
        if not isinstance(RecordCleaner._pick(data, "created_at"), datetime):
            errors.append("Invalid creation date")
        if not isinstance(RecordCleaner._pick(data, "updated_at"), datetime):
            errors.append("Invalid update date")
        deleted_at = RecordCleaner._pick(data, "deleted_at")
        if deleted_at is not None and not isinstance(deleted_at, datetime):
            errors.append("Invalid deletion date")

        return not errors, errors

    @staticmethod
    def generate_report(result: CleaningResult) -> str:
        """Render a cleaning result as a Markdown report."""
        report = "# Data Cleaning Report\n\n"
        report += "## Summary\n"
        report += f"- **Original records**: {result.original_count}\n"
        report += f"- **Cleaned records**: {result.cleaned_count}\n"
        report += f"- **Fixed issues**: {len(result.fixed_issues)}\n"
        report += f"- **Unfixable issues**: {len(result.unfixable_issues)}\n\n"

        if result.fixed_issues:
            report += "## Fixed Issues\n"
            for issue in result.fixed_issues:
                report += f"- {issue}\n"
            report += "\n"

        if result.unfixable_issues:
            report += "## Unfixable Issues\n"
            for issue in result.unfixable_issues:
                report += f"- {issue}\n"
            report += "\n"

        return report

    def _as_mapping(self, raw: Any, fixes: List[str]) -> Mapping[str, Any]:
        if isinstance(raw, Record):
            return raw.model_dump()
        if isinstance(raw, Mapping):
            return raw
        fixes.append("Record was not a mapping; all fields defaulted")
        return {}

    @staticmethod
    def _pick(data: Mapping[str, Any], field: str, default: Any = None) -> Any:
        for key in _FIELD_KEYS[field]:
            if key in data:
                return data[key]
        return default

    @staticmethod
    def _clean_tags(tags: Any, fixes: List[str]) -> List[str]:
        if not isinstance(tags, (list, tuple)):
            if tags is not None:
                fixes.append("Tags replaced with an empty list")
            return []

        cleaned = [tag.strip() for tag in tags if isinstance(tag, str) and tag.strip()]
        dropped = len(tags) - len(cleaned)
        if dropped:
            fixes.append(f"Dropped {dropped} invalid tag(s)")
        elif any(tag != original for tag, original in zip(cleaned, tags)):
            fixes.append("Trimmed whitespace around tags")
        return cleaned

    @staticmethod
    def _clean_timestamp(value: Any, label: str, fixes: List[str]) -> datetime:
        parsed = parse_timestamp(value)
        if parsed is None:
            fixes.append(f"Invalid {label} replaced with the current time")
            return utc_now()
        return parsed

    @staticmethod
    def _clean_flag(value: Any, fixes: List[str]) -> bool:
        if isinstance(value, bool):
            return value
        if value is None:
            return False
        if isinstance(value, str):
            flag = value.strip().lower() in _TRUE_STRINGS
        else:
            flag = bool(value)
        fixes.append("Deletion flag converted to boolean")
        return flag

    @staticmethod
    def _label(raw: Any) -> str:
        """Identify a raw record in messages without trusting its types."""
        if isinstance(raw, Record):
            return f'"{raw.title}"'
        if isinstance(raw, Mapping):
            title = raw.get("title")
            if isinstance(title, str) and title.strip():
                return f'"{title}"'
            record_id = raw.get("id")
            if isinstance(record_id, str) and record_id:
                return f"<{record_id}>"
        return "<unknown>"
