"""
Mock record source for testing noteferry.

Produces deterministic synthetic records so that the pipeline can be exercised
without a real source store.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional

from ..errors import SourceError
from ..models import Record
from .base import RecordSource

_BASE_TIME = datetime(2024, 5, 1, 9, 0, 0, tzinfo=timezone.utc)

_SAMPLE_TAGS = [
    ["work"],
    ["personal", "ideas"],
    [],
    ["reading"],
    ["work", "meetings"],
]


class MockRecordSource(RecordSource):
    """
    Mock source that returns synthetic or explicitly supplied records.
    """

    def __init__(self, count: int = 5, trash_count: int = 0,
                 records: Optional[List[Any]] = None, fail: bool = False):
        """
        Initialize the mock source.

        Args:
            count: Number of active records to generate
            trash_count: Number of trashed records to generate
            records: Records to return instead of generated ones
            fail: Raise SourceError from load_records
        """
        self.fail = fail
        if records is not None:
            self._records = list(records)
        else:
            self._records = self._create_records(count, trash_count)

    def load_records(self) -> List[Any]:
        if self.fail:
            raise SourceError("Mock source is unavailable")
        return list(self._records)

    @staticmethod
    def _create_records(count: int, trash_count: int) -> List[Record]:
        records = []

        for i in range(count + trash_count):
            created = _BASE_TIME + timedelta(hours=i)
            updated = created + timedelta(minutes=30, milliseconds=123 * i)
            is_deleted = i >= count

            records.append(Record(
                id=f"note-{i + 1:04d}",
                title=f"Note {i + 1}",
                content=f"Body of note {i + 1}.\n\nSecond paragraph with *markdown*.",
                tags=list(_SAMPLE_TAGS[i % len(_SAMPLE_TAGS)]),
                created_at=created,
                updated_at=updated,
                is_deleted=is_deleted,
                deleted_at=updated + timedelta(days=1) if is_deleted else None
            ))

        return records
