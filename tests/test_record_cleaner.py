"""
Unit tests for the record cleaner.
"""

import unittest
import uuid
from datetime import datetime, timedelta, timezone

from noteferry.migration import RecordCleaner
from noteferry.models import Record
from noteferry.timestamps import utc_now

T1 = datetime(2024, 5, 2, 12, 0, 0, tzinfo=timezone.utc)


class ExplodingRecord(dict):
    """A mapping that fails as soon as the cleaner looks at it."""

    def __contains__(self, key):
        raise ValueError("boom")


def make_record(record_id: str, title: str, updated: datetime) -> Record:
    return Record(id=record_id, title=title, created_at=updated - timedelta(days=1), updated_at=updated)


class TestRecordCleaner(unittest.TestCase):
    """Test single-record normalization."""

    def setUp(self):
        self.cleaner = RecordCleaner()

    def test_updated_before_created_is_moved_forward(self):
        record, fixes = self.cleaner.clean({
            "id": "1",
            "title": "T",
            "content": "",
            "created_at": T1,
            "updated_at": T1 - timedelta(days=1),
        })

        self.assertEqual(record.updated_at, record.created_at)
        self.assertTrue(any("Update date" in fix for fix in fixes))

    def test_deleted_without_deletion_date(self):
        record, fixes = self.cleaner.clean({
            "id": "1",
            "title": "T",
            "created_at": T1,
            "updated_at": T1 + timedelta(hours=1),
            "is_deleted": True,
        })

        self.assertTrue(record.is_deleted)
        self.assertEqual(record.deleted_at, record.updated_at)
        self.assertTrue(any("Deletion date" in fix for fix in fixes))

    def test_well_formed_record_needs_no_fixes(self):
        original = Record(id="1", title="T", content="body", tags=["a"], created_at=T1, updated_at=T1)
        record, fixes = self.cleaner.clean(original)

        self.assertEqual(fixes, [])
        self.assertEqual(record.model_dump(), original.model_dump())

    def test_bad_id_and_title(self):
        record, fixes = self.cleaner.clean({"id": 7, "title": 12, "created_at": T1, "updated_at": T1})

        uuid.UUID(record.id)
        self.assertEqual(record.title, "untitled")
        self.assertEqual(len(fixes), 2)

    def test_blank_title(self):
        record, _ = self.cleaner.clean({"id": "1", "title": "   ", "created_at": T1, "updated_at": T1})
        self.assertEqual(record.title, "untitled")

    def test_content_and_tags(self):
        record, _ = self.cleaner.clean({
            "id": "1",
            "title": "T",
            "content": None,
            "tags": [" a ", 3, "", "b", None],
            "created_at": T1,
            "updated_at": T1,
        })

        self.assertEqual(record.content, "")
        self.assertEqual(record.tags, ["a", "b"])

    def test_non_list_tags(self):
        record, fixes = self.cleaner.clean({"id": "1", "title": "T", "tags": "a,b", "created_at": T1, "updated_at": T1})
        self.assertEqual(record.tags, [])
        self.assertIn("Tags replaced with an empty list", fixes)

    def test_unparsable_dates_become_now(self):
        before = utc_now()
        record, fixes = self.cleaner.clean({"id": "1", "title": "T", "created_at": "yesterday", "updated_at": None})
        after = utc_now()

        self.assertTrue(before <= record.created_at <= after)
        self.assertGreaterEqual(record.updated_at, record.created_at)
        self.assertEqual(len([fix for fix in fixes if "replaced with the current time" in fix]), 2)

    def test_out_of_range_offsets_become_now(self):
        record, fixes = self.cleaner.clean({
            "id": "a",
            "title": "T",
            "createdAt": "0001-01-01T00:00:00+05:00",
            "updatedAt": "9999-12-31T23:00:00-05:00",
        })

        self.assertIn("Invalid creation date replaced with the current time", fixes)
        self.assertIn("Invalid update date replaced with the current time", fixes)
        self.assertGreaterEqual(record.updated_at, record.created_at)

    def test_camel_case_keys_and_epoch_millis(self):
        record, _ = self.cleaner.clean({
            "id": "1",
            "title": "T",
            "createdAt": "2024-05-01T10:00:00.000Z",
            "updatedAt": 1714557600000,
            "isDeleted": False,
        })

        expected = datetime(2024, 5, 1, 10, 0, 0, tzinfo=timezone.utc)
        self.assertEqual(record.created_at, expected)
        self.assertEqual(record.updated_at, expected)

    def test_invalid_deletion_date_is_dropped(self):
        record, fixes = self.cleaner.clean({
            "id": "1", "title": "T", "created_at": T1, "updated_at": T1, "deleted_at": "garbage"
        })
        self.assertIsNone(record.deleted_at)
        self.assertIn("Invalid deletion date removed", fixes)

    def test_deletion_flag_is_coerced(self):
        record, _ = self.cleaner.clean({"id": "1", "title": "T", "created_at": T1, "updated_at": T1, "is_deleted": "true"})
        self.assertTrue(record.is_deleted)

        record, _ = self.cleaner.clean({"id": "1", "title": "T", "created_at": T1, "updated_at": T1, "is_deleted": 0})
        self.assertFalse(record.is_deleted)

    def test_deletion_date_on_active_record_is_dropped(self):
        record, fixes = self.cleaner.clean({
            "id": "1", "title": "T", "created_at": T1, "updated_at": T1, "is_deleted": False, "deleted_at": T1
        })
        self.assertIsNone(record.deleted_at)
        self.assertTrue(fixes)

    def test_non_mapping_never_raises(self):
        record, fixes = self.cleaner.clean("not a record")

        self.assertEqual(record.title, "untitled")
        self.assertTrue(any("not a mapping" in fix for fix in fixes))


class TestRecordCollections(unittest.TestCase):
    """Test collection-level operations."""

    def setUp(self):
        self.cleaner = RecordCleaner()

    def test_clean_collection_excludes_failing_records(self):
        raw = [
            {"id": "1", "title": "Good", "created_at": T1, "updated_at": T1},
            ExplodingRecord(),
            {"id": "2", "title": "", "created_at": T1, "updated_at": T1},
        ]

        result = self.cleaner.clean_collection(raw)

        self.assertEqual(result.original_count, 3)
        self.assertEqual(result.cleaned_count, 2)
        self.assertEqual([r.id for r in result.cleaned_records], ["1", "2"])
        self.assertEqual(len(result.unfixable_issues), 1)
        self.assertIn("boom", result.unfixable_issues[0])
        self.assertEqual(len(result.fixed_issues), 1)

    def test_remove_duplicates_keeps_first(self):
        records = [make_record("a", "First", T1), make_record("b", "B", T1), make_record("a", "Second", T1)]

        unique = self.cleaner.remove_duplicates(records)

        self.assertEqual([r.title for r in unique], ["First", "B"])

    def test_sort_by_updated_desc_is_stable(self):
        records = [
            make_record("old", "old", T1 - timedelta(days=2)),
            make_record("tie-1", "tie-1", T1),
            make_record("new", "new", T1 + timedelta(days=1)),
            make_record("tie-2", "tie-2", T1),
        ]

        ordered = self.cleaner.sort_by_updated_desc(records)

        self.assertEqual([r.id for r in ordered], ["new", "tie-1", "tie-2", "old"])

    def test_validate_record(self):
        valid, errors = self.cleaner.validate_record(make_record("a", "A", T1))
        self.assertTrue(valid)
        self.assertEqual(errors, [])

        valid, errors = self.cleaner.validate_record({"id": "", "title": 5, "content": "", "created_at": "x"})
        self.assertFalse(valid)
        self.assertIn("Invalid id", errors)
        self.assertIn("Title must be a string", errors)
        self.assertIn("Invalid creation date", errors)

        self.assertEqual(self.cleaner.validate_record(None), (False, ["Record is empty"]))

    def test_generate_report(self):
        result = self.cleaner.clean_collection([{"id": "1", "title": "", "created_at": T1, "updated_at": T1}])
        report = self.cleaner.generate_report(result)

        self.assertIn("# Data Cleaning Report", report)
        self.assertIn("## Fixed Issues", report)
        self.assertNotIn("## Unfixable Issues", report)


if __name__ == '__main__':
    unittest.main(verbosity=2)
