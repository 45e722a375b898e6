"""
DuckDB record source.
"""

import logging
from typing import List

import duckdb

from ..errors import SourceError
from ..models import Record
from .base import RecordSource


class DatabaseRecordSource(RecordSource):
    """Loads every record, trashed ones included, from a RecordDatabase."""

    def __init__(self, database):
        """
        Initialize the database source.

        Args:
            database: A connected RecordDatabase
        """
        self.database = database

    def load_records(self) -> List[Record]:
        try:
            records = self.database.list_records(include_deleted=True)
        except (duckdb.Error, RuntimeError) as e:
            raise SourceError(f"Cannot read records from the database: {e}") from e

        logging.info(f"Loaded {len(records)} records from the database")
        return records
