"""
Record database for noteferry.

This module stores note records in DuckDB. It is the source store that
migrations read from, and the target of snapshot restores. Every migration run
is also logged here for auditing.
"""

import duckdb
import json
import logging
from typing import Dict, Iterable, List, Optional

from ..models import MigrationResult, Record
from ..timestamps import format_timestamp, parse_timestamp

_RECORD_COLUMNS = "id, title, content, tags, created_at, updated_at, is_deleted, deleted_at"


class RecordDatabase:
    """
    Manages the DuckDB database holding note records and migration runs.
    """

    def __init__(self, db_path: str = "noteferry.db"):
        """
        Initialize the record database.

        Args:
            db_path: Path to the DuckDB database file (":memory:" for a scratch database)
        """
        self.db_path = db_path
        self.connection = None

    def connect(self):
        """Establish connection to the database."""
        self.connection = duckdb.connect(self.db_path)

    def disconnect(self):
        """Close the database connection."""
        if self.connection:
            self.connection.close()
            self.connection = None

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.disconnect()

    def initialize_database(self):
        """
        Create all necessary tables if they don't exist.
        """
        self._require_connection()

        # Timestamps are kept as ISO-8601 text so millisecond precision survives as-is
        self.connection.execute("""
            CREATE TABLE IF NOT EXISTS records (
                id VARCHAR PRIMARY KEY,
                title VARCHAR NOT NULL,
                content TEXT NOT NULL,
                tags TEXT NOT NULL,
                created_at VARCHAR NOT NULL,
                updated_at VARCHAR NOT NULL,
                is_deleted BOOLEAN NOT NULL DEFAULT false,
                deleted_at VARCHAR
            )
        """)

        self.connection.execute("CREATE SEQUENCE IF NOT EXISTS run_id_seq;")
        self.connection.execute("""
            CREATE TABLE IF NOT EXISTS migration_runs (
                run_id BIGINT PRIMARY KEY DEFAULT nextval('run_id_seq'),
                target VARCHAR,
                success BOOLEAN NOT NULL,
                stage VARCHAR NOT NULL,
                migrated_records INTEGER NOT NULL,
                migrated_trash INTEGER NOT NULL,
                error_count INTEGER NOT NULL,
                warning_count INTEGER NOT NULL,
                backup_path VARCHAR,
                errors TEXT,
                run_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    def add_record(self, record: Record) -> bool:
        """
        Add a record to the database.

        Args:
            record: The record to add

        Returns:
            True if the record was added, False if its id already existed
        """
        self._require_connection()

        try:
            self.connection.execute(f"""
                INSERT INTO records ({_RECORD_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, [
                record.id,
                record.title,
                record.content,
                json.dumps(record.tags, ensure_ascii=False),
                format_timestamp(record.created_at),
                format_timestamp(record.updated_at),
                record.is_deleted,
                format_timestamp(record.deleted_at) if record.deleted_at else None
            ])
            return True
        except duckdb.IntegrityError:
            # Record already exists
            return False

    def add_records(self, records: Iterable[Record]) -> int:
        """
        Add several records; existing ids are skipped.

        Returns:
            Number of records actually inserted
        """
        added = 0
        for record in records:
            if self.add_record(record):
                added += 1
            else:
                logging.warning(f"Record {record.id} already exists in the database, skipping")
        logging.info(f"Added {added} records to the database")
        return added

    def get_record(self, record_id: str) -> Optional[Record]:
        """
        Retrieve a record by id.

        Args:
            record_id: The id of the record to retrieve

        Returns:
            The record if found, None otherwise
        """
        self._require_connection()

        row = self.connection.execute(f"""
            SELECT {_RECORD_COLUMNS}
            FROM records
            WHERE id = ?
        """, [record_id]).fetchone()

        return self._row_to_record(row) if row else None

    def list_records(self, include_deleted: bool = True, deleted_only: bool = False) -> List[Record]:
        """
        List records in creation order.

        Args:
            include_deleted: Include records in the trash
            deleted_only: Only return records in the trash

        Returns:
            List of records
        """
        self._require_connection()

        query = f"SELECT {_RECORD_COLUMNS} FROM records"
        if deleted_only:
            query += " WHERE is_deleted = true"
        elif not include_deleted:
            query += " WHERE is_deleted = false"
        query += " ORDER BY created_at, id"

        return [self._row_to_record(row) for row in self.connection.execute(query).fetchall()]

    def count_records(self, include_deleted: bool = True) -> int:
        """Count records, optionally leaving out the trash."""
        self._require_connection()

        query = "SELECT COUNT(*) FROM records"
        if not include_deleted:
            query += " WHERE is_deleted = false"
        return self.connection.execute(query).fetchone()[0]

    def clear_records(self) -> int:
        """
        Delete every record.

        Returns:
            Number of records deleted
        """
        count = self.count_records()
        self.connection.execute("DELETE FROM records")
        logging.info(f"Cleared {count} records from the database")
        return count

    def log_migration_run(self, result: MigrationResult, target: Optional[str] = None) -> Optional[int]:
        """
        Log the outcome of a migration run.

        Args:
            result: The migration result
            target: Where the records were migrated to

        Returns:
            The id of the logged run
        """
        self._require_connection()

        row = self.connection.execute("""
            INSERT INTO migration_runs (
                target, success, stage, migrated_records, migrated_trash,
                error_count, warning_count, backup_path, errors
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            RETURNING run_id
        """, [
            target,
            result.success,
            result.stage.value,
            result.migrated_records,
            result.migrated_trash,
            len(result.errors),
            len(result.warnings),
            result.backup_path,
            json.dumps(result.errors, ensure_ascii=False)
        ]).fetchone()
        return row[0] if row else None

    def get_migration_runs(self, success_only: bool = False, limit: Optional[int] = None) -> List[Dict]:
        """
        Retrieve logged migration runs, most recent first.

        Args:
            success_only: Only return successful runs
            limit: Limit number of results

        Returns:
            List of migration run entries
        """
        self._require_connection()

        query = """
            SELECT run_id, target, success, stage, migrated_records, migrated_trash,
                   error_count, warning_count, backup_path, errors, run_at
            FROM migration_runs
        """
        if success_only:
            query += " WHERE success = true"
        query += " ORDER BY run_id DESC"
        if limit:
            query += f" LIMIT {int(limit)}"

        return [
            {
                "run_id": row[0],
                "target": row[1],
                "success": row[2],
                "stage": row[3],
                "migrated_records": row[4],
                "migrated_trash": row[5],
                "error_count": row[6],
                "warning_count": row[7],
                "backup_path": row[8],
                "errors": json.loads(row[9]) if row[9] else [],
                "run_at": row[10]
            }
            for row in self.connection.execute(query).fetchall()
        ]

    def _require_connection(self):
        if not self.connection:
            raise RuntimeError("Database connection not established")

    @staticmethod
    def _row_to_record(row) -> Record:
        return Record(
            id=row[0],
            title=row[1],
            content=row[2],
            tags=json.loads(row[3]) if row[3] else [],
            created_at=parse_timestamp(row[4]),
            updated_at=parse_timestamp(row[5]),
            is_deleted=bool(row[6]),
            deleted_at=parse_timestamp(row[7]) if row[7] else None
        )
