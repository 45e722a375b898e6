"""
JSON file record source.

Reads either a plain JSON array of records, a snapshot written by the
BackupManager ({"records": [...]}) or a note-app export ({"notes": [...]}).
"""

import json
import logging
from pathlib import Path
from typing import Any, List

from ..errors import SourceError
from .base import RecordSource


class JsonRecordSource(RecordSource):
    """Loads records from a JSON file on disk."""

    def __init__(self, path: str):
        """
        Initialize the JSON source.

        Args:
            path: Path to the JSON file
        """
        self.path = Path(path)

    def load_records(self) -> List[Any]:
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise SourceError(f"Cannot read records from {self.path}: {e}") from e

        if isinstance(data, dict):
            for key in ("records", "notes"):
                if isinstance(data.get(key), list):
                    data = data[key]
                    break

        if not isinstance(data, list):
            raise SourceError(f"No record list found in {self.path}")

        logging.info(f"Loaded {len(data)} records from {self.path}")
        return data
