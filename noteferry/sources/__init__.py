"""Record sources that migrations read from."""

from .base import RecordSource
from .database import DatabaseRecordSource
from .json_file import JsonRecordSource
from .mock import MockRecordSource

__all__ = ["RecordSource", "DatabaseRecordSource", "JsonRecordSource", "MockRecordSource"]
