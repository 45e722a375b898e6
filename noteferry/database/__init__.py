"""DuckDB persistence for the source record store."""

from .manager import RecordDatabase

__all__ = ["RecordDatabase"]
