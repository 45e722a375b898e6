"""
Record source interface for noteferry.

A record source is the store that records are migrated *from*.
"""

from abc import ABC, abstractmethod
from typing import Any, List


class RecordSource(ABC):
    """
    Abstract base class for all record sources.

    Sources return records as they are stored, possibly malformed; the
    RecordCleaner normalizes them before anything else sees them.
    """

    @abstractmethod
    def load_records(self) -> List[Any]:
        """
        Retrieve every record, active and trashed.

        Returns:
            Records as Record objects or raw mappings

        Raises:
            SourceError: If the collection cannot be read
        """
        pass
