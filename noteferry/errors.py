"""
Exception types for noteferry.

Structural and I/O failures are raised as the exceptions below. Field-level
problems inside an otherwise readable record are never raised; they are
repaired by the RecordCleaner and reported as fix strings.
"""

from enum import Enum
from typing import Optional


class StorageErrorCode(str, Enum):
    """Stable error codes for storage-primitive failures."""

    NOT_SUPPORTED = "NOT_SUPPORTED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    DIRECTORY_NOT_FOUND = "DIRECTORY_NOT_FOUND"
    WRITE_FAILED = "WRITE_FAILED"
    READ_FAILED = "READ_FAILED"
    UNKNOWN = "UNKNOWN"


class NoteferryError(Exception):
    """Base class for all noteferry errors."""


class StorageError(NoteferryError):
    """
    A storage primitive failed.

    Attributes:
        code: One of StorageErrorCode
        target: The file or directory the operation was working on
        original: The underlying exception, if any
    """

    def __init__(self, code: StorageErrorCode, message: str,
                 target: Optional[str] = None, original: Optional[BaseException] = None):
        self.code = code
        self.target = target
        self.original = original
        super().__init__(message)

    def __str__(self) -> str:
        message = super().__str__()
        if self.target:
            message = f"{message} ({self.target})"
        return f"[{self.code.value}] {message}"


class ParseError(NoteferryError):
    """A document could not be parsed at all (missing frontmatter delimiters)."""


class BackupError(NoteferryError):
    """Creating, saving or restoring a snapshot failed."""

    def __init__(self, code: StorageErrorCode, message: str,
                 original: Optional[BaseException] = None):
        self.code = code
        self.original = original
        super().__init__(message)


class SaveCancelled(NoteferryError):
    """The user dismissed a snapshot save. Not treated as a failure."""


class SourceError(NoteferryError):
    """The source record collection could not be read."""


class LayoutError(NoteferryError):
    """The target directory layout could not be initialized."""


class RecordConflictError(NoteferryError):
    """A document with the same file name already exists at the target."""

    def __init__(self, file_name: str):
        self.file_name = file_name
        super().__init__(f"File already exists: {file_name}")
