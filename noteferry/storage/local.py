"""
Local directory storage backend.

Implements the storage primitives on top of pathlib. Handles are Path objects.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from ..errors import StorageError, StorageErrorCode
from .base import EntryMetadata, StorageBackend


class LocalDirectoryStorage(StorageBackend):
    """
    Storage backend for a directory on the local file system.
    """

    def __init__(self, root_path: str, allowed_extensions: Optional[List[str]] = None):
        """
        Initialize the local storage backend.

        Args:
            root_path: Directory returned by select_root (created on demand)
            allowed_extensions: File extensions reported by list_entries
                (e.g. [".md"]); None lists every file
        """
        self.root_path = Path(root_path)
        self.allowed_extensions = [ext.lower() for ext in allowed_extensions] if allowed_extensions else None
        logging.info(f"Initialized local storage at: {self.root_path}")

    def select_root(self) -> Path:
        try:
            self.root_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise self._wrap(e, StorageErrorCode.WRITE_FAILED, "Cannot create root directory", self.root_path)
        return self.root_path

    def list_entries(self, directory: Path) -> List[Path]:
        if not directory.is_dir():
            raise StorageError(StorageErrorCode.DIRECTORY_NOT_FOUND, "Directory not found", str(directory))
        try:
            entries = [
                path for path in directory.iterdir()
                if path.is_file() and self._is_allowed(path)
            ]
        except OSError as e:
            raise self._wrap(e, StorageErrorCode.READ_FAILED, "Cannot list directory", directory)
        return sorted(entries, key=lambda path: path.name)

    def read_entry(self, file: Path) -> str:
        try:
            with open(file, 'r', encoding='utf-8', newline='') as f:
                return f.read()
        except OSError as e:
            raise self._wrap(e, StorageErrorCode.READ_FAILED, "Cannot read file", file)
        except UnicodeDecodeError as e:
            raise StorageError(StorageErrorCode.READ_FAILED, "File is not valid UTF-8", str(file), e)

    def write_entry(self, directory: Path, name: str, text: str, create: bool = True) -> Path:
        self._check_name(name)
        file_path = directory / name
        if not create and not file_path.exists():
            raise StorageError(StorageErrorCode.FILE_NOT_FOUND, "File not found", str(file_path))
        try:
            with open(file_path, 'w', encoding='utf-8', newline='') as f:
                f.write(text)
        except OSError as e:
            raise self._wrap(e, StorageErrorCode.WRITE_FAILED, "Cannot write file", file_path)
        return file_path

    def entry_exists(self, directory: Path, name: str) -> bool:
        return (directory / name).is_file()

    def create_subdirectory(self, directory: Path, name: str) -> Path:
        self._check_name(name)
        sub_path = directory / name
        try:
            sub_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise self._wrap(e, StorageErrorCode.WRITE_FAILED, "Cannot create directory", sub_path)
        return sub_path

    def entry_metadata(self, file: Path) -> EntryMetadata:
        try:
            stat = file.stat()
        except OSError as e:
            raise self._wrap(e, StorageErrorCode.READ_FAILED, "Cannot stat file", file)
        return EntryMetadata(
            name=file.name,
            size=stat.st_size,
            last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
        )

    def _is_allowed(self, path: Path) -> bool:
        if self.allowed_extensions is None:
            return True
        return path.suffix.lower() in self.allowed_extensions

    @staticmethod
    def _check_name(name: str) -> None:
        if not name or name in ('.', '..') or '/' in name or '\\' in name:
            raise StorageError(StorageErrorCode.WRITE_FAILED, "Invalid entry name", name)

    @staticmethod
    def _wrap(error: OSError, default_code: StorageErrorCode, message: str, target: Path) -> StorageError:
        """Map an OSError onto a stable storage error code."""
        if isinstance(error, PermissionError):
            code = StorageErrorCode.PERMISSION_DENIED
        elif isinstance(error, FileNotFoundError):
            code = StorageErrorCode.FILE_NOT_FOUND
        elif isinstance(error, NotADirectoryError):
            code = StorageErrorCode.DIRECTORY_NOT_FOUND
        else:
            code = default_code
        return StorageError(code, f"{message}: {error}", str(target), error)
