"""
JSON Store - Whole-file JSON snapshot handling

Module: persistence.json_store
Date: 2026-10-19
Version: 0.1.0

CHANGELOG:
[2026-10-19 v0.1.0] Initial implementation
  - Whole-document read/write of a JSON file
  - Atomic writes (temp file + rename)
  - Automatic directory creation on write
  - Restrictive file permissions

ARCHITECTURE:
JSONStore provides:
  - Read of the whole document (default value if the file is missing)
  - Overwrite of the whole document, never partial updates
  - Atomic replace so readers never observe a half-written file

The store is synchronous; async callers run it in an executor.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional


class JSONStoreError(Exception):
    """Base JSON store error"""
    pass


class JSONStoreIOError(JSONStoreError):
    """File I/O error"""
    pass


class JSONStoreFormatError(JSONStoreError):
    """JSON format error"""
    pass


class JSONStore:
    """
    Whole-file JSON persistence.

    Handles:
    - Reading the full document
    - Atomic writes (temp file + rename)
    - Parent directory creation
    - 0600 permissions on the written file
    """

    def __init__(self, file_path: str, default_data: Optional[Any] = None):
        """
        Initialize JSON store

        Args:
            file_path: Path to JSON file
            default_data: Value returned by load() when the file doesn't exist
        """
        self.logger = logging.getLogger(f"persistence.{self.__class__.__name__}")
        self.file_path = Path(file_path)
        self.default_data = default_data

    @property
    def exists(self) -> bool:
        """True if the backing file is present"""
        return self.file_path.exists()

    def load(self) -> Any:
        """
        Load the whole document

        Returns:
            Parsed JSON data, or a copy of the default data if the file is missing

        Raises:
            JSONStoreIOError: If file cannot be read
            JSONStoreFormatError: If JSON is invalid
        """
        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            self.logger.warning(f"File not found ({self.file_path}), returning default data")
            return json.loads(json.dumps(self.default_data))
        except json.JSONDecodeError as e:
            raise JSONStoreFormatError(f"Invalid JSON in {self.file_path}: {e}")
        except OSError as e:
            raise JSONStoreIOError(f"Failed to read {self.file_path}: {e}")

    def save(self, data: Any) -> None:
        """
        Overwrite the whole document (atomic write)

        Args:
            data: JSON-serializable data

        Raises:
            JSONStoreIOError: If write fails
        """
        self._write_atomic(data)

    def _write_atomic(self, data: Any) -> None:
        """
        Atomic write: write to temp file, then rename

        Raises:
            JSONStoreIOError: If write fails
        """
        temp_path = self.file_path.with_name(self.file_path.name + ".tmp")
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)

            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)

            # Atomic rename
            temp_path.replace(self.file_path)

            # rw-------
            self.file_path.chmod(0o600)

        except (OSError, TypeError, ValueError) as e:
            raise JSONStoreIOError(f"Failed to write {self.file_path}: {e}")

        self.logger.debug(f"Wrote {self.file_path}")
