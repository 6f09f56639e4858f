"""
Persistence module - JSON snapshot storage

Provides:
- JSONStore: whole-file JSON read/overwrite with atomic replace
"""

from .json_store import JSONStore, JSONStoreError, JSONStoreIOError, JSONStoreFormatError

__all__ = [
    "JSONStore",
    "JSONStoreError",
    "JSONStoreIOError",
    "JSONStoreFormatError",
]
