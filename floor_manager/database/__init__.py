# floor_manager/database/__init__.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..config import DB_PATH
from .schema import Snapshot, default_blob, normalize_blob
from .store import BlobStore, JsonFileStore, MemoryStore, StorageError


def get_store(path: Optional[Path] = None) -> JsonFileStore:
    """
    Returns the JSON blob store the application reads and writes.
    The data directory is created on first save, not here.
    """
    return JsonFileStore(path or DB_PATH)


__all__ = [
    "get_store",
    "BlobStore",
    "JsonFileStore",
    "MemoryStore",
    "StorageError",
    "Snapshot",
    "default_blob",
    "normalize_blob",
]
