# floor_manager/database/store.py
"""
Whole-blob storage collaborator.

Public interface
----------------
- BlobStore protocol: load() -> dict, save(dict) -> None, clear() -> None
- JsonFileStore(path, namespace): one JSON file, state under a single namespace key
- MemoryStore(): in-process store for tests and previews

Notes
-----
- Every write replaces the whole blob (read-modify-write by the caller).
- File writes go to a temp file next to the target, are fsynced and then
  os.replace()d, so a crash never leaves a half-written blob behind.
"""
from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from ..constants import STORAGE_NAMESPACE
from ..utils.loggers import log_event
from .schema import default_blob, normalize_blob

__all__ = ["StorageError", "BlobStore", "JsonFileStore", "MemoryStore"]

_log = logging.getLogger(__name__)


class StorageError(Exception):
    """Blob file exists but cannot be read or decoded."""


class BlobStore(Protocol):
    def load(self) -> Dict[str, Any]: ...

    def save(self, blob: Dict[str, Any]) -> None: ...

    def clear(self) -> None: ...


def _fsync_dir(path: Path) -> None:
    """Best-effort fsync for a directory (important after replace)."""
    try:
        fd = os.open(str(path), os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        pass
    finally:
        os.close(fd)


class JsonFileStore:
    """
    JSON file holding ``{namespace: blob}``. Other namespaces in the same file
    are preserved on save.
    """

    def __init__(self, path: str | Path, namespace: str = STORAGE_NAMESPACE) -> None:
        self.path = Path(path)
        self.namespace = namespace

    # ---- Internal helpers -------------------------------------------------

    def _read_file(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Cannot read data file {self.path}: {e}") from e
        if not text.strip():
            return {}
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise StorageError(f"Data file {self.path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Data file {self.path} must contain a JSON object.")
        return data

    def _write_file(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=".fm_", suffix=".tmp", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=1)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
        _fsync_dir(self.path.parent)

    # ---- Public API -------------------------------------------------------

    def load(self) -> Dict[str, Any]:
        """Return the namespaced blob, or the default blob if none was saved yet."""
        raw = self._read_file().get(self.namespace)
        if raw is None:
            return default_blob()
        if not isinstance(raw, dict):
            raise StorageError(f"Namespace {self.namespace!r} does not hold an object.")
        return normalize_blob(raw)

    def save(self, blob: Dict[str, Any]) -> None:
        data = self._read_file()
        data[self.namespace] = blob
        self._write_file(data)
        log_event(
            _log, "save", "done", "blob saved",
            {
                "path": str(self.path),
                "orders": len(blob.get("orders") or []),
                "items": len(blob.get("orderItems") or []),
            },
            level=logging.DEBUG,
        )

    def clear(self) -> None:
        """Remove the namespace entirely (next load yields defaults)."""
        data = self._read_file()
        if self.namespace in data:
            del data[self.namespace]
            self._write_file(data)
        log_event(_log, "clear", "done", "blob removed", {"path": str(self.path)})


class MemoryStore:
    """Keeps a deep copy of the blob; load() hands out deep copies too."""

    def __init__(self, blob: Optional[Dict[str, Any]] = None) -> None:
        self._blob: Optional[Dict[str, Any]] = normalize_blob(blob) if blob is not None else None
        self.saves = 0

    def load(self) -> Dict[str, Any]:
        if self._blob is None:
            return default_blob()
        return copy.deepcopy(self._blob)

    def save(self, blob: Dict[str, Any]) -> None:
        self._blob = copy.deepcopy(blob)
        self.saves += 1

    def clear(self) -> None:
        self._blob = None
