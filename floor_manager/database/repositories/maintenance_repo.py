# floor_manager/database/repositories/maintenance_repo.py
"""
Whole-store operations: backup export/import, the two clear operations and
the licence key.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from ...utils.loggers import log_event
from ..schema import ARRAY_KEYS, normalize_blob
from ..store import BlobStore

_log = logging.getLogger(__name__)


class DomainError(Exception):
    pass


class MaintenanceRepo:
    def __init__(self, store: BlobStore):
        self.store = store

    def export_blob(self) -> Dict[str, Any]:
        """Full state, suitable for a JSON backup file."""
        return self.store.load()

    def import_blob(self, blob: Mapping[str, Any]) -> None:
        """Replace the whole state with a backup; missing arrays get defaults."""
        if not isinstance(blob, Mapping):
            raise DomainError("Backup must be a JSON object.")
        if not any(k in blob for k in ARRAY_KEYS):
            raise DomainError("Backup does not contain any known collection.")
        data = normalize_blob(blob)
        self.store.save(data)
        log_event(_log, "import", "done", "backup restored",
                  {"orders": len(data["orders"]), "items": len(data["orderItems"])})

    def clear_all_data(self) -> None:
        """Drop orders, order items and positions; catalogs and users stay."""
        blob = self.store.load()
        blob["orders"] = []
        blob["orderItems"] = []
        blob["positions"] = []
        self.store.save(blob)
        log_event(_log, "clear_all", "done", "orders, items and positions cleared",
                  level=logging.WARNING)

    def nuclear_wipe(self) -> None:
        """Remove the stored state entirely; the next load yields defaults."""
        self.store.clear()
        log_event(_log, "wipe", "done", "store wiped", level=logging.WARNING)

    def get_license(self) -> Optional[str]:
        return self.store.load().get("licenseKey")

    def save_license(self, key: str) -> None:
        blob = self.store.load()
        blob["licenseKey"] = key.strip() or None
        self.store.save(blob)
