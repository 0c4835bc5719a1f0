# floor_manager/database/repositories/statuses_repo.py
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, List, Mapping, Optional

from ...constants import STATUS_PREORDER
from ..schema import CargoStatus, _to_int
from ..store import BlobStore


class DomainError(Exception):
    pass


class StatusesRepo:
    """Cargo status lookup. Names and colours are editable; ids are fixed."""

    def __init__(self, store: BlobStore):
        self.store = store

    @contextmanager
    def _blob_tx(self):
        blob = self.store.load()
        yield blob
        self.store.save(blob)

    def list_statuses(self) -> List[CargoStatus]:
        rows = [CargoStatus.from_dict(s) for s in self.store.load()["cargoStatuses"]]
        return sorted(rows, key=lambda s: s.order_index)

    def get(self, status_id: int) -> Optional[CargoStatus]:
        return next((s for s in self.list_statuses() if s.id == int(status_id)), None)

    def update(self, status_id: int, fields: Mapping[str, Any]) -> CargoStatus:
        if "name" in fields and not str(fields["name"] or "").strip():
            raise DomainError("Status name cannot be empty.")
        with self._blob_tx() as blob:
            for idx, row in enumerate(blob["cargoStatuses"]):
                if _to_int(row.get("id"), 0) == int(status_id):
                    merged = CargoStatus.from_dict({**row, **fields, "id": row["id"]})
                    blob["cargoStatuses"][idx] = merged.to_dict()
                    return merged
            raise DomainError(f"Status #{status_id} not found.")

    def preorder(self) -> Optional[CargoStatus]:
        return self.get(STATUS_PREORDER)
