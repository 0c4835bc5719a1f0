# floor_manager/database/repositories/catalog_repo.py
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Mapping, Optional, Type

from ...utils.loggers import log_event
from ...utils.validators import is_non_negative_number, non_empty
from ..schema import Category, Position, WorkCategory, WorkPosition, _to_int, next_id
from ..store import BlobStore

_log = logging.getLogger(__name__)


class DomainError(Exception):
    """Domain-level error the controller/UI can surface (toast/snackbar)."""
    pass


class CatalogRepo:
    """
    Product catalog (categories, positions) and the parallel labor catalog
    (work categories, work positions).

    Deleting a category never touches positions or order items: items carry
    their own category label.
    """

    def __init__(self, store: BlobStore):
        self.store = store

    # ---------------------------- TX helper ----------------------------

    @contextmanager
    def _blob_tx(self):
        blob = self.store.load()
        yield blob
        self.store.save(blob)

    # ---------------------------- Generic row ops ----------------------------

    @staticmethod
    def _validate(record_cls: Type, row: Mapping[str, Any]) -> None:
        if not non_empty(row.get("name")):
            raise DomainError("Name cannot be empty.")
        if record_cls in (Position, WorkPosition) and not is_non_negative_number(row.get("price", "0")):
            raise DomainError("Price must be a non-negative number.")

    def _add(self, key: str, record_cls: Type, fields: Mapping[str, Any]):
        self._validate(record_cls, fields)
        with self._blob_tx() as blob:
            row = record_cls.from_dict({**fields, "id": next_id(blob[key])}).to_dict()
            blob[key].append(row)
        return record_cls.from_dict(row)

    def _update(self, key: str, record_cls: Type, row_id: int, fields: Mapping[str, Any]):
        with self._blob_tx() as blob:
            rows = blob[key]
            for idx, row in enumerate(rows):
                if _to_int(row.get("id"), 0) == int(row_id):
                    merged = {**row, **fields, "id": row["id"]}
                    self._validate(record_cls, merged)
                    rows[idx] = record_cls.from_dict(merged).to_dict()
                    return record_cls.from_dict(rows[idx])
            raise DomainError(f"Record #{row_id} not found.")

    def _delete(self, key: str, row_id: int) -> None:
        with self._blob_tx() as blob:
            before = len(blob[key])
            blob[key] = [r for r in blob[key] if _to_int(r.get("id"), 0) != int(row_id)]
            removed = before - len(blob[key])
        log_event(_log, "delete", "done", f"{key} row deleted", {"id": row_id, "removed": removed})

    def _bulk(self, key: str, record_cls: Type, records: Iterable[Mapping[str, Any]]) -> int:
        """Append records with fresh sequential ids; invalid rows are skipped."""
        count = 0
        with self._blob_tx() as blob:
            nid = next_id(blob[key])
            for rec in records:
                try:
                    self._validate(record_cls, rec)
                except DomainError as e:
                    _log.warning("bulk import into %s skipped a row: %s", key, e)
                    continue
                blob[key].append(record_cls.from_dict({**rec, "id": nid}).to_dict())
                nid += 1
                count += 1
        log_event(_log, "import", "done", f"{key} imported", {"rows": count})
        return count

    def _clear(self, key: str) -> None:
        with self._blob_tx() as blob:
            blob[key] = []
        log_event(_log, "clear", "done", f"{key} cleared", level=logging.WARNING)

    # ---------------------------- Categories ----------------------------

    def list_categories(self) -> List[Category]:
        cats = [Category.from_dict(c) for c in self.store.load()["categories"]]
        return sorted(cats, key=lambda c: c.order_index)

    def add_category(self, fields: Mapping[str, Any]) -> Category:
        return self._add("categories", Category, fields)

    def update_category(self, category_id: int, fields: Mapping[str, Any]) -> Category:
        return self._update("categories", Category, category_id, fields)

    def delete_category(self, category_id: int) -> None:
        self._delete("categories", category_id)

    def clear_categories(self) -> None:
        self._clear("categories")

    def bulk_add_categories(self, records: Iterable[Mapping[str, Any]]) -> int:
        return self._bulk("categories", Category, records)

    # ---------------------------- Positions ----------------------------

    def list_positions(self) -> List[Position]:
        return [Position.from_dict(p) for p in self.store.load()["positions"]]

    def get_position(self, position_id: int) -> Optional[Position]:
        for p in self.store.load()["positions"]:
            if _to_int(p.get("id"), 0) == int(position_id):
                return Position.from_dict(p)
        return None

    def add_position(self, fields: Mapping[str, Any]) -> Position:
        return self._add("positions", Position, fields)

    def update_position(self, position_id: int, fields: Mapping[str, Any]) -> Position:
        return self._update("positions", Position, position_id, fields)

    def delete_position(self, position_id: int) -> None:
        self._delete("positions", position_id)

    def clear_positions(self) -> None:
        self._clear("positions")

    def bulk_add_positions(self, records: Iterable[Mapping[str, Any]]) -> int:
        return self._bulk("positions", Position, records)

    def default_line_for(self, position_id: int) -> Optional[Dict[str, Any]]:
        """
        Point-in-time snapshot used to prefill a new order line from the
        live catalog. The line owns these labels afterwards.
        """
        blob = self.store.load()
        pos = next(
            (Position.from_dict(p) for p in blob["positions"]
             if _to_int(p.get("id"), 0) == int(position_id)),
            None,
        )
        if pos is None:
            return None
        cat = next(
            (Category.from_dict(c) for c in blob["categories"]
             if _to_int(c.get("id"), 0) == pos.category_id),
            None,
        )
        return {
            "positionId": pos.id,
            "position_name": pos.name,
            "category_name": cat.name if cat else "",
            "price": pos.price,
            "discount": "0",
        }

    # ---------------------------- Work catalog ----------------------------

    def list_work_categories(self) -> List[WorkCategory]:
        return [WorkCategory.from_dict(c) for c in self.store.load()["workCategories"]]

    def add_work_category(self, fields: Mapping[str, Any]) -> WorkCategory:
        return self._add("workCategories", WorkCategory, fields)

    def update_work_category(self, category_id: int, fields: Mapping[str, Any]) -> WorkCategory:
        return self._update("workCategories", WorkCategory, category_id, fields)

    def delete_work_category(self, category_id: int) -> None:
        self._delete("workCategories", category_id)

    def list_work_positions(self, category_id: Optional[int] = None) -> List[WorkPosition]:
        works = [WorkPosition.from_dict(w) for w in self.store.load()["workPositions"]]
        if category_id is None:
            return works
        return [w for w in works if w.category_id == category_id]

    def add_work_position(self, fields: Mapping[str, Any]) -> WorkPosition:
        return self._add("workPositions", WorkPosition, fields)

    def update_work_position(self, work_id: int, fields: Mapping[str, Any]) -> WorkPosition:
        return self._update("workPositions", WorkPosition, work_id, fields)

    def delete_work_position(self, work_id: int) -> None:
        self._delete("workPositions", work_id)

    def bulk_add_work_positions(self, records: Iterable[Mapping[str, Any]]) -> int:
        return self._bulk("workPositions", WorkPosition, records)
