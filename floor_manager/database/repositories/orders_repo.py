# floor_manager/database/repositories/orders_repo.py
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ...constants import INVOICE_PAD, INVOICE_PREFIX, PAID_NOTE, STATUS_PREORDER
from ...modules.ledger.calculations import recompute_item
from ...modules.ledger.ledger import Settlement, settle
from ...modules.ledger.money import money_str
from ...utils.helpers import now_iso, today_str
from ...utils.loggers import log_event
from ...utils.validators import (
    is_non_negative_number,
    is_strictly_positive_number,
    non_empty,
    parse_decimal,
    try_parse_decimal,
)
from ..schema import Order, OrderItem, Snapshot, _to_int, join_items, next_id
from ..store import BlobStore

_log = logging.getLogger(__name__)


class DomainError(Exception):
    """Domain-level error the controller/UI can surface (toast/snackbar)."""
    pass


# Order fields a caller may set; id and invoice_number are owned by the repo.
_EDITABLE_FIELDS = (
    "order_date",
    "client_name",
    "client_phone",
    "prepayment",
    "delivery_address",
    "shipping_date",
    "cargo_status_id",
    "note",
    "remind",
    "remind_at",
    "is_completed",
    "is_deleted",
)

# Labels used when an item arrives without its point-in-time snapshot.
_NEW_ITEM_NAME = "Неизвестно"
_ARCHIVED_ITEM_NAME = "Архивный товар"
_ARCHIVED_CATEGORY_NAME = "Архивная категория"

# Defaults for imported records.
_IMPORT_CLIENT = "Anonymous"
_IMPORT_PLACEHOLDER = "-"
_IMPORT_ITEM_NAME = "Item"
_IMPORT_CATEGORY = "General"


def invoice_for(order_id: int) -> str:
    """'№ 0042' for id 42; longer ids are never truncated."""
    return f"{INVOICE_PREFIX}{str(order_id).zfill(INVOICE_PAD)}"


def _json_number(d) -> Any:
    return int(d) if d == d.to_integral_value() else float(d)


def _unwrap_fixture(record: Mapping[str, Any]) -> Tuple[bool, Mapping[str, Any]]:
    """Django fixture records look like {"pk": 1, "fields": {...}}."""
    is_fixture = "pk" in record and isinstance(record.get("fields"), Mapping)
    return is_fixture, (record["fields"] if is_fixture else record)


class OrdersRepo:
    def __init__(self, store: BlobStore):
        self.store = store

    # ---------------------------- TX helper ----------------------------

    @contextmanager
    def _blob_tx(self):
        """
        Load the whole blob, let the caller mutate it, save it back.
        Nothing is written if the block raises.
        """
        blob = self.store.load()
        yield blob
        self.store.save(blob)

    # ---------------------------- Internal helpers ----------------------------

    @staticmethod
    def _find(blob: Dict[str, Any], order_id: int) -> Optional[Dict[str, Any]]:
        for o in blob["orders"]:
            if _to_int(o.get("id"), 0) == int(order_id):
                return o
        return None

    @staticmethod
    def _check_quantity(raw: Any) -> Any:
        ok, q = try_parse_decimal(raw)
        if not ok:
            return 0
        if q < 0:
            raise DomainError("Quantity cannot be negative.")
        return _json_number(q)

    @staticmethod
    def _check_prepayment(raw: Any) -> str:
        if raw is None or str(raw).strip() == "":
            return "0.00"
        if not is_non_negative_number(raw):
            raise DomainError("Prepayment must be a non-negative number.")
        return money_str(raw)

    def _build_items(
        self,
        order_id: int,
        items: Iterable[Mapping[str, Any]],
        first_id: int,
        *,
        fallback_name: str,
        fallback_category: str,
    ) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = []
        for n, raw in enumerate(items):
            pid = raw.get("positionId", raw.get("position_id"))
            item = OrderItem(
                id=first_id + n,
                order_id=order_id,
                position_id=_to_int(pid, 0) or None,
                position_name=str(raw.get("position_name") or fallback_name),
                category_name=str(raw.get("category_name") or fallback_category),
                quantity=self._check_quantity(raw.get("quantity", 0)),
                price=str(raw.get("price") or "0"),
                discount=str(raw.get("discount") or "0"),
            )
            out.append(recompute_item(item).to_dict())
        return out

    # ---------------------------- Queries ----------------------------

    def snapshot(self) -> Snapshot:
        return Snapshot.from_blob(self.store.load())

    def list_orders(self, include_deleted: bool = False) -> List[Order]:
        """Orders with their items joined, soft-deleted ones hidden by default."""
        orders = self.snapshot().orders_joined()
        if include_deleted:
            return orders
        return [o for o in orders if not o.is_deleted]

    def get(self, order_id: int) -> Optional[Order]:
        blob = self.store.load()
        raw = self._find(blob, order_id)
        if raw is None:
            return None
        return join_items([raw], blob["orderItems"])[0]

    # ---------------------------- Mutations ----------------------------

    def create_order(self, fields: Mapping[str, Any], items: Iterable[Mapping[str, Any]]) -> Order:
        """
        Insert a new order. id = max(existing)+1, invoice derived from it.
        Item totals are recomputed; callers' total_price values are ignored.
        """
        items = list(items)
        if not non_empty(fields.get("client_name")):
            raise DomainError("Client name cannot be empty.")
        if not items:
            raise DomainError("Order must contain at least one item.")

        with self._blob_tx() as blob:
            order_id = next_id(blob["orders"])
            stamp = now_iso()
            row: Dict[str, Any] = {k: fields[k] for k in _EDITABLE_FIELDS if k in fields}
            row.update(
                id=order_id,
                invoice_number=invoice_for(order_id),
                order_date=str(fields.get("order_date") or today_str()),
                client_name=str(fields["client_name"]).strip(),
                prepayment=self._check_prepayment(fields.get("prepayment")),
                cargo_status_id=_to_int(fields.get("cargo_status_id"), STATUS_PREORDER),
                is_completed=bool(fields.get("is_completed", False)),
                is_deleted=False,
                created_at=stamp,
                updated_at=stamp,
            )
            new_items = self._build_items(
                order_id, items, next_id(blob["orderItems"]),
                fallback_name=_NEW_ITEM_NAME, fallback_category="",
            )
            blob["orders"].append(row)
            blob["orderItems"].extend(new_items)

        log_event(_log, "create_order", "done", "order created",
                  {"order_id": order_id, "items": len(new_items)})
        return Order.from_dict(row, items=new_items)

    def update_order(
        self,
        order_id: int,
        fields: Mapping[str, Any],
        items: Optional[Iterable[Mapping[str, Any]]] = None,
    ) -> Order:
        """
        Merge fields into the order and stamp updated_at. When items are given
        the order's item set is replaced wholesale.
        """
        if "client_name" in fields and not non_empty(fields.get("client_name")):
            raise DomainError("Client name cannot be empty.")
        items = list(items) if items is not None else None

        with self._blob_tx() as blob:
            row = self._find(blob, order_id)
            if row is None:
                raise DomainError(f"Order #{order_id} not found.")
            for k in _EDITABLE_FIELDS:
                if k in fields:
                    row[k] = fields[k]
            if "prepayment" in fields:
                row["prepayment"] = self._check_prepayment(fields["prepayment"])
            if "client_name" in fields:
                row["client_name"] = str(fields["client_name"]).strip()
            row["updated_at"] = now_iso()

            if items is not None:
                oid = _to_int(row.get("id"), 0)
                kept = [i for i in blob["orderItems"] if _to_int(i.get("orderId"), 0) != oid]
                new_items = self._build_items(
                    oid, items, next_id(kept),
                    fallback_name=_ARCHIVED_ITEM_NAME,
                    fallback_category=_ARCHIVED_CATEGORY_NAME,
                )
                blob["orderItems"] = kept + new_items
            result = join_items([row], blob["orderItems"])[0]

        log_event(_log, "update_order", "done", "order updated",
                  {"order_id": order_id, "items_replaced": items is not None})
        return result

    def delete_order(self, order_id: int) -> None:
        """Soft delete: the order stays in storage flagged is_deleted."""
        with self._blob_tx() as blob:
            row = self._find(blob, order_id)
            if row is None:
                raise DomainError(f"Order #{order_id} not found.")
            row["is_deleted"] = True
        log_event(_log, "delete_order", "done", "order soft-deleted", {"order_id": order_id})

    def clear_orders(self) -> None:
        with self._blob_tx() as blob:
            removed = len(blob["orders"])
            blob["orders"] = []
            blob["orderItems"] = []
        log_event(_log, "clear_orders", "done", "orders cleared", {"removed": removed},
                  level=logging.WARNING)

    def settle_debt(self, order_id: int, amount: Any, *, paid_note: str = PAID_NOTE) -> Settlement:
        """
        Debtors payment shortcut: add ``amount`` to the prepayment and, when
        the remaining debt is gone, complete the order.
        """
        if not is_strictly_positive_number(amount):
            raise DomainError("Payment amount must be greater than zero.")
        value = parse_decimal(amount)

        with self._blob_tx() as blob:
            row = self._find(blob, order_id)
            if row is None:
                raise DomainError(f"Order #{order_id} not found.")
            if row.get("is_deleted"):
                raise DomainError(f"Order #{order_id} is deleted.")
            order = join_items([row], blob["orderItems"])[0]
            result = settle(order, value, paid_note=paid_note)
            row.update(
                prepayment=result.order.prepayment,
                cargo_status_id=result.order.cargo_status_id,
                is_completed=result.order.is_completed,
                note=result.order.note,
                updated_at=now_iso(),
            )

        log_event(
            _log, "settle", "done", "debt payment applied",
            {
                "order_id": order_id,
                "amount": str(result.amount),
                "remaining": str(result.remaining),
                "completed": result.completed,
            },
        )
        return result

    # ---------------------------- Import ----------------------------

    @classmethod
    def _import_item(cls, f: Mapping[str, Any], item_id: int, order_id: int) -> Dict[str, Any]:
        """Imported lines get the same checks as form input; total_price is recomputed."""
        pid = f.get("position") or f.get("positionId")
        item = OrderItem(
            id=item_id,
            order_id=order_id,
            position_id=_to_int(pid, 0) or None,
            position_name=str(f.get("position_name") or _IMPORT_ITEM_NAME),
            category_name=str(f.get("category_name") or _IMPORT_CATEGORY),
            quantity=cls._check_quantity(f.get("quantity") or "0"),
            price=str(f.get("price") or "0"),
            discount=str(f.get("discount") or "0"),
        )
        return recompute_item(item).to_dict()

    def bulk_add_orders(self, records: Iterable[Mapping[str, Any]]) -> Tuple[int, int]:
        """
        Import plain or Django-fixture order records; ids already present are
        skipped. Nested ``items`` are imported with their order; an item id
        that is already taken is renumbered. A negative quantity aborts the
        whole import with DomainError and nothing is saved.
        Returns (orders_added, items_added).
        """
        added = items_added = 0
        with self._blob_tx() as blob:
            existing = {_to_int(o.get("id"), 0) for o in blob["orders"]}
            item_ids = {_to_int(i.get("id"), 0) for i in blob["orderItems"]}
            for rec in records:
                is_fixture, f = _unwrap_fixture(rec)
                raw_id = rec.get("pk") if is_fixture else rec.get("id")
                order_id = _to_int(raw_id, 0) or next_id(blob["orders"])
                if order_id in existing:
                    continue
                stamp = now_iso()
                blob["orders"].append({
                    "id": order_id,
                    "invoice_number": f.get("invoice_number") or invoice_for(order_id),
                    "order_date": f.get("order_date") or today_str(),
                    "client_name": f.get("client_name") or _IMPORT_CLIENT,
                    "client_phone": f.get("client_phone") or _IMPORT_PLACEHOLDER,
                    "prepayment": str(f.get("prepayment") or "0"),
                    "delivery_address": f.get("delivery_address") or _IMPORT_PLACEHOLDER,
                    "shipping_date": f.get("shipping_date") or None,
                    "cargo_status_id": _to_int(
                        f.get("cargo_status") or f.get("cargo_status_id") or STATUS_PREORDER,
                        STATUS_PREORDER,
                    ),
                    "note": f.get("note") or None,
                    "remind": bool(f.get("remind")),
                    "is_completed": bool(f.get("is_completed")),
                    "is_deleted": bool(f.get("is_deleted")),
                    "created_at": f.get("created_at") or stamp,
                    "updated_at": f.get("updated_at") or stamp,
                })
                existing.add(order_id)
                added += 1

                for it in f.get("items") or ():
                    item_f = it.get("fields") or it
                    item_id = _to_int(it.get("pk") or it.get("id"), 0)
                    if not item_id or item_id in item_ids:
                        item_id = next_id(blob["orderItems"])
                    item_ids.add(item_id)
                    blob["orderItems"].append(self._import_item(item_f, item_id, order_id))
                    items_added += 1

        log_event(_log, "import", "done", "orders imported",
                  {"orders": added, "items": items_added})
        return added, items_added

    def bulk_add_order_items(self, records: Iterable[Mapping[str, Any]]) -> int:
        """
        Import flat item records; records without an order or with a known id
        are skipped. A negative quantity aborts the whole import.
        """
        count = 0
        with self._blob_tx() as blob:
            existing = {_to_int(i.get("id"), 0) for i in blob["orderItems"]}
            for rec in records:
                is_fixture, f = _unwrap_fixture(rec)
                order_id = _to_int(f.get("order") or f.get("orderId"), 0)
                if not order_id:
                    continue
                raw_id = rec.get("pk") if is_fixture else rec.get("id")
                item_id = _to_int(raw_id, 0) or next_id(blob["orderItems"])
                if item_id in existing:
                    continue
                blob["orderItems"].append(self._import_item(f, item_id, order_id))
                existing.add(item_id)
                count += 1

        log_event(_log, "import", "done", "order items imported", {"items": count})
        return count
