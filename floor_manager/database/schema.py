# floor_manager/database/schema.py
"""
Persisted blob layout, defaults and typed records.

The whole application state is one JSON object:

    {
      "categories": [...], "positions": [...],
      "orders": [...], "orderItems": [...],          # items are flat, joined by orderId
      "cargoStatuses": [...], "users": [...],
      "workCategories": [...], "workPositions": [...],
      "licenseKey": null
    }

Monetary fields stay decimal *strings* in the blob; the ledger parses them.
Records are frozen dataclasses so ledger functions work over immutable snapshots.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ..constants import STATUS_PREORDER

_log = logging.getLogger(__name__)

ARRAY_KEYS = (
    "categories",
    "positions",
    "orders",
    "orderItems",
    "cargoStatuses",
    "users",
    "workCategories",
    "workPositions",
)

_ALL_EDIT = {
    "dashboard": "edit",
    "orders": "edit",
    "positions": "edit",
    "categories": "edit",
    "debtors": "edit",
    "analytics": "edit",
    "settings": "edit",
}

DEFAULT_BLOB: Dict[str, Any] = {
    "categories": [
        {"id": 1, "name": "Винил", "order_index": 1, "color": "#10b981"},
        {"id": 2, "name": "Доска", "order_index": 2, "color": "#f59e0b"},
        {"id": 3, "name": "Забор", "order_index": 3, "color": "#ef4444"},
        {"id": 4, "name": "Кварц-Паркет", "order_index": 4, "color": "#3b82f6"},
        {"id": 5, "name": "Ламинат", "order_index": 5, "color": "#3b82f6"},
        {"id": 6, "name": "Модульный паркет", "order_index": 6, "color": "#f59e0b"},
        {"id": 7, "name": "Подложка", "order_index": 7, "color": "#94a3b8"},
        {"id": 8, "name": "Плинтус", "order_index": 8, "color": "#94a3b8"},
        {"id": 9, "name": "Расходник", "order_index": 9, "color": "#94a3b8"},
        {"id": 10, "name": "Фанера", "order_index": 10, "color": "#94a3b8"},
        {"id": 11, "name": "Услуга", "order_index": 11, "color": "#10b981"},
        {"id": 12, "name": "Химия", "order_index": 12, "color": "#10b981"},
        {"id": 24, "name": "Лестница", "order_index": 13, "color": "#f59e0b"},
        {"id": 25, "name": "Декоративный элемент", "order_index": 14, "color": "#3b82f6"},
        {"id": 26, "name": "Работа", "order_index": 15, "color": "#10b981"},
        {"id": 27, "name": "Линолеум", "order_index": 16, "color": "#10b981"},
    ],
    "positions": [],
    "orders": [],
    "orderItems": [],
    "workCategories": [
        {"id": 1, "name": "Подготовка основания"},
        {"id": 2, "name": "Укладка покрытий"},
        {"id": 3, "name": "Монтаж плинтуса и порогов"},
        {"id": 4, "name": "Дополнительные услуги"},
    ],
    "workPositions": [
        {"id": 1, "categoryId": 1, "name": "Грунтование пола", "price": "100", "unit": "м²"},
        {"id": 2, "categoryId": 1, "name": "Шлифовка стяжки", "price": "250", "unit": "м²"},
        {"id": 3, "categoryId": 1, "name": "Наливной пол (работа)", "price": "450", "unit": "м²"},
        {"id": 4, "categoryId": 2, "name": "Укладка ламината", "price": "350", "unit": "м²"},
        {"id": 5, "categoryId": 2, "name": "Укладка винила (кварц-винил)", "price": "400", "unit": "м²"},
        {"id": 6, "categoryId": 2, "name": "Укладка паркетной доски", "price": "650", "unit": "м²"},
        {"id": 7, "categoryId": 3, "name": "Монтаж плинтуса (пластик)", "price": "150", "unit": "мп"},
        {"id": 8, "categoryId": 3, "name": "Монтаж плинтуса (МДФ)", "price": "300", "unit": "мп"},
        {"id": 9, "categoryId": 4, "name": "Вынос мусора", "price": "2000", "unit": "рейс"},
    ],
    "cargoStatuses": [
        {"id": 1, "name": "предзаказ", "order_index": 0, "color": "#94a3b8", "text_color": "#ffffff"},
        {"id": 2, "name": "у поставщика", "order_index": 1, "color": "#f59e0b", "text_color": "#ffffff"},
        {"id": 3, "name": "в транспортной", "order_index": 2, "color": "#3b82f6", "text_color": "#ffffff"},
        {"id": 4, "name": "в машине", "order_index": 3, "color": "#3b82f6", "text_color": "#ffffff"},
        {"id": 5, "name": "на складе", "order_index": 4, "color": "#10b981", "text_color": "#ffffff"},
        {"id": 6, "name": "в магазине", "order_index": 5, "color": "#10b981", "text_color": "#ffffff"},
        {"id": 7, "name": "у клиента (долг)", "order_index": 6, "color": "#ef4444", "text_color": "#ffffff"},
        {"id": 8, "name": "у клиента", "order_index": 7, "color": "#059669", "text_color": "#ffffff"},
        {"id": 9, "name": "отменён", "order_index": 8, "color": "#374151", "text_color": "#ffffff"},
        {"id": 10, "name": "возврат", "order_index": 9, "color": "#374151", "text_color": "#ffffff"},
    ],
    "users": [
        {"id": 1, "username": "Администратор", "role": "admin", "permissions": dict(_ALL_EDIT)},
    ],
    "licenseKey": None,
}

# Arrays that fall back to defaults when missing (others fall back to []).
_DEFAULTED_ARRAYS = ("categories", "users", "workCategories", "workPositions", "cargoStatuses")


def default_blob() -> Dict[str, Any]:
    return copy.deepcopy(DEFAULT_BLOB)


def normalize_blob(raw: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Fill missing arrays the way older saves expect:
      - orders / orderItems / positions -> []
      - categories / users / work catalog / statuses -> defaults
    Unknown keys are preserved.
    """
    if not raw:
        return default_blob()
    blob = copy.deepcopy(dict(raw))
    for key in ARRAY_KEYS:
        if not isinstance(blob.get(key), list):
            if key in _DEFAULTED_ARRAYS:
                blob[key] = copy.deepcopy(DEFAULT_BLOB[key])
            else:
                blob[key] = []
    blob.setdefault("licenseKey", None)
    return blob


def next_id(rows: Iterable[Mapping[str, Any]]) -> int:
    """max(existing id) + 1, or 1 for an empty collection."""
    ids = [_to_int(r.get("id"), 0) for r in rows]
    return max(ids) + 1 if ids else 1


# ---------------------------------------------------------------------------
# Coercion helpers (tolerant: never raise on bad field values)
# ---------------------------------------------------------------------------

def _to_int(x: Any, default: int) -> int:
    try:
        return int(x)
    except (TypeError, ValueError, OverflowError):
        try:
            return int(float(x))
        except (TypeError, ValueError, OverflowError):
            return default


def _to_str(x: Any, default: str = "") -> str:
    return default if x is None else str(x)


def _opt_str(x: Any) -> Optional[str]:
    if x is None or x == "":
        return None
    return str(x)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Category:
    id: int
    name: str
    order_index: int = 0
    color: str = "#94a3b8"

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "Category":
        return cls(
            id=_to_int(d.get("id"), 0),
            name=_to_str(d.get("name")),
            order_index=_to_int(d.get("order_index"), 0),
            color=_to_str(d.get("color"), "#94a3b8"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "order_index": self.order_index, "color": self.color}


@dataclass(frozen=True)
class Position:
    id: int
    brand: str
    name: str
    category_id: int
    price: str
    unit: str
    quantity: float = 0
    external_id: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "Position":
        qty = d.get("quantity", 0)
        try:
            qty = float(qty)
        except (TypeError, ValueError, OverflowError):
            qty = 0.0
        return cls(
            id=_to_int(d.get("id"), 0),
            brand=_to_str(d.get("brand")),
            name=_to_str(d.get("name")),
            category_id=_to_int(d.get("categoryId"), 0),
            price=_to_str(d.get("price"), "0"),
            unit=_to_str(d.get("unit")),
            quantity=qty,
            external_id=_opt_str(d.get("external_id")),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "id": self.id,
            "brand": self.brand,
            "name": self.name,
            "categoryId": self.category_id,
            "price": self.price,
            "unit": self.unit,
            "quantity": self.quantity,
        }
        if self.external_id is not None:
            out["external_id"] = self.external_id
        return out


@dataclass(frozen=True)
class WorkCategory:
    id: int
    name: str

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "WorkCategory":
        return cls(id=_to_int(d.get("id"), 0), name=_to_str(d.get("name")))

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class WorkPosition:
    id: int
    category_id: int
    name: str
    price: str
    unit: str

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "WorkPosition":
        return cls(
            id=_to_int(d.get("id"), 0),
            category_id=_to_int(d.get("categoryId"), 0),
            name=_to_str(d.get("name")),
            price=_to_str(d.get("price"), "0"),
            unit=_to_str(d.get("unit")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "categoryId": self.category_id,
            "name": self.name,
            "price": self.price,
            "unit": self.unit,
        }


@dataclass(frozen=True)
class CargoStatus:
    id: int
    name: str
    order_index: int = 0
    color: str = "#cbd5e1"
    text_color: str = "#ffffff"

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "CargoStatus":
        return cls(
            id=_to_int(d.get("id"), 0),
            name=_to_str(d.get("name")),
            order_index=_to_int(d.get("order_index"), 0),
            color=_to_str(d.get("color"), "#cbd5e1"),
            text_color=_to_str(d.get("text_color"), "#ffffff"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "order_index": self.order_index,
            "color": self.color,
            "text_color": self.text_color,
        }


@dataclass(frozen=True)
class User:
    id: int
    username: str
    role: str = "user"
    password: Optional[str] = None
    permissions: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "User":
        perms = d.get("permissions") or {}
        return cls(
            id=_to_int(d.get("id"), 0),
            username=_to_str(d.get("username")),
            role=_to_str(d.get("role"), "user"),
            password=_opt_str(d.get("password")),
            permissions=dict(perms) if isinstance(perms, Mapping) else {},
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "username": self.username,
            "role": self.role,
            "permissions": dict(self.permissions),
        }
        if self.password:
            out["password"] = self.password
        return out


@dataclass(frozen=True)
class OrderItem:
    """
    One order line. ``position_name``/``category_name`` are point-in-time labels
    owned by the line; they are never re-resolved against the live catalog.
    """
    id: int
    order_id: int
    position_name: str
    category_name: str
    quantity: Any
    price: str
    discount: str = "0"
    total_price: str = "0"
    position_id: Optional[int] = None

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "OrderItem":
        pid = d.get("positionId")
        return cls(
            id=_to_int(d.get("id"), 0),
            order_id=_to_int(d.get("orderId"), 0),
            position_id=None if pid in (None, "", 0, "0") else _to_int(pid, 0) or None,
            position_name=_to_str(d.get("position_name")),
            category_name=_to_str(d.get("category_name")),
            quantity=d.get("quantity", 0),
            price=_to_str(d.get("price"), "0"),
            discount=_to_str(d.get("discount"), "0"),
            total_price=_to_str(d.get("total_price"), "0"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "orderId": self.order_id,
            "positionId": self.position_id,
            "position_name": self.position_name,
            "category_name": self.category_name,
            "quantity": self.quantity,
            "price": self.price,
            "discount": self.discount,
            "total_price": self.total_price,
        }


@dataclass(frozen=True)
class Order:
    id: int
    invoice_number: Optional[str]
    order_date: str
    client_name: str
    client_phone: str = ""
    prepayment: str = "0"
    delivery_address: str = ""
    shipping_date: Optional[str] = None
    cargo_status_id: int = STATUS_PREORDER
    note: Optional[str] = None
    remind: bool = False
    remind_at: Optional[str] = None
    is_completed: bool = False
    is_deleted: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    items: Tuple[OrderItem, ...] = ()

    @classmethod
    def from_dict(cls, d: Mapping[str, Any], items: Optional[Iterable[Any]] = None) -> "Order":
        raw_items = items if items is not None else (d.get("items") or ())
        parsed = tuple(i if isinstance(i, OrderItem) else OrderItem.from_dict(i) for i in raw_items)
        return cls(
            id=_to_int(d.get("id"), 0),
            invoice_number=_opt_str(d.get("invoice_number")),
            order_date=_to_str(d.get("order_date")),
            client_name=_to_str(d.get("client_name")),
            client_phone=_to_str(d.get("client_phone")),
            prepayment=_to_str(d.get("prepayment"), "0") or "0",
            delivery_address=_to_str(d.get("delivery_address")),
            shipping_date=_opt_str(d.get("shipping_date")),
            cargo_status_id=_to_int(d.get("cargo_status_id"), STATUS_PREORDER),
            note=_opt_str(d.get("note")),
            remind=bool(d.get("remind", False)),
            remind_at=_opt_str(d.get("remind_at")),
            is_completed=bool(d.get("is_completed", False)),
            is_deleted=bool(d.get("is_deleted", False)),
            created_at=_opt_str(d.get("created_at")),
            updated_at=_opt_str(d.get("updated_at")),
            items=parsed,
        )

    def to_dict(self, *, with_items: bool = False) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "order_date": self.order_date,
            "client_name": self.client_name,
            "client_phone": self.client_phone,
            "prepayment": self.prepayment,
            "delivery_address": self.delivery_address,
            "shipping_date": self.shipping_date,
            "cargo_status_id": self.cargo_status_id,
            "note": self.note,
            "remind": self.remind,
            "remind_at": self.remind_at,
            "is_completed": self.is_completed,
            "is_deleted": self.is_deleted,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if with_items:
            out["items"] = [i.to_dict() for i in self.items]
        return out

    def with_items(self, items: Iterable[OrderItem]) -> "Order":
        return replace(self, items=tuple(items))


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

def join_items(orders: Iterable[Any], order_items: Iterable[Any]) -> List[Order]:
    """
    Join a flat item list onto orders by orderId. Accepts dicts or records.
    Items are grouped by order id only; (orderId, positionId) pairs may repeat.
    """
    by_order: Dict[int, List[OrderItem]] = {}
    for it in order_items:
        item = it if isinstance(it, OrderItem) else OrderItem.from_dict(it)
        by_order.setdefault(item.order_id, []).append(item)
    out: List[Order] = []
    for o in orders:
        if isinstance(o, Order):
            out.append(o.with_items(by_order.get(o.id, ())))
        else:
            oid = _to_int(o.get("id"), 0)
            out.append(Order.from_dict(o, items=by_order.get(oid, ())))
    return out


@dataclass(frozen=True)
class Snapshot:
    """Immutable, typed view of one loaded blob."""
    categories: Tuple[Category, ...] = ()
    positions: Tuple[Position, ...] = ()
    orders: Tuple[Order, ...] = ()
    order_items: Tuple[OrderItem, ...] = ()
    cargo_statuses: Tuple[CargoStatus, ...] = ()
    users: Tuple[User, ...] = ()
    work_categories: Tuple[WorkCategory, ...] = ()
    work_positions: Tuple[WorkPosition, ...] = ()
    license_key: Optional[str] = None

    @classmethod
    def from_blob(cls, blob: Mapping[str, Any]) -> "Snapshot":
        b = normalize_blob(blob)
        return cls(
            categories=tuple(Category.from_dict(x) for x in b["categories"]),
            positions=tuple(Position.from_dict(x) for x in b["positions"]),
            orders=tuple(Order.from_dict(x, items=()) for x in b["orders"]),
            order_items=tuple(OrderItem.from_dict(x) for x in b["orderItems"]),
            cargo_statuses=tuple(CargoStatus.from_dict(x) for x in b["cargoStatuses"]),
            users=tuple(User.from_dict(x) for x in b["users"]),
            work_categories=tuple(WorkCategory.from_dict(x) for x in b["workCategories"]),
            work_positions=tuple(WorkPosition.from_dict(x) for x in b["workPositions"]),
            license_key=_opt_str(b.get("licenseKey")),
        )

    def to_blob(self) -> Dict[str, Any]:
        return {
            "categories": [x.to_dict() for x in self.categories],
            "positions": [x.to_dict() for x in self.positions],
            "orders": [x.to_dict() for x in self.orders],
            "orderItems": [x.to_dict() for x in self.order_items],
            "cargoStatuses": [x.to_dict() for x in self.cargo_statuses],
            "users": [x.to_dict() for x in self.users],
            "workCategories": [x.to_dict() for x in self.work_categories],
            "workPositions": [x.to_dict() for x in self.work_positions],
            "licenseKey": self.license_key,
        }

    def orders_joined(self) -> List[Order]:
        return join_items(self.orders, self.order_items)
