# floor_manager/modules/orders/model.py
"""
Order journal helpers (search, status filter, sort, pagination) and the
client autocomplete used while entering a new order.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from ...constants import CLIENT_SUGGEST_LIMIT, DEFAULT_PAGE_SIZE
from ...database.schema import Order
from ..ledger.calculations import order_totals
from ..ledger.ledger import active_orders, order_day

__all__ = [
    "SORT_FIELDS",
    "filter_orders",
    "paginate",
    "normalize_phone",
    "normalize_name",
    "ClientSuggestion",
    "ClientIndex",
    "client_index",
    "suggest_clients",
]

SORT_FIELDS = ("id", "client_name", "order_date", "total")

_NON_DIGITS = re.compile(r"\D")
_SPACES = re.compile(r"\s+")

# Phone queries shorter than this are treated as name queries.
_MIN_PHONE_QUERY = 3
# Full local numbers are 10-11 digits (with the 7/8 trunk prefix).
_MIN_FULL_PHONE = 10


# --------------------------- Journal ---------------------------

def _matches(order: Order, term: str) -> bool:
    needle = term.strip().casefold()
    if not needle:
        return True
    return (
        needle in order.client_name.casefold()
        or needle in (order.invoice_number or "").casefold()
        or term.strip() in (order.client_phone or "")
    )


def _sort_key(sort_field: str):
    if sort_field == "id":
        return lambda o: o.id
    if sort_field == "client_name":
        return lambda o: (o.client_name.casefold(), o.id)
    if sort_field == "order_date":
        return lambda o: (order_day(o) or date.min, o.id)
    if sort_field == "total":
        return lambda o: (order_totals(o).total, o.id)
    raise ValueError(f"Unknown sort field: {sort_field!r}")


def filter_orders(
    orders: Iterable[Order],
    search: str = "",
    status_id: Optional[int] = None,
    sort_field: str = "id",
    descending: bool = True,
) -> List[Order]:
    """Active orders matching ``search`` and ``status_id`` (None = all statuses), sorted."""
    key = _sort_key(sort_field)
    rows = [
        o for o in active_orders(orders)
        if _matches(o, search or "") and (status_id is None or o.cargo_status_id == status_id)
    ]
    rows.sort(key=key, reverse=descending)
    return rows


def paginate(rows: List, page: int = 1, per_page: int = DEFAULT_PAGE_SIZE) -> Tuple[List, int]:
    """
    Returns (rows on ``page``, total pages). Pages are 1-based; a page past
    the end yields an empty slice.
    """
    if per_page <= 0:
        raise ValueError("per_page must be positive")
    total_pages = math.ceil(len(rows) / per_page)
    page = max(1, page)
    start = (page - 1) * per_page
    return rows[start:start + per_page], total_pages


# --------------------------- Client autocomplete ---------------------------

def normalize_phone(raw: Optional[str]) -> str:
    return _NON_DIGITS.sub("", raw or "")


def normalize_name(raw: Optional[str]) -> str:
    return _SPACES.sub(" ", (raw or "").strip()).casefold()


@dataclass(frozen=True)
class ClientSuggestion:
    key: str
    client_name: str
    client_phone: str
    delivery_address: str
    last_order_date: str = ""


@dataclass
class ClientIndex:
    clients: List[ClientSuggestion] = field(default_factory=list)
    by_phone: Dict[str, ClientSuggestion] = field(default_factory=dict)

    def lookup_phone(self, phone: str) -> Optional[ClientSuggestion]:
        """
        Exact match for a fully typed phone number; 8XXXXXXXXXX and
        7XXXXXXXXXX are treated as the same number.
        """
        n = normalize_phone(phone)
        if len(n) < _MIN_FULL_PHONE:
            return None
        found = self.by_phone.get(n)
        if found is None and len(n) == 11 and n[0] in "78":
            found = self.by_phone.get(("7" if n[0] == "8" else "8") + n[1:])
        return found


def client_index(orders: Iterable[Order]) -> ClientIndex:
    """
    Unique clients seen in past orders, freshest data first. Clients with a
    phone are keyed by its digits; the rest by normalised name.
    """
    fresh = sorted(active_orders(orders), key=lambda o: order_day(o) or date.min, reverse=True)
    by_phone: Dict[str, ClientSuggestion] = {}
    by_name_phone: Dict[str, ClientSuggestion] = {}

    for o in fresh:
        name = (o.client_name or "").strip()
        phone = (o.client_phone or "").strip()
        if not name and not phone:
            continue
        n_phone = normalize_phone(phone)
        key_name_phone = f"{normalize_name(name)}|{n_phone}"
        suggestion = ClientSuggestion(
            key=n_phone or key_name_phone,
            client_name=name,
            client_phone=phone,
            delivery_address=(o.delivery_address or "").strip(),
            last_order_date=o.order_date,
        )
        if n_phone:
            by_phone.setdefault(n_phone, suggestion)
        by_name_phone.setdefault(key_name_phone, suggestion)

    merged: List[ClientSuggestion] = list(by_phone.values())
    for s in by_name_phone.values():
        n_phone = normalize_phone(s.client_phone)
        if n_phone and n_phone in by_phone:
            continue
        merged.append(s)
    return ClientIndex(clients=merged, by_phone=by_phone)


def suggest_clients(index: ClientIndex, query: str, limit: int = CLIENT_SUGGEST_LIMIT) -> List[ClientSuggestion]:
    """A query with at least 3 digits searches phones, anything else searches names."""
    q = (query or "").strip()
    if not q:
        return []
    q_phone = normalize_phone(q)
    q_name = normalize_name(q)
    if len(q_phone) >= _MIN_PHONE_QUERY:
        hits = (c for c in index.clients if q_phone in normalize_phone(c.client_phone))
    else:
        hits = (c for c in index.clients if q_name in normalize_name(c.client_name))
    out: List[ClientSuggestion] = []
    for c in hits:
        out.append(c)
        if len(out) >= limit:
            break
    return out
