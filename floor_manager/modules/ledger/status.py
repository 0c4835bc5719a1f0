# floor_manager/modules/ledger/status.py
"""
Cargo status rules.

Only one status carries behaviour: PREORDER (id 1) is excluded from every
debt/receivables figure. AT_CLIENT_PAID (id 8) is where a full settlement
lands. Everything else is a free-form workflow label.
"""
from __future__ import annotations

from typing import Iterable, Mapping, Optional

from ...constants import STATUS_AT_CLIENT_DEBT, STATUS_AT_CLIENT_PAID, STATUS_PREORDER
from ...database.schema import CargoStatus, Order

__all__ = [
    "PREORDER",
    "AT_CLIENT_DEBT",
    "AT_CLIENT_PAID",
    "UNKNOWN_NAME",
    "UNKNOWN_COLOR",
    "is_preorder",
    "is_active",
    "status_index",
    "label",
    "color",
]

PREORDER = STATUS_PREORDER
AT_CLIENT_DEBT = STATUS_AT_CLIENT_DEBT
AT_CLIENT_PAID = STATUS_AT_CLIENT_PAID

UNKNOWN_NAME = "..."
UNKNOWN_COLOR = "#cbd5e1"


def is_preorder(order: Order) -> bool:
    """True for orders in the preorder status; they never count as debt."""
    return order.cargo_status_id == PREORDER


def is_active(order: Order) -> bool:
    """Soft-deleted orders are invisible to every aggregate."""
    return not order.is_deleted


def status_index(statuses: Iterable[CargoStatus]) -> Mapping[int, CargoStatus]:
    return {s.id: s for s in statuses}


def label(status_id: int, statuses: Mapping[int, CargoStatus]) -> str:
    s: Optional[CargoStatus] = statuses.get(status_id)
    return s.name if s else UNKNOWN_NAME


def color(status_id: int, statuses: Mapping[int, CargoStatus]) -> str:
    s = statuses.get(status_id)
    return s.color if s else UNKNOWN_COLOR
