# floor_manager/modules/debtors/model.py
"""
Debtors list: orders with an outstanding balance above DEBT_EPSILON.
Preorders never appear here, whatever the dashboard toggle says.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Sequence

from ...database.schema import Order
from ..ledger.calculations import OrderTotals, order_totals
from ..ledger.ledger import is_debtor, order_day
from ..ledger.money import dsum

__all__ = ["SORT_KEYS", "DebtorRow", "matches_search", "list_debtors", "debtors_total", "table_rows"]

SORT_KEYS = ("debt", "name", "date")


@dataclass(frozen=True)
class DebtorRow:
    order: Order
    totals: OrderTotals

    @property
    def debt(self) -> Decimal:
        return self.totals.debt


def matches_search(order: Order, term: str) -> bool:
    """Case-insensitive substring match over client name, invoice and phone."""
    needle = (term or "").strip().casefold()
    if not needle:
        return True
    haystack = (order.client_name, order.invoice_number or "", order.client_phone or "")
    return any(needle in h.casefold() for h in haystack)


def list_debtors(orders: Iterable[Order], search: str = "", sort: str = "debt") -> List[DebtorRow]:
    """
    Debtor rows filtered by ``search`` and ordered by ``sort``:
    "debt" largest first, "name" alphabetical, "date" newest first.
    """
    if sort not in SORT_KEYS:
        raise ValueError(f"Unknown sort key: {sort!r}")
    rows = []
    for o in orders:
        t = order_totals(o)
        if is_debtor(o, t) and matches_search(o, search):
            rows.append(DebtorRow(order=o, totals=t))

    if sort == "debt":
        rows.sort(key=lambda r: (-r.debt, r.order.id))
    elif sort == "name":
        rows.sort(key=lambda r: (r.order.client_name.casefold(), r.order.id))
    else:
        # unparsable dates sink to the bottom
        rows.sort(key=lambda r: (order_day(r.order) is not None, order_day(r.order) or 0, r.order.id), reverse=True)
    return rows


def debtors_total(rows: Sequence[DebtorRow]) -> Decimal:
    return dsum(r.debt for r in rows)


def table_rows(rows: Sequence[DebtorRow]) -> List[dict]:
    """Flat dicts for the debtors table and CSV export."""
    return [
        {
            "order_id": r.order.id,
            "invoice": r.order.invoice_number or f"№{r.order.id}",
            "date": r.order.order_date,
            "client": r.order.client_name,
            "phone": r.order.client_phone,
            "total": r.totals.total,
            "paid": r.totals.paid,
            "debt": r.debt,
        }
        for r in rows
    ]
