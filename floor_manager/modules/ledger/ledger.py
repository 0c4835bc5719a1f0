# floor_manager/modules/ledger/ledger.py
"""
Debt/Revenue Ledger: cross-order aggregation over an immutable order list.

Rules
-----
- Soft-deleted orders never count.
- Preorders (see status.is_preorder) are excluded from every debt figure,
  unconditionally. The separate ``exclude_preorders`` toggle only affects
  sales/revenue figures and never changes a debt aggregate.
- An order is a debtor iff it is active, not a preorder and
  total - prepayment > DEBT_EPSILON.
- Day buckets sum signed debts first and floor the aggregate at zero.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Tuple

from ...constants import PAID_NOTE
from ...database.schema import Order
from .calculations import OrderTotals, clamp_non_negative, order_totals
from .money import DEBT_EPSILON, ZERO, dsum, money_str, q2
from .status import AT_CLIENT_PAID, is_active, is_preorder

__all__ = [
    "parse_day",
    "order_day",
    "active_orders",
    "in_period",
    "sales_orders",
    "is_debtor",
    "debtor_orders",
    "debtors_sum",
    "debt_sum",
    "revenue_sum",
    "cash_sum",
    "DayBucket",
    "day_series",
    "ReconciliationRow",
    "Reconciliation",
    "reconciliation",
    "urgent_orders",
    "Settlement",
    "settle",
    "full_payment",
    "complete_order",
]

_log = logging.getLogger(__name__)

DateLike = Any  # date | datetime | "YYYY-MM-DD..." | None


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

def parse_day(value: DateLike) -> Optional[date]:
    """Calendar day of a date/datetime/ISO string; None when unparsable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            _log.debug("parse_day: cannot parse %r", value)
            return None


def order_day(order: Order) -> Optional[date]:
    return parse_day(order.order_date)


def in_period(order: Order, date_from: DateLike = None, date_to: DateLike = None) -> bool:
    """Inclusive day-range test. Orders with unparsable dates are outside every range."""
    d = order_day(order)
    if d is None:
        return False
    lo, hi = parse_day(date_from), parse_day(date_to)
    if lo is not None and d < lo:
        return False
    if hi is not None and d > hi:
        return False
    return True


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------

def active_orders(orders: Iterable[Order]) -> List[Order]:
    return [o for o in orders if is_active(o)]


def sales_orders(orders: Iterable[Order], exclude_preorders: bool = False) -> List[Order]:
    """Active orders feeding sales/revenue figures, honouring the user toggle."""
    return [o for o in active_orders(orders) if not (exclude_preorders and is_preorder(o))]


def _debt_orders(orders: Iterable[Order]) -> List[Order]:
    return [o for o in active_orders(orders) if not is_preorder(o)]


# ---------------------------------------------------------------------------
# Debt
# ---------------------------------------------------------------------------

def is_debtor(order: Order, totals: Optional[OrderTotals] = None) -> bool:
    if order.is_deleted or is_preorder(order):
        return False
    t = totals or order_totals(order)
    return t.debt > DEBT_EPSILON


def debtor_orders(orders: Iterable[Order]) -> List[Order]:
    return [o for o in orders if is_debtor(o)]


def debtors_sum(orders: Iterable[Order]) -> Decimal:
    """Outstanding receivables: sum of signed debts over the debtor list."""
    return dsum(order_totals(o).debt for o in debtor_orders(orders))


def debt_sum(orders: Iterable[Order]) -> Decimal:
    """
    Signed debt over every active non-preorder order (credit balances net
    against debts), as the analytics totals show it.
    """
    return dsum(order_totals(o).debt for o in _debt_orders(orders))


# ---------------------------------------------------------------------------
# Revenue
# ---------------------------------------------------------------------------

def revenue_sum(orders: Iterable[Order], exclude_preorders: bool = False) -> Decimal:
    return dsum(order_totals(o).total for o in sales_orders(orders, exclude_preorders))


def cash_sum(orders: Iterable[Order], exclude_preorders: bool = False) -> Decimal:
    """Money actually received (sum of prepayments)."""
    return dsum(q2(o.prepayment) for o in sales_orders(orders, exclude_preorders))


# ---------------------------------------------------------------------------
# Time-bucketed series
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DayBucket:
    day: date
    revenue: Decimal
    paid: Decimal
    debt: Decimal
    clients: int

    def as_dict(self) -> dict:
        return {
            "day": self.day.isoformat(),
            "revenue": self.revenue,
            "paid": self.paid,
            "debt": self.debt,
            "clients": self.clients,
        }


def _client_key(order: Order) -> Optional[str]:
    name = (order.client_name or "").strip()
    if not name:
        return None
    return f"{name}|{(order.client_phone or '').strip()}"


def _bucket(day: date, day_orders: List[Order], exclude_preorders: bool, floor_debt: bool) -> DayBucket:
    sales = [o for o in day_orders if not (exclude_preorders and is_preorder(o))]
    revenue = dsum(order_totals(o).total for o in sales)
    paid = dsum(q2(o.prepayment) for o in sales)
    clients = {k for k in (_client_key(o) for o in sales) if k}
    debt = dsum(order_totals(o).debt for o in day_orders if not is_preorder(o))
    return DayBucket(
        day=day,
        revenue=revenue,
        paid=paid,
        debt=clamp_non_negative(debt) if floor_debt else debt,
        clients=len(clients),
    )


def _group_by_day(orders: Iterable[Order]) -> dict:
    by_day: dict = {}
    for o in active_orders(orders):
        d = order_day(o)
        if d is not None:
            by_day.setdefault(d, []).append(o)
    return by_day


def day_series(
    orders: Iterable[Order],
    date_from: DateLike,
    date_to: DateLike,
    *,
    exclude_preorders: bool = False,
    floor_debt: bool = True,
    skip_empty: bool = False,
) -> List[DayBucket]:
    """
    One bucket per calendar day in [date_from, date_to].

    revenue/paid/clients respect ``exclude_preorders``; debt always excludes
    preorders and is floored at zero *after* summing the day (``floor_debt``).
    ``skip_empty`` drops days without orders (printable revenue report).
    """
    lo, hi = parse_day(date_from), parse_day(date_to)
    if lo is None or hi is None or lo > hi:
        return []
    by_day = _group_by_day(orders)
    out: List[DayBucket] = []
    day = lo
    while day <= hi:
        day_orders = by_day.get(day, [])
        if day_orders or not skip_empty:
            out.append(_bucket(day, day_orders, exclude_preorders, floor_debt))
        day += timedelta(days=1)
    return out


# ---------------------------------------------------------------------------
# Reconciliation (running balance per client)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ReconciliationRow:
    order_id: int
    date: str
    invoice: str
    total: Decimal
    paid: Decimal
    saldo: Decimal


@dataclass(frozen=True)
class Reconciliation:
    client_name: str
    client_phone: str
    rows: Tuple[ReconciliationRow, ...]

    @property
    def charged(self) -> Decimal:
        return dsum(r.total for r in self.rows)

    @property
    def paid(self) -> Decimal:
        return dsum(r.paid for r in self.rows)

    @property
    def saldo(self) -> Decimal:
        return self.charged - self.paid


def _matches_client(order: Order, name: str, phone: str) -> bool:
    if (order.client_name or "").strip() != name:
        return False
    if phone and (order.client_phone or "").strip() != phone:
        return False
    return True


def reconciliation(
    orders: Iterable[Order],
    client_name: str,
    client_phone: str = "",
    date_from: DateLike = None,
    date_to: DateLike = None,
    *,
    include_preorders: bool = False,
) -> Reconciliation:
    """
    Reconciliation act for one client: rows ordered by date with a running
    signed balance ``saldo[i] = saldo[i-1] + (total[i] - paid[i])`` starting at 0.

    The client matches by exact (trimmed) name, and by phone only when the
    selected phone is non-empty.
    """
    name = (client_name or "").strip()
    phone = (client_phone or "").strip()
    picked = [
        o for o in active_orders(orders)
        if _matches_client(o, name, phone)
        and in_period(o, date_from, date_to)
        and (include_preorders or not is_preorder(o))
    ]
    picked.sort(key=lambda o: (order_day(o), o.id))

    rows: List[ReconciliationRow] = []
    saldo = ZERO
    for o in picked:
        t = order_totals(o)
        saldo += t.total - t.paid
        rows.append(
            ReconciliationRow(
                order_id=o.id,
                date=o.order_date,
                invoice=o.invoice_number or f"№{o.id}",
                total=t.total,
                paid=t.paid,
                saldo=saldo,
            )
        )
    return Reconciliation(client_name=name, client_phone=phone, rows=tuple(rows))


# ---------------------------------------------------------------------------
# Shipments
# ---------------------------------------------------------------------------

def urgent_orders(orders: Iterable[Order], today: DateLike) -> List[Order]:
    """Open orders whose shipping date is today or already past."""
    t = parse_day(today)
    out: List[Order] = []
    for o in active_orders(orders):
        if o.is_completed or not o.shipping_date:
            continue
        ship = parse_day(o.shipping_date)
        if ship is not None and t is not None and ship <= t:
            out.append(o)
    return out


# ---------------------------------------------------------------------------
# Settlement
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Settlement:
    order: Order
    amount: Decimal
    remaining: Decimal
    completed: bool


def settle(order: Order, amount: Any, *, paid_note: str = PAID_NOTE) -> Settlement:
    """
    Apply a debt payment. The prepayment grows by ``amount``; when the
    remaining debt drops to DEBT_EPSILON or below the order is completed and
    moved to the paid-at-client status. Partial payments keep status and note.
    """
    paid_now = q2(amount)
    totals = order_totals(order)
    new_prepayment = q2(totals.paid + paid_now)
    remaining = totals.total - new_prepayment
    completed = remaining <= DEBT_EPSILON

    if completed:
        updated = replace(
            order,
            prepayment=money_str(new_prepayment),
            cargo_status_id=AT_CLIENT_PAID,
            is_completed=True,
            note=paid_note,
        )
    else:
        updated = replace(order, prepayment=money_str(new_prepayment))
    return Settlement(order=updated, amount=paid_now, remaining=remaining, completed=completed)


def full_payment(order: Order) -> Order:
    """Edit-form shortcut: prepayment := order total."""
    return replace(order, prepayment=money_str(order_totals(order).total))


def complete_order(order: Order, *, paid_note: str = PAID_NOTE) -> Order:
    """Edit-form shortcut: pay in full and hand over to the client."""
    return replace(
        full_payment(order),
        cargo_status_id=AT_CLIENT_PAID,
        is_completed=True,
        note=paid_note,
    )
