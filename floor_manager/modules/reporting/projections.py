# floor_manager/modules/reporting/projections.py
"""
Report Projections: read-models derived from the order aggregator and the
ledger. Every function takes an order list and returns plain rows; callers
decide which orders go in (date range, preorder toggle).

Public API
----------
- top_products(orders, n=5)
- top_clients(orders, n=5)
- category_sales(orders)
- discount_rows(orders, date_from=None, date_to=None)
- discount_report_totals(rows)
- revenue_report_rows(orders, date_from, date_to)
- status_distribution(orders, statuses)
- reconciliation_clients(orders, limit=50)
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from ...constants import RECONCILIATION_CLIENT_LIMIT, TOP_N
from ...database.schema import CargoStatus, Order
from ..ledger.calculations import item_total, order_totals
from ..ledger.ledger import DateLike, DayBucket, active_orders, day_series, in_period, order_day
from ..ledger.money import DISCOUNT_EPSILON, HUNDRED, ZERO, CENT, dsum, to_decimal
from ..ledger.status import color as status_color
from ..ledger.status import label as status_label
from ..ledger.status import status_index

__all__ = [
    "ProductStat",
    "ClientStat",
    "CategoryShare",
    "DiscountRow",
    "StatusStat",
    "ClientRef",
    "top_products",
    "top_clients",
    "category_sales",
    "discount_rows",
    "discount_report_totals",
    "revenue_report_rows",
    "status_distribution",
    "reconciliation_clients",
    "first_order_day",
]


# ----------------------------
# Row types
# ----------------------------

@dataclass(frozen=True)
class ProductStat:
    name: str
    qty: Decimal
    revenue: Decimal


@dataclass(frozen=True)
class ClientStat:
    name: str
    revenue: Decimal
    orders: int


@dataclass(frozen=True)
class CategoryShare:
    name: str
    revenue: Decimal
    share: Decimal  # percent of the grand total, 0.01 precision


@dataclass(frozen=True)
class DiscountRow:
    order_id: int
    date: str
    invoice: str
    client: str
    phone: str
    sum_before: Decimal
    sum_after: Decimal
    discount: Decimal
    discount_pct: Decimal


@dataclass(frozen=True)
class StatusStat:
    status_id: int
    name: str
    color: str
    count: int


@dataclass(frozen=True)
class ClientRef:
    name: str
    phone: str
    orders: int

    @property
    def key(self) -> str:
        return f"{self.name}|{self.phone}"


def _pct(part: Decimal, whole: Decimal) -> Decimal:
    """part/whole*100 rounded to 0.01; 0 when whole is 0."""
    if whole == ZERO:
        return ZERO
    return (part / whole * HUNDRED).quantize(CENT)


# ----------------------------
# Rankings
# ----------------------------

def top_products(orders: Iterable[Order], n: int = TOP_N) -> List[ProductStat]:
    """Group lines by their position label; rank by revenue."""
    qty: Dict[str, Decimal] = {}
    revenue: Dict[str, Decimal] = {}
    for o in active_orders(orders):
        for it in o.items:
            key = it.position_name
            qty[key] = qty.get(key, ZERO) + to_decimal(it.quantity)
            revenue[key] = revenue.get(key, ZERO) + item_total(it)
    rows = [ProductStat(name=k, qty=qty[k], revenue=revenue[k]) for k in revenue]
    rows.sort(key=lambda r: (-r.revenue, r.name))
    return rows[:n]


def top_clients(orders: Iterable[Order], n: int = TOP_N) -> List[ClientStat]:
    """Group orders by client name; rank by total revenue."""
    revenue: Dict[str, Decimal] = {}
    count: Dict[str, int] = {}
    for o in active_orders(orders):
        key = o.client_name
        revenue[key] = revenue.get(key, ZERO) + order_totals(o).total
        count[key] = count.get(key, 0) + 1
    rows = [ClientStat(name=k, revenue=v, orders=count[k]) for k, v in revenue.items()]
    rows.sort(key=lambda r: (-r.revenue, r.name))
    return rows[:n]


def category_sales(orders: Iterable[Order]) -> List[CategoryShare]:
    """
    Revenue per line category label with its share of the grand total,
    largest first. With a zero grand total every share is 0.
    """
    by_cat: Dict[str, Decimal] = {}
    for o in active_orders(orders):
        for it in o.items:
            by_cat[it.category_name] = by_cat.get(it.category_name, ZERO) + item_total(it)
    grand = dsum(by_cat.values())
    rows = [CategoryShare(name=k, revenue=v, share=_pct(v, grand)) for k, v in by_cat.items()]
    rows.sort(key=lambda r: (-r.revenue, r.name))
    return rows


def status_distribution(orders: Iterable[Order], statuses: Iterable[CargoStatus]) -> List[StatusStat]:
    """Order count per status id, most frequent first; unknown ids get a placeholder label."""
    idx = status_index(statuses)
    counts: Dict[int, int] = {}
    for o in active_orders(orders):
        counts[o.cargo_status_id] = counts.get(o.cargo_status_id, 0) + 1
    rows = [
        StatusStat(status_id=sid, name=status_label(sid, idx), color=status_color(sid, idx), count=c)
        for sid, c in counts.items()
    ]
    rows.sort(key=lambda r: (-r.count, r.status_id))
    return rows


# ----------------------------
# Discounts report
# ----------------------------

def discount_rows(
    orders: Iterable[Order],
    date_from: DateLike = None,
    date_to: DateLike = None,
) -> List[DiscountRow]:
    """Orders whose discount exceeds DISCOUNT_EPSILON, ordered by date."""
    rows: List[DiscountRow] = []
    for o in active_orders(orders):
        if (date_from or date_to) and not in_period(o, date_from, date_to):
            continue
        t = order_totals(o)
        if t.discount <= DISCOUNT_EPSILON:
            continue
        rows.append(
            DiscountRow(
                order_id=o.id,
                date=o.order_date,
                invoice=o.invoice_number or f"№{o.id}",
                client=o.client_name,
                phone=o.client_phone,
                sum_before=t.subtotal,
                sum_after=t.total,
                discount=t.discount,
                discount_pct=_pct(t.discount, t.subtotal),
            )
        )
    rows.sort(key=lambda r: (r.date, r.order_id))
    return rows


def discount_report_totals(rows: Sequence[DiscountRow]) -> Dict[str, Decimal]:
    sum_before = dsum(r.sum_before for r in rows)
    sum_after = dsum(r.sum_after for r in rows)
    discount = dsum(r.discount for r in rows)
    return {
        "sum_before": sum_before,
        "sum_after": sum_after,
        "discount": discount,
        "avg_pct": _pct(discount, sum_before),
    }


# ----------------------------
# Revenue report
# ----------------------------

def revenue_report_rows(orders: Iterable[Order], date_from: DateLike, date_to: DateLike) -> List[DayBucket]:
    """
    Printable revenue report: one row per day that has orders, with unique
    clients, revenue, cash received and the signed debt of that day.
    """
    return day_series(orders, date_from, date_to, floor_debt=False, skip_empty=True)


# ----------------------------
# Reconciliation picker
# ----------------------------

def reconciliation_clients(
    orders: Iterable[Order],
    limit: Optional[int] = RECONCILIATION_CLIENT_LIMIT,
) -> List[ClientRef]:
    """Distinct (name, phone) pairs with order counts, busiest first."""
    counts: Dict[tuple, int] = {}
    for o in active_orders(orders):
        name = (o.client_name or "").strip()
        if not name:
            continue
        key = (name, (o.client_phone or "").strip())
        counts[key] = counts.get(key, 0) + 1
    rows = [ClientRef(name=n, phone=p, orders=c) for (n, p), c in counts.items()]
    rows.sort(key=lambda r: (-r.orders, r.name, r.phone))
    return rows if limit is None else rows[:limit]


def first_order_day(orders: Iterable[Order]):
    """Earliest parsable order date, or None (default start of a report range)."""
    days = [d for d in (order_day(o) for o in active_orders(orders)) if d is not None]
    return min(days) if days else None
