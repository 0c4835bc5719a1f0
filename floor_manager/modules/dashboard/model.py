# floor_manager/modules/dashboard/model.py
from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ...database.schema import CargoStatus, Order
from ..ledger.ledger import (
    DayBucket,
    active_orders,
    cash_sum,
    day_series,
    debt_sum,
    debtor_orders,
    debtors_sum,
    in_period,
    order_day,
    revenue_sum,
    sales_orders,
    urgent_orders,
)
from ..ledger.money import ZERO, q2
from ..reporting.projections import (
    CategoryShare,
    ClientStat,
    ProductStat,
    StatusStat,
    category_sales,
    first_order_day,
    status_distribution,
    top_clients,
    top_products,
)

_log = logging.getLogger(__name__)

HISTORY_DAYS = 14


# --------------------------- Period helpers ---------------------------

@dataclass(frozen=True)
class DateRange:
    date_from: str  # ISO yyyy-mm-dd
    date_to: str    # ISO yyyy-mm-dd


def _month_end(d: date) -> date:
    return date(d.year, d.month, calendar.monthrange(d.year, d.month)[1])


def resolve_period(
    key: str,
    today: Optional[date] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
) -> DateRange:
    """Resolve a chart period key to a concrete inclusive (date_from, date_to)."""
    today = today or date.today()
    k = (key or "7d").lower()

    if k == "30d":
        return DateRange((today - timedelta(days=29)).isoformat(), today.isoformat())
    if k == "curr_month":
        return DateRange(today.replace(day=1).isoformat(), today.isoformat())
    if k == "prev_month":
        last_prev = today.replace(day=1) - timedelta(days=1)
        return DateRange(last_prev.replace(day=1).isoformat(), last_prev.isoformat())
    if k == "custom" and date_from and date_to:
        return DateRange(str(date_from), str(date_to))
    if k != "7d":
        _log.debug("unknown period %r, falling back to 7d", key)

    # Fallback
    return DateRange((today - timedelta(days=6)).isoformat(), today.isoformat())


# --------------------------- Dashboard Model ---------------------------

@dataclass
class DashboardModel:
    """
    Computes the dashboard KPIs from an order snapshot.

    Usage:
        model = DashboardModel()
        model.refresh(orders, statuses, period=("7d", None, None), exclude_preorders=True)
        print(model.kpi_debtors_sum, model.kpi_month_revenue, ...)

    The preorder toggle affects today's count, month revenue, status stats and
    chart sales. Debtor figures and chart debt exclude preorders regardless.
    """

    today: Optional[date] = None

    # current resolved range (set after refresh)
    date_from: str = field(init=False, default="")
    date_to: str = field(init=False, default="")

    # ---- KPI numbers ----
    kpi_today_count: int = 0
    kpi_debtors_count: int = 0
    kpi_debtors_sum: Decimal = ZERO
    kpi_month_revenue: Decimal = ZERO
    kpi_urgent_count: int = 0
    kpi_total_orders: int = 0

    # ---- Tables / lists ----
    urgent: List[Order] = field(default_factory=list)
    chart: List[DayBucket] = field(default_factory=list)
    status_stats: List[StatusStat] = field(default_factory=list)

    # --------------------------- Public API ---------------------------

    def refresh(
        self,
        orders: Iterable[Order],
        statuses: Iterable[CargoStatus] = (),
        *,
        period: Sequence[Optional[str]] = ("7d", None, None),
        exclude_preorders: bool = False,
    ) -> None:
        """
        Recompute everything the dashboard shows.

        Args:
          orders: joined orders (deleted ones are ignored)
          statuses: cargo status lookup for the status breakdown
          period: (key, custom_from, custom_to), key in {"7d","30d","curr_month","prev_month","custom"}
          exclude_preorders: the user's "hide preorders" toggle
        """
        today = self.today or date.today()
        all_orders = active_orders(orders)
        shown = sales_orders(all_orders, exclude_preorders)

        key, df_custom, dt_custom = (list(period) + [None, None])[:3]
        dr = resolve_period(key, today, df_custom, dt_custom)
        self.date_from, self.date_to = dr.date_from, dr.date_to

        # ---------- KPIs ----------
        self.kpi_today_count = sum(1 for o in shown if order_day(o) == today)
        debtors = debtor_orders(all_orders)
        self.kpi_debtors_count = len(debtors)
        self.kpi_debtors_sum = debtors_sum(all_orders)
        month = [o for o in shown if in_period(o, today.replace(day=1), _month_end(today))]
        self.kpi_month_revenue = cash_sum(month)
        self.kpi_total_orders = len(shown)

        # ---------- Shipments ----------
        self.urgent = urgent_orders(all_orders, today)
        self.kpi_urgent_count = len(self.urgent)

        # ---------- Chart & breakdown ----------
        self.chart = day_series(all_orders, dr.date_from, dr.date_to, exclude_preorders=exclude_preorders)
        self.status_stats = status_distribution(shown, statuses)

        _log.debug(
            "dashboard refreshed: %d orders, %d debtors, period %s..%s",
            len(all_orders), self.kpi_debtors_count, self.date_from, self.date_to,
        )

    def status_share(self, stat: StatusStat) -> int:
        """Whole-percent share of one status slice among the shown orders."""
        if not self.kpi_total_orders:
            return 0
        return round(stat.count / self.kpi_total_orders * 100)


# --------------------------- Analytics Model ---------------------------

@dataclass
class AnalyticsModel:
    """
    Whole-history analytics. total_debt is signed (credit balances net out)
    and never includes preorders.
    """

    today: Optional[date] = None

    total_sales: Decimal = ZERO
    actual_cash: Decimal = ZERO
    total_debt: Decimal = ZERO
    avg_check: Decimal = ZERO
    order_count: int = 0

    history: List[DayBucket] = field(default_factory=list)
    categories: List[CategoryShare] = field(default_factory=list)
    products: List[ProductStat] = field(default_factory=list)
    clients: List[ClientStat] = field(default_factory=list)

    def refresh(self, orders: Iterable[Order], *, history_days: int = HISTORY_DAYS) -> None:
        today = self.today or date.today()
        all_orders = active_orders(orders)

        self.order_count = len(all_orders)
        self.total_sales = revenue_sum(all_orders)
        self.actual_cash = cash_sum(all_orders)
        self.total_debt = debt_sum(all_orders)
        self.avg_check = q2(self.total_sales / self.order_count) if self.order_count else ZERO

        start = today - timedelta(days=history_days - 1)
        self.history = day_series(all_orders, start, today)
        self.categories = category_sales(all_orders)
        self.products = top_products(all_orders)
        self.clients = top_clients(all_orders)

    def history_rows(self) -> List[Dict[str, Any]]:
        """Chart-ready rows: volume, cash and floored debt per day."""
        return [
            {"date": b.day.strftime("%d.%m"), "volume": b.revenue, "cash": b.paid, "debt": b.debt}
            for b in self.history
        ]


def default_range(orders: Iterable[Order], today: Optional[date] = None) -> DateRange:
    """Report default: first order day (or today) through today."""
    today = today or date.today()
    start = first_order_day(orders) or today
    return DateRange(start.isoformat(), today.isoformat())


__all__ = [
    "DateRange",
    "resolve_period",
    "DashboardModel",
    "AnalyticsModel",
    "default_range",
]
