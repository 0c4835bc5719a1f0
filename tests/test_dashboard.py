# tests/test_dashboard.py
from datetime import date
from decimal import Decimal

import pytest

from floor_manager.database.schema import CargoStatus
from floor_manager.modules.dashboard.model import (
    AnalyticsModel,
    DashboardModel,
    DateRange,
    default_range,
    resolve_period,
)

from factories import TODAY, make_item, make_order

D = Decimal


@pytest.mark.parametrize(
    "key, expected",
    [
        ("7d", DateRange("2026-03-09", "2026-03-15")),
        ("30d", DateRange("2026-02-14", "2026-03-15")),
        ("curr_month", DateRange("2026-03-01", "2026-03-15")),
        ("prev_month", DateRange("2026-02-01", "2026-02-28")),
        ("bogus", DateRange("2026-03-09", "2026-03-15")),
        ("custom", DateRange("2026-03-09", "2026-03-15")),  # no dates given
    ],
)
def test_resolve_period(key, expected):
    assert resolve_period(key, TODAY) == expected


def test_resolve_custom_period():
    assert resolve_period("custom", TODAY, "2026-01-01", "2026-01-31") == DateRange("2026-01-01", "2026-01-31")


def test_prev_month_across_year_boundary():
    assert resolve_period("prev_month", date(2026, 1, 10)) == DateRange("2025-12-01", "2025-12-31")


def _orders():
    return [
        # today, real debtor: 1000 - 200
        make_order([make_item(1, "1000")], "200", order_id=1, order_date="2026-03-15", status=7,
                   shipping_date="2026-03-15"),
        # preorder today with nothing paid
        make_order([make_item(1, "5000")], "0", order_id=2, order_date="2026-03-15", status=1),
        # paid in full earlier this month
        make_order([make_item(1, "300")], "300", order_id=3, order_date="2026-03-02", status=8),
        # last month, overpaid
        make_order([make_item(1, "100")], "150", order_id=4, order_date="2026-02-20", status=8,
                   shipping_date="2026-02-21", completed=True),
        # deleted
        make_order([make_item(1, "7000")], "0", order_id=5, order_date="2026-03-15", deleted=True),
    ]


STATUSES = [
    CargoStatus(id=1, name="предзаказ"),
    CargoStatus(id=7, name="у клиента (долг)"),
    CargoStatus(id=8, name="у клиента"),
]


def test_dashboard_kpis_with_preorders_shown():
    m = DashboardModel(today=TODAY)
    m.refresh(_orders(), STATUSES)
    assert (m.date_from, m.date_to) == ("2026-03-09", "2026-03-15")
    assert m.kpi_today_count == 2
    assert m.kpi_debtors_count == 1
    assert m.kpi_debtors_sum == D("800.00")
    assert m.kpi_month_revenue == D("500.00")
    assert m.kpi_total_orders == 4
    assert [o.id for o in m.urgent] == [1]
    assert m.kpi_urgent_count == 1
    assert len(m.chart) == 7
    assert m.chart[-1].revenue == D("6000.00")
    assert m.chart[-1].debt == D("800.00")


def test_dashboard_preorder_toggle_leaves_debt_alone():
    shown, hidden = DashboardModel(today=TODAY), DashboardModel(today=TODAY)
    shown.refresh(_orders(), STATUSES)
    hidden.refresh(_orders(), STATUSES, exclude_preorders=True)

    assert hidden.kpi_today_count == 1
    assert hidden.kpi_total_orders == 3
    assert hidden.chart[-1].revenue == D("1000.00")
    assert hidden.kpi_debtors_sum == shown.kpi_debtors_sum
    assert hidden.kpi_debtors_count == shown.kpi_debtors_count
    assert [b.debt for b in hidden.chart] == [b.debt for b in shown.chart]
    assert 1 not in {s.status_id for s in hidden.status_stats}


def test_dashboard_status_share():
    m = DashboardModel(today=TODAY)
    m.refresh(_orders(), STATUSES, period=("30d", None, None))
    by_id = {s.status_id: s for s in m.status_stats}
    assert by_id[8].count == 2
    assert m.status_share(by_id[8]) == 50
    assert len(m.chart) == 30

    empty = DashboardModel(today=TODAY)
    empty.refresh([], STATUSES)
    assert empty.status_stats == []
    assert empty.kpi_debtors_sum == D("0")


def test_analytics_totals():
    m = AnalyticsModel(today=TODAY)
    m.refresh(_orders())
    assert m.order_count == 4
    assert m.total_sales == D("6400.00")
    assert m.actual_cash == D("650.00")
    assert m.total_debt == D("750.00")       # 800 + 0 - 50, preorder left out
    assert m.avg_check == D("1600.00")
    assert len(m.history) == 14
    assert m.history_rows()[-1] == {
        "date": "15.03", "volume": D("6000.00"), "cash": D("200.00"), "debt": D("800.00"),
    }
    assert m.categories[0].name == "Ламинат"


def test_analytics_on_empty_history():
    m = AnalyticsModel(today=TODAY)
    m.refresh([], history_days=3)
    assert m.avg_check == D("0")
    assert [b.revenue for b in m.history] == [D("0")] * 3
    assert m.products == [] and m.clients == []


def test_default_range_starts_at_first_order():
    assert default_range(_orders(), TODAY) == DateRange("2026-02-20", "2026-03-15")
    assert default_range([], TODAY) == DateRange("2026-03-15", "2026-03-15")
