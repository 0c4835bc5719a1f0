# floor_manager/modules/ledger/__init__.py
"""
Financial ledger core: pure functions over immutable order snapshots.

    raw orders/items -> calculations (line, order) -> ledger (cross-order)
                     -> reporting.projections (read-models)
"""
from .money import CENT, DEBT_EPSILON, DISCOUNT_EPSILON, ZERO, money_str, q2, to_decimal
from .calculations import (
    OrderTotals,
    clamp_discount,
    clamp_non_negative,
    item_total,
    line_subtotal,
    line_total,
    order_totals,
    recompute_item,
)
from .status import AT_CLIENT_DEBT, AT_CLIENT_PAID, PREORDER, is_active, is_preorder
from .ledger import (
    DayBucket,
    Reconciliation,
    ReconciliationRow,
    Settlement,
    active_orders,
    cash_sum,
    complete_order,
    day_series,
    debt_sum,
    debtor_orders,
    debtors_sum,
    full_payment,
    in_period,
    is_debtor,
    order_day,
    parse_day,
    reconciliation,
    revenue_sum,
    sales_orders,
    settle,
    urgent_orders,
)
from .estimate import LABOR, MATERIAL, Estimate, EstimateLine, EstimateTotals, labor_line, material_line

__all__ = [
    # money
    "CENT", "DEBT_EPSILON", "DISCOUNT_EPSILON", "ZERO", "money_str", "q2", "to_decimal",
    # calculations
    "OrderTotals", "clamp_discount", "clamp_non_negative", "item_total",
    "line_subtotal", "line_total", "order_totals", "recompute_item",
    # status
    "AT_CLIENT_DEBT", "AT_CLIENT_PAID", "PREORDER", "is_active", "is_preorder",
    # ledger
    "DayBucket", "Reconciliation", "ReconciliationRow", "Settlement",
    "active_orders", "cash_sum", "complete_order", "day_series", "debt_sum",
    "debtor_orders", "debtors_sum", "full_payment", "in_period", "is_debtor",
    "order_day", "parse_day", "reconciliation", "revenue_sum", "sales_orders",
    "settle", "urgent_orders",
    # estimate
    "LABOR", "MATERIAL", "Estimate", "EstimateLine", "EstimateTotals", "labor_line", "material_line",
]
