# floor_manager/modules/ledger/calculations.py
"""
Line-Item Calculator and Order Aggregator.

Pure helpers: no storage access, no formatting, no exceptions for
malformed-but-structurally-valid input.

    line total = quantity * unit_price * (1 - discount% / 100), cent-rounded
    subtotal   = sum(quantity * unit_price)            (pre-discount)
    total      = sum(line totals)                      (post-discount)
    discount   = subtotal - total
    debt       = total - prepayment                    (signed)
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Iterable

from ...database.schema import Order, OrderItem
from .money import HUNDRED, ZERO, dsum, money_str, q2, to_decimal

__all__ = [
    "clamp_non_negative",
    "clamp_discount",
    "line_total",
    "line_subtotal",
    "recompute_item",
    "item_total",
    "OrderTotals",
    "order_totals",
]


# -----------------------------
# Core utilities
# -----------------------------

def clamp_non_negative(x: Decimal) -> Decimal:
    """Return x if x > 0, else 0 (display convention for 'remaining')."""
    return x if x > ZERO else ZERO


def clamp_discount(discount_percent: Any) -> Decimal:
    """Discount percentage clamped to [0, 100]."""
    d = to_decimal(discount_percent)
    if d < ZERO:
        return ZERO
    if d > HUNDRED:
        return HUNDRED
    return d


# -----------------------------
# Line-Item Calculator
# -----------------------------

def line_subtotal(quantity: Any, unit_price: Any) -> Decimal:
    """quantity * unit_price, unrounded."""
    return to_decimal(quantity) * to_decimal(unit_price)


def line_total(quantity: Any, unit_price: Any, discount_percent: Any = "0") -> Decimal:
    """
    Effective line total rounded to cents.

    Negative quantities pass through (the write paths reject them); the
    discount is clamped to [0, 100].
    """
    factor = (HUNDRED - clamp_discount(discount_percent)) / HUNDRED
    return q2(line_subtotal(quantity, unit_price) * factor)


def recompute_item(item: OrderItem) -> OrderItem:
    """Return the item with ``total_price`` brought in sync with its inputs."""
    return replace(item, total_price=money_str(line_total(item.quantity, item.price, item.discount)))


def item_total(item: OrderItem, *, use_stored: bool = False) -> Decimal:
    if use_stored:
        return to_decimal(item.total_price)
    return line_total(item.quantity, item.price, item.discount)


# -----------------------------
# Order Aggregator
# -----------------------------

@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    total: Decimal
    discount: Decimal
    paid: Decimal
    debt: Decimal

    @property
    def remaining(self) -> Decimal:
        """Debt as shown to the user: never below zero."""
        return clamp_non_negative(self.debt)

    def as_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "total": self.total,
            "discount": self.discount,
            "paid": self.paid,
            "debt": self.debt,
            "remaining": self.remaining,
        }


def _items_totals(items: Iterable[OrderItem], use_stored: bool) -> tuple[Decimal, Decimal]:
    items = tuple(items)
    subtotal = q2(dsum(line_subtotal(i.quantity, i.price) for i in items))
    total = dsum(item_total(i, use_stored=use_stored) for i in items)
    return subtotal, total


def order_totals(order: Order, *, use_stored: bool = False) -> OrderTotals:
    """
    Aggregate one order. Line totals are recomputed from quantity, price and
    discount unless ``use_stored`` asks for the persisted ``total_price``.

    An order without items yields subtotal = total = 0 and debt = -prepayment.
    """
    subtotal, total = _items_totals(order.items, use_stored)
    paid = q2(order.prepayment)
    return OrderTotals(
        subtotal=subtotal,
        total=total,
        discount=subtotal - total,
        paid=paid,
        debt=total - paid,
    )
