# floor_manager/modules/ledger/money.py
"""
Decimal-safe money and quantity primitives.

Persisted amounts are decimal strings ("350", "1800.00", "12,5").
Everything the ledger computes is a ``Decimal``; nothing here formats for
display (see utils.helpers.fmt_money).
"""
from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any, Iterable

from ...constants import DEBT_EPSILON as _DEBT_EPSILON, DISCOUNT_EPSILON as _DISCOUNT_EPSILON

__all__ = [
    "ZERO",
    "CENT",
    "HUNDRED",
    "DEBT_EPSILON",
    "DISCOUNT_EPSILON",
    "to_decimal",
    "q2",
    "money_str",
    "dsum",
]

_log = logging.getLogger(__name__)

ZERO = Decimal("0")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")

DEBT_EPSILON = Decimal(_DEBT_EPSILON)
DISCOUNT_EPSILON = Decimal(_DISCOUNT_EPSILON)

# Amounts with more integer digits than this are treated as garbage input.
_MAX_DIGITS = 100


def to_decimal(value: Any) -> Decimal:
    """
    Parse a monetary/quantity value. Empty, non-numeric, NaN, infinite and
    absurdly large values become 0; this never raises.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        d = value
    else:
        text = str(value).strip().replace(",", ".").replace(" ", "")
        if not text:
            return ZERO
        try:
            d = Decimal(text)
        except (InvalidOperation, ValueError):
            _log.debug("to_decimal: treating %r as 0", value)
            return ZERO
    if not d.is_finite() or d.adjusted() >= _MAX_DIGITS:
        _log.debug("to_decimal: treating %r as 0", value)
        return ZERO
    return d


def q2(value: Any) -> Decimal:
    """Round half-up to cents, with enough precision for every integer digit."""
    d = to_decimal(value)
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, d.adjusted() + 3)
        return d.quantize(CENT, rounding=ROUND_HALF_UP)


def money_str(value: Any) -> str:
    """Cent-rounded decimal string as stored in the blob ("1800.00")."""
    return str(q2(value))


def dsum(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)
