# floor_manager/utils/helpers.py
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
import logging
from typing import Union, Optional

NumberLike = Union[Decimal, float, int, str, None]

_log = logging.getLogger(__name__)


def today_str() -> str:
    """Return today's date as ISO string (YYYY-MM-DD)."""
    return date.today().isoformat()


def now_iso() -> str:
    return datetime.now().isoformat(timespec="seconds")


def _finite_decimal(v: NumberLike) -> Decimal:
    if v is None:
        return Decimal("0")
    try:
        d = v if isinstance(v, Decimal) else Decimal(str(v).strip().replace(",", "."))
    except (InvalidOperation, ValueError) as e:
        _log.debug("cannot format %r as a number: %s", v, e)
        return Decimal("0")
    return d if d.is_finite() else Decimal("0")


def fmt_money(v: NumberLike, places: int = 2, *, sep: str = " ", point: str = ",") -> str:
    """
    Format a number as money the way printed documents show it:
    grouped thousands, fixed decimals, non-finite or unparsable -> 0.

    >>> fmt_money("1234567.5")
    '1 234 567,50'
    """
    d = _finite_decimal(v)
    text = f"{d:,.{places}f}"
    return text.replace(",", "\0").replace(".", point).replace("\0", sep)


def fmt_pct(v: NumberLike) -> str:
    """Two-decimal percentage, e.g. '12.50%'."""
    d = _finite_decimal(v)
    return f"{d:.2f}%"


def fmt_date(value: Optional[str], pattern: str = "%d.%m.%Y") -> str:
    """Render an ISO date/datetime string for documents; unparsable values pass through."""
    if not value:
        return ""
    try:
        return datetime.fromisoformat(str(value)[:19]).strftime(pattern)
    except ValueError:
        return str(value)


def fmt_qty(v: NumberLike) -> str:
    return f"{_finite_decimal(v):.2f}"
