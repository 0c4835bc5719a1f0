# floor_manager/utils/validators.py
from decimal import Decimal, InvalidOperation


def non_empty(text: str) -> bool:
    """
    True if `text` is not None/empty after stripping whitespace.
    """
    return bool(text and str(text).strip())


# ---- Numeric parsing & validators ----

def try_parse_decimal(x):
    """
    Best-effort parse to Decimal. Accepts a comma as decimal separator.

    Returns:
        (ok: bool, value: Decimal|None)

    ok == False means parsing failed (or the value is NaN/Infinity) and value is None.
    """
    if x is None or isinstance(x, bool):
        return False, None
    try:
        d = x if isinstance(x, Decimal) else Decimal(str(x).strip().replace(",", "."))
    except (InvalidOperation, ValueError):
        return False, None
    if not d.is_finite():
        return False, None
    return True, d


def parse_decimal(x) -> Decimal:
    """
    Strict parse to Decimal; raises ValueError with a clear message on failure.
    """
    ok, val = try_parse_decimal(x)
    if not ok:
        raise ValueError(f"Could not parse '{x}' as a number.")
    return val  # type: ignore[return-value]


def is_non_negative_number(x) -> bool:
    """
    True iff x parses and value >= 0.
    """
    ok, val = try_parse_decimal(x)
    return bool(ok and val is not None and val >= 0)


def is_strictly_positive_number(x) -> bool:
    """
    True iff x parses and value > 0.
    """
    ok, val = try_parse_decimal(x)
    return bool(ok and val is not None and val > 0)
