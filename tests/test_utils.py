# tests/test_utils.py
import importlib
import json
import logging
from decimal import Decimal

import pytest

from floor_manager.utils.helpers import fmt_date, fmt_money, fmt_pct, fmt_qty
from floor_manager.utils.loggers import JsonLineFormatter, get_logger, log_event
from floor_manager.utils.validators import (
    is_non_negative_number,
    is_strictly_positive_number,
    non_empty,
    parse_decimal,
    try_parse_decimal,
)


# ---------- Formatting ----------

@pytest.mark.parametrize(
    "value, expected",
    [
        ("1234567.5", "1 234 567,50"),
        (Decimal("-400"), "-400,00"),
        (0, "0,00"),
        ("abc", "0,00"),
        (float("inf"), "0,00"),
        (None, "0,00"),
    ],
)
def test_fmt_money(value, expected):
    assert fmt_money(value) == expected


def test_fmt_pct_qty_date():
    assert fmt_pct("12.5") == "12.50%"
    assert fmt_pct("NaN") == "0.00%"
    assert fmt_qty(15) == "15.00"
    assert fmt_date("2026-03-10") == "10.03.2026"
    assert fmt_date("2026-03-10T18:30:00") == "10.03.2026"
    assert fmt_date("когда-нибудь") == "когда-нибудь"
    assert fmt_date(None) == ""


# ---------- Validators ----------

def test_validators():
    assert non_empty(" x ")
    assert not non_empty("   ")
    assert try_parse_decimal("12,5") == (True, Decimal("12.5"))
    assert try_parse_decimal("Infinity") == (False, None)
    assert try_parse_decimal(True) == (False, None)
    assert is_non_negative_number("0")
    assert not is_non_negative_number("-0.01")
    assert is_strictly_positive_number("0.01")
    assert not is_strictly_positive_number("0")
    assert parse_decimal("7") == Decimal("7")
    with pytest.raises(ValueError):
        parse_decimal("seven")


# ---------- Logging ----------

def test_get_logger_is_idempotent():
    logger = get_logger("floor_manager.test_idempotent")
    again = get_logger("floor_manager.test_idempotent")
    assert logger is again
    assert len(logger.handlers) == 1


def test_log_event_carries_payload(caplog):
    logger = logging.getLogger("floor_manager.test_events")
    with caplog.at_level(logging.INFO, logger="floor_manager.test_events"):
        log_event(logger, "settle", "done", "debt payment applied", {"order_id": 7})
    [record] = caplog.records
    assert record.getMessage() == "debt payment applied"
    assert record.extra_payload == {"op": "settle", "phase": "done", "order_id": 7}

    line = json.loads(JsonLineFormatter().format(record))
    assert line["level"] == "INFO"
    assert line["extra"]["order_id"] == 7
    assert line["ts"].endswith("Z")


# ---------- Configuration ----------

def test_data_dir_override(monkeypatch, tmp_path):
    import floor_manager.config as config

    monkeypatch.setenv("FLOOR_MANAGER_DATA_DIR", str(tmp_path))
    try:
        reloaded = importlib.reload(config)
        assert reloaded.DATA_PATH == tmp_path
        assert reloaded.DB_PATH == tmp_path / "floor_manager.json"
    finally:
        monkeypatch.delenv("FLOOR_MANAGER_DATA_DIR")
        importlib.reload(config)
