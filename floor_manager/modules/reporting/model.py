# floor_manager/modules/reporting/model.py
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from PySide6.QtCore import QAbstractTableModel, QModelIndex, Qt

from ...utils.helpers import fmt_date, fmt_money, fmt_pct, fmt_qty

_FORMATTERS: Dict[str, Callable[[Any], str]] = {
    "text": lambda v: "" if v is None else str(v),
    "money": fmt_money,
    "pct": fmt_pct,
    "qty": fmt_qty,
    "int": lambda v: str(int(v or 0)),
    "date": lambda v: fmt_date(v.isoformat() if hasattr(v, "isoformat") else v),
}

_NUMERIC = {"money", "pct", "qty", "int"}


@dataclass(frozen=True)
class Column:
    key: str
    header: str
    kind: str = "text"


# ------------------------------ Column sets ------------------------------

DEBTOR_COLUMNS = (
    Column("invoice", "Накладная"),
    Column("date", "Дата", "date"),
    Column("client", "Клиент"),
    Column("phone", "Телефон"),
    Column("total", "Сумма", "money"),
    Column("paid", "Оплачено", "money"),
    Column("debt", "Долг", "money"),
)

REVENUE_COLUMNS = (
    Column("day", "Дата", "date"),
    Column("clients", "Клиенты", "int"),
    Column("revenue", "Выручка", "money"),
    Column("paid", "Оплачено", "money"),
    Column("debt", "Дебиторка", "money"),
)

DISCOUNT_COLUMNS = (
    Column("date", "Дата", "date"),
    Column("invoice", "Накладная"),
    Column("client", "Клиент"),
    Column("sum_before", "До скидки", "money"),
    Column("sum_after", "После скидки", "money"),
    Column("discount", "Скидка", "money"),
    Column("discount_pct", "%", "pct"),
)

RECONCILIATION_COLUMNS = (
    Column("date", "Дата", "date"),
    Column("invoice", "Документ"),
    Column("total", "Начислено", "money"),
    Column("paid", "Оплачено", "money"),
    Column("saldo", "Сальдо", "money"),
)

TOP_PRODUCT_COLUMNS = (
    Column("name", "Позиция"),
    Column("qty", "Кол-во", "qty"),
    Column("revenue", "Выручка", "money"),
)


def _as_mapping(row: Any) -> Dict[str, Any]:
    if isinstance(row, dict):
        return row
    if dataclasses.is_dataclass(row):
        return {f.name: getattr(row, f.name) for f in dataclasses.fields(row)}
    return dict(row)


class RowsTableModel(QAbstractTableModel):
    """
    Read-only table over projection rows (dicts or dataclasses). Money and
    numeric columns are formatted for display and right-aligned; the raw
    value stays available under Qt.UserRole.
    """

    def __init__(
        self,
        columns: Sequence[Column],
        rows: Optional[List[Any]] = None,
        parent=None,
    ) -> None:
        super().__init__(parent)
        for col in columns:
            if col.kind not in _FORMATTERS:
                raise ValueError(f"Unknown column kind: {col.kind!r}")
        self._columns = tuple(columns)
        self._rows: List[Dict[str, Any]] = [_as_mapping(r) for r in (rows or [])]

    def set_rows(self, rows: List[Any]) -> None:
        self.beginResetModel()
        self._rows = [_as_mapping(r) for r in (rows or [])]
        self.endResetModel()

    def row(self, r: int) -> Dict[str, Any]:
        return self._rows[r]

    def rowCount(self, parent=QModelIndex()) -> int:  # type: ignore[override]
        return 0 if parent.isValid() else len(self._rows)

    def columnCount(self, parent=QModelIndex()) -> int:  # type: ignore[override]
        return 0 if parent.isValid() else len(self._columns)

    def headerData(self, section, orientation, role=Qt.DisplayRole):  # type: ignore[override]
        if role != Qt.DisplayRole:
            return None
        if orientation == Qt.Horizontal:
            return self._columns[section].header
        return str(section + 1)

    def data(self, index: QModelIndex, role=Qt.DisplayRole):  # type: ignore[override]
        if not index.isValid():
            return None
        col = self._columns[index.column()]
        value = self._rows[index.row()].get(col.key)

        if role == Qt.DisplayRole:
            return _FORMATTERS[col.kind](value)
        if role == Qt.UserRole:
            return value
        if role == Qt.TextAlignmentRole:
            if col.kind in _NUMERIC:
                return Qt.AlignRight | Qt.AlignVCenter
            return Qt.AlignLeft | Qt.AlignVCenter
        return None
