# floor_manager/modules/ledger/estimate.py
"""
Project estimate calculator.

A quote for a job before it becomes an order: material lines priced from
catalog positions plus labor lines priced from the work catalog. Nothing
here is persisted and nothing touches the order ledger.

    line total  = price * quantity          (cent-rounded, no discount)
    materials   = sum(material line totals)
    labor       = sum(labor line totals)
    grand total = materials + labor

A line's price starts as the catalog price and may be overridden per line.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from ...database.schema import Position, WorkPosition
from .calculations import line_total
from .money import dsum

__all__ = [
    "MATERIAL",
    "LABOR",
    "EstimateLine",
    "EstimateTotals",
    "Estimate",
    "material_line",
    "labor_line",
]

MATERIAL = "material"
LABOR = "labor"


@dataclass(frozen=True)
class EstimateLine:
    kind: str
    name: str
    position_id: Optional[int] = None
    unit: str = ""
    quantity: Any = 0
    price: str = "0"

    @property
    def total(self) -> Decimal:
        return line_total(self.quantity, self.price)


def material_line(position: Position, quantity: Any = 0) -> EstimateLine:
    return EstimateLine(
        kind=MATERIAL,
        name=position.name,
        position_id=position.id,
        unit=position.unit,
        quantity=quantity,
        price=position.price,
    )


def labor_line(work: WorkPosition, quantity: Any = 0) -> EstimateLine:
    return EstimateLine(
        kind=LABOR,
        name=work.name,
        position_id=work.id,
        unit=work.unit,
        quantity=quantity,
        price=work.price,
    )


@dataclass(frozen=True)
class EstimateTotals:
    materials: Decimal
    labor: Decimal
    grand_total: Decimal

    def as_dict(self) -> dict:
        return {"materials": self.materials, "labor": self.labor, "grand_total": self.grand_total}


@dataclass(frozen=True)
class Estimate:
    """
    Immutable estimate. Every edit returns a new Estimate; lines are
    addressed by their index within their own kind, as the two tables show them.
    """

    project_name: str = ""
    materials: Tuple[EstimateLine, ...] = ()
    labor: Tuple[EstimateLine, ...] = ()

    def _lines(self, kind: str) -> Tuple[EstimateLine, ...]:
        if kind == MATERIAL:
            return self.materials
        if kind == LABOR:
            return self.labor
        raise ValueError(f"Unknown estimate line kind: {kind!r}")

    def _with(self, kind: str, lines: Tuple[EstimateLine, ...]) -> "Estimate":
        if kind == MATERIAL:
            return replace(self, materials=lines)
        return replace(self, labor=lines)

    # ---- Editing ----------------------------------------------------------

    def add(self, line: EstimateLine) -> "Estimate":
        return self._with(line.kind, self._lines(line.kind) + (line,))

    def update(self, kind: str, index: int, **changes: Any) -> "Estimate":
        """Change quantity, price or labels of one line."""
        lines = list(self._lines(kind))
        lines[index] = replace(lines[index], **changes)
        return self._with(kind, tuple(lines))

    def remove(self, kind: str, index: int) -> "Estimate":
        lines = self._lines(kind)
        return self._with(kind, lines[:index] + lines[index + 1:])

    # ---- Totals -----------------------------------------------------------

    def totals(self) -> EstimateTotals:
        materials = dsum(line.total for line in self.materials)
        labor = dsum(line.total for line in self.labor)
        return EstimateTotals(materials=materials, labor=labor, grand_total=materials + labor)

    def rows(self) -> List[Dict[str, Any]]:
        """Flat rows (materials first) for the estimate table and CSV export."""
        return [
            {
                "kind": line.kind,
                "name": line.name,
                "unit": line.unit,
                "quantity": line.quantity,
                "price": line.price,
                "total": line.total,
            }
            for line in self.materials + self.labor
        ]
