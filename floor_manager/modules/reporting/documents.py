# floor_manager/modules/reporting/documents.py
"""
Printable documents and exports.

Public interface
----------------
- render_invoice(order) -> str
- render_reconciliation(act, date_from, date_to, responsible="") -> str
- render_revenue(rows, date_from, date_to) -> str
- render_discounts(rows, date_from, date_to) -> str
- write_pdf(html, path) -> Path
- export_csv(path, headers, rows) -> Path

Notes
-----
- Templates ship inside the package (reporting/templates) and are loaded
  with importlib.resources, rendered with jinja2 (autoescape on).
- All number formatting happens here via utils.helpers; the projections
  hand over raw Decimals.
"""
from __future__ import annotations

import csv
import logging
from importlib import resources as importlib_resources
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from jinja2 import Template

from ...database.schema import Order
from ...utils.helpers import fmt_date, fmt_money, fmt_pct, fmt_qty
from ...utils.loggers import log_event
from ..ledger.calculations import item_total, order_totals
from ..ledger.ledger import DayBucket, Reconciliation
from ..ledger.money import dsum
from .projections import DiscountRow, discount_report_totals

__all__ = [
    "load_template",
    "render_invoice",
    "render_reconciliation",
    "render_revenue",
    "render_discounts",
    "write_pdf",
    "export_csv",
]

_log = logging.getLogger(__name__)

_TEMPLATES_PKG = "floor_manager.modules.reporting.templates"

_HELPERS = {
    "money": fmt_money,
    "pct": fmt_pct,
    "qty": fmt_qty,
    "date": fmt_date,
}


def _read_resource(name: str) -> str:
    return importlib_resources.files(_TEMPLATES_PKG).joinpath(name).read_text(encoding="utf-8")


def load_template(name: str) -> Template:
    """Load a packaged HTML template; a missing template is a packaging bug and propagates."""
    try:
        return Template(_read_resource(name), autoescape=True)
    except (FileNotFoundError, OSError) as e:
        _log.error("Failed to load template %s: %s", name, e, exc_info=True)
        raise


def _render(name: str, **context: Any) -> str:
    return load_template(name).render(css=_read_resource("_base.css"), **_HELPERS, **context)


# ----------------------------
# Documents
# ----------------------------

def render_invoice(order: Order) -> str:
    """Invoice for one order; line labels come from the items themselves."""
    lines = [
        {
            "position_name": it.position_name,
            "category_name": it.category_name,
            "quantity": it.quantity,
            "price": it.price,
            "discount": it.discount,
            "total": item_total(it),
        }
        for it in order.items
    ]
    return _render("invoice.html", order=order, lines=lines, totals=order_totals(order))


def render_reconciliation(
    act: Reconciliation,
    date_from: str,
    date_to: str,
    responsible: str = "",
) -> str:
    return _render(
        "reconciliation.html",
        act=act,
        date_from=date_from,
        date_to=date_to,
        responsible=responsible,
    )


def render_revenue(rows: Sequence[DayBucket], date_from: str, date_to: str) -> str:
    totals = {
        "clients": sum(r.clients for r in rows),
        "revenue": dsum(r.revenue for r in rows),
        "paid": dsum(r.paid for r in rows),
        "debt": dsum(r.debt for r in rows),
    }
    return _render("revenue.html", rows=rows, totals=totals, date_from=date_from, date_to=date_to)


def render_discounts(rows: Sequence[DiscountRow], date_from: str, date_to: str) -> str:
    return _render(
        "discounts.html",
        rows=rows,
        totals=discount_report_totals(rows),
        date_from=date_from,
        date_to=date_to,
    )


# ----------------------------
# Output
# ----------------------------

def write_pdf(html: str, path: str | Path) -> Path:
    """Convert rendered HTML to a PDF file with WeasyPrint."""
    from weasyprint import HTML

    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    HTML(string=html).write_pdf(str(out))
    log_event(_log, "print", "done", "pdf written", {"path": str(out)})
    return out


def _cell(value: Any) -> Any:
    # Decimals go out with a plain point so spreadsheets parse them.
    return str(value) if value is not None else ""


def export_csv(
    path: str | Path,
    headers: Sequence[str],
    rows: Iterable[Sequence[Any] | Mapping[str, Any]],
) -> Path:
    """
    Write rows to CSV. Mapping rows are read in ``headers`` order; sequence
    rows are written as they are.
    """
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with open(out, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(headers)
        for r in rows:
            values = [r.get(h) for h in headers] if isinstance(r, Mapping) else list(r)
            writer.writerow([_cell(v) for v in values])
            count += 1
    log_event(_log, "export", "done", "csv written", {"path": str(out), "rows": count})
    return out
