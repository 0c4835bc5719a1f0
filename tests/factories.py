# tests/factories.py
from __future__ import annotations

from datetime import date

from floor_manager.database.schema import Order, OrderItem

TODAY = date(2026, 3, 15)


def make_item(quantity=1, price="100", discount="0", *, name="Ламинат Classic",
              category="Ламинат", item_id=1, order_id=1, total_price="0") -> OrderItem:
    return OrderItem(
        id=item_id,
        order_id=order_id,
        position_name=name,
        category_name=category,
        quantity=quantity,
        price=price,
        discount=discount,
        total_price=total_price,
    )


def make_order(items=(), prepayment="0", *, order_id=1, status=2, order_date="2026-03-10",
               client="Иванов И.И.", phone="+7 900 000-00-01", deleted=False,
               completed=False, shipping_date=None, note=None) -> Order:
    return Order(
        id=order_id,
        invoice_number=f"№ {order_id:04d}",
        order_date=order_date,
        client_name=client,
        client_phone=phone,
        prepayment=prepayment,
        cargo_status_id=status,
        is_deleted=deleted,
        is_completed=completed,
        shipping_date=shipping_date,
        note=note,
        items=tuple(items),
    )
