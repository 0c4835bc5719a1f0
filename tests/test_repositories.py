# tests/test_repositories.py
from decimal import Decimal

import pytest

from floor_manager.constants import PAID_NOTE
from floor_manager.database.repositories import (
    CatalogDomainError,
    CatalogRepo,
    MaintenanceDomainError,
    MaintenanceRepo,
    OrdersDomainError,
    OrdersRepo,
    StatusesDomainError,
    StatusesRepo,
    UsersDomainError,
    UsersRepo,
    invoice_for,
)
from floor_manager.database.schema import default_blob
from floor_manager.modules.ledger import order_totals


@pytest.fixture()
def orders(memory_store):
    return OrdersRepo(memory_store)


def _line(qty=1, price="100", discount="0", **extra):
    return {"position_name": "Ламинат Classic", "category_name": "Ламинат",
            "quantity": qty, "price": price, "discount": discount, **extra}


# ---------- Orders ----------

def test_invoice_number_is_zero_padded():
    assert invoice_for(42) == "№ 0042"
    assert invoice_for(123456) == "№ 123456"


def test_create_order_assigns_ids_and_recomputes_totals(orders, memory_store):
    o1 = orders.create_order(
        {"client_name": "  Иванов ", "order_date": "2026-03-10", "prepayment": "2000", "cargo_status_id": 2},
        [_line(10, "350", total_price="999999")],
    )
    o2 = orders.create_order({"client_name": "Петров"}, [_line(), _line(2)])

    assert (o1.id, o2.id) == (1, 2)
    assert o1.invoice_number == "№ 0001"
    assert o1.client_name == "Иванов"
    assert o1.prepayment == "2000.00"
    assert o1.items[0].total_price == "3500.00"
    assert order_totals(o1).debt == Decimal("1500.00")
    assert o2.cargo_status_id == 1          # preorder by default
    assert [i.id for i in o2.items] == [2, 3]
    assert o1.created_at and o1.created_at == o1.updated_at

    blob = memory_store.load()
    assert len(blob["orders"]) == 2
    assert {i["orderId"] for i in blob["orderItems"]} == {1, 2}


@pytest.mark.parametrize(
    "fields, items, message",
    [
        ({"client_name": "  "}, [_line()], "Client name"),
        ({"client_name": "A"}, [], "at least one item"),
        ({"client_name": "A"}, [_line(-1)], "Quantity"),
        ({"client_name": "A", "prepayment": "-5"}, [_line()], "Prepayment"),
    ],
)
def test_create_order_rejects_invalid_input(orders, memory_store, fields, items, message):
    with pytest.raises(OrdersDomainError, match=message):
        orders.create_order(fields, items)
    assert memory_store.saves == 0


def test_create_order_fills_missing_item_labels(orders):
    o = orders.create_order({"client_name": "A"}, [{"quantity": "2,5", "price": "10"}])
    assert o.items[0].position_name == "Неизвестно"
    assert o.items[0].quantity == 2.5
    assert o.items[0].total_price == "25.00"


def test_update_order_merges_fields_and_replaces_items(orders, memory_store):
    o = orders.create_order({"client_name": "A", "note": "old"}, [_line(), _line(2)])
    other = orders.create_order({"client_name": "B"}, [_line()])

    updated = orders.update_order(o.id, {"note": "new", "prepayment": "50"}, [{"quantity": 3, "price": "10"}])
    assert updated.note == "new"
    assert updated.prepayment == "50.00"
    assert len(updated.items) == 1
    assert updated.items[0].position_name == "Архивный товар"
    assert updated.items[0].category_name == "Архивная категория"
    assert updated.items[0].total_price == "30.00"

    # the other order's items survive untouched
    assert len(orders.get(other.id).items) == 1
    assert len(memory_store.load()["orderItems"]) == 2


def test_update_order_without_items_keeps_them(orders):
    o = orders.create_order({"client_name": "A"}, [_line(), _line()])
    updated = orders.update_order(o.id, {"cargo_status_id": 5})
    assert updated.cargo_status_id == 5
    assert len(updated.items) == 2


def test_update_missing_order_raises(orders):
    with pytest.raises(OrdersDomainError, match="not found"):
        orders.update_order(99, {"note": "x"})


def test_soft_delete_hides_order(orders):
    o = orders.create_order({"client_name": "A"}, [_line()])
    orders.delete_order(o.id)
    assert orders.list_orders() == []
    assert [x.id for x in orders.list_orders(include_deleted=True)] == [o.id]
    assert orders.get(o.id).is_deleted


def test_clear_orders(orders, memory_store):
    orders.create_order({"client_name": "A"}, [_line()])
    orders.clear_orders()
    blob = memory_store.load()
    assert blob["orders"] == [] and blob["orderItems"] == []


def test_settle_debt_completes_order(orders):
    o = orders.create_order({"client_name": "A", "prepayment": "2000", "cargo_status_id": 7}, [_line(10, "350")])
    result = orders.settle_debt(o.id, "1500")
    assert result.completed
    stored = orders.get(o.id)
    assert stored.prepayment == "3500.00"
    assert stored.cargo_status_id == 8
    assert stored.is_completed
    assert stored.note == PAID_NOTE


def test_partial_settlement_is_persisted(orders):
    o = orders.create_order({"client_name": "A", "cargo_status_id": 7, "note": "n"}, [_line(1, "1000")])
    result = orders.settle_debt(o.id, "250")
    assert not result.completed
    assert result.remaining == Decimal("750.00")
    stored = orders.get(o.id)
    assert stored.prepayment == "250.00"
    assert stored.cargo_status_id == 7
    assert stored.note == "n"


@pytest.mark.parametrize("amount", ["0", "-10", "abc", None])
def test_settle_rejects_non_positive_amounts(orders, amount):
    o = orders.create_order({"client_name": "A"}, [_line()])
    with pytest.raises(OrdersDomainError, match="greater than zero"):
        orders.settle_debt(o.id, amount)


def test_settle_rejects_deleted_order(orders):
    o = orders.create_order({"client_name": "A"}, [_line()])
    orders.delete_order(o.id)
    with pytest.raises(OrdersDomainError, match="deleted"):
        orders.settle_debt(o.id, "10")


def test_bulk_add_orders_accepts_fixture_records(orders):
    orders.create_order({"client_name": "Existing"}, [_line()])
    added, items = orders.bulk_add_orders([
        {"pk": 1, "fields": {"client_name": "dup"}},
        {"pk": 10, "fields": {"cargo_status": 3, "order_date": "2026-01-05",
                              "items": [{"pk": 50, "fields": {"quantity": "2", "price": "10"}}]}},
        {"id": 11, "client_name": "Plain", "prepayment": "5"},
    ])
    assert (added, items) == (2, 1)
    o10 = orders.get(10)
    assert o10.client_name == "Anonymous"
    assert o10.client_phone == "-"
    assert o10.cargo_status_id == 3
    assert o10.invoice_number == "№ 0010"
    assert o10.items[0].position_name == "Item"
    assert o10.items[0].category_name == "General"
    assert orders.get(1).client_name == "Existing"


def test_bulk_add_order_items_skips_orphans_and_known_ids(orders):
    o = orders.create_order({"client_name": "A"}, [_line()])
    count = orders.bulk_add_order_items([
        {"pk": 1, "fields": {"order": o.id, "price": "5"}},        # id taken
        {"pk": 7, "fields": {"price": "5"}},                       # no order
        {"pk": 8, "fields": {"order": o.id, "quantity": 3, "price": "5", "total_price": "15"}},
    ])
    assert count == 1
    assert [i.id for i in orders.get(o.id).items] == [1, 8]


def test_import_recomputes_line_totals(orders):
    orders.bulk_add_orders([
        {"id": 5, "client_name": "A", "items": [{"id": 1, "quantity": 2, "price": "100", "total_price": "999"}]},
    ])
    orders.bulk_add_order_items([{"id": 2, "orderId": 5, "quantity": 1, "price": "50", "discount": "10", "total_price": "1"}])
    assert [i.total_price for i in orders.get(5).items] == ["200.00", "45.00"]


def test_import_rejects_negative_quantity(orders, memory_store):
    with pytest.raises(OrdersDomainError, match="Quantity"):
        orders.bulk_add_orders([
            {"id": 5, "client_name": "A", "items": [{"id": 1, "quantity": -3, "price": "100"}]},
        ])
    with pytest.raises(OrdersDomainError, match="Quantity"):
        orders.bulk_add_order_items([{"id": 9, "orderId": 5, "quantity": "-1", "price": "10"}])
    assert memory_store.saves == 0
    assert orders.list_orders() == []


def test_import_renumbers_taken_item_ids(orders, memory_store):
    orders.create_order({"client_name": "Existing"}, [_line()])
    orders.bulk_add_orders([
        {"id": 7, "client_name": "B", "items": [{"id": 1, "quantity": 1, "price": "10"},
                                               {"id": 1, "quantity": 2, "price": "10"}]},
    ])
    ids = [i["id"] for i in memory_store.load()["orderItems"]]
    assert ids == [1, 2, 3]
    assert [i.quantity for i in orders.get(7).items] == [1, 2]


# ---------- Catalog ----------

def test_categories_sorted_by_order_index(memory_store):
    repo = CatalogRepo(memory_store)
    cats = repo.list_categories()
    assert [c.order_index for c in cats] == sorted(c.order_index for c in cats)
    new = repo.add_category({"name": "Пробка", "order_index": 0})
    assert repo.list_categories()[0].id == new.id


def test_position_crud_and_validation(memory_store):
    repo = CatalogRepo(memory_store)
    p = repo.add_position({"brand": "Tarkett", "name": "Ламинат 33", "categoryId": 5, "price": "890", "unit": "м²"})
    assert p.id == 1
    assert repo.update_position(p.id, {"price": "950"}).price == "950"
    with pytest.raises(CatalogDomainError):
        repo.add_position({"name": "X", "price": "-1"})
    with pytest.raises(CatalogDomainError):
        repo.add_position({"name": " ", "price": "1"})
    with pytest.raises(CatalogDomainError, match="not found"):
        repo.update_position(42, {"price": "1"})
    repo.delete_position(p.id)
    assert repo.get_position(p.id) is None


def test_default_line_snapshots_labels(memory_store):
    repo = CatalogRepo(memory_store)
    p = repo.add_position({"name": "Ламинат 33", "categoryId": 5, "price": "890"})
    line = repo.default_line_for(p.id)
    assert line == {"positionId": p.id, "position_name": "Ламинат 33",
                    "category_name": "Ламинат", "price": "890", "discount": "0"}
    assert repo.default_line_for(999) is None


def test_deleting_category_keeps_order_item_labels(memory_store):
    catalog, orders = CatalogRepo(memory_store), OrdersRepo(memory_store)
    p = catalog.add_position({"name": "Ламинат 33", "categoryId": 5, "price": "890"})
    o = orders.create_order({"client_name": "A"}, [catalog.default_line_for(p.id)])
    catalog.delete_category(5)
    catalog.delete_position(p.id)
    item = orders.get(o.id).items[0]
    assert (item.position_name, item.category_name) == ("Ламинат 33", "Ламинат")


def test_bulk_add_positions_skips_invalid_rows(memory_store):
    repo = CatalogRepo(memory_store)
    count = repo.bulk_add_positions([{"name": "A", "price": "1"}, {"name": "", "price": "1"}, {"name": "B", "price": "2"}])
    assert count == 2
    assert [p.id for p in repo.list_positions()] == [1, 2]


def test_work_positions_filter_by_category(memory_store):
    repo = CatalogRepo(memory_store)
    assert {w.category_id for w in repo.list_work_positions(2)} == {2}
    w = repo.add_work_position({"categoryId": 4, "name": "Демонтаж", "price": "150", "unit": "м²"})
    assert w in repo.list_work_positions(4)


# ---------- Statuses ----------

def test_status_update_keeps_id(memory_store):
    repo = StatusesRepo(memory_store)
    s = repo.update(2, {"name": "заказано", "color": "#000000"})
    assert (s.id, s.name) == (2, "заказано")
    assert repo.preorder().id == 1
    with pytest.raises(StatusesDomainError):
        repo.update(2, {"name": ""})
    with pytest.raises(StatusesDomainError, match="not found"):
        repo.update(77, {"name": "x"})


# ---------- Users ----------

def test_default_admin_logs_in_without_password(memory_store):
    repo = UsersRepo(memory_store)
    admin = repo.authenticate("Администратор", "anything")
    assert admin is not None
    assert UsersRepo.can(admin, "settings", "edit")


def test_password_gate_and_permissions(memory_store):
    repo = UsersRepo(memory_store)
    u = repo.add({"username": "kassa", "password": "1234", "permissions": {"orders": "view", "debtors": "edit"}})
    assert repo.authenticate("kassa", "1234") == u
    assert repo.authenticate("kassa", "wrong") is None
    assert repo.authenticate("ghost") is None
    assert UsersRepo.can(u, "orders", "view")
    assert not UsersRepo.can(u, "orders", "edit")
    assert not UsersRepo.can(u, "settings")
    with pytest.raises(ValueError):
        UsersRepo.can(u, "orders", "admin")


def test_user_names_unique_and_password_kept_on_blank_update(memory_store):
    repo = UsersRepo(memory_store)
    u = repo.add({"username": "kassa", "password": "1234"})
    with pytest.raises(UsersDomainError, match="already exists"):
        repo.add({"username": "KASSA"})
    updated = repo.update(u.id, {"password": "", "role": "manager"})
    assert updated.password == "1234"
    assert updated.role == "manager"
    repo.delete(u.id)
    assert repo.get(u.id) is None


# ---------- Maintenance ----------

def test_backup_round_trip_and_validation(memory_store):
    orders = OrdersRepo(memory_store)
    orders.create_order({"client_name": "A"}, [_line()])
    repo = MaintenanceRepo(memory_store)
    backup = repo.export_blob()

    repo.nuclear_wipe()
    assert memory_store.load() == default_blob()

    repo.import_blob(backup)
    assert [o.client_name for o in orders.list_orders()] == ["A"]

    with pytest.raises(MaintenanceDomainError):
        repo.import_blob(["not", "a", "dict"])
    with pytest.raises(MaintenanceDomainError):
        repo.import_blob({"unrelated": 1})


def test_clear_all_data_keeps_catalogs_and_users(memory_store):
    CatalogRepo(memory_store).add_position({"name": "A", "price": "1"})
    OrdersRepo(memory_store).create_order({"client_name": "A"}, [_line()])
    repo = MaintenanceRepo(memory_store)
    repo.clear_all_data()
    blob = memory_store.load()
    assert blob["orders"] == blob["orderItems"] == blob["positions"] == []
    assert blob["categories"] == default_blob()["categories"]
    assert blob["users"]


def test_license_key(memory_store):
    repo = MaintenanceRepo(memory_store)
    assert repo.get_license() is None
    repo.save_license("  ABC-123 ")
    assert repo.get_license() == "ABC-123"
