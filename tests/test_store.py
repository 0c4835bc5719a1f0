# tests/test_store.py
import json

import pytest

from floor_manager.database import get_store
from floor_manager.database.schema import Snapshot, default_blob, next_id, normalize_blob
from floor_manager.database.store import JsonFileStore, MemoryStore, StorageError


def test_missing_file_loads_default_blob(file_store):
    blob = file_store.load()
    assert blob == default_blob()
    assert not file_store.path.exists()


def test_save_and_load_round_trip(file_store):
    blob = file_store.load()
    blob["orders"].append({"id": 1, "client_name": "Иванов", "order_date": "2026-03-10", "prepayment": "0"})
    file_store.save(blob)

    again = JsonFileStore(file_store.path).load()
    assert again["orders"][0]["client_name"] == "Иванов"
    # non-ASCII is written as-is
    assert "Иванов" in file_store.path.read_text(encoding="utf-8")


def test_save_preserves_other_namespaces(file_store):
    file_store.path.parent.mkdir(parents=True)
    file_store.path.write_text(json.dumps({"OTHER_APP": {"x": 1}}), encoding="utf-8")

    file_store.save(default_blob())
    data = json.loads(file_store.path.read_text(encoding="utf-8"))
    assert data["OTHER_APP"] == {"x": 1}
    assert file_store.namespace in data


def test_clear_removes_namespace_only(file_store):
    file_store.path.parent.mkdir(parents=True)
    file_store.path.write_text(json.dumps({"OTHER_APP": 1, file_store.namespace: {"orders": []}}), encoding="utf-8")

    file_store.clear()
    data = json.loads(file_store.path.read_text(encoding="utf-8"))
    assert data == {"OTHER_APP": 1}
    assert file_store.load() == default_blob()


@pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]"])
def test_unreadable_file_raises_storage_error(file_store, content):
    file_store.path.parent.mkdir(parents=True)
    file_store.path.write_text(content, encoding="utf-8")
    with pytest.raises(StorageError):
        file_store.load()


def test_namespace_must_hold_an_object(file_store):
    file_store.path.parent.mkdir(parents=True)
    file_store.path.write_text(json.dumps({file_store.namespace: [1]}), encoding="utf-8")
    with pytest.raises(StorageError):
        file_store.load()


def test_no_temp_files_left_behind(file_store):
    file_store.save(default_blob())
    file_store.save(default_blob())
    leftovers = [p.name for p in file_store.path.parent.iterdir() if p.name.endswith(".tmp")]
    assert leftovers == []


def test_memory_store_hands_out_copies():
    store = MemoryStore()
    blob = store.load()
    blob["orders"].append({"id": 1})
    assert store.load()["orders"] == []

    store.save(blob)
    blob["orders"].clear()
    assert len(store.load()["orders"]) == 1
    assert store.saves == 1

    store.clear()
    assert store.load() == default_blob()


def test_get_store_uses_given_path(tmp_path):
    store = get_store(tmp_path / "x.json")
    assert isinstance(store, JsonFileStore)
    assert store.path == tmp_path / "x.json"


# ---------- Blob normalisation ----------

def test_normalize_fills_missing_arrays():
    blob = normalize_blob({"orders": [{"id": 3}], "custom": True})
    assert blob["orders"] == [{"id": 3}]
    assert blob["orderItems"] == []
    assert blob["positions"] == []
    assert blob["cargoStatuses"] == default_blob()["cargoStatuses"]
    assert blob["users"][0]["role"] == "admin"
    assert blob["custom"] is True
    assert blob["licenseKey"] is None


def test_next_id():
    assert next_id([]) == 1
    assert next_id([{"id": 4}, {"id": "9"}, {"id": None}]) == 10


def test_snapshot_joins_flat_items_by_order_id():
    blob = default_blob()
    blob["orders"] = [
        {"id": 1, "client_name": "A", "order_date": "2026-03-01"},
        {"id": 2, "client_name": "B", "order_date": "2026-03-02"},
    ]
    blob["orderItems"] = [
        {"id": 1, "orderId": 2, "positionId": 5, "position_name": "X", "quantity": 1, "price": "10"},
        {"id": 2, "orderId": 2, "positionId": 5, "position_name": "X", "quantity": 2, "price": "10"},
        {"id": 3, "orderId": 99, "position_name": "orphan", "quantity": 1, "price": "1"},
    ]
    orders = Snapshot.from_blob(blob).orders_joined()
    assert [len(o.items) for o in orders] == [0, 2]
    assert orders[1].items[0].position_id == 5


def test_order_record_tolerates_bad_fields():
    snap = Snapshot.from_blob({"orders": [{"id": "7", "cargo_status_id": "x", "prepayment": None}]})
    [o] = snap.orders
    assert o.id == 7
    assert o.cargo_status_id == 1
    assert o.prepayment == "0"


def test_out_of_range_numbers_fall_back_to_defaults():
    blob = json.loads('{"orders": [{"id": 3, "cargo_status_id": 1e400}], "orderItems": [{"id": 1e400, "orderId": 3}]}')
    snap = Snapshot.from_blob(blob)
    assert snap.orders[0].cargo_status_id == 1
    assert snap.order_items[0].id == 0
    assert next_id([{"id": float("inf")}, {"id": 2}]) == 3
