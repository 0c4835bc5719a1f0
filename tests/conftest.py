# tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - pytest-qt owns QApplication (use qapp/qtbot fixtures)
# - Ledger tests build orders in memory with make_order/make_item
# - Repository tests get a fresh MemoryStore (or a JsonFileStore in tmp_path)
# ---------------------------------------------------------------------

from __future__ import annotations

import os

# Run Qt headless so the suite works without a display.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest

from floor_manager.database.store import JsonFileStore, MemoryStore

from factories import TODAY


# ---------- Qt: let pytest-qt own the app ----------
@pytest.fixture(scope="session")
def app(qapp):  # alias to match code that expects an `app` fixture
    return qapp


# ---------- Stores ----------
@pytest.fixture()
def memory_store():
    return MemoryStore()


@pytest.fixture()
def file_store(tmp_path):
    return JsonFileStore(tmp_path / "data" / "floor_manager.json")


@pytest.fixture()
def today():
    return TODAY
