"""
Shared test fixtures.

The mock Supabase client keeps rows per table in memory and honours eq
filters, ordering, limits and simple foreign-table selects, so conditional
updates behave like the real store: an update that matches no row returns
no data.
"""

import os
import re
import sys
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Settings require these at import time
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

import pytest
from unittest.mock import patch
from typing import Generator

from tests.factories import FoodFactory, LotFactory


# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data=None, count: int = None):
        self.data = data
        self.count = count


def _values_equal(stored, value) -> bool:
    numeric = (int, float, Decimal)
    if (
        isinstance(stored, numeric) and isinstance(value, numeric)
        and not isinstance(stored, bool) and not isinstance(value, bool)
    ):
        return Decimal(str(stored)) == Decimal(str(value))
    return stored == value


class MockSupabaseQuery:
    """Mock query builder with chainable methods."""

    def __init__(self, client: "MockSupabaseClient", table: str, operation: str, payload=None):
        self._client = client
        self._table = table
        self._operation = operation
        self._payload = payload
        self._columns = "*"
        self._count = None
        self._filters = []
        self._orders = []
        self._limit = None
        self._range = None
        self._is_single = False

    def select(self, columns: str = "*", count: str = None, **kwargs):
        self._columns = columns
        self._count = count
        return self

    def eq(self, column, value):
        self._filters.append((column, value))
        return self

    def order(self, column, desc: bool = False, **kwargs):
        self._orders.append((column, desc))
        return self

    def limit(self, count):
        self._limit = count
        return self

    def range(self, start, end):
        self._range = (start, end)
        return self

    def single(self):
        self._is_single = True
        return self

    def _matches(self, row: dict) -> bool:
        return all(_values_equal(row.get(col), val) for col, val in self._filters)

    def _project(self, row: dict) -> dict:
        relations = re.findall(r"(\w+)\(([^)]*)\)", self._columns)
        plain = [
            c.strip()
            for c in re.sub(r"\w+\([^)]*\)", "", self._columns).split(",")
            if c.strip()
        ]
        out = dict(row) if "*" in plain or not plain else {c: row.get(c) for c in plain}
        for relation, cols in relations:
            fk = relation.rstrip("s") + "_id"
            target = self._client.get_row(relation, row.get(fk))
            if target is None:
                out[relation] = None
            else:
                wanted = [c.strip() for c in cols.split(",") if c.strip()]
                out[relation] = {c: target.get(c) for c in wanted}
        return out

    def execute(self) -> MockSupabaseResponse:
        self._client._record_call(self._table, self._operation, self._filters)

        rows = self._client._tables[self._table]

        if self._operation == "select":
            matched = [dict(r) for r in rows if self._matches(r)]
            for column, desc in reversed(self._orders):
                matched.sort(
                    key=lambda r: (r.get(column) is None, r.get(column) if r.get(column) is not None else 0),
                    reverse=desc,
                )
            if self._range:
                matched = matched[self._range[0]:self._range[1] + 1]
            if self._limit is not None:
                matched = matched[:self._limit]
            data = [self._project(r) for r in matched]
            if self._is_single:
                return MockSupabaseResponse(data=data[0] if data else None, count=len(data))
            return MockSupabaseResponse(data=data, count=len(data))

        if self._operation == "insert":
            items = self._payload if isinstance(self._payload, list) else [self._payload]
            created = []
            for item in items:
                row = dict(item)
                row.setdefault("id", self._client._next_id(self._table))
                row.setdefault("created_at", datetime.utcnow().isoformat() + "Z")
                rows.append(row)
                created.append(dict(row))
            return MockSupabaseResponse(data=created, count=len(created))

        if self._operation == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(self._payload)
                    updated.append(dict(row))
            return MockSupabaseResponse(data=updated, count=len(updated))

        if self._operation == "delete":
            removed = [dict(r) for r in rows if self._matches(r)]
            self._client._tables[self._table] = [r for r in rows if not self._matches(r)]
            return MockSupabaseResponse(data=removed, count=len(removed))

        raise ValueError(f"Unknown operation {self._operation}")


class MockSupabaseTable:
    """Entry point for queries on one table."""

    def __init__(self, client: "MockSupabaseClient", name: str):
        self._client = client
        self._name = name

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self._client, self._name, "select").select(*args, **kwargs)

    def insert(self, data):
        return MockSupabaseQuery(self._client, self._name, "insert", data)

    def update(self, data):
        return MockSupabaseQuery(self._client, self._name, "update", data)

    def delete(self):
        return MockSupabaseQuery(self._client, self._name, "delete")


class MockSupabaseClient:
    """
    In-memory Supabase client.

    Extras for tests:
        fail_on(table, operation, call=n): raise on the n-th such call (0-based)
        before_update(callback): run callback(table, filters) before updates
        calls: list of (table, operation) executed
    """

    def __init__(self):
        self._tables = defaultdict(list)
        self._ids = defaultdict(int)
        self._failures = {}
        self._call_counts = defaultdict(int)
        self._update_hooks = []
        self.calls = []

    def set_table_data(self, table_name: str, data: list, count: int = None):
        """Configure rows for a table."""
        self._tables[table_name] = [dict(row) for row in data]
        ids = [row["id"] for row in data if isinstance(row.get("id"), int)]
        self._ids[table_name] = max(ids, default=0)

    def rows(self, table_name: str) -> list:
        """Current rows of a table (copies)."""
        return [dict(row) for row in self._tables[table_name]]

    def get_row(self, table_name: str, row_id):
        for row in self._tables[table_name]:
            if row.get("id") == row_id:
                return row
        return None

    def fail_on(self, table_name: str, operation: str, call: int = 0, message: str = "connection reset by peer"):
        """Make the call-th (0-based) `operation` on `table_name` raise."""
        self._failures[(table_name, operation)] = (call, message)

    def before_update(self, callback):
        """Register a hook run before every update executes."""
        self._update_hooks.append(callback)

    def writes(self) -> list:
        """Executed insert/update/delete calls."""
        return [c for c in self.calls if c[1] != "select"]

    def _next_id(self, table_name: str) -> int:
        self._ids[table_name] += 1
        return self._ids[table_name]

    def _record_call(self, table_name: str, operation: str, filters: list):
        key = (table_name, operation)
        index = self._call_counts[key]
        self._call_counts[key] += 1

        failure = self._failures.get(key)
        if failure and failure[0] == index:
            raise Exception(failure[1])

        if operation == "update":
            for hook in self._update_hooks:
                hook(table_name, filters)

        self.calls.append(key)

    def table(self, name: str) -> MockSupabaseTable:
        return MockSupabaseTable(self, name)


# ===================
# FIXTURES
# ===================

SERVICE_MODULES = (
    "config.database",
    "services.food_service",
    "services.lot_service",
    "services.basket_service",
)


def _reset_singletons():
    import services.food_service as food_module
    import services.lot_service as lot_module
    import services.basket_service as basket_module
    food_module._food_service = None
    lot_module._lot_service = None
    basket_module._basket_service = None


@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("foods", [FoodFactory.create()])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch every service's database client with the mock.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("lots", [...])
            # Now any service built here gets the mock
    """
    patches = [
        patch(f"{module}.get_supabase_client", return_value=mock_supabase)
        for module in SERVICE_MODULES
    ]
    for p in patches:
        p.start()
    _reset_singletons()
    try:
        yield mock_supabase
    finally:
        for p in reversed(patches):
            p.stop()
        _reset_singletons()


@pytest.fixture
def basket_catalog() -> list:
    """Rice (2 per basket) and Beans (no quantity set, so 1)."""
    return [
        FoodFactory.create(id=1, name="Rice", qty_per_basket=2),
        FoodFactory.create(id=2, name="Beans", qty_per_basket=None),
    ]


@pytest.fixture
def basket_lots() -> list:
    """One lot each of Rice (3 units) and Beans (1 unit)."""
    return [
        LotFactory.create(id=10, food_id=1, quantity=3, expiry_date="2025-01-01"),
        LotFactory.create(id=11, food_id=2, quantity=1, expiry_date="2025-01-01"),
    ]


@pytest.fixture
def stocked_db(mock_db, basket_catalog, basket_lots) -> MockSupabaseClient:
    """Mock store loaded with the Rice/Beans catalog and lots."""
    mock_db.set_table_data("foods", basket_catalog)
    mock_db.set_table_data("lots", basket_lots)
    return mock_db


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_with_mock_db(mock_db):
    """
    Create FastAPI test client with mocked database.

    Usage:
        def test_endpoint(test_client_with_mock_db, mock_supabase):
            mock_supabase.set_table_data("lots", [...])
            response = test_client_with_mock_db.get("/api/lots/available")
    """
    from fastapi.testclient import TestClient
    from main import app

    yield TestClient(app)
