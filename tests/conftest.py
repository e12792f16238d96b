"""
Shared test fixtures.

FakeSupabaseClient keeps tables in memory and mirrors the constraints of
migrations/001_catalog_schema.sql: unique keys raise APIError 23505 and
foreign keys (ON DELETE RESTRICT) raise APIError 23503.
"""

import os
import sys
from copy import deepcopy
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Settings load at import time
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

import pytest
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional
from uuid import uuid4

from postgrest.exceptions import APIError


# ===================
# SCHEMA
# ===================

UNIQUE_KEYS = {
    "sectors": [("name",)],
    "production_groups": [("name", "sector_id")],
    "products": [("name",)],
    "product_assignments": [("sector_id", "production_group_id", "product_id")],
}

FOREIGN_KEYS = {
    "production_groups": {"sector_id": "sectors"},
    "product_assignments": {
        "sector_id": "sectors",
        "production_group_id": "production_groups",
        "product_id": "products",
    },
}

# child table: (child columns, parent table, parent columns)
COMPOSITE_FOREIGN_KEYS = {
    "product_assignments": [
        (("production_group_id", "sector_id"), "production_groups", ("id", "sector_id")),
    ],
}

TABLES = ["sectors", "production_groups", "products", "product_assignments", "requests", "import_logs"]


def api_error(code: str, message: str) -> APIError:
    return APIError({"message": message, "code": code, "hint": None, "details": None})


# ===================
# FAKE SUPABASE CLIENT
# ===================

class FakeResponse:
    """Supabase query response."""

    def __init__(self, data: list, count: Optional[int] = None):
        self.data = data
        self.count = count


class FakeQuery:
    """Chainable query builder evaluated on execute()."""

    def __init__(self, client: "FakeSupabaseClient", table: str):
        self._client = client
        self._table = table
        self._action = "select"
        self._payload: Any = None
        self._columns = "*"
        self._count = False
        self._filters: list[Callable[[dict], bool]] = []
        self._order: list[tuple[str, bool]] = []
        self._range: Optional[tuple[int, int]] = None
        self._limit: Optional[int] = None

    # Actions

    def select(self, columns: str = "*", count: Optional[str] = None):
        self._action = "select"
        self._columns = columns
        self._count = count is not None
        return self

    def insert(self, data):
        self._action = "insert"
        self._payload = data
        return self

    def update(self, data: dict):
        self._action = "update"
        self._payload = data
        return self

    def delete(self):
        self._action = "delete"
        return self

    # Filters

    def eq(self, column: str, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column: str, value):
        self._filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column: str, values):
        values = list(values)
        self._filters.append(lambda row: row.get(column) in values)
        return self

    def contains(self, column: str, values):
        self._filters.append(lambda row: all(v in (row.get(column) or []) for v in values))
        return self

    # Modifiers

    def order(self, column: str, desc: bool = False, **kwargs):
        self._order.append((column, desc))
        return self

    def range(self, start: int, end: int):
        self._range = (start, end)
        return self

    def limit(self, count: int):
        self._limit = count
        return self

    # Execution

    def _matching(self) -> list[dict]:
        return [row for row in self._client.tables[self._table] if all(f(row) for f in self._filters)]

    def _project(self, row: dict) -> dict:
        if self._columns.strip() == "*":
            return deepcopy(row)
        columns = [c.strip() for c in self._columns.split(",")]
        return {c: deepcopy(row.get(c)) for c in columns}

    def execute(self) -> FakeResponse:
        self._client.calls.append((self._table, self._action))
        if self._action == "insert":
            return FakeResponse(self._client.insert_rows(self._table, self._payload))
        if self._action == "update":
            return FakeResponse(self._client.update_rows(self._table, self._matching(), self._payload))
        if self._action == "delete":
            return FakeResponse(self._client.delete_rows(self._table, self._matching()))

        rows = self._matching()
        total = len(rows)
        for column, desc in reversed(self._order):
            rows = sorted(rows, key=lambda r: (r.get(column) is None, r.get(column) or ""), reverse=desc)
        if self._range is not None:
            start, end = self._range
            rows = rows[start:end + 1]
        if self._limit is not None:
            rows = rows[:self._limit]
        return FakeResponse([self._project(r) for r in rows], total if self._count else None)


class FakeRpc:
    def __init__(self, client: "FakeSupabaseClient", name: str, params: dict):
        self._client = client
        self._name = name
        self._params = params

    def execute(self) -> FakeResponse:
        if self._name != "append_request_status":
            raise api_error("42883", f"function {self._name} does not exist")

        for row in self._client.tables["requests"]:
            if row["id"] == self._params["p_request_id"]:
                row["status"] = self._params["p_status"]
                row["status_history"] = row["status_history"] + [{
                    "status": self._params["p_status"],
                    "note": self._params["p_note"],
                    "timestamp": self._params["p_timestamp"],
                }]
                row["updated_at"] = self._client.next_timestamp()
                return FakeResponse([deepcopy(row)])
        return FakeResponse([])


class FakeSupabaseClient:
    """
    In-memory Supabase client.

    Usage:
        def test_something(fake_db):
            fake_db.seed("sectors", [{"id": "s1", "name": "Dairy"}])
    """

    def __init__(self):
        self.tables: dict[str, list[dict]] = {name: [] for name in TABLES}
        self.calls: list[tuple[str, str]] = []
        self._clock = datetime(2025, 1, 1, tzinfo=timezone.utc)
        self.fail_on: dict[tuple[str, str], Exception] = {}
        # One-shot callbacks run just before the next insert into a table,
        # standing in for a concurrent writer
        self.before_insert: dict[str, Callable[[], None]] = {}

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: dict) -> FakeRpc:
        return FakeRpc(self, name, params)

    # Helpers for tests

    def seed(self, table: str, rows: list[dict]) -> list[dict]:
        """Insert rows with constraint checks."""
        return self.insert_rows(table, rows)

    def rows(self, table: str) -> list[dict]:
        return deepcopy(self.tables[table])

    def count(self, table: str) -> int:
        return len(self.tables[table])

    def writes(self) -> list[tuple[str, str]]:
        return [call for call in self.calls if call[1] != "select"]

    def next_timestamp(self) -> str:
        self._clock += timedelta(seconds=1)
        return self._clock.isoformat()

    # Storage semantics

    def _check_failure(self, table: str, action: str) -> None:
        error = self.fail_on.get((table, action))
        if error is not None:
            raise error

    def _check_foreign_keys(self, table: str, row: dict) -> None:
        for column, parent in FOREIGN_KEYS.get(table, {}).items():
            value = row.get(column)
            if value is not None and not any(p["id"] == value for p in self.tables[parent]):
                raise api_error(
                    "23503",
                    f'insert or update on table "{table}" violates foreign key constraint on "{column}"'
                )

    def _check_composite_keys(self, table: str, row: dict) -> None:
        for columns, parent, parent_columns in COMPOSITE_FOREIGN_KEYS.get(table, []):
            values = [row.get(c) for c in columns]
            if not any(
                [p.get(c) for c in parent_columns] == values for p in self.tables[parent]
            ):
                raise api_error(
                    "23503",
                    f'insert or update on table "{table}" violates foreign key constraint on ({", ".join(columns)})'
                )

    def _check_still_referenced(self, table: str, row: dict, values: dict) -> None:
        """ON UPDATE RESTRICT for composite keys whose parent columns change."""
        for child, keys in COMPOSITE_FOREIGN_KEYS.items():
            for columns, parent, parent_columns in keys:
                if parent != table or not any(c in values and values[c] != row.get(c) for c in parent_columns):
                    continue
                old = [row.get(c) for c in parent_columns]
                if any([c.get(col) for col in columns] == old for c in self.tables[child]):
                    raise api_error(
                        "23503",
                        f'update on table "{table}" violates foreign key constraint on table "{child}"'
                    )

    def _check_unique(self, table: str, row: dict, ignore_id: Optional[str] = None) -> None:
        for key in UNIQUE_KEYS.get(table, []):
            for existing in self.tables[table]:
                if existing["id"] == ignore_id:
                    continue
                if all(existing.get(c) == row.get(c) for c in key):
                    raise api_error(
                        "23505",
                        f'duplicate key value violates unique constraint on {table} ({", ".join(key)})'
                    )

    def insert_rows(self, table: str, payload) -> list[dict]:
        self._check_failure(table, "insert")
        hook = self.before_insert.pop(table, None)
        if hook is not None:
            hook()
        items = payload if isinstance(payload, list) else [payload]
        inserted = []
        for item in items:
            now = self.next_timestamp()
            row = {"id": str(uuid4()), "created_at": now, "updated_at": now, **deepcopy(item)}
            self._check_foreign_keys(table, row)
            self._check_composite_keys(table, row)
            self._check_unique(table, row)
            self.tables[table].append(row)
            inserted.append(deepcopy(row))
        return inserted

    def update_rows(self, table: str, rows: list[dict], values: dict) -> list[dict]:
        self._check_failure(table, "update")
        updated = []
        for row in rows:
            candidate = {**row, **deepcopy(values)}
            self._check_foreign_keys(table, candidate)
            self._check_composite_keys(table, candidate)
            self._check_still_referenced(table, row, values)
            self._check_unique(table, candidate, ignore_id=row["id"])
            row.update(deepcopy(values))
            row["updated_at"] = self.next_timestamp()
            updated.append(deepcopy(row))
        return updated

    def delete_rows(self, table: str, rows: list[dict]) -> list[dict]:
        self._check_failure(table, "delete")
        for row in rows:
            for child, fks in FOREIGN_KEYS.items():
                for column, parent in fks.items():
                    if parent == table and any(c.get(column) == row["id"] for c in self.tables[child]):
                        raise api_error(
                            "23503",
                            f'update or delete on table "{table}" violates foreign key constraint on table "{child}"'
                        )
        ids = {row["id"] for row in rows}
        self.tables[table] = [r for r in self.tables[table] if r["id"] not in ids]
        return [deepcopy(r) for r in rows]


# ===================
# FIXTURES
# ===================

SERVICE_SINGLETONS = {
    "services.sector_service": "_sector_service",
    "services.production_group_service": "_production_group_service",
    "services.product_service": "_product_service",
    "services.assignment_service": "_assignment_service",
    "services.dependency_guard_service": "_dependency_guard_service",
    "services.catalog_import_service": "_catalog_import_service",
    "services.request_service": "_request_service",
}


@pytest.fixture
def fake_db(monkeypatch) -> FakeSupabaseClient:
    """
    Route every service to a fresh in-memory database.

    Usage:
        def test_something(fake_db):
            sector = get_sector_service().create(SectorCreate(name="Dairy"))
            assert fake_db.count("sectors") == 1
    """
    client = FakeSupabaseClient()
    for module, singleton in SERVICE_SINGLETONS.items():
        monkeypatch.setattr(f"{module}.get_supabase_client", lambda: client)
        monkeypatch.setattr(f"{module}.{singleton}", None)
    monkeypatch.setattr("services.notification_service._notification_service", None)
    return client


@pytest.fixture
def admin_key(monkeypatch) -> str:
    """Configure the admin API key and return it."""
    from config import settings
    monkeypatch.setattr(settings, "admin_api_key", "test-admin-key")
    return "test-admin-key"


@pytest.fixture
def client(fake_db, admin_key):
    """FastAPI test client backed by the fake database."""
    from fastapi.testclient import TestClient
    from main import app
    return TestClient(app)


@pytest.fixture
def admin_headers(admin_key) -> dict:
    return {"X-Admin-Key": admin_key}


@pytest.fixture
def seeded_catalog(fake_db) -> dict:
    """
    Small catalog: Dairy (Cheese: Cheddar, Brie; Milk: Whole Milk) and
    Meat (Cheese: Brie).
    """
    from tests.factories import CatalogFactory
    return CatalogFactory.seed(fake_db)
