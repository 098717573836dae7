"""
Pytest configuration and fixtures for Meal Board tests.

FakeSupabase mimics the slice of the supabase-py fluent query builder
the store uses (select / upsert / delete with eq / gte / lte filters),
backed by an in-memory list of records.
"""

import os
import threading
from datetime import date, datetime
from typing import Any, Callable
from unittest.mock import MagicMock

import pytest

# Set test environment before importing mealboard modules
os.environ["MEALBOARD_ENV"] = "development"
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-key-not-real")

from mealboard.controller import MutationController
from mealboard.db.request_context import StaticIdentityProvider
from mealboard.engine import ReconciliationEngine
from mealboard.schedule import ScheduleCalendar
from mealboard.store import ROW_KEY_COLUMNS, ReservationStore


# ---------------------------------------------------------------------------
# In-memory Supabase stand-in
# ---------------------------------------------------------------------------


class FakeResponse:
    def __init__(self, data: list[dict], count: int | None = None):
        self.data = data
        self.count = count


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.op = "select"
        self.payload: Any = None
        self.on_conflict: str | None = None
        self.filters: list[tuple[str, str, Any]] = []

    def select(self, *columns, **kwargs):
        self.op = "select"
        return self

    def upsert(self, json, on_conflict: str | None = None, **kwargs):
        self.op = "upsert"
        self.payload = json
        self.on_conflict = on_conflict
        return self

    def delete(self, **kwargs):
        self.op = "delete"
        return self

    def eq(self, field, value):
        self.filters.append(("eq", field, value))
        return self

    def gte(self, field, value):
        self.filters.append(("gte", field, value))
        return self

    def lte(self, field, value):
        self.filters.append(("lte", field, value))
        return self

    def limit(self, n):
        return self

    def _matches(self, record: dict) -> bool:
        for op, field, value in self.filters:
            current = record.get(field)
            if op == "eq" and current != value:
                return False
            if op == "gte" and not current >= value:
                return False
            if op == "lte" and not current <= value:
                return False
        return True

    def execute(self) -> FakeResponse:
        return self.db._execute(self)


class FakeSupabase:
    """Enough of supabase.Client for ReservationStore."""

    def __init__(self):
        self.tables: dict[str, list[dict]] = {}
        self.calls: list[tuple[str, Any]] = []
        self.fail_when: Callable[[FakeQuery], bool] | None = None
        self.failure: Exception | None = None
        self._lock = threading.Lock()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rows(self, table: str = "meal_plan") -> list[dict]:
        return sorted(
            (dict(r) for r in self.tables.get(table, [])),
            key=lambda r: (r["user_name"], r["meal_date"], r["meal_type"]),
        )

    def seed(self, *records: tuple, table: str = "meal_plan") -> None:
        """Seed (user_name, meal_date, meal_type, meal_count[, owner_id]) tuples."""
        for rec in records:
            record = {
                "user_name": rec[0],
                "meal_date": rec[1],
                "meal_type": rec[2],
                "meal_count": rec[3],
            }
            if len(rec) > 4:
                record["owner_id"] = rec[4]
            self.tables.setdefault(table, []).append(record)

    def fail(self, when: Callable[[FakeQuery], bool] | None = None, error: Exception | None = None):
        """Make matching queries raise (all queries when `when` is None)."""
        import httpx

        self.fail_when = when or (lambda q: True)
        self.failure = error or httpx.ConnectError("store unreachable")

    def _execute(self, query: FakeQuery) -> FakeResponse:
        with self._lock:
            self.calls.append((query.op, query.payload if query.op == "upsert" else list(query.filters)))
            if self.fail_when is not None and self.fail_when(query):
                raise self.failure

            table = self.tables.setdefault(query.table_name, [])

            if query.op == "select":
                return FakeResponse([dict(r) for r in table if query._matches(r)], count=len(table))

            if query.op == "upsert":
                records = query.payload if isinstance(query.payload, list) else [query.payload]
                keys = (query.on_conflict or ROW_KEY_COLUMNS).split(",")
                for record in records:
                    for i, existing in enumerate(table):
                        if all(existing.get(k) == record.get(k) for k in keys):
                            table[i] = dict(record)
                            break
                    else:
                        table.append(dict(record))
                return FakeResponse([dict(r) for r in records])

            if query.op == "delete":
                deleted = [r for r in table if query._matches(r)]
                table[:] = [r for r in table if not query._matches(r)]
                return FakeResponse(deleted)

            raise AssertionError(f"unexpected op {query.op}")


class Clock:
    """Settable clock for cut-off tests."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

# Monday of the week most tests work in
WEEK_START = date(2024, 6, 3)


@pytest.fixture
def mock_supabase():
    """Mock Supabase client for unit tests."""
    mock_client = MagicMock()

    mock_table = MagicMock()
    mock_table.select.return_value = mock_table
    mock_table.upsert.return_value = mock_table
    mock_table.delete.return_value = mock_table
    mock_table.eq.return_value = mock_table
    mock_table.gte.return_value = mock_table
    mock_table.lte.return_value = mock_table
    mock_table.execute.return_value = MagicMock(data=[])

    mock_client.table.return_value = mock_table

    return mock_client


@pytest.fixture
def fake_db() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def store(fake_db) -> ReservationStore:
    return ReservationStore(fake_db)


@pytest.fixture
def calendar() -> ScheduleCalendar:
    return ScheduleCalendar()


@pytest.fixture
def clock() -> Clock:
    # Saturday before WEEK_START: every cell of that week is still open
    return Clock(datetime(2024, 6, 1, 12, 0))


@pytest.fixture
def engine(store, calendar) -> ReconciliationEngine:
    return ReconciliationEngine(store, calendar)


@pytest.fixture
def identity() -> StaticIdentityProvider:
    """Open-edit mode by default; set .identity to enforce ownership."""
    return StaticIdentityProvider(None)


@pytest.fixture
def controller(engine, identity, clock) -> MutationController:
    return MutationController(engine, identity=identity, clock=clock)
