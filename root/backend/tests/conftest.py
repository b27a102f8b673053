# ABOUTME: Global pytest configuration and shared fixtures for all tests
# ABOUTME: Provides env defaults, an in-memory Supabase query fake and sample project data

import copy
import os
import sys
import uuid
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Dummy configuration before any backend import reads the environment.
os.environ.setdefault("SUPABASE_URL", "https://example.supabase.co")
os.environ.setdefault(
    "SUPABASE_ANON_KEY",
    "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9.e30.signature",
)
os.environ.setdefault("SUPABASE_KEY", os.environ["SUPABASE_ANON_KEY"])
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test")
os.environ.setdefault("OPENAI_API_KEY", "sk-test")

# Add root directory to path to allow imports from backend
# root/backend/tests/conftest.py -> root
root_dir = str(Path(__file__).resolve().parents[2])
if root_dir not in sys.path:
    sys.path.append(root_dir)


class FakeResult:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Chainable stand-in for a supabase-py table query, backed by FakeSupabase.tables."""

    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.op = "select"
        self.payload = None
        self.filters = []
        self.filter_args = []
        self.order_by = None
        self.limit_n = None
        self.on_conflict = None
        self.ignore_duplicates = False
        self.negate_next = False

    def select(self, *args, **kwargs):
        return self

    def insert(self, payload):
        self.op, self.payload = "insert", payload
        return self

    def update(self, payload):
        self.op, self.payload = "update", payload
        return self

    def upsert(self, payload, on_conflict=None, ignore_duplicates=False, **kwargs):
        self.op, self.payload, self.on_conflict = "upsert", payload, on_conflict
        self.ignore_duplicates = ignore_duplicates
        return self

    def delete(self):
        self.op = "delete"
        return self

    @property
    def not_(self):
        self.negate_next = True
        return self

    def _filter(self, name, column, value, predicate):
        if self.negate_next:
            self.negate_next = False
            name, positive = f"not.{name}", predicate
            predicate = lambda r: not positive(r)
        self.filter_args.append((name, column, value))
        self.filters.append(predicate)
        return self

    def eq(self, column, value):
        return self._filter("eq", column, value, lambda r: r.get(column) == value)

    def neq(self, column, value):
        return self._filter("neq", column, value, lambda r: r.get(column) != value)

    def gt(self, column, value):
        return self._filter("gt", column, value, lambda r: r.get(column) is not None and r.get(column) > value)

    def in_(self, column, values):
        return self._filter("in", column, values, lambda r: r.get(column) in values)

    def is_(self, column, value):
        if value in ("null", None):
            return self._filter("is", column, value, lambda r: r.get(column) is None)
        return self._filter("is", column, value, lambda r: r.get(column) == value)

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, n):
        self.limit_n = n
        return self

    def execute(self):
        for hook in list(self.db.hooks):
            hook(self)
        if self.table in self.db.failing_tables:
            raise Exception(f"simulated failure on {self.table}")

        self.db.calls.append((self.table, self.op, copy.deepcopy(self.payload), list(self.filter_args)))
        rows = self.db.tables.setdefault(self.table, [])

        if self.op == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for item in items:
                row = copy.deepcopy(item)
                row.setdefault("id", str(uuid.uuid4()))
                rows.append(row)
                inserted.append(copy.deepcopy(row))
            return FakeResult(inserted)

        if self.op == "upsert":
            key = self.on_conflict or "id"
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            out = []
            for item in items:
                existing = next((r for r in rows if r.get(key) == item.get(key)), None)
                if existing is not None and self.ignore_duplicates:
                    continue
                if existing is not None:
                    existing.update(copy.deepcopy(item))
                    out.append(copy.deepcopy(existing))
                else:
                    row = copy.deepcopy(item)
                    row.setdefault("id", str(uuid.uuid4()))
                    rows.append(row)
                    out.append(copy.deepcopy(row))
            return FakeResult(out)

        matched = [r for r in rows if all(f(r) for f in self.filters)]

        if self.op == "update":
            for row in matched:
                row.update(copy.deepcopy(self.payload))
            return FakeResult([copy.deepcopy(r) for r in matched])

        if self.op == "delete":
            self.db.tables[self.table] = [r for r in rows if r not in matched]
            return FakeResult([copy.deepcopy(r) for r in matched])

        result = [copy.deepcopy(r) for r in matched]
        if self.order_by:
            column, desc = self.order_by
            result.sort(key=lambda r: (r.get(column) is None, r.get(column) or 0), reverse=desc)
        if self.limit_n is not None:
            result = result[:self.limit_n]
        return FakeResult(result)


class FakeSupabase:
    """In-memory Supabase client exposing table() queries and a MagicMock auth."""

    def __init__(self, tables=None):
        self.tables = {name: [dict(r) for r in rows] for name, rows in (tables or {}).items()}
        self.calls = []
        self.hooks = []
        self.failing_tables = set()
        self.auth = MagicMock()

    def table(self, name):
        return FakeQuery(self, name)

    def rows(self, name):
        return self.tables.get(name, [])


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def sample_project_data():
    """Questionnaire answers for a small bakery."""
    return {
        "name": "Crumb & Co",
        "business_type": "artisan bakery",
        "target_audience": "young professionals",
        "goals": "double weekend sales",
        "budget": "$2,000",
        "challenges": "low brand awareness",
        "description": "Sourdough and pastries in a neighbourhood storefront",
    }


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "api: mark test as an API test"
    )
    config.addinivalue_line(
        "markers", "concurrency: mark test as testing concurrent behavior"
    )
