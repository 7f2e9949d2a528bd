"""
Shared fixtures for the Social Scheduler test suite.

Provides an in-memory stand-in for the Supabase query builder, a signed-in
test user and a TestClient with the database and auth dependencies
overridden, so no test reaches Supabase or any platform API.
"""

import base64
import copy
import fnmatch
import os
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

# Settings are cached on first use; set them before importing the app.
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ["ENCRYPTION_KEY"] = base64.urlsafe_b64encode(b"0" * 32).decode()
os.environ["AUTO_PUBLISH_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient

from social_scheduler.dependencies.auth import get_current_user
from social_scheduler.main import app
from social_scheduler.utils.database import get_database


# ---------------------------------------------------------------------------
# In-memory Supabase
# ---------------------------------------------------------------------------

class FakeQuery:
    """Chainable subset of the postgrest query builder used by the app."""

    def __init__(self, store, table_name):
        self.store = store
        self.table_name = table_name
        self.action = "select"
        self.columns = "*"
        self.payload = None
        self.on_conflict = None
        self.filters = []
        self.orders = []
        self.limit_count = None
        self.offset = 0

    # actions
    def select(self, columns="*"):
        self.action, self.columns = "select", columns
        return self

    def insert(self, payload):
        self.action, self.payload = "insert", payload
        return self

    def update(self, payload):
        self.action, self.payload = "update", payload
        return self

    def upsert(self, payload, on_conflict=None):
        self.action, self.payload, self.on_conflict = "upsert", payload, on_conflict
        return self

    def delete(self):
        self.action = "delete"
        return self

    # filters
    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self.filters.append(lambda row: row.get(column) != value)
        return self

    def gte(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row.get(column) >= value)
        return self

    def lte(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row.get(column) <= value)
        return self

    def like(self, column, pattern):
        glob = pattern.replace("%", "*")
        self.filters.append(lambda row: fnmatch.fnmatchcase(str(row.get(column, "")), glob))
        return self

    def order(self, column, desc=False):
        self.orders.append((column, desc))
        return self

    def limit(self, count):
        self.limit_count = count
        return self

    def range(self, start, end):
        self.offset = start
        self.limit_count = end - start + 1
        return self

    # execution
    def _matches(self, row):
        return all(f(row) for f in self.filters)

    def _project(self, row):
        if self.columns.strip() == "*":
            return copy.deepcopy(row)
        names = [c.strip() for c in self.columns.split(",")]
        return {name: copy.deepcopy(row.get(name)) for name in names}

    def execute(self):
        rows = self.store.tables.setdefault(self.table_name, [])
        self.store.calls.append((self.table_name, self.action))

        if self.action == "insert":
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            data = [self.store.new_row(self.table_name, item) for item in payload]
            rows.extend(data)
            return SimpleNamespace(data=copy.deepcopy(data))

        if self.action == "upsert":
            keys = [k.strip() for k in (self.on_conflict or "id").split(",")]
            existing = next(
                (row for row in rows if all(row.get(k) == self.payload.get(k) for k in keys)),
                None
            )
            if existing is not None:
                existing.update(copy.deepcopy(self.payload))
                return SimpleNamespace(data=[copy.deepcopy(existing)])
            row = self.store.new_row(self.table_name, self.payload)
            rows.append(row)
            return SimpleNamespace(data=[copy.deepcopy(row)])

        matched = [row for row in rows if self._matches(row)]

        if self.action == "update":
            for row in matched:
                row.update(copy.deepcopy(self.payload))
            return SimpleNamespace(data=copy.deepcopy(matched))

        if self.action == "delete":
            self.store.tables[self.table_name] = [row for row in rows if not self._matches(row)]
            return SimpleNamespace(data=copy.deepcopy(matched))

        for column, desc in reversed(self.orders):
            matched.sort(key=lambda row: (row.get(column) is None, row.get(column) or ""), reverse=desc)
        if self.offset:
            matched = matched[self.offset:]
        if self.limit_count is not None:
            matched = matched[:self.limit_count]
        return SimpleNamespace(data=[self._project(row) for row in matched])


class FakeSupabase:
    """Holds table rows in dicts; `auth` is a MagicMock for tests to configure."""

    def __init__(self):
        self.tables = {}
        self.calls = []
        self.auth = MagicMock()

    def table(self, name):
        return FakeQuery(self, name)

    def new_row(self, table_name, payload):
        now = datetime.now(timezone.utc).isoformat()
        row = {"id": str(uuid.uuid4()), "created_at": now}
        if table_name != "oauth_states":
            row["updated_at"] = now
        row.update(copy.deepcopy(payload))
        return row

    def seed(self, table_name, **values):
        row = self.new_row(table_name, values)
        self.tables.setdefault(table_name, []).append(row)
        return row

    def count_calls(self, table_name, action):
        return sum(1 for call in self.calls if call == (table_name, action))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_db():
    return FakeSupabase()


@pytest.fixture
def user():
    return {"id": "user-1", "email": "ada@example.com", "email_confirmed": True}


@pytest.fixture
def make_post(fake_db, user):
    """Insert a post row for the test user and return it."""
    def _make_post(**overrides):
        values = {
            "user_id": user["id"],
            "date": "2026-10-19",
            "time": "09:00",
            "timezone": "UTC",
            "platform": "twitter",
            "content": "Hello world",
            "media_urls": [],
            "status": "scheduled",
            "auto_publish": False,
        }
        values.update(overrides)
        return fake_db.seed("posts", **values)
    return _make_post


@pytest.fixture
def anon_client(fake_db):
    """Client with the database overridden but real bearer-token auth."""
    app.dependency_overrides[get_database] = lambda: fake_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def client(fake_db, user):
    """Client signed in as the test user."""
    app.dependency_overrides[get_database] = lambda: fake_db
    app.dependency_overrides[get_current_user] = lambda: user
    yield TestClient(app)
    app.dependency_overrides.clear()
