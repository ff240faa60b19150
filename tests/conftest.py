"""
Pytest configuration and fixtures for the application hub tests.

Provides:
- FakeSupabase: in-memory stand-in for the supabase-py client (tables,
  unique constraints, RPCs, auth.get_user)
- FastAPI app with the Supabase dependencies overridden
- AsyncClient for exercising the HTTP routes
"""

import copy
import itertools
import threading
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from app.database.supabase_client import (
    get_supabase, get_service_supabase, get_optional_supabase
)
from app.modules.auth.service import clear_auth_cache
from app.main import app
from tests.factories import make_app, make_profile

# Column sets that PostgREST would reject as duplicates
UNIQUE_KEYS = {
    "groups": [("name",)],
    "group_members": [("group_id", "user_id")],
    "permissions": [("user_id", "app_id")],
    "group_permissions": [("group_id", "app_id")],
    "user_settings": [("user_id", "key")],
    "profiles": [("id",)],
}


class FakeAPIError(Exception):
    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.action = "select"
        self.payload: Any = None
        self.on_conflict: Optional[str] = None
        self.filters: List[Callable[[Dict[str, Any]], bool]] = []
        self.order_by: Optional[tuple] = None
        self.row_limit: Optional[int] = None

    def select(self, columns: str = "*"):
        self.action = "select"
        return self

    def insert(self, payload):
        self.action, self.payload = "insert", payload
        return self

    def upsert(self, payload, on_conflict: Optional[str] = None):
        self.action, self.payload, self.on_conflict = "upsert", payload, on_conflict
        return self

    def update(self, payload):
        self.action, self.payload = "update", payload
        return self

    def delete(self):
        self.action = "delete"
        return self

    def eq(self, column: str, value: Any):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column: str, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def order(self, column: str, desc: bool = False):
        self.order_by = (column, desc)
        return self

    def limit(self, count: int):
        self.row_limit = count
        return self

    def execute(self):
        return SimpleNamespace(data=self.db._execute(self))


class FakeRpc:
    def __init__(self, db: "FakeSupabase", name: str, params: Dict[str, Any]):
        self.db = db
        self.name = name
        self.params = params

    def execute(self):
        self.db.rpc_calls.append((self.name, dict(self.params)))
        handler = self.db.rpc_handlers.get(self.name)
        if handler is None:
            raise FakeAPIError(f"Could not find the function {self.name}", code="PGRST202")
        return SimpleNamespace(data=handler(self.params))


class FakeAuth:
    def __init__(self):
        self.users: Dict[str, SimpleNamespace] = {}
        self.sign_in_error: Optional[str] = None
        self.sign_up_error: Optional[str] = None
        self.signed_out = 0

    def add_token(self, token: str, user_id: str, email: str, full_name: Optional[str] = None):
        metadata = {"full_name": full_name} if full_name else {}
        self.users[token] = SimpleNamespace(id=user_id, email=email, user_metadata=metadata)

    def get_user(self, jwt: str):
        user = self.users.get(jwt)
        if user is None:
            raise FakeAPIError("invalid JWT")
        return SimpleNamespace(user=user)

    def sign_in_with_password(self, credentials):
        if self.sign_in_error:
            raise FakeAPIError(self.sign_in_error)
        token = next((t for t, u in self.users.items() if u.email == credentials["email"]), None)
        if token is None:
            return SimpleNamespace(user=None, session=None)
        return SimpleNamespace(user=self.users[token], session=SimpleNamespace(access_token=token))

    def sign_up(self, payload):
        if self.sign_up_error:
            raise FakeAPIError(self.sign_up_error)
        user_id = f"user-{len(self.users) + 1}"
        self.add_token(f"token-{user_id}", user_id, payload["email"], payload["options"]["data"].get("full_name"))
        return SimpleNamespace(user=self.users[f"token-{user_id}"])

    def sign_out(self):
        self.signed_out += 1
        return None


class FakeSupabase:
    """Just enough of supabase.Client for the services under test."""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.rpc_handlers: Dict[str, Callable[[Dict[str, Any]], Any]] = {}
        self.rpc_calls: List[tuple] = []
        self.failing_tables: set = set()
        self.auth = FakeAuth()
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: Optional[Dict[str, Any]] = None) -> FakeRpc:
        return FakeRpc(self, name, params or {})

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.setdefault(table, [])

    def seed(self, table: str, *rows: Dict[str, Any]) -> List[Dict[str, Any]]:
        with self._lock:
            return [self._insert_row(table, row) for row in rows]

    def _insert_row(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        row = dict(row)
        row.setdefault("id", f"{table}-{next(self._ids)}")
        row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        for key in UNIQUE_KEYS.get(table, []):
            if any(all(r.get(c) == row.get(c) for c in key) for r in self.rows(table)):
                raise FakeAPIError(
                    f'duplicate key value violates unique constraint "{table}_{"_".join(key)}_key"',
                    code="23505",
                )
        self.rows(table).append(row)
        return row

    def _matches(self, query: FakeQuery) -> List[Dict[str, Any]]:
        return [r for r in self.rows(query.table) if all(f(r) for f in query.filters)]

    def _execute(self, query: FakeQuery) -> List[Dict[str, Any]]:
        if query.table in self.failing_tables:
            raise FakeAPIError(f"relation {query.table} is unavailable")
        with self._lock:
            if query.action == "select":
                rows = self._matches(query)
                if query.order_by:
                    column, desc = query.order_by
                    rows = sorted(rows, key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
                if query.row_limit is not None:
                    rows = rows[:query.row_limit]
                return copy.deepcopy(rows)

            if query.action == "insert":
                payload = query.payload if isinstance(query.payload, list) else [query.payload]
                return copy.deepcopy([self._insert_row(query.table, row) for row in payload])

            if query.action == "upsert":
                payload = query.payload if isinstance(query.payload, list) else [query.payload]
                conflict = [c.strip() for c in (query.on_conflict or "id").split(",")]
                written = []
                for row in payload:
                    existing = next(
                        (r for r in self.rows(query.table) if all(r.get(c) == row.get(c) for c in conflict)),
                        None,
                    )
                    if existing is not None:
                        existing.update(row)
                        written.append(existing)
                    else:
                        written.append(self._insert_row(query.table, row))
                return copy.deepcopy(written)

            if query.action == "update":
                rows = self._matches(query)
                for row in rows:
                    row.update(query.payload)
                return copy.deepcopy(rows)

            if query.action == "delete":
                rows = self._matches(query)
                doomed = {id(r) for r in rows}
                self.tables[query.table] = [r for r in self.rows(query.table) if id(r) not in doomed]
                return copy.deepcopy(rows)

        raise AssertionError(f"unsupported action {query.action}")


@pytest.fixture
def fake_db() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def hub_db(fake_db: FakeSupabase) -> FakeSupabase:
    """Two admins, two users, a small catalog and a Sales group.

    Tokens: admin-token (admin-1), user-token (alice), inactive-token (mallory).
    """
    fake_db.seed(
        "profiles",
        make_profile("admin-1", role="admin"),
        make_profile("admin-2", role="admin"),
        make_profile("alice"),
        make_profile("bob"),
        make_profile("mallory", is_active=False),
    )
    fake_db.seed(
        "applications",
        make_app("crm", display_order=1),
        make_app("hr", display_order=2),
        make_app("wiki", display_order=3, is_public=True),
        make_app("legacy", display_order=4, is_active=False),
    )
    fake_db.seed("groups", {"id": "sales", "name": "Sales"})
    fake_db.auth.add_token("admin-token", "admin-1", "admin-1@example.com")
    fake_db.auth.add_token("user-token", "alice", "alice@example.com")
    fake_db.auth.add_token("inactive-token", "mallory", "mallory@example.com")
    return fake_db


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    return {"Authorization": "Bearer admin-token"}


@pytest.fixture
def user_headers() -> Dict[str, str]:
    return {"Authorization": "Bearer user-token"}


@pytest_asyncio.fixture
async def async_client(hub_db: FakeSupabase):
    """AsyncClient against the app with every Supabase dependency pointing at hub_db."""
    clear_auth_cache()
    app.state.limiter.reset()
    app.dependency_overrides[get_supabase] = lambda: hub_db
    app.dependency_overrides[get_service_supabase] = lambda: hub_db
    app.dependency_overrides[get_optional_supabase] = lambda: hub_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
    clear_auth_cache()


@pytest_asyncio.fixture
async def unconfigured_client():
    """AsyncClient against the app as it runs without Supabase credentials."""
    app.state.limiter.reset()
    app.dependency_overrides[get_optional_supabase] = lambda: None

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
