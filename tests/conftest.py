"""
Pytest configuration and fixtures for the Verão Fitness API tests.

The app runs against an in-memory stand-in for the Supabase gateway and a
dict-backed Redis, both injected through the application context, so no
backend is needed.
"""

import fnmatch
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Generator, List, Optional

import pytest
from fastapi.testclient import TestClient

from main import app
from verao_fitness.core.config import settings
from verao_fitness.core.context import AppContext
from verao_fitness.core.errors import (
    AuthenticationError,
    RemoteReadError,
    RemoteWriteError,
    UploadError,
)


class FakeRedis:
    """Subset of the redis-py API backed by dicts; TTLs are recorded, not enforced."""

    def __init__(self):
        self.values: Dict[str, Any] = {}
        self.ttls: Dict[str, int] = {}

    @staticmethod
    def _encode(value: Any) -> bytes:
        return value if isinstance(value, bytes) else str(value).encode()

    def get(self, key):
        value = self.values.get(key)
        return value if isinstance(value, bytes) else None

    def setex(self, key, ttl, value):
        self.values[key] = self._encode(value)
        self.ttls[key] = ttl

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.values.pop(key, None) is not None:
                removed += 1
        return removed

    def lpush(self, key, value):
        self.values.setdefault(key, []).insert(0, self._encode(value))

    def ltrim(self, key, start, end):
        if key in self.values:
            self.values[key] = self.values[key][start : end + 1]

    def lrange(self, key, start, end):
        items = self.values.get(key, [])
        return items[start:] if end == -1 else items[start : end + 1]

    def sadd(self, key, member):
        self.values.setdefault(key, set()).add(self._encode(member))

    def srem(self, key, member):
        self.values.get(key, set()).discard(self._encode(member))

    def smembers(self, key):
        return set(self.values.get(key, set()))

    def expire(self, key, ttl):
        self.ttls[key] = ttl

    def scan_iter(self, match="*"):
        return iter([key for key in self.values if fnmatch.fnmatchcase(key, match)])

    def ping(self):
        return True


class FakeGateway:
    """In-memory stand-in for SupabaseGateway."""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {"competitors": [], "proofs": []}
        self.rpc_results: Dict[str, List[Dict[str, Any]]] = {}
        self.rpc_calls: List[tuple] = []
        self.writes: List[tuple] = []
        self.reads: List[str] = []
        self.uploads: Dict[str, bytes] = {}
        self.fail_reads: Dict[str, str] = {}
        self.fail_writes: Optional[str] = None
        self.fail_uploads: Optional[str] = None
        self.fail_removals: Optional[str] = None
        self.removed: List[str] = []
        self.realtime_connected = False
        self.users: Dict[str, Dict[str, Any]] = {}
        self.tokens: Dict[str, Dict[str, Any]] = {}
        self.signed_out: List[str] = []
        self.channels: Dict[int, tuple] = {}
        self._next_channel = 0

    # helpers -----------------------------------------------------------

    def add_user(self, email: str, password: str, name: str) -> Dict[str, Any]:
        user = {
            "id": str(uuid.uuid4()),
            "email": email,
            "user_metadata": {"first_name": name},
        }
        self.users[email] = {"password": password, "user": user}
        token = f"token-{user['id']}"
        self.tokens[token] = user
        self.tables["competitors"].append({"id": user["id"], "name": name, "score": 0})
        return {**user, "token": token}

    def add_proof(self, competitor_id: Optional[str], event_type: str, points: int, created_at: str, **extra):
        row = {
            "id": str(uuid.uuid4()),
            "created_at": created_at,
            "competitor_id": competitor_id,
            "event_type": event_type,
            "points": points,
            "photo_url": None,
            **extra,
        }
        self.tables["proofs"].append(row)
        return row

    def emit(self, table: str, event: str = "INSERT") -> None:
        for channel_table, callback in list(self.channels.values()):
            if channel_table == table:
                callback({"data": {"type": event, "table": table}, "ids": []})

    def _competitor_ref(self, competitor_id):
        for row in self.tables["competitors"]:
            if row["id"] == competitor_id:
                return {"id": row["id"], "name": row["name"]}
        return None

    # tables ------------------------------------------------------------

    def query(self, table, columns="*", *, filters=None, order=None, desc=False, range_=None, limit=None):
        self.reads.append(table)
        if table in self.fail_reads:
            raise RemoteReadError(detail=self.fail_reads[table])

        ops: Dict[str, Callable[[Any, Any], bool]] = {
            "eq": lambda a, b: a == b,
            "gte": lambda a, b: a is not None and a >= b,
            "lte": lambda a, b: a is not None and a <= b,
        }
        rows = [dict(row) for row in self.tables.get(table, [])]
        for column, operator, value in filters or []:
            rows = [row for row in rows if ops[operator](row.get(column), value)]
        if order:
            rows.sort(key=lambda row: row.get(order) or 0, reverse=desc)
        if range_ is not None:
            rows = rows[range_[0] : range_[1] + 1]
        if limit is not None:
            rows = rows[:limit]
        if "competitors(" in columns:
            for row in rows:
                row["competitors"] = self._competitor_ref(row.get("competitor_id"))
        return rows

    def insert(self, table, record):
        self.writes.append(("insert", table, record))
        if self.fail_writes:
            raise RemoteWriteError(detail=self.fail_writes)
        row = {"id": str(uuid.uuid4()), **record}
        if table == "proofs":
            row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        if table == "competitors":
            row.setdefault("score", 0)
        self.tables[table].append(row)
        return [dict(row)]

    def update(self, table, record_id, patch):
        self.writes.append(("update", table, record_id, patch))
        if self.fail_writes:
            raise RemoteWriteError(detail=self.fail_writes)
        for row in self.tables[table]:
            if row["id"] == record_id:
                row.update(patch)
                return [dict(row)]
        return []

    def delete(self, table, record_id):
        self.writes.append(("delete", table, record_id))
        if self.fail_writes:
            raise RemoteWriteError(detail=self.fail_writes)
        removed = [row for row in self.tables[table] if row["id"] == record_id]
        self.tables[table] = [row for row in self.tables[table] if row["id"] != record_id]
        return removed

    def rpc(self, function, params=None):
        self.rpc_calls.append((function, params or {}))
        if function in self.fail_reads:
            raise RemoteReadError(detail=self.fail_reads[function])
        return [dict(row) for row in self.rpc_results.get(function, [])]

    # storage -----------------------------------------------------------

    def upload_file(self, bucket, name, data, content_type, upsert=False):
        if self.fail_uploads:
            raise UploadError(detail=self.fail_uploads)
        self.uploads[f"{bucket}/{name}"] = data
        return name

    def get_public_url(self, bucket, path):
        return f"https://storage.test/{bucket}/{path}"

    def remove_file(self, bucket, path):
        if self.fail_removals:
            raise UploadError(detail=self.fail_removals)
        self.uploads.pop(f"{bucket}/{path}", None)
        self.removed.append(f"{bucket}/{path}")

    # realtime ----------------------------------------------------------

    async def connect_realtime(self):
        self.realtime_connected = True

    async def disconnect_realtime(self):
        self.realtime_connected = False

    async def subscribe(self, table, event_mask, callback):
        self._next_channel += 1
        self.channels[self._next_channel] = (table, callback)
        return self._next_channel

    async def unsubscribe(self, handle):
        self.channels.pop(handle, None)

    # auth --------------------------------------------------------------

    def sign_up(self, email, password, metadata):
        if email in self.users:
            raise AuthenticationError(
                "User already registered", detail="User already registered"
            )
        self.add_user(email, password, metadata.get("first_name", ""))

    def sign_in_with_password(self, email, password):
        account = self.users.get(email)
        if account is None or account["password"] != password:
            raise AuthenticationError(
                "Invalid login credentials", detail="Invalid login credentials"
            )
        user = account["user"]
        token = f"session-{uuid.uuid4()}"
        self.tokens[token] = user
        return {
            "access_token": token,
            "refresh_token": "refresh",
            "expires_in": 3600,
            "user": user,
        }

    def sign_out(self, access_token):
        self.signed_out.append(access_token)
        self.tokens.pop(access_token, None)

    def get_current_user(self, access_token):
        return self.tokens.get(access_token)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def redis_client() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def context(gateway, redis_client) -> AppContext:
    return AppContext.build(gateway, redis_client)


@pytest.fixture
def client(context) -> Generator[TestClient, None, None]:
    """Test client for the FastAPI app running on the fake context."""
    app.state.context = context
    with TestClient(app, base_url="http://test") as c:
        yield c
    app.state.context = None


@pytest.fixture
def api_base() -> str:
    """Base path for API v1 endpoints."""
    return "/api/v1"


@pytest.fixture
def user(gateway) -> dict:
    return gateway.add_user("ana@example.com", "secret123", "Ana")


@pytest.fixture
def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {user['token']}"}


@pytest.fixture
def admin_headers(gateway, monkeypatch) -> dict:
    monkeypatch.setattr(settings, "ADMIN_EMAILS", "admin@example.com")
    admin = gateway.add_user("admin@example.com", "secret123", "Bia")
    return {"Authorization": f"Bearer {admin['token']}"}
