import datetime
import itertools
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

from core.config import settings
from core.supabase_client import reset_supabase_client

TEST_SUPABASE_URL = "https://project.supabase.test"
STORAGE_HOST = "project.supabase.test"


class FakeQuery:
    """Mimics the postgrest builder chain: table().insert()/select().order().execute()."""

    def __init__(self, table: "FakeTable", op: str, payload: Optional[Dict[str, Any]] = None):
        self._table = table
        self._op = op
        self._payload = payload
        self._order: Optional[tuple] = None

    def order(self, column: str, desc: bool = False):
        self._order = (column, desc)
        return self

    def execute(self):
        if self._table.error is not None:
            raise self._table.error
        if self._op == "insert":
            return SimpleNamespace(data=[self._table.add(self._payload)])
        rows = list(self._table.rows)
        if self._order:
            column, desc = self._order
            rows.sort(key=lambda r: r[column], reverse=desc)
        return SimpleNamespace(data=rows)


class FakeTable:
    def __init__(self):
        self.rows: List[Dict[str, Any]] = []
        self.error: Optional[Exception] = None
        self._ids = itertools.count(1)
        self._clock = datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)

    def add(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self._clock += datetime.timedelta(seconds=1)
        row = {"id": next(self._ids), "file_size": None, **payload, "created_at": self._clock.isoformat()}
        self.rows.append(row)
        return row

    def insert(self, payload: Dict[str, Any]) -> FakeQuery:
        return FakeQuery(self, "insert", dict(payload))

    def select(self, columns: str = "*") -> FakeQuery:
        return FakeQuery(self, "select")


class FakeBucket:
    def __init__(self, storage: "FakeStorage", name: str):
        self._storage = storage
        self.name = name

    def create_signed_upload_url(self, path: str) -> Dict[str, str]:
        if self._storage.error is not None:
            raise self._storage.error
        token = f"tok{len(self._storage.issued) + 1}"
        self._storage.issued.append(path)
        return {
            "signed_url": f"https://{STORAGE_HOST}/storage/v1/object/upload/sign/{self.name}/{path}?token={token}",
            "token": token,
            "path": path,
        }

    def upload(self, path: str, file: bytes, file_options: Optional[Dict[str, str]] = None):
        if self._storage.error is not None:
            raise self._storage.error
        self._storage.objects[path] = bytes(file)
        return SimpleNamespace(path=path, full_path=f"{self.name}/{path}")


class FakeStorage:
    def __init__(self):
        self.issued: List[str] = []
        self.objects: Dict[str, bytes] = {}
        self.error: Optional[Exception] = None

    def from_(self, bucket: str) -> FakeBucket:
        return FakeBucket(self, bucket)


class FakeSupabase:
    """In-memory stand-in for the Supabase client: one files table plus storage."""

    def __init__(self):
        self.files = FakeTable()
        self.storage = FakeStorage()
        self.tables_requested: List[str] = []

    def table(self, name: str) -> FakeTable:
        self.tables_requested.append(name)
        return self.files


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture(autouse=True)
def supabase_settings(monkeypatch):
    """Known Supabase settings for every test; the cached client is dropped afterwards."""
    monkeypatch.setattr(settings, "SUPABASE_URL", TEST_SUPABASE_URL)
    monkeypatch.setattr(settings, "SUPABASE_SERVICE_KEY", "service-role-key")
    monkeypatch.setattr(settings, "UPLOAD_STRATEGY", "signed")
    monkeypatch.setattr(settings, "DEBUG", False)
    yield settings
    reset_supabase_client()
