"""
Shared fixtures: an in-memory stand-in for the Supabase client, a fake model
service, and a TestClient wired to both through dependency overrides.
"""

import itertools
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError

from api.dependencies import get_auth_service, get_database, get_generation_service
from api.main import app
from config.settings import ACCESS_TOKEN_COOKIE
from schemas.records import CharacterAnalysis, GeneratedStory
from services.auth import AuthSession
from services.model_output import ModelOutputError


# Tokens the fake auth and fake row-level security understand
TOKENS = {
    "token-alice": "alice",
    "token-bob": "bob",
}

OWNER_COLUMNS = {
    "characters": "owner_id",
    "stories": "owner_id",
    "profiles": "id",
}


def api_error(message: str = "boom") -> APIError:
    return APIError({"message": message, "code": "XX000", "hint": None, "details": None})


class FakeResult:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Chainable query builder over a FakeSupabase table."""

    def __init__(self, client: "FakeSupabase", table: str):
        self.client = client
        self.table = table
        self.op = None
        self.payload = None
        self.columns = "*"
        self.filters = []
        self.order_by = None
        self.max_rows = None

    def select(self, columns: str = "*"):
        self.op, self.columns = "select", columns
        return self

    def insert(self, row: dict):
        self.op, self.payload = "insert", row
        return self

    def upsert(self, row: dict, on_conflict: str = "id"):
        self.op, self.payload = "upsert", row
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column: str, value):
        self.filters.append(("eq", column, value))
        return self

    def in_(self, column: str, values):
        self.filters.append(("in", column, list(values)))
        return self

    def order(self, column: str, desc: bool = False):
        self.order_by = (column, desc)
        return self

    def limit(self, count: int):
        self.max_rows = count
        return self

    def _matches(self, row: dict) -> bool:
        for kind, column, value in self.filters:
            if kind == "eq" and row.get(column) != value:
                return False
            if kind == "in" and row.get(column) not in value:
                return False
        return self.client.visible(self.table, row)

    def _project(self, row: dict) -> dict:
        if self.columns.strip() == "*":
            return dict(row)
        names = [c.strip() for c in self.columns.split(",")]
        return {name: row.get(name) for name in names}

    def execute(self) -> FakeResult:
        self.client.calls.append((self.table, self.op, self.payload, list(self.filters)))
        error = self.client.failures.get((self.table, self.op))
        if error is not None:
            raise error

        rows = self.client.tables.setdefault(self.table, [])

        if self.op == "select":
            found = [r for r in rows if self._matches(r)]
            if self.order_by:
                column, desc = self.order_by
                found.sort(key=lambda r: r.get(column) or "", reverse=desc)
            if self.max_rows is not None:
                found = found[: self.max_rows]
            return FakeResult([self._project(r) for r in found])

        if self.op == "insert":
            row = dict(self.payload)
            row.setdefault("id", f"{self.table}-{next(self.client.ids)}")
            rows.append(row)
            return FakeResult([dict(row)])

        if self.op == "upsert":
            row = dict(self.payload)
            for existing in rows:
                if existing.get("id") == row.get("id"):
                    existing.update(row)
                    return FakeResult([dict(existing)])
            rows.append(row)
            return FakeResult([dict(row)])

        if self.op == "delete":
            removed = [r for r in rows if self._matches(r)]
            self.client.tables[self.table] = [r for r in rows if r not in removed]
            return FakeResult(removed)

        raise AssertionError(f"unsupported op {self.op!r}")


class FakeBucket:
    def __init__(self, storage: "FakeStorage", name: str):
        self.storage = storage
        self.name = name

    def upload(self, path: str, file: bytes, file_options: Optional[dict] = None):
        if self.storage.error is not None:
            raise self.storage.error
        self.storage.uploads.append((self.name, path, file, file_options or {}))
        return {"Key": f"{self.name}/{path}"}

    def get_public_url(self, path: str) -> str:
        return f"https://cdn.test/storage/v1/object/public/{self.name}/{path}"


class FakeStorage:
    def __init__(self):
        self.uploads = []
        self.error: Optional[Exception] = None

    def from_(self, bucket: str) -> FakeBucket:
        return FakeBucket(self, bucket)


class FakeSupabase:
    """
    In-memory Supabase client.

    Scoped copies share tables, call log and failures; a scoped copy only sees
    rows owned by its user, like a token-scoped client under row-level security.
    """

    def __init__(self, owner: Optional[str] = None, parent: Optional["FakeSupabase"] = None):
        self.owner = owner
        if parent is None:
            self.tables: dict[str, list[dict]] = {}
            self.calls: list[tuple] = []
            self.failures: dict[tuple, Exception] = {}
            self.storage = FakeStorage()
            self.ids = itertools.count(1)
        else:
            self.tables = parent.tables
            self.calls = parent.calls
            self.failures = parent.failures
            self.storage = parent.storage
            self.ids = parent.ids

    def scoped(self, owner: Optional[str]) -> "FakeSupabase":
        return FakeSupabase(owner=owner or "nobody", parent=self)

    def visible(self, table: str, row: dict) -> bool:
        column = OWNER_COLUMNS.get(table)
        if self.owner is None or column is None:
            return True
        return row.get(column) == self.owner

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def fail(self, table: str, op: str, message: str = "boom") -> None:
        self.failures[(table, op)] = api_error(message)

    def ops(self, table: str, op: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == table and c[1] == op]


class FakeDatabase:
    """Stands in for db.client.DatabaseClient."""

    def __init__(self, client: Optional[FakeSupabase] = None):
        self.client = client or FakeSupabase()
        self.tokens: list[str] = []

    def get_client(self) -> FakeSupabase:
        return self.client

    def for_token(self, access_token: str) -> FakeSupabase:
        self.tokens.append(access_token)
        return self.client.scoped(TOKENS.get(access_token))

    def anonymous(self) -> FakeSupabase:
        return self.client.scoped(None)


class FakeAuth:
    """Stands in for services.auth.AuthService."""

    def __init__(self):
        self.magic_links: list[str] = []

    def resolve_session(self, access_token, refresh_token=None) -> Optional[AuthSession]:
        user_id = TOKENS.get(access_token or "")
        if user_id is None:
            return None
        return AuthSession(
            user_id=user_id,
            email=f"{user_id}@example.com",
            access_token=access_token,
            refresh_token=refresh_token,
        )

    def send_magic_link(self, email: str) -> None:
        self.magic_links.append(email)

    def complete_magic_link(self, token_hash: str, otp_type: str = "email") -> Optional[AuthSession]:
        if token_hash != "good-hash":
            return None
        return AuthSession(
            user_id="alice",
            email="alice@example.com",
            access_token="token-alice",
            refresh_token="refresh-alice",
            expires_in=3600,
        )


class FakeGeneration:
    """Stands in for services.generation.GenerationService."""

    def __init__(self):
        self.analysis = CharacterAnalysis(
            analysis="Sharp jawline, sharper wit.\nShe owns every room she walks into.",
            tagline="main character energy, no notes",
        )
        self.story = GeneratedStory(title="Neon Hearts", story="Para one.\nPara two.")
        self.analysis_error: Optional[Exception] = None
        self.story_error: Optional[Exception] = None
        self.analysis_calls: list[tuple] = []
        self.story_calls: list[tuple] = []

    def analyze_character(self, name, photo_urls, tags, description=None):
        self.analysis_calls.append((name, list(photo_urls), list(tags), description))
        if self.analysis_error is not None:
            raise self.analysis_error
        return self.analysis

    def write_story(self, character_block, genre, prompt_context=None):
        self.story_calls.append((character_block, genre, prompt_context))
        if self.story_error is not None:
            raise self.story_error
        return self.story

    def fail_story_parse(self):
        self.story_error = ModelOutputError("no JSON object found in model response", "sorry!")


def character_row(character_id: str, owner_id: str, name: str, **extra) -> dict:
    row = {
        "id": character_id,
        "owner_id": owner_id,
        "name": name,
        "photo_urls": [f"https://cdn.test/{character_id}/{i}.jpg" for i in range(3)],
        "tags": ["Witty"],
        "description": "",
        "ai_analysis": f"{name} is a force of nature.",
        "tagline": f"{name} said what they said",
        "created_at": "2024-01-01T00:00:00+00:00",
    }
    row.update(extra)
    return row


@pytest.fixture
def supabase():
    return FakeSupabase()


@pytest.fixture
def database(supabase):
    return FakeDatabase(supabase)


@pytest.fixture
def generation():
    return FakeGeneration()


@pytest.fixture
def auth():
    return FakeAuth()


@pytest.fixture
def client(database, generation, auth):
    app.dependency_overrides[get_database] = lambda: database
    app.dependency_overrides[get_generation_service] = lambda: generation
    app.dependency_overrides[get_auth_service] = lambda: auth
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def alice_client(client):
    """TestClient signed in as alice through the session cookie."""
    client.cookies.set(ACCESS_TOKEN_COOKIE, "token-alice")
    return client
