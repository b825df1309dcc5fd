from __future__ import annotations

import copy
from types import SimpleNamespace
from typing import Any, Callable, Optional
from uuid import uuid4

import pytest
from postgrest.exceptions import APIError

from rectrack.app.infra.auth.supabase_auth import SupabaseAuthGateway
from rectrack.app.infra.db.supabase_backend import RemoteBackend
from rectrack.app.services.session_oracle import SessionOracle
from rectrack.app.services.storage_facade import StorageFacade
from rectrack.app.services.visitor_store import VisitorStore

FailPredicate = Callable[[str, str, Any], bool]


def _matches(row: dict[str, Any], filters: list[tuple[str, str, Any]]) -> bool:
    for kind, column, value in filters:
        current = row.get(column)
        if kind == "eq" and str(current) != str(value):
            return False
        if kind == "neq" and str(current) == str(value):
            return False
        if kind == "in" and str(current) not in {str(v) for v in value}:
            return False
    return True


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self._db = db
        self._table = table
        self._op = "select"
        self._columns = "*"
        self._payload: Any = None
        self._filters: list[tuple[str, str, Any]] = []
        self._order: Optional[tuple[str, bool]] = None
        self._limit: Optional[int] = None

    def select(self, columns: str = "*", count: Optional[str] = None) -> "FakeQuery":
        self._op = "select"
        self._columns = columns
        return self

    def insert(self, payload: Any) -> "FakeQuery":
        self._op = "insert"
        self._payload = payload
        return self

    def update(self, payload: dict[str, Any]) -> "FakeQuery":
        self._op = "update"
        self._payload = payload
        return self

    def delete(self) -> "FakeQuery":
        self._op = "delete"
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append(("eq", column, value))
        return self

    def neq(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append(("neq", column, value))
        return self

    def in_(self, column: str, values: list[Any]) -> "FakeQuery":
        self._filters.append(("in", column, values))
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self._order = (column, desc)
        return self

    def limit(self, count: int) -> "FakeQuery":
        self._limit = count
        return self

    def execute(self) -> SimpleNamespace:
        self._db.calls.append((self._table, self._op))
        if self._db.fail_when is not None and self._db.fail_when(self._table, self._op, self._payload):
            raise ConnectionError(f"simulated outage on {self._table}.{self._op}")

        rows = self._db.tables.setdefault(self._table, [])
        if self._op == "select":
            data = [copy.deepcopy(row) for row in rows if _matches(row, self._filters)]
            if self._order:
                column, desc = self._order
                data.sort(key=lambda row: str(row.get(column) or ""), reverse=desc)
            if self._limit is not None:
                data = data[: self._limit]
            if self._columns != "*":
                wanted = [c.strip() for c in self._columns.split(",")]
                data = [{c: row.get(c) for c in wanted} for row in data]
            return SimpleNamespace(data=data, count=len(data))

        if self._op == "insert":
            payloads = self._payload if isinstance(self._payload, list) else [self._payload]
            inserted = []
            for payload in payloads:
                row = dict(payload)
                row.setdefault("id", str(uuid4()))
                if any(str(existing.get("id")) == str(row["id"]) for existing in rows):
                    raise APIError({"message": "duplicate key value", "code": "23505"})
                rows.append(row)
                inserted.append(copy.deepcopy(row))
            return SimpleNamespace(data=inserted, count=len(inserted))

        if self._op == "update":
            updated = []
            for row in rows:
                if _matches(row, self._filters):
                    row.update(self._payload)
                    updated.append(copy.deepcopy(row))
            return SimpleNamespace(data=updated, count=len(updated))

        removed = [row for row in rows if _matches(row, self._filters)]
        self._db.tables[self._table] = [row for row in rows if not _matches(row, self._filters)]
        return SimpleNamespace(data=copy.deepcopy(removed), count=len(removed))


class FakeAuth:
    def __init__(self) -> None:
        self.users_by_token: dict[str, SimpleNamespace] = {}
        self.users_by_email: dict[str, tuple[SimpleNamespace, str]] = {}
        self.signed_out: list[str] = []
        self.unavailable = False
        self.confirm_email = False
        self.admin = SimpleNamespace(sign_out=self._admin_sign_out)

    def add_user(self, user_id: Optional[str] = None, email: str = "someone@example.com") -> str:
        user = SimpleNamespace(id=user_id or str(uuid4()), email=email, user_metadata={})
        token = f"token-{user.id}"
        self.users_by_token[token] = user
        return token

    def get_user(self, token: str) -> SimpleNamespace:
        if self.unavailable:
            raise ConnectionError("auth service unreachable")
        user = self.users_by_token.get(token)
        if user is None:
            raise ValueError("invalid JWT")
        return SimpleNamespace(user=user)

    def sign_up(self, credentials: dict[str, Any]) -> SimpleNamespace:
        email = credentials["email"]
        if email in self.users_by_email:
            raise ValueError("User already registered")
        name = credentials.get("options", {}).get("data", {}).get("name")
        user = SimpleNamespace(id=str(uuid4()), email=email, user_metadata={"name": name})
        self.users_by_email[email] = (user, credentials["password"])
        if self.confirm_email:
            return SimpleNamespace(user=user, session=None)
        return SimpleNamespace(user=user, session=self._issue(user))

    def sign_in_with_password(self, credentials: dict[str, str]) -> SimpleNamespace:
        entry = self.users_by_email.get(credentials["email"])
        if entry is None or entry[1] != credentials["password"]:
            raise ValueError("Invalid login credentials")
        return SimpleNamespace(user=entry[0], session=self._issue(entry[0]))

    def _issue(self, user: SimpleNamespace) -> SimpleNamespace:
        token = f"token-{user.id}"
        self.users_by_token[token] = user
        return SimpleNamespace(access_token=token, refresh_token=f"refresh-{user.id}")

    def _admin_sign_out(self, jwt: str, scope: str = "global") -> None:
        self.signed_out.append(jwt)
        self.users_by_token.pop(jwt, None)


class FakeSupabase:
    """In-memory stand-in for the supabase-py client (tables + auth)."""

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_when: Optional[FailPredicate] = None
        self.auth = FakeAuth()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)


@pytest.fixture
def fake_supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def gateway(fake_supabase: FakeSupabase) -> SupabaseAuthGateway:
    return SupabaseAuthGateway(fake_supabase, lambda: fake_supabase)


@pytest.fixture
def make_facade(fake_supabase: FakeSupabase, gateway: SupabaseAuthGateway):
    def factory(
        token: Optional[str] = None,
        visitor_store: Optional[VisitorStore] = None,
        allow_visitor_writes: bool = True,
    ) -> StorageFacade:
        return StorageFacade(
            SessionOracle(gateway, token),
            lambda user_id: RemoteBackend(fake_supabase, user_id),
            visitor_store,
            allow_visitor_writes=allow_visitor_writes,
        )

    return factory
