import asyncio
import uuid
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

from eventsite.core.exceptions import TransientFetchError
from eventsite.core.realtime import ChangeEvent, Subscription, EVENT_TYPES
from eventsite.database.gateway import BackendGateway
from eventsite.modules.auth.service import clear_auth_cache

_EPOCH = datetime(2026, 1, 1, tzinfo=timezone.utc)


class InMemoryGateway(BackendGateway):
    """BackendGateway over plain dicts.

    Mutations publish realtime events to open subscriptions. hold(table) makes
    reads on the table wait until release(table); fail(table) makes them raise.
    """

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.calls: Counter = Counter()
        self.subscriptions: List[Subscription] = []
        self.closed_channels = 0
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self.passwords: Dict[str, tuple] = {}
        self.sign_outs = 0
        self._failing = set()
        self._gates: Dict[str, asyncio.Event] = {}
        self._clock = 0

    # --- fixtures helpers ---

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.setdefault(table, [])

    def _timestamp(self) -> str:
        self._clock += 1
        return (_EPOCH + timedelta(seconds=self._clock)).isoformat()

    def add_user(self, token: str, user_id: str, email: str, password: str = "secret123") -> Dict[str, Any]:
        user = {"id": user_id, "email": email, "user_metadata": {}, "app_metadata": {}}
        self.sessions[token] = user
        self.passwords[email] = (password, user, token)
        self.rows("profiles").append({"user_id": user_id, "email": email, "name": email.split("@")[0]})
        return user

    def add_staff_role(self, user_id: str, role: str) -> None:
        self.rows("user_roles").append({"user_id": user_id, "role": role})

    def add_project(self, slug: str, name: Optional[str] = None) -> Dict[str, Any]:
        row = {"id": f"proj-{slug}", "slug": slug, "name": name or slug.title(), "created_at": self._timestamp()}
        self.rows("projects").append(row)
        return row

    def add_member(self, project_id: str, user_id: str, role: str) -> Dict[str, Any]:
        row = {
            "id": f"member-{uuid.uuid4().hex[:8]}",
            "project_id": project_id,
            "user_id": user_id,
            "role": role,
            "created_at": self._timestamp(),
        }
        self.rows("project_members").append(row)
        return row

    def add_setting(self, project_id: Optional[str], category: str, key: str, value: str) -> Dict[str, Any]:
        row = {"id": uuid.uuid4().hex, "project_id": project_id, "category": category, "key": key, "value": value}
        self.rows("site_settings").append(row)
        return row

    def hold(self, table: str) -> asyncio.Event:
        gate = asyncio.Event()
        self._gates[table] = gate
        return gate

    def release(self, table: str) -> None:
        gate = self._gates.pop(table, None)
        if gate is not None:
            gate.set()

    def fail(self, table: str) -> None:
        self._failing.add(table)

    def open_subscriptions(self, table: str) -> List[Subscription]:
        return [s for s in self.subscriptions if s.table == table and not s.closed]

    def emit(self, table: str, event_type: str, new: Optional[Dict] = None, old: Optional[Dict] = None) -> None:
        event = ChangeEvent(table=table, event_type=event_type, new=new or {}, old=old or {})
        for subscription in self.open_subscriptions(table):
            subscription.publish(event)

    # --- gateway surface ---

    async def _before_read(self, method: str, table: str) -> None:
        self.calls[(method, table)] += 1
        gate = self._gates.get(table)
        if gate is not None:
            await gate.wait()
        if table in self._failing:
            raise TransientFetchError(f"{table} unavailable")

    @staticmethod
    def _matches(row, filters, in_filters=None) -> bool:
        for column, value in (filters or {}).items():
            if row.get(column) != value:
                return False
        for column, values in (in_filters or {}).items():
            if row.get(column) not in list(values):
                return False
        return True

    async def select_where(self, table, filters=None, in_filters=None, order_by=None, desc=False, columns="*"):
        await self._before_read("select_where", table)
        found = [dict(r) for r in self.rows(table) if self._matches(r, filters, in_filters)]
        if order_by:
            found.sort(key=lambda r: r.get(order_by) or "", reverse=desc)
        return found

    async def select_one(self, table, filters, columns="*", single=False):
        await self._before_read("select_one", table)
        found = [dict(r) for r in self.rows(table) if self._matches(r, filters)]
        if single and len(found) != 1:
            raise TransientFetchError(f"Expected exactly one row in {table}, got {len(found)}")
        return found[0] if found else None

    async def insert(self, table, payload):
        self.calls[("insert", table)] += 1
        inserted = []
        for item in payload if isinstance(payload, list) else [payload]:
            row = {"id": uuid.uuid4().hex, "created_at": self._timestamp(), **item}
            self.rows(table).append(row)
            inserted.append(dict(row))
            self.emit(table, "INSERT", new=row)
        return inserted

    async def update(self, table, filters, payload):
        self.calls[("update", table)] += 1
        updated = []
        for row in self.rows(table):
            if self._matches(row, filters):
                old = dict(row)
                row.update(payload)
                updated.append(dict(row))
                self.emit(table, "UPDATE", new=row, old=old)
        return updated

    async def delete(self, table, filters):
        self.calls[("delete", table)] += 1
        kept, deleted = [], []
        for row in self.rows(table):
            (deleted if self._matches(row, filters) else kept).append(row)
        self.tables[table] = kept
        for row in deleted:
            self.emit(table, "DELETE", old=row)
        return [dict(r) for r in deleted]

    async def subscribe_changes(self, table, event_types=EVENT_TYPES):
        self.calls[("subscribe", table)] += 1

        async def release_channel():
            self.closed_channels += 1

        subscription = Subscription(table, event_types, closer=release_channel)
        self.subscriptions.append(subscription)
        return subscription

    async def get_current_session(self, token):
        if not token:
            return None
        return self.sessions.get(token)

    async def sign_in_with_password(self, email, password):
        entry = self.passwords.get(email)
        if entry is None or entry[0] != password:
            return None
        _, user, token = entry
        return {"access_token": token, "user_id": user["id"], "email": email}

    async def sign_out(self):
        self.sign_outs += 1


@pytest.fixture(autouse=True)
def reset_auth_cache():
    clear_auth_cache()
    yield
    clear_auth_cache()


@pytest.fixture
def gateway() -> InMemoryGateway:
    return InMemoryGateway()


@pytest.fixture
def site(gateway: InMemoryGateway) -> Dict[str, Any]:
    """One project with a user per role plus an outsider"""
    project = gateway.add_project("spring-gala", "Spring Gala")
    users = {}
    for role in ("owner", "admin", "editor", "viewer"):
        users[role] = gateway.add_user(f"token-{role}", f"user-{role}", f"{role}@example.com")
        gateway.add_member(project["id"], users[role]["id"], role)
    users["outsider"] = gateway.add_user("token-outsider", "user-outsider", "outsider@example.com")
    return {"project": project, "users": users}


@pytest.fixture
def client(gateway: InMemoryGateway, site):
    from fastapi.testclient import TestClient

    from eventsite.core.context import ServiceContext
    from eventsite.main import app

    app.state.context = ServiceContext(gateway)
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.state.context = None


def auth(role: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer token-{role}"}
