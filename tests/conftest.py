from __future__ import annotations

import copy
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from revenue_api.auth import repository as auth_repository
from revenue_api.main import create_app
from revenue_api.revenue import repository as revenue_repository


class FakeStore:
    """
    In-memory stand-in for the SQL repositories.
    """

    def __init__(self) -> None:
        self.users: dict[str, dict[str, Any]] = {}
        self.revenues: dict[str, dict[str, Any]] = {}
        self._tick = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def _now(self) -> datetime:
        # Strictly increasing so "newest first" ordering is deterministic.
        self._tick += timedelta(seconds=1)
        return self._tick

    # users

    async def create_user(self, *, name: str, email: str, password_hash: str) -> dict | None:
        email = auth_repository.normalize_email(email)
        if any(user["email"] == email for user in self.users.values()):
            return None
        user_id = str(uuid4())
        self.users[user_id] = {
            "id": user_id,
            "name": name.strip(),
            "email": email,
            "password_hash": password_hash,
        }
        return {"id": user_id, "name": name.strip()}

    async def get_user_by_email(self, email: str) -> dict | None:
        email = auth_repository.normalize_email(email)
        for user in self.users.values():
            if user["email"] == email:
                return dict(user)
        return None

    # revenues

    def _benefits(self, revenue_id: str, data) -> list[dict[str, Any]]:
        return [
            {"id": str(uuid4()), "revenue_id": revenue_id, "type": b.type, "value": b.value}
            for b in data.benefits
        ]

    def _public(self, record: dict[str, Any]) -> dict[str, Any]:
        out = copy.deepcopy(record)
        out.pop("user_id")
        return out

    async def create_revenue(self, *, user_id: str, data) -> dict[str, Any]:
        revenue_id = str(uuid4())
        now = self._now()
        record = {
            "id": revenue_id,
            "user_id": user_id,
            "name": data.name,
            "type": data.type,
            "revenue_as_range": data.revenue_as_range,
            "min_revenue": data.min_revenue,
            "max_revenue": data.max_revenue,
            "cycle": data.cycle,
            "benefits": self._benefits(revenue_id, data),
            "created_at": now,
            "updated_at": now,
        }
        self.revenues[revenue_id] = record
        return self._public(record)

    async def list_revenues_by_user(self, user_id: str) -> list[dict[str, Any]]:
        owned = [r for r in self.revenues.values() if r["user_id"] == user_id]
        owned.sort(key=lambda r: r["created_at"], reverse=True)
        return [self._public(r) for r in owned]

    async def find_revenue_by_id(self, user_id: str, revenue_id: str) -> dict[str, Any] | None:
        record = self.revenues.get(revenue_id)
        if record is None or record["user_id"] != user_id:
            return None
        return self._public(record)

    async def update_revenue(self, user_id: str, revenue_id: str, data) -> dict[str, Any] | None:
        record = self.revenues.get(revenue_id)
        if record is None or record["user_id"] != user_id:
            return None
        record.update(
            name=data.name,
            type=data.type,
            revenue_as_range=data.revenue_as_range,
            min_revenue=data.min_revenue,
            max_revenue=data.max_revenue,
            cycle=data.cycle,
            benefits=self._benefits(revenue_id, data),
            updated_at=self._now(),
        )
        return self._public(record)

    async def delete_revenue(self, user_id: str, revenue_id: str) -> dict[str, Any] | None:
        record = self.revenues.get(revenue_id)
        if record is None or record["user_id"] != user_id:
            return None
        del self.revenues[revenue_id]
        return {"id": revenue_id}


@pytest.fixture(autouse=True)
def _env(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", "test-access-secret-0123456789abcdef")
    monkeypatch.setenv("REFRESH_JWT_SECRET", "test-refresh-secret-0123456789abcdef")
    for name in (
        "ACCESS_TOKEN_TTL_SECONDS",
        "REFRESH_TOKEN_TTL_SECONDS",
        "RATE_LIMIT_WINDOW_MS",
        "RATE_LIMIT_MAX_REQUESTS",
        "SWAGGER_USER",
        "SWAGGER_PASS",
        "CORS_ORIGINS",
        "APP_ENV",
        "DATABASE_URL",
        "LOG_PERSIST",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_store(monkeypatch) -> FakeStore:
    store = FakeStore()
    monkeypatch.setattr(auth_repository, "create_user", store.create_user)
    monkeypatch.setattr(auth_repository, "get_user_by_email", store.get_user_by_email)
    monkeypatch.setattr(revenue_repository, "create_revenue", store.create_revenue)
    monkeypatch.setattr(revenue_repository, "list_revenues_by_user", store.list_revenues_by_user)
    monkeypatch.setattr(revenue_repository, "find_revenue_by_id", store.find_revenue_by_id)
    monkeypatch.setattr(revenue_repository, "update_revenue", store.update_revenue)
    monkeypatch.setattr(revenue_repository, "delete_revenue", store.delete_revenue)
    return store


@pytest.fixture
def client(fake_store) -> TestClient:
    # No `with` block: the lifespan (DB pool) is not started.
    return TestClient(create_app())
