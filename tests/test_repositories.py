from contextlib import asynccontextmanager
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from revenue_api.auth import repository as auth_repository
from revenue_api.core import db
from revenue_api.revenue import repository, schemas

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeTransaction:
    """
    Stands in for `db.transaction()`: one AsyncMock connection, plus a record
    of whether the block committed or rolled back.
    """

    def __init__(self) -> None:
        self.conn = AsyncMock()
        self.committed = False
        self.rolled_back = False

    @asynccontextmanager
    async def __call__(self):
        try:
            yield self.conn
        except BaseException:
            self.rolled_back = True
            raise
        else:
            self.committed = True


@pytest.fixture
def tx(monkeypatch) -> FakeTransaction:
    fake = FakeTransaction()
    monkeypatch.setattr(db, "transaction", fake)
    return fake


def _revenue_row(revenue_id="rev-1", **overrides):
    row = {
        "id": revenue_id,
        "name": "Salário",
        "type": "clt",
        "revenue_as_range": False,
        "min_revenue": 5000.0,
        "max_revenue": None,
        "cycle": "monthly",
        "created_at": NOW,
        "updated_at": NOW,
    }
    row.update(overrides)
    return row


def _input(**overrides) -> schemas.RevenueInput:
    data = {
        "name": "Salário",
        "type": "clt",
        "revenueAsRange": False,
        "min_revenue": 5000,
        "cycle": "monthly",
        "benefits": [{"type": "VR", "value": 100}, {"type": "VA", "value": 200}],
    }
    data.update(overrides)
    return schemas.RevenueInput(**data)


@pytest.mark.asyncio
class TestCreateRevenue:
    async def test_revenue_and_benefits_share_one_transaction(self, tx):
        tx.conn.fetchrow.return_value = _revenue_row()

        created = await repository.create_revenue(user_id="user-1", data=_input())

        assert tx.committed
        sql, revenue_id, user_id, *_ = tx.conn.fetchrow.await_args.args
        assert "INSERT INTO revenues" in sql
        assert user_id == "user-1"

        benefit_sql, rows = tx.conn.executemany.await_args.args
        assert "INSERT INTO benefits" in benefit_sql
        assert "position" in benefit_sql
        assert [(row[1], row[2], row[3], row[4]) for row in rows] == [
            (revenue_id, "VR", 100, 0),
            (revenue_id, "VA", 200, 1),
        ]
        assert [b["type"] for b in created["benefits"]] == ["VR", "VA"]
        assert created["revenue_as_range"] is False

    async def test_benefit_failure_rolls_back_revenue(self, tx):
        tx.conn.fetchrow.return_value = _revenue_row()
        tx.conn.executemany.side_effect = RuntimeError("benefit insert failed")

        with pytest.raises(RuntimeError, match="benefit insert failed"):
            await repository.create_revenue(user_id="user-1", data=_input())

        assert tx.rolled_back
        assert not tx.committed

    async def test_no_benefits_skips_insert(self, tx):
        tx.conn.fetchrow.return_value = _revenue_row()

        created = await repository.create_revenue(user_id="user-1", data=_input(benefits=[]))

        tx.conn.executemany.assert_not_awaited()
        assert created["benefits"] == []


@pytest.mark.asyncio
class TestUpdateRevenue:
    async def test_replaces_benefits_inside_transaction(self, tx):
        tx.conn.fetchrow.return_value = _revenue_row(name="Salário novo")

        updated = await repository.update_revenue("user-1", "rev-1", _input(name="Salário novo"))

        assert tx.committed
        sql, user_id, revenue_id, *_ = tx.conn.fetchrow.await_args.args
        assert "UPDATE revenues" in sql
        assert "WHERE user_id = $1" in sql
        assert (user_id, revenue_id) == ("user-1", "rev-1")
        tx.conn.execute.assert_awaited_once_with("DELETE FROM benefits WHERE revenue_id = $1", "rev-1")
        assert [b["type"] for b in updated["benefits"]] == ["VR", "VA"]

    async def test_missing_revenue_touches_no_benefits(self, tx):
        tx.conn.fetchrow.return_value = None

        assert await repository.update_revenue("user-1", "rev-404", _input()) is None

        tx.conn.execute.assert_not_awaited()
        tx.conn.executemany.assert_not_awaited()

    async def test_reinsert_failure_propagates(self, tx):
        tx.conn.fetchrow.return_value = _revenue_row()
        tx.conn.executemany.side_effect = ConnectionError("connection lost")

        with pytest.raises(ConnectionError):
            await repository.update_revenue("user-1", "rev-1", _input())

        assert tx.rolled_back


@pytest.mark.asyncio
class TestDeleteRevenue:
    async def test_deletes_benefits_then_revenue(self, tx):
        tx.conn.fetchrow.return_value = {"id": "rev-1"}

        deleted = await repository.delete_revenue("user-1", "rev-1")

        assert deleted == {"id": "rev-1"}
        assert "FOR UPDATE" in tx.conn.fetchrow.await_args.args[0]
        statements = [call.args[0] for call in tx.conn.execute.await_args_list]
        assert statements == [
            "DELETE FROM benefits WHERE revenue_id = $1",
            "DELETE FROM revenues WHERE id = $1",
        ]
        assert tx.committed

    async def test_not_owned(self, tx):
        tx.conn.fetchrow.return_value = None

        assert await repository.delete_revenue("user-2", "rev-1") is None
        tx.conn.execute.assert_not_awaited()


@pytest.mark.asyncio
class TestReadRevenues:
    async def test_list_groups_benefits_in_stored_order(self, monkeypatch):
        fetch_all = AsyncMock(
            side_effect=[
                [_revenue_row("rev-2"), _revenue_row("rev-1")],
                [
                    {"id": "b-9", "revenue_id": "rev-1", "type": "VR", "value": 100},
                    {"id": "b-1", "revenue_id": "rev-1", "type": "VA", "value": 200},
                ],
            ]
        )
        monkeypatch.setattr(db, "fetch_all", fetch_all)

        revenues = await repository.list_revenues_by_user("user-1")

        revenue_sql, user_id = fetch_all.await_args_list[0].args
        assert "WHERE user_id = $1" in revenue_sql
        assert "ORDER BY created_at DESC" in revenue_sql
        assert user_id == "user-1"

        benefit_sql, ids = fetch_all.await_args_list[1].args
        assert "ANY($1::text[])" in benefit_sql
        assert "ORDER BY revenue_id, position" in benefit_sql
        assert ids == ["rev-2", "rev-1"]

        assert [r["id"] for r in revenues] == ["rev-2", "rev-1"]
        assert revenues[0]["benefits"] == []
        assert [b["id"] for b in revenues[1]["benefits"]] == ["b-9", "b-1"]

    async def test_list_without_revenues_skips_benefit_query(self, monkeypatch):
        fetch_all = AsyncMock(return_value=[])
        monkeypatch.setattr(db, "fetch_all", fetch_all)

        assert await repository.list_revenues_by_user("user-1") == []
        fetch_all.assert_awaited_once()

    async def test_find_is_scoped_to_owner(self, monkeypatch):
        fetch_one = AsyncMock(return_value=None)
        fetch_all = AsyncMock()
        monkeypatch.setattr(db, "fetch_one", fetch_one)
        monkeypatch.setattr(db, "fetch_all", fetch_all)

        assert await repository.find_revenue_by_id("user-2", "rev-1") is None

        sql, user_id, revenue_id = fetch_one.await_args.args
        assert "WHERE user_id = $1" in sql
        assert (user_id, revenue_id) == ("user-2", "rev-1")
        fetch_all.assert_not_awaited()


@pytest.mark.asyncio
class TestUserRepository:
    async def test_create_user_skips_conflicts(self, monkeypatch):
        fetch_one = AsyncMock(return_value=None)
        monkeypatch.setattr(db, "fetch_one", fetch_one)

        result = await auth_repository.create_user(
            name="  Felps ", email=" Felps@Example.COM ", password_hash="hash"
        )

        assert result is None
        sql, _user_id, name, email, password_hash = fetch_one.await_args.args
        assert "ON CONFLICT DO NOTHING" in sql
        assert (name, email, password_hash) == ("Felps", "felps@example.com", "hash")

    async def test_lookup_normalizes_email(self, monkeypatch):
        fetch_one = AsyncMock(return_value={"id": "u", "name": "n", "password_hash": "h"})
        monkeypatch.setattr(db, "fetch_one", fetch_one)

        await auth_repository.get_user_by_email("  FELPS@example.com")

        assert fetch_one.await_args.args[1] == "felps@example.com"


class _Transaction:
    def __init__(self) -> None:
        self.exit_exc_type = "not exited"

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.exit_exc_type = exc_type
        return False


class _Connection:
    def __init__(self) -> None:
        self.tx = _Transaction()

    def transaction(self):
        return self.tx


class _Pool:
    def __init__(self) -> None:
        self.conn = _Connection()

    @asynccontextmanager
    async def acquire(self):
        yield self.conn


@pytest.mark.asyncio
class TestDbTransaction:
    async def test_commits_on_clean_exit(self, monkeypatch):
        pool = _Pool()
        monkeypatch.setattr(db, "_pool", pool)

        async with db.transaction() as conn:
            assert conn is pool.conn

        assert pool.conn.tx.exit_exc_type is None

    async def test_error_reaches_asyncpg_transaction(self, monkeypatch):
        pool = _Pool()
        monkeypatch.setattr(db, "_pool", pool)

        with pytest.raises(ValueError):
            async with db.transaction():
                raise ValueError("second statement failed")

        # asyncpg rolls back when __aexit__ sees an exception.
        assert pool.conn.tx.exit_exc_type is ValueError

    async def test_requires_pool(self, monkeypatch):
        monkeypatch.setattr(db, "_pool", None)

        with pytest.raises(RuntimeError):
            async with db.transaction():
                pass
