"""
Revenue persistence (raw SQL).

Every query is scoped by `user_id`, so a revenue owned by another user is
indistinguishable from a missing one. Revenue + benefit writes share one
transaction.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

import asyncpg

from revenue_api.core import db

from . import schemas

_REVENUE_COLUMNS = """
    id, name, type, revenue_as_range, min_revenue, max_revenue, cycle, created_at, updated_at
"""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _benefit_rows(revenue_id: str, benefits: list[schemas.BenefitInput]) -> list[tuple[str, str, str, int, int]]:
    # position keeps the order the client sent.
    return [
        (str(uuid4()), revenue_id, benefit.type, int(benefit.value), position)
        for position, benefit in enumerate(benefits)
    ]


async def _insert_benefits(
    conn: asyncpg.Connection,
    revenue_id: str,
    benefits: list[schemas.BenefitInput],
) -> list[dict[str, Any]]:
    rows = _benefit_rows(revenue_id, benefits)
    if not rows:
        return []
    await conn.executemany(
        """
        INSERT INTO benefits (id, revenue_id, type, value, position)
        VALUES ($1, $2, $3, $4, $5)
        """,
        rows,
    )
    return [
        {"id": benefit_id, "revenue_id": rid, "type": type_, "value": value}
        for (benefit_id, rid, type_, value, _) in rows
    ]


def _with_benefits(row: dict[str, Any], benefits: list[dict[str, Any]]) -> dict[str, Any]:
    record = dict(row)
    record["revenue_as_range"] = bool(record["revenue_as_range"])
    record["benefits"] = benefits
    return record


async def create_revenue(*, user_id: str, data: schemas.RevenueInput) -> dict[str, Any]:
    revenue_id = str(uuid4())
    now = _utc_now()
    async with db.transaction() as conn:
        row = await conn.fetchrow(
            f"""
            INSERT INTO revenues (
              id, user_id, name, type, revenue_as_range,
              min_revenue, max_revenue, cycle, created_at, updated_at
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $9)
            RETURNING {_REVENUE_COLUMNS}
            """,
            revenue_id,
            user_id,
            data.name,
            data.type,
            data.revenue_as_range,
            data.min_revenue,
            data.max_revenue,
            data.cycle,
            now,
        )
        benefits = await _insert_benefits(conn, revenue_id, data.benefits)
    return _with_benefits(dict(row), benefits)


async def _benefits_by_revenue_ids(revenue_ids: list[str]) -> dict[str, list[dict[str, Any]]]:
    grouped: dict[str, list[dict[str, Any]]] = {revenue_id: [] for revenue_id in revenue_ids}
    if not revenue_ids:
        return grouped

    rows = await db.fetch_all(
        """
        SELECT id, revenue_id, type, value
        FROM benefits
        WHERE revenue_id = ANY($1::text[])
        ORDER BY revenue_id, position, id
        """,
        revenue_ids,
    )
    for row in rows:
        grouped.setdefault(str(row["revenue_id"]), []).append(row)
    return grouped


async def list_revenues_by_user(user_id: str) -> list[dict[str, Any]]:
    rows = await db.fetch_all(
        f"""
        SELECT {_REVENUE_COLUMNS}
        FROM revenues
        WHERE user_id = $1
        ORDER BY created_at DESC, id DESC
        """,
        user_id,
    )
    benefits = await _benefits_by_revenue_ids([str(row["id"]) for row in rows])
    return [_with_benefits(row, benefits.get(str(row["id"]), [])) for row in rows]


async def find_revenue_by_id(user_id: str, revenue_id: str) -> dict[str, Any] | None:
    row = await db.fetch_one(
        f"""
        SELECT {_REVENUE_COLUMNS}
        FROM revenues
        WHERE user_id = $1
          AND id = $2
        LIMIT 1
        """,
        user_id,
        revenue_id,
    )
    if row is None:
        return None
    benefits = await _benefits_by_revenue_ids([revenue_id])
    return _with_benefits(row, benefits.get(revenue_id, []))


async def update_revenue(user_id: str, revenue_id: str, data: schemas.RevenueInput) -> dict[str, Any] | None:
    """
    Update a revenue and replace its benefits. Returns None when not found.
    """
    async with db.transaction() as conn:
        row = await conn.fetchrow(
            f"""
            UPDATE revenues
            SET name = $3,
                type = $4,
                revenue_as_range = $5,
                min_revenue = $6,
                max_revenue = $7,
                cycle = $8,
                updated_at = $9
            WHERE user_id = $1
              AND id = $2
            RETURNING {_REVENUE_COLUMNS}
            """,
            user_id,
            revenue_id,
            data.name,
            data.type,
            data.revenue_as_range,
            data.min_revenue,
            data.max_revenue,
            data.cycle,
            _utc_now(),
        )
        if row is None:
            return None

        await conn.execute("DELETE FROM benefits WHERE revenue_id = $1", revenue_id)
        benefits = await _insert_benefits(conn, revenue_id, data.benefits)
    return _with_benefits(dict(row), benefits)


async def delete_revenue(user_id: str, revenue_id: str) -> dict[str, Any] | None:
    async with db.transaction() as conn:
        row = await conn.fetchrow(
            """
            SELECT id
            FROM revenues
            WHERE user_id = $1
              AND id = $2
            FOR UPDATE
            """,
            user_id,
            revenue_id,
        )
        if row is None:
            return None
        await conn.execute("DELETE FROM benefits WHERE revenue_id = $1", revenue_id)
        await conn.execute("DELETE FROM revenues WHERE id = $1", revenue_id)
    return {"id": str(row["id"])}
