"""
Auth persistence helpers.
"""

from __future__ import annotations

from uuid import uuid4

from revenue_api.core import db


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


async def create_user(*, name: str, email: str, password_hash: str) -> dict | None:
    """
    Insert a user. Returns None when the insert was skipped by a conflict.
    """
    return await db.fetch_one(
        """
        INSERT INTO users (id, name, email, password_hash)
        VALUES ($1, $2, $3, $4)
        ON CONFLICT DO NOTHING
        RETURNING id, name
        """,
        str(uuid4()),
        name.strip(),
        normalize_email(email),
        password_hash,
    )


async def get_user_by_email(email: str) -> dict | None:
    return await db.fetch_one(
        """
        SELECT id, name, password_hash
        FROM users
        WHERE lower(email) = lower($1)
        LIMIT 1
        """,
        normalize_email(email),
    )
