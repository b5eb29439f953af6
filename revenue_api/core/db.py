"""
PostgreSQL access for the revenue API (asyncpg, raw SQL).

The pool is process-wide: `main.lifespan` opens it, applies `schema.sql`
and closes it on shutdown. Repositories never touch asyncpg directly except
through `transaction()` when several statements must commit together.

Placeholders are positional ($1, $2, ...).
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import asyncpg

from . import config

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).with_name("schema.sql")

# libpq options asyncpg does not understand.
_LIBPQ_ONLY_PARAMS = {"sslmode", "channel_binding"}

_pool: asyncpg.Pool | None = None


def _sanitize_database_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url
    params = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key not in _LIBPQ_ONLY_PARAMS
    ]
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(params), parts.fragment))


def database_url() -> str:
    url = config.env_str("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not set.")
    return _sanitize_database_url(url)


async def init_pool() -> None:
    global _pool
    if _pool is not None:
        return None

    min_size = max(1, config.env_int("DB_POOL_MIN_SIZE", 1))
    max_size = max(min_size, config.env_int("DB_POOL_MAX_SIZE", 10))
    _pool = await asyncpg.create_pool(
        dsn=database_url(),
        min_size=min_size,
        max_size=max_size,
        command_timeout=config.env_int("DB_COMMAND_TIMEOUT_SECONDS", 30),
    )
    logger.info("db_pool_ready min_size=%s max_size=%s", min_size, max_size)


async def close_pool() -> None:
    global _pool
    if _pool is None:
        return None
    await _pool.close()
    _pool = None
    logger.info("db_pool_closed")


def pool() -> asyncpg.Pool:
    if _pool is None:
        raise RuntimeError("DB pool is not initialized; the app lifespan opens it.")
    return _pool


async def apply_schema() -> None:
    # users, revenues, benefits; every statement is IF NOT EXISTS.
    await pool().execute(SCHEMA_PATH.read_text(encoding="utf-8"))
    logger.info("db_schema_applied path=%s", SCHEMA_PATH.name)


async def fetch_one(sql: str, *args: Any) -> dict[str, Any] | None:
    row = await pool().fetchrow(sql, *args)
    return dict(row) if row is not None else None


async def fetch_all(sql: str, *args: Any) -> list[dict[str, Any]]:
    return [dict(row) for row in await pool().fetch(sql, *args)]


@asynccontextmanager
async def transaction() -> AsyncIterator[asyncpg.Connection]:
    """
    Borrow a pooled connection for a multi-statement unit of work.

    Commits when the block exits normally and rolls back if it raises.
    """
    async with pool().acquire() as conn:
        async with conn.transaction():
            yield conn
