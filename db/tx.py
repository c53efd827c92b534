# db/tx.py
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Tuple

import aiomysql


@asynccontextmanager
async def get_cursor(
    pool: aiomysql.Pool, *, dict_rows: bool = True
) -> AsyncIterator[aiomysql.Cursor]:
    """Pooled cursor for autocommit reads."""
    cursor_cls = aiomysql.DictCursor if dict_rows else aiomysql.Cursor
    async with pool.acquire() as conn:
        async with conn.cursor(cursor_cls) as cur:
            yield cur


@asynccontextmanager
async def transaction(
    pool: aiomysql.Pool, *, dict_rows: bool = False
) -> AsyncIterator[Tuple[aiomysql.Connection, aiomysql.Cursor]]:
    """
    Commit on success, roll back and re-raise on error.

        async with transaction(pool) as (conn, cur):
            await cur.execute(...)
    """
    cursor_cls = aiomysql.DictCursor if dict_rows else aiomysql.Cursor

    async with pool.acquire() as conn:
        await conn.begin()
        try:
            async with conn.cursor(cursor_cls) as cur:
                yield conn, cur
            await conn.commit()
        except Exception:
            await conn.rollback()
            raise
