# repositories/base_repo.py
from __future__ import annotations

from typing import Any, Mapping, Sequence

import aiomysql

from db.pool import DbPool
from db.tx import get_cursor, transaction


class BaseRepo:
    """
    SQL helpers shared by MySQL repositories.
    Repos store and fetch rows; wheel rules live in services.
    """

    def __init__(self, db: DbPool) -> None:
        self._db = db

    @property
    def pool(self) -> aiomysql.Pool:
        return self._db.pool

    async def fetch_one(self, sql: str, params: Sequence[Any] | None = None) -> Mapping[str, Any] | None:
        async with get_cursor(self.pool, dict_rows=True) as cur:
            await cur.execute(sql, params or ())
            return await cur.fetchone()

    async def execute(self, sql: str, params: Sequence[Any] | None = None) -> int:
        async with transaction(self.pool) as (_conn, cur):
            await cur.execute(sql, params or ())
            return cur.rowcount
