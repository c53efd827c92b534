# db/pool.py
from __future__ import annotations

from typing import Optional

import aiomysql

from config import MySqlConfig


class DbPool:
    """
    MySQL pool for the kv_store backend.
    - Started once when WHEEL_STORAGE=mysql
    - Shared by every repository
    - Closed on shutdown
    """

    def __init__(self) -> None:
        self._pool: Optional[aiomysql.Pool] = None

    @property
    def started(self) -> bool:
        return self._pool is not None

    @property
    def pool(self) -> aiomysql.Pool:
        if self._pool is None:
            raise RuntimeError("DB pool is not initialized. Call await DbPool.start() first.")
        return self._pool

    async def start(self, cfg: MySqlConfig) -> None:
        if self._pool is not None:
            return

        self._pool = await aiomysql.create_pool(
            host=cfg.host,
            port=cfg.port,
            user=cfg.user,
            password=cfg.password,
            db=cfg.database,
            minsize=cfg.minsize,
            maxsize=cfg.maxsize,
            connect_timeout=cfg.connect_timeout,
            autocommit=True,  # single-statement upserts, no explicit commit
            charset="utf8mb4",
        )
        await self.ping()

    async def ping(self) -> None:
        async with self.pool.acquire() as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT 1;")
                await cur.fetchone()

    async def close(self) -> None:
        if self._pool is None:
            return
        self._pool.close()
        await self._pool.wait_closed()
        self._pool = None
