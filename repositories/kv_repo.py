# repositories/kv_repo.py
from __future__ import annotations

from typing import Optional

from db.pool import DbPool
from repositories.base_repo import BaseRepo


class KeyValueRepo(BaseRepo):
    """
    kv_store(
      scope  VARCHAR(64)  NOT NULL,
      k      VARCHAR(128) NOT NULL,
      v      LONGTEXT     NOT NULL,
      updated_at DATETIME(6) NOT NULL DEFAULT CURRENT_TIMESTAMP(6) ON UPDATE CURRENT_TIMESTAMP(6),
      PRIMARY KEY (scope, k)
    )
    """

    def __init__(self, db: DbPool, *, scope: str = "default") -> None:
        super().__init__(db)
        self._scope = scope

    async def ensure_table(self) -> None:
        await self.execute(
            """
            CREATE TABLE IF NOT EXISTS kv_store (
              scope VARCHAR(64) NOT NULL,
              k VARCHAR(128) NOT NULL,
              v LONGTEXT NOT NULL,
              updated_at DATETIME(6) NOT NULL DEFAULT CURRENT_TIMESTAMP(6) ON UPDATE CURRENT_TIMESTAMP(6),
              PRIMARY KEY (scope, k)
            ) CHARACTER SET utf8mb4;
            """
        )

    async def get(self, key: str) -> Optional[str]:
        row = await self.fetch_one(
            "SELECT v FROM kv_store WHERE scope=%s AND k=%s;",
            (self._scope, key),
        )
        if not row:
            return None
        return str(row["v"])

    async def set(self, key: str, value: str) -> None:
        await self.execute(
            """
            INSERT INTO kv_store (scope, k, v)
            VALUES (%s, %s, %s)
            ON DUPLICATE KEY UPDATE
              v = VALUES(v);
            """,
            (self._scope, key, value),
        )

    async def delete(self, key: str) -> int:
        return await self.execute(
            "DELETE FROM kv_store WHERE scope=%s AND k=%s;",
            (self._scope, key),
        )
