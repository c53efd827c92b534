from __future__ import annotations

import os, sys

HERE = os.path.dirname(__file__)
ROOT = os.path.abspath(os.path.join(HERE, "..", ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import asyncio
from config import load_mysql_config, _maybe_load_env_file
from db.pool import DbPool

async def main() -> None:
    _maybe_load_env_file()

    db = DbPool()
    await db.start(load_mysql_config())
    await db.ping()
    await db.close()

    print("OK: DB pool ping succeeded.")

if __name__ == "__main__":
    asyncio.run(main())
