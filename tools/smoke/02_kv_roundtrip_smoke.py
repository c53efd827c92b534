from __future__ import annotations

import os, sys
from uuid import uuid4

HERE = os.path.dirname(__file__)
ROOT = os.path.abspath(os.path.join(HERE, "..", ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import asyncio
from config import load_mysql_config, _maybe_load_env_file
from db.pool import DbPool
from repositories.kv_repo import KeyValueRepo
from services.choice_store import ChoiceStore
from services.persistence import PersistenceBridge

async def main() -> None:
    _maybe_load_env_file()

    run_id = os.getenv("SMOKE_RUN_ID") or f"smk_{uuid4().hex[:10]}"

    db = DbPool()
    await db.start(load_mysql_config())

    kv = KeyValueRepo(db, scope=f"smoke_{run_id}")
    await kv.ensure_table()
    bridge = PersistenceBridge(kv, key="choices")

    # absent key -> defaults
    store = ChoiceStore(await bridge.load())
    assert [c.label for c in store.choices] == ["yes", "no"]

    store.add(f"SMOKE_{run_id}", quantity=3, weight=20)
    store.decrement(0)
    await bridge.save(store.choices)

    reloaded = await bridge.load()
    assert reloaded == list(store.choices), reloaded

    deleted = await kv.delete("choices")
    await db.close()
    print(f"OK: kv round trip passed. run_id={run_id} choices={len(reloaded)} deleted={deleted}")

if __name__ == "__main__":
    asyncio.run(main())
