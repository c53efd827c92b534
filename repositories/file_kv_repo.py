# repositories/file_kv_repo.py
from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Optional


class FileKeyValueRepo:
    """
    Key-value store kept in one local JSON object file.
    Writes go to a temp file first and are swapped in with os.replace.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        data = json.loads(self._path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"{self._path} does not hold a JSON object")
        return data

    def _write_all(self, data: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_name(self._path.name + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp, self._path)

    async def get(self, key: str) -> Optional[str]:
        data = await asyncio.to_thread(self._read_all)
        v = data.get(key)
        return v if isinstance(v, str) else None

    async def set(self, key: str, value: str) -> None:
        def _set() -> None:
            try:
                data = self._read_all()
            except ValueError:
                data = {}
            data[key] = value
            self._write_all(data)

        async with self._lock:
            await asyncio.to_thread(_set)

    async def delete(self, key: str) -> int:
        def _delete() -> int:
            data = self._read_all()
            if key not in data:
                return 0
            del data[key]
            self._write_all(data)
            return 1

        async with self._lock:
            return await asyncio.to_thread(_delete)
