from __future__ import annotations

import json

import pytest

from domain.models import Choice
from repositories.file_kv_repo import FileKeyValueRepo
from services.persistence import PersistenceBridge


async def test_get_missing_file_returns_none(tmp_path):
    repo = FileKeyValueRepo(tmp_path / "state.json")
    assert await repo.get("choices") is None


async def test_set_get_delete(tmp_path):
    path = tmp_path / "nested" / "state.json"
    repo = FileKeyValueRepo(path)

    await repo.set("choices", "[]")
    await repo.set("other", "x")
    assert await repo.get("choices") == "[]"
    assert json.loads(path.read_text(encoding="utf-8")) == {"choices": "[]", "other": "x"}
    assert not (tmp_path / "nested" / "state.json.tmp").exists()

    assert await repo.delete("choices") == 1
    assert await repo.delete("choices") == 0
    assert await repo.get("choices") is None


async def test_corrupt_file_is_overwritten_on_set(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{ nope", encoding="utf-8")
    repo = FileKeyValueRepo(path)

    with pytest.raises(ValueError):
        await repo.get("choices")

    await repo.set("choices", "[]")
    assert await repo.get("choices") == "[]"


async def test_bridge_over_file_repo(tmp_path):
    path = tmp_path / "state.json"
    choices = [Choice("A", 4, 10), Choice("B", 0, 90)]

    await PersistenceBridge(FileKeyValueRepo(path)).save(choices)
    assert await PersistenceBridge(FileKeyValueRepo(path)).load() == choices

    path.write_text("[]", encoding="utf-8")  # valid JSON, wrong shape
    loaded = await PersistenceBridge(FileKeyValueRepo(path)).load()
    assert [c.label for c in loaded] == ["yes", "no"]
