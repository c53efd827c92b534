from __future__ import annotations

from typing import Iterable, Optional

import pytest

from domain.models import Choice
from services.choice_store import ChoiceStore


class ScriptedRandom:
    """randrange() returns the scripted values in order, then repeats the last one."""

    def __init__(self, values: Iterable[int]) -> None:
        self.values = list(values)
        self.calls: list[int] = []

    def randrange(self, stop: int) -> int:
        self.calls.append(stop)
        v = self.values.pop(0) if len(self.values) > 1 else self.values[0]
        assert 0 <= v < stop, f"scripted value {v} outside [0, {stop})"
        return v


class MemoryKV:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})
        self.writes: list[tuple[str, str]] = []

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.writes.append((key, value))
        self.data[key] = value


class BrokenKV:
    async def get(self, key: str) -> Optional[str]:
        raise ConnectionError("storage offline")

    async def set(self, key: str, value: str) -> None:
        raise ConnectionError("storage offline")


class RecordingEffects:
    def __init__(self) -> None:
        self.celebrations = 0
        self.stops = 0

    def celebrate(self) -> None:
        self.celebrations += 1

    def stop(self) -> None:
        self.stops += 1


@pytest.fixture
def abc_choices() -> list[Choice]:
    return [
        Choice(label="A", quantity=2, weight=10),
        Choice(label="B", quantity=1, weight=30),
        Choice(label="C", quantity=4, weight=60),
    ]


@pytest.fixture
def store(abc_choices) -> ChoiceStore:
    return ChoiceStore(abc_choices)


@pytest.fixture
def effects() -> RecordingEffects:
    return RecordingEffects()
