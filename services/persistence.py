# services/persistence.py
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Iterable, Optional, Protocol, Sequence

from domain.models import MAX_WEIGHT, MIN_WEIGHT, Choice, ImageRef, default_choices
from services.choice_store import ChoiceStore


log = logging.getLogger(__name__)

STORAGE_KEY = "choices"


class KeyValueStore(Protocol):
    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str) -> None: ...


def encode_choices(choices: Iterable[Choice]) -> str:
    rows = [
        {
            "label": c.label,
            "quantity": c.quantity,
            "image": c.image.to_data_url() if c.image is not None else None,
            "probability": c.weight,
        }
        for c in choices
    ]
    return json.dumps(rows, separators=(",", ":"), ensure_ascii=False)


def _strict_int(row: dict[str, Any], key: str) -> int:
    v = row.get(key)
    if isinstance(v, bool) or not isinstance(v, int):
        raise ValueError(f"{key} must be an integer, got: {v!r}")
    return v


def decode_choices(text: str) -> list[Choice]:
    """
    Parse a stored snapshot. Raises ValueError on anything malformed:
    no partial lists, no silent repair.
    """
    try:
        rows = json.loads(text)
    except (TypeError, json.JSONDecodeError) as e:
        raise ValueError("stored choices are not valid JSON") from e

    if not isinstance(rows, list):
        raise ValueError("stored choices must be a JSON array")

    out: list[Choice] = []
    seen: set[str] = set()
    for row in rows:
        if not isinstance(row, dict):
            raise ValueError("each stored choice must be an object")

        label = row.get("label")
        if not isinstance(label, str) or not label.strip():
            raise ValueError("choice label must be a non-empty string")
        if label in seen:
            raise ValueError(f"duplicate label: {label!r}")
        seen.add(label)

        quantity = _strict_int(row, "quantity")
        if quantity < 0:
            raise ValueError("quantity must be >= 0")

        weight = _strict_int(row, "probability")
        if weight < MIN_WEIGHT or weight > MAX_WEIGHT:
            raise ValueError(f"probability must be between {MIN_WEIGHT} and {MAX_WEIGHT}")

        raw_image = row.get("image")
        image = ImageRef.from_data_url(raw_image) if raw_image is not None else None

        out.append(Choice(label=label, quantity=quantity, weight=weight, image=image))
    return out


class PersistenceBridge:
    """
    Loads / saves the whole choice list under one key.

    - load never raises; absent or broken data means the default list
    - saves are full snapshots, fire-and-forget, last write wins
    - saves run one at a time in the order they were scheduled
    """

    def __init__(self, kv: KeyValueStore, *, key: str = STORAGE_KEY) -> None:
        self._kv = kv
        self._key = key
        self._pending: set[asyncio.Task] = set()
        self._write_lock = asyncio.Lock()

    @property
    def key(self) -> str:
        return self._key

    async def load(self) -> list[Choice]:
        try:
            raw = await self._kv.get(self._key)
        except Exception:
            log.warning("Could not read %r; using default choices", self._key, exc_info=True)
            return default_choices()

        if raw is None:
            log.info("No stored choices under %r; using default choices", self._key)
            return default_choices()

        try:
            return decode_choices(raw)
        except ValueError as e:
            log.warning("Stored choices under %r are malformed (%s); using default choices", self._key, e)
            return default_choices()

    async def save(self, choices: Sequence[Choice]) -> None:
        await self._kv.set(self._key, encode_choices(choices))

    def schedule_save(self, choices: Sequence[Choice]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            log.warning("No running event loop; snapshot of %d choices not saved", len(choices))
            return
        task = loop.create_task(self._save_logged(tuple(choices)))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _save_logged(self, choices: Sequence[Choice]) -> None:
        async with self._write_lock:
            try:
                await self.save(choices)
            except Exception:
                log.warning("Saving choices under %r failed", self._key, exc_info=True)

    async def flush(self) -> None:
        """Wait for in-flight saves (shutdown, tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def attach(self, store: ChoiceStore) -> None:
        store.subscribe(self.schedule_save)
