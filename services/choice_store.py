# services/choice_store.py
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Iterable, Optional

from domain.models import (
    Choice,
    ImageRef,
    clamp_add_quantity,
    clamp_edit_quantity,
    clamp_weight,
)


log = logging.getLogger(__name__)

ChangeListener = Callable[[tuple[Choice, ...]], None]


class ChoiceStore:
    """
    Single owner of the ordered choice list.

    Rules:
      - labels are trimmed, non-empty and unique (exact, case-sensitive)
      - add: quantity >= 1, weight clamped to [1, 100]
      - edit: quantity >= 0, weight clamped to [1, 100]
      - invalid input is rejected (returns False) and nothing changes

    Every successful mutation notifies subscribers with the new snapshot.
    """

    def __init__(self, choices: Iterable[Choice] | None = None) -> None:
        self._choices: list[Choice] = list(choices or [])
        self._listeners: list[ChangeListener] = []
        self._editing: Optional[int] = None

    # -------------------------
    # Reads
    # -------------------------

    @property
    def choices(self) -> tuple[Choice, ...]:
        return tuple(self._choices)

    @property
    def editing_index(self) -> Optional[int]:
        return self._editing

    def __len__(self) -> int:
        return len(self._choices)

    def __getitem__(self, index: int) -> Choice:
        return self._choices[index]

    def has_eligible(self) -> bool:
        return any(c.quantity > 0 for c in self._choices)

    def index_of(self, label: str) -> Optional[int]:
        for i, c in enumerate(self._choices):
            if c.label == label:
                return i
        return None

    def _label_taken(self, label: str, *, ignore_index: int | None = None) -> bool:
        return any(c.label == label and i != ignore_index for i, c in enumerate(self._choices))

    def _in_range(self, index: int) -> bool:
        return 0 <= index < len(self._choices)

    # -------------------------
    # Subscriptions
    # -------------------------

    def subscribe(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def _changed(self) -> None:
        snapshot = self.choices
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                log.exception("Choice store listener failed")

    # -------------------------
    # CRUD
    # -------------------------

    def add(
        self,
        label: str,
        quantity: int | None = 1,
        weight: int | None = 50,
        image: ImageRef | None = None,
    ) -> bool:
        label = (label or "").strip()
        if not label:
            log.debug("Rejected add: empty label")
            return False
        if self._label_taken(label):
            log.debug("Rejected add: duplicate label %r", label)
            return False

        self._choices.append(
            Choice(
                label=label,
                quantity=clamp_add_quantity(quantity),
                weight=clamp_weight(weight),
                image=image,
            )
        )
        self._changed()
        return True

    def edit(
        self,
        index: int,
        label: str,
        quantity: int | None,
        weight: int | None,
        image: ImageRef | None = None,
    ) -> bool:
        """
        Replace every field of the entry at `index`.
        The image is replaced too (pass the current one to keep it).
        """
        if not self._in_range(index):
            return False
        label = (label or "").strip()
        if not label:
            log.debug("Rejected edit: empty label")
            return False
        if self._label_taken(label, ignore_index=index):
            log.debug("Rejected edit: label %r belongs to another choice", label)
            return False

        self._choices[index] = Choice(
            label=label,
            quantity=clamp_edit_quantity(quantity),
            weight=clamp_weight(weight),
            image=image,
        )
        self._changed()
        return True

    def delete(self, index: int) -> bool:
        if not self._in_range(index):
            return False
        del self._choices[index]
        # positions shifted; an open edit form no longer points at its entry
        self._editing = None
        self._changed()
        return True

    def set_quantity(self, index: int, quantity: int | None) -> bool:
        if not self._in_range(index):
            return False
        self._choices[index] = replace(self._choices[index], quantity=clamp_edit_quantity(quantity))
        self._changed()
        return True

    def set_weight(self, index: int, weight: int | None) -> bool:
        if not self._in_range(index):
            return False
        self._choices[index] = replace(self._choices[index], weight=clamp_weight(weight))
        self._changed()
        return True

    def decrement(self, index: int) -> bool:
        if not self._in_range(index):
            return False
        c = self._choices[index]
        self._choices[index] = replace(c, quantity=max(0, c.quantity - 1))
        self._changed()
        return True

    def replace_all(self, choices: Iterable[Choice]) -> None:
        self._choices = list(choices)
        self._editing = None
        self._changed()

    # -------------------------
    # Edit session (one form open at a time)
    # -------------------------

    def begin_edit(self, index: int) -> Optional[Choice]:
        if not self._in_range(index):
            return None
        self._editing = index
        return self._choices[index]

    def save_edit(
        self,
        label: str,
        quantity: int | None,
        weight: int | None,
        image: ImageRef | None = None,
    ) -> bool:
        if self._editing is None:
            return False
        ok = self.edit(self._editing, label, quantity, weight, image)
        if ok:
            self._editing = None
        return ok

    def cancel_edit(self) -> None:
        self._editing = None
