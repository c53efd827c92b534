# services/spin_service.py
from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Callable, Optional, Protocol

from domain.enums import SpinPhase
from domain.models import SpinSession
from services.choice_store import ChoiceStore
from services.draw_engine import RandomSource, draw
from services.spin_geometry import DEFAULT_EXTRA_ROTATIONS, target_angle


log = logging.getLogger(__name__)


class Effects(Protocol):
    def celebrate(self) -> None: ...

    def stop(self) -> None: ...


SessionListener = Callable[[SpinPhase, Optional[SpinSession]], None]


class SpinStateMachine:
    """
    idle -> spinning -> landed -> idle, one session at a time.

    - request_spin: draws once and fixes the target angle, then schedules settle
    - settle: timer driven; commits the single quantity decrement and signals effects
    - acknowledge: user driven; clears the result and returns to idle

    Delayed callbacks carry the session token and are dropped if the session
    they were scheduled for is gone.
    """

    def __init__(
        self,
        store: ChoiceStore,
        *,
        rng: RandomSource | None = None,
        duration_ms: int = 2000,
        extra_rotations: int = DEFAULT_EXTRA_ROTATIONS,
        effects: Effects | None = None,
        effect_cap_ms: int = 5000,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        if duration_ms < 0:
            raise ValueError("duration_ms must be >= 0")
        if extra_rotations < 1:
            raise ValueError("extra_rotations must be >= 1")
        if effect_cap_ms < 0:
            raise ValueError("effect_cap_ms must be >= 0")

        self._store = store
        self._rng = rng
        self._duration_s = duration_ms / 1000.0
        self._extra_rotations = int(extra_rotations)
        self._effects = effects
        self._effect_cap_s = effect_cap_ms / 1000.0
        self._loop = loop

        self._phase = SpinPhase.IDLE
        self._session: Optional[SpinSession] = None
        self._angle = 0.0
        self._tokens = itertools.count(1)

        self._settle_handle: Optional[asyncio.TimerHandle] = None
        self._effect_handle: Optional[asyncio.TimerHandle] = None
        self._listeners: list[SessionListener] = []

    # -------------------------
    # State
    # -------------------------

    @property
    def phase(self) -> SpinPhase:
        return self._phase

    @property
    def session(self) -> Optional[SpinSession]:
        return self._session

    @property
    def angle(self) -> float:
        return self._angle

    @property
    def duration_s(self) -> float:
        return self._duration_s

    @property
    def result(self) -> Optional[int]:
        if self._phase == SpinPhase.LANDED and self._session is not None:
            return self._session.winning_index
        return None

    def set_effects(self, effects: Effects | None) -> None:
        self._effects = effects

    def add_listener(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._phase, self._session)
            except Exception:
                log.exception("Spin listener failed (phase=%s)", self._phase.value)

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    # -------------------------
    # Transitions
    # -------------------------

    def request_spin(self) -> Optional[SpinSession]:
        """
        Start a session, or return None if the request is dropped
        (already busy, empty wheel, nothing left to win).
        """
        if self._phase != SpinPhase.IDLE:
            log.debug("Spin rejected: phase is %s", self._phase.value)
            return None

        snapshot = self._store.choices
        if not snapshot or not any(c.quantity > 0 for c in snapshot):
            log.debug("Spin rejected: no eligible choices")
            return None

        idx = draw(snapshot, self._rng)
        if idx is None:
            log.debug("Spin rejected: draw returned nothing")
            return None

        angle = target_angle(len(snapshot), idx, self._angle, extra_rotations=self._extra_rotations)

        session = SpinSession(
            token=next(self._tokens),
            winning_index=idx,
            target_angle=angle,
            snapshot=snapshot,
        )
        self._session = session
        self._angle = angle
        self._phase = SpinPhase.SPINNING

        self._settle_handle = self._get_loop().call_later(self._duration_s, self.settle, session.token)
        log.info("Spin %s started: index=%s label=%r angle=%.1f", session.token, idx, session.winner.label, angle)

        self._notify()
        return session

    def settle(self, token: int | None = None) -> bool:
        session = self._session
        if self._phase != SpinPhase.SPINNING or session is None:
            return False
        if token is not None and token != session.token:
            return False

        if self._settle_handle is not None:
            self._settle_handle.cancel()
            self._settle_handle = None

        # labels are unique; the list may have shifted since the draw
        label = session.winner.label
        idx = self._store.index_of(label)
        if idx is not None:
            self._store.decrement(idx)
        else:
            log.warning("Spin %s: winner %r was removed; nothing decremented", session.token, label)

        session.phase = SpinPhase.LANDED
        self._phase = SpinPhase.LANDED
        log.info("Spin %s landed on index %s (%r)", session.token, session.winning_index, label)

        self._notify()
        self._start_effects(session.token)
        return True

    def acknowledge(self) -> bool:
        if self._phase != SpinPhase.LANDED:
            return False
        self._teardown()
        self._notify()
        return True

    def close(self) -> None:
        """Drop any session and pending callbacks (e.g. the view is going away)."""
        was_idle = self._phase == SpinPhase.IDLE and self._session is None
        self._teardown()
        if not was_idle:
            self._notify()

    # -------------------------
    # Internals
    # -------------------------

    def _teardown(self) -> None:
        if self._settle_handle is not None:
            self._settle_handle.cancel()
            self._settle_handle = None
        self._stop_effects()
        self._session = None
        self._angle = 0.0
        self._phase = SpinPhase.IDLE

    def _start_effects(self, token: int) -> None:
        if self._effects is None:
            return
        try:
            self._effects.celebrate()
        except Exception:
            log.exception("Effects celebrate failed")
            return
        self._effect_handle = self._get_loop().call_later(self._effect_cap_s, self._effects_timeout, token)

    def _effects_timeout(self, token: int) -> None:
        if self._session is None or self._session.token != token:
            return
        self._effect_handle = None
        self._call_stop()

    def _stop_effects(self) -> None:
        if self._effect_handle is not None:
            self._effect_handle.cancel()
            self._effect_handle = None
            self._call_stop()

    def _call_stop(self) -> None:
        if self._effects is None:
            return
        try:
            self._effects.stop()
        except Exception:
            log.exception("Effects stop failed")
