# src/upstream/connectivity.py
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)

HEALTHY_STATUS = "UP"


class ConnectivityState(str, Enum):
    CHECKING = "checking"
    ONLINE = "online"
    DEGRADED = "degraded"
    OFFLINE = "offline"


def state_from_probe(payload: Any) -> ConnectivityState:
    """A probe that answered: ONLINE only for an explicit "UP" status."""
    status = payload.get("status") if isinstance(payload, dict) else None
    return ConnectivityState.ONLINE if status == HEALTHY_STATUS else ConnectivityState.DEGRADED


Listener = Callable[[ConnectivityState, ConnectivityState], None]


class ConnectivityMonitor:
    """
    Tracks upstream availability.

    CHECKING -> ONLINE / DEGRADED / OFFLINE on each probe outcome, and back to
    CHECKING on an explicit re-probe. Leaving ONLINE fires the invalidation
    listeners before regular observers are told. There is no internal retry.
    """

    def __init__(self) -> None:
        self._state = ConnectivityState.CHECKING
        self._observers: List[Listener] = []
        self._invalidators: List[Callable[[ConnectivityState], None]] = []
        self.last_error: Optional[str] = None

    @property
    def state(self) -> ConnectivityState:
        return self._state

    @property
    def is_online(self) -> bool:
        return self._state is ConnectivityState.ONLINE

    def subscribe(self, callback: Listener) -> Callable[[], None]:
        self._observers.append(callback)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def on_invalidate(self, callback: Callable[[ConnectivityState], None]) -> None:
        self._invalidators.append(callback)

    def begin_check(self) -> ConnectivityState:
        return self._transition(ConnectivityState.CHECKING)

    def record_probe(self, payload: Any) -> ConnectivityState:
        self.last_error = None
        return self._transition(state_from_probe(payload))

    def record_failure(self, exc: BaseException) -> ConnectivityState:
        self.last_error = str(exc) or exc.__class__.__name__
        logger.warning("Health probe failed: %s", self.last_error)
        return self._transition(ConnectivityState.OFFLINE)

    def _transition(self, new: ConnectivityState) -> ConnectivityState:
        old = self._state
        if new is old:
            return new
        self._state = new
        logger.info("Connectivity %s -> %s", old.value, new.value)

        if old is ConnectivityState.ONLINE:
            for cb in list(self._invalidators):
                cb(new)
        for cb in list(self._observers):
            cb(old, new)
        return new
