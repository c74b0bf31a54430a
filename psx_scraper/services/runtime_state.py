from __future__ import annotations

import threading
import time

from psx_scraper.schemas.runtime import RuntimeStatus

UNINITIALIZED = "UNINITIALIZED"
LOADING = "LOADING"
READY = "READY"

_TRANSITIONS = {
    UNINITIALIZED: {LOADING},
    LOADING: {READY, UNINITIALIZED},
    READY: {UNINITIALIZED},
}


class RuntimeState:
    """Process-wide service lifecycle: UNINITIALIZED -> LOADING -> READY."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._status = RuntimeStatus()

    def _move(self, target: str) -> None:
        current = self._status.state
        if target not in _TRANSITIONS[current]:
            raise ValueError(f"INVALID_RUNTIME_TRANSITION:{current}->{target}")
        self._status.state = target

    def begin_loading(self) -> None:
        with self._lock:
            self._move(LOADING)
            self._status.started_at = int(time.time())
            self._status.last_error = None

    def mark_ready(self) -> None:
        with self._lock:
            self._move(READY)
            self._status.ready_at = int(time.time())

    def reset(self, error: str | None = None) -> None:
        with self._lock:
            if self._status.state != UNINITIALIZED:
                self._move(UNINITIALIZED)
            self._status.ready_at = None
            self._status.last_error = error

    @property
    def is_ready(self) -> bool:
        with self._lock:
            return self._status.state == READY

    def status(self) -> RuntimeStatus:
        with self._lock:
            return self._status.model_copy(deep=True)
