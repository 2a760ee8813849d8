"""Process-wide notification on/off state.

The state starts disabled when the process starts and is only changed by the
Notifications command. ``get_notification_state`` hands out the single
instance; ``reset_notification_state`` discards it, which is how a service
restart (and the test suite) returns to the initial state.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

LOGGER = logging.getLogger(__name__)

Listener = Callable[[bool], None]


class NotificationState:
    def __init__(self) -> None:
        # Listeners run under the lock; reentrant so they may read `enabled`.
        self._lock = threading.RLock()
        self._enabled = False
        self._listeners: list[Listener] = []

    @property
    def enabled(self) -> bool:
        with self._lock:
            return self._enabled

    def subscribe(self, listener: Listener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def set(self, enable: bool) -> bool:
        """Apply ``enable``; return True only when the state actually changed."""
        with self._lock:
            if self._enabled == enable:
                return False
            self._enabled = enable
            listeners = tuple(self._listeners)
            self._notify(enable, listeners)
        return True

    def _notify(self, enabled: bool, listeners: tuple[Listener, ...]) -> None:
        LOGGER.info("Notifications %s", "enabled" if enabled else "disabled")
        for listener in listeners:
            try:
                listener(enabled)
            except Exception:
                LOGGER.exception("Notification listener %r failed", listener)


_STATE: NotificationState | None = None
_STATE_LOCK = threading.Lock()


def get_notification_state() -> NotificationState:
    global _STATE
    with _STATE_LOCK:
        if _STATE is None:
            _STATE = NotificationState()
        return _STATE


def reset_notification_state() -> None:
    global _STATE
    with _STATE_LOCK:
        _STATE = None
