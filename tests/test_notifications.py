from __future__ import annotations

import threading

from mobdevctl.core.notifications import (
    NotificationState,
    get_notification_state,
    reset_notification_state,
)


def test_starts_disabled() -> None:
    assert NotificationState().enabled is False


def test_transition_fires_once_per_change() -> None:
    events: list[bool] = []
    state = NotificationState()
    state.subscribe(events.append)

    assert state.set(True) is True
    assert state.set(True) is False
    assert state.set(False) is True
    assert state.set(False) is False
    assert events == [True, False]


def test_disable_when_already_disabled_fires_nothing() -> None:
    events: list[bool] = []
    state = NotificationState()
    state.subscribe(events.append)

    assert state.set(False) is False
    assert events == []


def test_failing_listener_does_not_block_state_change() -> None:
    seen: list[bool] = []
    state = NotificationState()

    def _broken(enabled: bool) -> None:
        raise RuntimeError("client disconnected")

    state.subscribe(_broken)
    state.subscribe(seen.append)

    assert state.set(True) is True
    assert state.enabled is True
    assert seen == [True]


def test_listener_may_read_state() -> None:
    state = NotificationState()
    observed: list[bool] = []
    state.subscribe(lambda _enabled: observed.append(state.enabled))

    state.set(True)
    assert observed == [True]


def test_concurrent_enables_fire_exactly_once() -> None:
    events: list[bool] = []
    state = NotificationState()
    state.subscribe(events.append)
    barrier = threading.Barrier(8)

    def _enable() -> None:
        barrier.wait()
        state.set(True)

    threads = [threading.Thread(target=_enable) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert events == [True]


def test_singleton_lifecycle() -> None:
    reset_notification_state()
    first = get_notification_state()
    assert get_notification_state() is first
    first.set(True)

    reset_notification_state()
    second = get_notification_state()
    assert second is not first
    assert second.enabled is False
    reset_notification_state()
