"""Tests for the cancellable polling wait."""

import threading

import pytest

from ec2attach.core.waiter import wait_until
from ec2attach.exceptions import WaitCancelled, WaitTimeout


class FakeEvent:
    """threading.Event stand-in that advances a fake clock instead of sleeping."""

    def __init__(self, clock: list[float]) -> None:
        self.clock = clock
        self.waits: list[float] = []
        self._set = False

    def is_set(self) -> bool:
        return self._set

    def set(self) -> None:
        self._set = True

    def wait(self, timeout: float) -> bool:
        self.waits.append(timeout)
        self.clock[0] += timeout
        return self._set


def test_returns_first_truthy_result_without_waiting():
    """Test an already true condition returns immediately."""
    clock = [0.0]
    event = FakeEvent(clock)

    assert wait_until(lambda: "/dev/xvdf", interval=3, cancel_event=event) == "/dev/xvdf"
    assert event.waits == []


def test_polls_at_fixed_interval_until_true():
    """Test the predicate is retried every interval."""
    clock = [0.0]
    event = FakeEvent(clock)
    results = iter([None, None, None, "ready"])

    result = wait_until(
        lambda: next(results),
        interval=3,
        cancel_event=event,
        clock=lambda: clock[0],
    )

    assert result == "ready"
    assert event.waits == [3, 3, 3]


def test_unbounded_wait_keeps_polling():
    """Test no timeout means polling continues past any fixed bound."""
    clock = [0.0]
    event = FakeEvent(clock)
    calls = {"count": 0}

    def predicate():
        calls["count"] += 1
        return calls["count"] > 1000

    assert wait_until(predicate, interval=3, cancel_event=event, clock=lambda: clock[0])
    assert clock[0] == 3000


def test_timeout_raises_wait_timeout():
    """Test the deadline ends the wait with WaitTimeout."""
    clock = [0.0]
    event = FakeEvent(clock)

    with pytest.raises(WaitTimeout, match="device /dev/sdf"):
        wait_until(
            lambda: None,
            interval=3,
            timeout=10,
            cancel_event=event,
            description="device /dev/sdf",
            clock=lambda: clock[0],
        )

    assert event.waits == [3, 3, 3, 1]


def test_zero_timeout_checks_once():
    """Test a zero timeout still evaluates the predicate once."""
    calls = []

    with pytest.raises(WaitTimeout):
        wait_until(lambda: calls.append(1), interval=3, timeout=0)

    assert calls == [1]


def test_cancel_before_start_raises_wait_cancelled():
    """Test an already set event cancels before the first check."""
    event = threading.Event()
    event.set()
    calls = []

    with pytest.raises(WaitCancelled):
        wait_until(lambda: calls.append(1), interval=3, cancel_event=event)

    assert calls == []


def test_cancel_from_another_thread_interrupts_sleep():
    """Test setting the event wakes a sleeping wait."""
    event = threading.Event()
    timer = threading.Timer(0.05, event.set)
    timer.start()

    try:
        with pytest.raises(WaitCancelled):
            wait_until(lambda: None, interval=30, cancel_event=event)
    finally:
        timer.cancel()
