"""Cancellable polling wait."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import TypeVar

from ec2attach.exceptions import WaitCancelled, WaitTimeout

logger = logging.getLogger(__name__)

T = TypeVar("T")


def wait_until(
    predicate: Callable[[], T | None],
    interval: float,
    timeout: float | None = None,
    cancel_event: threading.Event | None = None,
    description: str = "condition",
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """Poll predicate until it returns a truthy value.

    The predicate is checked immediately and then once per interval. Sleeping
    happens on cancel_event, so setting the event from another thread or a
    signal handler ends the wait at once.

    Parameters
    ----------
    predicate : Callable[[], T | None]
        Check returning a truthy result when the wait is over
    interval : float
        Seconds between checks
    timeout : float | None
        Maximum seconds to wait. None waits until cancelled
    cancel_event : threading.Event | None
        Event that aborts the wait when set
    description : str
        What is being waited for, used in log and error messages
    clock : Callable[[], float]
        Monotonic clock (default: time.monotonic)

    Returns
    -------
    T
        The first truthy predicate result

    Raises
    ------
    WaitTimeout
        If timeout elapses first
    WaitCancelled
        If cancel_event is set first
    """
    event = cancel_event if cancel_event is not None else threading.Event()
    deadline = clock() + timeout if timeout is not None else None
    attempt = 0

    while True:
        if event.is_set():
            raise WaitCancelled(f"Cancelled while waiting for {description}")

        attempt += 1
        result = predicate()
        if result:
            return result

        delay = interval
        if deadline is not None:
            remaining = deadline - clock()
            if remaining <= 0:
                raise WaitTimeout(f"Timed out after {timeout}s waiting for {description}")
            delay = min(delay, remaining)

        logger.debug("Waiting for %s (attempt %d), next check in %.1fs", description, attempt, delay)
        if event.wait(delay):
            raise WaitCancelled(f"Cancelled while waiting for {description}")
