"""Signal handling that turns SIGINT/SIGTERM into wait cancellation."""

from __future__ import annotations

import logging
import signal
import threading
import types
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

logger = logging.getLogger(__name__)


@contextmanager
def cancel_on_signals(
    cancel_event: threading.Event,
    signals: tuple[int, ...] = (signal.SIGINT, signal.SIGTERM),
) -> Iterator[threading.Event]:
    """Set cancel_event when one of signals arrives while the block runs.

    Previous handlers are restored on exit. Handlers can only be installed
    from the main thread; elsewhere the event is yielded unchanged and only
    explicit cancellation applies.

    Parameters
    ----------
    cancel_event : threading.Event
        Event to set on signal delivery
    signals : tuple[int, ...]
        Signals to intercept (default: SIGINT and SIGTERM)

    Yields
    ------
    threading.Event
        The cancel event
    """
    if threading.current_thread() is not threading.main_thread():
        yield cancel_event
        return

    def handler(signum: int, frame: types.FrameType | None) -> None:
        logger.warning("Received %s, cancelling", signal.Signals(signum).name)
        cancel_event.set()

    previous: dict[int, Any] = {}
    for signum in signals:
        previous[signum] = signal.signal(signum, handler)

    try:
        yield cancel_event
    finally:
        for signum, old_handler in previous.items():
            signal.signal(signum, old_handler)
