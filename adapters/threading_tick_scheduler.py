"""
Thread-backed adapter for TickSchedulerPort.

Each scheduled callback gets its own daemon thread that waits on a
``threading.Event`` between ticks, so ``cancel()`` wakes the thread at once
instead of letting a pending sleep run out.
"""

from __future__ import annotations

import threading
import time
from typing import Callable

from shared_utils.logging_utils import get_scoped_logger
from shared_utils.constants import LogScope


logger = get_scoped_logger(LogScope.SCHEDULER)


class ThreadTickHandle:
    """Handle for one periodic callback running on a daemon thread."""

    def __init__(self, callback: Callable[[], None], interval: float, name: str) -> None:
        self._callback = callback
        self._interval = interval
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True, name=name)

    def start(self) -> None:
        self._thread.start()

    def cancel(self) -> None:
        self._stop.set()

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()

    def _run(self) -> None:
        # Deadline-based so callback time does not accumulate drift.
        next_fire = time.monotonic() + self._interval
        while not self._stop.wait(max(0.0, next_fire - time.monotonic())):
            try:
                self._callback()
            except Exception as exc:
                logger.error(
                    "tick_callback_failed",
                    thread=self._thread.name,
                    error_type=type(exc).__name__,
                    error=str(exc),
                )
            next_fire += self._interval


class ThreadingTickScheduler:
    """Creates one ``ThreadTickHandle`` per ``schedule()`` call."""

    def __init__(self, name_prefix: str = "tick") -> None:
        self._name_prefix = name_prefix
        self._counter = 0
        self._lock = threading.Lock()

    def schedule(self, callback: Callable[[], None], interval: float) -> ThreadTickHandle:
        with self._lock:
            self._counter += 1
            name = f"{self._name_prefix}-{self._counter}"
        handle = ThreadTickHandle(callback, interval, name)
        handle.start()
        logger.debug("tick_scheduled", thread=name, interval=interval)
        return handle
