"""
Per-speaker countdown clock.

The timer does not own a thread. Whoever drives the meeting calls
``on_tick()`` once per wall-clock second; the timer only decrements while
it is running.
"""

from __future__ import annotations


class CountdownTimer:
    """Pausable, resettable countdown with time extension.

    Negative inputs are clamped: ``reset`` never sets less than 0 and
    ``add_time`` never drives remaining below 0.
    """

    def __init__(self, allotment_seconds: int) -> None:
        self.allotment_seconds = max(0, allotment_seconds)
        self._remaining = self.allotment_seconds
        self._running = False

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Start counting down. No-op when already running or at 0."""
        if not self._running and self._remaining > 0:
            self._running = True

    def pause(self) -> None:
        self._running = False

    def reset(self, seconds: int | None = None) -> None:
        """Stop and set remaining to *seconds* (default: the original allotment)."""
        self._running = False
        value = self.allotment_seconds if seconds is None else seconds
        self._remaining = max(0, value)

    def add_time(self, seconds: int) -> None:
        """Extend (or shorten, if negative) without touching the running flag."""
        self._remaining = max(0, self._remaining + seconds)

    def on_tick(self) -> bool:
        """Advance one second.

        Returns:
            True exactly once, on the tick that brings a running timer to 0.
        """
        if not self._running:
            return False
        if self._remaining <= 1:
            self._remaining = 0
            self._running = False
            return True
        self._remaining -= 1
        return False
