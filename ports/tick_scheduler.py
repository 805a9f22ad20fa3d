"""
Port interface for the periodic tick that drives a live meeting room.

Implementations: ThreadingTickScheduler (adapters/)
"""

from __future__ import annotations

from typing import Callable, Protocol, runtime_checkable


@runtime_checkable
class TickHandle(Protocol):
    """Handle to one scheduled periodic callback."""

    def cancel(self) -> None:
        """Stop firing. Idempotent."""
        ...

    @property
    def cancelled(self) -> bool:
        ...


@runtime_checkable
class TickSchedulerPort(Protocol):
    """Schedules a callback every *interval* seconds until cancelled."""

    def schedule(self, callback: Callable[[], None], interval: float) -> TickHandle:
        ...
