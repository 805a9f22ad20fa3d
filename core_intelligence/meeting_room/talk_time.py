"""
Talk-time accumulator.

Credits one second per tick to whoever holds the floor while the meeting is
active. Attendees are keyed by email; display names are only used when
projecting a snapshot for presentation.
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional

from domain.models import Attendee


class TalkTimeAccumulator:
    """Cumulative seconds per attendee email."""

    def __init__(self, attendees: Iterable[Attendee]) -> None:
        self._seconds: Dict[str, int] = {a.email: 0 for a in attendees}
        self._floor: Optional[str] = None

    def set_floor(self, email: Optional[str]) -> None:
        """Hand the floor to *email* (None clears it)."""
        self._floor = email

    def on_tick(self, active: bool) -> None:
        if not active or self._floor is None:
            return
        self._seconds[self._floor] = self._seconds.get(self._floor, 0) + 1

    def total(self) -> int:
        return sum(self._seconds.values())

    def by_name(self, attendees: Iterable[Attendee]) -> Dict[str, int]:
        """Project to display name -> seconds, in rotation order.

        Attendees sharing a display name are summed into one entry.
        """
        result: Dict[str, int] = {}
        for attendee in attendees:
            result[attendee.name] = result.get(attendee.name, 0) + self._seconds.get(attendee.email, 0)
        return result
