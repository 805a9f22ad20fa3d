"""
MeetingRoomService — hosts live meeting rooms and folds results back.

Flow:  scrum record → open_room → MeetingStateMachine
       → first start (record IN_PROGRESS) → MeetingResult
       → _merge_result → scrum record (FINISHED), room evicted

Depends only on ports for storage and ticking. One machine per scrum id;
the live state never leaves the machine until the result is merged. Once
merged, the scrum record is the only copy and results are served from it.
"""

from __future__ import annotations

import threading
from typing import Dict, Optional

from core_intelligence.meeting_room.state_machine import (
    BackgroundRunner,
    MeetingStateMachine,
)
from domain.models import Comment, MeetingResult, Scrum, ScrumStatus
from ports.scrum_store import ScrumStorePort
from ports.tick_scheduler import TickSchedulerPort
from services.summary_service import SummaryService
from shared_utils.constants import Defaults, LogScope
from shared_utils.error_handler import MeetingStateError, NotFoundError, ValidationError
from shared_utils.logging_utils import get_scoped_logger
from shared_utils.validation import InputValidator, validate_input


logger = get_scoped_logger(LogScope.MEETING_ROOM)


class MeetingRoomService:
    """Registry of open rooms plus scrum-record mutations around them."""

    def __init__(
        self,
        *,
        scrum_store: ScrumStorePort,
        scheduler: TickSchedulerPort,
        summary_service: SummaryService,
        tick_interval: float = Defaults.TICK_INTERVAL_SECONDS,
        run_in_background: Optional[BackgroundRunner] = None,
    ) -> None:
        self._store = scrum_store
        self._scheduler = scheduler
        self._summary_service = summary_service
        self._tick_interval = tick_interval
        self._run_in_background = run_in_background
        self._rooms: Dict[str, MeetingStateMachine] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Rooms
    # ------------------------------------------------------------------

    def open_room(self, scrum_id: str) -> MeetingStateMachine:
        """Load the scrum and return its live room, creating it if needed.

        The record stays NOT_STARTED until somebody starts the meeting.

        Raises:
            NotFoundError: Unknown scrum id.
            MeetingStateError: The scrum has already finished.
            ValidationError: The scrum cannot be run (no attendees, ...).
        """
        with self._lock:
            room = self._rooms.get(scrum_id)
            if room is not None:
                return room

            scrum = self._require_scrum(scrum_id)
            if scrum.status == ScrumStatus.FINISHED:
                raise MeetingStateError("Scrum has already finished", scrum_id=scrum_id)

            room = MeetingStateMachine(
                scrum,
                scheduler=self._scheduler,
                summary_service=self._summary_service,
                tick_interval=self._tick_interval,
                run_in_background=self._run_in_background,
                on_started=self._mark_started,
                on_finished=self._merge_result,
            )
            self._rooms[scrum_id] = room

        logger.info("meeting_room_opened", scrum_id=scrum_id, attendees=len(scrum.attendees))
        return room

    def get_room(self, scrum_id: str) -> MeetingStateMachine:
        """Return the live room.

        Raises:
            MeetingStateError: The meeting has finished and its room is gone.
            NotFoundError: No room was opened for this scrum.
        """
        with self._lock:
            room = self._rooms.get(scrum_id)
        if room is not None:
            return room

        scrum = self._store.get_scrum(scrum_id)
        if scrum is not None and scrum.status == ScrumStatus.FINISHED:
            raise MeetingStateError("Scrum has already finished", scrum_id=scrum_id)
        raise NotFoundError("Meeting room", scrum_id)

    def get_result(self, scrum_id: str) -> Optional[MeetingResult]:
        """The meeting result, or None while the room is running or summarizing."""
        with self._lock:
            room = self._rooms.get(scrum_id)
        if room is not None:
            return room.result()

        scrum = self._require_scrum(scrum_id)
        if scrum.status != ScrumStatus.FINISHED:
            raise NotFoundError("Meeting room", scrum_id)
        return MeetingResult(
            scrum_id=scrum.id,
            transcript=scrum.transcript or "",
            summary=scrum.summary,
            speaker_talk_times=dict(scrum.speaker_talk_times),
            action_items=list(scrum.action_items),
            notes=scrum.notes,
            ended_early=bool(scrum.ended_early),
        )

    def close_room(self, scrum_id: str) -> None:
        """Tear the room down and forget it. Unknown ids are ignored."""
        with self._lock:
            room = self._rooms.pop(scrum_id, None)
        if room is not None:
            room.close()

    def close_all(self) -> None:
        with self._lock:
            rooms = list(self._rooms.values())
            self._rooms.clear()
        for room in rooms:
            room.close()

    @property
    def open_rooms(self) -> int:
        with self._lock:
            return len(self._rooms)

    # ------------------------------------------------------------------
    # Scrum record operations
    # ------------------------------------------------------------------

    def get_scrum(self, scrum_id: str) -> Scrum:
        return self._require_scrum(scrum_id)

    def toggle_action_item(self, scrum_id: str, index: int) -> Scrum:
        """Flip one action item's completed flag."""
        scrum = self._require_scrum(scrum_id)
        if not 0 <= index < len(scrum.action_items):
            raise ValidationError(
                f"Action item index {index} out of range",
                context={"scrum_id": scrum_id, "count": len(scrum.action_items)},
            )
        item = scrum.action_items[index]
        item.completed = not item.completed
        self._store.put_scrum(scrum)
        logger.info(
            "action_item_toggled",
            scrum_id=scrum_id,
            index=index,
            completed=item.completed,
        )
        return scrum

    def update_notes(self, scrum_id: str, notes: str) -> None:
        """Collaborative notes: kept by the live room, or written to a finished record."""
        with self._lock:
            room = self._rooms.get(scrum_id)
        if room is not None:
            room.update_notes(notes)
            return

        scrum = self._require_scrum(scrum_id)
        if scrum.status != ScrumStatus.FINISHED:
            raise NotFoundError("Meeting room", scrum_id)
        scrum.notes = notes or ""
        self._store.put_scrum(scrum)

    @validate_input({
        "author": lambda x: InputValidator.validate_non_empty_string(x, "author"),
        "text": lambda x: InputValidator.validate_non_empty_string(x, "text"),
    })
    def add_comment(self, scrum_id: str, *, author: str, text: str) -> Scrum:
        scrum = self._require_scrum(scrum_id)
        scrum.comments.append(Comment(author=author, text=text))
        self._store.put_scrum(scrum)
        logger.info("comment_added", scrum_id=scrum_id, comments=len(scrum.comments))
        return scrum

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _mark_started(self, scrum_id: str) -> None:
        scrum = self._require_scrum(scrum_id)
        if scrum.status == ScrumStatus.NOT_STARTED:
            scrum.status = ScrumStatus.IN_PROGRESS
            self._store.put_scrum(scrum)

    def _merge_result(self, result: MeetingResult) -> None:
        scrum = self._require_scrum(result.scrum_id)
        scrum.transcript = result.transcript
        scrum.summary = result.summary
        scrum.speaker_talk_times = dict(result.speaker_talk_times)
        scrum.action_items = list(result.action_items)
        scrum.notes = result.notes
        scrum.ended_early = result.ended_early
        scrum.status = ScrumStatus.FINISHED
        self._store.put_scrum(scrum)

        with self._lock:
            room = self._rooms.pop(result.scrum_id, None)
        if room is not None:
            room.close()

        logger.info(
            "meeting_result_merged",
            scrum_id=result.scrum_id,
            ended_early=result.ended_early,
            action_items=len(result.action_items),
        )

    def _require_scrum(self, scrum_id: str) -> Scrum:
        scrum = self._store.get_scrum(scrum_id)
        if scrum is None:
            raise NotFoundError("Scrum", scrum_id)
        return scrum
