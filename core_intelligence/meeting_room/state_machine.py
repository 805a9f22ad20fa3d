"""
Meeting room state machine.

Drives one live, time-boxed round-robin standup::

    NOT_STARTED -> IN_PROGRESS <-> PAUSED -> FINISHED

The machine owns the countdown timer, the talk-time accumulator, the
transcript log and the periodic tick that feeds the first two. Every public
action and every tick runs under one re-entrant lock. Rejected actions return
False and are logged; they never raise.

A tick is bound to the generation it was scheduled in. Pausing, ending and
closing bump the generation, so a tick that was already waiting on the lock
when the action ran is discarded instead of decrementing a paused timer or
advancing the rotation a second time.
"""

from __future__ import annotations

import threading
from typing import Callable, List, Optional

from core_intelligence.meeting_room.countdown import CountdownTimer
from core_intelligence.meeting_room.talk_time import TalkTimeAccumulator
from core_intelligence.meeting_room.transcript_log import TranscriptLog
from core_intelligence.parser.summary_parser import extract_action_items
from domain.models import (
    ActionItem,
    Attendee,
    MeetingResult,
    MeetingSnapshot,
    MeetingStatus,
    Scrum,
)
from ports.tick_scheduler import TickHandle, TickSchedulerPort
from services.summary_service import SummaryService, is_error_summary
from shared_utils.constants import Defaults, LogScope
from shared_utils.error_handler import ValidationError
from shared_utils.logging_utils import get_scoped_logger
from shared_utils.validation import InputValidator


logger = get_scoped_logger(LogScope.MEETING_ROOM)

SnapshotListener = Callable[[MeetingSnapshot], None]
ResultListener = Callable[[MeetingResult], None]
StartListener = Callable[[str], None]
BackgroundRunner = Callable[[Callable[[], None], str], None]


def _run_on_daemon_thread(fn: Callable[[], None], name: str) -> None:
    threading.Thread(target=fn, daemon=True, name=name).start()


class MeetingStateMachine:
    """Live state of one scrum while its meeting room is open.

    Args:
        scrum: The scheduled record. Its attendee list is copied and fixed
            as the rotation for the lifetime of the machine.
        scheduler: Source of the periodic tick.
        summary_service: Summarizer invoked once the meeting finishes.
        tick_interval: Seconds between ticks (1.0 in production).
        run_in_background: Runs the summary call off the caller's thread.
        on_started: Receives the scrum id on the first start (not on resume).
        on_finished: Receives the MeetingResult once the summary is in.

    Raises:
        ValidationError: If the scrum has no attendees or a non-positive
            duration or per-speaker allotment.
    """

    def __init__(
        self,
        scrum: Scrum,
        *,
        scheduler: TickSchedulerPort,
        summary_service: SummaryService,
        tick_interval: float = Defaults.TICK_INTERVAL_SECONDS,
        run_in_background: Optional[BackgroundRunner] = None,
        on_started: Optional[StartListener] = None,
        on_finished: Optional[ResultListener] = None,
    ) -> None:
        if not scrum.attendees:
            raise ValidationError(
                "A meeting needs at least one attendee",
                context={"scrum_id": scrum.id},
            )
        InputValidator.validate_positive_int(scrum.time_per_speaker_seconds, "time_per_speaker_seconds")
        InputValidator.validate_positive_int(scrum.duration_minutes, "duration_minutes")

        self.scrum_id = scrum.id
        self._attendees: List[Attendee] = [a.model_copy() for a in scrum.attendees]
        self._scheduler = scheduler
        self._summary_service = summary_service
        self._tick_interval = tick_interval
        self._run_in_background = run_in_background or _run_on_daemon_thread
        self._on_started = on_started
        self._on_finished = on_finished

        self._lock = threading.RLock()
        self._status = MeetingStatus.NOT_STARTED
        self._index = 0
        self._timer = CountdownTimer(scrum.time_per_speaker_seconds)
        self._talk = TalkTimeAccumulator(self._attendees)
        self._transcript = TranscriptLog()
        self._draft = ""
        self._notes = scrum.notes or ""

        self._tick_handle: Optional[TickHandle] = None
        self._generation = 0
        self._closed = False

        self._ended_early = False
        self._summarizing = False
        self._summary: Optional[str] = None
        self._action_items: List[ActionItem] = []
        self._result_ready = threading.Event()
        self._listeners: List[SnapshotListener] = []

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def status(self) -> MeetingStatus:
        return self._status

    @property
    def attendees(self) -> List[Attendee]:
        return list(self._attendees)

    @property
    def current_speaker(self) -> Optional[Attendee]:
        if self._status == MeetingStatus.FINISHED:
            return None
        return self._attendees[self._index]

    @property
    def remaining_seconds(self) -> int:
        return self._timer.remaining

    @property
    def transcript(self) -> TranscriptLog:
        return self._transcript

    def talk_times(self) -> dict:
        """Display name -> seconds spoken so far."""
        with self._lock:
            return self._talk.by_name(self._attendees)

    def snapshot(self) -> MeetingSnapshot:
        with self._lock:
            return MeetingSnapshot(
                scrum_id=self.scrum_id,
                status=self._status,
                current_speaker=self.current_speaker,
                speaker_index=self._index,
                remaining_seconds=self._timer.remaining,
                allotment_seconds=self._timer.allotment_seconds,
                timer_running=self._timer.running,
                talk_times=self._talk.by_name(self._attendees),
                draft=self._draft,
                summarizing=self._summarizing,
                summary=self._summary,
            )

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Receive a snapshot after every transition and tick.

        Returns:
            A callable that removes the listener.
        """
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def result(self) -> Optional[MeetingResult]:
        """The finished meeting's result, or None while running or summarizing."""
        with self._lock:
            if not self._result_ready.is_set():
                return None
            return self._build_result()

    def _build_result(self) -> MeetingResult:
        with self._lock:
            return MeetingResult(
                scrum_id=self.scrum_id,
                transcript=self._transcript.flatten(),
                summary=self._summary,
                speaker_talk_times=self._talk.by_name(self._attendees),
                action_items=[item.model_copy() for item in self._action_items],
                notes=self._notes,
                ended_early=self._ended_early,
            )

    def wait_for_result(self, timeout: Optional[float] = None) -> Optional[MeetingResult]:
        self._result_ready.wait(timeout)
        return self.result()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(self) -> bool:
        """Start (from NOT_STARTED) or resume (from PAUSED)."""
        with self._lock:
            if self._closed or self._status not in (MeetingStatus.NOT_STARTED, MeetingStatus.PAUSED):
                return self._reject("start")

            resumed = self._status == MeetingStatus.PAUSED
            self._status = MeetingStatus.IN_PROGRESS
            if not resumed and self._on_started is not None:
                self._notify_started()
            self._talk.set_floor(self._attendees[self._index].email)
            logger.info(
                "meeting_resumed" if resumed else "meeting_started",
                scrum_id=self.scrum_id,
                speaker=self._attendees[self._index].name,
                remaining_seconds=self._timer.remaining,
            )

            if self._timer.remaining == 0:
                # Shortened to zero while paused: the turn is already over.
                self._advance(reason="expired")
                return True

            self._timer.start()
            self._schedule_ticks()
            self._publish()
            return True

    def pause(self) -> bool:
        with self._lock:
            if self._status != MeetingStatus.IN_PROGRESS:
                return self._reject("pause")

            self._status = MeetingStatus.PAUSED
            self._timer.pause()
            self._cancel_ticks()
            logger.info(
                "meeting_paused",
                scrum_id=self.scrum_id,
                remaining_seconds=self._timer.remaining,
            )
            self._publish()
            return True

    def next_speaker(self, expected_index: Optional[int] = None) -> bool:
        """Hand the floor to the next attendee (or finish after the last).

        Args:
            expected_index: Rotation index of the turn the caller means to
                end. When the floor has already moved on (for example the
                timer expired first) the request is rejected instead of
                skipping the incoming speaker.
        """
        with self._lock:
            if self._status != MeetingStatus.IN_PROGRESS:
                return self._reject("next_speaker")
            if expected_index is not None and expected_index != self._index:
                return self._reject("next_speaker")
            self._advance(reason="manual")
            return True

    def end_meeting(self) -> bool:
        """Finish immediately, whatever the rotation position."""
        with self._lock:
            if self._status == MeetingStatus.FINISHED:
                return self._reject("end_meeting")
            self._flush_draft()
            self._finish(ended_early=True)
            return True

    def log_utterance(self) -> bool:
        """Commit the draft to the transcript under the current speaker."""
        with self._lock:
            if self._status != MeetingStatus.IN_PROGRESS:
                return self._reject("log_utterance")
            self._flush_draft()
            self._publish()
            return True

    def set_draft(self, text: str) -> bool:
        with self._lock:
            if self._status == MeetingStatus.FINISHED:
                return self._reject("set_draft")
            self._draft = text or ""
            return True

    def add_time(self, seconds: int = Defaults.EXTEND_STEP_SECONDS) -> bool:
        """Extend (or shorten) the current speaker's countdown."""
        with self._lock:
            if self._status not in (MeetingStatus.IN_PROGRESS, MeetingStatus.PAUSED):
                return self._reject("add_time")
            self._timer.add_time(seconds)
            logger.info(
                "speaker_time_adjusted",
                scrum_id=self.scrum_id,
                delta_seconds=seconds,
                remaining_seconds=self._timer.remaining,
            )
            if self._status == MeetingStatus.IN_PROGRESS and self._timer.remaining == 0:
                self._advance(reason="expired")
            else:
                self._publish()
            return True

    def update_notes(self, notes: str) -> bool:
        with self._lock:
            self._notes = notes or ""
            return True

    def close(self) -> None:
        """Tear down: stop all ticking. Idempotent; the room cannot restart."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._timer.pause()
            self._cancel_ticks()
            logger.info("meeting_room_closed", scrum_id=self.scrum_id, status=self._status.value)

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def _on_tick(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._status != MeetingStatus.IN_PROGRESS:
                return

            # Credit the outgoing second before the timer can move the floor.
            self._talk.on_tick(active=True)
            if self._timer.on_tick():
                self._advance(reason="expired")
            else:
                self._publish()

    def _schedule_ticks(self) -> None:
        self._cancel_ticks()
        generation = self._generation
        self._tick_handle = self._scheduler.schedule(
            lambda: self._on_tick(generation), self._tick_interval
        )

    def _cancel_ticks(self) -> None:
        self._generation += 1
        if self._tick_handle is not None:
            self._tick_handle.cancel()
            self._tick_handle = None

    # ------------------------------------------------------------------
    # Internal transitions (lock held)
    # ------------------------------------------------------------------

    def _advance(self, *, reason: str) -> None:
        outgoing = self._attendees[self._index]
        self._flush_draft()

        next_index = self._index + 1
        if next_index >= len(self._attendees):
            logger.info("rotation_exhausted", scrum_id=self.scrum_id, last_speaker=outgoing.name)
            self._finish(ended_early=False)
            return

        self._index = next_index
        incoming = self._attendees[next_index]
        self._talk.set_floor(incoming.email)
        self._timer.reset()
        self._timer.start()
        if self._tick_handle is None:
            self._schedule_ticks()

        logger.info(
            "speaker_advanced",
            scrum_id=self.scrum_id,
            reason=reason,
            outgoing=outgoing.name,
            incoming=incoming.name,
            speaker_index=next_index,
        )
        self._publish()

    def _notify_started(self) -> None:
        try:
            self._on_started(self.scrum_id)
        except Exception as exc:
            logger.error(
                "meeting_start_handler_failed",
                scrum_id=self.scrum_id,
                error_type=type(exc).__name__,
                error=str(exc),
            )

    def _flush_draft(self) -> None:
        if self._draft.strip():
            self._transcript.append(self._attendees[self._index].name, self._draft)
        self._draft = ""

    def _finish(self, *, ended_early: bool) -> None:
        self._status = MeetingStatus.FINISHED
        self._ended_early = ended_early
        self._timer.pause()
        self._talk.set_floor(None)
        self._cancel_ticks()
        self._summarizing = True

        transcript_text = self._transcript.flatten()
        logger.info(
            "meeting_finished",
            scrum_id=self.scrum_id,
            ended_early=ended_early,
            utterances=len(self._transcript),
            total_talk_seconds=self._talk.total(),
        )
        self._publish()
        self._run_in_background(
            lambda: self._summarize(transcript_text),
            f"summary-{self.scrum_id[:8]}",
        )

    def _summarize(self, transcript_text: str) -> None:
        summary = self._summary_service.summarize(transcript_text)
        action_items = [] if is_error_summary(summary) else extract_action_items(summary)

        with self._lock:
            self._summary = summary
            self._action_items = action_items
            result = self._build_result()
        logger.info(
            "meeting_summary_ready",
            scrum_id=self.scrum_id,
            action_items=len(action_items),
            degraded=is_error_summary(summary),
        )

        # The result becomes visible only after the handler has persisted it.
        if self._on_finished is not None:
            try:
                self._on_finished(result)
            except Exception as exc:
                logger.error(
                    "meeting_result_handler_failed",
                    scrum_id=self.scrum_id,
                    error_type=type(exc).__name__,
                    error=str(exc),
                )

        with self._lock:
            self._summarizing = False
            self._result_ready.set()
            self._publish()

    def _publish(self) -> None:
        if not self._listeners:
            return
        snap = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception as exc:
                logger.error(
                    "snapshot_listener_failed",
                    scrum_id=self.scrum_id,
                    error_type=type(exc).__name__,
                    error=str(exc),
                )

    def _reject(self, action: str) -> bool:
        logger.warning(
            "transition_rejected",
            scrum_id=self.scrum_id,
            action=action,
            status=self._status.value,
            closed=self._closed,
        )
        return False
