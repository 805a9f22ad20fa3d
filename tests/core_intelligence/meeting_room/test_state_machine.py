"""Tests for core_intelligence.meeting_room.state_machine.

Ticks are fired by the ManualTickScheduler fixture, one call per simulated
second. The summary runs inline unless a test says otherwise.
"""

import threading
from unittest.mock import MagicMock

import pytest

from adapters.threading_tick_scheduler import ThreadingTickScheduler
from core_intelligence.meeting_room.state_machine import MeetingStateMachine
from domain.models import MeetingStatus
from services.summary_service import SummaryService
from shared_utils.constants import SummaryMessages
from shared_utils.error_handler import ValidationError


@pytest.fixture()
def build(scheduler, summary_service, inline_runner, scrum_factory):
    def _build(scrum=None, **kwargs):
        kwargs.setdefault("scheduler", scheduler)
        kwargs.setdefault("summary_service", summary_service)
        kwargs.setdefault("run_in_background", inline_runner)
        return MeetingStateMachine(scrum or scrum_factory(), **kwargs)
    return _build


def _recorder(machine):
    snapshots = []
    machine.subscribe(snapshots.append)
    return snapshots


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

class TestConstruction:
    def test_initial_state(self, build):
        machine = build()
        assert machine.status == MeetingStatus.NOT_STARTED
        assert machine.current_speaker.name == "Alice"
        assert machine.remaining_seconds == 10
        assert machine.talk_times() == {"Alice": 0, "Bob": 0, "Carol": 0}
        assert machine.result() is None

    def test_no_attendees_rejected(self, build, scrum_factory):
        with pytest.raises(ValidationError):
            build(scrum_factory(names=()))

    def test_non_positive_allotment_rejected(self, build, scrum_factory):
        with pytest.raises(ValidationError):
            build(scrum_factory(seconds=0))

    def test_non_positive_duration_rejected(self, build, scrum_factory):
        with pytest.raises(ValidationError):
            build(scrum_factory(duration_minutes=0))

    def test_attendee_list_is_copied(self, build, scrum_factory):
        scrum = scrum_factory()
        machine = build(scrum)
        scrum.attendees.pop()
        assert len(machine.attendees) == 3


# ---------------------------------------------------------------------------
# Start / pause / resume
# ---------------------------------------------------------------------------

class TestStartPause:
    def test_start_schedules_ticks(self, build, scheduler):
        machine = build()
        assert machine.start() is True
        assert machine.status == MeetingStatus.IN_PROGRESS
        assert len(scheduler.active) == 1
        assert scheduler.active[0].interval == 1.0

    def test_start_twice_rejected(self, build, scheduler):
        machine = build()
        machine.start()
        assert machine.start() is False
        assert len(scheduler.active) == 1

    def test_pause_before_start_rejected(self, build):
        assert build().pause() is False

    def test_pause_and_resume_preserve_remaining(self, build, scheduler):
        machine = build()
        machine.start()
        scheduler.tick(3)
        assert machine.pause() is True
        assert machine.status == MeetingStatus.PAUSED
        assert machine.remaining_seconds == 7
        assert scheduler.active == []

        scheduler.tick(5)
        assert machine.remaining_seconds == 7
        assert machine.talk_times()["Alice"] == 3

        assert machine.start() is True
        assert machine.remaining_seconds == 7
        scheduler.tick(2)
        assert machine.remaining_seconds == 5
        assert machine.talk_times()["Alice"] == 5

    def test_add_time_then_pause(self, build, scheduler):
        machine = build()
        machine.start()
        scheduler.tick(2)
        assert machine.add_time(30) is True
        assert machine.remaining_seconds == 38
        machine.pause()
        scheduler.tick(4)
        assert machine.remaining_seconds == 38

    def test_add_time_default_step(self, build):
        machine = build()
        machine.start()
        machine.add_time()
        assert machine.remaining_seconds == 40

    def test_add_time_before_start_rejected(self, build):
        assert build().add_time(30) is False

    def test_resume_at_zero_advances_immediately(self, build, scheduler):
        machine = build()
        machine.start()
        machine.pause()
        machine.add_time(-100)
        assert machine.remaining_seconds == 0

        assert machine.start() is True
        assert machine.current_speaker.name == "Bob"
        assert machine.remaining_seconds == 10
        assert len(scheduler.active) == 1

    def test_cutting_time_to_zero_hands_over(self, build, scheduler):
        machine = build()
        machine.start()
        scheduler.tick(3)
        assert machine.add_time(-100) is True
        assert machine.current_speaker.name == "Bob"
        assert machine.remaining_seconds == 10
        scheduler.tick(1)
        assert machine.talk_times() == {"Alice": 3, "Bob": 1, "Carol": 0}

    def test_started_handler_fires_on_first_start_only(self, build):
        on_started = MagicMock()
        machine = build(on_started=on_started)
        machine.start()
        machine.pause()
        machine.start()
        on_started.assert_called_once_with("scrum-1")

    def test_started_handler_failure_does_not_block_start(self, build):
        machine = build(on_started=MagicMock(side_effect=RuntimeError("db down")))
        assert machine.start() is True
        assert machine.status == MeetingStatus.IN_PROGRESS


# ---------------------------------------------------------------------------
# Rotation
# ---------------------------------------------------------------------------

class TestRotation:
    def test_natural_run_visits_every_speaker_once(self, build, scheduler):
        machine = build()
        snapshots = _recorder(machine)
        machine.start()
        scheduler.tick(30)

        speakers = []
        for snap in snapshots:
            if snap.current_speaker and (not speakers or speakers[-1] != snap.current_speaker.name):
                speakers.append(snap.current_speaker.name)
        assert speakers == ["Alice", "Bob", "Carol"]

        finished = [s for s in snapshots if s.status == MeetingStatus.FINISHED]
        assert finished
        assert machine.status == MeetingStatus.FINISHED
        assert machine.current_speaker is None
        assert scheduler.active == []

    def test_finishes_exactly_once(self, build, scheduler, mock_llm):
        machine = build()
        statuses = []
        machine.subscribe(lambda snap: statuses.append(snap.status))
        machine.start()
        scheduler.tick(45)

        entries = [
            i for i, s in enumerate(statuses)
            if s == MeetingStatus.FINISHED and (i == 0 or statuses[i - 1] != MeetingStatus.FINISHED)
        ]
        assert len(entries) == 1
        mock_llm.generate.assert_called_once()

    def test_two_speakers_ten_seconds_each(self, build, scheduler, scrum_factory):
        machine = build(scrum_factory(names=("Alice", "Bob"), seconds=10))
        machine.start()
        scheduler.tick(20)
        assert machine.status == MeetingStatus.FINISHED
        assert machine.talk_times() == {"Alice": 10, "Bob": 10}
        assert sum(machine.result().speaker_talk_times.values()) == 20

    def test_expiry_advances_once(self, build, scheduler):
        machine = build()
        machine.start()
        scheduler.tick(10)
        assert machine.current_speaker.name == "Bob"
        assert machine.remaining_seconds == 10
        scheduler.tick(1)
        assert machine.current_speaker.name == "Bob"
        assert machine.remaining_seconds == 9

    def test_manual_next_resets_timer(self, build, scheduler):
        machine = build()
        machine.start()
        scheduler.tick(9)
        assert machine.next_speaker() is True
        assert machine.current_speaker.name == "Bob"
        assert machine.remaining_seconds == 10
        scheduler.tick(1)
        assert machine.snapshot().speaker_index == 1
        assert machine.remaining_seconds == 9

    def test_next_for_an_already_expired_turn_is_ignored(self, build, scheduler):
        machine = build()
        machine.start()
        scheduler.tick(10)
        assert machine.current_speaker.name == "Bob"

        assert machine.next_speaker(expected_index=0) is False
        assert machine.current_speaker.name == "Bob"
        assert machine.remaining_seconds == 10

        assert machine.next_speaker(expected_index=1) is True
        assert machine.current_speaker.name == "Carol"

    def test_next_on_last_speaker_finishes(self, build, scrum_factory, mock_llm):
        machine = build(scrum_factory(names=("Alice",)))
        machine.start()
        assert machine.next_speaker() is True
        assert machine.status == MeetingStatus.FINISHED
        assert machine.result().ended_early is False

    def test_next_while_paused_rejected(self, build):
        machine = build()
        machine.start()
        machine.pause()
        assert machine.next_speaker() is False
        assert machine.current_speaker.name == "Alice"

    def test_talk_time_follows_floor(self, build, scheduler):
        machine = build()
        machine.start()
        scheduler.tick(4)
        machine.next_speaker()
        scheduler.tick(6)
        machine.next_speaker()
        scheduler.tick(3)
        machine.end_meeting()
        assert machine.talk_times() == {"Alice": 4, "Bob": 6, "Carol": 3}
        assert sum(machine.talk_times().values()) == 13


# ---------------------------------------------------------------------------
# Stale ticks
# ---------------------------------------------------------------------------

class TestStaleTicks:
    def test_tick_from_before_pause_is_ignored(self, build, scheduler):
        machine = build()
        machine.start()
        stale = scheduler.handles[0]
        machine.pause()
        stale.callback()
        assert machine.remaining_seconds == 10
        assert machine.talk_times()["Alice"] == 0

    def test_tick_from_previous_generation_ignored_after_resume(self, build, scheduler):
        machine = build()
        machine.start()
        stale = scheduler.handles[0]
        machine.pause()
        machine.start()
        stale.callback()
        assert machine.remaining_seconds == 10
        scheduler.tick(1)
        assert machine.remaining_seconds == 9

    def test_tick_after_end_is_ignored(self, build, scheduler):
        machine = build()
        machine.start()
        stale = scheduler.handles[0]
        machine.end_meeting()
        before = machine.talk_times()
        stale.callback()
        assert machine.talk_times() == before


# ---------------------------------------------------------------------------
# Transcript and draft
# ---------------------------------------------------------------------------

class TestTranscript:
    def test_log_utterance_commits_draft(self, build):
        machine = build()
        machine.start()
        machine.set_draft("  finished the login page  ")
        assert machine.log_utterance() is True
        assert machine.transcript.flatten() == "[Alice]:\nfinished the login page"
        assert machine.snapshot().draft == ""

    def test_blank_draft_not_logged(self, build):
        machine = build()
        machine.start()
        machine.set_draft("   ")
        assert machine.log_utterance() is True
        assert len(machine.transcript) == 0

    def test_log_while_paused_rejected(self, build):
        machine = build()
        machine.start()
        machine.pause()
        machine.set_draft("update")
        assert machine.log_utterance() is False
        assert len(machine.transcript) == 0
        assert machine.snapshot().draft == "update"

    def test_advance_flushes_pending_draft(self, build):
        machine = build()
        machine.start()
        machine.set_draft("pending words")
        machine.next_speaker()
        assert machine.transcript.turns() == [("Alice", ["pending words"])]

    def test_set_draft_after_finish_rejected(self, build):
        machine = build()
        machine.end_meeting()
        assert machine.set_draft("late") is False


# ---------------------------------------------------------------------------
# End and summary
# ---------------------------------------------------------------------------

class TestEndMeeting:
    def test_end_before_start_summarizes_empty_transcript(self, build, mock_llm):
        machine = build()
        assert machine.end_meeting() is True
        assert machine.status == MeetingStatus.FINISHED
        mock_llm.generate.assert_called_once()
        prompt = mock_llm.generate.call_args[0][0]
        assert prompt.rstrip().endswith("---")

        result = machine.result()
        assert result.ended_early is True
        assert result.transcript == ""

    def test_end_twice_rejected(self, build, mock_llm):
        machine = build()
        machine.end_meeting()
        assert machine.end_meeting() is False
        assert mock_llm.generate.call_count == 1

    def test_start_after_finish_rejected(self, build):
        machine = build()
        machine.end_meeting()
        assert machine.start() is False

    def test_end_flushes_draft_into_prompt(self, build, mock_llm):
        machine = build()
        machine.start()
        machine.set_draft("working on the API")
        machine.end_meeting()
        prompt = mock_llm.generate.call_args[0][0]
        assert "[Alice]:\nworking on the API" in prompt

    def test_result_carries_action_items_and_notes(self, build):
        machine = build()
        machine.start()
        machine.update_notes("retro on friday")
        machine.end_meeting()

        result = machine.result()
        assert [a.text for a in result.action_items] == ["Alice to update docs", "Bob to review PR"]
        assert all(not a.completed for a in result.action_items)
        assert result.notes == "retro on friday"
        assert machine.snapshot().summarizing is False
        assert "Key Points" in machine.snapshot().summary

    def test_unconfigured_summary_has_no_action_items(self, build):
        machine = build(summary_service=SummaryService(llm_provider=None))
        machine.end_meeting()
        result = machine.result()
        assert result.summary == SummaryMessages.NOT_CONFIGURED
        assert result.action_items == []

    def test_failed_summary_has_no_action_items(self, build, mock_llm):
        mock_llm.generate.side_effect = RuntimeError("throttled")
        machine = build()
        machine.end_meeting()
        assert machine.result().summary == SummaryMessages.MEETING_FAILED
        assert machine.result().action_items == []

    def test_on_finished_receives_result(self, build):
        received = []
        machine = build(on_finished=received.append)
        machine.end_meeting()
        assert len(received) == 1
        assert received[0].scrum_id == "scrum-1"

    def test_on_finished_failure_is_contained(self, build):
        machine = build(on_finished=MagicMock(side_effect=RuntimeError("db down")))
        machine.end_meeting()
        assert machine.result() is not None

    def test_summarizing_visible_while_summary_in_flight(self, build, mock_llm):
        release = threading.Event()

        def slow_generate(prompt, context=None):
            release.wait(5)
            return "**Key Points:**\n* ok"

        mock_llm.generate.side_effect = slow_generate
        machine = build(run_in_background=None)
        machine.end_meeting()

        snap = machine.snapshot()
        assert snap.status == MeetingStatus.FINISHED
        assert snap.summarizing is True
        assert machine.result() is None

        release.set()
        result = machine.wait_for_result(timeout=5)
        assert result is not None
        assert machine.snapshot().summarizing is False


# ---------------------------------------------------------------------------
# Listeners / close
# ---------------------------------------------------------------------------

class TestListenersAndClose:
    def test_listener_gets_snapshot_per_tick(self, build, scheduler):
        machine = build()
        snapshots = _recorder(machine)
        machine.start()
        scheduler.tick(3)
        assert [s.remaining_seconds for s in snapshots] == [10, 9, 8, 7]

    def test_unsubscribe(self, build, scheduler):
        machine = build()
        snapshots = []
        unsubscribe = machine.subscribe(snapshots.append)
        machine.start()
        unsubscribe()
        scheduler.tick(2)
        assert len(snapshots) == 1

    def test_failing_listener_does_not_break_transitions(self, build):
        machine = build()
        machine.subscribe(MagicMock(side_effect=RuntimeError("ui gone")))
        assert machine.start() is True

    def test_close_stops_ticks_and_blocks_restart(self, build, scheduler):
        machine = build()
        machine.start()
        machine.pause()
        machine.close()
        machine.close()
        assert scheduler.active == []
        assert machine.start() is False
        assert machine.status == MeetingStatus.PAUSED

    def test_close_while_running_cancels_ticks(self, build, scheduler):
        machine = build()
        machine.start()
        stale = scheduler.handles[0]
        machine.close()
        assert stale.cancelled is True
        stale.callback()
        assert machine.remaining_seconds == 10


# ---------------------------------------------------------------------------
# Real threads
# ---------------------------------------------------------------------------

@pytest.mark.integration
class TestWithThreadingScheduler:
    def test_full_meeting_on_real_ticks(self, build, scrum_factory, mock_llm):
        machine = build(
            scrum_factory(names=("Alice", "Bob"), seconds=2),
            scheduler=ThreadingTickScheduler(name_prefix="test-tick"),
            tick_interval=0.01,
            run_in_background=None,
        )
        machine.start()
        result = machine.wait_for_result(timeout=5)

        assert result is not None
        assert result.speaker_talk_times == {"Alice": 2, "Bob": 2}
        assert result.ended_early is False
        mock_llm.generate.assert_called_once()
