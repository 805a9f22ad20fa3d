"""
Pure domain models for the Scrum Room.

These models carry no provider or storage dependencies. They represent the
scheduled meeting record, the live-meeting snapshot published while a room is
running, and the result folded back into the record when the meeting ends.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class ScrumStatus(str, Enum):
    """Persisted lifecycle of a scrum record."""

    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    FINISHED = "FINISHED"


class MeetingStatus(str, Enum):
    """Live phase of a running meeting room (adds PAUSED to ScrumStatus)."""

    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    PAUSED = "PAUSED"
    FINISHED = "FINISHED"


class Recurrence(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"


class TeamMemberRole(str, Enum):
    SCRUM_MASTER = "Scrum Master"
    MEMBER = "Member"
    OBSERVER = "Observer"


class Attendee(BaseModel):
    """A participant in the speaking rotation; email is the identity."""

    email: str
    name: str


class ActionItem(BaseModel):
    """Follow-up task parsed from a summary."""

    text: str
    completed: bool = False


class Comment(BaseModel):
    author: str
    text: str
    created_at: datetime = Field(default_factory=datetime.now)


class TeamMember(BaseModel):
    """Team roster entry used by analytics."""

    uid: str
    name: str
    email: str
    role: TeamMemberRole = TeamMemberRole.MEMBER


class Scrum(BaseModel):
    """Scheduled (or completed) standup record.

    Fields after ``recurring`` are populated when the meeting finishes.
    """

    id: str
    title: str
    description: Optional[str] = None
    attendees: List[Attendee] = []
    duration_minutes: int
    time_per_speaker_seconds: int
    scheduled_at: datetime
    status: ScrumStatus = ScrumStatus.NOT_STARTED
    team_id: str
    recurring: Optional[Recurrence] = None
    transcript: Optional[str] = None
    summary: Optional[str] = None
    speaker_talk_times: Dict[str, int] = {}
    action_items: List[ActionItem] = []
    notes: str = ""
    ended_early: Optional[bool] = None
    comments: List[Comment] = []

    @field_validator("attendees")
    @classmethod
    def validate_unique_emails(cls, v: List[Attendee]) -> List[Attendee]:
        seen = set()
        for attendee in v:
            key = attendee.email.strip().lower()
            if key in seen:
                raise ValueError(f"duplicate attendee email: {attendee.email}")
            seen.add(key)
        return v


class MeetingSnapshot(BaseModel):
    """Point-in-time view of a live room, published to the hosting UI."""

    scrum_id: str
    status: MeetingStatus
    current_speaker: Optional[Attendee] = None
    speaker_index: int = 0
    remaining_seconds: int = 0
    allotment_seconds: int = 0
    timer_running: bool = False
    talk_times: Dict[str, int] = {}
    draft: str = ""
    summarizing: bool = False
    summary: Optional[str] = None


class MeetingResult(BaseModel):
    """Everything a finished room hands back to the persistence layer."""

    scrum_id: str
    transcript: str = ""
    summary: Optional[str] = None
    speaker_talk_times: Dict[str, int] = {}
    action_items: List[ActionItem] = []
    notes: str = ""
    ended_early: bool = False


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------


class MemberStats(BaseModel):
    uid: str
    name: str
    attended: int = 0
    spoke: int = 0
    attendance_rate: float = 0.0  # percent of all scrums
    participation_rate: float = 0.0  # percent of attended scrums
    talk_time_seconds: int = 0


class TeamReport(BaseModel):
    """Aggregate participation metrics across a set of scrums."""

    total_scrums: int = 0
    avg_meeting_length_minutes: float = 0.0
    aggregate_talk_times: Dict[str, int] = {}
    top_contributor: str = "N/A"
    total_members: int = 0
    member_stats: List[MemberStats] = []
