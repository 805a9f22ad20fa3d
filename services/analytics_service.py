"""
AnalyticsService — participation metrics and AI digests across scrums.

Pure aggregation over Scrum records plus two summarizer-backed digests
(per-member performance, blocker trends). Talk-time maps are keyed by
display name, so members are matched to talk time by name and to
attendance by email.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from core_intelligence.parser.summary_parser import extract_blockers, extract_member_updates
from domain.models import MemberStats, Scrum, TeamMember, TeamReport
from services.summary_service import SummaryService
from shared_utils.constants import Defaults, LogScope
from shared_utils.logging_utils import get_scoped_logger, log_execution


logger = get_scoped_logger(LogScope.ANALYTICS)


def _percent(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole else 0.0


class AnalyticsService:
    """Team-level reports over finished scrum records."""

    def __init__(self, *, summary_service: SummaryService) -> None:
        self._summaries = summary_service

    @log_execution(scope=LogScope.ANALYTICS)
    def team_report(self, scrums: Sequence[Scrum], members: Sequence[TeamMember]) -> TeamReport:
        total = len(scrums)
        total_minutes = sum(s.duration_minutes or 0 for s in scrums)

        aggregate: Dict[str, int] = {}
        attended: Dict[str, int] = {m.uid: 0 for m in members}
        spoke: Dict[str, int] = {m.uid: 0 for m in members}
        by_email = {m.email.lower(): m for m in members}
        by_name = {m.name: m for m in members}

        for scrum in scrums:
            for attendee in scrum.attendees:
                member = by_email.get(attendee.email.lower())
                if member is not None:
                    attended[member.uid] += 1

            for name, seconds in scrum.speaker_talk_times.items():
                aggregate[name] = aggregate.get(name, 0) + seconds
                member = by_name.get(name)
                if member is not None:
                    spoke[member.uid] += 1

        top = max(aggregate.items(), key=lambda kv: kv[1], default=None)

        stats = [
            MemberStats(
                uid=m.uid,
                name=m.name,
                attended=attended[m.uid],
                spoke=spoke[m.uid],
                attendance_rate=_percent(attended[m.uid], total),
                participation_rate=_percent(spoke[m.uid], attended[m.uid]),
                talk_time_seconds=aggregate.get(m.name, 0),
            )
            for m in members
        ]

        return TeamReport(
            total_scrums=total,
            avg_meeting_length_minutes=round(total_minutes / total, 1) if total else 0.0,
            aggregate_talk_times=aggregate,
            top_contributor=top[0] if top else "N/A",
            total_members=len(members),
            member_stats=stats,
        )

    def member_summary(
        self,
        scrums: Sequence[Scrum],
        member: TeamMember,
        days: int = Defaults.MEMBER_SUMMARY_DAYS,
        now: Optional[datetime] = None,
    ) -> str:
        """AI digest of *member*'s updates from scrums in the last *days*."""
        now = now or datetime.now()
        cutoff = now - timedelta(days=days)

        updates: List[str] = []
        for scrum in scrums:
            if scrum.scheduled_at.replace(tzinfo=None) > cutoff.replace(tzinfo=None):
                updates.extend(extract_member_updates(scrum.transcript or "", member.name))

        logger.info("member_summary_requested", member=member.name, updates=len(updates), days=days)
        return self._summaries.summarize_member(member.name, updates, days=days)

    def blocker_trends(self, scrums: Sequence[Scrum]) -> str:
        blockers = [b for s in scrums for b in extract_blockers(s.summary or "")]
        logger.info("blocker_trends_requested", scrums=len(scrums), blockers=len(blockers))
        return self._summaries.analyze_blocker_trends(blockers)
