"""
SummaryService — turns transcripts into AI summaries.

Depends only on LLMProviderPort for text generation. Every public method
fails soft: an unconfigured provider yields SummaryMessages.NOT_CONFIGURED,
a provider error yields a fixed "An error occurred ..." placeholder. Callers
use ``is_error_summary`` to tell placeholders from real output and must not
parse placeholders for action items.
"""

from __future__ import annotations

import textwrap
from typing import List, Optional

from ports.llm_provider import LLMProviderPort
from shared_utils.logging_utils import ContextualLogger
from shared_utils.constants import LogScope, SummaryMessages


logger = ContextualLogger(scope=LogScope.SUMMARY)

# ---------------------------------------------------------------------------
# Prompt templates
# ---------------------------------------------------------------------------

MEETING_SUMMARY_PROMPT = textwrap.dedent("""\
    You are an expert at summarizing agile scrum meetings.
    Analyze the following transcript and provide a concise summary.
    The summary should be in Markdown format and include three sections:
    1.  **Key Points**: A bulleted list of the main updates from each participant.
    2.  **Action Items**: A list of any tasks or follow-ups mentioned. Each action item MUST start with "[ ] ". For example: "[ ] Alex to follow up on the API documentation."
    3.  **Blockers**: A bulleted list of any impediments or issues raised.

    If a section has no content, state "None."

    ---
    TRANSCRIPT:
    ---
    {transcript}
""")

MEMBER_SUMMARY_PROMPT = textwrap.dedent("""\
    You are an expert HR analyst and team lead.
    Analyze the following scrum updates for a team member named "{member_name}".
    The updates are from the last {days} days.

    Provide a concise summary of their performance and contributions in Markdown format.
    The summary must include these four sections:
    1.  **Key Accomplishments**: A bulleted list of completed tasks and achievements.
    2.  **Stated Goals / Next Steps**: A bulleted list of their planned work.
    3.  **Reported Blockers**: Any impediments they mentioned.
    4.  **Overall Tone Assessment**: A brief analysis of their attitude and sentiment (e.g., positive, motivated, concerned, neutral).

    If a section has no specific information, state "None reported."

    ---
    UPDATES FOR {member_name}:
    ---
    {updates}
""")

BLOCKER_TRENDS_PROMPT = textwrap.dedent("""\
    You are an expert agile coach and project manager.
    Analyze the following list of blockers reported by a team in their daily scrums.
    Identify recurring themes, patterns, and potential root causes.

    Structure your analysis in Markdown format with the following sections:
    1.  **Recurring Blocker Themes**: A bulleted list of the most common categories of blockers (e.g., "Dependency on Other Teams", "Technical Debt", "Unclear Requirements").
    2.  **Detailed Analysis**: For each theme, provide a brief explanation and list specific examples from the provided blockers.
    3.  **Suggested Actions**: Recommend concrete steps the team or scrum master could take to address these recurring issues.

    ---
    LIST OF REPORTED BLOCKERS:
    ---
    {blockers}
""")

_UPDATE_SEPARATOR = "\n---\n"

_ERROR_PREFIXES = ("Error:", "An error occurred")


def is_error_summary(text: Optional[str]) -> bool:
    """True for empty text or any placeholder produced by SummaryService."""
    if not text or not text.strip():
        return True
    return text.strip().startswith(_ERROR_PREFIXES)


class SummaryService:
    """Stateless wrapper around LLMProviderPort with the scrum prompts."""

    def __init__(self, *, llm_provider: Optional[LLMProviderPort]) -> None:
        self._llm = llm_provider

    @property
    def configured(self) -> bool:
        return self._llm is not None

    # ------------------------------------------------------------------
    # Meeting summary
    # ------------------------------------------------------------------

    def summarize(self, transcript: str) -> str:
        """Summarize a flattened transcript (used verbatim in the prompt)."""
        return self._generate(
            MEETING_SUMMARY_PROMPT.format(transcript=transcript),
            event="meeting_summary",
            failure_message=SummaryMessages.MEETING_FAILED,
        )

    # ------------------------------------------------------------------
    # Analytics prompts
    # ------------------------------------------------------------------

    def summarize_member(self, member_name: str, updates: List[str], days: int = 7) -> str:
        """Performance summary for one member from their parsed updates."""
        if not self.configured:
            return SummaryMessages.NOT_CONFIGURED
        if not updates:
            return f"No recent updates found for {member_name}."

        prompt = MEMBER_SUMMARY_PROMPT.format(
            member_name=member_name,
            days=days,
            updates=_UPDATE_SEPARATOR.join(updates),
        )
        return self._generate(
            prompt,
            event="member_summary",
            failure_message=SummaryMessages.MEMBER_FAILED,
        )

    def analyze_blocker_trends(self, blockers: List[str]) -> str:
        """Recurring themes across blockers gathered from many summaries."""
        if not blockers:
            return SummaryMessages.NO_BLOCKERS
        if not self.configured:
            return SummaryMessages.NOT_CONFIGURED

        blockers_text = "\n".join(f"- {b}" for b in blockers)
        return self._generate(
            BLOCKER_TRENDS_PROMPT.format(blockers=blockers_text),
            event="blocker_trends",
            failure_message=SummaryMessages.BLOCKERS_FAILED,
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _generate(self, prompt: str, *, event: str, failure_message: str) -> str:
        if not self.configured:
            logger.warning(f"{event}_skipped", reason="llm_provider_not_configured")
            return SummaryMessages.NOT_CONFIGURED

        try:
            text = self._llm.generate(prompt)
        except Exception as exc:
            logger.error(f"{event}_failed", error_type=type(exc).__name__, error=str(exc))
            return failure_message

        if not text or not text.strip():
            logger.warning(f"{event}_empty_response")
            return failure_message

        logger.info(f"{event}_generated", prompt_chars=len(prompt), response_chars=len(text))
        return text
