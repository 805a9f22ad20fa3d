"""
Lenient parsers for summarizer output and flattened transcripts.

The summarizer's markdown is not contractually guaranteed, so every rule
here is a line classifier that either matches (with captured text) or does
not. Malformed input yields empty results, never an exception.

Supported conventions:
    [ ] Alice to update docs          -> action item
    **Blockers:** / **Blockers*:**    -> start of blocker section
    - API rate limit / * API ...      -> bullet inside that section
    **Anything:** or **Anything**:    -> end of blocker section
    [Alice]:                          -> transcript speaker header
"""

import re
from typing import List, NamedTuple, Optional

from domain.models import ActionItem
from shared_utils.logging_utils import ContextualLogger
from shared_utils.constants import LogScope


logger = ContextualLogger(scope=LogScope.PARSER)


ACTION_ITEM_MARKER = "[ ] "
BLOCKERS_HEADING: re.Pattern = re.compile(r"\*\*Blockers(\*?):\*\*", re.IGNORECASE)
# Line-anchored: a bold label inside a bullet does not end the blockers section.
ANY_HEADING: re.Pattern = re.compile(r"^(?:\d+\.\s*)?\*\*[^*]+(?:\*\*:|:\*\*)")
BULLET: re.Pattern = re.compile(r"^(\*|-)\s+(.*)")
ANY_SPEAKER_HEADER: re.Pattern = re.compile(r"^\[.*?\]:")
EMPTY_SECTION_MARKER = "none."


class LineMatch(NamedTuple):
    """Outcome of classifying one line against one rule."""

    matched: bool
    text: str = ""


NO_MATCH = LineMatch(False)


def match_action_item(line: str) -> LineMatch:
    trimmed = line.strip()
    if not trimmed.startswith(ACTION_ITEM_MARKER):
        return NO_MATCH
    return LineMatch(True, trimmed[len(ACTION_ITEM_MARKER):].strip())


def match_blockers_heading(line: str) -> LineMatch:
    return LineMatch(True) if BLOCKERS_HEADING.search(line.strip()) else NO_MATCH


def match_any_heading(line: str) -> LineMatch:
    return LineMatch(True) if ANY_HEADING.search(line.strip()) else NO_MATCH


def match_bullet(line: str) -> LineMatch:
    match = BULLET.match(line.strip())
    if not match or not match.group(2):
        return NO_MATCH
    return LineMatch(True, match.group(2).strip())


def speaker_header_pattern(member_name: str) -> re.Pattern:
    """``[<member_name>]:`` at line start, case-insensitive, whitespace-tolerant."""
    return re.compile(rf"^\[\s*{re.escape(member_name.strip())}\s*\]:", re.IGNORECASE)


def extract_action_items(summary: Optional[str]) -> List[ActionItem]:
    """Collect every ``[ ] `` line as an open action item, in order."""
    if not summary:
        return []

    items: List[ActionItem] = []
    for line in summary.split("\n"):
        result = match_action_item(line)
        if result.matched and result.text:
            items.append(ActionItem(text=result.text, completed=False))

    logger.debug("action_items_extracted", count=len(items))
    return items


def extract_blockers(summary: Optional[str]) -> List[str]:
    """Collect the bullets under the bold ``Blockers:`` heading.

    The section ends at the next bold ``**...**:`` heading. A bullet reading
    "None." marks an empty section and is skipped.
    """
    if not summary:
        return []

    blockers: List[str] = []
    in_section = False

    for line in summary.split("\n"):
        if match_blockers_heading(line).matched:
            in_section = True
            continue
        if not in_section:
            continue
        if match_any_heading(line).matched:
            break
        bullet = match_bullet(line)
        if bullet.matched and bullet.text.lower() != EMPTY_SECTION_MARKER:
            blockers.append(bullet.text)

    logger.debug("blockers_extracted", count=len(blockers))
    return blockers


def extract_member_updates(transcript: Optional[str], member_name: str) -> List[str]:
    """Return each block of lines spoken under a ``[member_name]:`` header.

    Non-contiguous blocks for the same member are returned separately,
    in transcript order. Blank blocks are dropped.
    """
    if not transcript or not member_name or not member_name.strip():
        return []

    own_header = speaker_header_pattern(member_name)
    updates: List[str] = []
    capturing = False
    current: List[str] = []

    def _flush() -> None:
        text = "\n".join(current).strip()
        if text:
            updates.append(text)

    for line in transcript.split("\n"):
        if own_header.match(line):
            _flush()
            capturing = True
            current = []
        elif ANY_SPEAKER_HEADER.match(line):
            _flush()
            capturing = False
            current = []
        elif capturing:
            current.append(line)

    if capturing:
        _flush()

    return updates
