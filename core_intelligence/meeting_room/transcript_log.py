"""
Append-only transcript buffer.

``flatten()`` output is the input contract of the summary prompt and of
``summary_parser.extract_member_updates``::

    [Alice]:
    first update
    second update

    [Bob]:
    his update

One block is rendered per speaker turn: consecutive utterances by the same
speaker share a header, and a speaker who talks again after someone else
gets a new block.
"""

from __future__ import annotations

from typing import List, Tuple


class TranscriptLog:
    """Utterances in arrival order."""

    def __init__(self) -> None:
        self._entries: List[Tuple[str, str]] = []

    def append(self, speaker: str, text: str) -> bool:
        """Append a trimmed utterance. Blank text is dropped.

        Returns:
            True if something was appended.
        """
        cleaned = (text or "").strip()
        if not cleaned:
            return False
        self._entries.append((speaker, cleaned))
        return True

    def turns(self) -> List[Tuple[str, List[str]]]:
        """Group consecutive utterances of the same speaker."""
        grouped: List[Tuple[str, List[str]]] = []
        for speaker, text in self._entries:
            if grouped and grouped[-1][0] == speaker:
                grouped[-1][1].append(text)
            else:
                grouped.append((speaker, [text]))
        return grouped

    def flatten(self) -> str:
        return "\n\n".join(
            f"[{speaker}]:\n" + "\n".join(texts)
            for speaker, texts in self.turns()
        )

    def __len__(self) -> int:
        return len(self._entries)
