"""
Root conftest.py — shared fixtures for the entire test suite.

Guidelines:
    • No __init__.py in test sub-directories (avoids shadowing root packages).
    • pytest.ini_options lives in pyproject.toml with pythonpath=["."].
    • Test module basenames must be unique across directories.
    • Markers: integration (uses real threads and wall-clock waits).
"""

from datetime import datetime
from typing import Callable, List
from unittest.mock import MagicMock

import pytest

from domain.models import Attendee, Scrum
from services.summary_service import SummaryService


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: mark test as integration test")


# ---------------------------------------------------------------------------
# Deterministic tick scheduler
# ---------------------------------------------------------------------------

class ManualTickHandle:
    def __init__(self, callback: Callable[[], None], interval: float) -> None:
        self.callback = callback
        self.interval = interval
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ManualTickScheduler:
    """TickSchedulerPort whose ticks are fired by the test, one second at a time."""

    def __init__(self) -> None:
        self.handles: List[ManualTickHandle] = []

    def schedule(self, callback: Callable[[], None], interval: float) -> ManualTickHandle:
        handle = ManualTickHandle(callback, interval)
        self.handles.append(handle)
        return handle

    @property
    def active(self) -> List[ManualTickHandle]:
        return [h for h in self.handles if not h.cancelled]

    def tick(self, count: int = 1) -> None:
        for _ in range(count):
            for handle in self.active:
                handle.callback()


@pytest.fixture()
def scheduler() -> ManualTickScheduler:
    return ManualTickScheduler()


def run_inline(fn: Callable[[], None], name: str) -> None:
    fn()


@pytest.fixture()
def inline_runner() -> Callable[[Callable[[], None], str], None]:
    """Background runner that executes the summary call synchronously."""
    return run_inline


# ---------------------------------------------------------------------------
# Sample summaries / LLM mocks
# ---------------------------------------------------------------------------

SAMPLE_SUMMARY = (
    "**Key Points:**\n"
    "* Alice finished the API refactor.\n"
    "* Bob is reviewing the deployment pipeline.\n"
    "\n"
    "**Action Items:**\n"
    "[ ] Alice to update docs\n"
    "[ ] Bob to review PR\n"
    "\n"
    "**Blockers:**\n"
    "- None.\n"
    "- API rate limit\n"
)


@pytest.fixture()
def mock_llm() -> MagicMock:
    mock = MagicMock()
    mock.generate.return_value = SAMPLE_SUMMARY
    return mock


@pytest.fixture()
def summary_service(mock_llm: MagicMock) -> SummaryService:
    return SummaryService(llm_provider=mock_llm)


# ---------------------------------------------------------------------------
# Domain object factories
# ---------------------------------------------------------------------------

def make_scrum(
    scrum_id: str = "scrum-1",
    names: tuple = ("Alice", "Bob", "Carol"),
    seconds: int = 10,
    **overrides,
) -> Scrum:
    fields = dict(
        id=scrum_id,
        title="Daily standup",
        attendees=[Attendee(name=n, email=f"{n.lower()}@example.com") for n in names],
        duration_minutes=15,
        time_per_speaker_seconds=seconds,
        scheduled_at=datetime(2026, 1, 15, 9, 30),
        team_id="team-1",
    )
    fields.update(overrides)
    return Scrum(**fields)


@pytest.fixture()
def sample_scrum() -> Scrum:
    return make_scrum()


@pytest.fixture()
def scrum_factory():
    return make_scrum
