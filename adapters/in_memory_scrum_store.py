"""
In-memory scrum store adapter for local development and tests.

Implements ScrumStorePort with a dict keyed by scrum id.
NOT for production — no persistence across restarts.
"""

from __future__ import annotations

import threading
from typing import Dict, List, Optional

from domain.models import Scrum, ScrumStatus
from shared_utils.logging_utils import get_scoped_logger
from shared_utils.constants import LogScope


logger = get_scoped_logger(LogScope.ADAPTER)


class InMemoryScrumStoreAdapter:
    """Dict-backed implementation of ScrumStorePort.

    Records are deep-copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self) -> None:
        self._store: Dict[str, Scrum] = {}
        self._lock = threading.Lock()

    def put_scrum(self, scrum: Scrum) -> None:
        with self._lock:
            self._store[scrum.id] = scrum.model_copy(deep=True)
        logger.info("inmemory_scrum_stored", scrum_id=scrum.id, status=scrum.status.value)

    def get_scrum(self, scrum_id: str) -> Optional[Scrum]:
        with self._lock:
            scrum = self._store.get(scrum_id)
        return scrum.model_copy(deep=True) if scrum else None

    def list_scrums(
        self,
        team_id: Optional[str] = None,
        status: Optional[ScrumStatus] = None,
    ) -> List[Scrum]:
        with self._lock:
            scrums = list(self._store.values())
        if team_id:
            scrums = [s for s in scrums if s.team_id == team_id]
        if status:
            scrums = [s for s in scrums if s.status == status]
        scrums.sort(key=lambda s: s.scheduled_at)
        return [s.model_copy(deep=True) for s in scrums]
