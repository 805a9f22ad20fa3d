"""
Local JSON-file adapter for ScrumStorePort.

Stores every scrum record in a single JSON object on disk, keyed by id.
Simple, no extra infra — good for local dev and single-team deployments.
For anything larger, swap in a document-database adapter behind the same port.
"""

from __future__ import annotations

import json
import os
import threading
from typing import Dict, List, Optional

from domain.models import Scrum, ScrumStatus
from shared_utils.error_handler import StorageError
from shared_utils.logging_utils import ContextualLogger
from shared_utils.constants import LogScope


logger = ContextualLogger(scope=LogScope.ADAPTER)

_DEFAULT_PATH = "data/scrums.json"


class JsonScrumStoreAdapter:
    """Thread-safe JSON file store for Scrum records."""

    def __init__(self, path: str = _DEFAULT_PATH) -> None:
        self._path = path
        self._lock = threading.Lock()
        os.makedirs(os.path.dirname(self._path) or ".", exist_ok=True)

    # ------------------------------------------------------------------
    # ScrumStorePort implementation
    # ------------------------------------------------------------------

    def put_scrum(self, scrum: Scrum) -> None:
        """Insert or replace one scrum record."""
        with self._lock:
            data = self._read_all()
            data[scrum.id] = scrum.model_dump(mode="json")
            self._write_all(data)
        logger.info("scrum_saved", scrum_id=scrum.id, status=scrum.status.value)

    def get_scrum(self, scrum_id: str) -> Optional[Scrum]:
        with self._lock:
            data = self._read_all()
        raw = data.get(scrum_id)
        return Scrum(**raw) if raw else None

    def list_scrums(
        self,
        team_id: Optional[str] = None,
        status: Optional[ScrumStatus] = None,
    ) -> List[Scrum]:
        with self._lock:
            data = self._read_all()

        scrums = [Scrum(**raw) for raw in data.values()]
        if team_id:
            scrums = [s for s in scrums if s.team_id == team_id]
        if status:
            scrums = [s for s in scrums if s.status == status]
        scrums.sort(key=lambda s: s.scheduled_at)
        return scrums

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _read_all(self) -> Dict[str, dict]:
        if not os.path.exists(self._path):
            return {}
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, OSError):
            logger.warning("scrum_store_corrupt_file", path=self._path)
            return {}

    def _write_all(self, data: Dict[str, dict]) -> None:
        try:
            with open(self._path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, default=str)
        except OSError as e:
            raise StorageError(
                f"Failed to write scrum store: {e}",
                context={"path": self._path},
            ) from e
