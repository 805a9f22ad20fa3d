"""
Port interface for scrum record storage.

Implementations: InMemoryScrumStoreAdapter, JsonScrumStoreAdapter (adapters/)
"""

from __future__ import annotations

from typing import List, Optional, Protocol, runtime_checkable

from domain.models import Scrum, ScrumStatus


@runtime_checkable
class ScrumStorePort(Protocol):
    """Opaque read/write boundary for scrum records."""

    def put_scrum(self, scrum: Scrum) -> None:
        """Create or overwrite a scrum record.

        Raises:
            StorageError: If the store cannot be written.
        """
        ...

    def get_scrum(self, scrum_id: str) -> Optional[Scrum]:
        """Return the scrum with *scrum_id*, or None if unknown."""
        ...

    def list_scrums(
        self,
        team_id: Optional[str] = None,
        status: Optional[ScrumStatus] = None,
    ) -> List[Scrum]:
        """List scrums, AND-filtered by team and status, ordered by scheduled time."""
        ...
