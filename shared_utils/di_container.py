"""
Dependency injection container for managing application dependencies.
Centralizes provider, adapter and service creation and lifecycle management.
"""

from typing import Optional
import logging

from core_intelligence.providers import LLMProviderBase
from shared_utils.config_loader import get_settings
from shared_utils.constants import LogScope


logger = logging.getLogger(__name__)


class DIContainer:
    """Singleton dependency injection container."""

    _instance: Optional['DIContainer'] = None
    _llm_provider: Optional[LLMProviderBase] = None
    _llm_resolved: bool = False

    _scrum_store: Optional[object] = None
    _tick_scheduler: Optional[object] = None
    _summary_service: Optional[object] = None
    _meeting_room_service: Optional[object] = None
    _analytics_service: Optional[object] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def reset(self):
        """Reset container (useful for testing)."""
        if self._meeting_room_service is not None:
            self._meeting_room_service.close_all()
        self._llm_provider = None
        self._llm_resolved = False
        self._scrum_store = None
        self._tick_scheduler = None
        self._summary_service = None
        self._meeting_room_service = None
        self._analytics_service = None

    def get_llm_provider(self) -> Optional[LLMProviderBase]:
        """Get or create LLM provider (lazy singleton).

        Returns:
            Initialized LLM provider, or None when summarization is not
            configured. Meetings still run without it.
        """
        if not self._llm_resolved:
            from core_intelligence.providers.factory import LLMProviderFactory

            logger.info(
                "Initializing LLM provider",
                extra={"scope": LogScope.CONFIG}
            )
            try:
                self._llm_provider = LLMProviderFactory.create()
            except Exception as e:
                logger.warning(
                    "LLM provider unavailable, summaries will be placeholders",
                    extra={"scope": LogScope.CONFIG, "error": str(e)}
                )
                self._llm_provider = None
            self._llm_resolved = True

        return self._llm_provider

    def get_scrum_store(self):
        """Get or create the scrum store (lazy singleton).

        Uses InMemoryScrumStoreAdapter when SCRUM_STORE_PATH is empty and
        JsonScrumStoreAdapter otherwise.
        """
        if self._scrum_store is None:
            settings = get_settings()
            if not settings.scrum_store_path:
                from adapters.in_memory_scrum_store import InMemoryScrumStoreAdapter
                self._scrum_store = InMemoryScrumStoreAdapter()
                logger.info("Initialized InMemoryScrumStoreAdapter (local dev)")
            else:
                from adapters.json_scrum_store import JsonScrumStoreAdapter
                self._scrum_store = JsonScrumStoreAdapter(path=settings.scrum_store_path)
                logger.info("Initialized JsonScrumStoreAdapter")
        return self._scrum_store

    def get_tick_scheduler(self):
        """Get or create ThreadingTickScheduler (lazy singleton)."""
        if self._tick_scheduler is None:
            from adapters.threading_tick_scheduler import ThreadingTickScheduler

            self._tick_scheduler = ThreadingTickScheduler(name_prefix="meeting-tick")
            logger.info("Initialized ThreadingTickScheduler")
        return self._tick_scheduler

    def get_summary_service(self):
        """Get or create SummaryService (lazy singleton)."""
        if self._summary_service is None:
            from services.summary_service import SummaryService

            self._summary_service = SummaryService(
                llm_provider=self.get_llm_provider(),
            )
            logger.info("Initialized SummaryService")
        return self._summary_service

    def get_meeting_room_service(self):
        """Get or create MeetingRoomService (lazy singleton)."""
        if self._meeting_room_service is None:
            from services.meeting_room_service import MeetingRoomService

            settings = get_settings()
            self._meeting_room_service = MeetingRoomService(
                scrum_store=self.get_scrum_store(),
                scheduler=self.get_tick_scheduler(),
                summary_service=self.get_summary_service(),
                tick_interval=settings.tick_interval_seconds,
            )
            logger.info("Initialized MeetingRoomService")
        return self._meeting_room_service

    def get_analytics_service(self):
        """Get or create AnalyticsService (lazy singleton)."""
        if self._analytics_service is None:
            from services.analytics_service import AnalyticsService

            self._analytics_service = AnalyticsService(
                summary_service=self.get_summary_service(),
            )
            logger.info("Initialized AnalyticsService")
        return self._analytics_service


# Global singleton instance
_container = DIContainer()


def get_di_container() -> DIContainer:
    """Get global DI container instance."""
    return _container
