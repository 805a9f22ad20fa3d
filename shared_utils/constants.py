"""
Constants management.
Centralized configuration for all magic values, model IDs, and defaults.
"""

from enum import Enum
from typing import Final


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LLMProvider(str, Enum):
    """Supported LLM providers."""
    BEDROCK = "bedrock"
    OPENAI = "openai"
    NONE = "none"


# Model IDs
class ModelIDs:
    """Centralized model identifiers."""
    BEDROCK_CLAUDE_3_HAIKU: Final[str] = "anthropic.claude-3-haiku-20240307-v1:0"
    OPENAI_GPT_4O_MINI: Final[str] = "gpt-4o-mini"


# Default values
class Defaults:
    """Defaults for meeting-room behaviour and providers."""
    TICK_INTERVAL_SECONDS: Final[float] = 1.0
    EXTEND_STEP_SECONDS: Final[int] = 30
    MEMBER_SUMMARY_DAYS: Final[int] = 7
    AWS_REGION: Final[str] = "eu-west-2"


# Summary placeholders returned instead of raising
class SummaryMessages:
    """Placeholder texts produced when the summarizer cannot answer."""
    NOT_CONFIGURED: Final[str] = (
        "Error: LLM provider not configured. Please set LLM_PROVIDER and its credentials."
    )
    MEETING_FAILED: Final[str] = "An error occurred while generating the summary."
    MEMBER_FAILED: Final[str] = "An error occurred while generating the member summary."
    BLOCKERS_FAILED: Final[str] = "An error occurred while analyzing blocker trends."
    NO_BLOCKERS: Final[str] = "No blockers were found in the provided scrum summaries."


# Logging scopes
class LogScope:
    """Standardized logging scope names."""
    CONFIG = "config_loader"
    API = "api"
    PARSER = "summary_parser"
    VALIDATION = "validation"
    ERROR_HANDLER = "error_handler"
    PROVIDER = "provider"
    MEETING_ROOM = "meeting_room"
    SUMMARY = "summary"
    ANALYTICS = "analytics"
    ADAPTER = "adapter"
    SCHEDULER = "scheduler"


# API endpoints and paths
class APIEndpoints:
    """API route definitions."""
    HEALTH = "/health"
    SCRUM = "/api/scrums/{scrum_id}"
    ACTION_ITEM_TOGGLE = "/api/scrums/{scrum_id}/action-items/{index}/toggle"
    COMMENTS = "/api/scrums/{scrum_id}/comments"
    ROOM = "/api/rooms/{scrum_id}"
    ROOM_ACTION = "/api/rooms/{scrum_id}/{action}"
    ROOM_DRAFT = "/api/rooms/{scrum_id}/draft"
    ROOM_NOTES = "/api/rooms/{scrum_id}/notes"
    ROOM_RESULT = "/api/rooms/{scrum_id}/result"
    SCRUMS = "/api/scrums"
    ANALYTICS_REPORT = "/api/analytics/report"
    ANALYTICS_MEMBER_SUMMARY = "/api/analytics/member-summary"
    ANALYTICS_BLOCKER_TRENDS = "/api/analytics/blocker-trends"


# Error codes
class ErrorCode(str, Enum):
    """Standardized error codes for consistency."""
    INVALID_CONFIG = "INVALID_CONFIG"
    MODEL_NOT_AVAILABLE = "MODEL_NOT_AVAILABLE"
    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    INVALID_STATE = "INVALID_STATE"
    STORAGE_ERROR = "STORAGE_ERROR"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
