"""
Abstract base classes for swappable providers.
Enables dependency injection and flexible component swapping.
"""

from abc import ABC, abstractmethod
from typing import Optional
import logging

from shared_utils.error_handler import ExternalServiceError, ModelError


class BaseProvider(ABC):
    """Base class for all providers."""

    def __init__(self, name: str):
        self.name = name
        self.logger = logging.getLogger(f"{self.__class__.__module__}.{self.__class__.__name__}")

    @abstractmethod
    def initialize(self) -> None:
        """Initialize provider. Called after instantiation."""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if provider is available and credentials are valid."""
        pass


class LLMProviderBase(BaseProvider):
    """Abstract base for LLM providers.

    Subclasses only build the client and implement ``_complete``;
    prompt assembly and error logging live here.
    """

    @abstractmethod
    def _complete(self, prompt: str) -> str:
        """Send one fully assembled prompt to the model."""
        pass

    def generate(self, prompt: str, context: Optional[str] = None) -> str:
        """Generate response from LLM."""
        if not self.is_available():
            raise ModelError(f"{self.name} provider not initialized", context={"provider": self.name})

        full_prompt = f"{context}\n\n{prompt}" if context else prompt
        try:
            return self._complete(full_prompt)
        except Exception as e:
            self.logger.error(
                "LLM generation failed",
                extra={"provider": self.name, "error": str(e)}
            )
            raise ExternalServiceError(self.name, str(e)) from e
