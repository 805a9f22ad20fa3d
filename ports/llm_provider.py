"""
Port interface for LLM text generation.

The providers in core_intelligence/providers/ implement this contract.
Services depend on the interface, not the impl.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class LLMProviderPort(Protocol):
    """Abstract interface for LLM text generation."""

    def generate(self, prompt: str, context: Optional[str] = None) -> str:
        """Generate text from a prompt.

        Args:
            prompt: Fully rendered prompt.
            context: Optional context to prepend.

        Returns:
            Generated text string.
        """
        ...
