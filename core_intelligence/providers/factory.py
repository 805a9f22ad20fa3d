"""
Factory for creating configured provider instances.
Handles provider instantiation with dependency injection.
"""

from typing import Optional
import logging

from core_intelligence.providers import LLMProviderBase
from shared_utils.config_loader import get_settings
from shared_utils.constants import LLMProvider, LogScope
from shared_utils.error_handler import ConfigurationError


logger = logging.getLogger(__name__)


class LLMProviderFactory:
    """Factory for creating LLM providers."""

    @staticmethod
    def create(provider_type: Optional[str] = None) -> LLMProviderBase:
        """Create configured LLM provider.

        Provider modules are imported lazily so an installation only needs
        the llama-index integration it actually uses.

        Args:
            provider_type: Optional override. If None, uses config value.

        Returns:
            Initialized LLM provider.

        Raises:
            ConfigurationError: If the provider is disabled, unknown or
                missing credentials.
        """
        settings = get_settings()
        llm_provider = provider_type or settings.llm_provider

        logger.info(
            "Creating LLM provider",
            extra={"scope": LogScope.CONFIG, "provider": llm_provider}
        )

        try:
            if llm_provider == LLMProvider.OPENAI.value:
                if not settings.openai_api_key:
                    raise ConfigurationError("OPENAI_API_KEY not configured")

                from core_intelligence.providers.openai_llm import OpenAILLMProvider

                provider = OpenAILLMProvider(
                    model_id=settings.openai_llm_model_id,
                    api_key=settings.openai_api_key
                )
                provider.initialize()
                return provider

            elif llm_provider == LLMProvider.BEDROCK.value:
                if not settings.bedrock_region or not settings.bedrock_llm_model_id:
                    raise ConfigurationError("BEDROCK_REGION or BEDROCK_LLM_MODEL_ID not configured")

                from core_intelligence.providers.bedrock_llm import BedrockLLMProvider

                provider = BedrockLLMProvider(
                    model_id=settings.bedrock_llm_model_id,
                    region=settings.bedrock_region
                )
                provider.initialize()
                return provider

            elif llm_provider == LLMProvider.NONE.value:
                raise ConfigurationError("LLM provider disabled (LLM_PROVIDER=none)")

            else:
                raise ConfigurationError(f"Unknown LLM provider: {llm_provider}")

        except Exception as e:
            logger.error(
                "Failed to create LLM provider",
                extra={"scope": LogScope.CONFIG, "provider": llm_provider, "error": str(e)}
            )
            raise
