"""
Bedrock LLM provider implementation.
"""

from llama_index.llms.bedrock import Bedrock
from core_intelligence.providers import LLMProviderBase
from shared_utils.constants import LogScope


class BedrockLLMProvider(LLMProviderBase):
    """AWS Bedrock LLM provider."""

    def __init__(self, model_id: str, region: str):
        super().__init__(name=f"BedrockLLM({model_id})")
        self.model_id = model_id
        self.region = region
        self._llm = None

    def initialize(self) -> None:
        """Initialize Bedrock LLM client."""
        try:
            self._llm = Bedrock(
                model=self.model_id,
                region_name=self.region
            )
            self.logger.info(
                "Initialized Bedrock LLM provider",
                extra={
                    "scope": LogScope.PROVIDER,
                    "model_id": self.model_id,
                    "region": self.region
                }
            )
        except Exception as e:
            self.logger.error(
                "Failed to initialize Bedrock LLM provider",
                extra={"scope": LogScope.PROVIDER, "error": str(e)}
            )
            raise

    def is_available(self) -> bool:
        """Check if Bedrock LLM is available."""
        return self._llm is not None

    def _complete(self, prompt: str) -> str:
        response = self._llm.complete(prompt)
        return response.text
