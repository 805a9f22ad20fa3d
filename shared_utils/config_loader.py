from pydantic_settings import BaseSettings
from pydantic import field_validator, ConfigDict
from functools import lru_cache
from typing import Optional
import json
import boto3

from shared_utils.constants import Defaults, Environment, LLMProvider, LogScope, ModelIDs
from shared_utils.logging_utils import get_scoped_logger

logger = get_scoped_logger(LogScope.CONFIG)


def get_secret_from_aws(secret_name: str, region: str = Defaults.AWS_REGION) -> str:
    """Fetch secret from AWS Secrets Manager.

    Args:
        secret_name: Name of the secret in Secrets Manager
        region: AWS region

    Returns:
        Secret value or empty string if fetch fails
    """
    try:
        client = boto3.client("secretsmanager", region_name=region)
        response = client.get_secret_value(SecretId=secret_name)
        if "SecretString" in response:
            secret = json.loads(response["SecretString"])
            return secret.get("openai_api_key", "")
        return ""
    except Exception as e:
        logger.warning("secret_fetch_failed", secret_name=secret_name, error=str(e))
        return ""


class Settings(BaseSettings):
    """Application configuration with environment variable precedence.

    Precedence: 1) Environment Variables > 2) .env file > 3) Class defaults

    The summarizer is optional: with ``llm_provider="none"`` (or missing
    credentials) meetings still run and finish with a placeholder summary.
    """
    app_name: str = "Scrum Room"
    app_version: str = "0.3.0"
    app_description: str = "Timed round-robin standups with AI summaries"

    # LLM Configuration
    llm_provider: str = "none"  # "bedrock", "openai" or "none"
    openai_llm_model_id: str = ModelIDs.OPENAI_GPT_4O_MINI
    openai_api_key: Optional[str] = None
    openai_secret_name: Optional[str] = None
    bedrock_region: str = Defaults.AWS_REGION
    bedrock_llm_model_id: str = ModelIDs.BEDROCK_CLAUDE_3_HAIKU

    # Meeting room
    tick_interval_seconds: float = Defaults.TICK_INTERVAL_SECONDS
    extend_step_seconds: int = Defaults.EXTEND_STEP_SECONDS
    member_summary_days: int = Defaults.MEMBER_SUMMARY_DAYS

    # Persistence: empty path keeps scrums in memory only
    scrum_store_path: str = ""

    environment: str = "development"

    model_config = ConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @field_validator('llm_provider')
    @classmethod
    def validate_llm_provider(cls, v: str) -> str:
        """Validate LLM provider is supported."""
        valid_providers = {p.value for p in LLMProvider}
        if v.lower() not in valid_providers:
            raise ValueError(f"llm_provider must be one of {valid_providers}, got {v}")
        return v.lower()

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is recognized."""
        valid_envs = {e.value for e in Environment}
        if v.lower() not in valid_envs:
            raise ValueError(f"environment must be one of {valid_envs}, got {v}")
        return v.lower()

    @field_validator('tick_interval_seconds')
    @classmethod
    def validate_tick_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"tick_interval_seconds must be > 0, got {v}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Load and cache application settings.

    If the OpenAI provider is configured without a key and OPENAI_SECRET_NAME
    is provided, fetches the API key from AWS Secrets Manager.

    Returns:
        Validated Settings instance

    Raises:
        ValueError: If settings are invalid
    """
    settings = Settings()

    if (
        settings.llm_provider == "openai"
        and not settings.openai_api_key
        and settings.openai_secret_name
    ):
        secret_key = get_secret_from_aws(settings.openai_secret_name, settings.bedrock_region)
        if secret_key:
            settings.openai_api_key = secret_key
            logger.debug("fetched_openai_key_from_secrets_manager")

    logger.info(
        "configuration_loaded",
        environment=settings.environment,
        llm_provider=settings.llm_provider,
        tick_interval_seconds=settings.tick_interval_seconds,
        scrum_store_path=settings.scrum_store_path or "<memory>",
    )

    return settings
