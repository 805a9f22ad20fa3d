"""
Tests for shared_utils.config_loader.

Covers the field validators, get_settings() caching and secret lookup, and
get_secret_from_aws().
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from shared_utils.config_loader import Settings, get_settings, get_secret_from_aws


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ---------------------------------------------------------------------------
# Defaults and validators
# ---------------------------------------------------------------------------

class TestSettings:
    def test_defaults(self, monkeypatch) -> None:
        monkeypatch.delenv("LLM_PROVIDER", raising=False)
        s = Settings(_env_file=None)
        assert s.llm_provider == "none"
        assert s.tick_interval_seconds == 1.0
        assert s.extend_step_seconds == 30
        assert s.scrum_store_path == ""

    def test_llm_provider_case_insensitive(self) -> None:
        assert Settings(llm_provider="OpenAI").llm_provider == "openai"

    def test_invalid_llm_provider(self) -> None:
        with pytest.raises(ValueError, match="llm_provider"):
            Settings(llm_provider="cohere")

    def test_invalid_environment(self) -> None:
        with pytest.raises(ValueError, match="environment"):
            Settings(environment="qa")

    def test_non_positive_tick_interval(self) -> None:
        with pytest.raises(ValueError, match="tick_interval_seconds"):
            Settings(tick_interval_seconds=0)

    def test_env_var_precedence(self, monkeypatch) -> None:
        monkeypatch.setenv("EXTEND_STEP_SECONDS", "45")
        assert Settings().extend_step_seconds == 45


# ---------------------------------------------------------------------------
# get_settings
# ---------------------------------------------------------------------------

class TestGetSettings:
    def test_cached(self) -> None:
        assert get_settings() is get_settings()

    @patch("shared_utils.config_loader.get_secret_from_aws", return_value="sk-from-secrets")
    def test_openai_key_fetched_from_secret(self, mock_secret, monkeypatch) -> None:
        monkeypatch.setenv("LLM_PROVIDER", "openai")
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.setenv("OPENAI_SECRET_NAME", "scrum-room/openai")

        settings = get_settings()

        assert settings.openai_api_key == "sk-from-secrets"
        mock_secret.assert_called_once_with("scrum-room/openai", settings.bedrock_region)

    @patch("shared_utils.config_loader.get_secret_from_aws")
    def test_secret_not_fetched_when_key_present(self, mock_secret, monkeypatch) -> None:
        monkeypatch.setenv("LLM_PROVIDER", "openai")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        monkeypatch.setenv("OPENAI_SECRET_NAME", "scrum-room/openai")

        assert get_settings().openai_api_key == "sk-env"
        mock_secret.assert_not_called()


# ---------------------------------------------------------------------------
# get_secret_from_aws
# ---------------------------------------------------------------------------

class TestGetSecretFromAws:
    @patch("shared_utils.config_loader.boto3")
    def test_returns_key(self, mock_boto3) -> None:
        client = MagicMock()
        client.get_secret_value.return_value = {
            "SecretString": json.dumps({"openai_api_key": "sk-123"})
        }
        mock_boto3.client.return_value = client

        assert get_secret_from_aws("name", "eu-west-2") == "sk-123"
        mock_boto3.client.assert_called_once_with("secretsmanager", region_name="eu-west-2")

    @patch("shared_utils.config_loader.boto3")
    def test_binary_secret_returns_empty(self, mock_boto3) -> None:
        mock_boto3.client.return_value.get_secret_value.return_value = {"SecretBinary": b"x"}
        assert get_secret_from_aws("name") == ""

    @patch("shared_utils.config_loader.boto3")
    def test_failure_returns_empty(self, mock_boto3) -> None:
        mock_boto3.client.side_effect = RuntimeError("no credentials")
        assert get_secret_from_aws("name") == ""
