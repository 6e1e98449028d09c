"""Tests for LLMConfig."""

import os
from unittest.mock import patch

import pytest

from ai_comments.config import ConfigError
from ai_comments.llm.config import LLMConfig


class TestLLMConfigDefaults:
    """Test default configuration and validation."""

    def test_defaults(self) -> None:
        config = LLMConfig.from_defaults()
        assert config.provider == "openai"
        assert config.model is None
        assert config.api_key is None
        assert config.max_tokens == 2000
        assert config.temperature == 0.3
        assert config.timeout == 60

    @pytest.mark.parametrize(
        ("provider", "model"),
        [("openai", "gpt-4o"), ("anthropic", "claude-sonnet-4-20250514")],
    )
    def test_resolved_model_defaults(self, provider: str, model: str) -> None:
        assert LLMConfig(provider=provider).resolved_model == model

    def test_explicit_model_wins(self) -> None:
        assert LLMConfig(model="gpt-4o-mini").resolved_model == "gpt-4o-mini"

    @pytest.mark.parametrize(
        ("provider", "env_var"),
        [("openai", "OPENAI_API_KEY"), ("anthropic", "ANTHROPIC_API_KEY")],
    )
    def test_api_key_env_var(self, provider: str, env_var: str) -> None:
        assert LLMConfig(provider=provider).api_key_env_var == env_var

    @pytest.mark.parametrize(
        ("kwargs", "message"),
        [
            ({"provider": "ollama"}, "provider must be one of anthropic, openai"),
            ({"max_tokens": 0}, "max_tokens must be positive"),
            ({"temperature": 3.0}, "temperature must be in"),
            ({"timeout": -1}, "timeout must be positive"),
        ],
    )
    def test_invalid(self, kwargs: dict[str, object], message: str) -> None:
        with pytest.raises(ValueError, match=message):
            LLMConfig(**kwargs)


class TestLLMConfigFromEnv:
    """Test loading LLMConfig from environment variables."""

    def test_empty_environment(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            assert LLMConfig.from_env() == LLMConfig()

    def test_reads_provider_key(self) -> None:
        env = {
            "LLM_PROVIDER": " Anthropic ",
            "ANTHROPIC_API_KEY": "sk-ant-test",
            "OPENAI_API_KEY": "sk-openai",
            "AI_COMMENTS_MODEL": "claude-test",
            "AI_COMMENTS_MAX_TOKENS": "4000",
            "AI_COMMENTS_TEMPERATURE": "0.0",
            "AI_COMMENTS_TIMEOUT": "15",
        }
        with patch.dict(os.environ, env, clear=True):
            config = LLMConfig.from_env()

        assert config.provider == "anthropic"
        assert config.api_key == "sk-ant-test"
        assert config.model == "claude-test"
        assert config.max_tokens == 4000
        assert config.temperature == 0.0
        assert config.timeout == 15

    def test_invalid_provider(self) -> None:
        with patch.dict(os.environ, {"LLM_PROVIDER": "ollama"}, clear=True):
            with pytest.raises(ConfigError, match="LLM_PROVIDER must be one of"):
                LLMConfig.from_env()

    @pytest.mark.parametrize(
        ("env_var", "value", "message"),
        [
            ("AI_COMMENTS_MAX_TOKENS", "lots", "must be a valid integer, got 'lots'"),
            ("AI_COMMENTS_TEMPERATURE", "hot", "must be a valid float, got 'hot'"),
            ("AI_COMMENTS_TIMEOUT", "1.5", "must be a valid integer, got '1.5'"),
        ],
    )
    def test_unparseable_values(self, env_var: str, value: str, message: str) -> None:
        with patch.dict(os.environ, {env_var: value}, clear=True):
            with pytest.raises(ConfigError, match=message):
                LLMConfig.from_env()

    def test_out_of_range_value(self) -> None:
        with patch.dict(os.environ, {"AI_COMMENTS_MAX_TOKENS": "-5"}, clear=True):
            with pytest.raises(ConfigError, match="Invalid LLM configuration"):
                LLMConfig.from_env()
