"""LLM configuration management.

This module provides the immutable provider configuration used to build an
``LLMProvider`` from defaults or environment variables.
"""

import os
from dataclasses import dataclass

from ai_comments.config.exceptions import ConfigError
from ai_comments.llm.constants import (
    API_KEY_ENV_VARS,
    DEFAULT_MODELS,
    DEFAULT_PROVIDER,
    DEFAULT_TIMEOUT,
    VALID_LLM_PROVIDERS,
)
from ai_comments.llm.providers.base import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE


@dataclass(frozen=True, slots=True)
class LLMConfig:
    """Configuration for the analysis provider.

    Args:
        provider: LLM provider name ("openai" or "anthropic")
        model: Model identifier (None selects the provider's default model)
        api_key: API key for the provider
        max_tokens: Maximum tokens per analysis request (default: 2000)
        temperature: Sampling temperature (default: 0.3)
        timeout: Request timeout in seconds (default: 60)

    Example:
        >>> config = LLMConfig.from_defaults()
        >>> config.provider
        'openai'
        >>> config.resolved_model
        'gpt-4o'

        >>> config = LLMConfig.from_env()  # Reads LLM_PROVIDER, AI_COMMENTS_* variables
    """

    provider: str = DEFAULT_PROVIDER
    model: str | None = None
    api_key: str | None = None
    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float = DEFAULT_TEMPERATURE
    timeout: int = DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        """Validate LLMConfig fields after initialization.

        Raises:
            ValueError: If any field has an invalid value
        """
        if self.provider not in VALID_LLM_PROVIDERS:
            valid = ", ".join(sorted(VALID_LLM_PROVIDERS))
            raise ValueError(f"provider must be one of {valid}, got '{self.provider}'")
        if self.max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive, got {self.max_tokens}")
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError(f"temperature must be in [0.0, 2.0], got {self.temperature}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")

    @property
    def resolved_model(self) -> str:
        """The configured model, or the provider default."""
        return self.model or DEFAULT_MODELS[self.provider]

    @property
    def api_key_env_var(self) -> str:
        return API_KEY_ENV_VARS[self.provider]

    @classmethod
    def from_defaults(cls) -> "LLMConfig":
        """Create an LLMConfig with default values (OpenAI, no API key)."""
        return cls()

    @classmethod
    def from_env(cls) -> "LLMConfig":
        """Create an LLMConfig from environment variables.

        Reads the following environment variables:
        - LLM_PROVIDER: Provider name (default: openai)
        - AI_COMMENTS_MODEL: Model identifier
        - OPENAI_API_KEY / ANTHROPIC_API_KEY: API key for the selected provider
        - AI_COMMENTS_MAX_TOKENS: Integer value
        - AI_COMMENTS_TEMPERATURE: Float value
        - AI_COMMENTS_TIMEOUT: Integer value in seconds

        Returns:
            LLMConfig with values from environment, falling back to defaults

        Raises:
            ConfigError: If a variable cannot be parsed or a value is invalid
        """
        provider = os.getenv("LLM_PROVIDER", DEFAULT_PROVIDER).strip().lower()
        if provider not in VALID_LLM_PROVIDERS:
            valid = ", ".join(sorted(VALID_LLM_PROVIDERS))
            raise ConfigError(f"LLM_PROVIDER must be one of {valid}, got '{provider}'")

        max_tokens_str = os.getenv("AI_COMMENTS_MAX_TOKENS", str(DEFAULT_MAX_TOKENS))
        try:
            max_tokens = int(max_tokens_str)
        except ValueError as e:
            raise ConfigError(
                f"AI_COMMENTS_MAX_TOKENS must be a valid integer, got '{max_tokens_str}'"
            ) from e

        temperature_str = os.getenv("AI_COMMENTS_TEMPERATURE", str(DEFAULT_TEMPERATURE))
        try:
            temperature = float(temperature_str)
        except ValueError as e:
            raise ConfigError(
                f"AI_COMMENTS_TEMPERATURE must be a valid float, got '{temperature_str}'"
            ) from e

        timeout_str = os.getenv("AI_COMMENTS_TIMEOUT", str(DEFAULT_TIMEOUT))
        try:
            timeout = int(timeout_str)
        except ValueError as e:
            raise ConfigError(
                f"AI_COMMENTS_TIMEOUT must be a valid integer, got '{timeout_str}'"
            ) from e

        try:
            return cls(
                provider=provider,
                model=os.getenv("AI_COMMENTS_MODEL") or None,
                api_key=os.getenv(API_KEY_ENV_VARS[provider]) or None,
                max_tokens=max_tokens,
                temperature=temperature,
                timeout=timeout,
            )
        except ValueError as e:
            raise ConfigError(f"Invalid LLM configuration: {e}") from e
