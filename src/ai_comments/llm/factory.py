"""LLM Provider Factory and Selection Logic.

This module provides factory functions for creating and validating provider
instances. Both supported providers require an API key.

Supported Providers:
    - openai: OpenAI API
    - anthropic: Anthropic API

Usage Examples:
    Create a provider directly:
        >>> provider = create_provider("anthropic", api_key="sk-ant-...")

    Create from configuration:
        >>> config = LLMConfig.from_env()
        >>> provider = create_provider_from_config(config)

    Validate provider health:
        >>> if validate_provider(provider):
        ...     analyzer = ChangeAnalyzer(provider)
"""

import logging
from typing import Any

from ai_comments.llm.config import LLMConfig
from ai_comments.llm.constants import API_KEY_ENV_VARS, VALID_LLM_PROVIDERS
from ai_comments.llm.exceptions import LLMAPIError, LLMConfigurationError, LLMError
from ai_comments.llm.providers.anthropic_api import AnthropicAPIProvider
from ai_comments.llm.providers.base import LLMProvider
from ai_comments.llm.providers.openai_api import OpenAIAPIProvider

logger = logging.getLogger(__name__)

# Provider registry mapping provider names to classes
PROVIDER_REGISTRY: dict[str, type[Any]] = {
    "openai": OpenAIAPIProvider,
    "anthropic": AnthropicAPIProvider,
}


def create_provider(
    provider: str,
    model: str | None = None,
    api_key: str | None = None,
    timeout: int | None = None,
) -> LLMProvider:
    """Create a provider instance with validation.

    Args:
        provider: Provider name. Must be one of VALID_LLM_PROVIDERS.
        model: Model identifier (optional, uses the provider default if not given)
        api_key: API key for the provider
        timeout: Request timeout in seconds (optional, uses the provider default)

    Returns:
        Configured provider instance implementing the LLMProvider protocol

    Raises:
        LLMConfigurationError: If the provider name is unknown or the API key is
            missing or blank
        ValueError: If timeout is not positive

    Examples:
        >>> provider = create_provider(
        ...     "openai",
        ...     model="gpt-4o",
        ...     api_key=os.getenv("OPENAI_API_KEY"),
        ... )
    """
    if provider not in VALID_LLM_PROVIDERS:
        valid_list = ", ".join(sorted(VALID_LLM_PROVIDERS))
        raise LLMConfigurationError(
            f"Invalid provider '{provider}'. Valid providers: {valid_list}",
            details={"provider": provider, "valid_providers": sorted(VALID_LLM_PROVIDERS)},
        )

    env_var = API_KEY_ENV_VARS[provider]
    if not api_key or not api_key.strip():
        raise LLMConfigurationError(
            f"API key required for '{provider}' provider. "
            f"Set {env_var} environment variable or pass api_key parameter.",
            details={"provider": provider, "env_var": env_var},
        )

    if timeout is not None and timeout <= 0:
        raise ValueError(f"timeout must be positive, got {timeout}")

    provider_kwargs: dict[str, Any] = {"api_key": api_key}
    if model is not None:
        provider_kwargs["model"] = model
    if timeout is not None:
        provider_kwargs["timeout"] = timeout

    timeout_str = f"{timeout}s" if timeout is not None else "provider default"
    logger.info(f"Creating {provider} provider: model={model}, timeout={timeout_str}")

    try:
        return PROVIDER_REGISTRY[provider](**provider_kwargs)
    except Exception as e:
        logger.error(f"Failed to create {provider} provider: {e}")
        raise


def validate_provider(provider: LLMProvider) -> bool:
    """Validate a provider with a lightweight health check.

    Counts tokens on a minimal test string, which exercises the provider's
    configuration without spending completion tokens.

    Returns:
        True if the provider is healthy (never returns False)

    Raises:
        LLMError: If the health check fails. Non-LLM exceptions are wrapped in
            LLMAPIError.
    """
    try:
        provider.count_tokens("test")
    except LLMError:
        logger.error(f"Provider health check failed: {provider.__class__.__name__}")
        raise
    except Exception as e:
        logger.error(f"Provider health check failed: {e}")
        raise LLMAPIError(
            f"Provider health check failed: {e}",
            details={"provider_class": provider.__class__.__name__, "error": str(e)},
        ) from e

    logger.debug(f"Provider health check passed: {provider.__class__.__name__}")
    return True


def create_provider_from_config(config: LLMConfig) -> LLMProvider:
    """Create a provider from an LLMConfig.

    Raises:
        LLMConfigurationError: If config has no API key for its provider
    """
    logger.info(
        f"Creating provider from config: provider={config.provider}, "
        f"model={config.resolved_model}"
    )
    return create_provider(
        provider=config.provider,
        model=config.resolved_model,
        api_key=config.api_key,
        timeout=config.timeout,
    )
