"""LLM error handling utilities for CLI commands.

This module provides shared error handling for LLM operations across CLI commands.
"""

import logging
from collections.abc import Generator
from contextlib import contextmanager

import click
from rich.console import Console

from ai_comments.config.runtime_config import RuntimeConfig
from ai_comments.llm.constants import API_KEY_ENV_VARS
from ai_comments.llm.exceptions import (
    LLMAPIError,
    LLMAuthenticationError,
    LLMConfigurationError,
    LLMError,
    LLMRateLimitError,
    LLMTimeoutError,
)

logger = logging.getLogger(__name__)
console = Console(stderr=True)

_PROVIDER_DISPLAY_NAMES = {"openai": "OpenAI", "anthropic": "Anthropic"}

_API_KEY_URLS = {
    "openai": "https://platform.openai.com/api-keys",
    "anthropic": "https://console.anthropic.com/settings/keys",
}


def _display_name(provider: str) -> str:
    return _PROVIDER_DISPLAY_NAMES.get(provider, provider)


class LLMErrorHandler:
    """Format LLM errors as actionable CLI messages."""

    @staticmethod
    def format_auth_error(provider: str) -> str:
        """Return setup guidance for a rejected or missing API key."""
        env_var = API_KEY_ENV_VARS.get(provider, "the provider API key variable")
        lines = [
            f"Authentication failed for {_display_name(provider)}.",
            f"Set {env_var} or pass --api-key.",
        ]
        if provider in _API_KEY_URLS:
            lines.append(f"Create a key at {_API_KEY_URLS[provider]}")
        return "\n".join(lines)

    @staticmethod
    def format_provider_error(provider: str, error: LLMError) -> str:
        """Return a message for a provider failure with a hint for its type."""
        message = f"{_display_name(provider)} error: {error}"
        if isinstance(error, LLMRateLimitError):
            return f"{message}\nRate limit reached. Wait a moment or lower --concurrency."
        if isinstance(error, LLMTimeoutError):
            return f"{message}\nRequest timed out. Retry or raise AI_COMMENTS_TIMEOUT."
        if isinstance(error, LLMConfigurationError):
            return f"{message}\nCheck --provider, --model and the API key settings."
        return message


@contextmanager
def handle_llm_errors(runtime_config: RuntimeConfig) -> Generator[None, None, None]:
    """Context manager for handling LLM errors in CLI commands.

    Args:
        runtime_config: Runtime configuration containing LLM provider settings.

    Yields:
        None

    Raises:
        click.Abort: For fatal LLM errors that should terminate execution.

    Example:
        with handle_llm_errors(runtime_config):
            provider = create_provider_from_config(runtime_config.to_llm_config())
    """
    provider = runtime_config.llm_provider
    try:
        yield

    except LLMAuthenticationError as e:
        console.print(f"\n[red]{LLMErrorHandler.format_auth_error(provider)}[/red]")
        logger.error(f"LLM authentication failed: {e}")
        raise click.Abort() from e

    except LLMRateLimitError as e:
        console.print(f"\n[yellow]{LLMErrorHandler.format_provider_error(provider, e)}[/yellow]")
        logger.warning(f"LLM rate limit exceeded: {e}")
        raise click.Abort() from e

    except LLMTimeoutError as e:
        console.print(f"\n[yellow]{LLMErrorHandler.format_provider_error(provider, e)}[/yellow]")
        logger.warning(f"LLM request timed out: {e}")
        raise click.Abort() from e

    except LLMConfigurationError as e:
        console.print(f"\n[red]{LLMErrorHandler.format_provider_error(provider, e)}[/red]")
        logger.error(f"LLM configuration error: {e}")
        raise click.Abort() from e

    except LLMAPIError as e:
        console.print(f"\n[red]{LLMErrorHandler.format_provider_error(provider, e)}[/red]")
        logger.error(f"LLM API error: {e}")
        raise click.Abort() from e

    except LLMError as e:
        console.print(f"\n[red]{LLMErrorHandler.format_provider_error(provider, e)}[/red]")
        logger.error(f"LLM error: {e}")
        raise click.Abort() from e
