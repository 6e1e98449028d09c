"""LLM integration for change analysis.

This package provides the provider protocol, the OpenAI and Anthropic
adapters, provider configuration and the factory that ties them together.
"""

from ai_comments.llm.config import LLMConfig
from ai_comments.llm.constants import VALID_LLM_PROVIDERS
from ai_comments.llm.factory import (
    create_provider,
    create_provider_from_config,
    validate_provider,
)

__all__: list[str] = [
    "VALID_LLM_PROVIDERS",
    "LLMConfig",
    "create_provider",
    "create_provider_from_config",
    "validate_provider",
]
