"""LLM provider implementations.

This package contains provider-specific implementations for different LLM services.

Available providers:
- anthropic_api.py: Anthropic Messages API integration
- openai_api.py: OpenAI chat completions integration
"""

from ai_comments.llm.providers.anthropic_api import AnthropicAPIProvider
from ai_comments.llm.providers.base import LLMProvider
from ai_comments.llm.providers.openai_api import OpenAIAPIProvider

__all__: list[str] = [
    "AnthropicAPIProvider",
    "LLMProvider",
    "OpenAIAPIProvider",
]
