"""Constants for LLM integration.

This module defines shared constants used across the provider layer and the
configuration system.
"""

# Valid LLM provider identifiers
VALID_LLM_PROVIDERS: frozenset[str] = frozenset({"openai", "anthropic"})

# Provider used when none is configured
DEFAULT_PROVIDER: str = "openai"

# Model used when none is configured, per provider
DEFAULT_MODELS: dict[str, str] = {
    "openai": "gpt-4o",
    "anthropic": "claude-sonnet-4-20250514",
}

# Environment variable holding each provider's API key
API_KEY_ENV_VARS: dict[str, str] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}

# Default request timeout in seconds
DEFAULT_TIMEOUT: int = 60

# Upper bound on parallel analysis workers
MAX_WORKERS: int = 32
