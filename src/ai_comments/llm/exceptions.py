"""Exception hierarchy for LLM provider operations.

Every error raised at the provider boundary is an ``LLMError``. SDK-specific
exceptions are translated by the provider adapters so callers never need to
import a vendor SDK to handle failures.
"""

from typing import Any


class LLMError(Exception):
    """Base class for all LLM errors.

    Args:
        message: Human-readable error message
        details: Optional structured context (provider, model, status code...)
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if not self.details:
            return self.message
        context = ", ".join(f"{key}={value}" for key, value in self.details.items())
        return f"{self.message} ({context})"


class LLMAPIError(LLMError):
    """Provider API call failed after retries, or returned an unusable response."""


class LLMAuthenticationError(LLMError):
    """Provider rejected the API key."""


class LLMConfigurationError(LLMError):
    """Provider is misconfigured (unknown name, missing API key, bad parameters)."""


class LLMRateLimitError(LLMError):
    """Provider rate limit persisted through all retries."""


class LLMTimeoutError(LLMError):
    """Provider request timed out through all retries."""
