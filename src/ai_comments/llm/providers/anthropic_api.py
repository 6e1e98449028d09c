"""Anthropic API provider implementation.

This module provides the Anthropic Messages API integration used to analyze
changes. It includes:
- Retry logic with exponential backoff for transient failures
- System message extraction (Anthropic takes it as a separate parameter)
- Stop reason mapping onto ``FinishReason``
- Streaming with usage reporting
- Token counting using Anthropic's count_tokens API
"""

import logging
from collections.abc import Callable, Iterator
from typing import Any, TypeVar

from anthropic import (
    Anthropic,
    APIConnectionError,
    APIError,
    APITimeoutError,
    AuthenticationError,
    RateLimitError,
)
from anthropic.types import TextBlock
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ai_comments.llm.constants import DEFAULT_MODELS, DEFAULT_TIMEOUT
from ai_comments.llm.exceptions import (
    LLMAPIError,
    LLMAuthenticationError,
    LLMConfigurationError,
    LLMError,
    LLMRateLimitError,
    LLMTimeoutError,
)
from ai_comments.llm.providers.base import (
    FinishReason,
    LLMRequest,
    LLMResponse,
    LLMStreamChunk,
    TokenUsage,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_ANTHROPIC_MODEL = DEFAULT_MODELS["anthropic"]

_TRANSIENT_ERRORS = (RateLimitError, APIConnectionError, APITimeoutError)

_STOP_REASONS: dict[str | None, FinishReason] = {
    "end_turn": FinishReason.STOP,
    "stop_sequence": FinishReason.STOP,
    "max_tokens": FinishReason.LENGTH,
    "refusal": FinishReason.CONTENT_FILTER,
}


def map_stop_reason(reason: str | None) -> FinishReason:
    return _STOP_REASONS.get(reason, FinishReason.STOP)


class AnthropicAPIProvider:
    """Anthropic API provider for change analysis.

    Implements the ``LLMProvider`` protocol. Anthropic has no JSON response
    mode, so ``json_mode`` relies on the prompt alone and the parser's repair
    tiers absorb any deviation.

    Examples:
        >>> provider = AnthropicAPIProvider(api_key="sk-ant-...")
        >>> response = provider.complete(LLMRequest(messages=[LLMMessage("user", "Hi")]))

    Attributes:
        client: Anthropic client instance
        model: Model identifier
        timeout: Request timeout in seconds
    """

    name = "anthropic"

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_ANTHROPIC_MODEL,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize Anthropic API provider.

        Args:
            api_key: Anthropic API key (starts with sk-ant-)
            model: Model identifier
            timeout: Request timeout in seconds

        Raises:
            LLMConfigurationError: If api_key is empty
        """
        if not api_key:
            raise LLMConfigurationError(
                "Anthropic API key cannot be empty", details={"provider": "anthropic"}
            )

        # Create client with max_retries=0 to implement our own retry logic
        self.client = Anthropic(api_key=api_key, timeout=timeout, max_retries=0)
        self.model = model
        self.timeout = timeout

        logger.info(f"Initialized Anthropic provider: model={model}, timeout={timeout}s")

    def _request_kwargs(self, request: LLMRequest) -> dict[str, Any]:
        system, messages = request.split_system()
        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "messages": [message.to_dict() for message in messages],
        }
        if system is not None:
            kwargs["system"] = system
        if request.stop:
            kwargs["stop_sequences"] = list(request.stop)
        return kwargs

    def _with_retries(self, func: Callable[..., T], *args: Any) -> T:
        """Run func with retries on transient errors, then translate failures."""
        retryer = Retrying(
            stop=stop_after_attempt(3),
            wait=wait_exponential(multiplier=1, min=2, max=10),
            retry=retry_if_exception_type(_TRANSIENT_ERRORS),
            reraise=True,
        )
        try:
            return retryer(func, *args)
        except LLMError:
            raise
        except Exception as e:
            raise self._translate_error(e) from e

    def _translate_error(self, error: Exception) -> LLMError:
        details = {"provider": self.name, "model": self.model}
        if isinstance(error, RateLimitError):
            logger.error(f"Anthropic rate limit persisted after retries: {error}")
            return LLMRateLimitError(f"Anthropic rate limit exceeded: {error}", details=details)
        if isinstance(error, APITimeoutError):
            logger.error(f"Anthropic request timed out after retries: {error}")
            return LLMTimeoutError(
                f"Anthropic request timed out after {self.timeout}s", details=details
            )
        if isinstance(error, AuthenticationError):
            logger.error(f"Anthropic authentication error: {error}")
            return LLMAuthenticationError(
                "Anthropic API authentication failed - check API key", details=details
            )
        if isinstance(error, APIError):
            logger.error(f"Anthropic API error: {error}")
            return LLMAPIError(f"Anthropic API error: {error}", details=details)
        logger.error(f"Unexpected error in Anthropic completion: {error}")
        return LLMAPIError(
            f"Unexpected error during Anthropic completion: {error}", details=details
        )

    def complete(self, request: LLMRequest) -> LLMResponse:
        """Run a message completion with retry logic.

        Raises:
            LLMError: If the completion fails after all retries
        """
        return self._with_retries(self._complete_once, request)

    def _complete_once(self, request: LLMRequest) -> LLMResponse:
        """Single completion attempt (called by retry logic)."""
        logger.debug(
            f"Sending request to Anthropic: model={self.model}, max_tokens={request.max_tokens}"
        )
        try:
            response = self.client.messages.create(**self._request_kwargs(request))
        except _TRANSIENT_ERRORS as e:
            logger.warning(f"Anthropic transient error (will retry): {type(e).__name__}: {e}")
            raise

        text_parts = [
            block.text for block in response.content or () if isinstance(block, TextBlock)
        ]

        input_tokens = response.usage.input_tokens
        output_tokens = response.usage.output_tokens
        logger.debug(f"Anthropic API call: {input_tokens} input + {output_tokens} output tokens")

        return LLMResponse(
            content="".join(text_parts),
            prompt_tokens=input_tokens,
            completion_tokens=output_tokens,
            total_tokens=input_tokens + output_tokens,
            model=response.model or self.model,
            finish_reason=map_stop_reason(response.stop_reason),
        )

    def complete_stream(self, request: LLMRequest) -> Iterator[LLMStreamChunk]:
        """Stream a message completion.

        Yields:
            Text chunks, then one final chunk with ``done=True`` and usage
        """
        input_tokens = 0
        output_tokens = 0

        try:
            with self.client.messages.stream(**self._request_kwargs(request)) as stream:
                for event in stream:
                    if event.type == "message_start":
                        input_tokens = event.message.usage.input_tokens
                    elif event.type == "content_block_delta":
                        if event.delta.type == "text_delta":
                            yield LLMStreamChunk(content=event.delta.text)
                    elif event.type == "message_delta":
                        output_tokens = event.usage.output_tokens
        except APIError as e:
            raise self._translate_error(e) from e

        yield LLMStreamChunk(
            content="",
            done=True,
            usage=TokenUsage(prompt_tokens=input_tokens, completion_tokens=output_tokens),
        )

    def count_tokens(self, text: str) -> int:
        """Count tokens in text using Anthropic's count_tokens API.

        Falls back to a rough estimate (chars / 4) if the API call fails.

        Raises:
            ValueError: If text is None
        """
        if text is None:
            raise ValueError("Text cannot be None")

        try:
            count_response = self.client.messages.count_tokens(
                model=self.model, messages=[{"role": "user", "content": text}]
            )
            return int(count_response.input_tokens)
        except APIError as e:
            logger.error(f"Error counting tokens: {e}")
            return len(text) // 4
