"""OpenAI API provider implementation.

This module provides the OpenAI chat completions integration used to analyze
changes. It includes:
- Retry logic with exponential backoff for transient failures
- Token counting using tiktoken
- JSON mode via ``response_format``
- Streaming with usage reporting
- Translation of SDK errors into the ``LLMError`` hierarchy
"""

import logging
from collections.abc import Callable, Iterator
from typing import Any, TypeVar

import tiktoken
from openai import (
    APIConnectionError,
    APITimeoutError,
    AuthenticationError,
    OpenAI,
    OpenAIError,
    RateLimitError,
)
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

DEFAULT_OPENAI_MODEL = DEFAULT_MODELS["openai"]

_TRANSIENT_ERRORS = (APITimeoutError, RateLimitError, APIConnectionError)

_FINISH_REASONS: dict[str | None, FinishReason] = {
    "stop": FinishReason.STOP,
    "length": FinishReason.LENGTH,
    "content_filter": FinishReason.CONTENT_FILTER,
}


def map_finish_reason(reason: str | None) -> FinishReason:
    return _FINISH_REASONS.get(reason, FinishReason.STOP)


class OpenAIAPIProvider:
    """OpenAI API provider for change analysis.

    Implements the ``LLMProvider`` protocol. The underlying SDK client is
    thread-safe, so one instance can serve a parallel analysis window.

    Examples:
        >>> provider = OpenAIAPIProvider(api_key="sk-...", model="gpt-4o")
        >>> response = provider.complete(LLMRequest(messages=[LLMMessage("user", "Hi")]))
        >>> tokens = provider.count_tokens("Some text to tokenize")

    Attributes:
        client: OpenAI client instance
        model: Model identifier (e.g., "gpt-4o", "gpt-4o-mini")
        timeout: Request timeout in seconds
    """

    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_OPENAI_MODEL,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize OpenAI API provider.

        Args:
            api_key: OpenAI API key (starts with sk-)
            model: Model identifier
            timeout: Request timeout in seconds

        Raises:
            LLMConfigurationError: If api_key is empty
        """
        if not api_key:
            raise LLMConfigurationError(
                "OpenAI API key cannot be empty", details={"provider": "openai"}
            )

        # Retries are handled by tenacity below
        self.client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self.model = model
        self.timeout = timeout
        self._tokenizer: tiktoken.Encoding | None = None

        logger.info(f"Initialized OpenAI provider: model={model}, timeout={timeout}s")

    @property
    def tokenizer(self) -> tiktoken.Encoding:
        """Tokenizer for the configured model, loaded on first use."""
        if self._tokenizer is None:
            try:
                self._tokenizer = tiktoken.encoding_for_model(self.model)
            except KeyError:
                logger.warning(
                    f"Unknown model '{self.model}' - using o200k_base tokenizer fallback. "
                    f"Token counts may be inaccurate."
                )
                self._tokenizer = tiktoken.get_encoding("o200k_base")
        return self._tokenizer

    def _request_kwargs(self, request: LLMRequest) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": [message.to_dict() for message in request.messages],
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
        }
        if request.json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        if request.stop:
            kwargs["stop"] = list(request.stop)
        return kwargs

    def _with_retries(self, func: Callable[..., T], *args: Any) -> T:
        """Run func with retries on transient errors, then translate failures.

        Raises:
            LLMRateLimitError: Rate limited on every attempt
            LLMTimeoutError: Timed out on every attempt
            LLMAPIError: Connection failures or other API errors
            LLMAuthenticationError: API key rejected (never retried)
        """
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
            logger.error(f"OpenAI rate limit persisted after retries: {error}")
            return LLMRateLimitError(f"OpenAI rate limit exceeded: {error}", details=details)
        if isinstance(error, APITimeoutError):
            logger.error(f"OpenAI request timed out after retries: {error}")
            return LLMTimeoutError(
                f"OpenAI request timed out after {self.timeout}s", details=details
            )
        if isinstance(error, AuthenticationError):
            logger.error(f"OpenAI authentication error: {error}")
            return LLMAuthenticationError(
                "OpenAI API authentication failed - check API key", details=details
            )
        if isinstance(error, OpenAIError):
            logger.error(f"OpenAI API error: {error}")
            return LLMAPIError(f"OpenAI API error: {error}", details=details)
        logger.error(f"Unexpected error in OpenAI completion: {error}")
        return LLMAPIError(f"Unexpected error during OpenAI completion: {error}", details=details)

    def complete(self, request: LLMRequest) -> LLMResponse:
        """Run a chat completion with retry logic.

        Args:
            request: Completion request

        Returns:
            Response with content, token usage and finish reason

        Raises:
            LLMError: If the completion fails after all retries
        """
        return self._with_retries(self._complete_once, request)

    def _complete_once(self, request: LLMRequest) -> LLMResponse:
        """Single completion attempt (called by retry logic)."""
        logger.debug(
            f"Sending request to OpenAI: model={self.model}, max_tokens={request.max_tokens}"
        )
        try:
            response = self.client.chat.completions.create(**self._request_kwargs(request))
        except _TRANSIENT_ERRORS as e:
            logger.warning(f"OpenAI transient error (will retry): {type(e).__name__}: {e}")
            raise

        if not response.choices:
            raise LLMAPIError("OpenAI returned no choices", details={"model": self.model})

        choice = response.choices[0]
        usage = response.usage
        prompt_tokens = usage.prompt_tokens if usage else 0
        completion_tokens = usage.completion_tokens if usage else 0
        total_tokens = usage.total_tokens if usage else 0

        logger.debug(
            f"OpenAI API call: {prompt_tokens} input + {completion_tokens} output tokens"
        )

        return LLMResponse(
            content=choice.message.content or "",
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=total_tokens,
            model=response.model or self.model,
            finish_reason=map_finish_reason(choice.finish_reason),
        )

    def complete_stream(self, request: LLMRequest) -> Iterator[LLMStreamChunk]:
        """Stream a chat completion.

        Opening the stream is retried like ``complete``; errors after the first
        chunk are translated but not retried.

        Yields:
            Text chunks, then one final chunk with ``done=True`` and usage
        """
        kwargs = self._request_kwargs(request)
        kwargs["stream"] = True
        kwargs["stream_options"] = {"include_usage": True}

        stream = self._with_retries(lambda: self.client.chat.completions.create(**kwargs))

        usage = TokenUsage()
        try:
            for chunk in stream:
                if chunk.usage:
                    usage = TokenUsage(
                        prompt_tokens=chunk.usage.prompt_tokens,
                        completion_tokens=chunk.usage.completion_tokens,
                    )
                if chunk.choices:
                    content = chunk.choices[0].delta.content
                    if content:
                        yield LLMStreamChunk(content=content)
        except OpenAIError as e:
            raise self._translate_error(e) from e

        yield LLMStreamChunk(content="", done=True, usage=usage)

    def count_tokens(self, text: str) -> int:
        """Count tokens in text using tiktoken.

        Args:
            text: Text to tokenize

        Returns:
            Number of tokens according to the model's tokenizer

        Raises:
            ValueError: If text is None
        """
        if text is None:
            raise ValueError("Text cannot be None")
        return len(self.tokenizer.encode(text))
