"""Provider protocol and request/response types.

The analyzer only depends on ``LLMProvider``; concrete adapters (OpenAI,
Anthropic, or a test double) are interchangeable as long as they satisfy the
protocol structurally.
"""

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Protocol, TypeAlias, runtime_checkable

Role: TypeAlias = Literal["system", "user", "assistant"]

DEFAULT_MAX_TOKENS: int = 2000
DEFAULT_TEMPERATURE: float = 0.3


class FinishReason(str, Enum):
    """Why the model stopped generating."""

    STOP = "stop"
    LENGTH = "length"
    CONTENT_FILTER = "content_filter"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class LLMMessage:
    """One chat message."""

    role: Role
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True, slots=True)
class LLMRequest:
    """Completion request sent to a provider.

    Args:
        messages: Ordered chat messages
        max_tokens: Maximum tokens to generate
        temperature: Sampling temperature
        json_mode: Ask the backend for a JSON object response (a hint, not a
            guarantee)
        stop: Stop sequences
    """

    messages: Sequence[LLMMessage]
    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float = DEFAULT_TEMPERATURE
    json_mode: bool = False
    stop: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Validate LLMRequest fields after initialization.

        Raises:
            ValueError: If messages is empty or a numeric field is out of range
        """
        if not self.messages:
            raise ValueError("messages cannot be empty")
        if self.max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive, got {self.max_tokens}")
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError(f"temperature must be in [0.0, 2.0], got {self.temperature}")

    def split_system(self) -> tuple[str | None, list[LLMMessage]]:
        """Separate system messages from the conversation.

        Returns:
            Tuple of (joined system text or None, remaining messages)
        """
        system_parts = [m.content for m in self.messages if m.role == "system"]
        others = [m for m in self.messages if m.role != "system"]
        return ("\n\n".join(system_parts) if system_parts else None), others


@dataclass(frozen=True, slots=True)
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


@dataclass(frozen=True, slots=True)
class LLMResponse:
    """Completed provider response."""

    content: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    model: str
    finish_reason: FinishReason = FinishReason.STOP


@dataclass(frozen=True, slots=True)
class LLMStreamChunk:
    """Incremental piece of a streaming response.

    The final chunk has ``done=True`` and carries usage totals.
    """

    content: str
    done: bool = False
    usage: TokenUsage | None = field(default=None)


@runtime_checkable
class LLMProvider(Protocol):
    """Structural interface every provider adapter satisfies.

    Implementations must be safe to call from several threads at once; the
    analyzer fans out parallel windows over a single provider instance.
    """

    @property
    def name(self) -> str:
        """Provider label recorded on analysis results."""
        ...

    def complete(self, request: LLMRequest) -> LLMResponse:
        """Run a completion and return the whole response.

        Raises:
            LLMError: On any provider failure
        """
        ...

    def complete_stream(self, request: LLMRequest) -> Iterator[LLMStreamChunk]:
        """Run a completion, yielding text chunks then a final ``done`` chunk."""
        ...

    def count_tokens(self, text: str) -> int:
        """Count tokens in text with the provider's tokenizer."""
        ...
