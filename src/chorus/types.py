"""Shared types and exceptions for chorus."""

from dataclasses import dataclass, field
from typing import Any, Literal, TypedDict

# Type aliases for messages
Role = Literal["system", "user", "assistant"]


class MessageDict(TypedDict, total=False):
    """A chat message in dictionary form."""

    role: Role
    content: str
    name: str


Message = MessageDict | dict[str, Any]
Messages = list[Message]

# ``from`` is a keyword, so the functional form is required here.
HistoryEntry = TypedDict(
    "HistoryEntry",
    {"from": str, "content": str, "timestamp": str},
)


@dataclass
class CompletionRequest:
    """A request to complete a chat conversation."""

    model: str
    messages: Messages = field(default_factory=list)
    temperature: float | None = None
    max_tokens: int | None = None
    api_key: str | None = None
    api_base: str | None = None
    # Additional kwargs passed through to litellm
    extra_kwargs: dict[str, Any] = field(default_factory=dict)

    def to_litellm_kwargs(self) -> dict[str, Any]:
        """Convert to kwargs dict for litellm.acompletion()."""
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": list(self.messages),
        }

        if self.temperature is not None:
            kwargs["temperature"] = self.temperature
        if self.max_tokens is not None:
            kwargs["max_tokens"] = self.max_tokens
        if self.api_key is not None:
            kwargs["api_key"] = self.api_key
        if self.api_base is not None:
            kwargs["api_base"] = self.api_base

        kwargs.update(self.extra_kwargs)

        return kwargs


@dataclass
class CompletionResponse:
    """A response from a completion request."""

    content: str
    model: str
    finish_reason: str | None = None
    usage: "UsageInfo | None" = None
    raw_response: Any = None


@dataclass
class UsageInfo:
    """Token usage information."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def from_litellm(cls, usage: dict[str, Any] | None) -> "UsageInfo":
        """Create from litellm usage dict."""
        if not usage:
            return cls()
        return cls(
            input_tokens=usage.get("prompt_tokens", 0) or 0,
            output_tokens=usage.get("completion_tokens", 0) or 0,
            total_tokens=usage.get("total_tokens", 0) or 0,
        )


@dataclass
class RetryConfig:
    """Configuration for adapter-level retry behavior."""

    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 60.0
    exponential_base: float = 2.0
    jitter: bool = True
    # HTTP status codes to retry on
    retry_on_status: tuple[int, ...] = (429, 500, 502, 503, 504)


# Exceptions
class ChorusError(Exception):
    """Base exception for chorus errors."""

    pass


class ConfigError(ChorusError):
    """Configuration error."""

    pass


class PreconditionError(ChorusError):
    """An operation was invoked in a state that does not allow it."""

    pass


class ProviderError(ChorusError):
    """Unknown provider or model."""

    pass


class CompletionError(ChorusError):
    """Error during a provider completion request."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class ConversationFileError(ChorusError):
    """A persisted conversation file is missing or malformed."""

    pass


class TemplateError(ChorusError):
    """Template rendering error."""

    pass
