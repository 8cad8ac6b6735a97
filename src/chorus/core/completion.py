"""The provider call behind every adapter."""

import logging
from typing import Any

import litellm

from ..types import (
    CompletionError,
    CompletionRequest,
    CompletionResponse,
    UsageInfo,
)

logger = logging.getLogger(__name__)

# Checked in order, so subclasses come before their bases.
# A status of None keeps the provider's own status code, if any.
PROVIDER_ERRORS: tuple[tuple[type[Exception], str, int | None], ...] = (
    (litellm.exceptions.AuthenticationError, "API key rejected", 401),
    (litellm.exceptions.RateLimitError, "Rate limit exceeded", 429),
    (litellm.exceptions.Timeout, "Provider timed out", None),
    (litellm.exceptions.APIConnectionError, "API connection error", None),
    (litellm.exceptions.APIError, "API error", None),
)


def reply_text(content: Any) -> str:
    """
    Normalize a provider's message content to plain text.

    ``None`` becomes ``""``; a list of content parts is joined on their
    ``text``; surrounding whitespace is dropped, so a whitespace-only reply
    comes back empty and the orchestrator skips the turn.
    """
    if content is None:
        return ""
    if isinstance(content, list):
        parts = [
            (part.get("text") or "") if isinstance(part, dict) else str(part)
            for part in content
        ]
        content = "".join(parts)
    return str(content).strip()


def to_completion_error(error: Exception) -> CompletionError:
    """Wrap a provider exception, labelled by the first matching kind."""
    for kind, label, status in PROVIDER_ERRORS:
        if isinstance(error, kind):
            if status is None:
                status = getattr(error, "status_code", None)
            return CompletionError(f"{label}: {error}", status_code=status, response=error)
    return CompletionError(f"Completion failed: {error}", response=error)


async def complete(request: CompletionRequest) -> CompletionResponse:
    """
    Send one request through ``litellm.acompletion``.

    Returns:
        The reply, with ``content`` normalized by :func:`reply_text`

    Raises:
        CompletionError: The provider call failed; the original exception
            is the ``__cause__``
    """
    try:
        response = await litellm.acompletion(**request.to_litellm_kwargs())
    except Exception as e:
        raise to_completion_error(e) from e

    choice = response.choices[0] if response.choices else None
    message = getattr(choice, "message", None)
    finish_reason = getattr(choice, "finish_reason", None)
    if finish_reason == "length":
        logger.debug("%s stopped at max_tokens", request.model)

    usage = getattr(response, "usage", None)
    return CompletionResponse(
        content=reply_text(getattr(message, "content", None)),
        model=response.model or request.model,
        finish_reason=finish_reason,
        usage=UsageInfo.from_litellm(usage.model_dump() if usage else None),
        raw_response=response,
    )
