"""Core completion functionality."""

from .completion import complete, reply_text, to_completion_error
from .messages import (
    assistant_message,
    is_blank,
    system_message,
    truncate_content,
    user_message,
)

__all__ = [
    "complete",
    "reply_text",
    "to_completion_error",
    "user_message",
    "system_message",
    "assistant_message",
    "truncate_content",
    "is_blank",
]
