"""Message formatting utilities."""

from ..types import Message, Messages

ELLIPSIS = "..."


def user_message(content: str, name: str | None = None) -> Message:
    """Create a user message."""
    msg: Message = {"role": "user", "content": content}
    if name:
        msg["name"] = name
    return msg


def system_message(content: str) -> Message:
    """Create a system message."""
    return {"role": "system", "content": content}


def assistant_message(content: str, name: str | None = None) -> Message:
    """Create an assistant message."""
    msg: Message = {"role": "assistant", "content": content}
    if name:
        msg["name"] = name
    return msg


def truncate_content(content: str, max_chars: int | None) -> str:
    """
    Cap long provider output.

    Content longer than ``max_chars`` is cut to that many characters and
    ``"..."`` is appended. ``None`` disables truncation.
    """
    if max_chars is None or len(content) <= max_chars:
        return content
    return content[:max_chars] + ELLIPSIS


def is_blank(content: str | None) -> bool:
    """Whether a response is empty or whitespace-only."""
    return not content or not content.strip()


def count_messages_by_role(messages: Messages) -> dict[str, int]:
    """Count messages by role."""
    counts: dict[str, int] = {}
    for msg in messages:
        role = msg.get("role", "unknown")
        counts[role] = counts.get(role, 0) + 1
    return counts
