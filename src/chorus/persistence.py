"""Saved conversation files.

A saved conversation is a pretty-printed JSON document::

    {
      "topic": "...",
      "timestamp": "2025-01-01T12:00:00+00:00",
      "messages": [{"from": "User", "content": "...", "timestamp": "..."}],
      "metadata": {"mode": "conversation", "participants": [...], "maxTurns": 10}
    }
"""

import json
import logging
import re
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .conversation.log import USER_NAME
from .types import ConversationFileError, HistoryEntry

logger = logging.getLogger(__name__)

TOPIC_SLUG_CHARS = 30


def _normalize_timestamp(value: Any) -> Any:
    # Older files store epoch milliseconds
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, UTC).isoformat()
    return value


class StoredMessage(BaseModel):
    """One message in a saved conversation."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    from_: str = Field(default=USER_NAME, alias="from")
    content: str
    timestamp: str = ""
    role: str | None = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def _timestamp(cls, value: Any) -> Any:
        if value is None:
            return ""
        return _normalize_timestamp(value)

    def to_entry(self) -> dict[str, Any]:
        """The ``{from, content, timestamp[, role]}`` mapping used by replay."""
        return self.model_dump(
            by_alias=True,
            exclude_none=True,
            include={"from_", "content", "timestamp", "role"},
        )


class ConversationRecord(BaseModel):
    """A whole saved conversation."""

    model_config = ConfigDict(extra="allow")

    topic: str = ""
    timestamp: str = ""
    messages: list[StoredMessage] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("timestamp", mode="before")
    @classmethod
    def _timestamp(cls, value: Any) -> Any:
        if value is None:
            return ""
        return _normalize_timestamp(value)

    def entries(self) -> list[dict[str, Any]]:
        return [message.to_entry() for message in self.messages]


def slugify(text: str, max_chars: int = TOPIC_SLUG_CHARS) -> str:
    """Lower-case ``text[:max_chars]`` with runs of other characters turned into ``-``."""
    return re.sub(r"[^a-z0-9]+", "-", text[:max_chars].lower())


def conversation_filename(topic: str, now: datetime | None = None) -> str:
    """``<ISO time with ':' and '.' as '-'>-<topic slug>.json``."""
    now = now or datetime.now(UTC)
    stamp = re.sub(r"[:.]", "-", now.isoformat())
    return f"{stamp}-{slugify(topic)}.json"


def save_conversation(
    history: Iterable[HistoryEntry | Mapping[str, Any]],
    topic: str,
    metadata: Mapping[str, Any] | None = None,
    directory: str | Path = "conversations",
    now: datetime | None = None,
) -> Path:
    """
    Write a conversation to ``directory`` and return the file path.

    The directory is created if needed.
    """
    now = now or datetime.now(UTC)
    record = ConversationRecord(
        topic=topic,
        timestamp=now.isoformat(),
        messages=[StoredMessage.model_validate(dict(entry)) for entry in history],
        metadata=dict(metadata or {}),
    )
    path = Path(directory)
    path.mkdir(parents=True, exist_ok=True)
    file_path = path / conversation_filename(topic, now)
    data = record.model_dump(by_alias=True, exclude_none=True)
    file_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Conversation saved to %s", file_path)
    return file_path


def load_conversation(path: str | Path) -> ConversationRecord:
    """
    Read a saved conversation.

    Raises:
        ConversationFileError: The file is missing, not JSON, or not a
            conversation
    """
    file_path = Path(path)
    try:
        raw = file_path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConversationFileError(f"Conversation file not found: {file_path}") from e
    except OSError as e:
        raise ConversationFileError(f"Could not read {file_path}: {e}") from e
    try:
        return ConversationRecord.model_validate_json(raw)
    except ValidationError as e:
        raise ConversationFileError(f"Invalid conversation file {file_path}: {e}") from e


def list_conversations(directory: str | Path = "conversations") -> list[Path]:
    """Saved conversation files in ``directory``, oldest first."""
    path = Path(directory)
    if not path.is_dir():
        return []
    return sorted(path.glob("*.json"))


def resolve_conversation_path(name: str | Path, directory: str | Path = "conversations") -> Path:
    """
    Find a conversation file by path or by name.

    An absolute path, or a path relative to the working directory, wins;
    otherwise ``name`` is looked up in ``directory``.
    """
    candidate = Path(name)
    if candidate.is_absolute() or candidate.exists():
        return candidate
    in_directory = Path(directory) / candidate
    if in_directory.exists():
        return in_directory
    return candidate


def format_conversation(history: Iterable[HistoryEntry | Mapping[str, Any]]) -> str:
    """Render history as ``[role]: content`` blocks separated by blank lines."""
    blocks = []
    for entry in history:
        role = "user" if entry.get("from") == USER_NAME else "assistant"
        blocks.append(f"[{role}]: {entry.get('content', '')}")
    return "\n\n".join(blocks)
