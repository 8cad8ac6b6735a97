"""In-memory message statistics."""

from collections import deque
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any

MAX_RECENT_MESSAGES = 100
MAX_CONTENT_CHARS = 1000


@dataclass(frozen=True)
class MessageRecord:
    """One recorded message."""

    timestamp: str
    role: str
    provider: str | None
    model: str | None
    content: str


class StatsTracker:
    """
    Counts messages and keeps the most recent ones.

    Counters are ``total``, ``ai`` (assistant messages) and ``user``. Only
    the latest ``max_recent`` records are kept, each with its content
    capped at ``MAX_CONTENT_CHARS``.
    """

    def __init__(self, max_recent: int = MAX_RECENT_MESSAGES):
        self.total = 0
        self.ai = 0
        self.user = 0
        self._recent: deque[MessageRecord] = deque(maxlen=max_recent)

    def record_message(
        self,
        role: str,
        content: str,
        provider: str | None = None,
        model: str | None = None,
    ) -> MessageRecord:
        record = MessageRecord(
            timestamp=datetime.now(UTC).isoformat(),
            role=role,
            provider=provider,
            model=model,
            content=content[:MAX_CONTENT_CHARS],
        )
        self.total += 1
        if role == "assistant":
            self.ai += 1
        elif role == "user":
            self.user += 1
        self._recent.append(record)
        return record

    @property
    def recent(self) -> list[MessageRecord]:
        """Recorded messages, newest last."""
        return list(self._recent)

    def snapshot(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "ai": self.ai,
            "user": self.user,
            "recent": [asdict(record) for record in self._recent],
        }

    def reset(self) -> None:
        self.total = self.ai = self.user = 0
        self._recent.clear()
