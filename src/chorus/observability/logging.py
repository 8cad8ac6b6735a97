"""Structured JSONL event log for conversation runs."""

import json
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, TextIO

from .callbacks import CallbackManager

if TYPE_CHECKING:
    from ..conversation.log import Turn
    from ..conversation.state import RunResult


class EventLogger:
    """
    Writes one JSON object per line for every turn, error and run end.

    Example:
        events = EventLogger(log_file="./logs/run.jsonl")
        events.attach(callbacks)
        ...
        events.close()
    """

    def __init__(
        self,
        log_file: str | Path | None = None,
        include_content: bool = True,
        max_content_length: int | None = None,
        redact_patterns: list[str] | None = None,
        stdout: bool = False,
    ):
        """
        Args:
            log_file: Path to the JSONL file. None disables file logging.
            include_content: Whether to include turn content
            max_content_length: Max length of logged content (None = unlimited)
            redact_patterns: Literal strings replaced with ``[REDACTED]``
            stdout: Whether to also write entries to stdout
        """
        self._log_file: Path | None = Path(log_file) if log_file else None
        self._include_content = include_content
        self._max_content_length = max_content_length
        self._redact_patterns = redact_patterns or []
        self._stdout = stdout
        self._file_handle: TextIO | None = None

        if self._log_file:
            self._log_file.parent.mkdir(parents=True, exist_ok=True)

    def _get_timestamp(self) -> str:
        return datetime.now(UTC).isoformat()

    def _clean(self, text: str) -> str:
        for pattern in self._redact_patterns:
            text = text.replace(pattern, "[REDACTED]")
        if self._max_content_length and len(text) > self._max_content_length:
            return text[: self._max_content_length] + "... [truncated]"
        return text

    def _write_entry(self, entry: dict[str, Any]) -> None:
        json_str = json.dumps(entry, default=str)

        if self._log_file:
            # Opened on first write; reopened after close()
            if self._file_handle is None:
                self._file_handle = open(self._log_file, "a", encoding="utf-8")
            self._file_handle.write(json_str + "\n")
            self._file_handle.flush()

        if self._stdout:
            print(json_str, file=sys.stdout)

    def log_turn(self, turn: "Turn") -> None:
        self._write_entry(
            {
                "type": "turn",
                "timestamp": self._get_timestamp(),
                "turn_timestamp": turn.timestamp,
                "role": turn.role,
                "participant_id": turn.participant_id,
                "author": turn.author_name,
                "content": self._clean(turn.content) if self._include_content else "",
            }
        )

    def log_error(self, error: Exception, participant_name: str | None = None) -> None:
        self._write_entry(
            {
                "type": "error",
                "timestamp": self._get_timestamp(),
                "participant": participant_name,
                "error": self._clean(str(error)),
                "error_type": type(error).__name__,
            }
        )

    def log_stop(self, result: "RunResult") -> None:
        self._write_entry(
            {
                "type": "stop",
                "timestamp": self._get_timestamp(),
                "state": result.state.value,
                "turn_count": result.turn_count,
                "max_turns": result.max_turns,
                "elapsed_ms": result.elapsed_ms,
                "error": result.error,
                "failed_participant": result.failed_participant,
            }
        )

    def attach(self, callbacks: CallbackManager, close_on_stop: bool = False) -> CallbackManager:
        """
        Register this logger's handlers on ``callbacks``.

        With ``close_on_stop`` the file is closed after each run's stop event.
        """
        callbacks.add_on_message(self.log_turn)
        callbacks.add_on_error(self.log_error)
        callbacks.add_on_stop(self.log_stop)
        if close_on_stop:
            callbacks.add_on_stop(lambda _result: self.close())
        return callbacks

    def close(self) -> None:
        """Close the log file."""
        if self._file_handle:
            self._file_handle.close()
            self._file_handle = None
