"""The message log: the ordered transcript of a conversation."""

from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from ..types import HistoryEntry, Message, PreconditionError, Role

USER_NAME = "User"


def utc_timestamp() -> str:
    """Current time as an ISO-8601 string."""
    return datetime.now(UTC).isoformat()


@dataclass(frozen=True)
class Turn:
    """
    One entry in the transcript.

    Attributes:
        role: "user", "assistant" or "system"
        content: The text of the turn
        participant_id: Index of the speaking participant; None for the
            human user and for internal responders
        author_name: Display name captured at append time
        timestamp: ISO-8601 time the turn was appended (or replayed)
    """

    role: Role
    content: str
    participant_id: int | None
    author_name: str
    timestamp: str

    @property
    def is_participant_turn(self) -> bool:
        return self.participant_id is not None

    def to_message(self) -> Message:
        """The ``{role, content}`` form sent to providers."""
        return {"role": self.role, "content": self.content}

    def to_history(self) -> HistoryEntry:
        return {"from": self.author_name, "content": self.content, "timestamp": self.timestamp}


class MessageLog:
    """
    Append-only sequence of turns.

    Turns are never edited or removed once appended; :meth:`clear` exists
    only so a fresh run can start on the same orchestrator.

    Args:
        participant_names: Returns the current participant display names,
            indexed by participant id
    """

    def __init__(self, participant_names: Callable[[], Sequence[str]]):
        self._participant_names = participant_names
        self._turns: list[Turn] = []

    def append(
        self,
        role: Role,
        content: str,
        participant_id: int | None = None,
        author_name: str | None = None,
        timestamp: str | None = None,
    ) -> Turn:
        """
        Append a turn and return it.

        ``author_name`` defaults to the participant's name, or ``"User"``
        when ``participant_id`` is None. ``timestamp`` defaults to now.

        Raises:
            PreconditionError: If ``participant_id`` does not name a participant
        """
        if participant_id is not None:
            names = self._participant_names()
            if not 0 <= participant_id < len(names):
                raise PreconditionError(
                    f"participant_id {participant_id} is out of range "
                    f"({len(names)} participants)"
                )
            author_name = author_name or names[participant_id]
        turn = Turn(
            role=role,
            content=content,
            participant_id=participant_id,
            author_name=author_name or USER_NAME,
            timestamp=timestamp or utc_timestamp(),
        )
        self._turns.append(turn)
        return turn

    def history(self) -> list[HistoryEntry]:
        """The ``{from, content, timestamp}`` projection for printing and saving."""
        return [turn.to_history() for turn in self._turns]

    def as_prompt_messages(self) -> list[Message]:
        """The ``{role, content}`` view used to build provider requests."""
        return [turn.to_message() for turn in self._turns]

    @property
    def turns(self) -> tuple[Turn, ...]:
        return tuple(self._turns)

    @property
    def last(self) -> Turn | None:
        return self._turns[-1] if self._turns else None

    def clear(self) -> None:
        self._turns.clear()

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(self._turns)
