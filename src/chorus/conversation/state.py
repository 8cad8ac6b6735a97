"""Run modes, run states and participants."""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..providers.adapter import AIAdapter
    from ..providers.registry import ParticipantConfig


class ConversationMode(str, Enum):
    """How participants take turns. Values match the saved ``metadata.mode``."""

    CONVERSATION = "conversation"
    GROUP_CHAT = "singlePrompt"

    @property
    def min_participants(self) -> int:
        return 2 if self is ConversationMode.CONVERSATION else 1


class RunState(str, Enum):
    """Lifecycle of one run of the scheduling loop."""

    IDLE = "idle"
    ACTIVE = "active"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    FAILED = "failed"
    STOPPED = "stopped"
    # Iteration budget exhausted by empty replies
    STALLED = "stalled"

    @property
    def is_terminal(self) -> bool:
        return self not in (RunState.IDLE, RunState.ACTIVE)


@dataclass(frozen=True)
class Participant:
    """
    A registered speaker.

    Attributes:
        id: Registration index, starting at 0
        name: Display name, ``"<ProviderName> (<model>)"``
        adapter: The backend that produces this participant's turns
        config: Registry configuration, when the participant came from one
    """

    id: int
    name: str
    adapter: "AIAdapter"
    config: "ParticipantConfig | None" = None


@dataclass(frozen=True)
class RunResult:
    """How a run ended."""

    state: RunState
    turn_count: int
    max_turns: int
    elapsed_ms: float
    error: str | None = None
    failed_participant: str | None = None
    # The adapter exception behind a FAILED run
    exception: BaseException | None = field(default=None, compare=False, repr=False)

    @property
    def succeeded(self) -> bool:
        return self.state in (RunState.COMPLETED, RunState.STOPPED)

    def describe(self) -> str:
        """One-line stop reason for console output."""
        if self.state is RunState.COMPLETED:
            return f"Conversation reached maximum turns ({self.max_turns})"
        if self.state is RunState.TIMED_OUT:
            return f"Conversation timed out after {self.turn_count} of {self.max_turns} turns"
        if self.state is RunState.FAILED:
            who = f" ({self.failed_participant})" if self.failed_participant else ""
            return f"Conversation failed{who}: {self.error}"
        if self.state is RunState.STOPPED:
            return f"Conversation stopped after {self.turn_count} turns"
        if self.state is RunState.STALLED:
            return (
                f"Conversation stalled: participants kept returning empty replies "
                f"({self.turn_count} of {self.max_turns} turns)"
            )
        return f"Conversation {self.state.value}"
