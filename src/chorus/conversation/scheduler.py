"""Turn scheduling policies."""

import random
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from ..types import PreconditionError


@dataclass(frozen=True)
class ScheduleState:
    """
    What a scheduler may know when picking the next speaker.

    Attributes:
        turn_count: Assistant turns appended so far
        position: Scheduling decisions made so far in this conversation
            (``turn_count`` plus empty replies skipped)
        last_speaker_id: Participant id of the most recent assistant turn
    """

    turn_count: int
    position: int
    last_speaker_id: int | None = None


class Scheduler(Protocol):
    def select(self, participants: Sequence[Any], state: ScheduleState) -> int:
        """Return the index of the participant who speaks next."""
        ...


def _require_participants(participants: Sequence[Any]) -> None:
    if not participants:
        raise PreconditionError("Cannot schedule a turn with no participants")


class RoundRobinScheduler:
    """Strict alternation: the speaker index is ``position % len(participants)``."""

    def select(self, participants: Sequence[Any], state: ScheduleState) -> int:
        _require_participants(participants)
        return state.position % len(participants)


class RandomNoRepeatScheduler:
    """
    Uniform random choice that never picks the previous speaker twice in a row.

    Args:
        rng: Random source; inject a seeded ``random.Random`` for
            reproducible runs
    """

    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()

    def select(self, participants: Sequence[Any], state: ScheduleState) -> int:
        _require_participants(participants)
        count = len(participants)
        if count == 1:
            return 0
        index = self.rng.randrange(count)
        while index == state.last_speaker_id:
            index = self.rng.randrange(count)
        return index
