"""Tests for the message log and scheduling policies."""

import random

import pytest

from chorus.conversation import (
    USER_NAME,
    MessageLog,
    RandomNoRepeatScheduler,
    RoundRobinScheduler,
    ScheduleState,
)
from chorus.types import PreconditionError

NAMES = ["OpenAI (gpt-x)", "Anthropic (claude-y)"]


def make_log() -> MessageLog:
    return MessageLog(lambda: NAMES)


class TestMessageLog:
    """Tests for MessageLog."""

    def test_user_turn_defaults(self) -> None:
        log = make_log()
        turn = log.append("user", "Discuss cats")

        assert turn.author_name == USER_NAME
        assert turn.participant_id is None
        assert not turn.is_participant_turn
        assert turn.timestamp

    def test_participant_turn_takes_name(self) -> None:
        log = make_log()
        turn = log.append("assistant", "Cats are great", participant_id=1)

        assert turn.author_name == "Anthropic (claude-y)"
        assert turn.is_participant_turn

    def test_out_of_range_participant(self) -> None:
        log = make_log()
        with pytest.raises(PreconditionError, match="out of range"):
            log.append("assistant", "hi", participant_id=2)
        assert len(log) == 0

    def test_explicit_author_and_timestamp_kept(self) -> None:
        log = make_log()
        turn = log.append("assistant", "Hi", None, "Chat", "2025-01-01T00:00:00+00:00")

        assert turn.author_name == "Chat"
        assert turn.timestamp == "2025-01-01T00:00:00+00:00"

    def test_views(self) -> None:
        log = make_log()
        log.append("user", "Discuss cats", timestamp="t0")
        log.append("assistant", "Meow", participant_id=0, timestamp="t1")

        assert log.history() == [
            {"from": USER_NAME, "content": "Discuss cats", "timestamp": "t0"},
            {"from": "OpenAI (gpt-x)", "content": "Meow", "timestamp": "t1"},
        ]
        assert log.as_prompt_messages() == [
            {"role": "user", "content": "Discuss cats"},
            {"role": "assistant", "content": "Meow"},
        ]
        assert log.last is not None and log.last.content == "Meow"

    def test_order_preserved(self) -> None:
        log = make_log()
        for i in range(5):
            log.append("assistant", str(i), participant_id=i % 2)

        assert [turn.content for turn in log] == ["0", "1", "2", "3", "4"]
        assert isinstance(log.turns, tuple)

    def test_clear(self) -> None:
        log = make_log()
        log.append("user", "hi")
        log.clear()
        assert len(log) == 0
        assert log.last is None


class TestRoundRobinScheduler:
    """Tests for strict alternation."""

    def test_position_modulo_count(self) -> None:
        scheduler = RoundRobinScheduler()
        picks = [
            scheduler.select(NAMES, ScheduleState(turn_count=0, position=position))
            for position in range(5)
        ]
        assert picks == [0, 1, 0, 1, 0]

    def test_three_participants(self) -> None:
        scheduler = RoundRobinScheduler()
        picks = [
            scheduler.select(["a", "b", "c"], ScheduleState(turn_count=0, position=position))
            for position in range(6)
        ]
        assert picks == [0, 1, 2, 0, 1, 2]

    def test_no_participants(self) -> None:
        with pytest.raises(PreconditionError):
            RoundRobinScheduler().select([], ScheduleState(turn_count=0, position=0))


class TestRandomNoRepeatScheduler:
    """Tests for random selection without immediate repeats."""

    def test_never_repeats(self) -> None:
        scheduler = RandomNoRepeatScheduler(random.Random(42))
        participants = ["a", "b", "c"]
        last = None
        for position in range(200):
            pick = scheduler.select(
                participants,
                ScheduleState(turn_count=position, position=position, last_speaker_id=last),
            )
            assert pick != last
            assert 0 <= pick < 3
            last = pick

    def test_two_participants_alternate(self) -> None:
        scheduler = RandomNoRepeatScheduler(random.Random(1))
        last = 0
        for position in range(10):
            last = scheduler.select(
                NAMES, ScheduleState(turn_count=position, position=position, last_speaker_id=last)
            )
            assert last == (position + 1) % 2

    def test_single_participant_repeats(self) -> None:
        scheduler = RandomNoRepeatScheduler(random.Random(0))
        state = ScheduleState(turn_count=3, position=3, last_speaker_id=0)
        assert scheduler.select(["solo"], state) == 0

    def test_seeded_is_reproducible(self) -> None:
        def picks(seed: int) -> list[int]:
            scheduler = RandomNoRepeatScheduler(random.Random(seed))
            return [
                scheduler.select(["a", "b", "c", "d"], ScheduleState(0, position))
                for position in range(10)
            ]

        assert picks(5) == picks(5)

    def test_no_participants(self) -> None:
        with pytest.raises(PreconditionError):
            RandomNoRepeatScheduler().select([], ScheduleState(turn_count=0, position=0))
