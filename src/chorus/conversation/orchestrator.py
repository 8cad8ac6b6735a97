"""Conversation orchestration: who speaks, when to stop, what gets recorded."""

import logging
import random
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from ..config import ConversationConfig
from ..core.messages import is_blank, truncate_content
from ..observability.callbacks import CallbackManager
from ..observability.stats import StatsTracker
from ..providers.adapter import AIAdapter, create_adapter
from ..providers.registry import ParticipantConfig, random_participant_config
from ..types import HistoryEntry, PreconditionError, Role
from .log import USER_NAME, MessageLog, Turn
from .prompts import PromptBuilder
from .responders import InternalResponder
from .scheduler import (
    RandomNoRepeatScheduler,
    RoundRobinScheduler,
    Scheduler,
    ScheduleState,
)
from .state import ConversationMode, Participant, RunResult, RunState

logger = logging.getLogger(__name__)

INTERNAL_AUTHOR = "Internal"


class ConversationOrchestrator:
    """
    Runs a conversation between registered participants.

    The orchestrator owns the participant list and the message log. A run
    appends the opening message, then repeatedly picks a speaker, sends it
    ``[system, *history]`` and appends its reply, until the turn budget is
    spent, the time budget runs out, a participant's adapter fails, or
    :meth:`stop_conversation` is called. Turns are taken strictly one at a
    time.

    Example:
        orchestrator = ConversationOrchestrator(ConversationConfig.create(max_turns=4))
        orchestrator.add_participant(resolve_participant(parse_participant("openai")))
        orchestrator.add_participant(resolve_participant(parse_participant("claude")))
        result = await orchestrator.start_conversation("Discuss cats")
        for entry in orchestrator.get_conversation_history():
            print(f"[{entry['from']}]: {entry['content']}")

    Args:
        config: Turn/time budget; defaults to :class:`ConversationConfig`
        mode: Conversation (round-robin, two or more participants) or
            group chat (random with no immediate repeat, one or more)
        scheduler: Overrides the mode's default scheduler
        prompt_builder: Overrides the default prompt builder
        responders: Internal responders offered each appended turn
        stats: Receives every appended turn
        callbacks: Receives message, error and stop events
        adapter_factory: Builds adapters in :meth:`add_participant`
        clock: Monotonic clock in seconds, for the time budget
        rng: Random source for scheduling and random participants
    """

    def __init__(
        self,
        config: ConversationConfig | None = None,
        *,
        mode: ConversationMode | str = ConversationMode.CONVERSATION,
        scheduler: Scheduler | None = None,
        prompt_builder: PromptBuilder | None = None,
        responders: Iterable[InternalResponder] = (),
        stats: StatsTracker | None = None,
        callbacks: CallbackManager | None = None,
        adapter_factory: Callable[[ParticipantConfig], AIAdapter] = create_adapter,
        clock: Callable[[], float] = time.monotonic,
        rng: random.Random | None = None,
    ):
        self._config = config or ConversationConfig()
        self.mode = ConversationMode(mode)
        self._rng = rng or random.Random()
        if scheduler is None:
            if self.mode is ConversationMode.CONVERSATION:
                scheduler = RoundRobinScheduler()
            else:
                scheduler = RandomNoRepeatScheduler(self._rng)
        self.scheduler = scheduler
        self.responders = list(responders)
        self.prompt_builder = prompt_builder or PromptBuilder(
            helper_names=[responder.name for responder in self.responders]
        )
        self.stats = stats
        self.callbacks = callbacks or CallbackManager()
        self._adapter_factory = adapter_factory
        self._clock = clock

        self._participants: list[Participant] = []
        self._log = MessageLog(lambda: [p.name for p in self._participants])
        self._topic: str | None = None
        self._turn_count = 0
        # Scheduling decisions so far, including skipped empty replies
        self._position = 0
        self._last_speaker_id: int | None = None
        self._is_active = False
        self._state = RunState.IDLE
        self._start_time: float | None = None

    # -- read-only state ------------------------------------------------

    @property
    def config(self) -> ConversationConfig:
        return self._config

    @property
    def participants(self) -> tuple[Participant, ...]:
        return tuple(self._participants)

    @property
    def messages(self) -> tuple[Turn, ...]:
        return self._log.turns

    @property
    def turn_count(self) -> int:
        return self._turn_count

    @property
    def is_active(self) -> bool:
        return self._is_active

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def topic(self) -> str | None:
        return self._topic

    @property
    def elapsed_ms(self) -> float:
        if self._start_time is None:
            return 0.0
        return (self._clock() - self._start_time) * 1000

    # -- participants ---------------------------------------------------

    def add_participant(self, config: ParticipantConfig) -> int:
        """Create an adapter for ``config`` and register it. Returns the new id."""
        return self._register(self._adapter_factory(config), config)

    def add_adapter(self, adapter: AIAdapter, config: ParticipantConfig | None = None) -> int:
        """Register an already-built adapter. Returns the new id."""
        return self._register(adapter, config)

    def add_random_participant(self) -> int:
        """Register a random provider with its default model."""
        return self.add_participant(random_participant_config(self._rng))

    def _register(self, adapter: AIAdapter, config: ParticipantConfig | None) -> int:
        participant = Participant(
            id=len(self._participants),
            name=f"{adapter.get_name()} ({adapter.get_model()})",
            adapter=adapter,
            config=config,
        )
        self._participants.append(participant)
        logger.debug("Registered participant %d: %s", participant.id, participant.name)
        return participant.id

    def _require_participants(self) -> None:
        required = self.mode.min_participants
        if len(self._participants) < required:
            raise PreconditionError(
                f"At least {required} participant{'s' if required > 1 else ''} "
                f"required for {self.mode.value} mode, got {len(self._participants)}"
            )

    # -- lifecycle ------------------------------------------------------

    async def start_conversation(self, initial_message: str) -> RunResult:
        """
        Start a new run seeded with ``initial_message`` as a user turn.

        Any previous transcript is discarded.

        Raises:
            PreconditionError: Too few participants, or a run is in progress
        """
        self._require_participants()
        if self._is_active:
            raise PreconditionError("A conversation is already running")

        self._log.clear()
        self._topic = initial_message
        self._turn_count = 0
        self._position = 0
        self._last_speaker_id = None
        self._is_active = True
        self._state = RunState.ACTIVE
        self._start_time = self._clock()

        logger.info(
            "Starting conversation with %s",
            ", ".join(p.name for p in self._participants),
        )
        seed = await self._append("user", initial_message)
        await self._run_responders(seed)
        return await self._run()

    async def continue_conversation(self) -> RunResult:
        """
        Run the loop again on the current transcript.

        Used after :meth:`replay` or to extend a finished run after raising
        ``max_turns``. The time budget restarts.

        Raises:
            PreconditionError: Too few participants, an empty transcript,
                or a run is in progress
        """
        self._require_participants()
        if self._is_active:
            raise PreconditionError("A conversation is already running")
        if not len(self._log):
            raise PreconditionError("Cannot continue a conversation with no messages")

        self._is_active = True
        self._state = RunState.ACTIVE
        self._start_time = self._clock()
        return await self._run()

    def stop_conversation(self) -> None:
        """Ask a running loop to stop before its next turn. Idempotent."""
        if self._is_active:
            logger.info("Conversation stopped")
        self._is_active = False

    def get_conversation_history(self) -> list[HistoryEntry]:
        return self._log.history()

    # -- the loop -------------------------------------------------------

    async def _run(self) -> RunResult:
        max_turns = self._config.max_turns
        # Each remaining turn may be preceded by one empty reply per participant
        budget = max(0, max_turns - self._turn_count) * (len(self._participants) + 1)
        iterations = 0
        skipped = 0
        error: BaseException | None = None
        failed_participant: str | None = None

        while True:
            if not self._is_active:
                state = RunState.STOPPED
                break
            if self._turn_count >= max_turns:
                logger.info("Conversation reached maximum turns (%d)", max_turns)
                state = RunState.COMPLETED
                break
            if self.elapsed_ms > self._config.timeout_ms:
                logger.info("Conversation timed out")
                state = RunState.TIMED_OUT
                break
            if iterations >= budget:
                logger.warning("Conversation stalled after %d empty replies", skipped)
                state = RunState.STALLED
                break
            iterations += 1

            participant = self._next_participant()
            messages = self.prompt_builder.build(
                self._log,
                participant,
                self._participants,
                self._turn_count,
                max_turns,
                self._topic or "",
                self.mode,
            )

            try:
                response = await participant.adapter.generate_response(messages)
            except Exception as e:
                logger.error("Error in conversation from %s: %s", participant.name, e)
                error = e
                failed_participant = participant.name
                await self.callbacks.emit_error(e, participant.name)
                state = RunState.FAILED
                break

            if is_blank(response):
                logger.info("%s provided an empty response, skipping turn", participant.name)
                skipped += 1
                continue

            content = truncate_content(response, self._config.max_response_chars)
            turn = await self._append("assistant", content, participant.id)
            self._last_speaker_id = participant.id
            await self._run_responders(turn)
            self._turn_count += 1

        self._is_active = False
        self._state = state
        result = RunResult(
            state=state,
            turn_count=self._turn_count,
            max_turns=max_turns,
            elapsed_ms=self.elapsed_ms,
            error=str(error) if error is not None else None,
            failed_participant=failed_participant,
            exception=error,
        )
        await self.callbacks.emit_stop(result)
        return result

    def _next_participant(self) -> Participant:
        index = self.scheduler.select(
            self._participants,
            ScheduleState(
                turn_count=self._turn_count,
                position=self._position,
                last_speaker_id=self._last_speaker_id,
            ),
        )
        self._position += 1
        return self._participants[index]

    async def _append(
        self,
        role: Role,
        content: str,
        participant_id: int | None = None,
        author_name: str | None = None,
    ) -> Turn:
        turn = self._log.append(role, content, participant_id, author_name)
        self._record_stats(turn)
        await self.callbacks.emit_message(turn)
        return turn

    def _record_stats(self, turn: Turn) -> None:
        if self.stats is None:
            return
        provider: str | None = turn.author_name
        model: str | None = None
        if turn.participant_id is not None:
            participant = self._participants[turn.participant_id]
            provider = participant.adapter.get_name()
            model = participant.adapter.get_model()
        try:
            self.stats.record_message(turn.role, turn.content, provider, model)
        except Exception as e:
            logger.debug("Stats tracker failed: %s", e)

    async def _run_responders(self, turn: Turn) -> None:
        """Offer ``turn`` to each internal responder in registration order."""
        for responder in self.responders:
            name = getattr(responder, "name", None) or INTERNAL_AUTHOR
            try:
                if not responder.should_handle(turn, self._log.turns):
                    continue
                reply = await responder.handle_message(turn, self._log.turns)
                if reply is None or is_blank(reply.content):
                    continue
                await self._append(reply.role, reply.content, None, reply.author_name or name)
            except Exception as e:
                logger.error("Internal responder %r failed: %s", name, e)

    # -- persistence ----------------------------------------------------

    def replay(self, entries: Iterable[Mapping[str, Any]], topic: str | None = None) -> int:
        """
        Load a saved transcript into an idle orchestrator with an empty log.

        Entries are ``{from, content, timestamp}`` mappings (``role`` is
        optional). ``"User"`` entries become user turns; other names are
        matched to registered participants. A name with no matching
        participant is kept as an unattributed turn. When the transcript has
        no user turn, ``topic`` is prepended as one.

        Returns:
            The recovered turn count: replayed turns attributed to a participant

        Raises:
            PreconditionError: A run is in progress or the log is not empty
        """
        if self._is_active:
            raise PreconditionError("Cannot replay while a conversation is running")
        if len(self._log):
            raise PreconditionError("Cannot replay into a non-empty conversation")

        entries = list(entries)
        by_name: dict[str, list[int]] = {}
        for p in self._participants:
            by_name.setdefault(p.name, []).append(p.id)
        for name, ids in by_name.items():
            if len(ids) > 1:
                logger.info(
                    "%d participants named %r; attributing their turns in rotation", len(ids), name
                )

        def is_user(entry: Mapping[str, Any]) -> bool:
            return entry.get("from") == USER_NAME or entry.get("role") == "user"

        if topic and not any(is_user(entry) for entry in entries):
            self._log.append("user", topic)

        turn_count = 0
        last_speaker: int | None = None
        for entry in entries:
            name = entry.get("from") or USER_NAME
            content = str(entry.get("content") or "")
            timestamp = entry.get("timestamp") or None
            if is_user(entry):
                self._log.append("user", content, None, name, timestamp)
                continue
            participant_id = self._attribute(by_name.get(name, []), turn_count, last_speaker)
            if participant_id is None:
                logger.warning("No participant named %r; replaying without attribution", name)
            else:
                turn_count += 1
                last_speaker = participant_id
            self._log.append("assistant", content, participant_id, name, timestamp)

        first_user = next((turn for turn in self._log if turn.role == "user"), None)
        self._topic = topic or (first_user.content if first_user else None)
        self._turn_count = turn_count
        self._position = turn_count
        self._last_speaker_id = last_speaker
        self._state = RunState.IDLE
        logger.info("Replayed %d messages (%d participant turns)", len(self._log), turn_count)
        return turn_count

    def _attribute(self, ids: list[int], turn_count: int, last_speaker: int | None) -> int | None:
        """Pick the id a replayed turn belongs to among participants sharing its name."""
        if len(ids) <= 1:
            return ids[0] if ids else None
        # Never the previous speaker; among the rest prefer the round-robin slot
        candidates = [i for i in ids if i != last_speaker] or ids
        slot = turn_count % len(self._participants)
        return slot if slot in candidates else candidates[0]

    async def resume(
        self,
        entries: Sequence[Mapping[str, Any]],
        additional_turns: int,
        topic: str | None = None,
    ) -> RunResult:
        """
        Replay a saved transcript and run ``additional_turns`` more turns.

        Raises:
            PreconditionError: No participants, ``additional_turns < 1``, or
                the same conditions as :meth:`replay`
        """
        self._require_participants()
        if additional_turns < 1:
            raise PreconditionError(f"additional_turns must be at least 1, got {additional_turns}")
        turn_count = self.replay(entries, topic)
        self._config = self._config.with_overrides(max_turns=turn_count + additional_turns)
        return await self.continue_conversation()
