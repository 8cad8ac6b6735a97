"""Run modes behind the command line.

Each function resolves participants, drives a
:class:`~chorus.conversation.ConversationOrchestrator`, prints the result
and saves the transcript.
"""

import logging
import sys
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, TextIO

from ._console import ConsolePlayback
from .config import ChorusConfig
from .conversation import (
    ChatAssistant,
    ConversationMode,
    ConversationOrchestrator,
    InternalResponder,
    KnowledgeBase,
    PromptBuilder,
    RunResult,
    RunState,
)
from .observability import CallbackManager, EventLogger, StatsTracker
from .persistence import (
    load_conversation,
    resolve_conversation_path,
    save_conversation,
)
from .providers import (
    AIAdapter,
    LiteLLMAdapter,
    ParticipantConfig,
    ParticipantRef,
    parse_participant,
    participants_from_metadata,
    resolve_participant,
)
from .templating import TemplateEngine
from .types import ConfigError, ConversationFileError, HistoryEntry, PreconditionError

logger = logging.getLogger(__name__)

DEFAULT_TOPIC = (
    "Discuss the future of artificial intelligence and its potential impact on society."
)
DEFAULT_ADDITIONAL_TURNS = 10
CONTINUED_TOPIC = "Continued conversation"

API_KEY_HINT = (
    "Hint: make sure the API key for each provider is set, for example in a "
    ".env file in the current directory."
)

AdapterFactoryType = Callable[[ParticipantConfig], AIAdapter]


@dataclass
class RunOutcome:
    """What a run mode produced."""

    result: RunResult
    history: list[HistoryEntry]
    saved_path: Path | None = None


def is_api_key_error(error: BaseException | None) -> bool:
    """Whether a failure looks like a missing or rejected API key."""
    if error is None:
        return False
    if isinstance(error, ConfigError):
        return True
    if getattr(error, "status_code", None) == 401:
        return True
    message = str(error)
    return "API key" in message or "API_KEY" in message


def default_adapter_factory(config: ChorusConfig, show_spinner: bool) -> AdapterFactoryType:
    def factory(participant: ParticipantConfig) -> AIAdapter:
        return LiteLLMAdapter(participant, retry=config.retry, show_spinner=show_spinner)

    return factory


def build_orchestrator(
    mode: ConversationMode,
    participants: Sequence[ParticipantConfig],
    config: ChorusConfig,
    *,
    max_turns: int | None = None,
    timeout_ms: float | None = None,
    stream: bool = True,
    adapter_factory: AdapterFactoryType | None = None,
    responders: Iterable[InternalResponder] = (),
    callbacks: CallbackManager | None = None,
    out: TextIO | None = None,
) -> ConversationOrchestrator:
    """Create an orchestrator for ``mode`` and register ``participants``."""
    overrides: dict[str, Any] = {}
    if max_turns is not None:
        overrides["max_turns"] = max_turns
    if timeout_ms is not None:
        overrides["timeout_ms"] = timeout_ms
    conversation_config = config.conversation.with_overrides(**overrides)

    callbacks = callbacks or CallbackManager()
    if stream:
        callbacks.add_on_message(ConsolePlayback(config.stream_delay_ms, out).on_message)
    if config.event_log:
        EventLogger(log_file=config.event_log).attach(callbacks, close_on_stop=True)

    adapter_factory = adapter_factory or default_adapter_factory(config, stream)
    responders = list(responders)
    if not responders and config.knowledge_dir:
        helper = resolve_participant(parse_participant(config.helper_participant))
        responders.append(
            ChatAssistant(
                adapter_factory(helper), KnowledgeBase.from_directory(config.knowledge_dir)
            )
        )

    orchestrator = ConversationOrchestrator(
        conversation_config,
        mode=mode,
        prompt_builder=PromptBuilder(
            TemplateEngine(template_dir=config.template_dir),
            helper_names=[responder.name for responder in responders],
        ),
        responders=responders,
        stats=StatsTracker(),
        callbacks=callbacks,
        adapter_factory=adapter_factory,
    )
    for participant in participants:
        orchestrator.add_participant(participant)
    return orchestrator


def _print_history(history: Sequence[HistoryEntry], out: TextIO) -> None:
    for entry in history:
        print(f"[{entry['from']}]: {entry['content']}\n", file=out)


def _report(result: RunResult, out: TextIO) -> None:
    print(result.describe(), file=out)
    if result.state is RunState.FAILED and is_api_key_error(result.exception):
        print(API_KEY_HINT, file=out)


async def _run_new(
    mode: ConversationMode,
    refs: Sequence[ParticipantRef],
    topic: str,
    max_turns: int | None,
    config: ChorusConfig | None,
    timeout_ms: float | None,
    stream: bool,
    save: bool,
    adapter_factory: AdapterFactoryType | None,
    responders: Iterable[InternalResponder],
    out: TextIO | None,
) -> RunOutcome:
    config = config or ChorusConfig()
    out = out or sys.stdout
    participants = [resolve_participant(ref) for ref in refs]
    orchestrator = build_orchestrator(
        mode,
        participants,
        config,
        max_turns=max_turns,
        timeout_ms=timeout_ms,
        stream=stream,
        adapter_factory=adapter_factory,
        responders=responders,
        out=out,
    )
    print(
        f"Starting {mode.value} with: {', '.join(p.name for p in orchestrator.participants)}\n",
        file=out,
    )

    result = await orchestrator.start_conversation(topic)
    history = orchestrator.get_conversation_history()
    if not stream:
        _print_history(history, out)
    _report(result, out)

    saved_path = None
    if save:
        metadata: dict[str, Any] = {
            "mode": mode.value,
            "participants": [p.to_metadata() for p in participants],
            "maxTurns": orchestrator.config.max_turns,
        }
        if mode is ConversationMode.GROUP_CHAT:
            metadata["turnsRecorded"] = result.turn_count
        saved_path = save_conversation(history, topic, metadata, config.conversations_dir)
        print(f"Conversation saved to {saved_path}", file=out)
    return RunOutcome(result=result, history=history, saved_path=saved_path)


async def start_conversation_run(
    refs: Sequence[ParticipantRef],
    topic: str = DEFAULT_TOPIC,
    max_turns: int | None = None,
    *,
    config: ChorusConfig | None = None,
    timeout_ms: float | None = None,
    stream: bool = True,
    save: bool = True,
    adapter_factory: AdapterFactoryType | None = None,
    responders: Iterable[InternalResponder] = (),
    out: TextIO | None = None,
) -> RunOutcome:
    """Two participants taking turns in strict alternation."""
    return await _run_new(
        ConversationMode.CONVERSATION,
        refs,
        topic,
        max_turns,
        config,
        timeout_ms,
        stream,
        save,
        adapter_factory,
        responders,
        out,
    )


async def run_group_chat(
    refs: Sequence[ParticipantRef],
    topic: str = DEFAULT_TOPIC,
    max_turns: int | None = None,
    *,
    config: ChorusConfig | None = None,
    timeout_ms: float | None = None,
    stream: bool = True,
    save: bool = True,
    adapter_factory: AdapterFactoryType | None = None,
    responders: Iterable[InternalResponder] = (),
    out: TextIO | None = None,
) -> RunOutcome:
    """One or more participants picked at random, never the same one twice in a row."""
    return await _run_new(
        ConversationMode.GROUP_CHAT,
        refs,
        topic,
        max_turns,
        config,
        timeout_ms,
        stream,
        save,
        adapter_factory,
        responders,
        out,
    )


def infer_mode(metadata: dict[str, Any], participant_count: int) -> ConversationMode:
    """Mode recorded in ``metadata``, else group chat for more than two participants."""
    recorded = metadata.get("mode")
    if recorded:
        try:
            return ConversationMode(recorded)
        except ValueError:
            logger.warning("Unknown conversation mode %r in metadata", recorded)
    if participant_count > 2:
        return ConversationMode.GROUP_CHAT
    return ConversationMode.CONVERSATION


async def continue_from_file(
    path: str | Path,
    refs: Sequence[ParticipantRef] = (),
    additional_turns: int = DEFAULT_ADDITIONAL_TURNS,
    *,
    config: ChorusConfig | None = None,
    timeout_ms: float | None = None,
    stream: bool = True,
    save: bool = True,
    adapter_factory: AdapterFactoryType | None = None,
    responders: Iterable[InternalResponder] = (),
    out: TextIO | None = None,
) -> RunOutcome:
    """
    Resume a saved conversation for ``additional_turns`` more turns.

    Participants come from ``refs`` when given, else from the file's
    metadata.

    Raises:
        ConversationFileError: The file is missing, invalid or has no messages
        PreconditionError: No participants could be determined
    """
    config = config or ChorusConfig()
    out = out or sys.stdout
    resolved_path = resolve_conversation_path(path, config.conversations_dir)
    record = load_conversation(resolved_path)
    if not record.messages:
        raise ConversationFileError(f"{resolved_path} contains no messages to continue")

    refs = list(refs) or participants_from_metadata(record.metadata.get("participants"))
    if not refs:
        raise PreconditionError(
            "Unable to determine participants. Specify them after the file path."
        )
    participants = [resolve_participant(ref) for ref in refs]
    mode = infer_mode(record.metadata, len(participants))
    topic = record.topic or CONTINUED_TOPIC

    orchestrator = build_orchestrator(
        mode,
        participants,
        config,
        timeout_ms=timeout_ms,
        stream=stream,
        adapter_factory=adapter_factory,
        responders=responders,
        out=out,
    )
    print(
        f"Continuing in {mode.value} mode with {len(participants)} participant(s).\n",
        file=out,
    )
    if stream:
        _print_history(record.entries(), out)

    result = await orchestrator.resume(record.entries(), additional_turns, topic)
    history = orchestrator.get_conversation_history()
    if not stream:
        _print_history(history, out)
    _report(result, out)

    saved_path = None
    if save:
        metadata = {
            **record.metadata,
            "mode": mode.value,
            "participants": [p.to_metadata() for p in participants],
            "maxTurns": orchestrator.config.max_turns,
            "continuedFrom": str(resolved_path),
            "continuedAt": datetime.now(UTC).isoformat(),
            "additionalTurns": additional_turns,
            "totalTurns": orchestrator.turn_count,
        }
        saved_path = save_conversation(history, topic, metadata, config.conversations_dir)
        print(f"Conversation saved to {saved_path}", file=out)
    return RunOutcome(result=result, history=history, saved_path=saved_path)
