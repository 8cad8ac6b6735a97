"""Builds the message list a participant sees for its turn."""

from collections.abc import Sequence
from typing import Any

from ..core.messages import system_message
from ..templating import TemplateEngine
from ..types import Message
from .log import MessageLog
from .state import ConversationMode, Participant

SYSTEM_TEMPLATES = {
    ConversationMode.CONVERSATION: "conversation_system",
    ConversationMode.GROUP_CHAT: "group_chat_system",
}

# How many trailing turns feed the "recently active voices" hint
RECENT_WINDOW = 5


def conversation_phase(
    log: MessageLog,
    participant: Participant,
    participant_count: int,
    turn_count: int,
    max_turns: int,
) -> str:
    """
    Where the conversation stands from the speaker's point of view.

    Returns one of ``"final"`` (wrap up and say goodbye), ``"respond"``
    (answer the participant who just spoke), ``"opening"`` (first round of
    turns) or ``"underway"``.
    """
    if turn_count >= max_turns - 2:
        return "final"
    last = log.last
    if (
        last is not None
        and last.participant_id is not None
        and last.participant_id != participant.id
    ):
        return "respond"
    if turn_count < participant_count:
        return "opening"
    return "underway"


class PromptBuilder:
    """
    Composes ``[system, *history]`` for one participant's turn.

    The system message is rendered from a Jinja template chosen by run
    mode; it is never stored in the message log. The whole log is sent on
    every turn.

    Args:
        engine: Template engine; a default engine with the built-in
            templates is created when omitted
        helper_names: Names of internal responders participants may
            address with ``@<name> <question>``
    """

    def __init__(
        self,
        engine: TemplateEngine | None = None,
        helper_names: Sequence[str] = (),
    ):
        self.engine = engine or TemplateEngine()
        self.helper_names = list(helper_names)

    def template_variables(
        self,
        log: MessageLog,
        participant: Participant,
        participants: Sequence[Participant],
        turn_count: int,
        max_turns: int,
        topic: str,
        mode: ConversationMode,
    ) -> dict[str, Any]:
        if mode is ConversationMode.GROUP_CHAT:
            # Group chat greets during the first round of assistant turns
            assistant_turns = sum(1 for turn in log if turn.role == "assistant")
            if turn_count >= max_turns - 2:
                phase = "final"
            elif assistant_turns < len(participants):
                phase = "opening"
            else:
                phase = "underway"
        else:
            phase = conversation_phase(log, participant, len(participants), turn_count, max_turns)

        recent_voices = [
            turn.author_name for turn in log.turns[-RECENT_WINDOW:] if turn.is_participant_turn
        ]
        return {
            "participant_name": participant.name,
            "topic": topic,
            "others": [p.name for p in participants if p.id != participant.id],
            "phase": phase,
            "helper_names": self.helper_names,
            "recent_voices": recent_voices,
            "turn_number": turn_count + 1,
            "max_turns": max_turns,
            "is_final": phase == "final",
        }

    def system_prompt(
        self,
        log: MessageLog,
        participant: Participant,
        participants: Sequence[Participant],
        turn_count: int,
        max_turns: int,
        topic: str,
        mode: ConversationMode = ConversationMode.CONVERSATION,
    ) -> str:
        variables = self.template_variables(
            log, participant, participants, turn_count, max_turns, topic, mode
        )
        return self.engine.render(SYSTEM_TEMPLATES[mode], variables)

    def build(
        self,
        log: MessageLog,
        participant: Participant,
        participants: Sequence[Participant],
        turn_count: int,
        max_turns: int,
        topic: str,
        mode: ConversationMode = ConversationMode.CONVERSATION,
    ) -> list[Message]:
        """Return ``[system, *log.as_prompt_messages()]`` for ``participant``."""
        content = self.system_prompt(
            log, participant, participants, turn_count, max_turns, topic, mode
        )
        return [system_message(content), *log.as_prompt_messages()]
