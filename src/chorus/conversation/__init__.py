"""Conversation orchestration."""

from .log import USER_NAME, MessageLog, Turn
from .orchestrator import ConversationOrchestrator
from .prompts import PromptBuilder, conversation_phase
from .responders import (
    ChatAssistant,
    InternalResponder,
    KnowledgeBase,
    MentionResponder,
    Passage,
    ResponderReply,
)
from .scheduler import (
    RandomNoRepeatScheduler,
    RoundRobinScheduler,
    Scheduler,
    ScheduleState,
)
from .state import ConversationMode, Participant, RunResult, RunState

__all__ = [
    # Orchestration
    "ConversationOrchestrator",
    "ConversationMode",
    "RunState",
    "RunResult",
    "Participant",
    # Message log
    "MessageLog",
    "Turn",
    "USER_NAME",
    # Scheduling
    "Scheduler",
    "ScheduleState",
    "RoundRobinScheduler",
    "RandomNoRepeatScheduler",
    # Prompts
    "PromptBuilder",
    "conversation_phase",
    # Internal responders
    "InternalResponder",
    "ResponderReply",
    "MentionResponder",
    "ChatAssistant",
    "KnowledgeBase",
    "Passage",
]
