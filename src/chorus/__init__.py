"""
Chorus - several AI models in one conversation.

Features:
- Round-robin conversations and randomized group chats
- Phase-aware system prompts rendered from Jinja templates
- Turn and time budgets with cooperative cancellation
- Internal responders such as the @Chat helper
- Provider calls through litellm with retries and backoff
- Saving, replaying and continuing conversations
"""

from .config import (
    ChorusConfig,
    ConversationConfig,
    load_env_files,
    validate_api_keys,
)
from .conversation import (
    ChatAssistant,
    ConversationMode,
    ConversationOrchestrator,
    InternalResponder,
    KnowledgeBase,
    MentionResponder,
    MessageLog,
    Participant,
    PromptBuilder,
    RandomNoRepeatScheduler,
    ResponderReply,
    RoundRobinScheduler,
    RunResult,
    RunState,
    Turn,
)
from .observability import CallbackManager, EventLogger, StatsTracker
from .persistence import (
    ConversationRecord,
    StoredMessage,
    format_conversation,
    list_conversations,
    load_conversation,
    save_conversation,
)
from .providers import (
    PROVIDERS,
    AIAdapter,
    LiteLLMAdapter,
    ParticipantConfig,
    ParticipantRef,
    create_adapter,
    parse_participant,
    register_adapter_factory,
    resolve_participant,
)
from .templating import TemplateEngine
from .types import (
    ChorusError,
    CompletionError,
    ConfigError,
    ConversationFileError,
    PreconditionError,
    ProviderError,
    TemplateError,
)

__version__ = "0.1.0"

__all__ = [
    # Orchestration
    "ConversationOrchestrator",
    "ConversationMode",
    "RunState",
    "RunResult",
    "Participant",
    "MessageLog",
    "Turn",
    "PromptBuilder",
    "RoundRobinScheduler",
    "RandomNoRepeatScheduler",
    # Internal responders
    "InternalResponder",
    "ResponderReply",
    "MentionResponder",
    "ChatAssistant",
    "KnowledgeBase",
    # Providers
    "PROVIDERS",
    "AIAdapter",
    "LiteLLMAdapter",
    "ParticipantConfig",
    "ParticipantRef",
    "create_adapter",
    "parse_participant",
    "register_adapter_factory",
    "resolve_participant",
    # Configuration
    "ChorusConfig",
    "ConversationConfig",
    "load_env_files",
    "validate_api_keys",
    # Persistence
    "ConversationRecord",
    "StoredMessage",
    "save_conversation",
    "load_conversation",
    "list_conversations",
    "format_conversation",
    # Observability
    "CallbackManager",
    "EventLogger",
    "StatsTracker",
    # Templating
    "TemplateEngine",
    # Errors
    "ChorusError",
    "ConfigError",
    "PreconditionError",
    "ProviderError",
    "CompletionError",
    "ConversationFileError",
    "TemplateError",
]
