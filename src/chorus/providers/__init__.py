"""Provider registry and adapters."""

from .adapter import (
    ADAPTER_FACTORIES,
    AIAdapter,
    AdapterFactory,
    LiteLLMAdapter,
    create_adapter,
    register_adapter_factory,
)
from .registry import (
    PROVIDER_ALIASES,
    PROVIDERS,
    ModelSpec,
    ParticipantConfig,
    ParticipantRef,
    ProviderSpec,
    find_model,
    is_participant_token,
    normalize_provider_input,
    parse_participant,
    participants_from_metadata,
    random_participant_config,
    resolve_participant,
    resolve_provider_key,
)

__all__ = [
    "AIAdapter",
    "AdapterFactory",
    "LiteLLMAdapter",
    "ADAPTER_FACTORIES",
    "create_adapter",
    "register_adapter_factory",
    "PROVIDERS",
    "PROVIDER_ALIASES",
    "ModelSpec",
    "ProviderSpec",
    "ParticipantRef",
    "ParticipantConfig",
    "find_model",
    "is_participant_token",
    "normalize_provider_input",
    "parse_participant",
    "participants_from_metadata",
    "random_participant_config",
    "resolve_participant",
    "resolve_provider_key",
]
