"""Provider and model registry.

Every provider chorus can talk to is described once here, keyed by an
upper-case provider key (``"OPENAI"``, ``"ANTHROPIC"``, ...). Participant
configurations are resolved against this table exactly once and are
immutable afterwards.
"""

import random
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from ..types import ProviderError

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 4096


@dataclass(frozen=True)
class ModelSpec:
    """A model offered by a provider."""

    key: str
    id: str
    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float = DEFAULT_TEMPERATURE


@dataclass(frozen=True)
class ProviderSpec:
    """A provider, its models and how litellm reaches it."""

    key: str
    name: str
    api_key_env_var: str
    litellm_prefix: str
    models: Mapping[str, ModelSpec] = field(default_factory=dict, hash=False)
    default_model: str = ""
    api_base: str | None = None

    @property
    def alias(self) -> str:
        return self.key.lower()

    def get_model(self, model_key: str | None = None) -> ModelSpec:
        """Return a model by key, or the provider default when key is None."""
        key = (model_key or self.default_model).upper()
        if key not in self.models:
            raise ProviderError(f"Model {model_key} not found for provider {self.name}")
        return self.models[key]


def _models(*specs: tuple[str, str]) -> dict[str, ModelSpec]:
    return {key: ModelSpec(key=key, id=model_id) for key, model_id in specs}


PROVIDERS: dict[str, ProviderSpec] = {
    "OPENAI": ProviderSpec(
        key="OPENAI",
        name="OpenAI",
        api_key_env_var="OPENAI_API_KEY",
        litellm_prefix="openai",
        models=_models(
            ("GPT4O", "gpt-4o"),
            ("GPT4_1", "gpt-4.1"),
            ("GPT5", "gpt-5"),
            ("O3", "o3-2025-04-16"),
            ("O3_MINI", "o3-mini"),
            ("O4_MINI", "o4-mini"),
            ("GPT35_TURBO", "gpt-3.5-turbo"),
        ),
        default_model="GPT4O",
    ),
    "ANTHROPIC": ProviderSpec(
        key="ANTHROPIC",
        name="Anthropic",
        api_key_env_var="ANTHROPIC_API_KEY",
        litellm_prefix="anthropic",
        models=_models(
            ("CLAUDE3_7_SONNET", "claude-3-7-sonnet-20250219"),
            ("CLAUDE3_5_HAIKU_20241022", "claude-3-5-haiku-20241022"),
            ("CLAUDE_SONNET_4", "claude-sonnet-4-20250514"),
            ("CLAUDE_SONNET_4_5", "claude-sonnet-4-5"),
            ("CLAUDE_OPUS_4", "claude-opus-4-20250514"),
            ("CLAUDE_OPUS_4_1", "claude-opus-4-1"),
        ),
        default_model="CLAUDE_SONNET_4_5",
    ),
    "GEMINI": ProviderSpec(
        key="GEMINI",
        name="Gemini",
        api_key_env_var="GOOGLE_AI_API_KEY",
        litellm_prefix="gemini",
        models=_models(
            ("GEMINI_PRO", "gemini-2.0-flash-exp"),
            ("GEMINI_FLASH", "gemini-2.0-flash"),
            ("GEMINI_25", "gemini-2.5-pro"),
        ),
        default_model="GEMINI_25",
    ),
    "MISTRAL": ProviderSpec(
        key="MISTRAL",
        name="Mistral",
        api_key_env_var="MISTRAL_API_KEY",
        litellm_prefix="mistral",
        models=_models(
            ("MISTRAL_LARGE", "mistral-large-latest"),
            ("MISTRAL_MEDIUM", "mistral-medium-latest"),
            ("MISTRAL_SMALL", "mistral-small-latest"),
            ("MINISTRAL_8B_LATEST", "ministral-8b-latest"),
            ("OPEN_MISTRAL_NEMO", "open-mistral-nemo"),
        ),
        default_model="MISTRAL_LARGE",
    ),
    "DEEPSEEK": ProviderSpec(
        key="DEEPSEEK",
        name="Deepseek",
        api_key_env_var="DEEPSEEK_API_KEY",
        litellm_prefix="deepseek",
        models=_models(
            ("DEEPSEEK_CHAT", "deepseek-chat"),
            ("DEEPSEEK_CODER", "deepseek-coder"),
            ("DEEPSEEK_REASONER", "deepseek-reasoner"),
        ),
        default_model="DEEPSEEK_CHAT",
    ),
    "GROK": ProviderSpec(
        key="GROK",
        name="Grok",
        api_key_env_var="GROK_API_KEY",
        litellm_prefix="xai",
        models=_models(
            ("GROK_3", "grok-3"),
            ("GROK_3_MINI", "grok-3-mini"),
            ("GROK_4_0709", "grok-4-0709"),
            ("GROK_4_FAST_NON_REASONING", "grok-4-fast-non-reasoning"),
            ("GROK_4_FAST_REASONING", "grok-4-fast-reasoning"),
            ("GROK_CODE_FAST_1", "grok-code-fast-1"),
        ),
        default_model="GROK_4_0709",
    ),
    "QWEN": ProviderSpec(
        key="QWEN",
        name="Qwen",
        api_key_env_var="QWEN_API_KEY",
        litellm_prefix="dashscope",
        models=_models(
            ("QWEN3_MAX", "qwen3-max"),
            ("QWEN3_PLUS", "qwen-plus"),
            ("QWEN3_FLASH", "qwen-flash"),
            ("QWEN3_CODER_PLUS", "qwen3-coder-plus"),
        ),
        default_model="QWEN3_MAX",
    ),
    "KIMI": ProviderSpec(
        key="KIMI",
        name="Kimi",
        api_key_env_var="KIMI_API_KEY",
        litellm_prefix="moonshot",
        models=_models(
            ("KIMI_8K", "moonshot-v1-8k"),
            ("KIMI_32K", "moonshot-v1-32k"),
            ("KIMI_128K", "moonshot-v1-128k"),
        ),
        default_model="KIMI_32K",
    ),
    "COHERE": ProviderSpec(
        key="COHERE",
        name="Cohere",
        api_key_env_var="COHERE_API_KEY",
        litellm_prefix="cohere_chat",
        models=_models(
            ("COMMAND_A_03_2025", "command-a-03-2025"),
            ("COMMAND_R_08_2024", "command-r-08-2024"),
            ("COMMAND_R7B_12_2024", "command-r7b-12-2024"),
        ),
        default_model="COMMAND_A_03_2025",
    ),
    "PERPLEXITY": ProviderSpec(
        key="PERPLEXITY",
        name="Perplexity",
        api_key_env_var="PERPLEXITY_API_KEY",
        litellm_prefix="perplexity",
        models=_models(
            ("SONAR", "sonar"),
            ("SONAR_PRO", "sonar-pro"),
            ("SONAR_REASONING", "sonar-reasoning"),
        ),
        default_model="SONAR_PRO",
    ),
}

PROVIDER_ALIASES: dict[str, str] = {
    "gemeni": "gemini",
    "google": "gemini",
    "moonshot": "kimi",
    "xai": "grok",
    "claude": "anthropic",
    "gpt": "openai",
}


@dataclass(frozen=True)
class ParticipantRef:
    """A participant as requested by a caller, before resolution."""

    provider: str
    model: str | None = None

    def __str__(self) -> str:
        return f"{self.provider}:{self.model}" if self.model else self.provider


@dataclass(frozen=True)
class ParticipantConfig:
    """A resolved provider/model pair; the input to ``add_participant``."""

    provider: ProviderSpec
    model: ModelSpec

    @property
    def display_name(self) -> str:
        return f"{self.provider.name} ({self.model.id})"

    @property
    def litellm_model(self) -> str:
        return f"{self.provider.litellm_prefix}/{self.model.id}"

    def to_metadata(self) -> dict[str, Any]:
        """Metadata entry stored in saved conversation files."""
        return {
            "providerKey": self.provider.key,
            "providerAlias": self.provider.alias,
            "providerName": self.provider.name,
            "modelKey": self.model.key,
            "modelId": self.model.id,
        }


def normalize_provider_input(provider_name: str) -> str:
    """Lower-case a provider name and apply aliases."""
    lowered = provider_name.lower()
    return PROVIDER_ALIASES.get(lowered, lowered)


def resolve_provider_key(provider_name: str) -> str:
    """Map a provider name or alias to its registry key."""
    normalized = normalize_provider_input(provider_name)
    for key in PROVIDERS:
        if key.lower() == normalized:
            return key
    raise ProviderError(f"Unsupported provider: {provider_name}")


def find_model(model_key: str) -> tuple[str, ModelSpec] | None:
    """Find a model key across all providers."""
    upper = model_key.upper()
    for provider_key, provider in PROVIDERS.items():
        if upper in provider.models:
            return provider_key, provider.models[upper]
    return None


def is_participant_token(token: str) -> bool:
    """Whether a CLI token names a participant rather than starting a topic."""
    if ":" in token:
        return True
    if find_model(token) is not None:
        return True
    lowered = token.lower()
    return lowered in PROVIDER_ALIASES or any(key.lower() == lowered for key in PROVIDERS)


def parse_participant(value: str) -> ParticipantRef:
    """
    Parse ``provider[:MODEL]``.

    A bare token that is a known model key selects that model's provider;
    any other bare token is treated as a provider name.
    """
    provider, _, model = value.partition(":")
    if not model:
        found = find_model(value)
        if found is not None:
            provider_key, spec = found
            return ParticipantRef(provider=provider_key.lower(), model=spec.key)
        return ParticipantRef(provider=normalize_provider_input(provider))
    return ParticipantRef(
        provider=normalize_provider_input(provider),
        model=model.upper(),
    )


def resolve_participant(ref: ParticipantRef) -> ParticipantConfig:
    """Resolve a participant reference against the registry."""
    provider = PROVIDERS[resolve_provider_key(ref.provider)]
    return ParticipantConfig(provider=provider, model=provider.get_model(ref.model))


def participants_from_metadata(
    entries: Iterable[Mapping[str, Any]] | None,
) -> list[ParticipantRef]:
    """Rebuild participant references from saved metadata entries."""
    refs: list[ParticipantRef] = []
    for entry in entries or []:
        provider_key = entry.get("providerKey")
        model_key = entry.get("modelKey")
        if not provider_key or not model_key:
            continue
        alias = entry.get("providerAlias") or provider_key
        refs.append(ParticipantRef(provider=str(alias).lower(), model=str(model_key)))
    return refs


def random_participant_config(rng: random.Random | None = None) -> ParticipantConfig:
    """Pick a random provider with its default model."""
    rng = rng or random.Random()
    provider = PROVIDERS[rng.choice(sorted(PROVIDERS))]
    return ParticipantConfig(provider=provider, model=provider.get_model())
