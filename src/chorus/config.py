"""Configuration management and environment loading."""

import logging
import math
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .types import ConfigError, RetryConfig

logger = logging.getLogger(__name__)

DEFAULT_MAX_TURNS = 10
DEFAULT_TIMEOUT_MS = 300_000
DEFAULT_MAX_RESPONSE_CHARS = 1000
DEFAULT_STREAM_DELAY_MS = 30


def _sanitize(value: Any, default: float, minimum: float, name: str) -> float:
    """Return ``value`` as a finite number >= ``minimum``, else ``default``."""
    if value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning("Invalid %s=%r, using default %s", name, value, default)
        return default
    if not math.isfinite(number) or number < minimum:
        logger.warning("Invalid %s=%r, using default %s", name, value, default)
        return default
    return number


@dataclass(frozen=True)
class ConversationConfig:
    """Turn and time budget for a conversation run.

    Every construction path is sanitized: a missing, non-numeric, non-finite
    or out-of-range value falls back to its default instead of producing a
    run that never ends or one with no budget at all.
    """

    max_turns: int = DEFAULT_MAX_TURNS
    timeout_ms: float = DEFAULT_TIMEOUT_MS
    # None disables truncation of long provider output
    max_response_chars: int | None = DEFAULT_MAX_RESPONSE_CHARS

    def __post_init__(self) -> None:
        # Frozen, so fields are replaced through object.__setattr__
        object.__setattr__(
            self, "max_turns", int(_sanitize(self.max_turns, DEFAULT_MAX_TURNS, 1, "max_turns"))
        )
        object.__setattr__(
            self, "timeout_ms", _sanitize(self.timeout_ms, DEFAULT_TIMEOUT_MS, 1, "timeout_ms")
        )
        if self.max_response_chars is not None:
            chars = _sanitize(
                self.max_response_chars, DEFAULT_MAX_RESPONSE_CHARS, 1, "max_response_chars"
            )
            object.__setattr__(self, "max_response_chars", int(chars))

    @classmethod
    def create(
        cls,
        max_turns: Any = None,
        timeout_ms: Any = None,
        max_response_chars: Any = DEFAULT_MAX_RESPONSE_CHARS,
    ) -> "ConversationConfig":
        """Create a config from loosely typed input, such as CLI or env values."""
        return cls(
            max_turns=max_turns,
            timeout_ms=timeout_ms,
            max_response_chars=max_response_chars,
        )

    def with_overrides(self, **overrides: Any) -> "ConversationConfig":
        """Return a sanitized copy with the given fields replaced."""
        return replace(self, **overrides)


@dataclass
class ChorusConfig:
    """Main configuration for the chorus CLI and runners."""

    conversation: ConversationConfig = field(default_factory=ConversationConfig)

    # Logging
    log_level: str = "INFO"
    event_log: Path | str | None = None

    # Console playback delay between words, in milliseconds
    stream_delay_ms: int = DEFAULT_STREAM_DELAY_MS

    # Where conversations are saved and looked up
    conversations_dir: Path = field(default_factory=lambda: Path("conversations"))

    # Directory of .jinja files overriding the built-in system prompts
    template_dir: Path | str | None = None

    # Directory of .md/.txt files the @Chat helper answers from; None disables it
    knowledge_dir: Path | str | None = None
    # Participant that phrases the @Chat helper's answers, as provider[:MODEL]
    helper_participant: str = "openai"

    # Adapter-level retries
    retry: RetryConfig = field(default_factory=RetryConfig)

    @classmethod
    def from_env(cls) -> "ChorusConfig":
        """Create config from CHORUS_ prefixed environment variables."""
        config = cls()

        max_turns: float | None = None
        if raw := os.getenv("CHORUS_MAX_TURNS"):
            try:
                max_turns = float(raw)
            except ValueError:
                raise ConfigError(f"Invalid CHORUS_MAX_TURNS: {raw}")

        timeout_ms: float | None = None
        if raw := os.getenv("CHORUS_TIMEOUT_MS"):
            try:
                timeout_ms = float(raw)
            except ValueError:
                raise ConfigError(f"Invalid CHORUS_TIMEOUT_MS: {raw}")

        config.conversation = ConversationConfig.create(
            max_turns=max_turns, timeout_ms=timeout_ms
        )

        if log_level := os.getenv("CHORUS_LOG_LEVEL"):
            config.log_level = log_level.upper()

        if delay := os.getenv("CHORUS_STREAM_DELAY_MS"):
            try:
                config.stream_delay_ms = max(0, int(delay))
            except ValueError:
                raise ConfigError(f"Invalid CHORUS_STREAM_DELAY_MS: {delay}")

        if conversations_dir := os.getenv("CHORUS_CONVERSATIONS_DIR"):
            config.conversations_dir = Path(conversations_dir)

        if template_dir := os.getenv("CHORUS_TEMPLATE_DIR"):
            config.template_dir = Path(template_dir)

        if knowledge_dir := os.getenv("CHORUS_KNOWLEDGE_DIR"):
            config.knowledge_dir = Path(knowledge_dir)

        if helper := os.getenv("CHORUS_HELPER_PARTICIPANT"):
            config.helper_participant = helper

        if event_log := os.getenv("CHORUS_EVENT_LOG"):
            config.event_log = Path(event_log)

        return config


def load_env_files(
    env_file: str | Path | None = None,
    env_files: list[str | Path] | None = None,
) -> None:
    """
    Load environment variables from .env files.

    Args:
        env_file: Single env file to load
        env_files: Multiple env files to load (later files override earlier)
    """
    files_to_load: list[Path] = []

    if env_files:
        files_to_load.extend(Path(f) for f in env_files)
    elif env_file:
        files_to_load.append(Path(env_file))
    else:
        default_env = Path(".env")
        if default_env.exists():
            files_to_load.append(default_env)

    for file_path in files_to_load:
        if file_path.exists():
            load_dotenv(file_path, override=True)


def validate_api_keys(required_providers: list[str] | None = None) -> dict[str, bool]:
    """
    Check which provider API keys are configured.

    Args:
        required_providers: Provider keys or aliases; raise if any are missing

    Returns:
        Dict mapping lower-case provider keys to whether their key is set
    """
    from .providers.registry import PROVIDERS, resolve_provider_key

    results = {
        key.lower(): bool(os.getenv(provider.api_key_env_var))
        for key, provider in PROVIDERS.items()
    }

    if required_providers:
        missing = []
        for name in required_providers:
            key = resolve_provider_key(name)
            if not results[key.lower()]:
                missing.append(f"{name} ({PROVIDERS[key].api_key_env_var})")
        if missing:
            raise ConfigError(
                f"Missing API keys for providers: {', '.join(missing)}. "
                f"Set the corresponding environment variables."
            )

    return results
